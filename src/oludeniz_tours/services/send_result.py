from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.message_id:
            out["messageId"] = self.message_id
        if self.error:
            out["error"] = self.error
        return out
