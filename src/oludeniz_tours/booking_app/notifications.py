# booking_app/notifications.py
from typing import Callable, List, Optional

from oludeniz_tours.config import Config
from oludeniz_tours.services.email_sender import booking_notification_email, send_email
from oludeniz_tours.services.whatsapp_messages import booking_received_message, booking_status_message
from oludeniz_tours.services.whatsapp_sender import send_whatsapp_message
from .errors import UpstreamServiceError
from .pipeline import StepOutcome, run_step, skipped


def _deliver(send: Callable, *args):
    result = send(*args)
    if not result.success:
        raise UpstreamServiceError(result.error or "send failed")
    return result.message_id


class BookingNotifier:
    """Email / WhatsApp side channels for booking events. Every send is best-effort."""

    def __init__(self, email_sender: Callable = send_email, whatsapp_sender: Callable = send_whatsapp_message,
                 admin_email: Optional[str] = None):
        self.email_sender = email_sender
        self.whatsapp_sender = whatsapp_sender
        self.admin_email = admin_email if admin_email is not None else Config.ADMIN_NOTIFICATION_EMAIL

    def notify_new_booking(self, booking, phone: Optional[str] = None) -> List[StepOutcome]:
        outcomes = []
        if self.admin_email:
            mail = booking_notification_email(booking)
            outcomes.append(run_step("email_notification", _deliver, self.email_sender,
                                     self.admin_email, mail["subject"], mail["html"], mail["text"]))
        else:
            outcomes.append(skipped("email_notification", "no admin notification address"))

        if phone:
            outcomes.append(run_step("whatsapp_notification", _deliver, self.whatsapp_sender,
                                     phone, booking_received_message(booking)))
        else:
            outcomes.append(skipped("whatsapp_notification", "no phone number"))
        return outcomes

    def notify_status_change(self, booking, phone: Optional[str] = None) -> StepOutcome:
        if not phone:
            return skipped("whatsapp_status", "no phone number")
        return run_step("whatsapp_status", _deliver, self.whatsapp_sender, phone, booking_status_message(booking))
