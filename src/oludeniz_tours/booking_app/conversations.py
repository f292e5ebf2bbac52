# booking_app/conversations.py
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .database import commit_or_raise
from .models import Conversation


def record_message(db: Session, session_id: str, sender: str, message: str, channel: str = "web",
                   customer_email: Optional[str] = None, customer_name: Optional[str] = None,
                   visitor_info: Optional[Dict[str, Any]] = None) -> Conversation:
    row = Conversation(
        session_id=session_id,
        channel=channel,
        customer_email=customer_email,
        customer_name=customer_name,
        sender=sender,
        message=message,
        visitor_info=visitor_info,
    )
    db.add(row)
    commit_or_raise(db, "save conversation message")
    db.refresh(row)
    return row


def get_session_messages(db: Session, session_id: str) -> List[Conversation]:
    return db.query(Conversation).filter(Conversation.session_id == session_id).order_by(
        Conversation.created_at.asc(), Conversation.id.asc()
    ).all()


def list_sessions(db: Session, limit: int = 1000) -> List[Dict[str, Any]]:
    """Latest messages grouped by session, most recently active session first."""
    rows = db.query(Conversation).order_by(Conversation.created_at.desc(), Conversation.id.desc()).limit(limit).all()
    grouped: "OrderedDict[str, List[Conversation]]" = OrderedDict()
    for row in rows:
        grouped.setdefault(row.session_id, []).append(row)

    sessions = []
    for session_id, messages in grouped.items():
        messages.reverse()
        visitor_info = next((m.visitor_info for m in messages if m.visitor_info), None)
        sessions.append({
            "sessionId": session_id,
            "messages": messages,
            "lastMessage": messages[-1],
            "messageCount": len(messages),
            "visitorInfo": visitor_info,
        })
    return sessions
