# booking_app/booking_flow.py
"""
Booking register: the create pipeline, status updates and listings.

A booking insert is the only critical write of the create path. Customer
upsert, aggregate recompute, calendar sync and notifications run as
best-effort steps around it and report their outcomes in a StepLog.
"""
import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .customer_ledger import find_by_email, recompute_aggregates, upsert_from_booking
from .database import commit_or_raise
from .errors import NotFound, ValidationError
from .invoicing import generate_from_booking
from .models import Booking, BookingStatus, Invoice
from .pipeline import StepLog, run_step, skipped
from .status_policy import parse_status, policy_for

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("tour_name", "booking_date", "tour_start_time")

DEFAULT_ADULTS = 1
DEFAULT_CHILDREN = 0
DEFAULT_DURATION = 120
DEFAULT_CHANNEL = "website"


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid booking_date {value!r}, expected YYYY-MM-DD")


def _parse_start_time(value) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValidationError(f"Invalid tour_start_time {value!r}, expected HH:MM")


def _count(value, default: int, name: str, minimum: int = 0) -> int:
    if value in (None, ""):
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number")
    if value == 0 and minimum > 0:
        return default
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return value


def validate_booking_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Check required fields and apply defaults. Raises ValidationError."""
    missing = [f for f in REQUIRED_FIELDS if _blank(payload.get(f))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    amount = payload.get("total_amount")
    if amount is not None:
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("total_amount must be a number")
        if amount < 0:
            raise ValidationError("total_amount must not be negative")

    return {
        "tour_name": str(payload["tour_name"]).strip(),
        "booking_date": _parse_date(payload["booking_date"]),
        "tour_start_time": _parse_start_time(payload["tour_start_time"]),
        "adults": _count(payload.get("adults"), DEFAULT_ADULTS, "adults", minimum=1),
        "children": _count(payload.get("children"), DEFAULT_CHILDREN, "children"),
        "duration": _count(payload.get("duration"), DEFAULT_DURATION, "duration", minimum=1),
        "total_amount": amount,
        "hotel_name": payload.get("hotel_name") or None,
        "notes": payload.get("notes") or None,
    }


def create_booking(db: Session, identity, payload: Dict[str, Any]) -> Booking:
    data = validate_booking_payload(payload)
    booking = Booking(
        user_id=identity.id,
        customer_name=identity.display_name,
        customer_email=identity.email,
        customer_phone=identity.phone or None,
        channel=DEFAULT_CHANNEL,
        status=BookingStatus.pending,
        **data,
    )
    db.add(booking)
    commit_or_raise(db, "create booking")
    db.refresh(booking)
    logger.info("Booking %s created for %s (%s on %s)", booking.id, identity.email,
                booking.tour_name, booking.booking_date)
    return booking


def _sync_new_event(db: Session, booking: Booking, calendar) -> Optional[str]:
    event_id = calendar.create_event(booking)
    if event_id:
        booking.google_calendar_event_id = event_id
        commit_or_raise(db, "store calendar event id")
        db.refresh(booking)
    return event_id


def process_new_booking(db: Session, identity, payload: Dict[str, Any], calendar=None,
                        notifier=None) -> Tuple[Booking, StepLog]:
    # validate up front so a bad request touches neither the ledger nor the register
    data = validate_booking_payload(payload)
    steps = StepLog()

    customer_step = steps.add(run_step(
        "customer_upsert", upsert_from_booking,
        db, identity.email, identity.display_name, identity.phone, data["total_amount"],
        user_id=identity.id, on_error=db.rollback,
    ))

    booking = create_booking(db, identity, data)

    if customer_step.ok:
        steps.add(run_step("customer_stats", recompute_aggregates, db, customer_step.value, identity.id,
                           on_error=db.rollback))
    else:
        steps.add(skipped("customer_stats", "no customer record"))

    if calendar is None:
        steps.add(skipped("calendar_sync", "calendar not configured"))
    else:
        steps.add(run_step("calendar_sync", _sync_new_event, db, booking, calendar, on_error=db.rollback))

    if notifier is None:
        steps.add(skipped("notifications", "no notifier"))
    else:
        for outcome in notifier.notify_new_booking(booking, identity.phone):
            steps.add(outcome)

    for outcome in steps.failed():
        logger.warning("booking %s: step %s failed: %s", booking.id, outcome.step, outcome.error)
    return booking, steps


def _sync_status_event(db: Session, booking: Booking, calendar) -> str:
    if booking.status == BookingStatus.cancelled:
        calendar.delete_event(booking.google_calendar_event_id)
        booking.google_calendar_event_id = None
        commit_or_raise(db, "clear calendar event id")
        db.refresh(booking)
        return "deleted"
    calendar.update_event(booking.google_calendar_event_id, booking)
    return "updated"


def _refresh_customer_stats(db: Session, booking: Booking):
    customer = find_by_email(db, booking.customer_email)
    if customer is None:
        return None
    return recompute_aggregates(db, customer, booking.user_id, touch_last_booking=False)


def update_booking_status(db: Session, booking_id: str, new_status, identity=None, admin: bool = False,
                          policy=None, calendar=None, notifier=None) -> Tuple[Booking, StepLog]:
    status = parse_status(new_status, BookingStatus)

    q = db.query(Booking).filter(Booking.id == booking_id)
    if identity is not None and not admin:
        q = q.filter(Booking.user_id == identity.id)
    booking = q.first()
    if booking is None:
        raise NotFound("Booking not found")

    previous = booking.status
    (policy or policy_for("booking")).check(previous, status)
    booking.status = status
    commit_or_raise(db, "update booking")
    db.refresh(booking)
    logger.info("Booking %s status %s -> %s", booking.id, previous.value if previous else None, status.value)

    steps = StepLog()
    if calendar is None or not booking.google_calendar_event_id:
        steps.add(skipped("calendar_sync", "no calendar event"))
    else:
        steps.add(run_step("calendar_sync", _sync_status_event, db, booking, calendar, on_error=db.rollback))

    if previous != status:
        steps.add(run_step("customer_stats", _refresh_customer_stats, db, booking, on_error=db.rollback))
        if notifier is not None:
            steps.add(notifier.notify_status_change(booking, booking.customer_phone))
    return booking, steps


def get_booking(db: Session, booking_id: str, user_id: Optional[str] = None) -> Booking:
    q = db.query(Booking).filter(Booking.id == booking_id)
    if user_id is not None:
        q = q.filter(Booking.user_id == user_id)
    booking = q.first()
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def list_bookings(db: Session, user_id: Optional[str] = None, ascending: bool = False) -> List[Booking]:
    q = db.query(Booking)
    if user_id is not None:
        q = q.filter(Booking.user_id == user_id)
    if ascending:
        q = q.order_by(Booking.booking_date.asc(), Booking.tour_start_time.asc())
    else:
        q = q.order_by(Booking.booking_date.desc(), Booking.tour_start_time.desc())
    return q.all()


def list_all_bookings(db: Session) -> List[Booking]:
    return list_bookings(db, ascending=True)


def list_bookings_in_range(db: Session, start: date, end: date) -> List[Booking]:
    """Bookings with start <= booking_date <= end, earliest first."""
    return db.query(Booking).filter(
        Booking.booking_date >= start,
        Booking.booking_date <= end,
    ).order_by(Booking.booking_date.asc(), Booking.tour_start_time.asc()).all()


def invoice_booking(db: Session, booking_id: str) -> Invoice:
    booking = get_booking(db, booking_id)
    return generate_from_booking(db, booking)
