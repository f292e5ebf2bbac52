# booking_app/customer_ledger.py
"""
Customer ledger: one customer row per (lowercased) email, plus the money
aggregates derived from that customer's booking history.

Aggregates are recomputed from the full booking history on every booking
event rather than maintained incrementally.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .database import commit_or_raise, utcnow
from .errors import NotFound, ValidationError
from .models import Booking, BookingStatus, Customer, CustomerStatus
from .status_policy import parse_status

logger = logging.getLogger(__name__)

AUTO_SOURCE = "online_booking"

# columns an operator may set on create/update
EDITABLE_FIELDS = (
    "first_name", "last_name", "email", "phone", "country", "city", "address",
    "customer_type", "vip_status", "preferred_language", "marketing_consent",
    "notes", "source", "status",
)
CUSTOMER_TYPES = ("individual", "group", "corporate")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def split_name(display_name: Optional[str]) -> Tuple[str, str]:
    parts = (display_name or "").split()
    if not parts:
        return "Guest", ""
    return parts[0], " ".join(parts[1:])


def find_by_email(db: Session, email: str) -> Optional[Customer]:
    key = normalize_email(email)
    if not key:
        return None
    return db.query(Customer).filter(Customer.email == key).first()


def upsert_from_booking(db: Session, email: str, display_name: str, phone: str,
                        booking_amount: Optional[float], user_id: Optional[str] = None) -> Customer:
    """Create the customer on their first booking, or touch the existing row."""
    key = normalize_email(email)
    if not key:
        raise ValidationError("Customer email is required")

    customer = db.query(Customer).filter(Customer.email == key).first()
    now = utcnow()

    if customer is None:
        first_name, last_name = split_name(display_name)
        amount = float(booking_amount or 0.0)
        customer = Customer(
            user_id=user_id,
            name=(display_name or "").strip() or first_name,
            first_name=first_name,
            last_name=last_name,
            email=key,
            phone=phone or "",
            status=CustomerStatus.active,
            customer_type="individual",
            vip_status=False,
            total_bookings=1,
            total_spent=amount,
            lifetime_value=amount,
            average_booking_value=amount,
            source=AUTO_SOURCE,
            last_booking_date=now,
            notes=f"Auto-created from booking on {now.date().isoformat()}",
        )
        db.add(customer)
        commit_or_raise(db, "create customer")
        db.refresh(customer)
        logger.info("New customer created: %s", key)
        return customer

    customer.last_booking_date = now
    # never blank out a known phone
    if phone:
        customer.phone = phone
    if user_id and not customer.user_id:
        customer.user_id = user_id
    commit_or_raise(db, "update customer")
    db.refresh(customer)
    logger.info("Existing customer found: %s", key)
    return customer


def recompute_aggregates(db: Session, customer: Customer, user_id: str, touch_last_booking: bool = True) -> Customer:
    """Rebuild money aggregates from every booking owned by ``user_id``.

    ``touch_last_booking`` is for the booking-create path; status changes leave
    ``last_booking_date`` alone.
    """
    total_spent = db.query(func.coalesce(func.sum(Booking.total_amount), 0.0)).filter(
        Booking.user_id == user_id,
        Booking.status == BookingStatus.completed,
    ).scalar() or 0.0
    total_bookings = db.query(func.count(Booking.id)).filter(Booking.user_id == user_id).scalar() or 0

    total_spent = round(float(total_spent), 2)
    customer.total_spent = total_spent
    customer.lifetime_value = total_spent
    customer.total_bookings = int(total_bookings)
    customer.average_booking_value = round(total_spent / total_bookings, 2) if total_bookings > 0 else 0.0
    if touch_last_booking:
        customer.last_booking_date = utcnow()
    commit_or_raise(db, "update customer statistics")
    db.refresh(customer)
    return customer


# ---------------------------------------------------------------------------
# Operator CRUD
# ---------------------------------------------------------------------------

def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
    if "email" in cleaned:
        cleaned["email"] = normalize_email(cleaned["email"])
        if not cleaned["email"]:
            raise ValidationError("Customer email is required")
    if "status" in cleaned and cleaned["status"] is not None:
        cleaned["status"] = parse_status(cleaned["status"], CustomerStatus)
    if cleaned.get("customer_type") and cleaned["customer_type"] not in CUSTOMER_TYPES:
        raise ValidationError(f"customer_type must be one of: {', '.join(CUSTOMER_TYPES)}")
    return cleaned


def create_customer(db: Session, fields: Dict[str, Any]) -> Customer:
    cleaned = _clean_fields(fields)
    if not cleaned.get("email"):
        raise ValidationError("Customer email is required")
    if find_by_email(db, cleaned["email"]):
        raise ValidationError("A customer with this email already exists")

    first_name = (cleaned.pop("first_name", None) or "").strip() or "Guest"
    last_name = (cleaned.pop("last_name", None) or "").strip()
    cleaned.setdefault("source", "manual")
    cleaned.setdefault("customer_type", "individual")
    cleaned.setdefault("status", CustomerStatus.active)
    customer = Customer(
        name=f"{first_name} {last_name}".strip(),
        first_name=first_name,
        last_name=last_name,
        **cleaned,
    )
    db.add(customer)
    commit_or_raise(db, "create customer")
    db.refresh(customer)
    logger.info("Customer %s created manually", customer.email)
    return customer


def get_customer(db: Session, customer_id: str) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFound(f"Customer {customer_id} not found")
    return customer


def update_customer(db: Session, customer_id: str, fields: Dict[str, Any]) -> Customer:
    customer = get_customer(db, customer_id)
    cleaned = _clean_fields(fields)
    new_email = cleaned.get("email")
    if new_email and new_email != customer.email:
        other = find_by_email(db, new_email)
        if other and other.id != customer.id:
            raise ValidationError("A customer with this email already exists")
    for key, value in cleaned.items():
        setattr(customer, key, value)
    if "first_name" in cleaned or "last_name" in cleaned:
        customer.name = f"{customer.first_name or ''} {customer.last_name or ''}".strip()
    commit_or_raise(db, "update customer")
    db.refresh(customer)
    return customer


def list_customers(db: Session, search: Optional[str] = None, status: Optional[str] = None) -> List[Customer]:
    q = db.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Customer.first_name.ilike(pattern),
            Customer.last_name.ilike(pattern),
            Customer.email.ilike(pattern),
        ))
    if status:
        q = q.filter(Customer.status == parse_status(status, CustomerStatus))
    return q.order_by(Customer.created_at.desc()).all()


def customer_stats_from_bookings(db: Session) -> Dict[str, Dict[str, float]]:
    """Live booking count and completed spend per customer email."""
    stats: Dict[str, Dict[str, float]] = {}
    for email, amount, status in db.query(Booking.customer_email, Booking.total_amount, Booking.status).all():
        entry = stats.setdefault(normalize_email(email), {"total_bookings": 0, "total_spent": 0.0})
        entry["total_bookings"] += 1
        if status == BookingStatus.completed:
            entry["total_spent"] += amount or 0.0
    return stats
