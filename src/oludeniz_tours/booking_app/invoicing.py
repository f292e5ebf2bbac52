# booking_app/invoicing.py
"""
Invoice generation, numbering and updates.

Numbers look like ``INV-YYYYMM-NNNN``. Each year-month has a counter row in
``invoice_sequences``; ``invoice_number`` is unique, and a conflicting insert
is retried with the next number.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from oludeniz_tours.config import Config
from .customer_ledger import find_by_email
from .database import commit_or_raise, utcnow
from .errors import NotFound, PersistenceError, ValidationError
from .models import Booking, Invoice, InvoiceSequence, InvoiceStatus
from .payment import build_payment_link, generate_qr_data_url
from .status_policy import parse_status, policy_for

logger = logging.getLogger(__name__)

MANUAL_FIELDS = (
    "booking_id", "customer_id", "customer_name", "customer_email", "customer_address",
    "issue_date", "due_date", "subtotal", "tax_rate", "currency", "status",
    "pilot_id", "pilot_name", "flight_date", "flight_time", "flight_duration_minutes",
    "tour_type", "payment_method_detail", "qr_code_data", "customer_signature",
    "invoice_language", "notes", "payment_terms",
)
# invoice_number, tax_amount and total_amount are never written directly
UPDATABLE_FIELDS = MANUAL_FIELDS

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "TRY": "₺"}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def format_invoice_number(year: int, month: int, sequence: int) -> str:
    return f"INV-{year}{month:02d}-{sequence:04d}"


def compute_totals(subtotal: float, tax_rate: float) -> Tuple[float, float]:
    subtotal = float(subtotal or 0.0)
    tax_amount = round(subtotal * float(tax_rate or 0.0) / 100, 2)
    return tax_amount, round(subtotal + tax_amount, 2)


def infer_tour_type(tour_name: Optional[str]) -> str:
    name = (tour_name or "").lower()
    if "solo" in name:
        return "Solo"
    if "vip" in name:
        return "VIP"
    return "Tandem"


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "").upper())
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def format_duration(minutes: Optional[int]) -> str:
    if not minutes:
        return ""
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

def next_invoice_number(db: Session, now: Optional[datetime] = None) -> str:
    """Reserve the next number for ``now``'s month. Caller commits."""
    now = now or utcnow()
    period = f"{now.year}{now.month:02d}"
    highest = db.query(func.max(Invoice.invoice_number)).filter(
        Invoice.invoice_number.like(f"INV-{period}-%")
    ).scalar()
    taken = int(highest.rsplit("-", 1)[1]) if highest else 0

    seq = db.query(InvoiceSequence).filter(InvoiceSequence.period == period).with_for_update().first()
    if seq is None:
        # first use of this month: continue after invoices that predate the counter
        start, end = month_bounds(now)
        existing = db.query(func.count(Invoice.id)).filter(
            Invoice.created_at >= start, Invoice.created_at < end
        ).scalar() or 0
        seq = InvoiceSequence(period=period, last_value=max(existing, taken))
        db.add(seq)
    elif seq.last_value < taken:
        seq.last_value = taken
    seq.last_value += 1
    db.flush()
    return format_invoice_number(now.year, now.month, seq.last_value)


def _persist_with_number(db: Session, fields: Dict[str, Any], now: datetime) -> Invoice:
    attempts = max(1, Config.INVOICE_NUMBER_ATTEMPTS)
    supplied_qr = fields.get("qr_code_data")
    for attempt in range(1, attempts + 1):
        try:
            number = next_invoice_number(db, now)
        except IntegrityError:
            db.rollback()
            logger.warning("invoice counter conflict (attempt %s/%s)", attempt, attempts)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to allocate invoice number: {e}") from e

        if supplied_qr:
            qr_data = supplied_qr
        else:
            link = build_payment_link(number, fields["total_amount"], fields.get("currency") or Config.INVOICE_CURRENCY)
            qr_data = generate_qr_data_url(link)

        invoice = Invoice(**{**fields, "invoice_number": number, "qr_code_data": qr_data, "created_at": now})
        db.add(invoice)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("invoice number %s already taken (attempt %s/%s)", number, attempt, attempts)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to create invoice: {e}") from e
        db.refresh(invoice)
        logger.info("Invoice created: %s", invoice.invoice_number)
        return invoice
    raise PersistenceError("Could not allocate a unique invoice number")


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate_from_booking(db: Session, booking: Booking, now: Optional[datetime] = None,
                          allow_duplicate: bool = False) -> Invoice:
    now = now or utcnow()
    if not allow_duplicate:
        existing = db.query(Invoice).filter(
            Invoice.booking_id == booking.id,
            Invoice.status != InvoiceStatus.cancelled,
        ).first()
        if existing:
            raise ValidationError(f"Booking already invoiced as {existing.invoice_number}")

    subtotal = float(booking.total_amount or Config.INVOICE_FALLBACK_SUBTOTAL)
    tax_rate = Config.INVOICE_TAX_RATE
    tax_amount, total_amount = compute_totals(subtotal, tax_rate)
    issue_date = now.date()
    customer = find_by_email(db, booking.customer_email)

    fields = {
        "booking_id": booking.id,
        "customer_id": customer.id if customer else None,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_address": booking.hotel_name or "",
        "issue_date": issue_date,
        "due_date": issue_date + timedelta(days=Config.INVOICE_DUE_DAYS),
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "total_amount": total_amount,
        "currency": Config.INVOICE_CURRENCY,
        "status": InvoiceStatus.sent,
        "flight_date": booking.booking_date,
        "flight_time": booking.tour_start_time,
        "flight_duration_minutes": 30,
        "tour_type": infer_tour_type(booking.tour_name),
        "payment_method_detail": "Cash",
        "invoice_language": "en",
        "notes": f"Auto-generated invoice for {booking.tour_name} booking",
        "payment_terms": f"Payment due within {Config.INVOICE_DUE_DAYS} days",
    }
    return _persist_with_number(db, fields, now)


def create_invoice(db: Session, data: Dict[str, Any], now: Optional[datetime] = None) -> Invoice:
    """Manually entered invoice; may reference neither booking nor customer."""
    now = now or utcnow()
    fields = {k: v for k, v in data.items() if k in MANUAL_FIELDS and v is not None}

    subtotal = float(fields.get("subtotal", 0.0))
    tax_rate = float(fields.get("tax_rate", Config.INVOICE_TAX_RATE))
    if subtotal < 0 or tax_rate < 0:
        raise ValidationError("subtotal and tax_rate must not be negative")
    tax_amount, total_amount = compute_totals(subtotal, tax_rate)

    fields.update({
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "total_amount": total_amount,
        "currency": fields.get("currency") or Config.INVOICE_CURRENCY,
        "status": parse_status(fields.get("status", InvoiceStatus.draft), InvoiceStatus),
        "issue_date": fields.get("issue_date") or now.date(),
        "invoice_language": fields.get("invoice_language") or "en",
    })
    return _persist_with_number(db, fields, now)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def get_invoice(db: Session, invoice_id: str) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
    if not invoice:
        raise NotFound(f"Invoice {invoice_id} not found")
    return invoice


def update_invoice(db: Session, invoice_id: str, data: Dict[str, Any], policy=None) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}

    if "status" in fields:
        new_status = parse_status(fields["status"], InvoiceStatus)
        (policy or policy_for("invoice")).check(invoice.status, new_status)
        fields["status"] = new_status

    if "subtotal" in fields or "tax_rate" in fields:
        # merge with the stored row so a one-sided update keeps the other value
        subtotal = fields.get("subtotal")
        tax_rate = fields.get("tax_rate")
        subtotal = float(invoice.subtotal if subtotal is None else subtotal)
        tax_rate = float(invoice.tax_rate if tax_rate is None else tax_rate)
        if subtotal < 0 or tax_rate < 0:
            raise ValidationError("subtotal and tax_rate must not be negative")
        fields["subtotal"] = subtotal
        fields["tax_rate"] = tax_rate
        fields["tax_amount"], fields["total_amount"] = compute_totals(subtotal, tax_rate)

    currency = fields.get("currency") or invoice.currency or Config.INVOICE_CURRENCY
    amount_changed = "total_amount" in fields and fields["total_amount"] != invoice.total_amount
    if not fields.get("qr_code_data") and (amount_changed or currency != invoice.currency):
        # the QR encodes the payment link, which carries the total
        total = fields.get("total_amount", invoice.total_amount)
        fields["qr_code_data"] = generate_qr_data_url(build_payment_link(invoice.invoice_number, total, currency))

    for key, value in fields.items():
        setattr(invoice, key, value)
    commit_or_raise(db, "update invoice")
    db.refresh(invoice)
    return invoice


def delete_invoice(db: Session, invoice_id: str) -> None:
    invoice = get_invoice(db, invoice_id)
    db.delete(invoice)
    commit_or_raise(db, "delete invoice")
    logger.info("Invoice %s deleted", invoice.invoice_number)


def list_invoices(db: Session, status: Optional[str] = None, customer_id: Optional[str] = None) -> List[Invoice]:
    q = db.query(Invoice)
    if status:
        q = q.filter(Invoice.status == parse_status(status, InvoiceStatus))
    if customer_id:
        q = q.filter(Invoice.customer_id == customer_id)
    return q.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc()).all()
