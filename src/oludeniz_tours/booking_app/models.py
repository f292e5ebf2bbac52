# booking_app/models.py
import enum
import uuid

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, Boolean, Text, JSON

from .database import Base, utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


class BookingStatus(enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class InvoiceStatus(enum.Enum):
    draft = "draft"
    sent = "sent"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"


class CustomerStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    blacklisted = "blacklisted"


class Customer(Base):
    __tablename__ = "customers"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    first_name = Column(String(100), nullable=False, default="Guest")
    last_name = Column(String(100), nullable=False, default="")
    # always stored lowercased; one row per email
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(32), nullable=True)
    country = Column(String(80), nullable=True)
    city = Column(String(80), nullable=True)
    address = Column(String(255), nullable=True)
    customer_type = Column(String(20), default="individual")  # individual / group / corporate
    vip_status = Column(Boolean, default=False)
    preferred_language = Column(String(8), default="en")
    marketing_consent = Column(Boolean, default=False)
    total_spent = Column(Float, default=0.0)
    lifetime_value = Column(Float, default=0.0)
    average_booking_value = Column(Float, default=0.0)
    total_bookings = Column(Integer, default=0)
    last_booking_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    source = Column(String(50), default="manual")
    status = Column(Enum(CustomerStatus), default=CustomerStatus.active)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(String(36), primary_key=True, default=_uuid)
    # owning identity from the auth service; customers are linked by email only
    user_id = Column(String(64), nullable=False, index=True)
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(32), nullable=True)
    tour_name = Column(String(200), nullable=False)
    booking_date = Column(Date, nullable=False, index=True)
    tour_start_time = Column(String(8), nullable=False)   # "HH:MM"
    adults = Column(Integer, default=1)
    children = Column(Integer, default=0)
    duration = Column(Integer, default=120)               # minutes
    total_amount = Column(Float, nullable=True)
    hotel_name = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    channel = Column(String(50), default="website")       # "website", "whatsapp", ...
    status = Column(Enum(BookingStatus), default=BookingStatus.pending)
    google_calendar_event_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(String(36), primary_key=True, default=_uuid)
    invoice_number = Column(String(32), nullable=False, unique=True, index=True)
    booking_id = Column(String(36), nullable=True, index=True)
    customer_id = Column(String(36), nullable=True, index=True)
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_address = Column(String(255), nullable=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax_rate = Column(Float, nullable=False, default=20.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), default="USD")
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.draft)
    # flight details
    pilot_id = Column(String(36), nullable=True)
    pilot_name = Column(String(200), nullable=True)
    flight_date = Column(Date, nullable=True)
    flight_time = Column(String(8), nullable=True)
    flight_duration_minutes = Column(Integer, nullable=True)
    tour_type = Column(String(20), nullable=True)         # Solo / Tandem / VIP
    payment_method_detail = Column(String(50), nullable=True)
    qr_code_data = Column(Text, default="")
    customer_signature = Column(Text, nullable=True)
    invoice_language = Column(String(8), default="en")
    notes = Column(Text, nullable=True)
    payment_terms = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class InvoiceSequence(Base):
    __tablename__ = "invoice_sequences"
    period = Column(String(6), primary_key=True)          # "YYYYMM"
    last_value = Column(Integer, nullable=False, default=0)


class Conversation(Base):
    __tablename__ = "conversations"
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(100), index=True, nullable=False)
    channel = Column(String(20), default="web", index=True)
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(200), nullable=True)
    sender = Column(String(10), nullable=False)           # "user", "bot" or "agent"
    message = Column(Text, nullable=False)
    visitor_info = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class AdminUser(Base):
    __tablename__ = "admin_users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow)
