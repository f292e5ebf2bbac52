# booking_app/schemas.py
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import BookingStatus, CustomerStatus, InvoiceStatus


# ------------------------- Bookings -------------------------
class CreateBookingRequest(BaseModel):
    # required fields are checked by the booking register so the error shape stays uniform
    tour_name: Optional[str] = None
    booking_date: Optional[date] = None
    tour_start_time: Optional[str] = None
    adults: Optional[int] = Field(None, ge=0)
    children: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    total_amount: Optional[float] = Field(None, ge=0)
    hotel_name: Optional[str] = None
    notes: Optional[str] = None


class UpdateBookingStatusRequest(BaseModel):
    status: str


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    tour_name: str
    booking_date: date
    tour_start_time: str
    adults: int
    children: int
    duration: int
    total_amount: Optional[float] = None
    hotel_name: Optional[str] = None
    notes: Optional[str] = None
    channel: str
    status: BookingStatus
    google_calendar_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ------------------------- Customers -------------------------
class CustomerFields(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    customer_type: Optional[str] = None
    vip_status: Optional[bool] = None
    preferred_language: Optional[str] = None
    marketing_consent: Optional[bool] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None


class CustomerCreate(CustomerFields):
    email: str


class CustomerUpdate(CustomerFields):
    id: Optional[str] = None


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    customer_type: Optional[str] = None
    vip_status: bool = False
    preferred_language: Optional[str] = None
    marketing_consent: bool = False
    total_spent: float = 0.0
    lifetime_value: float = 0.0
    average_booking_value: float = 0.0
    total_bookings: int = 0
    last_booking_date: Optional[datetime] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    status: CustomerStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ------------------------- Invoices -------------------------
class InvoiceFields(BaseModel):
    booking_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    subtotal: Optional[float] = None
    tax_rate: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    pilot_id: Optional[str] = None
    pilot_name: Optional[str] = None
    flight_date: Optional[date] = None
    flight_time: Optional[str] = None
    flight_duration_minutes: Optional[int] = None
    tour_type: Optional[str] = None
    payment_method_detail: Optional[str] = None
    qr_code_data: Optional[str] = None
    customer_signature: Optional[str] = None
    invoice_language: Optional[str] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None


class InvoiceCreate(InvoiceFields):
    pass


class InvoiceUpdate(InvoiceFields):
    id: Optional[str] = None


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    booking_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    issue_date: date
    due_date: Optional[date] = None
    subtotal: float
    tax_rate: float
    tax_amount: float
    total_amount: float
    currency: str
    status: InvoiceStatus
    pilot_id: Optional[str] = None
    pilot_name: Optional[str] = None
    flight_date: Optional[date] = None
    flight_time: Optional[str] = None
    flight_duration_minutes: Optional[int] = None
    tour_type: Optional[str] = None
    payment_method_detail: Optional[str] = None
    qr_code_data: str = ""
    customer_signature: Optional[str] = None
    invoice_language: Optional[str] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ------------------------- Chat -------------------------
class ChatReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    session_id: Optional[str] = Field(None, alias="sessionId")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_name: Optional[str] = Field(None, alias="customerName")
    visitor_info: Optional[Dict[str, Any]] = Field(None, alias="visitorInfo")


class ChatResp(BaseModel):
    response: str
    success: bool = True
    sessionId: str


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: str
    channel: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    sender: str
    message: str
    visitor_info: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ChatSessionOut(BaseModel):
    sessionId: str
    messages: List[ChatMessageOut]
    lastMessage: ChatMessageOut
    messageCount: int
    visitorInfo: Optional[Dict[str, Any]] = None


# ------------------------- Outbound messaging -------------------------
class WhatsAppSendReq(BaseModel):
    to: str
    message: str = Field(..., min_length=1)
    media_url: Optional[str] = None


class EmailNotificationReq(BaseModel):
    to: str
    subject: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    test: bool = False
