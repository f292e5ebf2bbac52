# main.py
## HTTP surface of the tour booking service

import logging
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Body, Depends, FastAPI, Header, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from oludeniz_tours.config import Config
from oludeniz_tours.auth_helper import Identity, is_admin, require_admin, resolve_identity
from oludeniz_tours.logger import log_chat
from oludeniz_tours.booking_app import booking_flow, conversations, customer_ledger, invoicing
from oludeniz_tours.booking_app.database import get_db, init_db
from oludeniz_tours.booking_app.errors import TourServiceError, UpstreamServiceError, ValidationError
from oludeniz_tours.booking_app.notifications import BookingNotifier
from oludeniz_tours.booking_app.pipeline import run_step
from oludeniz_tours.booking_app.schemas import (
    BookingOut,
    ChatMessageOut,
    ChatReq,
    ChatResp,
    ChatSessionOut,
    CreateBookingRequest,
    CustomerCreate,
    CustomerOut,
    CustomerUpdate,
    EmailNotificationReq,
    InvoiceCreate,
    InvoiceOut,
    InvoiceUpdate,
    UpdateBookingStatusRequest,
    WhatsAppSendReq,
)
from oludeniz_tours.services.auth_service import AuthServiceClient
from oludeniz_tours.services.chat_gateway import ask_chatbot
from oludeniz_tours.services.email_sender import send_email, send_test_email, smtp_configured
from oludeniz_tours.services.google_calendar import GoogleCalendarBridge
from oludeniz_tours.services.whatsapp_sender import send_whatsapp_message

# ------------------------- Logging setup -------------------------
logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# ------------------------- FastAPI app -------------------------
app = FastAPI(title="Oludeniz Tours API", version="1.0.0", lifespan=lifespan)

# ------------------------- CORS -------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------- Error mapping -------------------------
@app.exception_handler(TourServiceError)
async def tour_service_error_handler(request, exc: TourServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(parts) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


# ------------------------- Dependencies -------------------------
def get_auth_client() -> AuthServiceClient:
    return AuthServiceClient()


def get_current_identity(authorization: Optional[str] = Header(None),
                         client: AuthServiceClient = Depends(get_auth_client)) -> Identity:
    return resolve_identity(authorization, client)


def get_admin_identity(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)) -> Identity:
    return require_admin(identity, db)


def get_calendar_bridge() -> Optional[GoogleCalendarBridge]:
    bridge = GoogleCalendarBridge()
    return bridge if bridge.configured else None


def get_notifier() -> BookingNotifier:
    return BookingNotifier()


###########################################################################
# ------------------------- Bookings -------------------------
@app.post("/bookings", response_model=BookingOut, response_model_exclude_none=True, tags=["bookings"])
def create_booking(req: CreateBookingRequest = Body(...),
                   identity: Identity = Depends(get_current_identity),
                   db: Session = Depends(get_db),
                   calendar: Optional[GoogleCalendarBridge] = Depends(get_calendar_bridge),
                   notifier: BookingNotifier = Depends(get_notifier)):
    booking, _ = booking_flow.process_new_booking(
        db, identity, req.model_dump(), calendar=calendar, notifier=notifier
    )
    return booking


@app.get("/bookings", response_model=List[BookingOut], tags=["bookings"])
def list_my_bookings(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return booking_flow.list_bookings(db, user_id=identity.id)


@app.patch("/bookings/{booking_id}", response_model=BookingOut, tags=["bookings"])
def update_booking_status(booking_id: str,
                          req: UpdateBookingStatusRequest = Body(...),
                          identity: Identity = Depends(get_current_identity),
                          db: Session = Depends(get_db),
                          calendar: Optional[GoogleCalendarBridge] = Depends(get_calendar_bridge),
                          notifier: BookingNotifier = Depends(get_notifier)):
    booking, _ = booking_flow.update_booking_status(
        db, booking_id, req.status,
        identity=identity, admin=is_admin(identity, db),
        calendar=calendar, notifier=notifier,
    )
    return booking


@app.post("/bookings/{booking_id}/invoice", response_model=InvoiceOut, status_code=201, tags=["invoices"])
def invoice_booking(booking_id: str, admin: Identity = Depends(get_admin_identity), db: Session = Depends(get_db)):
    return booking_flow.invoice_booking(db, booking_id)


@app.get("/calendar/bookings", response_model=List[BookingOut], tags=["bookings"])
def calendar_bookings(admin: Identity = Depends(get_admin_identity), db: Session = Depends(get_db)):
    return booking_flow.list_all_bookings(db)


# ------------------------- Customers -------------------------
@app.get("/customers", response_model=List[CustomerOut], tags=["customers"])
def list_customers(search: Optional[str] = Query(None), status: Optional[str] = Query(None),
                   admin: Identity = Depends(get_admin_identity), db: Session = Depends(get_db)):
    stats = customer_ledger.customer_stats_from_bookings(db)
    out = []
    for customer in customer_ledger.list_customers(db, search=search, status=status):
        item = CustomerOut.model_validate(customer)
        live = stats.get(customer.email)
        if live:
            count = int(live["total_bookings"])
            spent = round(live["total_spent"], 2)
            item = item.model_copy(update={
                "total_bookings": count,
                "total_spent": spent,
                "lifetime_value": spent,
                "average_booking_value": round(spent / count, 2) if count else 0.0,
            })
        out.append(item)
    return out


@app.post("/customers", response_model=CustomerOut, status_code=201, tags=["customers"])
def create_customer(req: CustomerCreate = Body(...), admin: Identity = Depends(get_admin_identity),
                    db: Session = Depends(get_db)):
    return customer_ledger.create_customer(db, req.model_dump(exclude_none=True))


@app.put("/customers", response_model=CustomerOut, tags=["customers"])
def update_customer(req: CustomerUpdate = Body(...), admin: Identity = Depends(get_admin_identity),
                    db: Session = Depends(get_db)):
    if not req.id:
        raise ValidationError("Customer ID is required")
    fields = req.model_dump(exclude_none=True, exclude={"id"})
    return customer_ledger.update_customer(db, req.id, fields)


# ------------------------- Invoices -------------------------
@app.get("/invoices", response_model=List[InvoiceOut], tags=["invoices"])
def list_invoices(status: Optional[str] = Query(None), customer_id: Optional[str] = Query(None),
                  admin: Identity = Depends(get_admin_identity), db: Session = Depends(get_db)):
    return invoicing.list_invoices(db, status=status, customer_id=customer_id)


@app.post("/invoices", response_model=InvoiceOut, status_code=201, tags=["invoices"])
def create_invoice(req: InvoiceCreate = Body(...), admin: Identity = Depends(get_admin_identity),
                   db: Session = Depends(get_db)):
    return invoicing.create_invoice(db, req.model_dump(exclude_none=True))


@app.put("/invoices", response_model=InvoiceOut, tags=["invoices"])
def update_invoice(req: InvoiceUpdate = Body(...), admin: Identity = Depends(get_admin_identity),
                   db: Session = Depends(get_db)):
    if not req.id:
        raise ValidationError("Invoice ID is required")
    fields = req.model_dump(exclude_none=True, exclude={"id"})
    return invoicing.update_invoice(db, req.id, fields)


@app.delete("/invoices", tags=["invoices"])
def delete_invoice(id: Optional[str] = Query(None), admin: Identity = Depends(get_admin_identity),
                   db: Session = Depends(get_db)):
    if not id:
        raise ValidationError("Invoice ID is required")
    invoicing.delete_invoice(db, id)
    return {"success": True}


# ------------------------- Chat -------------------------
@app.post("/chat", response_model=ChatResp, tags=["chat"])
def chat(req: ChatReq = Body(...), db: Session = Depends(get_db)):
    session_id = req.session_id or f"session_{uuid.uuid4().hex[:12]}"
    common = dict(channel="web", customer_email=req.customer_email, customer_name=req.customer_name)

    run_step("save_user_message", conversations.record_message, db, session_id, "user", req.message,
             visitor_info=req.visitor_info, on_error=db.rollback, **common)

    reply = ask_chatbot(req.message, session_id)

    run_step("save_bot_message", conversations.record_message, db, session_id, "bot", reply,
             on_error=db.rollback, **common)
    log_chat("web", session_id, req.message, reply)
    return ChatResp(response=reply, success=True, sessionId=session_id)


@app.get("/chat", tags=["chat"])
def chat_history(sessionId: Optional[str] = Query(None), admin: Identity = Depends(get_admin_identity),
                 db: Session = Depends(get_db)):
    if sessionId:
        messages = conversations.get_session_messages(db, sessionId)
        return {"messages": [ChatMessageOut.model_validate(m) for m in messages]}
    return {"sessions": [ChatSessionOut.model_validate(s, from_attributes=True) for s in conversations.list_sessions(db)]}


# ------------------------- Outbound messaging -------------------------
@app.post("/whatsapp/send", tags=["messaging"])
def whatsapp_send(req: WhatsAppSendReq = Body(...), admin: Identity = Depends(get_admin_identity),
                  db: Session = Depends(get_db)):
    result = send_whatsapp_message(req.to, req.message, media_url=req.media_url)
    if not result.success:
        raise UpstreamServiceError(result.error or "Failed to send WhatsApp message")

    run_step("save_whatsapp_message", conversations.record_message, db, f"whatsapp_{req.to}", "agent",
             req.message, channel="whatsapp", on_error=db.rollback)
    return result.to_dict()


@app.post("/notifications/email", tags=["messaging"])
def email_notification(req: EmailNotificationReq = Body(...), admin: Identity = Depends(get_admin_identity)):
    if not smtp_configured():
        raise UpstreamServiceError("SMTP configuration incomplete")
    if req.test:
        result = send_test_email(req.to)
    else:
        if not req.subject or not req.html:
            raise ValidationError("Missing required fields: to, subject, html")
        result = send_email(req.to, req.subject, req.html, req.text)
    if not result.success:
        raise UpstreamServiceError(result.error or "Failed to send email")
    return {**result.to_dict(), "message": "Email sent successfully"}


# ------------------------- Health -------------------------
@app.get("/health", tags=["system"])
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("oludeniz_tours.main:app", host="0.0.0.0", port=8000, reload=False)
