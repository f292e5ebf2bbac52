import logging
import smtplib
import uuid
from email.message import EmailMessage
from html import escape
from typing import Optional

from oludeniz_tours.config import Config
from oludeniz_tours.booking_app.invoicing import format_currency, format_duration
from oludeniz_tours.services.send_result import SendResult

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(Config.SMTP_HOST and Config.SMTP_USER and Config.SMTP_PASS)


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> SendResult:
    """Send one email over SMTP. Never raises; failures come back in the result."""
    if not smtp_configured():
        return SendResult(success=False, error="SMTP configuration incomplete")
    if not to:
        return SendResult(success=False, error="Recipient is required")

    msg = EmailMessage()
    msg["From"] = Config.FROM_EMAIL
    msg["To"] = to
    msg["Subject"] = subject
    msg["Message-ID"] = f"<{uuid.uuid4().hex}@oludeniztours>"
    msg.set_content(text or "")
    msg.add_alternative(html, subtype="html")

    try:
        if Config.SMTP_USE_TLS:
            with smtplib.SMTP(Config.SMTP_HOST, Config.SMTP_PORT, timeout=20) as s:
                s.starttls()
                s.login(Config.SMTP_USER, Config.SMTP_PASS)
                s.send_message(msg)
        else:
            with smtplib.SMTP_SSL(Config.SMTP_HOST, Config.SMTP_PORT, timeout=20) as s:
                s.login(Config.SMTP_USER, Config.SMTP_PASS)
                s.send_message(msg)
    except Exception as e:
        logger.error("Email sending to %s failed: %s", to, e)
        return SendResult(success=False, error=str(e))

    logger.info("Email sent to %s: %s", to, subject)
    return SendResult(success=True, message_id=msg["Message-ID"])


def booking_notification_email(booking) -> dict:
    """Subject/html/text for the operator's new-booking alert."""
    amount = format_currency(booking.total_amount, Config.INVOICE_CURRENCY) if booking.total_amount else "n/a"
    rows = [
        ("Customer", booking.customer_name),
        ("Email", booking.customer_email),
        ("Phone", booking.customer_phone or ""),
        ("Tour", booking.tour_name),
        ("Date", booking.booking_date.isoformat()),
        ("Time", booking.tour_start_time),
        ("Duration", format_duration(booking.duration)),
        ("Guests", f"{booking.adults} adults, {booking.children} children"),
        ("Amount", amount),
    ]
    html_rows = "".join(
        f"<tr><td style=\"padding:6px 0;font-weight:bold\">{escape(k)}:</td><td style=\"padding:6px 0\">{escape(str(v))}</td></tr>"
        for k, v in rows if v
    )
    html = (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        "<h1 style=\"color: #2563eb;\">New Booking Alert!</h1>"
        f"<table style=\"width: 100%; border-collapse: collapse;\">{html_rows}</table>"
        f"<p style=\"color:#6b7280\">Booking ID: {escape(booking.id)}</p>"
        "</div>"
    )
    text = "\n".join(f"{k}: {v}" for k, v in rows if v) + f"\nBooking ID: {booking.id}"
    return {
        "subject": f"New Booking: {booking.customer_name} - {booking.tour_name}",
        "html": html,
        "text": text,
    }


def send_test_email(to: str) -> SendResult:
    return send_email(
        to,
        "Email notifications are working",
        "<p>This is a test message from the Oludeniz Tours booking service.</p>",
        "This is a test message from the Oludeniz Tours booking service.",
    )
