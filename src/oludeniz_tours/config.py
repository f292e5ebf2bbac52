import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # ------------------------
    # Auth service (bearer token -> user)
    # ------------------------
    AUTH_BASE_URL = os.getenv("AUTH_BASE_URL", "")
    AUTH_API_KEY = os.getenv("AUTH_API_KEY", "")
    AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", "10"))

    # role claim in app_metadata that grants operator access
    ADMIN_ROLE_CLAIM = os.getenv("ADMIN_ROLE_CLAIM", "admin")

    # ------------------------
    # Database
    # ------------------------
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./oludeniz_tours.db")

    # ------------------------
    # Google Calendar
    # ------------------------
    GOOGLE_SERVICE_ACCOUNT_JSON = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")
    GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
    CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "Europe/Istanbul")

    # ------------------------
    # Twilio WhatsApp
    # ------------------------
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM")  # e.g. "whatsapp:+1415..."

    # ------------------------
    # SMTP email
    # ------------------------
    SMTP_HOST = os.getenv("SMTP_HOST", "")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER = os.getenv("SMTP_USER", "")
    SMTP_PASS = os.getenv("SMTP_PASS", "")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")
    FROM_EMAIL = os.getenv("FROM_EMAIL", '"Oludeniz Tours" <noreply@oludeniztours.com>')
    ADMIN_NOTIFICATION_EMAIL = os.getenv("ADMIN_NOTIFICATION_EMAIL", "")

    # ------------------------
    # Chat webhook
    # ------------------------
    CHAT_WEBHOOK_URL = os.getenv("CHAT_WEBHOOK_URL", "")
    CHAT_TIMEOUT_SECONDS = float(os.getenv("CHAT_TIMEOUT_SECONDS", "30"))

    # ------------------------
    # Invoicing
    # ------------------------
    APP_BASE_URL = os.getenv("APP_BASE_URL", "https://oludeniztours.com")
    INVOICE_CURRENCY = os.getenv("INVOICE_CURRENCY", "USD")
    INVOICE_TAX_RATE = float(os.getenv("INVOICE_TAX_RATE", "20.0"))
    INVOICE_FALLBACK_SUBTOTAL = float(os.getenv("INVOICE_FALLBACK_SUBTOTAL", "100"))
    INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", "30"))
    INVOICE_NUMBER_ATTEMPTS = int(os.getenv("INVOICE_NUMBER_ATTEMPTS", "5"))

    # ------------------------
    # Status transitions ("permissive" or "strict")
    # ------------------------
    BOOKING_STATUS_POLICY = os.getenv("BOOKING_STATUS_POLICY", "permissive").lower()

    # ------------------------
    # Web / logging
    # ------------------------
    FRONTEND_ORIGINS = [o.strip() for o in os.getenv("FRONTEND_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
    LOG_FILE = os.getenv("LOG_FILE", "")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
