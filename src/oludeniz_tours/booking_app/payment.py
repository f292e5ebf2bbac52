# booking_app/payment.py
import base64
import logging
from io import BytesIO
from urllib.parse import urlencode

import qrcode

from oludeniz_tours.config import Config

logger = logging.getLogger(__name__)


def build_payment_link(invoice_number: str, amount: float, currency: str = "USD", base_url: str = None) -> str:
    base = (base_url or Config.APP_BASE_URL or "").rstrip("/")
    query = urlencode({"invoice": invoice_number, "amount": f"{amount:.2f}", "currency": currency})
    return f"{base}/payment?{query}"


def generate_qr_data_url(payload: str) -> str:
    """PNG QR code as a data URL. Returns "" when the image cannot be built."""
    try:
        qr = qrcode.QRCode(box_size=6, border=1)
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return "data:image/png;base64," + base64.b64encode(buf.read()).decode("utf-8")
    except Exception:
        logger.exception("QR code generation failed")
        return ""
