# booking_app/__init__.py
from .booking_flow import process_new_booking, create_booking, update_booking_status
from .invoicing import generate_from_booking, create_invoice
from .customer_ledger import upsert_from_booking, recompute_aggregates
