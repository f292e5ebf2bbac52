from datetime import date, datetime
from unittest.mock import patch

import pytest

from oludeniz_tours.booking_app import invoicing, payment
from oludeniz_tours.booking_app.errors import NotFound, PersistenceError, ValidationError
from oludeniz_tours.booking_app.models import Booking, BookingStatus, Invoice, InvoiceSequence, InvoiceStatus
from oludeniz_tours.booking_app.status_policy import STRICT_INVOICE

JUNE = datetime(2025, 6, 15, 10, 0)


def _booking(db, tour_name="Tandem Flight", amount=None):
    b = Booking(
        user_id="user-1",
        customer_name="Ayla Demir",
        customer_email="a@x.com",
        tour_name=tour_name,
        booking_date=date(2025, 6, 20),
        tour_start_time="10:30",
        total_amount=amount,
        hotel_name="Sea Breeze",
        status=BookingStatus.confirmed,
    )
    db.add(b)
    db.commit()
    return b


@pytest.mark.parametrize("name,expected", [
    ("Solo Flight", "Solo"),
    ("VIP Tandem Experience", "VIP"),
    ("vip SOLO combo", "Solo"),
    ("Sunset Tandem", "Tandem"),
    (None, "Tandem"),
])
def test_infer_tour_type(name, expected):
    assert invoicing.infer_tour_type(name) == expected


def test_compute_totals():
    assert invoicing.compute_totals(100, 20) == (20.0, 120.0)
    assert invoicing.compute_totals(33.33, 20) == (6.67, 40.0)


def test_format_helpers():
    assert invoicing.format_invoice_number(2025, 6, 7) == "INV-202506-0007"
    assert invoicing.format_currency(1234.5, "EUR") == "€1,234.50"
    assert invoicing.format_currency(10, "CHF") == "10.00 CHF"
    assert invoicing.format_duration(150) == "2h 30m"
    assert invoicing.format_duration(45) == "45m"
    assert invoicing.format_duration(None) == ""


def test_month_bounds_rolls_over_december():
    assert invoicing.month_bounds(datetime(2025, 12, 31)) == (datetime(2025, 12, 1), datetime(2026, 1, 1))


def test_generate_from_booking_fields(db):
    booking = _booking(db, amount=150.0)
    invoice = invoicing.generate_from_booking(db, booking, now=JUNE)

    assert invoice.invoice_number == "INV-202506-0001"
    assert invoice.subtotal == 150.0
    assert invoice.tax_rate == 20.0
    assert invoice.tax_amount == 30.0
    assert invoice.total_amount == 180.0
    assert invoice.status == InvoiceStatus.sent
    assert invoice.issue_date == date(2025, 6, 15)
    assert invoice.due_date == date(2025, 7, 15)
    assert invoice.flight_date == date(2025, 6, 20)
    assert invoice.flight_time == "10:30"
    assert invoice.flight_duration_minutes == 30
    assert invoice.tour_type == "Tandem"
    assert invoice.customer_address == "Sea Breeze"
    assert invoice.notes == "Auto-generated invoice for Tandem Flight booking"
    assert invoice.payment_terms == "Payment due within 30 days"
    assert invoice.qr_code_data.startswith("data:image/png;base64,")


def test_generate_without_amount_uses_fallback(db):
    invoice = invoicing.generate_from_booking(db, _booking(db), now=JUNE)
    assert invoice.subtotal == 100.0
    assert invoice.total_amount == 120.0


def test_generate_links_known_customer(db):
    from oludeniz_tours.booking_app.customer_ledger import upsert_from_booking

    customer = upsert_from_booking(db, "a@x.com", "Ayla Demir", "", None)
    invoice = invoicing.generate_from_booking(db, _booking(db), now=JUNE)
    assert invoice.customer_id == customer.id


def test_numbers_are_sequential_within_month(db):
    numbers = [
        invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE).invoice_number
        for _ in range(4)
    ]
    assert numbers == ["INV-202506-0001", "INV-202506-0002", "INV-202506-0003", "INV-202506-0004"]


def test_numbering_restarts_each_month(db):
    invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)
    july = invoicing.create_invoice(db, {"subtotal": 10}, now=datetime(2025, 7, 1, 9, 0))
    assert july.invoice_number == "INV-202507-0001"


def test_counter_is_seeded_from_existing_invoices(db):
    for n in (1, 2):
        db.add(Invoice(invoice_number=f"INV-202506-000{n}", issue_date=date(2025, 6, 1), created_at=JUNE))
    db.commit()

    invoice = invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)
    assert invoice.invoice_number == "INV-202506-0003"


def test_counter_skips_numbers_already_taken(db):
    invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)
    # a row written outside the counter
    db.add(Invoice(invoice_number="INV-202506-0002", issue_date=date(2025, 6, 1), created_at=JUNE))
    db.commit()

    invoice = invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)
    assert invoice.invoice_number == "INV-202506-0003"
    assert db.query(InvoiceSequence).filter(InvoiceSequence.period == "202506").one().last_value == 3


def test_number_conflict_retries_with_next_number(db):
    db.add(Invoice(invoice_number="INV-202506-0001", issue_date=date(2025, 6, 1), created_at=JUNE))
    db.commit()

    with patch.object(invoicing, "next_invoice_number", side_effect=["INV-202506-0001", "INV-202506-0002"]) as nxt:
        invoice = invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)

    assert invoice.invoice_number == "INV-202506-0002"
    assert nxt.call_count == 2
    assert db.query(Invoice).count() == 2


def test_number_conflicts_exhaust_attempts(db, monkeypatch):
    db.add(Invoice(invoice_number="INV-202506-0001", issue_date=date(2025, 6, 1), created_at=JUNE))
    db.commit()
    monkeypatch.setattr(invoicing.Config, "INVOICE_NUMBER_ATTEMPTS", 3)

    with patch.object(invoicing, "next_invoice_number", return_value="INV-202506-0001") as nxt:
        with pytest.raises(PersistenceError, match="unique invoice number"):
            invoicing.create_invoice(db, {"subtotal": 10}, now=JUNE)

    assert nxt.call_count == 3
    assert db.query(Invoice).count() == 1


def test_manual_invoice_defaults(db):
    invoice = invoicing.create_invoice(db, {"customer_name": "Walk-in"}, now=JUNE)
    assert invoice.status == InvoiceStatus.draft
    assert invoice.subtotal == 0.0
    assert invoice.tax_rate == 20.0
    assert invoice.total_amount == 0.0
    assert invoice.booking_id is None
    assert invoice.customer_id is None


def test_manual_invoice_keeps_supplied_qr(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 10, "qr_code_data": "data:custom"}, now=JUNE)
    assert invoice.qr_code_data == "data:custom"


def test_manual_invoice_rejects_negative_amounts(db):
    with pytest.raises(ValidationError):
        invoicing.create_invoice(db, {"subtotal": -5}, now=JUNE)


def test_qr_failure_is_not_fatal(db):
    with patch.object(payment.qrcode, "QRCode", side_effect=RuntimeError("no PIL")):
        invoice = invoicing.create_invoice(db, {"subtotal": 50}, now=JUNE)
    assert invoice.qr_code_data == ""
    assert invoice.total_amount == 60.0


def test_update_recomputes_with_stored_tax_rate(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 100, "tax_rate": 20}, now=JUNE)
    assert invoice.total_amount == 120.0

    updated = invoicing.update_invoice(db, invoice.id, {"subtotal": 200})
    assert updated.tax_rate == 20.0
    assert updated.tax_amount == 40.0
    assert updated.total_amount == 240.0


def test_update_tax_rate_only(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 100}, now=JUNE)
    updated = invoicing.update_invoice(db, invoice.id, {"tax_rate": 10})
    assert updated.total_amount == 110.0


def test_total_change_refreshes_payment_qr(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 100, "tax_rate": 20}, now=JUNE)

    with patch.object(invoicing, "generate_qr_data_url", return_value="data:new") as qr:
        updated = invoicing.update_invoice(db, invoice.id, {"subtotal": 200})
    assert updated.qr_code_data == "data:new"
    link = qr.call_args[0][0]
    assert "invoice=INV-202506-0001" in link
    assert "amount=240.00" in link

    with patch.object(invoicing, "generate_qr_data_url") as qr:
        kept = invoicing.update_invoice(db, invoice.id, {"subtotal": 300, "qr_code_data": "data:custom"})
        invoicing.update_invoice(db, invoice.id, {"notes": "no amount change"})
    qr.assert_not_called()
    assert kept.qr_code_data == "data:custom"


def test_update_ignores_derived_fields(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 100}, now=JUNE)
    updated = invoicing.update_invoice(db, invoice.id, {"total_amount": 1, "invoice_number": "X", "notes": "hi"})
    assert updated.total_amount == 120.0
    assert updated.invoice_number == "INV-202506-0001"
    assert updated.notes == "hi"


def test_update_status_policies(db):
    invoice = invoicing.create_invoice(db, {"subtotal": 100, "status": "paid"}, now=JUNE)
    reopened = invoicing.update_invoice(db, invoice.id, {"status": "draft"})
    assert reopened.status == InvoiceStatus.draft

    invoicing.update_invoice(db, invoice.id, {"status": "sent"}, policy=STRICT_INVOICE)
    invoicing.update_invoice(db, invoice.id, {"status": "paid"}, policy=STRICT_INVOICE)
    with pytest.raises(ValidationError):
        invoicing.update_invoice(db, invoice.id, {"status": "draft"}, policy=STRICT_INVOICE)


def test_update_missing_invoice(db):
    with pytest.raises(NotFound):
        invoicing.update_invoice(db, "missing", {"subtotal": 1})


def test_delete_and_list(db):
    first = invoicing.create_invoice(db, {"subtotal": 10, "customer_id": "c-1"}, now=JUNE)
    second = invoicing.create_invoice(db, {"subtotal": 10, "status": "sent"}, now=datetime(2025, 6, 16))

    assert [i.id for i in invoicing.list_invoices(db)] == [second.id, first.id]
    assert [i.id for i in invoicing.list_invoices(db, status="sent")] == [second.id]
    assert [i.id for i in invoicing.list_invoices(db, customer_id="c-1")] == [first.id]

    invoicing.delete_invoice(db, first.id)
    assert [i.id for i in invoicing.list_invoices(db)] == [second.id]
    with pytest.raises(NotFound):
        invoicing.get_invoice(db, first.id)


def test_payment_link():
    link = payment.build_payment_link("INV-202506-0001", 120, "USD", base_url="https://tours.example/")
    assert link == "https://tours.example/payment?invoice=INV-202506-0001&amount=120.00&currency=USD"
