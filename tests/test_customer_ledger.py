from datetime import date

import pytest

from oludeniz_tours.booking_app import customer_ledger
from oludeniz_tours.booking_app.errors import NotFound, ValidationError
from oludeniz_tours.booking_app.models import Booking, BookingStatus, Customer, CustomerStatus


def _booking(db, user_id="user-1", email="a@x.com", amount=None, status=BookingStatus.pending):
    b = Booking(
        user_id=user_id,
        customer_name="Ayla Demir",
        customer_email=email,
        tour_name="Tandem Flight",
        booking_date=date(2025, 6, 1),
        tour_start_time="09:00",
        total_amount=amount,
        status=status,
    )
    db.add(b)
    db.commit()
    return b


def test_split_name():
    assert customer_ledger.split_name("Ayla Nur Demir") == ("Ayla", "Nur Demir")
    assert customer_ledger.split_name("Ayla") == ("Ayla", "")
    assert customer_ledger.split_name("   ") == ("Guest", "")
    assert customer_ledger.split_name(None) == ("Guest", "")


def test_upsert_creates_customer_on_first_booking(db):
    customer = customer_ledger.upsert_from_booking(db, " A@X.com ", "Ayla Demir", "+905551112233", 150.0,
                                                   user_id="user-1")

    assert customer.email == "a@x.com"
    assert customer.first_name == "Ayla"
    assert customer.last_name == "Demir"
    assert customer.total_bookings == 1
    assert customer.total_spent == 150.0
    assert customer.average_booking_value == 150.0
    assert customer.lifetime_value == 150.0
    assert customer.source == "online_booking"
    assert customer.customer_type == "individual"
    assert customer.status == CustomerStatus.active
    assert customer.vip_status is False
    assert customer.notes.startswith("Auto-created from booking on ")


def test_upsert_without_amount_zeroes_money_fields(db):
    customer = customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", None)
    assert customer.total_spent == 0.0
    assert customer.average_booking_value == 0.0


def test_upsert_never_blanks_known_phone(db):
    customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", None)
    customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "+905551112233", None)
    again = customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", None)

    assert again.phone == "+905551112233"
    assert db.query(Customer).count() == 1


def test_upsert_matches_email_case_insensitively(db):
    first = customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", None)
    second = customer_ledger.upsert_from_booking(db, "A@X.COM", "Ayla", "", None)
    assert first.id == second.id


def test_upsert_requires_email(db):
    with pytest.raises(ValidationError):
        customer_ledger.upsert_from_booking(db, "", "Ayla", "", None)


def test_recompute_counts_all_but_sums_completed_only(db):
    customer = customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", 999.0, user_id="user-1")
    _booking(db, amount=100.0, status=BookingStatus.completed)
    _booking(db, amount=50.0, status=BookingStatus.completed)
    _booking(db, amount=500.0, status=BookingStatus.pending)
    _booking(db, user_id="someone-else", amount=1000.0, status=BookingStatus.completed)

    customer = customer_ledger.recompute_aggregates(db, customer, "user-1")

    assert customer.total_bookings == 3
    assert customer.total_spent == 150.0
    assert customer.lifetime_value == 150.0
    assert customer.average_booking_value == 50.0


def test_recompute_with_no_bookings(db):
    customer = customer_ledger.upsert_from_booking(db, "a@x.com", "Ayla", "", 80.0, user_id="user-1")
    customer = customer_ledger.recompute_aggregates(db, customer, "user-1")
    assert customer.total_bookings == 0
    assert customer.average_booking_value == 0.0


def test_create_customer_manual_and_duplicate(db):
    customer = customer_ledger.create_customer(db, {"email": "New@X.com", "first_name": "Deniz", "country": "TR"})
    assert customer.email == "new@x.com"
    assert customer.source == "manual"
    assert customer.name == "Deniz"

    with pytest.raises(ValidationError):
        customer_ledger.create_customer(db, {"email": "new@x.com"})


def test_create_customer_rejects_unknown_type(db):
    with pytest.raises(ValidationError):
        customer_ledger.create_customer(db, {"email": "c@x.com", "customer_type": "alien"})


def test_update_customer(db):
    customer = customer_ledger.create_customer(db, {"email": "c@x.com", "first_name": "Can"})
    updated = customer_ledger.update_customer(db, customer.id, {"last_name": "Yilmaz", "status": "inactive",
                                                                "vip_status": True})
    assert updated.name == "Can Yilmaz"
    assert updated.status == CustomerStatus.inactive
    assert updated.vip_status is True


def test_update_customer_keeps_email_unique(db):
    customer_ledger.create_customer(db, {"email": "c@x.com"})
    other = customer_ledger.create_customer(db, {"email": "d@x.com"})
    with pytest.raises(ValidationError):
        customer_ledger.update_customer(db, other.id, {"email": "C@x.com"})


def test_get_missing_customer(db):
    with pytest.raises(NotFound):
        customer_ledger.get_customer(db, "nope")


def test_list_customers_search_and_status(db):
    customer_ledger.create_customer(db, {"email": "ayla@x.com", "first_name": "Ayla"})
    customer_ledger.create_customer(db, {"email": "can@x.com", "first_name": "Can", "status": "inactive"})

    assert [c.email for c in customer_ledger.list_customers(db, search="AYL")] == ["ayla@x.com"]
    assert [c.email for c in customer_ledger.list_customers(db, status="inactive")] == ["can@x.com"]
    assert len(customer_ledger.list_customers(db)) == 2


def test_customer_stats_from_bookings(db):
    _booking(db, email="A@x.com", amount=100.0, status=BookingStatus.completed)
    _booking(db, email="a@x.com", amount=70.0, status=BookingStatus.cancelled)

    stats = customer_ledger.customer_stats_from_bookings(db)
    assert stats["a@x.com"] == {"total_bookings": 2, "total_spent": 100.0}
