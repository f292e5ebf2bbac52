# booking_app/status_policy.py
"""
Status transition policies for bookings and invoices.

The permissive policy lets any status move to any other (operators use it to
correct mistakes by hand). The strict tables are opt-in through
``Config.BOOKING_STATUS_POLICY = "strict"``.
"""
import enum
from typing import Dict, FrozenSet, Optional, Type

from oludeniz_tours.config import Config
from .errors import ValidationError
from .models import BookingStatus, InvoiceStatus


def parse_status(value, enum_cls: Type[enum.Enum]):
    """Return the enum member for ``value`` or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid status {value!r}. Use one of: {allowed}")


class TransitionPolicy:
    def __init__(self, name: str, table: Optional[Dict[enum.Enum, FrozenSet[enum.Enum]]] = None):
        # table=None means every transition is allowed
        self.name = name
        self.table = table

    def allows(self, current, new) -> bool:
        if current is None or current == new or self.table is None:
            return True
        return new in self.table.get(current, frozenset())

    def check(self, current, new):
        if not self.allows(current, new):
            raise ValidationError(
                f"Status change {current.value} -> {new.value} is not allowed"
            )
        return new

    def __repr__(self):
        return f"TransitionPolicy({self.name!r})"


PERMISSIVE = TransitionPolicy("permissive")

STRICT_BOOKING = TransitionPolicy("strict", {
    BookingStatus.pending: frozenset({BookingStatus.confirmed, BookingStatus.cancelled}),
    BookingStatus.confirmed: frozenset({BookingStatus.completed, BookingStatus.cancelled, BookingStatus.pending}),
    BookingStatus.completed: frozenset(),
    BookingStatus.cancelled: frozenset({BookingStatus.pending}),
})

STRICT_INVOICE = TransitionPolicy("strict", {
    InvoiceStatus.draft: frozenset({InvoiceStatus.sent, InvoiceStatus.cancelled}),
    InvoiceStatus.sent: frozenset({InvoiceStatus.paid, InvoiceStatus.overdue, InvoiceStatus.cancelled}),
    InvoiceStatus.overdue: frozenset({InvoiceStatus.paid, InvoiceStatus.cancelled}),
    InvoiceStatus.paid: frozenset(),
    InvoiceStatus.cancelled: frozenset({InvoiceStatus.draft}),
})


def policy_for(kind: str, mode: Optional[str] = None) -> TransitionPolicy:
    mode = (mode or Config.BOOKING_STATUS_POLICY or "permissive").lower()
    if mode != "strict":
        return PERMISSIVE
    if kind == "booking":
        return STRICT_BOOKING
    if kind == "invoice":
        return STRICT_INVOICE
    raise ValueError(f"unknown status kind: {kind}")
