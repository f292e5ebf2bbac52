"""
Google Calendar bridge: mirrors bookings into the operations calendar.

Uses a service account (``GOOGLE_SERVICE_ACCOUNT_JSON``) with the calendar
scope. Every call raises ``UpstreamServiceError`` on failure; callers treat the
calendar as best-effort.
"""
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build

from oludeniz_tours.config import Config
from oludeniz_tours.booking_app.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def _status_value(status) -> str:
    return getattr(status, "value", status) or ""


def event_times(booking) -> Tuple[datetime, datetime]:
    hours, minutes = (int(p) for p in str(booking.tour_start_time).split(":")[:2])
    d = booking.booking_date
    start = datetime(d.year, d.month, d.day, hours, minutes)
    end = start + timedelta(minutes=booking.duration or 120)
    return start, end


def build_event_body(booking, timezone: Optional[str] = None, reminders: bool = True) -> Dict[str, Any]:
    tz = timezone or Config.CALENDAR_TIMEZONE
    start, end = event_times(booking)
    participants = (booking.adults or 0) + (booking.children or 0)

    lines = [
        "Booking Details:",
        f"- Customer: {booking.customer_name}",
        f"- Email: {booking.customer_email}",
    ]
    if booking.customer_phone:
        lines.append(f"- Phone: {booking.customer_phone}")
    lines.append(f"- Tour: {booking.tour_name}")
    lines.append(f"- Adults: {booking.adults}")
    if booking.children:
        lines.append(f"- Children: {booking.children}")
    lines.append(f"- Total Participants: {participants}")
    if booking.total_amount:
        lines.append(f"- Price: ${booking.total_amount}")
    if booking.hotel_name:
        lines.append(f"- Hotel: {booking.hotel_name}")
    lines.append(f"- Status: {_status_value(booking.status)}")
    if booking.notes:
        lines.append(f"- Notes: {booking.notes}")
    lines.append("")
    lines.append(f"Booking ID: {booking.id}")

    event = {
        "summary": f"{booking.tour_name} - {booking.customer_name}",
        "description": "\n".join(lines),
        # wall-clock times in the operator's timezone
        "start": {"dateTime": start.isoformat(), "timeZone": tz},
        "end": {"dateTime": end.isoformat(), "timeZone": tz},
    }
    if reminders:
        event["reminders"] = {
            "useDefault": False,
            "overrides": [
                {"method": "popup", "minutes": 24 * 60},
                {"method": "popup", "minutes": 60},
            ],
        }
    return event


class GoogleCalendarBridge:
    def __init__(self, calendar_id: Optional[str] = None, creds_json_path: Optional[str] = None, service=None):
        self.calendar_id = calendar_id or Config.GOOGLE_CALENDAR_ID
        self.creds_json_path = creds_json_path or Config.GOOGLE_SERVICE_ACCOUNT_JSON
        self._service = service

    @property
    def configured(self) -> bool:
        return self._service is not None or bool(self.creds_json_path and os.path.exists(self.creds_json_path))

    def _calendar(self):
        if self._service is None:
            if not self.configured:
                raise UpstreamServiceError("Google Calendar service account JSON not found")
            creds = service_account.Credentials.from_service_account_file(self.creds_json_path, scopes=SCOPES)
            self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
            logger.info("Google Calendar API initialised for %s", self.calendar_id)
        return self._service

    def create_event(self, booking) -> Optional[str]:
        try:
            event = self._calendar().events().insert(
                calendarId=self.calendar_id,
                body=build_event_body(booking),
            ).execute()
        except UpstreamServiceError:
            raise
        except Exception as e:
            logger.error("Error creating calendar event for booking %s: %s", booking.id, e)
            raise UpstreamServiceError("Failed to create calendar event") from e
        return event.get("id") or None

    def update_event(self, event_id: str, booking) -> None:
        try:
            self._calendar().events().update(
                calendarId=self.calendar_id,
                eventId=event_id,
                body=build_event_body(booking, reminders=False),
            ).execute()
        except UpstreamServiceError:
            raise
        except Exception as e:
            logger.error("Error updating calendar event %s: %s", event_id, e)
            raise UpstreamServiceError("Failed to update calendar event") from e

    def delete_event(self, event_id: str) -> None:
        try:
            self._calendar().events().delete(calendarId=self.calendar_id, eventId=event_id).execute()
        except UpstreamServiceError:
            raise
        except Exception as e:
            logger.error("Error deleting calendar event %s: %s", event_id, e)
            raise UpstreamServiceError("Failed to delete calendar event") from e
