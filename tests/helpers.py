# tests/helpers.py

from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional

from app.base.models import BusyBlock
from app.db.tables import AvailabilityRule, Booking, BookingEventType, LinkedCalendar, SlotOverride
from app.services.calendar_client import CalendarAuthError, TokenGrant

UTC = timezone.utc
INVESTOR_ID = "investor-1"

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 7, 8, 0, tzinfo=UTC)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def fixed_clock(instant: datetime = NOW):
    return lambda: instant


def add_event_type(db, duration=30, before=0, after=0, active=True, event_type_id="event-30") -> BookingEventType:
    row = BookingEventType(
        id=event_type_id,
        investor_id=INVESTOR_ID,
        name="Intro call",
        description="30 minute intro",
        duration_minutes=duration,
        buffer_before_minutes=before,
        buffer_after_minutes=after,
        is_active=active,
    )
    db.add(row)
    db.commit()
    return row


def add_rule(db, day_of_week=1, start=time(9, 0), end=time(12, 0), active=True, investor_id=INVESTOR_ID):
    db.add(AvailabilityRule(
        investor_id=investor_id, day_of_week=day_of_week, start_time=start, end_time=end, is_active=active,
    ))
    db.commit()


def add_override(db, day=MONDAY, available=False, start=None, end=None):
    db.add(SlotOverride(investor_id=INVESTOR_ID, date=day, is_available=available, start_time=start, end_time=end))
    db.commit()


def add_booking(db, start: datetime, end: datetime, status="confirmed") -> Booking:
    row = Booking(investor_id=INVESTOR_ID, start_time=start, end_time=end, status=status,
                  booker_name="Ada", booker_email="ada@example.com")
    db.add(row)
    db.commit()
    return row


def add_calendar(db, calendar_id="primary", expires_at=None, include=True, token="valid-token",
                 refresh_token="refresh-1", row_id=None) -> LinkedCalendar:
    extra = {"id": row_id} if row_id else {}
    row = LinkedCalendar(
        **extra,
        investor_id=INVESTOR_ID,
        calendar_id=calendar_id,
        access_token=token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        include_in_availability=include,
    )
    db.add(row)
    db.commit()
    return row


class FakeCalendarClient:
    """Stands in for GoogleCalendarClient; records calls, never touches the network."""

    def __init__(self, busy: Optional[Dict[str, List[BusyBlock]]] = None, failing_refresh=(), failing_query=()):
        self.busy = busy or {}
        self.failing_refresh = set(failing_refresh)
        self.failing_query = set(failing_query)
        self.refreshed: List[str] = []
        self.queried: List[tuple] = []

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        if refresh_token in self.failing_refresh:
            raise CalendarAuthError("invalid_grant")
        self.refreshed.append(refresh_token)
        return TokenGrant(access_token=f"fresh-{refresh_token}", expires_at=datetime(2030, 1, 7, 9, 0, tzinfo=UTC))

    def query_busy(self, access_token, calendar_id, time_min, time_max) -> List[BusyBlock]:
        self.queried.append((access_token, calendar_id, time_min, time_max))
        if calendar_id in self.failing_query:
            raise OSError("connection reset")
        return list(self.busy.get(calendar_id, []))
