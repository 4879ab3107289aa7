from datetime import date, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.base.config import settings
from app.base.exceptions import NotFoundError, ValidationError
from app.base.models import BusyBlock
from app.db.tables import LinkedCalendar
from app.services.availability_service import AvailabilityService
from app.services.calendar_client import CalendarBusySource
from tests.helpers import (
    MONDAY,
    FakeCalendarClient,
    add_booking,
    add_calendar,
    add_event_type,
    add_override,
    add_rule,
    at,
    fixed_clock,
)


def make_service(db, client=None) -> AvailabilityService:
    clock = fixed_clock()
    busy_source = CalendarBusySource(client=client or FakeCalendarClient(), clock=clock)
    return AvailabilityService(db, busy_source=busy_source, clock=clock)


def starts(response):
    return [s.start for s in response.slots]


class TestCalculateAvailableSlots:
    def test_returns_slots_and_event_type_summary(self, db):
        add_event_type(db)
        add_rule(db)

        response = make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert len(response.slots) == 6
        assert response.event_type.name == "Intro call"
        assert response.event_type.duration == 30

    def test_missing_event_type_raises_not_found(self, db):
        with pytest.raises(NotFoundError):
            make_service(db).calculate_available_slots("investor-1", "nope", MONDAY, MONDAY)

    def test_inactive_event_type_raises_not_found(self, db):
        add_event_type(db, active=False)
        add_rule(db)

        with pytest.raises(NotFoundError):
            make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

    def test_existing_bookings_block_slots_but_cancelled_do_not(self, db):
        add_event_type(db)
        add_rule(db)
        add_booking(db, at(9), at(10))
        add_booking(db, at(11), at(12), status="cancelled")

        response = make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert starts(response) == [at(10), at(10, 30), at(11), at(11, 30)]

    def test_booking_just_before_range_still_pads_first_slot(self, db):
        add_event_type(db, before=30)
        add_rule(db, start=time(0, 0), end=time(2, 0))
        add_booking(db, at(23, 30, day=MONDAY - timedelta(days=1)), at(0, 0))
        clock = fixed_clock(at(0, 0))
        service = AvailabilityService(db, busy_source=CalendarBusySource(FakeCalendarClient(), clock), clock=clock)

        response = service.calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert at(0, 0) not in starts(response)
        assert starts(response)[0] == at(0, 30)

    def test_blocking_override_wins_over_rule(self, db):
        add_event_type(db)
        add_rule(db)
        add_override(db, available=False)

        response = make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert response.slots == []

    def test_rules_of_other_investors_are_ignored(self, db):
        add_event_type(db)
        add_rule(db, investor_id="investor-2")

        response = make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert response.slots == []

    def test_external_busy_blocks_are_conflicts(self, db):
        add_event_type(db)
        add_rule(db)
        add_calendar(db, expires_at=at(23))
        client = FakeCalendarClient(busy={"primary": [BusyBlock(start=at(9), end=at(11))]})

        response = make_service(db, client).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert starts(response) == [at(11), at(11, 30)]
        access_token, calendar_id, time_min, time_max = client.queried[0]
        assert (access_token, calendar_id) == ("valid-token", "primary")
        assert time_min == at(0) and time_max == at(0, day=MONDAY + timedelta(days=1))

    def test_external_busy_window_is_widened_by_buffers(self, db):
        add_event_type(db, before=30, after=30)
        add_rule(db)
        add_calendar(db, expires_at=at(23))
        client = FakeCalendarClient()

        make_service(db, client).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        _, _, time_min, time_max = client.queried[0]
        assert time_min == at(0) - timedelta(minutes=30)
        assert time_max == at(0, day=MONDAY + timedelta(days=1)) + timedelta(minutes=30)

    def test_default_timezone_applies_when_none_given(self, db, monkeypatch):
        monkeypatch.setattr(settings, "DEFAULT_TIMEZONE", "Europe/Berlin")
        add_event_type(db)
        add_rule(db)

        response = make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        # 09:00-12:00 Berlin is 08:00-11:00 UTC in January
        assert starts(response)[0] == at(8)
        assert starts(response)[-1] == at(10, 30)

    def test_failing_calendar_is_skipped_and_others_still_count(self, db):
        add_event_type(db)
        add_rule(db)
        add_calendar(db, calendar_id="broken", expires_at=at(7), refresh_token="revoked")
        add_calendar(db, calendar_id="work", expires_at=at(23))
        client = FakeCalendarClient(
            busy={"broken": [BusyBlock(start=at(9), end=at(12))], "work": [BusyBlock(start=at(9), end=at(10))]},
            failing_refresh={"revoked"},
        )

        response = make_service(db, client).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY)

        assert starts(response) == [at(10), at(10, 30), at(11), at(11, 30)]
        assert [q[1] for q in client.queried] == ["work"]

    def test_range_end_before_start_is_rejected(self, db):
        add_event_type(db)

        with pytest.raises(ValidationError):
            make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY - timedelta(days=1))

    def test_oversized_range_is_rejected(self, db):
        add_event_type(db)

        with pytest.raises(ValidationError):
            make_service(db).calculate_available_slots("investor-1", "event-30", MONDAY, MONDAY + timedelta(days=400))


class TestGetAvailableDays:
    def test_day_flags_for_a_week(self, db):
        add_event_type(db)
        add_rule(db)  # Mondays
        add_rule(db, day_of_week=3, start=time(9, 0), end=time(10, 0))  # Wednesdays
        add_booking(db, at(9, day=date(2030, 1, 9)), at(10, day=date(2030, 1, 9)))

        response = make_service(db).get_available_days("investor-1", "event-30", date(2030, 1, 6), date(2030, 1, 12))

        flags = {d.day: d.has_slots for d in response.days}
        assert flags == {
            date(2030, 1, 6): False,   # Sunday, before today
            date(2030, 1, 7): True,    # Monday
            date(2030, 1, 8): False,
            date(2030, 1, 9): False,   # Wednesday, fully booked
            date(2030, 1, 10): False,
            date(2030, 1, 11): False,
            date(2030, 1, 12): False,
        }


class TestCalendarBusySource:
    def test_expired_token_is_refreshed_and_persisted(self, db):
        row = add_calendar(db, expires_at=at(7), token="stale")
        client = FakeCalendarClient(busy={"primary": [BusyBlock(start=at(9), end=at(10))]})
        source = CalendarBusySource(client=client, clock=fixed_clock())

        busy = source.collect(db, "investor-1", at(0), at(23))

        assert len(busy) == 1
        assert client.refreshed == ["refresh-1"]
        assert client.queried[0][0] == "fresh-refresh-1"
        stored = db.get(LinkedCalendar, row.id)
        assert stored.access_token == "fresh-refresh-1"
        assert stored.expires_at.replace(tzinfo=None) == at(9).replace(tzinfo=None)

    def test_missing_expiry_forces_refresh(self, db):
        add_calendar(db, expires_at=None)
        client = FakeCalendarClient()

        CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert client.refreshed == ["refresh-1"]

    def test_valid_token_is_not_refreshed(self, db):
        add_calendar(db, expires_at=at(9))
        client = FakeCalendarClient()

        CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert client.refreshed == []
        assert client.queried[0][0] == "valid-token"

    def test_excluded_calendars_are_not_queried(self, db):
        add_calendar(db, expires_at=at(9), include=False)
        client = FakeCalendarClient()

        busy = CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert busy == []
        assert client.queried == []

    def test_freebusy_failure_is_skipped(self, db):
        add_calendar(db, calendar_id="flaky", expires_at=at(9))
        add_calendar(db, calendar_id="primary", expires_at=at(9))
        client = FakeCalendarClient(
            busy={"primary": [BusyBlock(start=at(9), end=at(10))]},
            failing_query={"flaky"},
        )

        busy = CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert [(b.start, b.end) for b in busy] == [(at(9), at(10))]

    def test_missing_calendar_id_defaults_to_primary(self, db):
        row = add_calendar(db, expires_at=at(9))
        row.calendar_id = None
        db.commit()
        client = FakeCalendarClient()

        CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert client.queried[0][1] == "primary"

    def test_failed_token_persist_still_uses_fresh_token(self, db, monkeypatch):
        add_calendar(db, expires_at=at(7), token="stale")
        client = FakeCalendarClient(busy={"primary": [BusyBlock(start=at(9), end=at(10))]})

        def failing_commit():
            raise OperationalError("UPDATE linked_calendars", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", failing_commit)

        busy = CalendarBusySource(client=client, clock=fixed_clock()).collect(db, "investor-1", at(0), at(23))

        assert len(busy) == 1
        assert client.queried[0][0] == "fresh-refresh-1"
