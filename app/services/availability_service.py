# app/services/availability_service.py

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.base.config import settings
from app.base.exceptions import NotFoundError, ValidationError
from app.base.logging_config import availability_logger
from app.base.metrics import availability_duration
from app.base.models import (
    BusyBlock,
    DateOverride,
    DayAvailability,
    DaysResponse,
    EventTypeSpec,
    EventTypeSummary,
    SlotsResponse,
    TimeSlot,
    WeeklyRule,
)
from app.db.tables import AvailabilityRule, Booking, BookingEventType, SlotOverride
from app.services.calendar_client import CalendarBusySource
from app.utils.time_utils import (
    Clock,
    day_bounds_utc,
    ensure_utc,
    iter_days,
    local_to_utc,
    resolve_timezone,
    sunday_based_weekday,
    utc_now,
)

logger = availability_logger.getChild("service")

# Candidate starts advance by a fixed step, independent of the event duration.
SLOT_STEP = timedelta(minutes=30)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not conflict."""
    return a_start < b_end and b_start < a_end


class AvailabilityResolver:
    """
    Turns weekly hours, date overrides, bookings and external busy blocks into
    bookable slots. Holds no state beyond the injected clock.
    """

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    def compute_slots(
        self,
        event_type: EventTypeSpec,
        rules: Sequence[WeeklyRule],
        overrides: Sequence[DateOverride],
        busy: Sequence[BusyBlock],
        start_date: date,
        end_date: date,
        timezone: Optional[str] = None,
    ) -> List[TimeSlot]:
        tz = resolve_timezone(timezone)
        now = self.clock()
        busy = _normalize_busy(busy)

        slots: List[TimeSlot] = []
        for day in iter_days(start_date, end_date):
            slots.extend(self._open_slots(day, event_type, rules, overrides, busy, tz, now))
        return slots

    def compute_day_flags(
        self,
        event_type: EventTypeSpec,
        rules: Sequence[WeeklyRule],
        overrides: Sequence[DateOverride],
        busy: Sequence[BusyBlock],
        start_date: date,
        end_date: date,
        timezone: Optional[str] = None,
    ) -> List[DayAvailability]:
        tz = resolve_timezone(timezone)
        now = self.clock()
        today = now.astimezone(tz).date()
        busy = _normalize_busy(busy)

        days: List[DayAvailability] = []
        for day in iter_days(start_date, end_date):
            if day < today:
                days.append(DayAvailability(day=day, has_slots=False))
                continue
            first = next(self._open_slots(day, event_type, rules, overrides, busy, tz, now), None)
            days.append(DayAvailability(day=day, has_slots=first is not None))
        return days

    def _open_slots(self, day, event_type, rules, overrides, busy, tz, now) -> Iterator[TimeSlot]:
        window = resolve_day_window(day, rules, overrides)
        if window is None:
            return

        window_start = local_to_utc(day, window[0], tz)
        window_end = local_to_utc(day, window[1], tz)
        duration = timedelta(minutes=event_type.duration_minutes)
        before = timedelta(minutes=event_type.buffer_before_minutes)
        after = timedelta(minutes=event_type.buffer_after_minutes)

        slot_start = window_start
        while slot_start + duration <= window_end:
            slot_end = slot_start + duration
            if slot_start >= now:
                padded_start, padded_end = slot_start - before, slot_end + after
                if not any(intervals_overlap(padded_start, padded_end, b.start, b.end) for b in busy):
                    yield TimeSlot(start=slot_start, end=slot_end)
            slot_start += SLOT_STEP


def resolve_day_window(
    day: date,
    rules: Sequence[WeeklyRule],
    overrides: Sequence[DateOverride],
) -> Optional[Tuple]:
    """
    Wall-clock (start, end) for `day`, or None when nothing is bookable.

    An override for the date wins: unavailable blocks the day, available with
    both times replaces the hours. Otherwise the first active weekly rule for
    the weekday applies.
    """
    override = next((o for o in overrides if o.day == day), None)
    if override is not None:
        if not override.is_available:
            return None
        if override.start_time and override.end_time:
            return override.start_time, override.end_time

    weekday = sunday_based_weekday(day)
    rule = next((r for r in rules if r.is_active and r.day_of_week == weekday), None)
    if rule is None:
        return None
    return rule.start_time, rule.end_time


def _normalize_busy(busy: Iterable[BusyBlock]) -> List[BusyBlock]:
    return [BusyBlock(start=ensure_utc(b.start), end=ensure_utc(b.end)) for b in busy]


class AvailabilityService:
    """
    Loads an investor's booking configuration and feeds it through the resolver.

    The reads (event type, rules, overrides, bookings, calendars) are separate
    queries without a shared snapshot; a booking committed between them can be
    missed by this request. Booking creation re-checks conflicts at write time.
    """

    def __init__(
        self,
        db: Session,
        busy_source: Optional[CalendarBusySource] = None,
        clock: Clock = utc_now,
    ):
        self.db = db
        self.clock = clock
        self.busy_source = busy_source or CalendarBusySource(clock=clock)
        self.resolver = AvailabilityResolver(clock=clock)

    def calculate_available_slots(
        self,
        investor_id: str,
        event_type_id: str,
        start_date: date,
        end_date: date,
        timezone: Optional[str] = None,
    ) -> SlotsResponse:
        timezone = timezone or settings.DEFAULT_TIMEZONE
        with availability_duration.labels(variant="slots").time():
            event_type, rules, overrides, busy = self._load_inputs(
                investor_id, event_type_id, start_date, end_date, timezone
            )
            slots = self.resolver.compute_slots(event_type, rules, overrides, busy, start_date, end_date, timezone)

        logger.info(f"[Slots] investor={investor_id} {start_date}..{end_date} tz={timezone} -> {len(slots)} slots")
        return SlotsResponse(
            slots=slots,
            event_type=EventTypeSummary(
                name=event_type.name,
                duration=event_type.duration_minutes,
                description=event_type.description,
            ),
        )

    def get_available_days(
        self,
        investor_id: str,
        event_type_id: str,
        start_date: date,
        end_date: date,
        timezone: Optional[str] = None,
    ) -> DaysResponse:
        timezone = timezone or settings.DEFAULT_TIMEZONE
        with availability_duration.labels(variant="days").time():
            event_type, rules, overrides, busy = self._load_inputs(
                investor_id, event_type_id, start_date, end_date, timezone
            )
            days = self.resolver.compute_day_flags(event_type, rules, overrides, busy, start_date, end_date, timezone)

        open_days = sum(1 for d in days if d.has_slots)
        logger.info(f"[Days] investor={investor_id} {start_date}..{end_date} tz={timezone} -> {open_days}/{len(days)} open")
        return DaysResponse(days=days)

    # === Loading ===

    def _load_inputs(self, investor_id, event_type_id, start_date, end_date, timezone):
        validate_range(start_date, end_date)
        tz = resolve_timezone(timezone)

        event_type = self.load_event_type(event_type_id)
        rules = self.load_rules(investor_id)
        overrides = self.load_overrides(investor_id, start_date, end_date)

        range_start, _ = day_bounds_utc(start_date, tz)
        _, range_end = day_bounds_utc(end_date, tz)
        # Widen by the buffers so busy time just outside the range still pads slots at its edges
        busy_start = range_start - timedelta(minutes=event_type.buffer_before_minutes)
        busy_end = range_end + timedelta(minutes=event_type.buffer_after_minutes)

        busy = self.load_booking_blocks(investor_id, busy_start, busy_end)
        busy.extend(self.busy_source.collect(self.db, investor_id, busy_start, busy_end))
        return event_type, rules, overrides, busy

    def load_event_type(self, event_type_id: str) -> EventTypeSpec:
        row = self.db.query(BookingEventType).filter(
            BookingEventType.id == event_type_id,
            BookingEventType.is_active.is_(True),
        ).first()
        if row is None:
            raise NotFoundError("Event type not found or inactive")

        return EventTypeSpec(
            id=row.id,
            name=row.name,
            description=row.description,
            duration_minutes=row.duration_minutes,
            buffer_before_minutes=row.buffer_before_minutes,
            buffer_after_minutes=row.buffer_after_minutes,
            is_active=row.is_active,
        )

    def load_rules(self, investor_id: str) -> List[WeeklyRule]:
        rows = self.db.query(AvailabilityRule).filter(
            AvailabilityRule.investor_id == investor_id,
            AvailabilityRule.is_active.is_(True),
        ).order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time).all()

        return [
            WeeklyRule(day_of_week=r.day_of_week, start_time=r.start_time, end_time=r.end_time, is_active=r.is_active)
            for r in rows
        ]

    def load_overrides(self, investor_id: str, start_date: date, end_date: date) -> List[DateOverride]:
        rows = self.db.query(SlotOverride).filter(
            SlotOverride.investor_id == investor_id,
            SlotOverride.date >= start_date,
            SlotOverride.date <= end_date,
        ).all()

        return [
            DateOverride(day=o.date, is_available=o.is_available, start_time=o.start_time, end_time=o.end_time)
            for o in rows
        ]

    def load_booking_blocks(self, investor_id: str, range_start: datetime, range_end: datetime) -> List[BusyBlock]:
        rows = self.db.query(Booking).filter(
            Booking.investor_id == investor_id,
            Booking.status != "cancelled",
            Booking.start_time < range_end,
            Booking.end_time > range_start,
        ).all()
        return [BusyBlock(start=b.start_time, end=b.end_time) for b in rows]


def validate_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError("endDate must not be before startDate")
    span = (end_date - start_date).days + 1
    if span > settings.MAX_AVAILABILITY_RANGE_DAYS:
        raise ValidationError(f"Date range of {span} days exceeds the {settings.MAX_AVAILABILITY_RANGE_DAYS}-day limit")
