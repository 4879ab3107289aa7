# app/services/booking_service.py

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.base.exceptions import ConflictError, NotFoundError, ValidationError
from app.base.logging_config import availability_logger
from app.base.models import BookingResponse, CreateBookingRequest
from app.db.tables import Booking, BookingEventType
from app.utils.time_utils import Clock, ensure_utc, utc_now

logger = availability_logger.getChild("bookings")


class BookingService:
    """
    Creates and cancels investor bookings.

    Availability is computed without locks, so two callers can be offered the
    same slot. The buffered conflict check is repeated here, inside the write
    transaction, and the second caller gets a ConflictError.
    """

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    def create_booking(self, req: CreateBookingRequest) -> BookingResponse:
        event_type = self.db.query(BookingEventType).filter(
            BookingEventType.id == req.event_type_id,
            BookingEventType.investor_id == req.investor_id,
            BookingEventType.is_active.is_(True),
        ).first()
        if not event_type:
            raise NotFoundError("Event type not found")

        start = ensure_utc(req.start_time)
        if start < self.clock():
            raise ValidationError("Cannot book a time in the past")
        end = start + timedelta(minutes=event_type.duration_minutes)

        check_start = start - timedelta(minutes=event_type.buffer_before_minutes or 0)
        check_end = end + timedelta(minutes=event_type.buffer_after_minutes or 0)
        conflict = self.db.query(Booking.id).filter(
            Booking.investor_id == req.investor_id,
            Booking.status != "cancelled",
            Booking.start_time < check_end,
            Booking.end_time > check_start,
        ).first()
        if conflict:
            logger.warning(f"[Book] Conflict for investor {req.investor_id} at {start.isoformat()} (booking {conflict.id})")
            raise ConflictError("This time slot is no longer available")

        booking = Booking(
            investor_id=req.investor_id,
            event_type_id=event_type.id,
            start_time=start,
            end_time=end,
            booker_name=req.booker_name,
            booker_email=str(req.booker_email),
            booker_company=req.booker_company or None,
            notes=req.notes or None,
            status="confirmed",
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"[Book] Booking {booking.id} created for investor {req.investor_id} at {start.isoformat()}")
        return self._to_response(booking)

    def cancel_booking(self, booking_id: str) -> BookingResponse:
        booking: Optional[Booking] = self.db.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")

        if booking.status != "cancelled":
            booking.status = "cancelled"
            self.db.commit()
            logger.info(f"[Cancel] Booking cancelled: {booking_id}")

        return self._to_response(booking)

    @staticmethod
    def _to_response(booking: Booking) -> BookingResponse:
        return BookingResponse(
            id=booking.id,
            investor_id=booking.investor_id,
            event_type_id=booking.event_type_id,
            start_time=ensure_utc(booking.start_time),
            end_time=ensure_utc(booking.end_time),
            status=booking.status,
        )
