# app/routers/bookings.py

from fastapi import APIRouter, Depends, status

from app.base.dependencies import get_booking_service
from app.base.models import BookingResponse, CreateBookingRequest
from app.services.booking_service import BookingService

router = APIRouter(tags=["Bookings"])


@router.post("", summary="Book a slot", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(req: CreateBookingRequest, service: BookingService = Depends(get_booking_service)):
    return service.create_booking(req)


@router.post("/{booking_id}/cancel", summary="Cancel a booking", response_model=BookingResponse)
def cancel_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return service.cancel_booking(booking_id)
