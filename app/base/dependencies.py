# app/base/dependencies.py

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.base.config import settings
from app.db.session import get_db
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.calendar_client import CalendarBusySource
from app.services.gap_analysis_service import DataGapService
from app.utils.time_utils import Clock, utc_now

# --- API key header config ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(key: str = Security(api_key_header)):
    if settings.ENABLE_API_KEY_SECURITY and key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or missing API key")


def get_clock() -> Clock:
    return utc_now


def get_busy_source(clock: Clock = Depends(get_clock)) -> CalendarBusySource:
    return CalendarBusySource(clock=clock)


def get_availability_service(
    db: Session = Depends(get_db),
    busy_source: CalendarBusySource = Depends(get_busy_source),
    clock: Clock = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(db, busy_source=busy_source, clock=clock)


def get_booking_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> BookingService:
    return BookingService(db, clock=clock)


def get_data_gap_service(db: Session = Depends(get_db)) -> DataGapService:
    return DataGapService(db)
