# app/routers/availability.py

import logging

from fastapi import APIRouter, Depends

from app.base.dependencies import get_availability_service
from app.base.models import AvailabilityRequest, DaysResponse, SlotsResponse
from app.services.availability_service import AvailabilityService

router = APIRouter(tags=["Availability"])
logger = logging.getLogger("availability_router")


@router.post(
    "/slots",
    summary="Bookable slots for an investor's event type",
    response_model=SlotsResponse,
)
def calculate_available_slots(
    req: AvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    logger.info(f"[SlotsRequest] investor={req.investor_id} event_type={req.event_type_id} {req.start_date}..{req.end_date}")
    return service.calculate_available_slots(
        req.investor_id, req.event_type_id, req.start_date, req.end_date, req.timezone
    )


@router.post(
    "/days",
    summary="Which days in a range have at least one bookable slot",
    response_model=DaysResponse,
)
def get_available_days(
    req: AvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    logger.info(f"[DaysRequest] investor={req.investor_id} event_type={req.event_type_id} {req.start_date}..{req.end_date}")
    return service.get_available_days(
        req.investor_id, req.event_type_id, req.start_date, req.end_date, req.timezone
    )
