# app/routers/rate_card.py

from typing import List

from fastapi import APIRouter, Query

from app.base.models import RateCardRow, RateQuote
from app.services.rate_card_service import build_rate_table, quote

router = APIRouter(tags=["Rate Card"])


@router.get("", summary="Consulting rate card", response_model=List[RateCardRow])
def get_rate_card():
    return build_rate_table()


@router.get("/quote", summary="Interpolated rate for an engagement size", response_model=RateQuote)
def get_quote(hours: float = Query(..., gt=0, le=1000)):
    return quote(hours)
