# app/services/rate_card_service.py

from typing import List, Sequence, Tuple

from app.base.exceptions import ValidationError
from app.base.models import RateCardRow, RateQuote

MAX_WEEKLY_HOURS_PER_PROJECT = 12.5

# (hours, EUR per hour); rates between anchors are linearly interpolated
RATE_ANCHORS: Sequence[Tuple[float, float]] = (
    (1, 250),
    (4, 250),
    (12.5, 150),
    (50, 100),
)

RATE_TABLE_HOURS = (1, 2, 4, 8, 12.5, 25, 37.5, 50)

DURATION_LABELS = {
    12.5: "1 week",
    25: "2 weeks",
    37.5: "3 weeks",
    50: "1 month",
}


def get_rate(hours: float) -> float:
    if hours <= 0:
        raise ValidationError("hours must be positive")
    if hours <= RATE_ANCHORS[0][0]:
        return float(RATE_ANCHORS[0][1])

    for (h1, r1), (h2, r2) in zip(RATE_ANCHORS, RATE_ANCHORS[1:]):
        if h1 <= hours <= h2:
            t = (hours - h1) / (h2 - h1)
            return r1 + t * (r2 - r1)
    return float(RATE_ANCHORS[-1][1])


def duration_label(hours: float) -> str:
    if hours in DURATION_LABELS:
        return DURATION_LABELS[hours]
    weeks = hours / MAX_WEEKLY_HOURS_PER_PROJECT
    if weeks >= 1:
        return f"~{weeks:.1f} weeks"
    return f"{hours:g}h"


def quote(hours: float) -> RateQuote:
    rate = get_rate(hours)
    return RateQuote(hours=hours, rate=round(rate, 2), total=round(rate * hours, 2))


def build_rate_table(hours_list: Sequence[float] = RATE_TABLE_HOURS) -> List[RateCardRow]:
    rows = []
    for hours in hours_list:
        q = quote(hours)
        rows.append(RateCardRow(
            hours=hours,
            rate=q.rate,
            total=q.total,
            weeks=round(hours / MAX_WEEKLY_HOURS_PER_PROJECT, 2),
            duration=duration_label(hours),
        ))
    return rows
