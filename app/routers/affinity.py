# app/routers/affinity.py

import logging
from typing import List

from fastapi import APIRouter

from app.base.models import AffinityRankRequest, AffinityRequest, AffinityResult, RankedInvestor
from app.services.affinity_service import AffinityScorer

router = APIRouter(tags=["Affinity"])
scorer = AffinityScorer()
logger = logging.getLogger("affinity_router")


@router.post("/score", summary="Score one startup against one investor", response_model=AffinityResult)
def score_affinity(req: AffinityRequest):
    """
    Additive, explainable match score. Every point is backed by a match signal
    (stage, sector, theme, ticket, traction) returned alongside the tier.
    """
    result = scorer.score(req.startup, req.investor)
    logger.info(f"[AffinityScore] investor={req.investor.id if req.investor else None} -> {result.percentage} ({result.tier})")
    return result


@router.post("/rank", summary="Rank investors for a startup", response_model=List[RankedInvestor])
def rank_investors(req: AffinityRankRequest):
    return scorer.rank(req.startup, req.investors)
