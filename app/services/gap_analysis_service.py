# app/services/gap_analysis_service.py

import math
from typing import Dict, List, Mapping, NamedTuple, Optional

from sqlalchemy.orm import Session

from app.base.config import settings
from app.base.exceptions import ValidationError
from app.base.logging_config import scoring_logger
from app.base.models import (
    CategoryCoverage,
    CompanySummary,
    CriticalGap,
    GapAnalysis,
    GapAnalysisResponse,
    ReadinessScores,
)
from app.db.tables import Company, MemoResponse

logger = scoring_logger.getChild("gaps")


class Category(NamedTuple):
    label: str
    weight: int
    keys: List[str]  # current key first, then legacy/renamed aliases
    vc_importance: Optional[str] = None


# Narrative data, usually extracted from the deck
QUALITATIVE_RUBRIC: Dict[str, Category] = {
    "problem": Category("Problem Definition", 10, [
        "problem_core", "problem_description", "problem_validation", "problem_evidence",
    ]),
    "solution": Category("Solution Clarity", 10, [
        "solution_core", "solution_description", "solution_demo", "solution_product_status",
    ]),
    "market": Category("Market Understanding", 12, [
        "market_size", "market_tam", "target_customer", "market_icp", "market_timing",
    ]),
    "competition": Category("Competitive Landscape", 8, [
        "competitors", "competition_competitors", "competitive_advantage", "solution_defensibility",
    ]),
    "team": Category("Team Credentials", 10, [
        "team_story", "team_core", "founder_background", "team_composition", "team_credibility",
    ]),
}

# Momentum data, usually missing and weighed heavier by investors
MOMENTUM_RUBRIC: Dict[str, Category] = {
    "unit_economics": Category("Unit Economics", 15, [
        "unit_economics", "unit_economics_json", "unit_economics_cac", "unit_economics_ltv", "unit_economics_margins",
    ], "VCs won't invest without understanding your CAC/LTV ratio"),
    "revenue": Category("Revenue Model", 12, [
        "business_model_revenue", "revenue_model", "pricing_model", "average_deal_size",
    ], "How you make money is non-negotiable information"),
    "growth": Category("Growth Metrics", 15, [
        "traction_proof", "traction_revenue", "current_traction", "growth_rate", "mrr_arr",
    ], "Traction proves you're not just a slideshow"),
    "vision": Category("Vision & Ask", 8, [
        "vision_ask", "vision_long_term", "use_of_funds", "traction_milestones",
    ], "Investors fund a plan: the size of the ask and what it unlocks"),
}

QUALITATIVE_SHARE = 0.4
MOMENTUM_SHARE = 0.6


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _answer(responses: Mapping[str, Optional[str]], key: str) -> Optional[str]:
    value = responses.get(key)
    if value is None or not str(value).strip():
        return None
    return str(value)


class GapAnalyzer:
    """
    Scores how complete a founder's questionnaire is for memo generation.

    A category counts as covered when any of its keys has a non-blank answer,
    so renamed question keys keep counting for the same category.
    """

    def __init__(self, ready_threshold: Optional[int] = None, needs_input_threshold: Optional[int] = None):
        self.ready_threshold = settings.READY_THRESHOLD if ready_threshold is None else ready_threshold
        self.needs_input_threshold = (
            settings.NEEDS_INPUT_THRESHOLD if needs_input_threshold is None else needs_input_threshold
        )

    def analyze(self, responses: Mapping[str, Optional[str]]) -> GapAnalysis:
        filled_data: Dict[str, str] = {}

        qualitative, q_points, q_max = self._score_rubric(QUALITATIVE_RUBRIC, responses, filled_data)
        momentum, m_points, m_max = self._score_rubric(MOMENTUM_RUBRIC, responses, filled_data)

        qualitative_score = round_half_up(q_points / q_max * 100)
        momentum_score = round_half_up(m_points / m_max * 100)
        scores = ReadinessScores(
            qualitative_score=qualitative_score,
            momentum_score=momentum_score,
            total_score=round_half_up((q_points + m_points) / (q_max + m_max) * 100),
            memo_readiness=round_half_up(qualitative_score * QUALITATIVE_SHARE + momentum_score * MOMENTUM_SHARE),
        )

        critical_gaps = [
            CriticalGap(
                category=name,
                label=category.label,
                keys=momentum[name].missing,
                vc_importance=category.vc_importance,
            )
            for name, category in MOMENTUM_RUBRIC.items()
            if momentum[name].coverage == 0
        ]

        return GapAnalysis(
            qualitative=qualitative,
            momentum=momentum,
            scores=scores,
            critical_gaps=critical_gaps,
            filled_data=filled_data,
        )

    def recommendation(self, memo_readiness: int) -> str:
        if memo_readiness >= self.ready_threshold:
            return "ready"
        if memo_readiness >= self.needs_input_threshold:
            return "needs_input"
        return "insufficient_data"

    def _score_rubric(self, rubric: Dict[str, Category], responses, filled_data: Dict[str, str]):
        coverages: Dict[str, CategoryCoverage] = {}
        points = 0.0
        max_points = 0

        for name, category in rubric.items():
            filled = [k for k in category.keys if _answer(responses, k) is not None]
            missing = [k for k in category.keys if k not in filled]
            coverage = 1.0 if filled else 0.0

            coverages[name] = CategoryCoverage(
                coverage=coverage,
                filled=filled,
                missing=missing,
                vc_importance=category.vc_importance,
            )
            points += coverage * category.weight
            max_points += category.weight

            for key in filled:
                filled_data[key] = _answer(responses, key)

        return coverages, points, max_points


class DataGapService:
    def __init__(self, db: Session, analyzer: Optional[GapAnalyzer] = None):
        self.db = db
        self.analyzer = analyzer or GapAnalyzer()

    def analyze_responses(self, responses: Mapping[str, Optional[str]]) -> GapAnalysisResponse:
        analysis = self.analyzer.analyze(responses)
        return GapAnalysisResponse(
            analysis=analysis,
            recommendation=self.analyzer.recommendation(analysis.scores.memo_readiness),
        )

    def analyze_company(self, company_id: str) -> GapAnalysisResponse:
        if not company_id:
            raise ValidationError("Company ID is required")

        logger.info(f"[DataGaps] Analyzing data gaps for company {company_id}")
        rows = self.db.query(MemoResponse.question_key, MemoResponse.answer).filter(
            MemoResponse.company_id == company_id
        ).all()
        responses = {key: answer for key, answer in rows if answer}

        company = self._load_company(company_id)
        analysis = self.analyzer.analyze(responses)
        recommendation = self.analyzer.recommendation(analysis.scores.memo_readiness)

        logger.info(
            f"[DataGaps] company={company_id} readiness={analysis.scores.memo_readiness} "
            f"critical_gaps={len(analysis.critical_gaps)} -> {recommendation}"
        )
        return GapAnalysisResponse(
            company_id=company_id,
            company=company,
            analysis=analysis,
            recommendation=recommendation,
        )

    def _load_company(self, company_id: str) -> Optional[CompanySummary]:
        # Company context is informational; a missing row does not fail the analysis.
        row = self.db.get(Company, company_id)
        if row is None:
            logger.warning(f"[DataGaps] Could not fetch company info for {company_id}")
            return None
        return CompanySummary(name=row.name, description=row.description, stage=row.stage, category=row.category)
