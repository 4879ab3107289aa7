# app/services/affinity_service.py

from typing import Dict, List, Optional, Sequence

from app.base.logging_config import scoring_logger
from app.base.metrics import affinity_score_counter
from app.base.models import AffinityResult, InvestorCriteria, MatchSignal, RankedInvestor, StartupProfile

logger = scoring_logger.getChild("affinity")


# === Point budget ===
STAGE_POINTS = 35
SECTOR_POINTS_PER_MATCH = 15
SECTOR_POINTS_CAP = 30
THEME_POINTS_PER_MATCH = 10
THEME_POINTS_CAP = 20
TICKET_FIT_POINTS = 15
TICKET_NEAR_POINTS = 7
TRACTION_POINTS = 5  # each for revenue and customers

TIER_THRESHOLDS = (
    (65, "strong"),
    (45, "good"),
    (25, "partial"),
)

# Checked in order, so "pre-seed" must come before "seed".
STAGE_ALIASES: Dict[str, List[str]] = {
    "pre-seed": ["pre-seed", "preseed", "pre seed", "idea", "concept"],
    "seed": ["seed", "angel", "early"],
    "series a": ["series a", "series-a", "a round"],
    "series b": ["series b", "series-b", "b round"],
    "series c+": ["series c", "series-c", "series c+", "growth", "late stage", "expansion"],
}

SECTOR_KEYWORDS: Dict[str, List[str]] = {
    "saas": ["saas", "software", "b2b software", "enterprise software", "cloud", "subscription"],
    "fintech": ["fintech", "financial technology", "payments", "banking", "insurtech", "defi", "crypto", "lending", "neobank"],
    "healthtech": ["healthtech", "health tech", "medtech", "digital health", "healthcare", "biotech", "clinical", "telemedicine"],
    "ai/ml": ["ai", "ml", "artificial intelligence", "machine learning", "deep learning", "llm", "generative ai", "nlp", "computer vision"],
    "climate": ["climate", "cleantech", "green tech", "sustainability", "renewable", "carbon", "energy transition"],
    "consumer": ["consumer", "dtc", "d2c", "b2c", "e-commerce", "retail", "ecommerce"],
    "b2b": ["b2b", "enterprise", "business software", "smb", "sme"],
    "marketplace": ["marketplace", "platform", "two-sided", "network effects"],
    "deeptech": ["deeptech", "deep tech", "hardware", "robotics", "quantum", "space", "semiconductor"],
    "edtech": ["edtech", "education", "learning", "e-learning", "training"],
    "proptech": ["proptech", "real estate", "property", "construction"],
    "legaltech": ["legaltech", "legal tech", "law", "compliance"],
    "foodtech": ["foodtech", "food tech", "agtech", "agriculture"],
    "mobility": ["mobility", "transportation", "logistics", "automotive", "fleet"],
    "hrtech": ["hrtech", "hr tech", "human resources", "recruiting", "talent"],
    "cybersecurity": ["cybersecurity", "security", "infosec", "data protection"],
}

THEME_KEYWORDS: Dict[str, List[str]] = {
    "automation": ["automation", "automate", "autonomous"],
    "developer-tools": ["developer tools", "devtools", "api-first", "api first", "sdk"],
    "no-code": ["no-code", "low-code", "no code", "low code"],
    "analytics": ["analytics", "data analytics", "business intelligence", "bi tool"],
    "vertical-saas": ["vertical saas", "vertical software", "industry-specific"],
    "plg": ["product-led", "plg", "self-serve", "freemium", "bottoms-up"],
    "infrastructure": ["infrastructure", "infra", "backend", "middleware"],
    "embedded": ["embedded finance", "embedded", "banking as a service", "baas"],
    "creator": ["creator economy", "creator", "influencer"],
    "remote": ["remote work", "remote-first", "distributed", "hybrid work"],
}


def normalize_stage(stage: str) -> str:
    lower = stage.lower().strip()
    for canonical, aliases in STAGE_ALIASES.items():
        if any(alias in lower for alias in aliases):
            return canonical
    return lower


def _contains_either_way(a: str, b: str) -> bool:
    return a in b or b in a


def matches_sector(startup_sector: str, investor_focus: Sequence[str]) -> bool:
    sector = startup_sector.lower().strip()
    focus = [f.lower().strip() for f in investor_focus if f]

    if any(_contains_either_way(sector, f) for f in focus):
        return True

    # Expand through the sector table: the startup tag and an investor focus
    # entry both mention keywords of the same sector.
    for name, keywords in SECTOR_KEYWORDS.items():
        if any(k in sector for k in keywords):
            if any(name in f or any(k in f for k in keywords) for f in focus):
                return True
    return False


def match_themes(startup_tags: Sequence[str], investor_thesis: Sequence[str]) -> List[str]:
    thesis = [t.lower().strip() for t in investor_thesis if t]
    matches: List[str] = []

    for tag in startup_tags:
        if tag in matches:
            continue
        tag_lower = tag.lower().strip()

        if any(_contains_either_way(tag_lower, t) for t in thesis):
            matches.append(tag)
            continue

        for theme, theme_keywords in THEME_KEYWORDS.items():
            if any(k in tag_lower for k in theme_keywords):
                if any(theme in t or any(k in t for k in theme_keywords) for t in thesis):
                    matches.append(tag)
                    break
    return matches


def format_amount(amount: float) -> str:
    if amount >= 1_000_000:
        return f"{amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"{amount / 1_000:.0f}K"
    return f"{amount:g}"


def tier_for(percentage: int) -> str:
    for threshold, tier in TIER_THRESHOLDS:
        if percentage >= threshold:
            return tier
    return "low"


class AffinityScorer:
    """
    Explainable startup-to-investor match score.

    Each signal is an independent rule with its own point budget; the total is
    clamped to 0-100 and bucketed into a tier. The result depends only on the
    two inputs.
    """

    def score(self, startup: Optional[StartupProfile], investor: Optional[InvestorCriteria]) -> AffinityResult:
        if startup is None or investor is None:
            return AffinityResult(score=0, percentage=0, match_signals=[], tier="low")

        signals: List[MatchSignal] = []
        total = 0.0

        total += self._stage(startup, investor, signals)

        sectors = [s for s in [startup.category, *(startup.sector or [])] if s and s.strip()]
        total += self._sector(sectors, investor, signals)
        total += self._theme([*(startup.keywords or []), *sectors], investor, signals)
        total += self._ticket(startup, investor, signals)
        total += self._traction(startup, signals)

        percentage = max(0, min(100, int(round(total))))
        tier = tier_for(percentage)
        affinity_score_counter.labels(tier=tier).inc()

        return AffinityResult(score=total, percentage=percentage, match_signals=signals, tier=tier)

    def rank(self, startup: StartupProfile, investors: Sequence[InvestorCriteria]) -> List[RankedInvestor]:
        ranked = [
            RankedInvestor(investor_id=inv.id, name=inv.name, result=self.score(startup, inv))
            for inv in investors
        ]
        # sorted() is stable, so equal scores keep the caller's order
        ranked = sorted(ranked, key=lambda r: r.result.percentage, reverse=True)
        logger.info(f"[Affinity] Ranked {len(ranked)} investors, top={ranked[0].result.percentage if ranked else None}")
        return ranked

    # === Signals ===

    def _stage(self, startup, investor, signals) -> float:
        if not startup.stage or not investor.stages:
            return 0
        wanted = normalize_stage(startup.stage)
        if any(normalize_stage(s) == wanted for s in investor.stages if s):
            signals.append(MatchSignal(type="stage", label=startup.stage, strength="high"))
            return STAGE_POINTS
        return 0

    def _sector(self, sectors, investor, signals) -> float:
        if not sectors or not investor.investment_focus:
            return 0
        matched = [s for s in sectors if matches_sector(s, investor.investment_focus)]
        if not matched:
            return 0
        signals.append(MatchSignal(
            type="sector",
            label=", ".join(matched[:2]),
            strength="high" if len(matched) >= 2 else "medium",
        ))
        return min(len(matched) * SECTOR_POINTS_PER_MATCH, SECTOR_POINTS_CAP)

    def _theme(self, tags, investor, signals) -> float:
        if not tags or not investor.thesis_keywords:
            return 0
        matched = match_themes(tags, investor.thesis_keywords)
        if not matched:
            return 0
        signals.append(MatchSignal(
            type="theme",
            label=", ".join(matched[:2]),
            strength="high" if len(matched) >= 2 else "medium",
        ))
        return min(len(matched) * THEME_POINTS_PER_MATCH, THEME_POINTS_CAP)

    def _ticket(self, startup, investor, signals) -> float:
        ask = startup.funding_ask
        if not ask or not (investor.ticket_size_min or investor.ticket_size_max):
            return 0

        low = investor.ticket_size_min or 0
        high = investor.ticket_size_max or float("inf")
        if low <= ask <= high:
            signals.append(MatchSignal(type="ticket", label=f"€{format_amount(ask)} ask", strength="high"))
            return TICKET_FIT_POINTS
        if low * 0.5 <= ask <= high * 1.5:
            signals.append(MatchSignal(type="ticket", label="Near ticket range", strength="medium"))
            return TICKET_NEAR_POINTS
        return 0

    def _traction(self, startup, signals) -> float:
        if not (startup.has_revenue or startup.has_customers):
            return 0

        points = 0
        labels = []
        if startup.has_revenue:
            points += TRACTION_POINTS
            labels.append(f"€{format_amount(startup.current_arr)} ARR" if startup.current_arr else "Has revenue")
        if startup.has_customers:
            points += TRACTION_POINTS
            if not startup.has_revenue:
                labels.append("Has customers")

        signals.append(MatchSignal(
            type="traction",
            label=", ".join(labels),
            strength="high" if startup.has_revenue and startup.has_customers else "medium",
        ))
        return points
