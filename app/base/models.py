from datetime import date, datetime, time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.base.config import settings


class CamelModel(BaseModel):
    """Accepts both snake_case names and the camelCase aliases used on the wire."""
    model_config = ConfigDict(populate_by_name=True)


# === 📅 Availability: core value objects ===

class EventTypeSpec(CamelModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    duration_minutes: int = Field(..., gt=0, description="Length of a bookable slot")
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)
    is_active: bool = True

    @field_validator("buffer_before_minutes", "buffer_after_minutes", mode="before")
    @classmethod
    def default_missing_buffer(cls, value):
        return 0 if value is None else value


class WeeklyRule(CamelModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday ... 6=Saturday")
    start_time: time
    end_time: time
    is_active: bool = True


class DateOverride(CamelModel):
    day: date = Field(..., alias="date")
    is_available: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class BusyBlock(CamelModel):
    start: datetime
    end: datetime


class TimeSlot(CamelModel):
    start: datetime
    end: datetime


class DayAvailability(CamelModel):
    day: date = Field(..., alias="date")
    has_slots: bool = Field(..., alias="hasSlots")


# === 📅 Availability: API ===

class AvailabilityRequest(CamelModel):
    investor_id: str = Field(..., alias="investorId", min_length=1)
    event_type_id: str = Field(..., alias="eventTypeId", min_length=1)
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    timezone: str = Field(
        default_factory=lambda: settings.DEFAULT_TIMEZONE,
        description="IANA zone the weekly hours are expressed in",
    )


class EventTypeSummary(CamelModel):
    name: str
    duration: int
    description: Optional[str] = None


class SlotsResponse(CamelModel):
    slots: List[TimeSlot]
    event_type: EventTypeSummary = Field(..., alias="eventType")


class DaysResponse(CamelModel):
    days: List[DayAvailability]


# === 🤝 Startup / investor affinity ===

class StartupProfile(CamelModel):
    stage: Optional[str] = None
    category: Optional[str] = None
    sector: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    location: Optional[str] = None
    funding_ask: Optional[float] = Field(None, alias="fundingAsk", ge=0)
    has_revenue: bool = Field(False, alias="hasRevenue")
    has_customers: bool = Field(False, alias="hasCustomers")
    current_arr: Optional[float] = Field(None, alias="currentARR", ge=0)


class InvestorCriteria(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    stages: Optional[List[str]] = None
    investment_focus: Optional[List[str]] = None
    thesis_keywords: Optional[List[str]] = None
    ticket_size_min: Optional[float] = Field(None, ge=0)
    ticket_size_max: Optional[float] = Field(None, ge=0)
    city: Optional[str] = None


class MatchSignal(CamelModel):
    type: str  # stage, sector, theme, ticket, traction
    label: str
    strength: str  # high, medium, low


class AffinityResult(CamelModel):
    score: float
    percentage: int
    match_signals: List[MatchSignal] = Field(default_factory=list, alias="matchSignals")
    tier: str  # strong, good, partial, low


class AffinityRequest(CamelModel):
    startup: Optional[StartupProfile] = None
    investor: Optional[InvestorCriteria] = None


class AffinityRankRequest(CamelModel):
    startup: StartupProfile
    investors: List[InvestorCriteria] = Field(..., min_length=1)


class RankedInvestor(CamelModel):
    investor_id: Optional[str] = Field(None, alias="investorId")
    name: Optional[str] = None
    result: AffinityResult


# === 📝 Memo data gaps ===

class CategoryCoverage(CamelModel):
    coverage: float
    filled: List[str]
    missing: List[str]
    vc_importance: Optional[str] = Field(None, alias="vcImportance")


class CriticalGap(CamelModel):
    category: str
    label: str
    keys: List[str]
    vc_importance: str = Field(..., alias="vcImportance")


class ReadinessScores(CamelModel):
    qualitative_score: int = Field(..., alias="qualitativeScore")
    momentum_score: int = Field(..., alias="momentumScore")
    total_score: int = Field(..., alias="totalScore")
    memo_readiness: int = Field(..., alias="memoReadiness")


class GapAnalysis(CamelModel):
    qualitative: Dict[str, CategoryCoverage]
    momentum: Dict[str, CategoryCoverage]
    scores: ReadinessScores
    critical_gaps: List[CriticalGap] = Field(default_factory=list, alias="criticalGaps")
    filled_data: Dict[str, str] = Field(default_factory=dict, alias="filledData")


class DataGapRequest(CamelModel):
    responses: Dict[str, Optional[str]] = Field(default_factory=dict)


class CompanyGapRequest(CamelModel):
    company_id: str = Field(..., alias="companyId", min_length=1)


class CompanySummary(CamelModel):
    name: str
    description: Optional[str] = None
    stage: Optional[str] = None
    category: Optional[str] = None


class GapAnalysisResponse(CamelModel):
    success: bool = True
    company_id: Optional[str] = Field(None, alias="companyId")
    company: Optional[CompanySummary] = None
    analysis: GapAnalysis
    recommendation: str  # ready, needs_input, insufficient_data


# === 🗓 Bookings ===

class CreateBookingRequest(CamelModel):
    investor_id: str = Field(..., alias="investorId", min_length=1)
    event_type_id: str = Field(..., alias="eventTypeId", min_length=1)
    start_time: datetime = Field(..., alias="startTime")
    booker_name: str = Field(..., alias="bookerName", min_length=1)
    booker_email: EmailStr = Field(..., alias="bookerEmail")
    booker_company: Optional[str] = Field(None, alias="bookerCompany")
    notes: Optional[str] = None


class BookingResponse(CamelModel):
    id: str
    investor_id: str = Field(..., alias="investorId")
    event_type_id: Optional[str] = Field(None, alias="eventTypeId")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    status: str


# === 💶 Rate card ===

class RateQuote(CamelModel):
    hours: float
    rate: float
    total: float


class RateCardRow(RateQuote):
    weeks: float
    duration: str
