"""
MemoReady Services Module

Business logic behind the API routers. Each service owns one concern:
investor availability and bookings, external calendar busy time,
startup/investor affinity, memo data-gap analysis, and consulting rates.
"""

# === Scheduling ===
from .availability_service import AvailabilityResolver, AvailabilityService
from .booking_service import BookingService
from .calendar_client import CalendarBusySource, GoogleCalendarClient

# === Scoring ===
from .affinity_service import AffinityScorer
from .gap_analysis_service import DataGapService, GapAnalyzer

# === Exported Interface ===
__all__ = [
    "AvailabilityResolver",
    "AvailabilityService",
    "BookingService",
    "CalendarBusySource",
    "GoogleCalendarClient",
    "AffinityScorer",
    "DataGapService",
    "GapAnalyzer",
]
