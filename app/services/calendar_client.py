# app/services/calendar_client.py

from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.base.config import settings
from app.base.logging_config import availability_logger
from app.base.metrics import calendar_busy_failures
from app.base.models import BusyBlock
from app.db.tables import LinkedCalendar
from app.utils.time_utils import Clock, ensure_utc, utc_now

logger = availability_logger.getChild("calendar")

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
DEFAULT_CALENDAR_ID = "primary"

# googleapiclient sends requests through httplib2, whose transport errors
# (DNS, redirects, malformed responses) do not derive from OSError.
FREEBUSY_ERRORS = (HttpError, HttpLib2Error, GoogleAuthError, OSError, KeyError, ValueError)


class TokenGrant(NamedTuple):
    access_token: str
    expires_at: datetime


class CalendarAuthError(Exception):
    """Raised when a linked calendar's refresh token cannot be exchanged."""


class GoogleCalendarClient:
    """
    Thin wrapper over the Google Calendar v3 API for the two calls availability needs:
    the OAuth refresh-token exchange and the free/busy query. No retries are made.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_uri: Optional[str] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.GOOGLE_CALENDAR_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.GOOGLE_CALENDAR_CLIENT_SECRET
        self.token_uri = token_uri or settings.GOOGLE_TOKEN_URI

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        if not refresh_token:
            raise CalendarAuthError("Linked calendar has no refresh token")

        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
        )
        try:
            credentials.refresh(Request())
        except GoogleAuthError as e:
            raise CalendarAuthError(f"Token refresh failed: {e}") from e

        # google-auth reports expiry as a naive UTC datetime
        expires_at = ensure_utc(credentials.expiry) if credentials.expiry else utc_now() + timedelta(hours=1)
        logger.info(f"[GoogleCalendar] Access token refreshed, expires {expires_at.isoformat()}")
        return TokenGrant(access_token=credentials.token, expires_at=expires_at)

    def query_busy(
        self,
        access_token: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
    ) -> List[BusyBlock]:
        service = build(
            "calendar", "v3",
            credentials=Credentials(token=access_token),
            cache_discovery=False,
        )
        body = {
            "timeMin": ensure_utc(time_min).isoformat(),
            "timeMax": ensure_utc(time_max).isoformat(),
            "items": [{"id": calendar_id}],
        }
        result = service.freebusy().query(body=body).execute()

        calendar = (result.get("calendars") or {}).get(calendar_id) or {}
        for error in calendar.get("errors", []):
            logger.warning(f"[GoogleCalendar] freeBusy error for {calendar_id}: {error.get('reason')}")

        return [
            BusyBlock(start=block["start"], end=block["end"])
            for block in calendar.get("busy", [])
        ]


class CalendarBusySource:
    """
    Collects busy blocks from every linked calendar that feeds availability.

    Calendars are handled one after another. A calendar whose token cannot be
    refreshed, or whose free/busy query fails, is logged and skipped so the
    rest of the availability computation still returns a result.
    """

    def __init__(self, client: Optional[GoogleCalendarClient] = None, clock: Clock = utc_now):
        self.client = client or GoogleCalendarClient()
        self.clock = clock

    def collect(self, db: Session, investor_id: str, time_min: datetime, time_max: datetime) -> List[BusyBlock]:
        calendars = db.query(LinkedCalendar).filter(
            LinkedCalendar.investor_id == investor_id,
            LinkedCalendar.include_in_availability.is_(True),
        ).all()

        busy: List[BusyBlock] = []
        for calendar in calendars:
            row_id, calendar_id = calendar.id, calendar.calendar_id or DEFAULT_CALENDAR_ID
            access_token = self._valid_access_token(db, calendar)
            if access_token is None:
                continue

            try:
                blocks = self.client.query_busy(access_token, calendar_id, time_min, time_max)
            except FREEBUSY_ERRORS as e:
                logger.error(f"[BusySource] freeBusy failed for calendar {row_id}: {e}")
                calendar_busy_failures.labels(stage="freebusy").inc()
                continue

            logger.debug(f"[BusySource] {len(blocks)} busy blocks from calendar {row_id}")
            busy.extend(blocks)

        logger.info(f"[BusySource] investor={investor_id} calendars={len(calendars)} busy_blocks={len(busy)}")
        return busy

    def _valid_access_token(self, db: Session, calendar: LinkedCalendar) -> Optional[str]:
        now = self.clock()
        if calendar.expires_at is not None and ensure_utc(calendar.expires_at) >= now:
            return calendar.access_token

        try:
            grant = self.client.refresh_access_token(calendar.refresh_token)
        except CalendarAuthError as e:
            logger.error(f"[BusySource] Failed to refresh token for calendar {calendar.id}: {e}")
            calendar_busy_failures.labels(stage="refresh").inc()
            return None

        row_id = calendar.id
        calendar.access_token = grant.access_token
        calendar.expires_at = grant.expires_at
        try:
            db.commit()
        except SQLAlchemyError as e:
            # token remains valid for this request; the next one refreshes again
            db.rollback()
            logger.error(f"[BusySource] Failed to persist refreshed token for calendar {row_id}: {e}")
            calendar_busy_failures.labels(stage="persist").inc()
        return grant.access_token
