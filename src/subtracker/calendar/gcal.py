"""Google Calendar client implementation.

Loads the Calendar v3 service from its discovery document once per process
and creates renewal events in the user's primary calendar with whatever
access token the caller supplies.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from subtracker.calendar.errors import LoadError
from subtracker.calendar.events import CalendarEventRequest
from subtracker.config import settings

logger = logging.getLogger(__name__)

CALENDAR_DISCOVERY_DOC = 'https://www.googleapis.com/discovery/v1/apis/calendar/v3/rest'

ServiceLoader = Callable[[str, float], Any]


def build_calendar_service(api_key: str, timeout: float) -> Any:
    http = httplib2.Http(timeout=timeout)
    return build(
        'calendar',
        'v3',
        http=http,
        developerKey=api_key,
        discoveryServiceUrl=CALENDAR_DISCOVERY_DOC,
        cache_discovery=False,
    )


class GCalClient:
    def __init__(self, api_key: Optional[str] = None, loader: Optional[ServiceLoader] = None,
                 load_timeout: Optional[float] = None, time_zone: Optional[str] = None):
        self.api_key = settings.GOOGLE_API_KEY if api_key is None else api_key
        self.loader = loader or build_calendar_service
        self.load_timeout = settings.CALENDAR_LOAD_TIMEOUT_SECONDS if load_timeout is None else load_timeout
        self.time_zone = settings.CALENDAR_TIMEZONE if time_zone is None else time_zone
        self.service = None
        self._http = None
        self._load_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self.service is not None

    async def ensure_client_loaded(self) -> None:
        """Build the Calendar service on first use; later calls are no-ops.

        The handle is only kept once the build has fully succeeded, so a
        failed or timed-out load is retried on the next call.
        """
        if self.loaded:
            return
        async with self._load_lock:
            if self.loaded:
                return
            try:
                service = await asyncio.wait_for(
                    asyncio.to_thread(self.loader, self.api_key, self.load_timeout),
                    timeout=self.load_timeout,
                )
            except asyncio.TimeoutError as exc:
                logger.warning('Google Calendar client load timed out after %ss', self.load_timeout)
                raise LoadError('Timeout loading Google Calendar client') from exc
            except Exception as exc:
                logger.exception('Failed to load Google Calendar client: %s', exc)
                raise LoadError('Failed to load Google Calendar client') from exc

            self.service = service
            logger.info('Google Calendar client loaded')

    def set_token(self, access_token: str) -> None:
        creds = Credentials(token=access_token)
        # bare access token: a 401 must surface as HttpError, not as a refresh attempt
        self._http = AuthorizedHttp(creds, http=httplib2.Http(), refresh_status_codes=())

    async def submit(self, access_token: str, request: CalendarEventRequest) -> Dict[str, Any]:
        """Create the renewal event in the primary calendar and return it."""
        if self.service is None:
            raise LoadError('Google Calendar client not loaded')

        self.set_token(access_token)
        body = request.to_event(self.time_zone)
        insert = self.service.events().insert(calendarId='primary', body=body)
        try:
            event = await asyncio.to_thread(insert.execute, http=self._http)
        except HttpError as e:
            logger.exception('Failed to create calendar event: %s', e)
            raise
        logger.info('Created calendar event id=%s', event.get('id'))
        return event
