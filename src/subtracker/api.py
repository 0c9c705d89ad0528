import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from googleapiclient.errors import HttpError
from pydantic import BaseModel

from subtracker.auth.google_oauth import AuthorizationClient
from subtracker.calendar.errors import CalendarIntegrationError
from subtracker.calendar.gcal import GCalClient
from subtracker.calendar.integration import (
    SUCCESS_MESSAGE,
    add_to_google_calendar,
    get_authorization_client,
    get_calendar_client,
)
from subtracker.config import settings
from subtracker.notifications import LogNotifier, Notifier

logger = logging.getLogger(__name__)

API_VERSION = '1.0.0'


class RenewalRequest(BaseModel):
    """Subscription fields consumed by the calendar push."""

    name: str
    price: str  # display price, e.g. "$15.99"
    renewalDate: str


class RenewalResponse(BaseModel):
    event_id: Optional[str] = None
    html_link: Optional[str] = None
    message: str


def get_notifier() -> Notifier:
    return LogNotifier()


def _error_body(message: str, exc: Exception) -> Dict[str, Any]:
    return {
        'message': message,
        'error': repr(exc) if settings.is_development else {},
    }


app = FastAPI(title='SubTracker API', version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS'],
    allow_headers=['*'],
)


@app.exception_handler(CalendarIntegrationError)
async def calendar_error_handler(request: Request, exc: CalendarIntegrationError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc), exc))


@app.exception_handler(HttpError)
async def google_api_error_handler(request: Request, exc: HttpError):
    return JSONResponse(status_code=502, content=_error_body(f'Google Calendar rejected the event: {exc.reason}', exc))


@app.exception_handler(ValueError)
async def bad_value_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content=_error_body(str(exc), exc))


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.error('Server error: %s', exc)
    return JSONResponse(status_code=500, content=_error_body('Internal server error', exc))


@app.get('/api/health', response_model=Dict[str, str])
async def health_check():
    return {'status': 'ok', 'version': API_VERSION}


@app.post('/api/calendar/renewals', response_model=RenewalResponse)
async def add_renewal_to_calendar(
    payload: RenewalRequest,
    auth_client: AuthorizationClient = Depends(get_authorization_client),
    calendar_client: GCalClient = Depends(get_calendar_client),
    notifier: Notifier = Depends(get_notifier),
):
    """Push a subscription's renewal date to the user's primary Google Calendar."""
    event = await add_to_google_calendar(
        payload.model_dump(),
        auth_client=auth_client,
        calendar_client=calendar_client,
        notifier=notifier,
    )
    return RenewalResponse(
        event_id=event.get('id'),
        html_link=event.get('htmlLink'),
        message=SUCCESS_MESSAGE,
    )
