"""Add-to-calendar flow for subscription renewals.

Composes the token cache, the OAuth token client and the Calendar client:
reuse a cached token when one is still valid, otherwise ask the user for
consent, then push a single renewal event to the primary calendar.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from subtracker.auth.google_oauth import AuthorizationClient
from subtracker.auth.token_cache import TokenCache
from subtracker.calendar.events import CalendarEventRequest
from subtracker.calendar.gcal import GCalClient
from subtracker.notifications import LogNotifier, Notifier

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = 'Successfully added event to Google Calendar!'

_token_cache: Optional[TokenCache] = None
_authorization_client: Optional[AuthorizationClient] = None
_calendar_client: Optional[GCalClient] = None


def get_token_cache() -> TokenCache:
    """Get or create the process-wide token cache (lazy initialization)."""
    global _token_cache
    if _token_cache is None:
        _token_cache = TokenCache()
    return _token_cache


def get_authorization_client() -> AuthorizationClient:
    global _authorization_client
    if _authorization_client is None:
        _authorization_client = AuthorizationClient(token_cache=get_token_cache())
    return _authorization_client


def get_calendar_client() -> GCalClient:
    global _calendar_client
    if _calendar_client is None:
        _calendar_client = GCalClient()
    return _calendar_client


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def add_to_google_calendar(
    subscription: Mapping[str, Any],
    *,
    auth_client: Optional[AuthorizationClient] = None,
    calendar_client: Optional[GCalClient] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """Push a renewal reminder for ``subscription`` to the user's calendar.

    ``subscription`` needs ``name``, ``price`` and ``renewalDate``. Returns the
    created event resource. Any failure is logged, reported through the
    notifier and re-raised so the caller can reset its own state.
    """
    auth_client = auth_client or get_authorization_client()
    calendar_client = calendar_client or get_calendar_client()
    # read from the cache request_token() writes to
    token_cache = auth_client.token_cache
    notifier = notifier or LogNotifier()

    try:
        if not auth_client.initialized:
            await auth_client.initialize()

        stored = token_cache.read()
        if stored is not None:
            access_token = stored.access_token
        else:
            access_token = await auth_client.request_token()

        await calendar_client.ensure_client_loaded()

        request = CalendarEventRequest.from_subscription(subscription)
        event = await calendar_client.submit(access_token, request)
    except Exception as exc:
        logger.exception('Calendar operation failed: %s', exc)
        notifier.error(f'Calendar operation failed: {_error_message(exc)}')
        raise

    notifier.success(SUCCESS_MESSAGE)
    return event
