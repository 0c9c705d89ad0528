"""Google OAuth helper for the calendar push.

Obtains a short-lived access token through an interactive consent prompt and
hands it to the local token cache. The Google libraries are only touched by
``GoogleIdentityProvider`` and ``GoogleTokenClient`` so tests can swap in a
fake provider.
"""
import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from google_auth_oauthlib.flow import InstalledAppFlow

from subtracker.auth.token_cache import TokenCache
from subtracker.calendar.errors import (
    AuthorizationError,
    CalendarIntegrationError,
    ConfigurationError,
    LoadError,
)
from subtracker.config import settings

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ['https://www.googleapis.com/auth/calendar.events']

# Google access tokens live for an hour unless the provider says otherwise.
DEFAULT_EXPIRES_IN = 3600

TokenCallback = Callable[[Dict[str, Any]], None]


class TokenClient(Protocol):
    callback: TokenCallback

    def request_access_token(self, prompt: str = 'consent') -> None:
        ...


class IdentityProvider(Protocol):
    def load(self) -> None:
        ...

    def init_token_client(self, client_id: str, scope: List[str], callback: TokenCallback) -> TokenClient:
        ...


def _seconds_until(expiry: Optional[datetime]) -> int:
    if expiry is None:
        return DEFAULT_EXPIRES_IN
    # google-auth keeps expiry as a naive UTC datetime
    remaining = (expiry - datetime.now(timezone.utc).replace(tzinfo=None)).total_seconds()
    return max(0, int(remaining))


class GoogleTokenClient:
    """Runs the installed-app consent flow and reports through ``callback``."""

    def __init__(self, client_config: Dict[str, Any], scopes: List[str], callback: TokenCallback,
                 redirect_port: int = 0, open_browser: bool = True):
        self.client_config = client_config
        self.scopes = scopes
        self.callback = callback
        self.redirect_port = redirect_port
        self.open_browser = open_browser

    def request_access_token(self, prompt: str = 'consent') -> None:
        t = threading.Thread(target=self._run_consent, args=(prompt,))
        t.daemon = True
        t.start()

    def _run_consent(self, prompt: str) -> None:
        try:
            flow = InstalledAppFlow.from_client_config(self.client_config, scopes=self.scopes)
            creds = flow.run_local_server(
                port=self.redirect_port,
                open_browser=self.open_browser,
                prompt=prompt,
            )
        except Exception as exc:
            logger.warning('Google consent flow failed: %s', exc)
            self.callback({'error': str(exc) or exc.__class__.__name__})
            return

        self.callback({'access_token': creds.token, 'expires_in': _seconds_until(creds.expiry)})


class GoogleIdentityProvider:
    def __init__(self, client_secret: Optional[str] = None, redirect_port: Optional[int] = None,
                 open_browser: Optional[bool] = None):
        self.client_secret = settings.GOOGLE_CLIENT_SECRET if client_secret is None else client_secret
        self.redirect_port = settings.GOOGLE_OAUTH_REDIRECT_PORT if redirect_port is None else redirect_port
        self.open_browser = settings.GOOGLE_OAUTH_OPEN_BROWSER if open_browser is None else open_browser
        self._loaded = False

    def load(self) -> None:
        if not self.client_secret:
            raise ConfigurationError('GOOGLE_CLIENT_SECRET must be set in environment to run OAuth flow')
        self._loaded = True

    def init_token_client(self, client_id: str, scope: List[str], callback: TokenCallback) -> GoogleTokenClient:
        if not self._loaded:
            raise LoadError('Google identity provider not loaded')
        client_config = {
            "installed": {
                "client_id": client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": ["http://localhost"],
            }
        }
        return GoogleTokenClient(
            client_config,
            scopes=scope,
            callback=callback,
            redirect_port=self.redirect_port,
            open_browser=self.open_browser,
        )


def _unset_callback(response: Dict[str, Any]) -> None:
    logger.debug('Token response arrived with no pending request; ignoring')


class AuthorizationClient:
    """Interactive access-token acquisition with one-time initialization."""

    def __init__(self, identity: Optional[IdentityProvider] = None, token_cache: Optional[TokenCache] = None,
                 client_id: Optional[str] = None, api_key: Optional[str] = None,
                 scopes: Optional[List[str]] = None):
        self.identity = identity or GoogleIdentityProvider()
        self.token_cache = token_cache or TokenCache()
        self.client_id = settings.GOOGLE_CLIENT_ID if client_id is None else client_id
        self.api_key = settings.GOOGLE_API_KEY if api_key is None else api_key
        self.scopes = scopes or CALENDAR_SCOPES
        self._token_client: Optional[TokenClient] = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._token_client is not None

    def _validate_config(self) -> None:
        if not self.api_key or not self.client_id:
            raise ConfigurationError('Missing Google Calendar credentials')

    async def initialize(self) -> None:
        if self.initialized:
            return
        async with self._init_lock:
            # a concurrent caller may have finished while we waited
            if self.initialized:
                return
            self._validate_config()
            try:
                await asyncio.to_thread(self.identity.load)
            except CalendarIntegrationError:
                raise
            except Exception as exc:
                logger.exception('Google identity initialization error: %s', exc)
                raise LoadError('Failed to load Google Identity Services') from exc

            self._token_client = self.identity.init_token_client(
                client_id=self.client_id,
                scope=self.scopes,
                callback=_unset_callback,
            )
            logger.info('Google identity client initialized')

    async def request_token(self) -> str:
        """Prompt the user for consent and cache the resulting access token."""
        token_client = self._token_client
        if token_client is None:
            raise AuthorizationError('Token client not initialized')

        loop = asyncio.get_running_loop()
        pending: asyncio.Future = loop.create_future()

        def _settle(response: Dict[str, Any]) -> None:
            if pending.done():
                return
            error = response.get('error')
            if error:
                pending.set_exception(AuthorizationError(str(error)))
            else:
                pending.set_result(response)

        def _callback(response: Dict[str, Any]) -> None:
            loop.call_soon_threadsafe(_settle, response)

        token_client.callback = _callback
        token_client.request_access_token(prompt='consent')
        response = await pending

        access_token = response['access_token']
        self.token_cache.store(access_token, float(response.get('expires_in', DEFAULT_EXPIRES_IN)))
        logger.info('Obtained new Google Calendar access token')
        return access_token
