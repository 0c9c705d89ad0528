"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from subtracker.auth.google_oauth import AuthorizationClient
from subtracker.auth.token_cache import LocalStorage, TokenCache
from subtracker.calendar.gcal import GCalClient
from subtracker.notifications import Notifier


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTokenClient:
    """Answers consent requests immediately with a canned provider response."""

    def __init__(self, callback, response=None):
        self.callback = callback
        self.response = response or {"access_token": "fresh-token", "expires_in": 3599}
        self.prompts = []

    def request_access_token(self, prompt="consent"):
        self.prompts.append(prompt)
        self.callback(dict(self.response))


class FakeIdentityProvider:
    def __init__(self, response=None, load_error=None):
        self.response = response
        self.load_error = load_error
        self.load_calls = 0
        self.token_client = None

    def load(self):
        self.load_calls += 1
        if self.load_error is not None:
            raise self.load_error

    def init_token_client(self, client_id, scope, callback):
        self.token_client = FakeTokenClient(callback, self.response)
        return self.token_client


class FakeInsertRequest:
    def __init__(self, service, calendar_id, body):
        self.service = service
        self.calendar_id = calendar_id
        self.body = body

    def execute(self, http=None, num_retries=0):
        self.service.inserted.append({"calendarId": self.calendar_id, "body": self.body, "http": http})
        if self.service.error is not None:
            raise self.service.error
        return {"id": "evt-1", "htmlLink": "https://calendar.google.com/event?eid=evt-1", **self.body}


class FakeEvents:
    def __init__(self, service):
        self.service = service

    def insert(self, calendarId, body):
        return FakeInsertRequest(self.service, calendarId, body)


class FakeCalendarService:
    """Mimics the slice of the discovery-built Calendar service we call."""

    def __init__(self, error=None):
        self.error = error
        self.inserted = []

    def events(self):
        return FakeEvents(self)


class FakeLoader:
    def __init__(self, service=None, error=None):
        self.service = service or FakeCalendarService()
        self.error = error
        self.calls = []

    def __call__(self, api_key, timeout):
        self.calls.append((api_key, timeout))
        if self.error is not None:
            raise self.error
        return self.service


class RecordingNotifier(Notifier):
    def __init__(self):
        self.successes = []
        self.errors = []

    def success(self, message):
        self.successes.append(message)

    def error(self, message):
        self.errors.append(message)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "local_storage.json")


@pytest.fixture
def token_cache(storage, clock):
    return TokenCache(storage=storage, clock=clock)


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def auth_client(identity, token_cache):
    return AuthorizationClient(
        identity=identity,
        token_cache=token_cache,
        client_id="client-id.apps.googleusercontent.com",
        api_key="api-key",
    )


@pytest.fixture
def calendar_service():
    return FakeCalendarService()


@pytest.fixture
def loader(calendar_service):
    return FakeLoader(calendar_service)


@pytest.fixture
def calendar_client(loader):
    return GCalClient(api_key="api-key", loader=loader, load_timeout=5, time_zone="UTC")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def netflix():
    return {"name": "Netflix", "price": "$15.99", "renewalDate": "2025-03-01T00:00:00Z"}
