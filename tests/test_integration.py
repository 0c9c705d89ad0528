"""Tests for the add-to-calendar flow."""

import asyncio

import httplib2
import pytest
from googleapiclient.errors import HttpError

from conftest import FakeIdentityProvider
from subtracker.auth.google_oauth import AuthorizationClient
from subtracker.auth.token_cache import TokenCache
from subtracker.calendar import integration
from subtracker.calendar.errors import AuthorizationError, ConfigurationError
from subtracker.calendar.integration import SUCCESS_MESSAGE, add_to_google_calendar


def _run(subscription, auth_client, calendar_client, notifier):
    return asyncio.run(add_to_google_calendar(
        subscription,
        auth_client=auth_client,
        calendar_client=calendar_client,
        notifier=notifier,
    ))


def test_end_to_end_without_cached_token(netflix, auth_client, identity, calendar_client, calendar_service,
                                         token_cache, clock, notifier):
    event = _run(netflix, auth_client, calendar_client, notifier)

    # one consent prompt, one stored token
    assert identity.load_calls == 1
    assert identity.token_client.prompts == ["consent"]
    stored = token_cache.read()
    assert stored.access_token == "fresh-token"
    assert stored.expires_at == int(clock.now * 1000) + 3599 * 1000

    # one submitted event
    assert len(calendar_service.inserted) == 1
    body = calendar_service.inserted[0]["body"]
    assert body["summary"] == "Netflix Subscription Renewal"
    assert body["start"]["dateTime"] == "2025-03-01T00:00:00+00:00"
    assert body["end"] == body["start"]
    assert [(o["method"], o["minutes"]) for o in body["reminders"]["overrides"]] == [
        ("email", 1440),
        ("popup", 30),
    ]
    assert calendar_service.inserted[0]["http"].credentials.token == "fresh-token"

    assert event["id"] == "evt-1"
    assert notifier.successes == [SUCCESS_MESSAGE]
    assert notifier.errors == []


def test_valid_cached_token_skips_consent(netflix, auth_client, identity, calendar_client, calendar_service,
                                          token_cache, notifier):
    token_cache.store("cached-token", 600)

    _run(netflix, auth_client, calendar_client, notifier)

    assert identity.token_client.prompts == []
    assert calendar_service.inserted[0]["http"].credentials.token == "cached-token"
    assert notifier.successes == [SUCCESS_MESSAGE]


def test_expired_cached_token_triggers_consent(netflix, auth_client, identity, calendar_client, token_cache,
                                               clock, notifier):
    token_cache.store("stale-token", 60)
    clock.advance(61)

    _run(netflix, auth_client, calendar_client, notifier)

    assert identity.token_client.prompts == ["consent"]
    assert token_cache.read().access_token == "fresh-token"


def test_second_invocation_reuses_token_and_clients(netflix, auth_client, identity, calendar_client, loader,
                                                    calendar_service, notifier):
    _run(netflix, auth_client, calendar_client, notifier)
    _run({**netflix, "name": "Disney+"}, auth_client, calendar_client, notifier)

    assert identity.load_calls == 1
    assert identity.token_client.prompts == ["consent"]
    assert len(loader.calls) == 1
    assert [c["body"]["summary"] for c in calendar_service.inserted] == [
        "Netflix Subscription Renewal",
        "Disney+ Subscription Renewal",
    ]


def test_submission_error_is_reported_and_reraised(netflix, auth_client, calendar_client, calendar_service,
                                                   notifier):
    calendar_service.error = HttpError(
        httplib2.Response({"status": "500"}),
        b'{"error": {"code": 500, "message": "Backend Error"}}',
    )

    with pytest.raises(HttpError):
        _run(netflix, auth_client, calendar_client, notifier)

    assert notifier.successes == []
    assert len(notifier.errors) == 1
    assert notifier.errors[0].startswith("Calendar operation failed: ")
    assert "Backend Error" in notifier.errors[0]


def test_denied_consent_stops_before_calendar(netflix, token_cache, calendar_client, loader, notifier):
    identity = FakeIdentityProvider(response={"error": "access_denied"})
    auth_client = AuthorizationClient(identity=identity, token_cache=token_cache, client_id="id", api_key="key")

    with pytest.raises(AuthorizationError):
        _run(netflix, auth_client, calendar_client, notifier)

    assert loader.calls == []
    assert notifier.errors == ["Calendar operation failed: access_denied"]
    assert notifier.successes == []


def test_missing_configuration_is_reported(netflix, token_cache, calendar_client, notifier):
    auth_client = AuthorizationClient(identity=FakeIdentityProvider(), token_cache=token_cache,
                                      client_id="id", api_key="")

    with pytest.raises(ConfigurationError):
        _run(netflix, auth_client, calendar_client, notifier)

    assert notifier.errors == ["Calendar operation failed: Missing Google Calendar credentials"]


def test_invalid_renewal_date_is_reported(auth_client, calendar_client, calendar_service, notifier):
    with pytest.raises(ValueError):
        _run({"name": "Netflix", "price": "$15.99", "renewalDate": "soon"}, auth_client, calendar_client,
             notifier)

    assert calendar_service.inserted == []
    assert len(notifier.errors) == 1


def test_singletons_are_created_once(monkeypatch):
    monkeypatch.setattr(integration, "_token_cache", None)
    monkeypatch.setattr(integration, "_authorization_client", None)
    monkeypatch.setattr(integration, "_calendar_client", None)

    auth_client = integration.get_authorization_client()

    assert integration.get_authorization_client() is auth_client
    assert auth_client.token_cache is integration.get_token_cache()
    assert integration.get_calendar_client() is integration.get_calendar_client()


def test_flow_reads_the_cache_the_auth_client_writes(netflix, auth_client, identity, calendar_client, notifier,
                                                    storage, clock):
    with pytest.raises(TypeError):
        asyncio.run(add_to_google_calendar(
            netflix,
            auth_client=auth_client,
            calendar_client=calendar_client,
            token_cache=TokenCache(storage=storage, clock=clock),
            notifier=notifier,
        ))

    _run(netflix, auth_client, calendar_client, notifier)
    _run(netflix, auth_client, calendar_client, notifier)

    assert identity.token_client.prompts == ["consent"]
