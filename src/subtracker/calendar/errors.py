"""Errors raised by the Google Calendar renewal flow.

Submission failures are not wrapped: the calendar service's own
``googleapiclient.errors.HttpError`` reaches the caller unchanged.
"""


class CalendarIntegrationError(Exception):
    status_code: int = 500


class ConfigurationError(CalendarIntegrationError):
    """Provider credentials are missing; raised before any network activity."""
    status_code = 500


class LoadError(CalendarIntegrationError):
    """A provider library failed to load or timed out while loading."""
    status_code = 503


class AuthorizationError(CalendarIntegrationError):
    """The identity provider reported an error (denied consent, provider failure)."""
    status_code = 401
