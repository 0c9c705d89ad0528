"""Renewal notice payloads for Google Calendar."""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

REMINDER_OVERRIDES: List[Dict[str, Any]] = [
    {'method': 'email', 'minutes': 24 * 60},
    {'method': 'popup', 'minutes': 30},
]


def parse_renewal_date(value: Union[str, datetime, date]) -> datetime:
    """Turn a subscription's ``renewalDate`` into a datetime.

    Values carrying ``Z`` or an explicit offset are absolute, date-time strings
    without an offset are local time, and bare dates mean midnight UTC.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if value is None:
        raise ValueError('renewalDate is required')
    if not isinstance(value, str):
        raise ValueError(f'Invalid renewalDate: {value!r}')

    raw = value.strip()
    if not raw:
        raise ValueError('renewalDate is required')
    if raw.endswith('Z') or raw.endswith('z'):
        raw = raw[:-1] + '+00:00'
    try:
        if 'T' not in raw and ' ' not in raw:
            return datetime.fromisoformat(raw).replace(tzinfo=timezone.utc)
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f'Invalid renewalDate: {value!r}') from exc


def format_event_time(instant: datetime, time_zone: Optional[str] = None) -> str:
    # naive instants are local time; astimezone() resolves them against the system zone
    if time_zone:
        localized = instant.astimezone(ZoneInfo(time_zone))
    else:
        localized = instant.astimezone()
    return localized.isoformat(timespec='seconds')


@dataclass(frozen=True)
class CalendarEventRequest:
    subject_name: str
    price: str
    renewal_instant: datetime

    @classmethod
    def from_subscription(cls, subscription: Mapping[str, Any]) -> "CalendarEventRequest":
        return cls(
            subject_name=subscription['name'],
            price=subscription['price'],
            renewal_instant=parse_renewal_date(subscription['renewalDate']),
        )

    @property
    def summary(self) -> str:
        return f'{self.subject_name} Subscription Renewal'

    @property
    def description(self) -> str:
        return f'Renewal for {self.subject_name} subscription - {self.price}'

    def to_event(self, time_zone: Optional[str] = None) -> Dict[str, Any]:
        """Build the Calendar API event resource.

        Start and end are the same instant: the event marks a point in time
        and carries its own reminders instead of the calendar defaults.
        """
        boundary: Dict[str, Any] = {'dateTime': format_event_time(self.renewal_instant, time_zone)}
        if time_zone:
            boundary['timeZone'] = time_zone

        return {
            'summary': self.summary,
            'description': self.description,
            'start': dict(boundary),
            'end': dict(boundary),
            'reminders': {
                'useDefault': False,
                'overrides': [dict(o) for o in REMINDER_OVERRIDES],
            },
        }
