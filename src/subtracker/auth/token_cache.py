"""Local persistence for the Google Calendar access token.

The token is kept in a small JSON key/value file so a restart of the app
does not force another consent prompt while the grant is still valid.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from subtracker.config import settings

logger = logging.getLogger(__name__)

TOKEN_STORAGE_KEY = 'google_calendar_token'


@dataclass(frozen=True)
class StoredToken:
    access_token: str
    expires_at: int  # milliseconds since epoch

    def to_json(self) -> str:
        return json.dumps({'access_token': self.access_token, 'expires_at': self.expires_at})

    @classmethod
    def from_json(cls, raw: str) -> "StoredToken":
        payload = json.loads(raw)
        return cls(access_token=str(payload['access_token']), expires_at=int(payload['expires_at']))


class LocalStorage:
    """String key/value store persisted to a single JSON file."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self.storage_path = Path(storage_path or settings.TOKEN_STORAGE_PATH)
        self._lock = Lock()

    def _load(self) -> Dict[str, str]:
        if not self.storage_path.exists():
            return {}
        try:
            payload = json.loads(self.storage_path.read_text(encoding='utf-8'))
        except Exception as exc:
            logger.warning('Unable to read local storage at %s: %s', self.storage_path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _save(self, items: Dict[str, str]) -> None:
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self.storage_path.write_text(json.dumps(items, indent=2), encoding='utf-8')
        except OSError as exc:
            logger.warning('Unable to persist local storage at %s: %s', self.storage_path, exc)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._load()
            items[key] = value
            self._save(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._load()
            if key in items:
                del items[key]
                self._save(items)


class TokenCache:
    def __init__(self, storage: Optional[LocalStorage] = None, clock: Callable[[], float] = time.time) -> None:
        self.storage = storage or LocalStorage()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def store(self, token: str, ttl_seconds: float) -> StoredToken:
        stored = StoredToken(access_token=token, expires_at=self._now_ms() + int(ttl_seconds * 1000))
        self.storage.set_item(TOKEN_STORAGE_KEY, stored.to_json())
        return stored

    def read(self) -> Optional[StoredToken]:
        """Return the cached token, or None when absent or expired.

        Expired and malformed entries are removed on the way out.
        """
        raw = self.storage.get_item(TOKEN_STORAGE_KEY)
        if not raw:
            return None

        try:
            stored = StoredToken.from_json(raw)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning('Discarding malformed cached token: %s', exc)
            self.storage.remove_item(TOKEN_STORAGE_KEY)
            return None

        if self._now_ms() >= stored.expires_at:
            logger.debug('Cached calendar token expired at %s', stored.expires_at)
            self.storage.remove_item(TOKEN_STORAGE_KEY)
            return None
        return stored
