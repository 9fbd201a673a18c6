"""User preferences: followed players and notification lead time."""

from __future__ import annotations

import json
import math
from typing import Protocol

FOLLOWED_PLAYERS_KEY = "followedPlayers"
NOTIFY_MINUTES_KEY = "notificationMinutes"

DEFAULT_FOLLOWED = ("Boki",)
DEFAULT_NOTIFY_MINUTES = 5
MIN_NOTIFY_MINUTES = 1
MAX_NOTIFY_MINUTES = 60


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


def clamp_minutes(value: int) -> int:
    return max(MIN_NOTIFY_MINUTES, min(MAX_NOTIFY_MINUTES, int(value)))


class Preferences:
    """Followed players and notify window, persisted in a key-value store.

    Missing or unparsable values fall back to the defaults.
    """

    def __init__(
        self,
        store: KeyValueStore,
        default_followed: tuple[str, ...] = DEFAULT_FOLLOWED,
        default_minutes: int = DEFAULT_NOTIFY_MINUTES,
    ) -> None:
        self._store = store
        self._default_followed = list(default_followed)
        self._default_minutes = default_minutes

    def _read(self, key: str):
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @property
    def followed_players(self) -> list[str]:
        value = self._read(FOLLOWED_PLAYERS_KEY)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return list(self._default_followed)
        return value

    @followed_players.setter
    def followed_players(self, names: list[str]) -> None:
        self._store.set(FOLLOWED_PLAYERS_KEY, json.dumps(list(names)))

    @property
    def notify_minutes(self) -> int:
        value = self._read(NOTIFY_MINUTES_KEY)
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return self._default_minutes
        # json.loads accepts NaN, Infinity and overflowing literals
        if isinstance(value, float) and not math.isfinite(value):
            return self._default_minutes
        return clamp_minutes(value)

    @notify_minutes.setter
    def notify_minutes(self, minutes: int) -> None:
        self._store.set(NOTIFY_MINUTES_KEY, json.dumps(clamp_minutes(minutes)))
