"""Roster loading and environment settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass

from matchwatch import RosterEntry

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


def load_roster(path: str = "roster.json") -> list[RosterEntry]:
    """Load the fixed player roster from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [RosterEntry(**p) for p in data["players"]]


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Runtime settings, read from the environment."""

    roster_path: str = "roster.json"
    state_path: str = ".cache/state.json"
    model: str = DEFAULT_MODEL
    refresh_minutes: int = 5
    check_seconds: int = 30
    prune_sent: bool = False
    pushover_user_key: str = ""
    pushover_api_token: str = ""

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            roster_path=os.environ.get("MATCHWATCH_ROSTER", "roster.json"),
            state_path=os.environ.get("MATCHWATCH_STATE_PATH", ".cache/state.json"),
            model=os.environ.get("MATCHWATCH_MODEL", DEFAULT_MODEL),
            refresh_minutes=max(1, int(os.environ.get("MATCHWATCH_REFRESH_MINUTES", "5"))),
            check_seconds=max(1, int(os.environ.get("MATCHWATCH_CHECK_SECONDS", "30"))),
            prune_sent=_env_bool("MATCHWATCH_PRUNE_SENT"),
            pushover_user_key=os.environ.get("PUSHOVER_USER_KEY", ""),
            pushover_api_token=os.environ.get("PUSHOVER_API_TOKEN", ""),
        )
