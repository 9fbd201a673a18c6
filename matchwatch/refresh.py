"""Schedule refresh with a stale-while-revalidate merge policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from matchwatch import Player, RosterEntry

logger = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    async def fetch_player_schedules(self, names: list[str]) -> list[Player]: ...


@dataclass
class ScheduleState:
    """Last known schedules plus the loading/error flags readers render from.

    ``players`` is only ever replaced wholesale, never mutated in place.
    """

    players: list[Player] = field(default_factory=list)
    loading: bool = True
    error: str | None = None


def has_data(fetched: list[Player] | None) -> bool:
    """True if at least one player came back with a non-empty schedule."""
    return bool(fetched) and any(p.schedule for p in fetched)


def empty_roster(roster: list[RosterEntry]) -> list[Player]:
    return [Player(name=entry.name) for entry in roster]


def merge_schedules(
    roster: list[RosterEntry],
    current: list[Player],
    fetched: list[Player] | None,
) -> list[Player]:
    """Reconcile a fetch result with the current schedules.

    With data, returns one player per roster name in roster order, matched
    case-insensitively and renamed to the roster spelling. Without data,
    keeps ``current`` (the same object) or, on first load, an empty entry
    per roster name.
    """
    if not has_data(fetched):
        return current if current else empty_roster(roster)

    by_name: dict[str, Player] = {}
    for player in fetched:
        # First occurrence wins if the source repeats a player
        by_name.setdefault(player.name.lower(), player)

    merged: list[Player] = []
    for entry in roster:
        found = by_name.get(entry.name.lower())
        schedule = list(found.schedule) if found else []
        merged.append(Player(name=entry.name, schedule=schedule))
    return merged


class RefreshController:
    """Fetches schedules and merges them into a ScheduleState."""

    def __init__(self, roster: list[RosterEntry], source: ScheduleSource, state: ScheduleState) -> None:
        self.roster = roster
        self.source = source
        self.state = state

    async def refresh(self) -> None:
        state = self.state
        state.loading = True
        try:
            fetched = await self.source.fetch_player_schedules([p.name for p in self.roster])
        except Exception as e:
            if state.players:
                logger.error("Schedule refresh failed, keeping stale data: %s", e)
            else:
                logger.error("Initial schedule load failed: %s", e)
                state.players = []
                state.error = str(e) or "An unknown error occurred."
        else:
            if not has_data(fetched):
                logger.info("Schedule source returned no matches")
            state.players = merge_schedules(self.roster, state.players, fetched)
            state.error = None
        finally:
            state.loading = False
