"""Match Watch — shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class MatchStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    FINISHED = "finished"


class MatchResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


# Display ordering: live first, then upcoming, then finished
_STATUS_ORDER = {MatchStatus.LIVE: 1, MatchStatus.UPCOMING: 2, MatchStatus.FINISHED: 3}


@dataclass
class RosterEntry:
    """A trackable player and the page the schedule source should consult."""

    name: str
    source_url: str = ""


@dataclass
class Match:
    """A single match (upcoming, live or finished)."""

    opponent: str
    tournament: str
    game: str
    date_time: str
    status: MatchStatus
    stream_url: str | None = None
    result: MatchResult | None = None

    def __post_init__(self) -> None:
        # Stream links only make sense while live, results only once finished
        if self.status is not MatchStatus.LIVE:
            self.stream_url = None
        if self.status is not MatchStatus.FINISHED:
            self.result = None

    @property
    def starts_at(self) -> datetime | None:
        """Parsed start time as an aware UTC datetime, or None if unparsable."""
        return parse_timestamp(self.date_time)

    @classmethod
    def from_dict(cls, data: dict) -> Match:
        """Build a Match from the source's JSON shape.

        Raises ValueError (or KeyError/TypeError) when a required field is
        missing or the status is unknown.
        """
        result = data.get("result")
        return cls(
            opponent=str(data["opponent"]),
            tournament=str(data["tournament"]),
            game=str(data.get("game") or ""),
            date_time=str(data["dateTime"]),
            status=MatchStatus(data["status"]),
            stream_url=data.get("streamUrl") or None,
            result=MatchResult(result) if result in {r.value for r in MatchResult} else None,
        )

    def to_dict(self) -> dict:
        return {
            "opponent": self.opponent,
            "tournament": self.tournament,
            "game": self.game,
            "dateTime": self.date_time,
            "status": self.status.value,
            "streamUrl": self.stream_url,
            "result": self.result.value if self.result else None,
        }


@dataclass
class Player:
    """A tracked player and their known schedule."""

    name: str
    schedule: list[Match] = field(default_factory=list)

    def sorted_schedule(self) -> list[Match]:
        """Schedule in display order.

        Live matches first, then upcoming (soonest first), then finished
        (most recent first). Unparsable times go last within their group.
        """

        def key(match: Match) -> tuple:
            start = match.starts_at
            ts = start.timestamp() if start else 0.0
            if match.status is MatchStatus.FINISHED:
                ts = -ts
            return (_STATUS_ORDER[match.status], start is None, ts)

        return sorted(self.schedule, key=key)


@dataclass
class AnalysisResult:
    """Win-probability estimate for one match."""

    win_percentage: int
    analysis: str


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are assumed to be UTC. Returns None if unparsable.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
