"""Fakes for the schedule source, notification sink, clock and store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from matchwatch import AnalysisResult, Match, MatchStatus, Player, RosterEntry

T0 = datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)

ROSTER = [RosterEntry(name="Boki"), RosterEntry(name="Donatello")]


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def upcoming(minutes: float, opponent: str = "Vinniepuh", start: datetime = T0) -> Match:
    return Match(
        opponent=opponent,
        tournament="Esoccer Battle",
        game="FIFA",
        date_time=iso(start + timedelta(minutes=minutes)),
        status=MatchStatus.UPCOMING,
    )


class FakeSource:
    """Returns queued responses; an Exception instance is raised instead."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[list[str]] = []
        self.analysis_calls: list[tuple[str, str, str]] = []
        self.analysis: AnalysisResult | Exception = AnalysisResult(60, "Better form.")

    async def fetch_player_schedules(self, names: list[str]) -> list[Player]:
        self.calls.append(list(names))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def analyze_match(self, player: str, opponent: str, game: str) -> AnalysisResult:
        self.analysis_calls.append((player, opponent, game))
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis


class FakeSink:
    def __init__(self, granted: bool = True, grant_on_request: bool = True) -> None:
        self.granted = granted
        self.grant_on_request = grant_on_request
        self.emitted: list[tuple[str, str, str | None]] = []
        self.requests = 0

    def permission_granted(self) -> bool:
        return self.granted

    def request_permission(self) -> bool:
        self.requests += 1
        self.granted = self.grant_on_request
        return self.granted

    def emit(self, title: str, body: str, icon_url: str | None = None) -> bool:
        if not self.granted:
            return False
        self.emitted.append((title, body, icon_url))
        return True


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


class MemoryStore:
    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
