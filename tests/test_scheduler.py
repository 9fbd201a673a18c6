"""Tests for pre-match notification scheduling."""

from __future__ import annotations

from datetime import timedelta

import pytest
from helpers import T0, FakeClock, FakeSink, MemoryStore, iso, upcoming

from matchwatch import Match, MatchStatus, Player
from matchwatch.preferences import Preferences
from matchwatch.refresh import ScheduleState
from matchwatch.scheduler import NotificationScheduler, notification_key


def make_scheduler(
    players: list[Player],
    sink: FakeSink,
    clock: FakeClock,
    followed: tuple[str, ...] = ("Boki",),
    minutes: int = 5,
) -> NotificationScheduler:
    prefs = Preferences(MemoryStore())
    prefs.followed_players = list(followed)
    prefs.notify_minutes = minutes
    return NotificationScheduler(ScheduleState(players=players), prefs, sink, clock=clock)


class TestNotificationScheduler:
    def test_fires_once_inside_window(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(3, opponent="Donatello")])], sink, clock)
        sent = scheduler.check()
        assert len(sent) == 1
        assert sink.emitted == [(
            "Boki's match is starting soon!",
            "vs Donatello in Esoccer Battle",
            "https://picsum.photos/seed/Boki/128",
        )]

    def test_exactly_once_across_ticks(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(3)])], sink, clock)
        for _ in range(6):
            scheduler.check()
            clock.advance(0.5)
        assert len(sink.emitted) == 1

    def test_later_match_fires_when_window_opens(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(3), upcoming(10, opponent="X")])], sink, clock)
        scheduler.check()
        assert [body for _, body, _ in sink.emitted] == ["vs Vinniepuh in Esoccer Battle"]

        clock.advance(4.5)  # T+10 match is now 5.5 minutes away
        scheduler.check()
        assert len(sink.emitted) == 1

        clock.advance(0.5)  # exactly 5 minutes away
        scheduler.check()
        clock.advance(0.5)
        scheduler.check()
        assert [body for _, body, _ in sink.emitted] == [
            "vs Vinniepuh in Esoccer Battle",
            "vs X in Esoccer Battle",
        ]

    @pytest.mark.parametrize("minutes, fires", [
        (0, False),
        (-1, False),
        (0.05, True),
        (2.5, True),
        (5, True),
        (5.5, False),
        (30, False),
    ])
    def test_window_boundaries(self, sink: FakeSink, clock: FakeClock, minutes: float, fires: bool) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(minutes)])], sink, clock)
        scheduler.check()
        assert bool(sink.emitted) is fires

    def test_only_upcoming_matches(self, sink: FakeSink, clock: FakeClock) -> None:
        live = Match("A", "Cup", "FIFA", iso(T0 + timedelta(minutes=2)), MatchStatus.LIVE)
        finished = Match("B", "Cup", "FIFA", iso(T0 + timedelta(minutes=2)), MatchStatus.FINISHED)
        scheduler = make_scheduler([Player("Boki", [live, finished])], sink, clock)
        assert scheduler.check() == []

    def test_status_flip_stops_scanning(self, sink: FakeSink, clock: FakeClock) -> None:
        state = ScheduleState(players=[Player("Boki", [upcoming(20)])])
        prefs = Preferences(MemoryStore())
        scheduler = NotificationScheduler(state, prefs, sink, clock=clock)
        scheduler.check()
        match = state.players[0].schedule[0]
        state.players = [Player("Boki", [Match(match.opponent, match.tournament, match.game,
                                               match.date_time, MatchStatus.LIVE)])]
        clock.advance(18)
        assert scheduler.check() == []

    def test_unfollowed_players_ignored(self, sink: FakeSink, clock: FakeClock) -> None:
        players = [Player("Boki", [upcoming(3)]), Player("Donatello", [upcoming(3)])]
        scheduler = make_scheduler(players, sink, clock, followed=("Donatello",))
        sent = scheduler.check()
        assert [n.title for n in sent] == ["Donatello's match is starting soon!"]

    def test_skips_without_permission(self, clock: FakeClock) -> None:
        sink = FakeSink(granted=False)
        scheduler = make_scheduler([Player("Boki", [upcoming(3)])], sink, clock)
        assert scheduler.check() == []
        assert scheduler.sent_keys == frozenset()

    def test_skips_empty_store(self, sink: FakeSink, clock: FakeClock) -> None:
        assert make_scheduler([], sink, clock).check() == []

    def test_unparsable_start_time_skipped(self, sink: FakeSink, clock: FakeClock) -> None:
        bad = Match("A", "Cup", "FIFA", "soon", MatchStatus.UPCOMING)
        assert make_scheduler([Player("Boki", [bad])], sink, clock).check() == []

    def test_rescheduled_match_is_new_key(self, sink: FakeSink, clock: FakeClock) -> None:
        state = ScheduleState(players=[Player("Boki", [upcoming(3)])])
        scheduler = NotificationScheduler(state, Preferences(MemoryStore()), sink, clock=clock)
        scheduler.check()
        state.players = [Player("Boki", [upcoming(4)])]
        scheduler.check()
        assert len(sink.emitted) == 2

    def test_dedup_key_uses_exact_timestamp(self) -> None:
        player = Player("Boki")
        match = Match("A", "Cup", "FIFA", "2025-03-01T18:03:00Z", MatchStatus.UPCOMING)
        assert notification_key(player, match) == "Boki-2025-03-01T18:03:00Z"

    def test_window_follows_preferences(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(12)])], sink, clock)
        assert scheduler.check() == []
        scheduler.preferences.notify_minutes = 15
        assert len(scheduler.check()) == 1

    def test_followed_spelling_ignores_case(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(3)])], sink, clock, followed=("boki",))
        assert len(scheduler.check()) == 1

    def test_non_finite_stored_minutes_use_default(self, sink: FakeSink, clock: FakeClock) -> None:
        store = MemoryStore({"notificationMinutes": "Infinity"})
        state = ScheduleState(players=[Player("Boki", [upcoming(3), upcoming(8, opponent="X")])])
        scheduler = NotificationScheduler(state, Preferences(store), sink, clock=clock)
        assert [n.body for n in scheduler.check()] == ["vs Vinniepuh in Esoccer Battle"]

    def test_due_records_without_delivering(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(3)])], sink, clock)
        pending = scheduler.due()
        assert [n.key for n in pending] == [notification_key(Player("Boki"), upcoming(3))]
        assert sink.emitted == []
        assert scheduler.due() == []
        assert scheduler.deliver(pending[0]) is True
        assert len(sink.emitted) == 1


class TestPrune:
    def test_prune_drops_only_expired_keys(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(2), upcoming(4, opponent="X")])], sink, clock)
        scheduler.check()
        assert len(scheduler.sent_keys) == 2

        clock.advance(8)  # first match started 6 min ago, second 4 min ago
        assert scheduler.prune() == 1
        assert len(scheduler.sent_keys) == 1

    def test_prune_never_causes_refire(self, sink: FakeSink, clock: FakeClock) -> None:
        scheduler = make_scheduler([Player("Boki", [upcoming(2)])], sink, clock)
        scheduler.check()
        clock.advance(30)
        scheduler.prune()
        scheduler.check()
        assert len(sink.emitted) == 1
