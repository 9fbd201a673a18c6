"""Pre-match notifications for followed players."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from matchwatch import Match, MatchStatus, Player
from matchwatch.preferences import Preferences
from matchwatch.refresh import ScheduleState

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def permission_granted(self) -> bool: ...

    def request_permission(self) -> bool: ...

    def emit(self, title: str, body: str, icon_url: str | None = None) -> bool: ...


@dataclass
class Notification:
    title: str
    body: str
    icon_url: str
    key: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def avatar_url(player_name: str, size: int = 128) -> str:
    return f"https://picsum.photos/seed/{player_name}/{size}"


def notification_key(player: Player, match: Match) -> str:
    """Identity of a match instance: player plus the exact start string."""
    return f"{player.name}-{match.date_time}"


class NotificationScheduler:
    """Emits at most one notification per (player, match start).

    The record of sent keys lives only as long as the process.
    """

    def __init__(
        self,
        state: ScheduleState,
        preferences: Preferences,
        sink: NotificationSink,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.state = state
        self.preferences = preferences
        self.sink = sink
        self.clock = clock
        # key -> match start, kept for pruning
        self._sent: dict[str, datetime] = {}

    @property
    def sent_keys(self) -> frozenset[str]:
        return frozenset(self._sent)

    def due(self) -> list[Notification]:
        """Collect the notifications whose window is open and record them as sent.

        Delivery is left to the caller.
        """
        players = self.state.players
        if not players or not self.sink.permission_granted():
            return []

        now = self.clock()
        window = self.preferences.notify_minutes
        followed = {name.lower() for name in self.preferences.followed_players}
        pending: list[Notification] = []

        for player in players:
            if player.name.lower() not in followed:
                continue
            for match in player.schedule:
                if match.status is not MatchStatus.UPCOMING:
                    continue
                start = match.starts_at
                if start is None:
                    continue

                diff_minutes = (start - now).total_seconds() / 60
                if not 0 < diff_minutes <= window:
                    continue
                key = notification_key(player, match)
                if key in self._sent:
                    continue

                notification = Notification(
                    title=f"{player.name}'s match is starting soon!",
                    body=f"vs {match.opponent} in {match.tournament}",
                    icon_url=avatar_url(player.name),
                    key=key,
                )
                # Recorded before delivery, so a failed send is never retried
                self._sent[key] = start
                pending.append(notification)
                logger.info("Notifying %s vs %s (%.1f min)", player.name, match.opponent, diff_minutes)

        return pending

    def deliver(self, notification: Notification) -> bool:
        return self.sink.emit(notification.title, notification.body, notification.icon_url)

    def check(self) -> list[Notification]:
        notifications = self.due()
        for notification in notifications:
            self.deliver(notification)
        return notifications

    def prune(self, now: datetime | None = None) -> int:
        """Forget keys for matches that started over one window ago.

        Such matches can no longer fall inside the window, so forgetting
        them cannot cause a repeat notification. Returns the number dropped.
        """
        now = now or self.clock()
        cutoff = now - timedelta(minutes=self.preferences.notify_minutes)
        stale = [key for key, start in self._sent.items() if start < cutoff]
        for key in stale:
            del self._sent[key]
        return len(stale)
