"""Dashboard controller: owns the state, the timers and the user controls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from matchwatch import Match, Player, RosterEntry
from matchwatch.analysis import AnalysisSource, MatchAnalysisRow
from matchwatch.preferences import Preferences, clamp_minutes
from matchwatch.refresh import RefreshController, ScheduleSource, ScheduleState
from matchwatch.scheduler import Notification, NotificationScheduler, NotificationSink, utc_now

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = (
    "Notification permissions were denied. "
    "Check PUSHOVER_USER_KEY and PUSHOVER_API_TOKEN and try again."
)


class Dashboard:
    """Single owner of schedule, preference and notification state."""

    def __init__(
        self,
        roster: list[RosterEntry],
        source: ScheduleSource,
        sink: NotificationSink,
        preferences: Preferences,
        analysis_source: AnalysisSource | None = None,
        clock: Callable[[], datetime] = utc_now,
        refresh_minutes: int = 5,
        check_seconds: float = 30,
        prune_sent: bool = False,
    ) -> None:
        self.roster = roster
        self.preferences = preferences
        self.sink = sink
        self.analysis_source = analysis_source or source
        self.state = ScheduleState()
        self.refresher = RefreshController(roster, source, self.state)
        self.notifier = NotificationScheduler(self.state, preferences, sink, clock=clock)
        self.refresh_minutes = refresh_minutes
        self.check_seconds = check_seconds
        self.prune_sent = prune_sent
        self._denial_reported = False

    @property
    def roster_names(self) -> list[str]:
        return [entry.name for entry in self.roster]

    # --- timer callbacks ---

    async def refresh(self) -> None:
        await self.refresher.refresh()

    async def check_notifications(self) -> list[Notification]:
        """Timer job. Dedup bookkeeping stays on the loop; delivery runs in a worker thread."""
        pending = self.notifier.due()
        for notification in pending:
            await asyncio.to_thread(self.notifier.deliver, notification)
        if self.prune_sent:
            self.notifier.prune()
        return pending

    def start(self, scheduler: AsyncIOScheduler) -> None:
        """Register both periodic jobs; refresh also runs right away."""
        scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(minutes=self.refresh_minutes),
            id="schedule_refresh",
            name=f"Schedule Refresh (every {self.refresh_minutes}min)",
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.check_notifications,
            trigger=IntervalTrigger(seconds=self.check_seconds),
            id="notification_check",
            name=f"Notification Check (every {self.check_seconds}s)",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def run_forever(self) -> None:
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.start(scheduler)
        scheduler.start()
        logger.info(
            "Tracking %d players (refresh %dmin, checks %gs)",
            len(self.roster),
            self.refresh_minutes,
            self.check_seconds,
        )
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)

    # --- user controls ---

    def toggle_follow(self, name: str) -> bool:
        """Follow or unfollow a roster player. Returns True if now followed."""
        canonical = next((n for n in self.roster_names if n.lower() == name.lower()), None)
        if canonical is None:
            raise ValueError(f"{name!r} is not on the roster")
        followed = self.preferences.followed_players
        remaining = [n for n in followed if n.lower() != canonical.lower()]
        if len(remaining) < len(followed):
            self.preferences.followed_players = remaining
            return False
        self.preferences.followed_players = followed + [canonical]
        return True

    def is_following(self, name: str) -> bool:
        return name.lower() in {n.lower() for n in self.preferences.followed_players}

    def set_notify_minutes(self, minutes: int) -> int:
        minutes = clamp_minutes(minutes)
        self.preferences.notify_minutes = minutes
        return minutes

    async def retry(self) -> None:
        self.state.loading = True
        await self.refresh()

    def enable_notifications(self) -> bool:
        if self.sink.permission_granted():
            return True
        granted = self.sink.request_permission()
        if not granted and not self._denial_reported:
            logger.warning(PERMISSION_DENIED_MESSAGE)
            self._denial_reported = True
        return granted

    # --- views ---

    def displayed_players(self) -> list[Player]:
        return [p for p in self.state.players if self.is_following(p.name)]

    def analysis_row(self, player: Player | str, match: Match) -> MatchAnalysisRow:
        name = player.name if isinstance(player, Player) else player
        return MatchAnalysisRow(name, match, self.analysis_source)
