#!/usr/bin/env python3
"""
Match Watch — Esports Player Tracker

Keeps the schedules of the players in roster.json up to date and sends a
Pushover notification shortly before a followed player's match starts.

Usage:
    python track_matches.py run                       # Run the refresh/notify loop
    python track_matches.py status                    # Refresh once and print schedules
    python track_matches.py follow Boki               # Follow / unfollow a player
    python track_matches.py unfollow Boki
    python track_matches.py notify-minutes 10         # Notify 10 minutes before start
    python track_matches.py enable-notifications
    python track_matches.py analyze Boki Donatello FIFA
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from matchwatch import Match, MatchStatus, Player
from matchwatch.config import Settings, load_roster
from matchwatch.dashboard import PERMISSION_DENIED_MESSAGE, Dashboard
from matchwatch.notify import PushoverNotifier, send_error_notification
from matchwatch.preferences import Preferences
from matchwatch.source import LLMSource
from matchwatch.store import JsonFileStore


def build_dashboard(settings: Settings) -> Dashboard:
    """Wire the dashboard from settings."""
    roster = load_roster(settings.roster_path)
    store = JsonFileStore(settings.state_path)
    source = LLMSource(roster, model=settings.model)
    sink = PushoverNotifier(store, settings.pushover_user_key, settings.pushover_api_token)
    return Dashboard(
        roster=roster,
        source=source,
        sink=sink,
        preferences=Preferences(store),
        refresh_minutes=settings.refresh_minutes,
        check_seconds=settings.check_seconds,
        prune_sent=settings.prune_sent,
    )


def format_match(match: Match) -> str:
    start = match.starts_at
    when = start.strftime("%Y-%m-%d %H:%M UTC") if start else "Invalid Date"
    line = f"    {when}  vs {match.opponent} ({match.game}) — {match.tournament}"
    if match.status is MatchStatus.LIVE:
        line += "  [LIVE]"
        if match.stream_url:
            line += f" {match.stream_url}"
    elif match.status is MatchStatus.FINISHED:
        line += f"  [{match.result.value.upper() if match.result else 'FINISHED'}]"
    return line


def print_players(players: list[Player]) -> None:
    for player in players:
        print(f"\n{player.name}")
        schedule = player.sorted_schedule()
        if not schedule:
            print("    No upcoming matches found.")
        for match in schedule:
            print(format_match(match))


def cmd_status(dashboard: Dashboard) -> int:
    asyncio.run(dashboard.refresh())
    if dashboard.state.error:
        print("Error Fetching Data")
        print(f"  {dashboard.state.error}")
        send_error_notification(f"Initial schedule load failed: {dashboard.state.error}")
        return 1

    players = dashboard.displayed_players()
    if not players:
        print("No Players Followed")
        print("  Use 'track_matches.py follow <name>' to select your favorite players.")
        return 0
    print_players(players)
    return 0


def cmd_analyze(dashboard: Dashboard, player: str, opponent: str, game: str) -> int:
    match = Match(
        opponent=opponent, tournament="", game=game, date_time="", status=MatchStatus.UPCOMING
    )
    row = dashboard.analysis_row(player, match)
    result = asyncio.run(row.request())
    if row.error or result is None:
        print(row.error or "Analysis failed.")
        return 1
    print(f"Win Chance: {result.win_percentage}%")
    print(result.analysis)
    return 0


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track esports players' matches.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="run the refresh and notification loop")
    sub.add_parser("status", help="refresh once and print followed players' schedules")
    for name in ("follow", "unfollow"):
        p = sub.add_parser(name, help=f"{name} a roster player")
        p.add_argument("name")
    p = sub.add_parser("notify-minutes", help="minutes before a match to notify (1-60)")
    p.add_argument("minutes", type=int)
    sub.add_parser("enable-notifications", help="validate Pushover credentials")
    p = sub.add_parser("analyze", help="estimate a player's win chance")
    p.add_argument("player")
    p.add_argument("opponent")
    p.add_argument("game")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    dashboard = build_dashboard(settings or Settings.from_env())

    if args.command == "run":
        try:
            asyncio.run(dashboard.run_forever())
        except KeyboardInterrupt:
            print("\nStopped")
        return 0

    if args.command == "status":
        return cmd_status(dashboard)

    if args.command in ("follow", "unfollow"):
        try:
            if dashboard.is_following(args.name) != (args.command == "follow"):
                dashboard.toggle_follow(args.name)
        except ValueError as e:
            print(f"ERROR: {e}")
            return 1
        print(f"Following: {', '.join(dashboard.preferences.followed_players) or '(nobody)'}")
        return 0

    if args.command == "notify-minutes":
        minutes = dashboard.set_notify_minutes(args.minutes)
        print(f"Notify me {minutes} minutes before a match starts.")
        return 0

    if args.command == "enable-notifications":
        if dashboard.enable_notifications():
            print("Match notifications enabled")
            return 0
        print(PERMISSION_DENIED_MESSAGE)
        return 1

    return cmd_analyze(dashboard, args.player, args.opponent, args.game)


if __name__ == "__main__":
    sys.exit(main())
