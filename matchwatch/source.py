"""LLM-backed schedule and match-analysis source.

The model is asked to look up schedules on the web and answer with bare JSON.
Its output is parsed best-effort: malformed top-level structure is an error,
individual malformed matches are dropped.
"""

from __future__ import annotations

import json
import logging
import re

from matchwatch import AnalysisResult, Match, Player, RosterEntry
from matchwatch.config import DEFAULT_MODEL

logger = logging.getLogger(__name__)

SCHEDULE_ERROR = (
    "Failed to fetch or parse player schedules. "
    "The AI model may have returned an unexpected format."
)
ANALYSIS_ERROR = (
    "Failed to analyze match. The AI model may have returned an unexpected format."
)

MAX_TOKENS = 16000
# Resumptions of a turn paused by the server-side web search tool
MAX_CONTINUATIONS = 3

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ScheduleSourceError(Exception):
    """The schedule source failed or answered in an unexpected format."""


class AnalysisError(Exception):
    """The analysis source failed or answered in an unexpected format."""


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    return _FENCE_RE.sub("", text.strip())


def _json_payload(text: str, opener: str, closer: str) -> str:
    """Cut the outermost JSON value out of text that may carry prose around it."""
    text = strip_code_fence(text)
    start, end = text.find(opener), text.rfind(closer)
    if start == -1 or end < start:
        return text
    return text[start : end + 1]


def parse_player_schedules(text: str) -> list[Player]:
    """Parse the model's schedule answer into Player objects.

    Raises ValueError when the answer is not a JSON array of player objects.
    """
    data = json.loads(_json_payload(text, "[", "]"))
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of players")

    players: list[Player] = []
    for entry in data:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise ValueError(f"malformed player entry: {entry!r}")
        schedule = entry.get("schedule") or []
        if not isinstance(schedule, list):
            raise ValueError(f"malformed schedule for {entry['name']}")

        matches: list[Match] = []
        for item in schedule:
            try:
                matches.append(Match.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Dropping malformed match for %s: %r (%s)", entry["name"], item, e)
        players.append(Player(name=entry["name"], schedule=matches))
    return players


def parse_match_analysis(text: str) -> AnalysisResult:
    """Parse the model's analysis answer.

    Raises ValueError unless winPercentage is an integer in 0..100.
    """
    data = json.loads(_json_payload(text, "{", "}"))
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    pct = data.get("winPercentage")
    if isinstance(pct, bool) or not isinstance(pct, int) or not 0 <= pct <= 100:
        raise ValueError(f"winPercentage out of range: {pct!r}")
    return AnalysisResult(win_percentage=pct, analysis=str(data.get("analysis") or ""))


def schedule_prompt(roster: list[RosterEntry]) -> str:
    sources = "\n".join(f"- {p.name}: {p.source_url}" for p in roster if p.source_url)
    return f"""
Use the following websites as the primary source of truth to find match schedules for these esports players:
{sources}

For each player, find their match schedules for the game they play (e.g., FIFA 8 minutes).
For each player, provide their name and a list of their matches including:
1. Any matches finished in the last 24 hours.
2. Any matches that are currently live.
3. All upcoming matches scheduled for the next 7 days.

For each match, include the opponent, the tournament name, the game being played, and the match date/time in UTC ISO 8601 format.
Determine each match's status from the current time and the websites. The status must be one of: 'upcoming', 'live', or 'finished'.
For 'finished' matches, include a "result" field of 'win', 'loss' or 'draw' for the tracked player, or null if it cannot be determined.
For 'live' matches, include a "streamUrl" field with a link to a live stream, or null if none can be found.

Return only a JSON array, with no other text or markdown, in this format:
[
  {{
    "name": "Boki",
    "schedule": [
      {{"opponent": "OpponentName", "tournament": "TournamentName", "game": "FIFA", "dateTime": "YYYY-MM-DDTHH:MM:SSZ", "status": "upcoming", "streamUrl": null, "result": null}}
    ]
  }}
]

If no relevant matches are found for a player, return an empty "schedule" array for them.
"""


def analysis_prompt(player: str, opponent: str, game: str) -> str:
    return f"""
Provide a statistical analysis and win percentage prediction for an upcoming esports match.
Player to analyze: "{player}"
Opponent: "{opponent}"
Game: "{game}"

Consider recent performance, head-to-head history, current form and any other relevant competitive factors.
Conclude with a win percentage for "{player}".

Return only a JSON object, with no other text or markdown, in this format:
{{"winPercentage": 65, "analysis": "One or two sentences explaining the estimate."}}
"""


class LLMSource:
    """Schedule and analysis source backed by the Anthropic Messages API."""

    def __init__(self, roster: list[RosterEntry], model: str = DEFAULT_MODEL, client=None) -> None:
        self.roster = roster
        self.model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            import anthropic

            # Reads ANTHROPIC_API_KEY from the environment
            self._client = anthropic.AsyncAnthropic()
        return self._client

    async def _complete(self, prompt: str, tools: list[dict] | None = None) -> str:
        messages: list[dict] = [{"role": "user", "content": prompt}]
        parts: list[str] = []
        for _ in range(MAX_CONTINUATIONS + 1):
            kwargs = {"model": self.model, "max_tokens": MAX_TOKENS, "messages": messages}
            if tools:
                kwargs["tools"] = tools
            message = await self._get_client().messages.create(**kwargs)
            usage = getattr(message, "usage", None)
            stop_reason = getattr(message, "stop_reason", None)
            logger.info(
                "LLM call: model=%s in_tok=%d out_tok=%d stop=%s",
                self.model,
                getattr(usage, "input_tokens", 0),
                getattr(usage, "output_tokens", 0),
                stop_reason,
            )
            parts.extend(
                block.text for block in message.content if getattr(block, "type", None) == "text"
            )
            if stop_reason == "pause_turn":
                # Send the paused turn back as-is so the model resumes it
                messages = messages + [{"role": "assistant", "content": message.content}]
                continue
            if stop_reason == "max_tokens":
                raise ValueError(f"response truncated at max_tokens={MAX_TOKENS}")
            return "".join(parts)
        raise ValueError(f"turn still paused after {MAX_CONTINUATIONS} continuations")

    async def fetch_player_schedules(self, names: list[str]) -> list[Player]:
        wanted = {n.lower() for n in names}
        roster = [p for p in self.roster if p.name.lower() in wanted]
        try:
            text = await self._complete(schedule_prompt(roster), tools=[WEB_SEARCH_TOOL])
            return parse_player_schedules(text)
        except Exception as e:
            logger.error("Error fetching player schedules: %s", e)
            raise ScheduleSourceError(SCHEDULE_ERROR) from e

    async def analyze_match(self, player: str, opponent: str, game: str) -> AnalysisResult:
        try:
            text = await self._complete(analysis_prompt(player, opponent, game))
            return parse_match_analysis(text)
        except Exception as e:
            logger.error("Error analyzing %s vs %s: %s", player, opponent, e)
            raise AnalysisError(ANALYSIS_ERROR) from e
