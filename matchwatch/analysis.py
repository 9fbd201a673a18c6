"""On-demand win-probability analysis for a single match row."""

from __future__ import annotations

import logging
from typing import Protocol

from matchwatch import AnalysisResult, Match, MatchStatus

logger = logging.getLogger(__name__)

ROW_ERROR = "Analysis failed."


class AnalysisSource(Protocol):
    async def analyze_match(self, player: str, opponent: str, game: str) -> AnalysisResult: ...


class MatchAnalysisRow:
    """Analysis state for one rendered match row.

    Rows share nothing: no caching, every request is a fresh call.
    """

    def __init__(self, player_name: str, match: Match, source: AnalysisSource) -> None:
        self.player_name = player_name
        self.match = match
        self.source = source
        self.result: AnalysisResult | None = None
        self.error: str | None = None
        self.analyzing = False

    @property
    def enabled(self) -> bool:
        return self.match.status is not MatchStatus.FINISHED and not self.analyzing

    async def request(self) -> AnalysisResult | None:
        if self.match.status is MatchStatus.FINISHED:
            return None

        self.analyzing = True
        self.error = None
        try:
            self.result = await self.source.analyze_match(
                self.player_name, self.match.opponent, self.match.game
            )
        except Exception as e:
            logger.error("Analysis for %s vs %s failed: %s", self.player_name, self.match.opponent, e)
            self.error = ROW_ERROR
        finally:
            self.analyzing = False
        return self.result
