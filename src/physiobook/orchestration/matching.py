"""Therapist matching workflow: load pool → rank → explain."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Any

import anyio.to_thread

from physiobook.errors import RecommendationError
from physiobook.logging import get_logger
from physiobook.matching.ranking import MatchContext, MatchResult, rank_therapists
from physiobook.recommendation.llm import (
    Recommendation,
    fallback_recommendation,
    no_match_recommendation,
)

if TYPE_CHECKING:
    from physiobook.matching.ranking import Candidate
    from physiobook.recommendation.llm import RecommenderProtocol
    from physiobook.settings import Settings
    from physiobook.storage.therapists import TherapistDirectoryProtocol

__all__ = ["TherapistMatcher", "MatchingOutcome"]

logger = get_logger(component="matching")


@dataclass(frozen=True)
class MatchingOutcome:
    matches: list[MatchResult]
    recommendation: Recommendation
    pool_size: int = 0
    used_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "recommendation": self.recommendation.to_dict(),
        }


class TherapistMatcher:
    """Ranks the therapist pool for a patient and attaches a recommendation."""

    def __init__(
        self,
        settings: Settings,
        directory: TherapistDirectoryProtocol,
        recommender: RecommenderProtocol | None = None,
    ) -> None:
        self._settings = settings
        self._directory = directory
        self._recommender = recommender

    def _rank_parallel(
        self, pool: list[Candidate], context: MatchContext, limit: int
    ) -> list[MatchResult]:
        slot_limit = self._settings.match_slot_limit
        with ThreadPoolExecutor(max_workers=self._settings.scoring_workers) as executor:
            return rank_therapists(
                pool, context, limit, executor=executor, slot_limit=slot_limit
            )

    async def _rank(
        self, pool: list[Candidate], context: MatchContext, limit: int
    ) -> list[MatchResult]:
        if len(pool) < self._settings.parallel_scoring_threshold:
            return rank_therapists(
                pool, context, limit, slot_limit=self._settings.match_slot_limit
            )
        # Large pools are ranked off the event loop
        return await anyio.to_thread.run_sync(partial(self._rank_parallel, pool, context, limit))

    async def match(
        self,
        context: MatchContext,
        limit: int | None = None,
        *,
        now: datetime | None = None,
    ) -> MatchingOutcome:
        limit = self._settings.match_default_limit if limit is None else limit
        now = now or datetime.now(UTC)

        pool = self._directory.candidates(now, self._settings.match_slot_limit)
        matches = await self._rank(pool, context, limit)
        logger.info(
            "therapists_ranked",
            specialty=context.recommended_specialty.value,
            pool_size=len(pool),
            returned=len(matches),
            top_score=matches[0].score if matches else None,
        )

        if not matches:
            return MatchingOutcome(
                matches=[], recommendation=no_match_recommendation(), pool_size=len(pool)
            )

        if self._recommender is None:
            return MatchingOutcome(
                matches=matches,
                recommendation=fallback_recommendation(matches),
                pool_size=len(pool),
                used_fallback=True,
            )

        try:
            recommendation = await self._recommender.recommend(context, matches)
        except RecommendationError:
            logger.warning("recommendation_failed", exc_info=True)
            return MatchingOutcome(
                matches=matches,
                recommendation=fallback_recommendation(matches),
                pool_size=len(pool),
                used_fallback=True,
            )
        return MatchingOutcome(
            matches=matches, recommendation=recommendation, pool_size=len(pool)
        )
