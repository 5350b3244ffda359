"""Free-text therapist recommendation from a hosted chat model.

The ranking is computed locally; the model only phrases a justification for
the top matches.  The client is injected where it is needed, never created
at import time.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from physiobook.errors import RecommendationError
from physiobook.matching.specialties import describe

if TYPE_CHECKING:
    from physiobook.matching.ranking import MatchContext, MatchResult

__all__ = [
    "Recommendation",
    "RecommenderProtocol",
    "LLMRecommender",
    "build_recommendation_messages",
    "fallback_recommendation",
    "no_match_recommendation",
]

PROMPT_TOP_N = 3

_SYSTEM_PROMPT = (
    "You are an AI assistant helping patients find the best physiotherapist for their needs.\n"
    "Based on the patient's condition and available therapists, provide a personalized "
    "recommendation.\nKeep your response concise and helpful."
)


@dataclass(frozen=True)
class Recommendation:
    top_recommendation: str
    reasoning: str
    alternative_note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "top_recommendation": self.top_recommendation,
            "reasoning": self.reasoning,
        }
        if self.alternative_note:
            payload["alternative_note"] = self.alternative_note
        return payload


class RecommenderProtocol(Protocol):
    async def recommend(
        self, context: MatchContext, matches: list[MatchResult]
    ) -> Recommendation:
        """Explain the ranking; raise RecommendationError on failure."""
        ...


def _describe_match(position: int, match: MatchResult) -> str:
    return (
        f"{position}. {match.name}\n"
        f"   - Match Score: {match.score:g}%\n"
        f"   - Specialties: {', '.join(describe(s) for s in match.specialties)}\n"
        f"   - Experience: {match.years_of_experience} years\n"
        f"   - Rating: {match.average_rating}/5\n"
        f"   - Match Reasons: {'; '.join(match.reasons)}"
    )


def build_recommendation_messages(
    context: MatchContext, matches: list[MatchResult]
) -> list[dict[str, str]]:
    """Chat messages describing the patient and the top ranked therapists."""
    ranked = "\n".join(
        _describe_match(i, m) for i, m in enumerate(matches[:PROMPT_TOP_N], start=1)
    )
    user = (
        "Patient Condition:\n"
        f"- Category: {context.triage_category}\n"
        f"- Urgency: {context.urgency_level}\n"
        f"- Recommended Specialty: {describe(context.recommended_specialty)}\n"
        f"- Affected Area: {context.body_region}\n\n"
        "Available Therapists (ranked by match score):\n"
        f"{ranked}\n\n"
        "Provide a brief, personalized recommendation explaining why the top match is "
        "suitable, and mention when an alternative might be better.\n"
        'Return as JSON: { "topRecommendation": "...", "reasoning": "...", '
        '"alternativeNote": "..." }'
    )
    return [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def fallback_recommendation(matches: list[MatchResult]) -> Recommendation:
    """Deterministic text used when the model is disabled or fails."""
    return Recommendation(
        top_recommendation=matches[0].name if matches else "No match found",
        reasoning=(
            "Based on specialty match and availability, this therapist is well-suited "
            "for your condition."
        ),
    )


def no_match_recommendation() -> Recommendation:
    return Recommendation(
        top_recommendation="No therapists available",
        reasoning=(
            "We couldn't find any available therapists matching your criteria. "
            "Please try different preferences or contact support."
        ),
    )


class LLMRecommender:
    """OpenAI-compatible chat-completions client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    async def recommend(
        self, context: MatchContext, matches: list[MatchResult]
    ) -> Recommendation:
        try:
            resp = await self._client.post(
                "/chat/completions",
                json={
                    "model": self._model,
                    "messages": build_recommendation_messages(context, matches),
                    "response_format": {"type": "json_object"},
                    "temperature": 0.5,
                    "max_tokens": 400,
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise RecommendationError(f"Recommendation model unreachable: {e}") from e

        try:
            content = resp.json()["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise RecommendationError(f"Unexpected recommendation payload: {e}") from e

        top = parsed.get("topRecommendation") if isinstance(parsed, dict) else None
        if not top:
            raise RecommendationError("Recommendation payload has no topRecommendation")
        return Recommendation(
            top_recommendation=str(top),
            reasoning=str(parsed.get("reasoning", "")),
            alternative_note=parsed.get("alternativeNote") or None,
        )

    async def close(self) -> None:
        await self._client.aclose()
