"""Typed errors raised by the scoring and matching core."""

from __future__ import annotations

__all__ = [
    "ScoringError",
    "ValidationError",
    "InvariantViolation",
    "PredictionNotFound",
    "PredictionConflict",
    "RecommendationError",
]


class ScoringError(Exception):
    """Base class for errors raised while scoring or ranking."""


class ValidationError(ScoringError):
    """Raised when an input primitive is malformed or out of range."""


class InvariantViolation(ScoringError):
    """Raised when a computed feature breaks a stated invariant.

    Always a caller bug (e.g. history dated after the candidate appointment).
    """


class PredictionNotFound(ScoringError):
    """Raised when no stored prediction exists for an appointment."""


class PredictionConflict(ScoringError):
    """Raised when an appointment already has a stored prediction."""


class RecommendationError(Exception):
    """Raised when the recommendation model is unreachable or replies badly."""
