"""Accuracy tracking for no-show predictions.

Compares stored predictions with the outcomes recorded after the visit.
High and very-high tiers count as a predicted no-show; only an actual
``no_show`` outcome counts as a positive.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from physiobook.scoring.no_show import RiskTier
from physiobook.storage.predictions import AppointmentOutcome, PredictionRecord

__all__ = ["NoShowStatistics", "compute_statistics", "PREDICTED_NO_SHOW_TIERS"]

PREDICTED_NO_SHOW_TIERS = frozenset({RiskTier.HIGH, RiskTier.VERY_HIGH})


@dataclass(frozen=True)
class NoShowStatistics:
    """Confusion-matrix summary over resolved predictions."""

    total_predictions: int
    accuracy: float
    true_positive_rate: float
    false_positive_rate: float
    average_no_show_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_predictions": self.total_predictions,
            "accuracy": self.accuracy,
            "true_positive_rate": self.true_positive_rate,
            "false_positive_rate": self.false_positive_rate,
            "average_no_show_rate": self.average_no_show_rate,
        }


def _ratio(numerator: int, denominator: int) -> float:
    return round(numerator / denominator, 2) if denominator else 0.0


def compute_statistics(records: Iterable[PredictionRecord]) -> NoShowStatistics:
    """Summarise prediction quality. Unresolved records are ignored."""
    tp = tn = fp = fn = 0
    for record in records:
        if record.actual_outcome is None:
            continue
        predicted = record.risk_tier in PREDICTED_NO_SHOW_TIERS
        actual = record.actual_outcome == AppointmentOutcome.NO_SHOW
        if predicted and actual:
            tp += 1
        elif not predicted and not actual:
            tn += 1
        elif predicted:
            fp += 1
        else:
            fn += 1

    total = tp + tn + fp + fn
    return NoShowStatistics(
        total_predictions=total,
        accuracy=_ratio(tp + tn, total),
        true_positive_rate=_ratio(tp, tp + fn),
        false_positive_rate=_ratio(fp, fp + tn),
        average_no_show_rate=_ratio(tp + fn, total),
    )
