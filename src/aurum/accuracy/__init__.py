"""Prediction accuracy tracking."""

from aurum.accuracy.models import (
    AccuracyStats,
    EvaluationSummary,
    Outcome,
    Prediction,
    ProviderComparison,
)
from aurum.accuracy.tracker import AccuracyTracker, compute_stats, evaluate_outcome

__all__ = [
    "AccuracyStats",
    "AccuracyTracker",
    "EvaluationSummary",
    "Outcome",
    "Prediction",
    "ProviderComparison",
    "compute_stats",
    "evaluate_outcome",
]
