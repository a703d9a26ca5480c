"""Data models for prediction accuracy tracking."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from aurum.analysis.models import SignalType


class Outcome(str, Enum):
    """Resolution state of a stored prediction."""

    pending = "PENDING"
    win = "WIN"
    loss = "LOSS"
    breakeven = "BREAKEVEN"


class Prediction(BaseModel):
    """A stored forecast from one provider or from the consensus.

    Levels are spot prices. Starts PENDING and is resolved once by the
    evaluation sweep or by a manual override.
    """

    id: str | None = None
    provider: str
    model: str | None = None
    product: str = "GC"
    recommendation: SignalType
    confidence: int = Field(ge=0, le=100)
    entry_start: float
    entry_end: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float | None = None
    price_at_prediction: float
    timeframe: str = "Intraday"
    outcome: Outcome = Outcome.pending
    price_at_outcome: float | None = None
    hit_tp1: bool = False
    hit_tp2: bool = False
    hit_sl: bool = False
    notes: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime
    evaluated_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome != Outcome.pending


class AccuracyStats(BaseModel):
    """Per-provider accuracy, recomputed from the full prediction history.

    Rates are percentages rounded to one decimal.
    """

    provider: str
    total_predictions: int = 0
    resolved: int = 0
    wins: int = 0
    losses: int = 0
    pending: int = 0
    win_rate: float = 0.0
    buy_accuracy: float = 0.0
    sell_accuracy: float = 0.0
    tp1_hit_rate: float = 0.0
    tp2_hit_rate: float = 0.0
    sl_hit_rate: float = 0.0
    avg_confidence: float = 0.0
    last_7_days_win_rate: float = 0.0
    last_30_days_win_rate: float = 0.0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class EvaluationSummary(BaseModel):
    """Counts from one evaluation sweep. Only applied resolutions are counted."""

    evaluated: int = 0
    wins: int = 0
    losses: int = 0


class ProviderComparison(BaseModel):
    providers: list[AccuracyStats] = Field(default_factory=list)
    best_provider: str
    recommendation: str
