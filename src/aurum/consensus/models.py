"""Data models for the multi-provider AI consensus.

ProviderPrediction doubles as the PydanticAI ``output_type``, so its field
descriptions are what the LLMs see.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from aurum.analysis.models import HistoricalContext, SignalType, TechnicalIndicators
from aurum.market.models import CalendarSummary, SpreadStatus, TradingZones, XauLevels

# =============================================================================
# Provider input
# =============================================================================


class HotStrike(BaseModel):
    """High-volume strike shown to the providers."""

    strike: float
    volume: int
    type: Literal["CALL", "PUT"]


class MarketSummary(BaseModel):
    """Condensed market picture sent to every prediction provider."""

    product: str = "GC"
    cme_futures_price: float
    xau_spot_price: float | None = None
    spread: float | None = None  # CME futures minus spot
    spread_status: SpreadStatus | None = None
    spot_source: str | None = None
    spot_is_estimate: bool = False
    oi_pcr: float = 0.0
    volume_pcr: float = 0.0
    max_pain: float = 0.0
    call_wall: float | None = None
    put_wall: float | None = None
    vwap: float = 0.0
    net_oi_change: int = 0
    call_oi_change: int = 0
    put_oi_change: int = 0
    total_call_volume: int = 0
    total_put_volume: int = 0
    hot_strikes: list[HotStrike] = Field(default_factory=list)
    system_signal: SignalType = SignalType.neutral
    system_confidence: int = 50
    gex_regime: str | None = None
    gex_description: str | None = None
    zero_gamma_level: float | None = None
    economic_warnings: list[str] = Field(default_factory=list)
    calendar: CalendarSummary | None = None
    xau_levels: XauLevels | None = None
    trading_zones: TradingZones | None = None
    technicals: TechnicalIndicators | None = None
    history: HistoricalContext | None = None
    data_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Provider output
# =============================================================================


class EntryZone(BaseModel):
    start: float = Field(description="Lower bound of the entry zone (spot price)")
    end: float = Field(description="Upper bound of the entry zone (spot price)")
    description: str = Field(default="", description="Which CME strike levels the zone is based on")


class ProviderPrediction(BaseModel):
    """Structured trade recommendation returned by one provider."""

    recommendation: SignalType
    confidence: int = Field(ge=0, le=100, description="Conviction 0-100")
    entry_zone: EntryZone
    stop_loss: float = Field(description="Stop-loss (spot price)")
    take_profit_1: float = Field(description="First take-profit (spot price)")
    take_profit_2: float = Field(description="Second take-profit (spot price)")
    take_profit_3: float | None = Field(default=None, description="Optional third take-profit")
    risk_reward_ratio: float | None = None
    summary: str = Field(default="", description="Direction from volume and levels from OI")
    reasoning: list[str] = Field(default_factory=list)
    bullish_factors: list[str] = Field(default_factory=list)
    bearish_factors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggested_timeframe: Literal["Intraday", "Swing"] = "Intraday"


class ProviderResult(BaseModel):
    """Outcome of one provider call: a prediction or an error, never both."""

    provider: str
    model: str | None = None
    success: bool
    prediction: ProviderPrediction | None = None
    error: str | None = None
    processing_time_ms: int = 0


# =============================================================================
# Consensus
# =============================================================================


class AgreementLevel(str, Enum):
    """How concentrated the provider votes are."""

    high = "HIGH"
    medium = "MEDIUM"
    low = "LOW"
    conflict = "CONFLICT"


class VoteCounts(BaseModel):
    strong_buy: int = 0
    buy: int = 0
    neutral: int = 0
    sell: int = 0
    strong_sell: int = 0


class ConsensusResult(BaseModel):
    """Aggregated recommendation across the successful providers."""

    recommendation: SignalType
    confidence: int = Field(ge=0, le=100)
    average_score: float
    agreement_level: AgreementLevel
    entry_zone: EntryZone
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float | None = None
    votes: VoteCounts
    results: list[ProviderResult] = Field(default_factory=list)
    summary: str = ""
    warnings: list[str] = Field(default_factory=list)
    providers_used: list[str] = Field(default_factory=list)
    providers_failed: list[str] = Field(default_factory=list)
    total_time_ms: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
