"""Data models for option-chain analysis.

Snapshots come in from the browser extension, everything else is derived
by the analyzers in this package and returned to the API as JSON.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from aurum.core.constants import (
    ATM_BUILDUP_RANGE_PERCENT,
    ATM_PCR_RANGE_PERCENT,
    ATM_VOLUME_RANGE_PERCENT,
    DEFAULT_DAYS_TO_EXPIRY,
    DEFAULT_IV,
    MAX_PAIN_TOLERANCE_PERCENT,
    PCR_OI_THRESHOLDS,
    PCR_VOLUME_THRESHOLDS,
    SIGNIFICANT_OI_CHANGE_PERCENT,
    VOLUME_SIGNAL_THRESHOLDS,
    WEIGHT_ATM_BUILDUP,
    WEIGHT_ATM_PCR,
    WEIGHT_MAX_PAIN,
    WEIGHT_OI_TREND,
    WEIGHT_PCR,
)

# =============================================================================
# Enums
# =============================================================================


class Sentiment(str, Enum):
    """Directional reading of a single factor."""

    bullish = "BULLISH"
    bearish = "BEARISH"
    neutral = "NEUTRAL"


class FlowSignal(str, Enum):
    """Open-interest flow classification."""

    bullish = "BULLISH"  # OI building, call flow dominant (new longs)
    bearish = "BEARISH"  # OI building, put flow dominant (new shorts)
    reversal = "REVERSAL"  # OI unwinding (short covering / long liquidation)
    neutral = "NEUTRAL"


class SignalType(str, Enum):
    """Trade recommendation, shared by the signal engine and AI providers."""

    strong_buy = "STRONG_BUY"
    buy = "BUY"
    neutral = "NEUTRAL"
    sell = "SELL"
    strong_sell = "STRONG_SELL"

    @property
    def is_buy(self) -> bool:
        return self in (SignalType.strong_buy, SignalType.buy)

    @property
    def is_sell(self) -> bool:
        return self in (SignalType.strong_sell, SignalType.sell)


class GexRegime(str, Enum):
    """Volatility regime implied by the sign of aggregate dealer gamma."""

    mean_reverting = "mean_reverting"  # positive GEX, low volatility
    trending = "trending"  # zero or negative GEX, high volatility


# =============================================================================
# Snapshot input
# =============================================================================


class StrikeRow(BaseModel):
    """One option strike as scraped from the vendor chain."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    strike: float = Field(ge=0, validation_alias=AliasChoices("strike", "strike_price"))
    call_oi: int = Field(default=0, ge=0)
    put_oi: int = Field(default=0, ge=0)
    call_volume: int = Field(default=0, ge=0)
    put_volume: int = Field(default=0, ge=0)
    call_oi_change: int = 0
    put_oi_change: int = 0
    vol_settle: float | None = None
    range: str | None = None

    @property
    def total_volume(self) -> int:
        return self.call_volume + self.put_volume


class MarketSnapshot(BaseModel):
    """Time-stamped option chain for one product and expiry.

    Strikes are sorted ascending on construction and must be unique.
    """

    model_config = ConfigDict(frozen=True)

    product: str = "GC"
    expiry: str = ""
    current_price: float = Field(ge=0)
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    strikes: list[StrikeRow] = Field(default_factory=list)

    @field_validator("product")
    @classmethod
    def normalize_product(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("captured_at")
    @classmethod
    def normalize_captured_at(cls, v: datetime) -> datetime:
        """Store every capture time in UTC; naive times are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @field_validator("strikes")
    @classmethod
    def sort_and_check_unique(cls, v: list[StrikeRow]) -> list[StrikeRow]:
        ordered = sorted(v, key=lambda row: row.strike)
        for prev, row in zip(ordered, ordered[1:]):
            if prev.strike == row.strike:
                raise ValueError(f"Duplicate strike {row.strike} in snapshot")
        return ordered


# =============================================================================
# Configuration passed into the analyzers
# =============================================================================


class PCRThresholds(BaseModel):
    """Put/call ratio classification cutoffs."""

    model_config = ConfigDict(frozen=True)

    bullish_below: float
    bearish_above: float

    @model_validator(mode="after")
    def check_order(self) -> PCRThresholds:
        if self.bullish_below > self.bearish_above:
            raise ValueError("bullish_below must not exceed bearish_above")
        return self

    @classmethod
    def of(cls, pair: tuple[float, float]) -> PCRThresholds:
        return cls(bullish_below=pair[0], bearish_above=pair[1])


class SignalWeights(BaseModel):
    """Vote weight of each factor in the signal generator."""

    model_config = ConfigDict(frozen=True)

    pcr: float = WEIGHT_PCR
    atm_pcr: float = WEIGHT_ATM_PCR
    max_pain: float = WEIGHT_MAX_PAIN
    oi_trend: float = WEIGHT_OI_TREND
    atm_buildup: float = WEIGHT_ATM_BUILDUP


class AnalysisConfig(BaseModel):
    """Tunable thresholds for a full analysis run."""

    model_config = ConfigDict(frozen=True)

    oi_thresholds: PCRThresholds = Field(
        default_factory=lambda: PCRThresholds.of(PCR_OI_THRESHOLDS)
    )
    volume_thresholds: PCRThresholds = Field(
        default_factory=lambda: PCRThresholds.of(PCR_VOLUME_THRESHOLDS)
    )
    volume_signal_thresholds: PCRThresholds = Field(
        default_factory=lambda: PCRThresholds.of(VOLUME_SIGNAL_THRESHOLDS)
    )
    atm_range_percent: float = Field(default=ATM_PCR_RANGE_PERCENT, ge=0)
    buildup_range_percent: float = Field(default=ATM_BUILDUP_RANGE_PERCENT, ge=0)
    atm_volume_range_percent: float = Field(default=ATM_VOLUME_RANGE_PERCENT, ge=0)
    max_pain_tolerance_percent: float = Field(default=MAX_PAIN_TOLERANCE_PERCENT, ge=0)
    significant_change_percent: float = Field(default=SIGNIFICANT_OI_CHANGE_PERCENT, ge=0)
    weights: SignalWeights = Field(default_factory=SignalWeights)
    days_to_expiry: float = Field(default=DEFAULT_DAYS_TO_EXPIRY, ge=0)
    iv: float = Field(default=DEFAULT_IV, ge=0)


# =============================================================================
# Factor results
# =============================================================================


class PCRResult(BaseModel):
    """Put/call ratio over a set of strikes."""

    basis: Literal["oi", "volume"] = "oi"
    ratio: float = 0.0
    total_put: int = 0
    total_call: int = 0
    strike_count: int = 0
    signal: Sentiment = Sentiment.neutral


class StrikePain(BaseModel):
    strike: float
    total_pain: float


class MaxPainResult(BaseModel):
    """Strike that minimizes aggregate option-writer payout."""

    max_pain_strike: float = 0.0
    distance: float = 0.0  # max_pain_strike - current_price
    distance_percent: float = 0.0
    signal: Sentiment = Sentiment.neutral
    pain_by_strike: list[StrikePain] = Field(default_factory=list)


class StrikeOIChange(BaseModel):
    """Open-interest change at one strike between two snapshots."""

    strike: float
    call_oi: int = 0
    put_oi: int = 0
    previous_call_oi: int = 0
    previous_put_oi: int = 0
    call_change: int = 0
    put_change: int = 0
    call_change_percent: float = 0.0
    put_change_percent: float = 0.0


class OIFlowResult(BaseModel):
    """Whole-chain open-interest flow."""

    changes: list[StrikeOIChange] = Field(default_factory=list)
    total_call_change: int = 0
    total_put_change: int = 0
    net_oi_change: int = 0
    total_call_change_percent: float = 0.0
    total_put_change_percent: float = 0.0
    signal: FlowSignal = FlowSignal.neutral
    description: str = ""
    significant_changes: list[StrikeOIChange] = Field(default_factory=list)


class BuildupResult(BaseModel):
    """Open-interest flow restricted to strikes near the current price."""

    range_percent: float
    strike_count: int = 0
    total_call_change: int = 0
    total_put_change: int = 0
    net_oi_change: int = 0
    signal: FlowSignal = FlowSignal.neutral
    description: str = ""


class KeyLevel(BaseModel):
    strike: float
    open_interest: int
    strength: int = Field(ge=1)


class KeyLevels(BaseModel):
    """Support (put OI) and resistance (call OI) levels ranked by open interest."""

    support: list[KeyLevel] = Field(default_factory=list)
    resistance: list[KeyLevel] = Field(default_factory=list)
    max_pain: float | None = None

    @property
    def put_wall(self) -> KeyLevel | None:
        return self.support[0] if self.support else None

    @property
    def call_wall(self) -> KeyLevel | None:
        return self.resistance[0] if self.resistance else None


class VolumeSpike(BaseModel):
    strike: float
    total_volume: int
    call_volume: int
    put_volume: int
    volume_ratio: float
    is_call_dominant: bool
    near_price: bool


class VolumeAnalysis(BaseModel):
    """Traded-volume picture of the chain."""

    total_call_volume: int = 0
    total_put_volume: int = 0
    total_volume: int = 0
    volume_pcr: float = 1.0
    avg_volume_per_strike: int = 0
    volume_spikes: list[VolumeSpike] = Field(default_factory=list)
    atm_volume_concentration: float = 0.0
    signal: Sentiment = Sentiment.neutral
    confidence: int = 0
    description: str = "No volume data available"


class StrikeGex(BaseModel):
    strike: float
    gamma: float
    call_gex: float
    put_gex: float
    net_gex: float


class GexResult(BaseModel):
    """Dealer gamma-exposure profile.

    A positioning heuristic: calls count as positive exposure and puts as
    negative, which is a convention rather than a measured dealer book.
    """

    current_price: float
    days_to_expiry: float
    iv: float
    total_gex: float = 0.0
    call_gex: float = 0.0
    put_gex: float = 0.0
    zero_gamma_level: float | None = None
    regime: GexRegime = GexRegime.trending
    description: str = ""
    strikes: list[StrikeGex] = Field(default_factory=list)


# =============================================================================
# Signal
# =============================================================================


class FactorScores(BaseModel):
    """Signed contributions to the base-50 confidence scale."""

    pcr_score: int = 0
    vwap_score: int = 0
    flow_score: int = 0
    wall_score: int = 0
    max_pain_score: int = 0
    volume_score: int = 0

    @property
    def total(self) -> int:
        return (
            self.pcr_score
            + self.vwap_score
            + self.flow_score
            + self.wall_score
            + self.max_pain_score
            + self.volume_score
        )


class FactorVote(BaseModel):
    """One weighted vote in the signal generator."""

    name: str
    weight: float
    reading: str
    side: Literal["bullish", "bearish", "none"]


class Signal(BaseModel):
    """Directional trading signal for one snapshot.

    ``strength`` (1-5) comes from the weighted vote; ``confidence`` (0-100)
    comes from the factor scorer and expresses conviction in ``type``.
    """

    type: SignalType
    strength: int = Field(ge=1, le=5)
    confidence: int = Field(ge=0, le=100)
    bullish_score: float = 0.0
    bearish_score: float = 0.0
    net_score: float = 0.0
    votes: list[FactorVote] = Field(default_factory=list)
    bullish_factors: list[str] = Field(default_factory=list)
    bearish_factors: list[str] = Field(default_factory=list)
    factor_scores: FactorScores = Field(default_factory=FactorScores)
    factor_score: int = Field(default=50, ge=0, le=100)
    key_levels: KeyLevels = Field(default_factory=KeyLevels)
    reason: str = ""
    product: str = ""
    current_price: float = 0.0
    captured_at: datetime | None = None


class AnalysisResult(BaseModel):
    """Every factor computed for one snapshot pair plus the resulting signal."""

    product: str
    expiry: str
    current_price: float
    captured_at: datetime
    previous_captured_at: datetime | None = None
    vwap: float = 0.0
    pcr: PCRResult
    atm_pcr: PCRResult
    volume_pcr: PCRResult
    max_pain: MaxPainResult
    oi_flow: OIFlowResult | None = None
    atm_buildup: BuildupResult | None = None
    key_levels: KeyLevels
    volume: VolumeAnalysis
    gex: GexResult
    signal: Signal


# =============================================================================
# Technical indicators (from snapshot prices)
# =============================================================================


class Candle(BaseModel):
    """OHLC bar built from the snapshot prices that fall in one interval."""

    model_config = ConfigDict(frozen=True)

    open: float
    high: float
    low: float
    close: float
    start: datetime


class TechnicalIndicators(BaseModel):
    """RSI, moving averages, ATR and trend over the futures price history."""

    candle_count: int = 0
    rsi: float = 50.0
    rsi_signal: Literal["OVERBOUGHT", "OVERSOLD", "NEUTRAL"] = "NEUTRAL"
    ma20: float = 0.0
    ma50: float = 0.0
    ma200: float = 0.0
    ma_trend: Literal["BULLISH", "BEARISH", "SIDEWAYS"] = "SIDEWAYS"
    above_ma20: bool = False
    above_ma50: bool = False
    above_ma200: bool = False
    atr: float = 0.0
    atr_percent: float = 0.0
    volatility: Literal["HIGH", "MEDIUM", "LOW"] = "LOW"
    suggested_sl_distance: float = 0.0
    suggested_tp1_distance: float = 0.0
    suggested_tp2_distance: float = 0.0
    support_levels: list[float] = Field(default_factory=list)
    resistance_levels: list[float] = Field(default_factory=list)
    trend: Literal["STRONG_UP", "UP", "SIDEWAYS", "DOWN", "STRONG_DOWN"] = "SIDEWAYS"
    trend_strength: int = Field(default=50, ge=0, le=100)
    summary: str = ""


# =============================================================================
# Historical context (from stored snapshots)
# =============================================================================


class HistoryPoint(BaseModel):
    """Condensed reading of one stored snapshot."""

    captured_at: datetime
    price: float
    pcr: float
    max_pain: float
    signal: SignalType
    strength: int


class SignalDistribution(BaseModel):
    buy: int = 0
    sell: int = 0
    neutral: int = 0

    @property
    def total(self) -> int:
        return self.buy + self.sell + self.neutral


class PcrHistory(BaseModel):
    current: float
    avg_7d: float
    avg_30d: float
    trend: Literal["INCREASING", "DECREASING", "STABLE"] = "STABLE"


class MaxPainChange(BaseModel):
    strike: float
    captured_at: datetime


class MaxPainHistory(BaseModel):
    current: float
    changes: list[MaxPainChange] = Field(default_factory=list)  # newest first
    trend: Literal["MOVING_UP", "MOVING_DOWN", "STABLE"] = "STABLE"


class SimilarConditions(BaseModel):
    """Earlier snapshots with a comparable PCR and how price moved afterwards."""

    found: int = 0
    measured: int = 0
    avg_price_change: float = 0.0
    direction: Literal["UP", "DOWN", "SIDEWAYS"] = "SIDEWAYS"


class HistoricalContext(BaseModel):
    recent: list[HistoryPoint] = Field(default_factory=list)  # newest first
    distribution: SignalDistribution = Field(default_factory=SignalDistribution)
    signal_trend: Literal["BULLISH", "BEARISH", "MIXED"] = "MIXED"
    pcr: PcrHistory
    max_pain: MaxPainHistory
    similar: SimilarConditions = Field(default_factory=SimilarConditions)
    summary: str = ""
