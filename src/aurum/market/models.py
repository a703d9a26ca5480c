"""Models for the XAU spot feed and the economic calendar."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# =============================================================================
# Spot price and futures spread
# =============================================================================


class SpotQuote(BaseModel):
    """XAU/USD spot price and where it came from."""

    price: float
    source: str
    is_estimate: bool = False  # derived from the futures price, not quoted
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def available(self) -> bool:
        return self.price > 0


class SpreadStatus(str, Enum):
    normal = "NORMAL"
    high = "HIGH"
    low = "LOW"


class FuturesSpread(BaseModel):
    """CME futures premium over XAU spot."""

    futures_price: float
    spot_price: float
    spread: float
    spread_percent: float
    status: SpreadStatus


class XauLevels(BaseModel):
    """CME strike levels shifted onto the spot price scale."""

    spread: float
    put_wall: float | None = None
    call_wall: float | None = None
    max_pain: float | None = None
    supports: list[float] = Field(default_factory=list)
    resistances: list[float] = Field(default_factory=list)


class ZonePosition(str, Enum):
    buy_zone = "BUY_ZONE"
    sell_zone = "SELL_ZONE"
    neutral_zone = "NEUTRAL_ZONE"


class PriceZone(BaseModel):
    low: float
    high: float

    def contains(self, price: float) -> bool:
        return self.low <= price <= self.high


class TradingZones(BaseModel):
    """Buy zone around the put wall and sell zone around the call wall, in spot terms."""

    buy_zone: PriceZone
    sell_zone: PriceZone
    position: ZonePosition
    distance_to_support: float
    distance_to_resistance: float


# =============================================================================
# Economic calendar
# =============================================================================


class EventImpact(str, Enum):
    high = "HIGH"
    medium = "MEDIUM"
    low = "LOW"


class TradingCaution(str, Enum):
    high = "HIGH"
    medium = "MEDIUM"
    low = "LOW"
    none = "NONE"


class EconomicEvent(BaseModel):
    id: str
    title: str
    scheduled_at: datetime  # UTC
    impact: EventImpact
    currency: str = "USD"
    description: str = ""
    gold_impact: str = ""
    forecast: str | None = None
    previous: str | None = None
    actual: str | None = None


class CalendarSummary(BaseModel):
    """Events today and over the coming week, with the resulting caution level."""

    today: list[EconomicEvent] = Field(default_factory=list)
    this_week: list[EconomicEvent] = Field(default_factory=list)
    high_impact_count: int = 0
    warnings: list[str] = Field(default_factory=list)
    caution: TradingCaution = TradingCaution.none


class TradeSafety(BaseModel):
    safe: bool
    reason: str
    next_event: EconomicEvent | None = None
