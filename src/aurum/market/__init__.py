"""XAU spot prices, futures to spot conversion and the economic calendar."""

from aurum.market.calendar import (
    format_calendar_for_prompt,
    get_economic_events,
    is_safe_to_trade,
    upcoming_events_summary,
)
from aurum.market.models import (
    CalendarSummary,
    EconomicEvent,
    FuturesSpread,
    SpotQuote,
    TradingZones,
    XauLevels,
)
from aurum.market.price_feed import (
    SpotPriceFeed,
    calculate_spread,
    convert_levels_to_xau,
    trading_zones,
)

__all__ = [
    # Models
    "CalendarSummary",
    "EconomicEvent",
    "FuturesSpread",
    "SpotQuote",
    "TradingZones",
    "XauLevels",
    # Spot feed
    "SpotPriceFeed",
    "calculate_spread",
    "convert_levels_to_xau",
    "trading_zones",
    # Calendar
    "format_calendar_for_prompt",
    "get_economic_events",
    "is_safe_to_trade",
    "upcoming_events_summary",
]
