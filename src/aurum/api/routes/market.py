"""XAU spot conversion and the economic calendar."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from aurum.analysis.key_levels import find_key_levels
from aurum.analysis.max_pain import calculate_max_pain
from aurum.core.dependencies import SettingsDep, SpotFeedDep, StoreDep
from aurum.market.calendar import is_safe_to_trade, upcoming_events_summary
from aurum.market.models import (
    CalendarSummary,
    FuturesSpread,
    SpotQuote,
    TradeSafety,
    TradingZones,
    XauLevels,
)
from aurum.market.price_feed import calculate_spread, convert_levels_to_xau, trading_zones

router = APIRouter()


class CalendarResponse(BaseModel):
    summary: CalendarSummary
    safety: TradeSafety


class SpotResponse(BaseModel):
    quote: SpotQuote
    spread: FuturesSpread | None = None
    levels: XauLevels | None = None
    zones: TradingZones | None = None


@router.get("/calendar", response_model=CalendarResponse)
async def economic_calendar(
    settings: SettingsDep,
    days: int | None = Query(default=None, ge=1, le=31, description="Days ahead"),
) -> CalendarResponse:
    days_ahead = days or settings.calendar_days_ahead
    return CalendarResponse(
        summary=upcoming_events_summary(days_ahead),
        safety=is_safe_to_trade(days_ahead),
    )


@router.get("/{product}/spot", response_model=SpotResponse)
async def spot_levels(
    product: str,
    store: StoreDep,
    spot_feed: SpotFeedDep,
    spot_price: float | None = Query(default=None, gt=0, description="XAU spot price"),
) -> SpotResponse:
    """Spot quote, futures spread and the latest CME levels on the spot scale."""
    product = product.upper()
    current = await store.get_latest_snapshot(product)
    if current is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for {product}")

    if spot_price is not None:
        quote = SpotQuote(price=spot_price, source="request")
    elif spot_feed is not None:
        quote = await spot_feed.fetch_spot(current.current_price)
    else:
        raise HTTPException(status_code=503, detail="Spot price feed is not running")

    response = SpotResponse(quote=quote)
    if not quote.available:
        return response

    max_pain = calculate_max_pain(current.strikes, current.current_price).max_pain_strike
    levels = find_key_levels(current.strikes, max_pain)
    response.spread = calculate_spread(current.current_price, quote.price)
    response.levels = convert_levels_to_xau(
        response.spread.spread,
        put_wall=levels.put_wall.strike if levels.put_wall else None,
        call_wall=levels.call_wall.strike if levels.call_wall else None,
        max_pain=max_pain or None,
        supports=[level.strike for level in levels.support],
        resistances=[level.strike for level in levels.resistance],
    )
    response.zones = trading_zones(response.levels, quote.price)
    return response
