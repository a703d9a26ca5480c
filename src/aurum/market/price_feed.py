"""XAU spot price feed and CME futures to spot conversion.

Spot sources are tried in order: Metals.live (no key), Twelve Data and
GoldAPI (each only when its key is configured). When none answers, spot is
estimated as the futures price minus a configured spread, and without a
futures price the quote comes back unavailable (price 0) for manual input.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field as dataclass_field
from typing import Any

import httpx

from aurum.config import get_settings
from aurum.core.constants import BUY_ZONE_OFFSETS, SELL_ZONE_OFFSETS, SPREAD_NORMAL_RANGE
from aurum.core.logging import get_logger
from aurum.market.models import (
    FuturesSpread,
    PriceZone,
    SpotQuote,
    SpreadStatus,
    TradingZones,
    XauLevels,
    ZonePosition,
)

logger = get_logger(__name__)

METALS_LIVE_URL = "https://api.metals.live/v1/spot"
TWELVEDATA_URL = "https://api.twelvedata.com/price"
GOLDAPI_URL = "https://www.goldapi.io/api/XAU/USD"

ESTIMATE_SOURCE = "cme_estimate"
UNAVAILABLE_SOURCE = "unavailable"


def _secret(name: str) -> str | None:
    value = getattr(get_settings(), name)
    return value.get_secret_value() if value else None


@dataclass
class SpotPriceFeed:
    """Client for the XAU spot price sources."""

    timeout: float = dataclass_field(default_factory=lambda: get_settings().spot_timeout_seconds)
    twelvedata_api_key: str | None = dataclass_field(
        default_factory=lambda: _secret("twelvedata_api_key")
    )
    goldapi_api_key: str | None = dataclass_field(
        default_factory=lambda: _secret("goldapi_api_key")
    )
    estimated_spread: float = dataclass_field(
        default_factory=lambda: get_settings().estimated_spread
    )

    _client: httpx.AsyncClient | None = dataclass_field(default=None, init=False, repr=False)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SpotPriceFeed:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    async def _from_metals_live(self) -> float | None:
        response = await self._get_client().get(METALS_LIVE_URL)
        response.raise_for_status()
        for entry in response.json():
            if entry.get("metal") == "gold" and entry.get("price"):
                return float(entry["price"])
        return None

    async def _from_twelvedata(self) -> float | None:
        response = await self._get_client().get(
            TWELVEDATA_URL,
            params={"symbol": "XAU/USD", "apikey": self.twelvedata_api_key},
        )
        response.raise_for_status()
        data = response.json()
        if data.get("code") or not data.get("price"):
            logger.warning("Twelve Data returned no price", message=data.get("message"))
            return None
        return float(data["price"])

    async def _from_goldapi(self) -> float | None:
        response = await self._get_client().get(
            GOLDAPI_URL,
            headers={"x-access-token": self.goldapi_api_key or ""},
        )
        response.raise_for_status()
        price = response.json().get("price")
        return float(price) if price else None

    def _sources(self) -> list[tuple[str, Callable[[], Awaitable[float | None]]]]:
        sources: list[tuple[str, Callable[[], Awaitable[float | None]]]] = [
            ("metals_live", self._from_metals_live)
        ]
        if self.twelvedata_api_key:
            sources.append(("twelvedata", self._from_twelvedata))
        if self.goldapi_api_key:
            sources.append(("goldapi", self._from_goldapi))
        return sources

    async def fetch_spot(self, futures_price: float | None = None) -> SpotQuote:
        """Fetch the XAU spot price, falling back to a futures-based estimate.

        Args:
            futures_price: Latest CME futures price, used for the estimate

        Returns:
            SpotQuote; ``price`` is 0 when nothing could be determined
        """
        for name, fetch in self._sources():
            try:
                price = await fetch()
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Spot source HTTP error", source=name, status_code=e.response.status_code
                )
                continue
            except httpx.RequestError as e:
                logger.warning("Spot source request failed", source=name, error=str(e))
                continue
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Spot source returned malformed data", source=name, error=str(e))
                continue

            if price and price > 0:
                logger.debug("Spot price fetched", source=name, price=price)
                return SpotQuote(price=round(price, 2), source=name)

        if futures_price and futures_price > 0:
            estimate = round(futures_price - self.estimated_spread, 2)
            logger.warning(
                "No spot source answered, estimating from futures",
                futures_price=futures_price,
                estimated_spread=self.estimated_spread,
            )
            return SpotQuote(price=estimate, source=ESTIMATE_SOURCE, is_estimate=True)

        logger.warning("No spot price available")
        return SpotQuote(price=0.0, source=UNAVAILABLE_SOURCE)


# =============================================================================
# Conversion
# =============================================================================


def spread_status(spread: float) -> SpreadStatus:
    low, high = SPREAD_NORMAL_RANGE
    if spread > high:
        return SpreadStatus.high
    if spread < low:
        return SpreadStatus.low
    return SpreadStatus.normal


def calculate_spread(futures_price: float, spot_price: float) -> FuturesSpread:
    """Futures minus spot, in dollars and as a percent of spot."""
    spread = futures_price - spot_price
    spread_percent = spread / spot_price * 100 if spot_price > 0 else 0.0
    return FuturesSpread(
        futures_price=round(futures_price, 2),
        spot_price=round(spot_price, 2),
        spread=round(spread, 2),
        spread_percent=round(spread_percent, 3),
        status=spread_status(spread),
    )


def convert_levels_to_xau(
    spread: float,
    put_wall: float | None = None,
    call_wall: float | None = None,
    max_pain: float | None = None,
    supports: Sequence[float] = (),
    resistances: Sequence[float] = (),
) -> XauLevels:
    """Shift CME levels onto the spot scale by subtracting ``spread``."""

    def convert(value: float | None) -> float | None:
        return round(value - spread, 2) if value is not None else None

    return XauLevels(
        spread=spread,
        put_wall=convert(put_wall),
        call_wall=convert(call_wall),
        max_pain=convert(max_pain),
        supports=[round(s - spread, 2) for s in supports],
        resistances=[round(r - spread, 2) for r in resistances],
    )


def trading_zones(levels: XauLevels, spot_price: float) -> TradingZones | None:
    """Buy and sell zones around the spot walls; None unless both walls are known."""
    if levels.put_wall is None or levels.call_wall is None:
        return None

    buy_zone = PriceZone(
        low=round(levels.put_wall + BUY_ZONE_OFFSETS[0], 2),
        high=round(levels.put_wall + BUY_ZONE_OFFSETS[1], 2),
    )
    sell_zone = PriceZone(
        low=round(levels.call_wall + SELL_ZONE_OFFSETS[0], 2),
        high=round(levels.call_wall + SELL_ZONE_OFFSETS[1], 2),
    )

    if buy_zone.contains(spot_price):
        position = ZonePosition.buy_zone
    elif sell_zone.contains(spot_price):
        position = ZonePosition.sell_zone
    else:
        position = ZonePosition.neutral_zone

    return TradingZones(
        buy_zone=buy_zone,
        sell_zone=sell_zone,
        position=position,
        distance_to_support=round(spot_price - levels.put_wall, 2),
        distance_to_resistance=round(levels.call_wall - spot_price, 2),
    )
