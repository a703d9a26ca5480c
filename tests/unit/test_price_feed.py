"""Tests for the XAU spot feed and futures to spot conversion."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from aurum.market.models import SpreadStatus, XauLevels, ZonePosition
from aurum.market.price_feed import (
    ESTIMATE_SOURCE,
    GOLDAPI_URL,
    UNAVAILABLE_SOURCE,
    SpotPriceFeed,
    calculate_spread,
    convert_levels_to_xau,
    spread_status,
    trading_zones,
)


def make_feed(twelvedata: str | None = None, goldapi: str | None = None) -> SpotPriceFeed:
    return SpotPriceFeed(
        timeout=1.0,
        twelvedata_api_key=twelvedata,
        goldapi_api_key=goldapi,
        estimated_spread=15.0,
    )


def json_response(payload: Any) -> MagicMock:
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status = MagicMock()
    return mock_response


def server_error() -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError(
        "Server error",
        request=httpx.Request("GET", "http://test"),
        response=httpx.Response(500),
    )


class TestFetchSpot:
    """Tests for SpotPriceFeed.fetch_spot."""

    @pytest.mark.asyncio
    async def test_metals_live(self) -> None:
        feed = make_feed()
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(
            return_value=json_response(
                [{"metal": "silver", "price": 25.1}, {"metal": "gold", "price": 2345.678}]
            )
        )

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot(2360.0)

        assert quote.price == 2345.68
        assert quote.source == "metals_live"
        assert quote.is_estimate is False
        assert quote.available is True
        mock_http.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_falls_through_to_twelvedata(self) -> None:
        feed = make_feed(twelvedata="td-key")
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(
            side_effect=[
                json_response([{"metal": "silver", "price": 25.1}]),
                json_response({"price": "2350.10"}),
            ]
        )

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot()

        assert quote.price == 2350.1
        assert quote.source == "twelvedata"
        params = mock_http.get.call_args_list[1].kwargs["params"]
        assert params == {"symbol": "XAU/USD", "apikey": "td-key"}

    @pytest.mark.asyncio
    async def test_falls_through_to_goldapi(self) -> None:
        feed = make_feed(twelvedata="td-key", goldapi="gold-key")
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(
            side_effect=[
                httpx.ConnectError("down"),
                json_response({"code": 429, "message": "rate limited"}),
                json_response({"price": 2351.5}),
            ]
        )

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot()

        assert quote.price == 2351.5
        assert quote.source == "goldapi"
        goldapi_call = mock_http.get.call_args_list[2]
        assert goldapi_call.args[0] == GOLDAPI_URL
        assert goldapi_call.kwargs["headers"] == {"x-access-token": "gold-key"}

    @pytest.mark.asyncio
    async def test_keyed_sources_skipped_without_keys(self) -> None:
        feed = make_feed()
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(side_effect=server_error())

        with patch.object(feed, "_get_client", return_value=mock_http):
            await feed.fetch_spot(2400.0)

        assert mock_http.get.await_count == 1

    @pytest.mark.asyncio
    async def test_estimate_from_futures(self) -> None:
        feed = make_feed()
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(side_effect=server_error())

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot(2400.0)

        assert quote.price == 2385.0
        assert quote.source == ESTIMATE_SOURCE
        assert quote.is_estimate is True

    @pytest.mark.asyncio
    async def test_unavailable_without_futures(self) -> None:
        feed = make_feed()
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(side_effect=httpx.ConnectError("down"))

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot()

        assert quote.price == 0.0
        assert quote.source == UNAVAILABLE_SOURCE
        assert quote.available is False

    @pytest.mark.asyncio
    async def test_malformed_payload_is_skipped(self) -> None:
        feed = make_feed()
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(return_value=json_response({"error": "maintenance"}))

        with patch.object(feed, "_get_client", return_value=mock_http):
            quote = await feed.fetch_spot(2400.0)

        assert quote.source == ESTIMATE_SOURCE

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        feed = make_feed()
        client = MagicMock()
        client.aclose = AsyncMock()
        feed._client = client

        async with feed:
            pass

        client.aclose.assert_awaited_once()
        assert feed._client is None


class TestSpread:
    """Tests for the futures spread."""

    def test_calculate_spread(self) -> None:
        spread = calculate_spread(2400.0, 2385.0)

        assert spread.spread == 15.0
        assert spread.spread_percent == 0.629
        assert spread.status == SpreadStatus.normal

    def test_zero_spot(self) -> None:
        assert calculate_spread(2400.0, 0.0).spread_percent == 0.0

    @pytest.mark.parametrize(
        ("spread", "expected"),
        [
            (30.0, SpreadStatus.high),
            (25.0, SpreadStatus.normal),
            (10.0, SpreadStatus.normal),
            (5.0, SpreadStatus.low),
            (-3.0, SpreadStatus.low),
        ],
    )
    def test_spread_status(self, spread: float, expected: SpreadStatus) -> None:
        assert spread_status(spread) == expected


class TestConvertLevels:
    """Tests for shifting CME levels onto the spot scale."""

    def test_every_level_shifted(self) -> None:
        levels = convert_levels_to_xau(
            15.0,
            put_wall=2000,
            call_wall=2100,
            max_pain=2050,
            supports=[2000, 1950],
            resistances=[2100],
        )

        assert levels.put_wall == 1985
        assert levels.call_wall == 2085
        assert levels.max_pain == 2035
        assert levels.supports == [1985, 1935]
        assert levels.resistances == [2085]
        assert levels.spread == 15.0

    def test_missing_levels_stay_missing(self) -> None:
        levels = convert_levels_to_xau(15.0)

        assert levels.put_wall is None
        assert levels.call_wall is None
        assert levels.supports == []


class TestTradingZones:
    """Tests for the buy and sell zones around the walls."""

    @pytest.fixture()
    def levels(self) -> XauLevels:
        return XauLevels(spread=15.0, put_wall=1985, call_wall=2085)

    @pytest.mark.parametrize(
        ("spot", "expected"),
        [
            (1990.0, ZonePosition.buy_zone),
            (1980.0, ZonePosition.buy_zone),
            (2080.0, ZonePosition.sell_zone),
            (2030.0, ZonePosition.neutral_zone),
        ],
    )
    def test_position(self, levels: XauLevels, spot: float, expected: ZonePosition) -> None:
        zones = trading_zones(levels, spot)

        assert zones is not None
        assert zones.position == expected

    def test_zone_bounds_and_distances(self, levels: XauLevels) -> None:
        zones = trading_zones(levels, 1990.0)

        assert zones is not None
        assert (zones.buy_zone.low, zones.buy_zone.high) == (1980, 1995)
        assert (zones.sell_zone.low, zones.sell_zone.high) == (2075, 2090)
        assert zones.distance_to_support == 5.0
        assert zones.distance_to_resistance == 95.0

    def test_needs_both_walls(self) -> None:
        assert trading_zones(XauLevels(spread=15.0, put_wall=1985), 1990.0) is None
