"""Technical indicators over the futures price history.

Snapshots only carry a last price, so they are first bucketed into OHLC
candles (hourly by default). RSI and ATR use Wilder smoothing; MA20 and
MA50 are exponential and MA200 is simple. Every indicator degrades to a
neutral reading when there is too little history.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import numpy as np

from aurum.analysis.models import Candle, MarketSnapshot, TechnicalIndicators
from aurum.core.constants import (
    ATR_PERIOD,
    ATR_STOP_MULTIPLIERS,
    CANDLE_INTERVAL_MINUTES,
    FALLBACK_LEVEL_STEP,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_PERIOD,
    SWING_LEVEL_COUNT,
    VOLATILITY_HIGH_PERCENT,
    VOLATILITY_MEDIUM_PERCENT,
)


def build_candles(
    snapshots: Sequence[MarketSnapshot],
    interval: timedelta = timedelta(minutes=CANDLE_INTERVAL_MINUTES),
) -> list[Candle]:
    """Bucket snapshot prices into OHLC candles aligned to ``interval``.

    Snapshots without a price are skipped. Candles come back oldest first.
    """
    seconds = interval.total_seconds()
    buckets: dict[float, list[float]] = {}
    for snapshot in sorted(snapshots, key=lambda s: s.captured_at):
        if snapshot.current_price <= 0:
            continue
        ts = snapshot.captured_at.timestamp()
        buckets.setdefault(ts - ts % seconds, []).append(snapshot.current_price)

    return [
        Candle(
            open=prices[0],
            high=max(prices),
            low=min(prices),
            close=prices[-1],
            start=datetime.fromtimestamp(start, UTC),
        )
        for start, prices in buckets.items()
    ]


def calculate_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """Wilder RSI; 50 when there are fewer than ``period + 1`` closes or no movement."""
    prices = np.asarray(closes, dtype=float)
    if prices.size < period + 1:
        return 50.0

    changes = np.diff(prices)
    gains = np.clip(changes, 0, None)
    losses = np.clip(-changes, 0, None)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return round(100 - 100 / (1 + rs), 2)


def rsi_signal(rsi: float) -> str:
    if rsi >= RSI_OVERBOUGHT:
        return "OVERBOUGHT"
    if rsi <= RSI_OVERSOLD:
        return "OVERSOLD"
    return "NEUTRAL"


def calculate_sma(closes: Sequence[float], period: int) -> float:
    """Mean of the last ``period`` closes, or the last close when history is short."""
    if not closes:
        return 0.0
    if len(closes) < period:
        return float(closes[-1])
    return round(float(np.mean(closes[-period:])), 2)


def calculate_ema(closes: Sequence[float], period: int) -> float:
    """EMA seeded with the SMA of the first ``period`` closes."""
    if not closes:
        return 0.0
    if len(closes) < period:
        return float(closes[-1])

    multiplier = 2 / (period + 1)
    ema = float(np.mean(closes[:period]))
    for price in closes[period:]:
        ema = (price - ema) * multiplier + ema
    return round(ema, 2)


def ma_trend(price: float, ma20: float, ma50: float, ma200: float) -> str:
    """BULLISH above every MA with the MAs stacked upward; BEARISH mirrored."""
    if price > ma20 and price > ma50 and price > ma200 and ma20 > ma50 > ma200:
        return "BULLISH"
    if price < ma20 and price < ma50 and price < ma200 and ma20 < ma50 < ma200:
        return "BEARISH"
    return "SIDEWAYS"


def calculate_atr(candles: Sequence[Candle], period: int = ATR_PERIOD) -> float:
    """Wilder average true range.

    With fewer than ``period + 1`` candles the range of the last candle is
    used instead, and 0 without any candle.
    """
    if len(candles) < period + 1:
        return round(candles[-1].high - candles[-1].low, 2) if candles else 0.0

    true_ranges = [
        max(cur.high - cur.low, abs(cur.high - prev.close), abs(cur.low - prev.close))
        for prev, cur in zip(candles, candles[1:])
    ]
    atr = float(np.mean(true_ranges[:period]))
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return round(atr, 2)


def volatility_level(atr: float, price: float) -> str:
    if price <= 0:
        return "LOW"
    atr_percent = atr / price * 100
    if atr_percent > VOLATILITY_HIGH_PERCENT:
        return "HIGH"
    if atr_percent > VOLATILITY_MEDIUM_PERCENT:
        return "MEDIUM"
    return "LOW"


def find_swing_levels(
    candles: Sequence[Candle],
    price: float,
    count: int = SWING_LEVEL_COUNT,
) -> tuple[list[float], list[float]]:
    """Support and resistance from swing lows and highs (two bars each side).

    Supports are swing lows below ``price``, nearest first; resistances are
    swing highs above it. Missing levels are filled in steps of
    ``FALLBACK_LEVEL_STEP`` away from the last one found.

    Returns:
        (support levels, resistance levels), each ``count`` long
    """
    swing_highs: list[float] = []
    swing_lows: list[float] = []
    for i in range(2, len(candles) - 2):
        window = candles[i - 2 : i + 3]
        neighbors = [c for j, c in enumerate(window) if j != 2]
        if all(candles[i].high > c.high for c in neighbors):
            swing_highs.append(candles[i].high)
        if all(candles[i].low < c.low for c in neighbors):
            swing_lows.append(candles[i].low)

    support = sorted((low for low in swing_lows if low < price), reverse=True)[:count]
    resistance = sorted(high for high in swing_highs if high > price)[:count]

    while len(support) < count:
        support.append(round((support[-1] if support else price) - FALLBACK_LEVEL_STEP, 2))
    while len(resistance) < count:
        resistance.append(
            round((resistance[-1] if resistance else price) + FALLBACK_LEVEL_STEP, 2)
        )
    return support, resistance


def analyze_trend(
    closes: Sequence[float], ma20: float, ma50: float, ma200: float
) -> tuple[str, int]:
    """Trend label and strength (0-100) from MA position and alignment.

    Needs 20 closes; shorter histories read SIDEWAYS at 50.
    """
    if len(closes) < 20 or closes[0] <= 0:
        return "SIDEWAYS", 50

    price = closes[-1]
    change_percent = (price - closes[0]) / closes[0] * 100
    score = sum((price > ma20, price > ma50, price > ma200, ma20 > ma50, ma50 > ma200))

    if score >= 5 and change_percent > 2:
        return "STRONG_UP", 90
    if score >= 4:
        return "UP", 70
    if score <= 0 and change_percent < -2:
        return "STRONG_DOWN", 90
    if score <= 1:
        return "DOWN", 70
    return "SIDEWAYS", 50


def _summary(indicators: TechnicalIndicators) -> str:
    parts = [f"RSI {indicators.rsi:.2f} ({indicators.rsi_signal.lower()})"]
    parts.append(f"MA trend {indicators.ma_trend.lower()}")
    parts.append(f"nearest support {indicators.support_levels[0]:g}")
    parts.append(f"nearest resistance {indicators.resistance_levels[0]:g}")
    parts.append(f"volatility {indicators.volatility.lower()}")
    return " | ".join(parts)


def compute_indicators(candles: Sequence[Candle], current_price: float) -> TechnicalIndicators:
    """Compute every indicator for the candle history at ``current_price``."""
    closes = [c.close for c in candles]

    rsi = calculate_rsi(closes)
    ma20 = calculate_ema(closes, 20)
    ma50 = calculate_ema(closes, 50)
    ma200 = calculate_sma(closes, 200)
    atr = calculate_atr(candles)
    sl_mult, tp1_mult, tp2_mult = ATR_STOP_MULTIPLIERS
    support, resistance = find_swing_levels(candles, current_price)
    trend, trend_strength = analyze_trend(closes, ma20, ma50, ma200)

    indicators = TechnicalIndicators(
        candle_count=len(candles),
        rsi=rsi,
        rsi_signal=rsi_signal(rsi),  # type: ignore[arg-type]
        ma20=ma20,
        ma50=ma50,
        ma200=ma200,
        ma_trend=ma_trend(current_price, ma20, ma50, ma200),  # type: ignore[arg-type]
        above_ma20=current_price > ma20,
        above_ma50=current_price > ma50,
        above_ma200=current_price > ma200,
        atr=atr,
        atr_percent=round(atr / current_price * 100, 2) if current_price > 0 else 0.0,
        volatility=volatility_level(atr, current_price),  # type: ignore[arg-type]
        suggested_sl_distance=round(atr * sl_mult, 2),
        suggested_tp1_distance=round(atr * tp1_mult, 2),
        suggested_tp2_distance=round(atr * tp2_mult, 2),
        support_levels=support,
        resistance_levels=resistance,
        trend=trend,  # type: ignore[arg-type]
        trend_strength=trend_strength,
    )
    indicators.summary = _summary(indicators)
    return indicators
