"""Max pain calculation.

Max pain is the settlement price (restricted to listed strikes) at which
option writers pay out the least. Price tends to gravitate toward it into
expiry, so max pain above the current price reads as a bullish pull and
below as a bearish one.
"""

from __future__ import annotations

from collections.abc import Sequence

from aurum.analysis.models import MaxPainResult, Sentiment, StrikePain, StrikeRow
from aurum.core.constants import MAX_PAIN_TOLERANCE_PERCENT


def writer_payout(strikes: Sequence[StrikeRow], settlement: float) -> float:
    """Total intrinsic value owed by option writers if the underlying settles here."""
    total = 0.0
    for row in strikes:
        if settlement > row.strike:
            total += row.call_oi * (settlement - row.strike)
        elif settlement < row.strike:
            total += row.put_oi * (row.strike - settlement)
    return total


def calculate_max_pain(
    strikes: Sequence[StrikeRow],
    current_price: float,
    tolerance_percent: float = MAX_PAIN_TOLERANCE_PERCENT,
) -> MaxPainResult:
    """Find the strike minimizing aggregate writer payout.

    Ties on payout go to the strike closest to ``current_price``; two tied
    strikes equidistant from the price resolve to the lower one.

    Args:
        strikes: Option chain
        current_price: Underlying reference price
        tolerance_percent: Band around the price inside which the tilt is NEUTRAL

    Returns:
        MaxPainResult. An empty chain gives strike 0 and a NEUTRAL tilt.
    """
    if not strikes:
        return MaxPainResult()

    pain = [
        StrikePain(strike=row.strike, total_pain=writer_payout(strikes, row.strike))
        for row in strikes
    ]
    best = min(
        pain,
        key=lambda p: (round(p.total_pain, 6), abs(p.strike - current_price), p.strike),
    )

    distance = best.strike - current_price
    distance_percent = distance / current_price * 100 if current_price > 0 else 0.0

    if current_price <= 0:
        signal = Sentiment.neutral
    elif distance_percent > tolerance_percent:
        signal = Sentiment.bullish
    elif distance_percent < -tolerance_percent:
        signal = Sentiment.bearish
    else:
        signal = Sentiment.neutral

    return MaxPainResult(
        max_pain_strike=best.strike,
        distance=round(distance, 2),
        distance_percent=round(distance_percent, 2),
        signal=signal,
        pain_by_strike=sorted(pain, key=lambda p: p.strike),
    )
