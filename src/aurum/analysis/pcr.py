"""Put/Call ratio analysis.

PCR below the bullish cutoff means call-heavy positioning, above the
bearish cutoff means put-heavy positioning (hedging or downside bets).
Open interest and traded volume are scored with different cutoffs, see
``PCR_OI_THRESHOLDS`` and ``PCR_VOLUME_THRESHOLDS``.
"""

from __future__ import annotations

from collections.abc import Sequence

from aurum.analysis.models import PCRResult, PCRThresholds, Sentiment, StrikeRow
from aurum.core.constants import ATM_PCR_RANGE_PERCENT, PCR_OI_THRESHOLDS, PCR_VOLUME_THRESHOLDS

DEFAULT_OI_THRESHOLDS = PCRThresholds.of(PCR_OI_THRESHOLDS)
DEFAULT_VOLUME_THRESHOLDS = PCRThresholds.of(PCR_VOLUME_THRESHOLDS)


def classify_ratio(ratio: float, thresholds: PCRThresholds) -> Sentiment:
    """Map a put/call ratio to a sentiment using the given cutoffs."""
    if ratio < thresholds.bullish_below:
        return Sentiment.bullish
    if ratio > thresholds.bearish_above:
        return Sentiment.bearish
    return Sentiment.neutral


def _ratio(total_put: int, total_call: int) -> float:
    return total_put / total_call if total_call > 0 else 0.0


def calculate_pcr(
    strikes: Sequence[StrikeRow],
    thresholds: PCRThresholds = DEFAULT_OI_THRESHOLDS,
) -> PCRResult:
    """Compute the open-interest put/call ratio.

    Args:
        strikes: Strikes to include (whole chain or a pre-filtered band)
        thresholds: Classification cutoffs

    Returns:
        PCRResult; with no call open interest the ratio is 0 and the
        signal NEUTRAL.
    """
    total_put = sum(row.put_oi for row in strikes)
    total_call = sum(row.call_oi for row in strikes)
    ratio = _ratio(total_put, total_call)
    signal = classify_ratio(ratio, thresholds) if total_call > 0 else Sentiment.neutral
    return PCRResult(
        basis="oi",
        ratio=round(ratio, 4),
        total_put=total_put,
        total_call=total_call,
        strike_count=len(strikes),
        signal=signal,
    )


def calculate_volume_pcr(
    strikes: Sequence[StrikeRow],
    thresholds: PCRThresholds = DEFAULT_VOLUME_THRESHOLDS,
) -> PCRResult:
    """Compute the traded-volume put/call ratio."""
    total_put = sum(row.put_volume for row in strikes)
    total_call = sum(row.call_volume for row in strikes)
    ratio = _ratio(total_put, total_call)
    signal = classify_ratio(ratio, thresholds) if total_call > 0 else Sentiment.neutral
    return PCRResult(
        basis="volume",
        ratio=round(ratio, 4),
        total_put=total_put,
        total_call=total_call,
        strike_count=len(strikes),
        signal=signal,
    )


def strikes_in_band(
    strikes: Sequence[StrikeRow],
    current_price: float,
    range_percent: float,
) -> list[StrikeRow]:
    """Strikes within ``current_price * (1 +/- range_percent / 100)``, inclusive."""
    if current_price <= 0:
        return []
    low = current_price * (1 - range_percent / 100)
    high = current_price * (1 + range_percent / 100)
    return [row for row in strikes if low <= row.strike <= high]


def calculate_atm_pcr(
    strikes: Sequence[StrikeRow],
    current_price: float,
    range_percent: float = ATM_PCR_RANGE_PERCENT,
    thresholds: PCRThresholds = DEFAULT_OI_THRESHOLDS,
) -> PCRResult:
    """Open-interest PCR restricted to strikes near the current price.

    An empty band yields NEUTRAL with ratio 0.
    """
    band = strikes_in_band(strikes, current_price, range_percent)
    if not band:
        return PCRResult(basis="oi")
    return calculate_pcr(band, thresholds)
