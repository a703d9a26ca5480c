"""Traded-volume analysis and VWAP."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from aurum.analysis.models import PCRThresholds, Sentiment, StrikeRow, VolumeAnalysis, VolumeSpike
from aurum.core.constants import (
    ATM_VOLUME_RANGE_PERCENT,
    VOLUME_SIGNAL_THRESHOLDS,
    VOLUME_SPIKE_MULTIPLIER,
)

MAX_SPIKES = 10

Direction = Literal["BUY", "SELL", "NEUTRAL"]


def calculate_vwap(strikes: Sequence[StrikeRow]) -> float:
    """Volume-weighted average strike, 0 when nothing traded."""
    total_volume = sum(row.total_volume for row in strikes)
    if total_volume <= 0:
        return 0.0
    return sum(row.strike * row.total_volume for row in strikes) / total_volume


def analyze_volume(
    strikes: Sequence[StrikeRow],
    current_price: float,
    range_percent: float = ATM_VOLUME_RANGE_PERCENT,
    thresholds: PCRThresholds = PCRThresholds.of(VOLUME_SIGNAL_THRESHOLDS),
) -> VolumeAnalysis:
    """Summarize traded volume and derive a volume-based sentiment.

    Spikes are strikes trading more than twice the per-strike average. The
    signal comes from the volume PCR first, then from the balance of call-
    vs put-dominant spikes near the price.

    Args:
        strikes: Option chain
        current_price: Underlying reference price
        range_percent: Half-width of the near-price band
        thresholds: Volume PCR cutoffs for the signal

    Returns:
        VolumeAnalysis with a 0-100 confidence for its signal
    """
    if not strikes:
        return VolumeAnalysis()

    atm_range = current_price * range_percent / 100
    total_call = sum(row.call_volume for row in strikes)
    total_put = sum(row.put_volume for row in strikes)
    total = total_call + total_put
    atm_total = sum(
        row.total_volume for row in strikes if abs(row.strike - current_price) <= atm_range
    )

    volume_pcr = total_put / total_call if total_call > 0 else 1.0
    average = total / len(strikes)
    spike_threshold = average * VOLUME_SPIKE_MULTIPLIER

    spikes = [
        VolumeSpike(
            strike=row.strike,
            total_volume=row.total_volume,
            call_volume=row.call_volume,
            put_volume=row.put_volume,
            volume_ratio=round(row.total_volume / average, 2) if average > 0 else 0.0,
            is_call_dominant=row.call_volume > row.put_volume,
            near_price=abs(row.strike - current_price) <= atm_range,
        )
        for row in strikes
        if row.total_volume > spike_threshold
    ]
    spikes.sort(key=lambda s: s.total_volume, reverse=True)

    concentration = atm_total / total * 100 if total > 0 else 0.0

    near = [s for s in spikes if s.near_price]
    call_spikes = sum(1 for s in near if s.is_call_dominant)
    put_spikes = len(near) - call_spikes

    if total_call > 0 and volume_pcr < thresholds.bullish_below:
        signal = Sentiment.bullish
        confidence = 65 + min(20.0, (thresholds.bullish_below - volume_pcr) * 50)
        description = f"Low volume PCR ({volume_pcr:.2f}): call volume leads, buying pressure"
    elif volume_pcr > thresholds.bearish_above:
        signal = Sentiment.bearish
        confidence = 65 + min(20.0, (volume_pcr - thresholds.bearish_above) * 30)
        description = f"High volume PCR ({volume_pcr:.2f}): put volume leads, selling or hedging"
    elif call_spikes > put_spikes * 1.5:
        signal = Sentiment.bullish
        confidence = 55 + min(15, call_spikes * 5)
        description = f"Call-dominant volume spikes near price ({call_spikes}/{len(near)})"
    elif put_spikes > call_spikes * 1.5:
        signal = Sentiment.bearish
        confidence = 55 + min(15, put_spikes * 5)
        description = f"Put-dominant volume spikes near price ({put_spikes}/{len(near)})"
    else:
        signal = Sentiment.neutral
        confidence = 40 + min(10.0, concentration / 5)
        description = "Volume balanced, no clear signal"

    if concentration > 30:
        confidence = min(100.0, confidence + 10)

    return VolumeAnalysis(
        total_call_volume=total_call,
        total_put_volume=total_put,
        total_volume=total,
        volume_pcr=round(volume_pcr, 2),
        avg_volume_per_strike=round(average),
        volume_spikes=spikes[:MAX_SPIKES],
        atm_volume_concentration=round(concentration, 1),
        signal=signal,
        confidence=round(confidence),
        description=description,
    )


def volume_confirmation(analysis: VolumeAnalysis, direction: Direction) -> tuple[int, str]:
    """Score how far volume confirms a preliminary direction.

    Returns:
        (score in [-10, 10], description). Positive when volume agrees,
        negative when it contradicts, 0 when either side is neutral.
    """
    if direction == "NEUTRAL":
        return 0, "Preliminary direction neutral, no volume confirmation needed"

    confirms = (direction == "BUY" and analysis.signal == Sentiment.bullish) or (
        direction == "SELL" and analysis.signal == Sentiment.bearish
    )
    contradicts = (direction == "BUY" and analysis.signal == Sentiment.bearish) or (
        direction == "SELL" and analysis.signal == Sentiment.bullish
    )

    magnitude = round((analysis.confidence - 50) / 5)
    if confirms:
        score = magnitude
        description = f"Volume confirms {direction}: {analysis.description}"
    elif contradicts:
        score = -magnitude
        description = f"Volume contradicts {direction}: {analysis.description}"
    else:
        return 0, "Volume shows no clear signal"

    return max(-10, min(10, score)), description
