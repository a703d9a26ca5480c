"""Multi-factor confidence scoring.

Starts from a neutral 50 and adds capped, signed contributions:

    pcr_score       volume PCR            +/-10
    vwap_score      price vs VWAP         +/-15
    flow_score      net OI change flow    +/-15
    wall_score      put/call walls        +/-20, +/-25 on a breakout
    max_pain_score  max pain magnet       +/-10
    volume_score    volume confirmation   +/-10

The result is directional (0 strong sell, 100 strong buy).
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from aurum.analysis.models import (
    FactorScores,
    KeyLevels,
    MaxPainResult,
    SignalType,
    StrikeRow,
    VolumeAnalysis,
)
from aurum.analysis.volume import Direction, volume_confirmation
from aurum.core.constants import (
    CONFIDENCE_BASE,
    MAX_PAIN_CONFIDENCE_PERCENT,
    PCR_SCORE_MILD_THRESHOLDS,
    PCR_SCORE_STRONG_THRESHOLDS,
    WALL_PROXIMITY_PERCENT,
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def _pcr_score(volume_pcr: float) -> tuple[int, str]:
    strong_bull, strong_bear = PCR_SCORE_STRONG_THRESHOLDS
    mild_bull, mild_bear = PCR_SCORE_MILD_THRESHOLDS
    if volume_pcr < strong_bull:
        return 10, f"Volume PCR very low ({volume_pcr:.2f}): call buying clearly dominates"
    if volume_pcr < mild_bull:
        return 5, f"Volume PCR low ({volume_pcr:.2f}): mild bullish bias"
    if volume_pcr > strong_bear:
        return -10, f"Volume PCR very high ({volume_pcr:.2f}): put buying clearly dominates"
    if volume_pcr > mild_bear:
        return -5, f"Volume PCR high ({volume_pcr:.2f}): mild bearish bias"
    return 0, ""


def _vwap_score(price: float, vwap: float) -> tuple[int, str]:
    if price <= 0 or vwap <= 0 or price == vwap:
        return 0, ""
    diff = (price - vwap) / vwap * 100
    if price > vwap:
        return 15, f"Price above VWAP {vwap:.1f} ({diff:+.2f}%): buyers in control"
    return -15, f"Price below VWAP {vwap:.1f} ({diff:+.2f}%): sellers in control"


def _flow_score(net_call_change: int, net_put_change: int) -> tuple[int, str]:
    if net_call_change > net_put_change and net_call_change > 0:
        return 15, f"Call OI inflow exceeds puts by {net_call_change - net_put_change:,}"
    if net_put_change > net_call_change and net_put_change > 0:
        return -15, f"Put OI inflow exceeds calls by {net_put_change - net_call_change:,}"
    return 0, ""


def _wall_score(price: float, levels: KeyLevels) -> tuple[int, str]:
    put_wall, call_wall = levels.put_wall, levels.call_wall
    if put_wall is None or call_wall is None:
        return 0, ""
    wall_range = call_wall.strike - put_wall.strike
    if wall_range <= 0:
        return 0, ""

    support_pct = (price - put_wall.strike) / wall_range * 100
    resistance_pct = (call_wall.strike - price) / wall_range * 100
    if 0 <= support_pct < WALL_PROXIMITY_PERCENT:
        return 20, f"Price near put wall {put_wall.strike:g}: bounce expected"
    if 0 <= resistance_pct < WALL_PROXIMITY_PERCENT:
        return -20, f"Price near call wall {call_wall.strike:g}: rejection expected"
    if price > call_wall.strike:
        return 25, f"Price broke above call wall {call_wall.strike:g}: breakout"
    if price < put_wall.strike:
        return -25, f"Price broke below put wall {put_wall.strike:g}: breakdown"
    return 0, ""


def _max_pain_score(max_pain: MaxPainResult) -> tuple[int, str]:
    if max_pain.distance_percent > MAX_PAIN_CONFIDENCE_PERCENT:
        return 10, (
            f"Max pain {max_pain.max_pain_strike:g} is {max_pain.distance_percent:.1f}% "
            "above price: upward pull"
        )
    if max_pain.distance_percent < -MAX_PAIN_CONFIDENCE_PERCENT:
        return -10, (
            f"Max pain {max_pain.max_pain_strike:g} is {abs(max_pain.distance_percent):.1f}% "
            "below price: downward pull"
        )
    return 0, ""


def score_factors(
    strikes: Sequence[StrikeRow],
    current_price: float,
    volume_pcr: float,
    vwap: float,
    key_levels: KeyLevels,
    max_pain: MaxPainResult,
    volume: VolumeAnalysis,
) -> tuple[FactorScores, list[str], list[str]]:
    """Score every confidence factor.

    Returns:
        (scores, bullish explanations, bearish explanations)
    """
    net_call = sum(row.call_oi_change for row in strikes)
    net_put = sum(row.put_oi_change for row in strikes)

    pcr, pcr_text = _pcr_score(volume_pcr)
    vwap_pts, vwap_text = _vwap_score(current_price, vwap)
    flow, flow_text = _flow_score(net_call, net_put)
    wall, wall_text = _wall_score(current_price, key_levels)
    pain, pain_text = _max_pain_score(max_pain)

    preliminary = CONFIDENCE_BASE + pcr + vwap_pts + flow + wall + pain
    direction: Direction = (
        "BUY" if preliminary >= 55 else "SELL" if preliminary <= 45 else "NEUTRAL"
    )
    vol, vol_text = volume_confirmation(volume, direction)

    scores = FactorScores(
        pcr_score=pcr,
        vwap_score=vwap_pts,
        flow_score=flow,
        wall_score=wall,
        max_pain_score=pain,
        volume_score=vol,
    )

    bullish: list[str] = []
    bearish: list[str] = []
    for points, text in (
        (pcr, pcr_text),
        (vwap_pts, vwap_text),
        (flow, flow_text),
        (wall, wall_text),
        (pain, pain_text),
        (vol, vol_text),
    ):
        if points > 0:
            bullish.append(text)
        elif points < 0:
            bearish.append(text)

    return scores, bullish, bearish


def directional_score(scores: FactorScores) -> int:
    """Clamp ``50 + total`` into 0..100."""
    return clamp_score(CONFIDENCE_BASE + scores.total)


def signal_confidence(signal_type: SignalType, factor_score: int) -> int:
    """Conviction in ``signal_type`` given the directional factor score.

    BUY signals read the score as-is, SELL signals read it mirrored, and
    both are floored at 50. NEUTRAL signals lose confidence the further
    the factors lean either way.
    """
    if signal_type.is_buy:
        return max(CONFIDENCE_BASE, factor_score)
    if signal_type.is_sell:
        return max(CONFIDENCE_BASE, 100 - factor_score)
    return clamp_score(CONFIDENCE_BASE - abs(factor_score - CONFIDENCE_BASE) / 2)
