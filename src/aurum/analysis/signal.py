"""Weighted signal generator.

Each factor votes with a fixed weight for the bullish or bearish side:

    whole-chain PCR   2.0
    ATM PCR           2.0
    max pain tilt     1.5
    OI trend          2.0
    ATM OI buildup    1.5

``net = bullish - bearish`` maps to a strength of 1-5 (see
``classify_net_score``). Confidence is scored independently by
``aurum.analysis.scoring`` and then expressed relative to the signal type.
"""

from __future__ import annotations

from dataclasses import dataclass

from aurum.analysis.key_levels import find_key_levels
from aurum.analysis.max_pain import calculate_max_pain
from aurum.analysis.models import (
    AnalysisConfig,
    BuildupResult,
    FactorVote,
    FlowSignal,
    KeyLevels,
    MarketSnapshot,
    MaxPainResult,
    OIFlowResult,
    PCRResult,
    Sentiment,
    Signal,
    SignalType,
    VolumeAnalysis,
)
from aurum.analysis.oi_flow import analyze_atm_buildup, analyze_oi_flow
from aurum.analysis.pcr import calculate_atm_pcr, calculate_pcr, calculate_volume_pcr
from aurum.analysis.scoring import directional_score, score_factors, signal_confidence
from aurum.analysis.volume import analyze_volume, calculate_vwap
from aurum.core.constants import NEUTRAL_ACTIVITY_THRESHOLD, STRENGTH_CUTOFFS


@dataclass(frozen=True, slots=True)
class SignalInputs:
    """Factor results feeding the signal generator."""

    pcr: PCRResult
    atm_pcr: PCRResult
    volume_pcr: PCRResult
    max_pain: MaxPainResult
    key_levels: KeyLevels
    volume: VolumeAnalysis
    vwap: float
    oi_flow: OIFlowResult | None = None
    atm_buildup: BuildupResult | None = None


def classify_net_score(net_score: float, total_score: float) -> tuple[SignalType, int]:
    """Map the vote balance to a signal type and strength.

    ``|net| >= 4`` is strength 5 (STRONG_BUY / STRONG_SELL), ``>= 2.5`` is 4
    and ``>= 1`` is 3 (BUY / SELL). Anything weaker is NEUTRAL with strength
    2 when total activity exceeds 3, else 1.
    """
    magnitude = abs(net_score)
    for cutoff, strength in STRENGTH_CUTOFFS:
        if magnitude >= cutoff:
            if net_score > 0:
                return (SignalType.strong_buy if strength == 5 else SignalType.buy), strength
            return (SignalType.strong_sell if strength == 5 else SignalType.sell), strength
    strength = 2 if total_score > NEUTRAL_ACTIVITY_THRESHOLD else 1
    return SignalType.neutral, strength


def gather_inputs(
    current: MarketSnapshot,
    previous: MarketSnapshot | None,
    config: AnalysisConfig,
) -> SignalInputs:
    """Run every factor analyzer the signal needs."""
    strikes = current.strikes
    price = current.current_price

    max_pain = calculate_max_pain(strikes, price, config.max_pain_tolerance_percent)

    oi_flow = None
    atm_buildup = None
    if previous is not None:
        oi_flow = analyze_oi_flow(strikes, previous.strikes, config.significant_change_percent)
        atm_buildup = analyze_atm_buildup(oi_flow.changes, price, config.buildup_range_percent)

    return SignalInputs(
        pcr=calculate_pcr(strikes, config.oi_thresholds),
        atm_pcr=calculate_atm_pcr(strikes, price, config.atm_range_percent, config.oi_thresholds),
        volume_pcr=calculate_volume_pcr(strikes, config.volume_thresholds),
        max_pain=max_pain,
        key_levels=find_key_levels(
            strikes, max_pain=max_pain.max_pain_strike if strikes else None
        ),
        volume=analyze_volume(
            strikes, price, config.atm_volume_range_percent, config.volume_signal_thresholds
        ),
        vwap=calculate_vwap(strikes),
        oi_flow=oi_flow,
        atm_buildup=atm_buildup,
    )


def _vote(name: str, weight: float, reading: Sentiment | FlowSignal | None) -> FactorVote:
    if reading is None:
        return FactorVote(name=name, weight=weight, reading="UNAVAILABLE", side="none")
    if reading.value == "BULLISH":
        side = "bullish"
    elif reading.value == "BEARISH":
        side = "bearish"
    else:
        side = "none"
    return FactorVote(name=name, weight=weight, reading=reading.value, side=side)


def _vote_texts(inputs: SignalInputs) -> dict[str, str]:
    texts = {
        "pcr": f"Put/call OI ratio {inputs.pcr.ratio:.2f}",
        "atm_pcr": f"Near-price put/call OI ratio {inputs.atm_pcr.ratio:.2f}",
        "max_pain": (
            f"Max pain {inputs.max_pain.max_pain_strike:g} "
            f"({inputs.max_pain.distance_percent:+.2f}% from price)"
        ),
    }
    if inputs.oi_flow is not None:
        texts["oi_trend"] = f"OI trend: {inputs.oi_flow.description}"
    if inputs.atm_buildup is not None:
        texts["atm_buildup"] = f"OI buildup: {inputs.atm_buildup.description}"
    return texts


def build_signal(
    current: MarketSnapshot,
    inputs: SignalInputs,
    config: AnalysisConfig,
) -> Signal:
    """Combine factor results into a Signal.

    An empty chain or missing price yields NEUTRAL with strength 1.
    """
    if not current.strikes or current.current_price <= 0:
        return Signal(
            type=SignalType.neutral,
            strength=1,
            confidence=50,
            reason="No option chain data to analyze",
            product=current.product,
            current_price=current.current_price,
            captured_at=current.captured_at,
        )

    weights = config.weights
    votes = [
        _vote("pcr", weights.pcr, inputs.pcr.signal),
        _vote("atm_pcr", weights.atm_pcr, inputs.atm_pcr.signal),
        _vote("max_pain", weights.max_pain, inputs.max_pain.signal),
        _vote("oi_trend", weights.oi_trend, inputs.oi_flow.signal if inputs.oi_flow else None),
        _vote(
            "atm_buildup",
            weights.atm_buildup,
            inputs.atm_buildup.signal if inputs.atm_buildup else None,
        ),
    ]

    bullish_score = sum(v.weight for v in votes if v.side == "bullish")
    bearish_score = sum(v.weight for v in votes if v.side == "bearish")
    net_score = bullish_score - bearish_score
    signal_type, strength = classify_net_score(net_score, bullish_score + bearish_score)

    scores, scored_bullish, scored_bearish = score_factors(
        current.strikes,
        current.current_price,
        inputs.volume_pcr.ratio,
        inputs.vwap,
        inputs.key_levels,
        inputs.max_pain,
        inputs.volume,
    )
    factor_score = directional_score(scores)
    confidence = signal_confidence(signal_type, factor_score)

    texts = _vote_texts(inputs)
    bullish_factors = [f"{texts[v.name]} (bullish)" for v in votes if v.side == "bullish"]
    bearish_factors = [f"{texts[v.name]} (bearish)" for v in votes if v.side == "bearish"]
    bullish_factors.extend(scored_bullish)
    bearish_factors.extend(scored_bearish)

    reason = (
        f"{signal_type.value} strength {strength}: bullish {bullish_score:g} "
        f"vs bearish {bearish_score:g} (net {net_score:+g}), factor score {factor_score}"
    )

    return Signal(
        type=signal_type,
        strength=strength,
        confidence=confidence,
        bullish_score=bullish_score,
        bearish_score=bearish_score,
        net_score=net_score,
        votes=votes,
        bullish_factors=bullish_factors,
        bearish_factors=bearish_factors,
        factor_scores=scores,
        factor_score=factor_score,
        key_levels=inputs.key_levels,
        reason=reason,
        product=current.product,
        current_price=current.current_price,
        captured_at=current.captured_at,
    )


def compute_signal(
    current: MarketSnapshot,
    previous: MarketSnapshot | None = None,
    config: AnalysisConfig | None = None,
) -> Signal:
    """Compute the trading signal for a snapshot.

    Args:
        current: Latest snapshot
        previous: Earlier snapshot of the same product; without it the OI
            trend and OI buildup factors do not vote
        config: Thresholds and weights (defaults when omitted)

    Returns:
        Signal, never raises on degenerate input
    """
    config = config or AnalysisConfig()
    return build_signal(current, gather_inputs(current, previous, config), config)
