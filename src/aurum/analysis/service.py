"""Full analysis of a snapshot pair: every factor, GEX and the signal."""

from __future__ import annotations

from aurum.analysis.gex import compute_gex
from aurum.analysis.models import AnalysisConfig, AnalysisResult, MarketSnapshot
from aurum.analysis.signal import build_signal, gather_inputs
from aurum.core.logging import get_logger

logger = get_logger(__name__)


def run_analysis(
    current: MarketSnapshot,
    previous: MarketSnapshot | None = None,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Analyze the latest snapshot against the previous one.

    Args:
        current: Latest snapshot
        previous: Earlier snapshot of the same product, if any
        config: Thresholds, weights and GEX assumptions

    Returns:
        AnalysisResult with every factor and the resulting Signal
    """
    config = config or AnalysisConfig()
    inputs = gather_inputs(current, previous, config)
    signal = build_signal(current, inputs, config)
    gex = compute_gex(current.strikes, current.current_price, config.days_to_expiry, config.iv)

    logger.debug(
        "Analysis complete",
        product=current.product,
        strikes=len(current.strikes),
        has_previous=previous is not None,
        signal=signal.type.value,
        strength=signal.strength,
        confidence=signal.confidence,
        total_gex=gex.total_gex,
    )

    return AnalysisResult(
        product=current.product,
        expiry=current.expiry,
        current_price=current.current_price,
        captured_at=current.captured_at,
        previous_captured_at=previous.captured_at if previous else None,
        vwap=round(inputs.vwap, 2),
        pcr=inputs.pcr,
        atm_pcr=inputs.atm_pcr,
        volume_pcr=inputs.volume_pcr,
        max_pain=inputs.max_pain,
        oi_flow=inputs.oi_flow,
        atm_buildup=inputs.atm_buildup,
        key_levels=inputs.key_levels,
        volume=inputs.volume,
        gex=gex,
        signal=signal,
    )
