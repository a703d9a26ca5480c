"""Open-interest flow analysis.

Compares two snapshots strike by strike and classifies the flow:

    OI change    call flow dominant          put flow dominant
    increasing   BULLISH (new longs)         BEARISH (new shorts)
    decreasing   REVERSAL (short covering)   REVERSAL (long liquidation)

No net change, or equal call and put flow, is NEUTRAL.
"""

from __future__ import annotations

from collections.abc import Sequence

from aurum.analysis.models import (
    BuildupResult,
    FlowSignal,
    OIFlowResult,
    StrikeOIChange,
    StrikeRow,
)
from aurum.core.constants import ATM_BUILDUP_RANGE_PERCENT, SIGNIFICANT_OI_CHANGE_PERCENT


def _percent(change: int, base: int) -> float:
    return round(change / base * 100, 2) if base > 0 else 0.0


def classify_flow(total_call_change: int, total_put_change: int) -> tuple[FlowSignal, str]:
    """Apply the buildup/unwind table to aggregate call and put OI changes.

    Returns:
        (signal, human-readable description)
    """
    net = total_call_change + total_put_change
    if net == 0 or total_call_change == total_put_change:
        return FlowSignal.neutral, "Open interest flow balanced"

    call_dominant = total_call_change > total_put_change
    if net > 0:
        if call_dominant:
            return FlowSignal.bullish, "OI increasing with call flow dominant (new longs)"
        return FlowSignal.bearish, "OI increasing with put flow dominant (new shorts)"
    if call_dominant:
        return FlowSignal.reversal, "OI decreasing with call flow dominant (short covering)"
    return FlowSignal.reversal, "OI decreasing with put flow dominant (long liquidation)"


def compute_strike_changes(
    current: Sequence[StrikeRow],
    previous: Sequence[StrikeRow],
) -> list[StrikeOIChange]:
    """Per-strike OI changes over the union of both chains, ascending by strike.

    A strike missing from one snapshot counts as zero open interest there.
    """
    current_by_strike = {row.strike: row for row in current}
    previous_by_strike = {row.strike: row for row in previous}

    changes: list[StrikeOIChange] = []
    for strike in sorted(current_by_strike.keys() | previous_by_strike.keys()):
        cur = current_by_strike.get(strike)
        prev = previous_by_strike.get(strike)
        call_oi = cur.call_oi if cur else 0
        put_oi = cur.put_oi if cur else 0
        prev_call = prev.call_oi if prev else 0
        prev_put = prev.put_oi if prev else 0
        changes.append(
            StrikeOIChange(
                strike=strike,
                call_oi=call_oi,
                put_oi=put_oi,
                previous_call_oi=prev_call,
                previous_put_oi=prev_put,
                call_change=call_oi - prev_call,
                put_change=put_oi - prev_put,
                call_change_percent=_percent(call_oi - prev_call, prev_call),
                put_change_percent=_percent(put_oi - prev_put, prev_put),
            )
        )
    return changes


def analyze_oi_flow(
    current: Sequence[StrikeRow],
    previous: Sequence[StrikeRow],
    significant_percent: float = SIGNIFICANT_OI_CHANGE_PERCENT,
) -> OIFlowResult:
    """Whole-chain open-interest flow between two snapshots."""
    changes = compute_strike_changes(current, previous)

    total_call_change = sum(c.call_change for c in changes)
    total_put_change = sum(c.put_change for c in changes)
    total_prev_call = sum(c.previous_call_oi for c in changes)
    total_prev_put = sum(c.previous_put_oi for c in changes)

    signal, description = classify_flow(total_call_change, total_put_change)

    significant = [
        c
        for c in changes
        if abs(c.call_change_percent) >= significant_percent
        or abs(c.put_change_percent) >= significant_percent
    ]
    significant.sort(
        key=lambda c: max(abs(c.call_change_percent), abs(c.put_change_percent)),
        reverse=True,
    )

    return OIFlowResult(
        changes=changes,
        total_call_change=total_call_change,
        total_put_change=total_put_change,
        net_oi_change=total_call_change + total_put_change,
        total_call_change_percent=_percent(total_call_change, total_prev_call),
        total_put_change_percent=_percent(total_put_change, total_prev_put),
        signal=signal,
        description=description,
        significant_changes=significant,
    )


def analyze_atm_buildup(
    changes: Sequence[StrikeOIChange],
    current_price: float,
    range_percent: float = ATM_BUILDUP_RANGE_PERCENT,
) -> BuildupResult:
    """Apply the flow table to strikes within ``range_percent`` of the price.

    An empty band (or a non-positive price) is NEUTRAL.
    """
    if current_price <= 0:
        return BuildupResult(range_percent=range_percent, description="No reference price")

    low = current_price * (1 - range_percent / 100)
    high = current_price * (1 + range_percent / 100)
    band = [c for c in changes if low <= c.strike <= high]
    if not band:
        return BuildupResult(range_percent=range_percent, description="No strikes near price")

    total_call_change = sum(c.call_change for c in band)
    total_put_change = sum(c.put_change for c in band)
    signal, description = classify_flow(total_call_change, total_put_change)

    return BuildupResult(
        range_percent=range_percent,
        strike_count=len(band),
        total_call_change=total_call_change,
        total_put_change=total_put_change,
        net_oi_change=total_call_change + total_put_change,
        signal=signal,
        description=f"Near price: {description}",
    )
