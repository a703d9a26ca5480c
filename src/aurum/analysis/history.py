"""Historical context from stored snapshots.

Each stored snapshot is condensed to a HistoryPoint (price, PCR, max pain
and the signal it produced against the snapshot before it). The context
built from those points tells the providers how the signal, PCR and max
pain have been moving, and how price behaved after earlier snapshots with
a similar PCR.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import numpy as np

from aurum.analysis.models import (
    AnalysisConfig,
    HistoricalContext,
    HistoryPoint,
    MarketSnapshot,
    MaxPainChange,
    MaxPainHistory,
    PcrHistory,
    SignalDistribution,
    SimilarConditions,
)
from aurum.analysis.signal import build_signal, gather_inputs
from aurum.core.constants import (
    HISTORY_MAX_POINTS,
    RECENT_SIGNAL_DAYS,
    RECENT_SIGNAL_LIMIT,
    SIMILAR_LOOKAHEAD_HOURS,
    SIMILAR_PCR_TOLERANCE,
    SIMILAR_SIDEWAYS_BAND,
)


def build_history_points(
    snapshots: Sequence[MarketSnapshot],
    config: AnalysisConfig | None = None,
    max_points: int = HISTORY_MAX_POINTS,
) -> list[HistoryPoint]:
    """Condense snapshots into history points, oldest first.

    Long histories are sampled evenly down to ``max_points``, always keeping
    the latest snapshot. Each sampled snapshot is scored against the one
    stored immediately before it.
    """
    config = config or AnalysisConfig()
    ordered = sorted(snapshots, key=lambda s: s.captured_at)
    if not ordered:
        return []

    step = max(1, math.ceil(len(ordered) / max_points))
    indices = list(range(len(ordered) - 1, -1, -step))[::-1]

    points = []
    for i in indices:
        current = ordered[i]
        previous = ordered[i - 1] if i > 0 else None
        inputs = gather_inputs(current, previous, config)
        signal = build_signal(current, inputs, config)
        points.append(
            HistoryPoint(
                captured_at=current.captured_at,
                price=current.current_price,
                pcr=inputs.pcr.ratio,
                max_pain=inputs.max_pain.max_pain_strike,
                signal=signal.type,
                strength=signal.strength,
            )
        )
    return points


def _mean(values: Sequence[float], default: float) -> float:
    return round(float(np.mean(values)), 4) if values else default


def _pcr_history(points: Sequence[HistoryPoint], now: datetime) -> PcrHistory:
    current = points[-1].pcr
    week = [p.pcr for p in points if p.captured_at >= now - timedelta(days=7)]
    month = [p.pcr for p in points if p.captured_at >= now - timedelta(days=30)]
    avg_7d = _mean(week, current)
    avg_30d = _mean(month, current)

    trend = "STABLE"
    if avg_7d > 0 and current > avg_7d * 1.1:
        trend = "INCREASING"
    elif avg_7d > 0 and current < avg_7d * 0.9:
        trend = "DECREASING"
    return PcrHistory(current=current, avg_7d=avg_7d, avg_30d=avg_30d, trend=trend)


def _max_pain_history(points: Sequence[HistoryPoint]) -> MaxPainHistory:
    current = points[-1].max_pain
    changes: list[MaxPainChange] = []
    for point in reversed(points):
        if not changes or changes[-1].strike != point.max_pain:
            changes.append(MaxPainChange(strike=point.max_pain, captured_at=point.captured_at))
        if len(changes) == RECENT_SIGNAL_LIMIT:
            break

    trend = "STABLE"
    if len(changes) >= 3 and current > 0:
        recent_avg = sum(c.strike for c in changes[:3]) / 3
        if recent_avg > current * 1.01:
            trend = "MOVING_DOWN"
        elif recent_avg < current * 0.99:
            trend = "MOVING_UP"
    return MaxPainHistory(current=current, changes=changes, trend=trend)


def _similar_conditions(points: Sequence[HistoryPoint]) -> SimilarConditions:
    current_pcr = points[-1].pcr
    if current_pcr <= 0:
        return SimilarConditions()

    times = [p.captured_at for p in points]
    lookahead = timedelta(hours=SIMILAR_LOOKAHEAD_HOURS)
    found = 0
    moves: list[float] = []
    for point in points[:-1]:
        if abs(point.pcr - current_pcr) / current_pcr > SIMILAR_PCR_TOLERANCE:
            continue
        found += 1
        later = bisect_left(times, point.captured_at + lookahead)
        if later < len(points):
            moves.append(points[later].price - point.price)

    avg_change = round(float(np.mean(moves)), 2) if moves else 0.0
    direction = "SIDEWAYS"
    if avg_change > SIMILAR_SIDEWAYS_BAND:
        direction = "UP"
    elif avg_change < -SIMILAR_SIDEWAYS_BAND:
        direction = "DOWN"
    return SimilarConditions(
        found=found, measured=len(moves), avg_price_change=avg_change, direction=direction
    )


def build_historical_context(
    points: Sequence[HistoryPoint],
    now: datetime | None = None,
) -> HistoricalContext | None:
    """Summarize history points (oldest first); None without any point."""
    if not points:
        return None
    now = now or datetime.now(UTC)

    cutoff = now - timedelta(days=RECENT_SIGNAL_DAYS)
    recent = [p for p in reversed(points) if p.captured_at >= cutoff][:RECENT_SIGNAL_LIMIT]

    distribution = SignalDistribution(
        buy=sum(1 for p in recent if p.signal.is_buy),
        sell=sum(1 for p in recent if p.signal.is_sell),
        neutral=sum(1 for p in recent if not p.signal.is_buy and not p.signal.is_sell),
    )
    if distribution.buy > distribution.sell * 1.5:
        signal_trend = "BULLISH"
    elif distribution.sell > distribution.buy * 1.5:
        signal_trend = "BEARISH"
    else:
        signal_trend = "MIXED"

    pcr = _pcr_history(points, now)
    max_pain = _max_pain_history(points)
    similar = _similar_conditions(points)

    summary = (
        f"Last {RECENT_SIGNAL_DAYS} days: {distribution.buy} buy, {distribution.sell} sell, "
        f"{distribution.neutral} neutral signals ({signal_trend.lower()}). "
        f"PCR {pcr.current:.2f} vs 7-day average {pcr.avg_7d:.2f} ({pcr.trend.lower()}). "
        f"Max pain {max_pain.trend.lower().replace('_', ' ')}."
    )

    return HistoricalContext(
        recent=recent,
        distribution=distribution,
        signal_trend=signal_trend,
        pcr=pcr,
        max_pain=max_pain,
        similar=similar,
        summary=summary,
    )


def format_historical_context(context: HistoricalContext) -> str:
    """Render the context as a prompt section body."""
    lines = [
        f"- Signals ({context.distribution.total} in the last {RECENT_SIGNAL_DAYS} days): "
        f"{context.distribution.buy} buy / {context.distribution.sell} sell / "
        f"{context.distribution.neutral} neutral, trend {context.signal_trend}",
        f"- PCR: current {context.pcr.current:.3f}, 7-day avg {context.pcr.avg_7d:.3f}, "
        f"30-day avg {context.pcr.avg_30d:.3f} ({context.pcr.trend})",
    ]

    moves = " -> ".join(f"{c.strike:g}" for c in reversed(context.max_pain.changes[:5]))
    lines.append(f"- Max pain: {moves or 'N/A'} ({context.max_pain.trend})")

    if context.similar.measured:
        lines.append(
            f"- Similar PCR seen {context.similar.found} times; price moved "
            f"{context.similar.avg_price_change:+.2f} on average over the next "
            f"{SIMILAR_LOOKAHEAD_HOURS}h ({context.similar.direction})"
        )
    elif context.similar.found:
        lines.append(f"- Similar PCR seen {context.similar.found} times, outcome not yet known")
    return "\n".join(lines)
