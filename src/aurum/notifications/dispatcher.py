"""Notification dispatcher: formats and sends alerts, never raises."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aurum.core.logging import get_logger
from aurum.notifications.telegram import (
    format_consensus_alert,
    format_signal_alert,
    send_long_telegram,
)

if TYPE_CHECKING:
    from aurum.analysis.models import MarketSnapshot, Signal
    from aurum.consensus.models import ConsensusResult

logger = get_logger(__name__)


async def notify_signal(signal: Signal, snapshot: MarketSnapshot, min_strength: int) -> bool:
    """Send a signal alert when it is strong enough.

    NEUTRAL signals are never sent, whatever their strength.

    Args:
        signal: Signal to announce
        snapshot: Snapshot the signal was computed from
        min_strength: Minimum strength (1-5) that triggers an alert

    Returns:
        True if an alert was sent
    """
    if signal.strength < min_strength or not (signal.type.is_buy or signal.type.is_sell):
        logger.debug(
            "Signal below alert threshold",
            signal=signal.type.value,
            strength=signal.strength,
            min_strength=min_strength,
        )
        return False

    try:
        return await send_long_telegram(format_signal_alert(signal, snapshot))
    except Exception:
        logger.exception("Failed to format/send signal alert", product=snapshot.product)
        return False


async def notify_consensus(result: ConsensusResult) -> bool:
    """Send a consensus alert.

    Returns:
        True if sent successfully
    """
    try:
        return await send_long_telegram(format_consensus_alert(result))
    except Exception:
        logger.exception("Failed to format/send consensus alert")
        return False
