"""Tests for the notification dispatcher."""

from unittest.mock import AsyncMock, patch

import pytest

from aurum.analysis.models import MarketSnapshot, Signal, SignalType
from aurum.consensus.models import AgreementLevel, ConsensusResult, EntryZone, VoteCounts
from aurum.notifications.dispatcher import notify_consensus, notify_signal

SNAPSHOT = MarketSnapshot(product="GC", current_price=2015)


def make_signal(signal_type: SignalType, strength: int) -> Signal:
    return Signal(type=signal_type, strength=strength, confidence=70)


class TestNotifySignal:
    """Tests for notify_signal."""

    @pytest.mark.asyncio
    async def test_sends_strong_signal(self) -> None:
        with patch(
            "aurum.notifications.dispatcher.send_long_telegram",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_send:
            result = await notify_signal(make_signal(SignalType.sell, 4), SNAPSHOT, 4)

        assert result is True
        assert "SELL" in mock_send.call_args.args[0]

    @pytest.mark.asyncio
    async def test_skips_weak_signal(self) -> None:
        with patch(
            "aurum.notifications.dispatcher.send_long_telegram", new_callable=AsyncMock
        ) as mock_send:
            result = await notify_signal(make_signal(SignalType.buy, 3), SNAPSHOT, 4)

        assert result is False
        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_never_sends_neutral(self) -> None:
        with patch(
            "aurum.notifications.dispatcher.send_long_telegram", new_callable=AsyncMock
        ) as mock_send:
            result = await notify_signal(make_signal(SignalType.neutral, 2), SNAPSHOT, 1)

        assert result is False
        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_swallowed(self) -> None:
        with patch(
            "aurum.notifications.dispatcher.send_long_telegram",
            new_callable=AsyncMock,
            side_effect=RuntimeError("network down"),
        ):
            result = await notify_signal(make_signal(SignalType.strong_buy, 5), SNAPSHOT, 4)

        assert result is False


class TestNotifyConsensus:
    """Tests for notify_consensus."""

    @pytest.mark.asyncio
    async def test_sends_consensus(self) -> None:
        result = ConsensusResult(
            recommendation=SignalType.buy,
            confidence=66,
            average_score=1.0,
            agreement_level=AgreementLevel.high,
            entry_zone=EntryZone(start=2000, end=2010),
            stop_loss=1985,
            take_profit_1=2030,
            take_profit_2=2050,
            votes=VoteCounts(buy=2),
        )

        with patch(
            "aurum.notifications.dispatcher.send_long_telegram",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_send:
            sent = await notify_consensus(result)

        assert sent is True
        assert "AI CONSENSUS" in mock_send.call_args.args[0]
