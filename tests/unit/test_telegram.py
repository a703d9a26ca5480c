"""Tests for Telegram notification service."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from aurum.accuracy.models import AccuracyStats, EvaluationSummary, ProviderComparison
from aurum.analysis.models import (
    KeyLevel,
    KeyLevels,
    MarketSnapshot,
    Signal,
    SignalType,
)
from aurum.consensus.models import (
    AgreementLevel,
    ConsensusResult,
    EntryZone,
    ProviderPrediction,
    ProviderResult,
    VoteCounts,
)
from aurum.notifications.telegram import (
    SECTION_SEPARATOR,
    _escape_html,
    _split_message_at_sections,
    format_consensus_alert,
    format_evaluation_report,
    format_signal_alert,
    send_long_telegram,
    send_telegram,
)


def configured_settings() -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.telegram_bot_token = MagicMock()
    mock_settings.telegram_bot_token.get_secret_value.return_value = "test_token"
    mock_settings.telegram_chat_id = "123456789"
    return mock_settings


def mock_client_for(response: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    return mock_client


class TestSendTelegram:
    """Tests for send_telegram function."""

    @pytest.mark.asyncio
    async def test_send_telegram_success(self) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {"ok": True}
        mock_response.raise_for_status = MagicMock()
        mock_client = mock_client_for(mock_response)

        with (
            patch("aurum.notifications.telegram.get_settings", return_value=configured_settings()),
            patch("aurum.notifications.telegram.httpx.AsyncClient", return_value=mock_client),
        ):
            result = await send_telegram("Test message")

        assert result is True
        call_args = mock_client.post.call_args
        assert "test_token" in call_args[0][0]
        assert call_args[1]["json"]["text"] == "Test message"
        assert call_args[1]["json"]["chat_id"] == "123456789"
        assert call_args[1]["json"]["parse_mode"] == "HTML"

    @pytest.mark.asyncio
    async def test_send_telegram_no_token(self) -> None:
        mock_settings = configured_settings()
        mock_settings.telegram_bot_token = None

        with patch("aurum.notifications.telegram.get_settings", return_value=mock_settings):
            assert await send_telegram("Test message") is False

    @pytest.mark.asyncio
    async def test_send_telegram_no_chat_id(self) -> None:
        mock_settings = configured_settings()
        mock_settings.telegram_chat_id = None

        with patch("aurum.notifications.telegram.get_settings", return_value=mock_settings):
            assert await send_telegram("Test message") is False

    @pytest.mark.asyncio
    async def test_send_telegram_api_error(self) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {"ok": False, "description": "Bad Request"}
        mock_response.raise_for_status = MagicMock()

        with (
            patch("aurum.notifications.telegram.get_settings", return_value=configured_settings()),
            patch(
                "aurum.notifications.telegram.httpx.AsyncClient",
                return_value=mock_client_for(mock_response),
            ),
        ):
            assert await send_telegram("Test message") is False

    @pytest.mark.asyncio
    async def test_send_telegram_http_error(self) -> None:
        mock_client = AsyncMock()
        mock_client.post = AsyncMock(side_effect=httpx.ConnectError("Connection failed"))
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)

        with (
            patch("aurum.notifications.telegram.get_settings", return_value=configured_settings()),
            patch("aurum.notifications.telegram.httpx.AsyncClient", return_value=mock_client),
        ):
            assert await send_telegram("Test message") is False


class TestSendLongTelegram:
    """Tests for send_long_telegram."""

    @pytest.mark.asyncio
    async def test_sends_every_chunk(self) -> None:
        message = f"{'a' * 3000}\n\n{SECTION_SEPARATOR}\n{'b' * 3000}"

        with patch(
            "aurum.notifications.telegram.send_telegram",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_send:
            result = await send_long_telegram(message)

        assert result is True
        assert mock_send.call_count == 2

    @pytest.mark.asyncio
    async def test_reports_failed_chunk(self) -> None:
        message = f"{'a' * 3000}\n\n{SECTION_SEPARATOR}\n{'b' * 3000}"

        with patch(
            "aurum.notifications.telegram.send_telegram",
            new_callable=AsyncMock,
            side_effect=[True, False],
        ):
            assert await send_long_telegram(message) is False


class TestSplitMessage:
    """Tests for _split_message_at_sections."""

    def test_short_message_unchanged(self) -> None:
        assert _split_message_at_sections("hello") == ["hello"]

    def test_splits_at_section_separator(self) -> None:
        message = f"{'a' * 3000}\n\n{SECTION_SEPARATOR}\n{'b' * 3000}"

        chunks = _split_message_at_sections(message)

        assert len(chunks) == 2
        assert chunks[0].endswith("<i>⋯ 1/2</i>")
        assert chunks[1].startswith("<i>⋯ 2/2</i>")
        assert SECTION_SEPARATOR in chunks[1]
        assert all(len(chunk) <= 4096 for chunk in chunks)

    def test_hard_split_without_newlines(self) -> None:
        chunks = _split_message_at_sections("x" * 9000)

        assert len(chunks) == 3
        assert all(len(chunk) <= 4096 for chunk in chunks)


class TestEscapeHtml:
    """Tests for _escape_html."""

    def test_escapes_special_characters(self) -> None:
        assert _escape_html('<b>"A&B"</b>') == "&lt;b&gt;&quot;A&amp;B&quot;&lt;/b&gt;"


class TestFormatSignalAlert:
    """Tests for format_signal_alert."""

    def test_format(self) -> None:
        snapshot = MarketSnapshot(product="GC", expiry="2026-04", current_price=2015.3)
        signal = Signal(
            type=SignalType.strong_buy,
            strength=5,
            confidence=78,
            bullish_score=5.5,
            bearish_score=0,
            bullish_factors=["Put/call OI ratio 0.45 (bullish)"],
            bearish_factors=["Price below VWAP <2020>"],
            key_levels=KeyLevels(
                support=[KeyLevel(strike=1950, open_interest=4200, strength=3)],
                resistance=[KeyLevel(strike=2100, open_interest=8100, strength=3)],
                max_pain=2000,
            ),
            reason="STRONG_BUY strength 5",
        )

        msg = format_signal_alert(signal, snapshot)

        assert "<b>STRONG BUY</b> GC 2026-04" in msg
        assert "2,015.30" in msg
        assert "●●●●●" in msg
        assert "Confidence: 78%" in msg
        assert "Resistance: 2100 (8,100)" in msg
        assert "Support: 1950 (4,200)" in msg
        assert "Max pain: 2000" in msg
        assert "&lt;2020&gt;" in msg


class TestFormatConsensusAlert:
    """Tests for format_consensus_alert."""

    def test_format(self) -> None:
        prediction = ProviderPrediction(
            recommendation=SignalType.buy,
            confidence=70,
            entry_zone=EntryZone(start=2000, end=2010),
            stop_loss=1985,
            take_profit_1=2030,
            take_profit_2=2050,
        )
        result = ConsensusResult(
            recommendation=SignalType.buy,
            confidence=70,
            average_score=1.0,
            agreement_level=AgreementLevel.medium,
            entry_zone=EntryZone(start=2000, end=2010),
            stop_loss=1985,
            take_profit_1=2030,
            take_profit_2=2050,
            take_profit_3=2075,
            votes=VoteCounts(buy=1),
            results=[
                ProviderResult(provider="openai", success=True, prediction=prediction),
                ProviderResult(provider="gemini", success=False, error="Timed out after 45s"),
            ],
            summary="1 AI (openai) consensus: BUY",
            warnings=["CPI <13:30>"],
        )

        msg = format_consensus_alert(result)

        assert "AI CONSENSUS" in msg
        assert "Agreement: MEDIUM" in msg
        assert "Entry: <code>2,000.00 - 2,010.00</code>" in msg
        assert "TP3: <code>2,075.00</code>" in msg
        assert "openai: BUY (70%)" in msg
        assert "❌ gemini: Timed out after 45s" in msg
        assert "CPI &lt;13:30&gt;" in msg


class TestFormatEvaluationReport:
    """Tests for format_evaluation_report."""

    def test_format(self) -> None:
        comparison = ProviderComparison(
            providers=[
                AccuracyStats(
                    provider="claude", resolved=12, win_rate=66.7, last_7_days_win_rate=75.0
                )
            ],
            best_provider="claude",
            recommendation="claude has a 7-day win rate of 75.0%",
        )

        msg = format_evaluation_report(
            EvaluationSummary(evaluated=3, wins=2, losses=1), comparison, 2042.5
        )

        assert "PREDICTION CHECK" in msg
        assert "2,042.50" in msg
        assert "Evaluated: 3 | ✅ 2 | ❌ 1" in msg
        assert "claude: 75.0% / 66.7% (12 resolved)" in msg
        assert "claude has a 7-day win rate of 75.0%" in msg
