"""Telegram notification service.

Sends HTML alerts for strong option-flow signals, AI consensus results and
accuracy sweeps to the configured chat.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx

from aurum.config import get_settings
from aurum.core.constants import TELEGRAM_MAX_MESSAGE_LENGTH
from aurum.core.logging import get_logger

if TYPE_CHECKING:
    from aurum.accuracy.models import EvaluationSummary, ProviderComparison
    from aurum.analysis.models import KeyLevels, MarketSnapshot, Signal
    from aurum.consensus.models import ConsensusResult

logger = get_logger(__name__)

# Telegram API timeout
TELEGRAM_TIMEOUT = 10.0

TELEGRAM_MAX_LENGTH = TELEGRAM_MAX_MESSAGE_LENGTH

# Section separators for message formatting (10 chars max for mobile)
SECTION_SEPARATOR = "━━━━━━━━━━"
SUBSECTION_SEPARATOR = "──────────"

SIGNAL_EMOJI = {
    "STRONG_BUY": "🟢🟢",
    "BUY": "🟢",
    "NEUTRAL": "⚪",
    "SELL": "🔴",
    "STRONG_SELL": "🔴🔴",
}

AGREEMENT_EMOJI = {"HIGH": "✅", "MEDIUM": "🟡", "LOW": "🟠", "CONFLICT": "⚠️"}


def _escape_html(text: str) -> str:
    """Escape HTML special characters for Telegram."""
    return (
        text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
    )


def _split_message_at_sections(message: str, max_length: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split a long message into chunks at section boundaries.

    Prefers SECTION_SEPARATOR lines, then blank lines, then any newline.
    Multi-part messages get "⋯ i/n" part indicators.

    Args:
        message: The full message text
        max_length: Maximum length per chunk (default: Telegram limit)

    Returns:
        List of message chunks, each under max_length
    """
    if len(message) <= max_length:
        return [message]

    # Room for the part indicators added below
    effective_max = max_length - 40

    chunks: list[str] = []
    remaining = message

    while remaining:
        if len(remaining) <= effective_max:
            chunks.append(remaining)
            break

        search_area = remaining[:effective_max]
        last_separator_pos = search_area.rfind(SECTION_SEPARATOR)

        if last_separator_pos > 0:
            # Separator starts the next chunk
            chunk = remaining[:last_separator_pos].rstrip()
            remaining = remaining[last_separator_pos:].lstrip("\n")
        else:
            last_double_nl = search_area.rfind("\n\n")
            last_newline = search_area.rfind("\n")
            split_pos = last_double_nl if last_double_nl > effective_max // 2 else last_newline

            if split_pos > effective_max // 2:
                chunk = remaining[:split_pos].rstrip()
                remaining = remaining[split_pos:].lstrip("\n")
            else:
                chunk = remaining[:effective_max].rstrip()
                remaining = remaining[effective_max:].lstrip("\n")

        chunks.append(chunk)

    if len(chunks) > 1:
        total = len(chunks)
        for i in range(total):
            if i < total - 1:
                chunks[i] += f"\n\n<i>⋯ {i + 1}/{total}</i>"
            if i > 0:
                chunks[i] = f"<i>⋯ {i + 1}/{total}</i>\n\n" + chunks[i]

    return chunks


async def send_telegram(message: str, parse_mode: str = "HTML") -> bool:
    """Send a message to the configured Telegram chat.

    Args:
        message: The message text (HTML by default)
        parse_mode: Telegram parse mode

    Returns:
        True if the Telegram API accepted the message
    """
    settings = get_settings()

    if not settings.telegram_bot_token:
        logger.warning("Telegram bot token not configured, skipping notification")
        return False

    if not settings.telegram_chat_id:
        logger.warning("Telegram chat ID not configured, skipping notification")
        return False

    url = (
        f"https://api.telegram.org/bot{settings.telegram_bot_token.get_secret_value()}/sendMessage"
    )

    payload = {
        "chat_id": settings.telegram_chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        async with httpx.AsyncClient(timeout=TELEGRAM_TIMEOUT) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()

            result = response.json()
            if result.get("ok"):
                logger.debug("Telegram message sent")
                return True
            logger.warning("Telegram API returned error", error=result.get("description"))
            return False

    except httpx.HTTPError as e:
        logger.error("Failed to send Telegram message", error=str(e))
        return False
    except (json.JSONDecodeError, KeyError) as e:
        logger.error("Failed to parse Telegram API response", error=str(e))
        return False


async def send_long_telegram(message: str, parse_mode: str = "HTML") -> bool:
    """Send a message of any length, split at section boundaries.

    Returns:
        True only if every chunk was sent
    """
    chunks = _split_message_at_sections(message)

    all_sent = True
    for i, chunk in enumerate(chunks):
        if not await send_telegram(chunk, parse_mode):
            logger.warning("Failed to send message chunk", chunk_index=i, total_chunks=len(chunks))
            all_sent = False

    return all_sent


def _format_levels(levels: KeyLevels) -> str:
    lines = []
    if levels.resistance:
        lines.append(
            "🔺 Resistance: "
            + ", ".join(f"{lvl.strike:g} ({lvl.open_interest:,})" for lvl in levels.resistance)
        )
    if levels.support:
        lines.append(
            "🔻 Support: "
            + ", ".join(f"{lvl.strike:g} ({lvl.open_interest:,})" for lvl in levels.support)
        )
    if levels.max_pain is not None:
        lines.append(f"🎯 Max pain: {levels.max_pain:g}")
    return "\n".join(lines)


def format_signal_alert(signal: Signal, snapshot: MarketSnapshot) -> str:
    """Format a weighted option-flow signal for Telegram.

    Args:
        signal: Signal from the signal generator
        snapshot: Snapshot the signal was computed from

    Returns:
        HTML-formatted message
    """
    sig = signal.type.value
    strength_bar = "●" * signal.strength + "○" * (5 - signal.strength)

    msg = f"""{SIGNAL_EMOJI.get(sig, "⚪")} <b>{sig.replace("_", " ")}</b> {snapshot.product} {_escape_html(snapshot.expiry)}

💰 Price: <code>{snapshot.current_price:,.2f}</code>
💪 Strength: {strength_bar} ({signal.strength}/5)
📊 Confidence: {signal.confidence}%
⚖️ Score: bullish {signal.bullish_score:g} / bearish {signal.bearish_score:g}"""

    levels = _format_levels(signal.key_levels)
    if levels:
        msg += f"\n\n{SECTION_SEPARATOR}\n📍 <b>Key levels</b>\n{levels}"

    if signal.bullish_factors or signal.bearish_factors:
        msg += f"\n\n{SECTION_SEPARATOR}\n🧭 <b>Factors</b>"
        for factor in signal.bullish_factors:
            msg += f"\n🟢 {_escape_html(factor)}"
        for factor in signal.bearish_factors:
            msg += f"\n🔴 {_escape_html(factor)}"

    msg += f"\n\n<i>{_escape_html(signal.reason)}</i>"
    return msg


def format_consensus_alert(result: ConsensusResult) -> str:
    """Format a multi-provider consensus for Telegram."""
    rec = result.recommendation.value
    agreement = result.agreement_level.value
    entry = result.entry_zone

    msg = f"""🤖 <b>AI CONSENSUS</b> {SIGNAL_EMOJI.get(rec, "⚪")} {rec.replace("_", " ")}

📊 Confidence: {result.confidence}%
{AGREEMENT_EMOJI.get(agreement, "")} Agreement: {agreement}

{SECTION_SEPARATOR}
🎯 <b>Trade plan</b>
Entry: <code>{entry.start:,.2f} - {entry.end:,.2f}</code>
SL: <code>{result.stop_loss:,.2f}</code>
TP1: <code>{result.take_profit_1:,.2f}</code>
TP2: <code>{result.take_profit_2:,.2f}</code>"""

    if result.take_profit_3 is not None:
        msg += f"\nTP3: <code>{result.take_profit_3:,.2f}</code>"

    msg += f"\n\n{SECTION_SEPARATOR}\n🗳 <b>Providers</b>"
    for r in result.results:
        if r.success and r.prediction is not None:
            pred = r.prediction
            msg += (
                f"\n{SIGNAL_EMOJI.get(pred.recommendation.value, '⚪')} {_escape_html(r.provider)}: "
                f"{pred.recommendation.value} ({pred.confidence}%)"
            )
        else:
            msg += f"\n❌ {_escape_html(r.provider)}: {_escape_html(r.error or 'failed')}"

    if result.warnings:
        msg += f"\n\n{SUBSECTION_SEPARATOR}\n⚠️ <b>Warnings</b>"
        for warning in result.warnings:
            msg += f"\n• {_escape_html(warning)}"

    msg += f"\n\n<i>{_escape_html(result.summary)}</i>"
    return msg


def format_evaluation_report(
    summary: EvaluationSummary,
    comparison: ProviderComparison,
    price: float,
) -> str:
    """Format an accuracy sweep and the provider leaderboard for Telegram."""
    msg = f"""📈 <b>PREDICTION CHECK</b> @ <code>{price:,.2f}</code>

Evaluated: {summary.evaluated} | ✅ {summary.wins} | ❌ {summary.losses}"""

    if comparison.providers:
        msg += f"\n\n{SECTION_SEPARATOR}\n🏆 <b>Win rate</b> (7d / all)"
        for stats in comparison.providers:
            msg += (
                f"\n{_escape_html(stats.provider)}: {stats.last_7_days_win_rate}% / "
                f"{stats.win_rate}% ({stats.resolved} resolved)"
            )

    msg += f"\n\n💡 {_escape_html(comparison.recommendation)}"
    return msg
