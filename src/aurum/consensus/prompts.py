"""Prompt text and market-summary formatting for prediction providers."""

from __future__ import annotations

from aurum.analysis.history import format_historical_context
from aurum.analysis.models import AnalysisResult, HistoricalContext, TechnicalIndicators
from aurum.consensus.models import HotStrike, MarketSummary
from aurum.market.calendar import format_calendar_for_prompt
from aurum.market.models import CalendarSummary, TradingZones, XauLevels
from aurum.market.price_feed import calculate_spread, convert_levels_to_xau, trading_zones

MAX_HOT_STRIKES = 5

PREDICTION_SYSTEM_PROMPT = """You are a professional gold (XAU/USD) trading assistant. \
You analyze CME gold options data to find XAU entries.

## Rules

### 1. Direction: read intraday volume first
- Call volume > put volume -> bullish
- Put volume > call volume -> bearish
- No intraday volume (e.g. Monday morning): use net OI change instead \
(positive = bullish, negative = bearish) and say so in your reasoning

### 2. Levels: read open interest only
- Resistance = strike with the highest call OI (call wall)
- Support = strike with the highest put OI (put wall)
- The zero gamma level, when present, often acts as a price magnet

### 3. Gamma exposure and news
- Positive GEX: price oscillates (mean reversion), favor swing trades
- Negative GEX: price trends, favor breakouts
- High-impact news within 2 hours: warn about volatility

### 4. Price conversion
- Input prices are CME futures
- Convert every level to XAU spot: CME price - spread = XAU price
- Entry, stop-loss and take-profits must be XAU spot prices

## Output
- recommendation: STRONG_BUY, BUY, NEUTRAL, SELL or STRONG_SELL
- confidence: 0-100
- entry_zone with start, end and the CME strikes it is based on
- stop_loss, take_profit_1, take_profit_2 and optionally take_profit_3
- suggested_timeframe: Intraday or Swing
- Be conservative with confidence when the data conflicts"""


def _signed(value: int) -> str:
    return f"{value:+,}"


def _price(value: float | None) -> str:
    return f"${value:,.2f}" if value is not None else "N/A"


def _levels(values: list[float]) -> str:
    return ", ".join(f"{v:,.2f}" for v in values) or "N/A"


def _spot_lines(summary: MarketSummary) -> str:
    line = f"- XAU spot: {_price(summary.xau_spot_price)}"
    if summary.spot_source:
        estimated = ", estimated" if summary.spot_is_estimate else ""
        line += f" ({summary.spot_source}{estimated})"
    line += f"\n- Spread (CME - XAU): {_price(summary.spread)}"
    if summary.spread_status is not None:
        line += f"\n- Spread status: {summary.spread_status.value}"
    return line


def _xau_section(levels: XauLevels, zones: TradingZones | None) -> str:
    lines = [
        f"### XAU spot levels (CME - {levels.spread:.2f})",
        f"- Put wall: {_price(levels.put_wall)}",
        f"- Call wall: {_price(levels.call_wall)}",
        f"- Max pain: {_price(levels.max_pain)}",
        f"- Supports: {_levels(levels.supports)}",
        f"- Resistances: {_levels(levels.resistances)}",
    ]
    if zones is not None:
        lines.append(f"- Buy zone: {_price(zones.buy_zone.low)} - {_price(zones.buy_zone.high)}")
        lines.append(
            f"- Sell zone: {_price(zones.sell_zone.low)} - {_price(zones.sell_zone.high)}"
        )
        lines.append(f"- Current position: {zones.position.value}")
    return "\n".join(lines)


def _technicals_section(tech: TechnicalIndicators) -> str:
    return f"""### Technical indicators ({tech.candle_count} hourly candles)
- RSI(14): {tech.rsi:.2f} ({tech.rsi_signal})
- MA20 / MA50 / MA200: {tech.ma20:,.2f} / {tech.ma50:,.2f} / {tech.ma200:,.2f} ({tech.ma_trend})
- ATR(14): {tech.atr:.2f} ({tech.atr_percent:.2f}% of price, volatility {tech.volatility})
- ATR stop distance: {tech.suggested_sl_distance:.2f}, targets \
{tech.suggested_tp1_distance:.2f} / {tech.suggested_tp2_distance:.2f}
- Swing supports: {_levels(tech.support_levels)}
- Swing resistances: {_levels(tech.resistance_levels)}
- Trend: {tech.trend} (strength {tech.trend_strength})"""


def format_market_summary(summary: MarketSummary) -> str:
    """Render a MarketSummary as the markdown block injected into the prompt."""
    hot = "\n".join(
        f"  - Strike {s.strike:g}: {s.volume:,} contracts ({s.type})"
        for s in summary.hot_strikes[:MAX_HOT_STRIKES]
    )

    if summary.gex_regime:
        gex_section = (
            f"- GEX regime: {summary.gex_regime}\n"
            f"- GEX interpretation: {summary.gex_description or 'N/A'}\n"
            f"- Zero gamma level: {_price(summary.zero_gamma_level)}"
        )
    else:
        gex_section = "- GEX: N/A"

    events = ", ".join(summary.economic_warnings) or "None"
    if summary.calendar is not None:
        events += "\n" + format_calendar_for_prompt(summary.calendar)

    text = f"""## {summary.product} market data at {summary.data_timestamp.isoformat()}

### Prices
- CME futures: {_price(summary.cme_futures_price)}
{_spot_lines(summary)}

### Put/Call ratio
- OI PCR: {summary.oi_pcr:.3f}
- Volume PCR: {summary.volume_pcr:.3f}

### Key levels
- Max pain: {_price(summary.max_pain)}
- Call wall (resistance): {_price(summary.call_wall)}
- Put wall (support): {_price(summary.put_wall)}
- VWAP: {_price(summary.vwap)}

### OI flow
- Net OI change: {_signed(summary.net_oi_change)}
- Call OI change: {_signed(summary.call_oi_change)}
- Put OI change: {_signed(summary.put_oi_change)}

### Volume
- Total call volume: {summary.total_call_volume:,}
- Total put volume: {summary.total_put_volume:,}
- Hot strikes:
{hot or "  - None"}

### System signal
- Signal: {summary.system_signal.value}
- Confidence: {summary.system_confidence}%

### Gamma exposure
{gex_section}

### Economic events
- Warnings: {events}"""

    extra = []
    if summary.xau_levels is not None:
        extra.append(_xau_section(summary.xau_levels, summary.trading_zones))
    if summary.technicals is not None:
        extra.append(_technicals_section(summary.technicals))
    if summary.history is not None:
        extra.append("### Historical context\n" + format_historical_context(summary.history))
    return "\n\n".join([text, *extra])


def build_market_summary(
    analysis: AnalysisResult,
    spot_price: float | None = None,
    economic_warnings: list[str] | None = None,
    *,
    spot_source: str | None = None,
    spot_is_estimate: bool = False,
    calendar: CalendarSummary | None = None,
    technicals: TechnicalIndicators | None = None,
    history: HistoricalContext | None = None,
) -> MarketSummary:
    """Condense a full analysis into the provider prompt input.

    Args:
        analysis: Result of ``run_analysis``
        spot_price: XAU spot price, when known, to derive the futures spread
            and the spot-scale levels
        economic_warnings: Upcoming high-impact events to flag; calendar
            warnings are appended
        spot_source: Where the spot price came from
        spot_is_estimate: Spot was derived from futures rather than quoted
        calendar: Economic calendar summary
        technicals: Indicators over the futures price history
        history: Context built from the stored snapshots

    Returns:
        MarketSummary for ``get_consensus``
    """
    levels = analysis.key_levels
    flow = analysis.oi_flow
    hot_strikes = [
        HotStrike(
            strike=s.strike,
            volume=s.total_volume,
            type="CALL" if s.is_call_dominant else "PUT",
        )
        for s in analysis.volume.volume_spikes[:MAX_HOT_STRIKES]
    ]
    put_wall = levels.put_wall.strike if levels.put_wall else None
    call_wall = levels.call_wall.strike if levels.call_wall else None

    spread = None
    xau_levels = None
    zones = None
    if spot_price is not None:
        spread = calculate_spread(analysis.current_price, spot_price)
        xau_levels = convert_levels_to_xau(
            spread.spread,
            put_wall=put_wall,
            call_wall=call_wall,
            max_pain=analysis.max_pain.max_pain_strike or None,
            supports=[level.strike for level in levels.support],
            resistances=[level.strike for level in levels.resistance],
        )
        zones = trading_zones(xau_levels, spot_price)

    warnings = list(economic_warnings or [])
    if calendar is not None:
        warnings.extend(w for w in calendar.warnings if w not in warnings)

    return MarketSummary(
        product=analysis.product,
        cme_futures_price=analysis.current_price,
        xau_spot_price=spot_price,
        spread=spread.spread if spread else None,
        spread_status=spread.status if spread else None,
        spot_source=spot_source,
        spot_is_estimate=spot_is_estimate,
        oi_pcr=analysis.pcr.ratio,
        volume_pcr=analysis.volume_pcr.ratio,
        max_pain=analysis.max_pain.max_pain_strike,
        call_wall=call_wall,
        put_wall=put_wall,
        vwap=analysis.vwap,
        net_oi_change=flow.net_oi_change if flow else 0,
        call_oi_change=flow.total_call_change if flow else 0,
        put_oi_change=flow.total_put_change if flow else 0,
        total_call_volume=analysis.volume.total_call_volume,
        total_put_volume=analysis.volume.total_put_volume,
        hot_strikes=hot_strikes,
        system_signal=analysis.signal.type,
        system_confidence=analysis.signal.confidence,
        gex_regime=analysis.gex.regime.value,
        gex_description=analysis.gex.description,
        zero_gamma_level=analysis.gex.zero_gamma_level,
        economic_warnings=warnings,
        calendar=calendar,
        xau_levels=xau_levels,
        trading_zones=zones,
        technicals=technicals,
        history=history,
        data_timestamp=analysis.captured_at,
    )
