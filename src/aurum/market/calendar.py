"""Economic calendar of US releases that move gold.

The schedule is static: FOMC decisions on the published meeting dates,
Nonfarm Payrolls on the first Friday of each month and CPI on the 12th.
Release times are US Eastern and converted to UTC.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from aurum.core.constants import (
    CALENDAR_CAUTION_HOURS,
    CALENDAR_NO_TRADE_HOURS,
    CALENDAR_WEEK_MEDIUM_CAUTION,
)
from aurum.market.models import (
    CalendarSummary,
    EconomicEvent,
    EventImpact,
    TradeSafety,
    TradingCaution,
)

EASTERN = ZoneInfo("America/New_York")

FOMC_DATES = ((1, 29), (3, 19), (5, 7), (6, 18), (7, 30), (9, 17), (11, 5), (12, 17))

GOLD_IMPACT = {
    "FOMC Meeting": "Rate hike = gold down, rate cut = gold up",
    "Nonfarm Payrolls": "Strong jobs = stronger USD = gold down; weak jobs = gold up",
    "CPI": "Hot inflation = hawkish Fed = gold down short term",
}

MAX_WEEK_EVENTS_SHOWN = 5


def _event(kind: str, title: str, day: date, at: time, description: str) -> EconomicEvent:
    scheduled = datetime.combine(day, at, tzinfo=EASTERN).astimezone(UTC)
    return EconomicEvent(
        id=f"{kind}-{day.isoformat()}",
        title=title,
        scheduled_at=scheduled,
        impact=EventImpact.high,
        description=description,
        gold_impact=GOLD_IMPACT[title],
    )


def _first_friday(year: int, month: int) -> date:
    first = date(year, month, 1)
    return first + timedelta(days=(4 - first.weekday()) % 7)


def static_events(year: int) -> list[EconomicEvent]:
    """Every scheduled event of ``year``, in time order."""
    events = [
        _event(
            "fomc",
            "FOMC Meeting",
            date(year, month, day),
            time(14, 0),
            "Federal Open Market Committee interest rate decision",
        )
        for month, day in FOMC_DATES
    ]
    for month in range(1, 13):
        events.append(
            _event(
                "nfp",
                "Nonfarm Payrolls",
                _first_friday(year, month),
                time(8, 30),
                "Monthly employment report",
            )
        )
        events.append(
            _event(
                "cpi",
                "CPI",
                date(year, month, 12),
                time(8, 30),
                "Consumer Price Index, the main inflation gauge",
            )
        )
    return sorted(events, key=lambda e: e.scheduled_at)


def get_economic_events(days_ahead: int = 7, now: datetime | None = None) -> list[EconomicEvent]:
    """Events from 24 hours ago up to ``days_ahead`` days from now."""
    now = now or datetime.now(UTC)
    start = now - timedelta(hours=24)
    end = now + timedelta(days=days_ahead)

    events: list[EconomicEvent] = []
    for year in range(start.year, end.year + 1):
        events.extend(e for e in static_events(year) if start <= e.scheduled_at <= end)
    return events


def _eastern_time(event: EconomicEvent) -> str:
    return event.scheduled_at.astimezone(EASTERN).strftime("%H:%M")


def upcoming_events_summary(days_ahead: int = 7, now: datetime | None = None) -> CalendarSummary:
    """Today's events, the coming week and the trading caution level.

    "Today" is the current US Eastern calendar day. Caution is HIGH with a
    high-impact event today, MEDIUM when the window holds more than
    ``CALENDAR_WEEK_MEDIUM_CAUTION`` of them, LOW with at least one.
    """
    now = now or datetime.now(UTC)
    events = get_economic_events(days_ahead, now)

    today_start = datetime.combine(now.astimezone(EASTERN).date(), time(0), tzinfo=EASTERN)
    today_end = today_start + timedelta(days=1)
    week_end = today_start + timedelta(days=7)

    today = [e for e in events if today_start <= e.scheduled_at < today_end]
    this_week = [e for e in events if today_start <= e.scheduled_at < week_end]
    high_impact = [e for e in events if e.impact == EventImpact.high]
    today_high = [e for e in today if e.impact == EventImpact.high]

    warnings: list[str] = []
    if today_high:
        caution = TradingCaution.high
        warnings = [
            f"Today {_eastern_time(e)} ET: {e.title} ({e.gold_impact})" for e in today_high
        ]
    elif len(high_impact) > CALENDAR_WEEK_MEDIUM_CAUTION:
        caution = TradingCaution.medium
        warnings = [f"{len(high_impact)} high-impact events this week"]
    elif high_impact:
        caution = TradingCaution.low
    else:
        caution = TradingCaution.none

    return CalendarSummary(
        today=today,
        this_week=this_week,
        high_impact_count=len(high_impact),
        warnings=warnings,
        caution=caution,
    )


def is_safe_to_trade(days_ahead: int = 7, now: datetime | None = None) -> TradeSafety:
    """Whether the next high-impact release is far enough away to trade."""
    now = now or datetime.now(UTC)
    upcoming = [
        e
        for e in upcoming_events_summary(days_ahead, now).this_week
        if e.impact == EventImpact.high and e.scheduled_at > now
    ]
    if not upcoming:
        return TradeSafety(safe=True, reason="No high-impact events this week")

    event = upcoming[0]
    hours = (event.scheduled_at - now).total_seconds() / 3600
    if hours < CALENDAR_NO_TRADE_HOURS:
        return TradeSafety(
            safe=False,
            reason=f"{event.title} in {round(hours * 60)} minutes, avoid trading",
            next_event=event,
        )
    if hours < CALENDAR_CAUTION_HOURS:
        return TradeSafety(
            safe=True,
            reason=f"{event.title} in {round(hours)} hours, trade with caution",
            next_event=event,
        )
    return TradeSafety(
        safe=True,
        reason=f"Next high-impact event: {event.title} on "
        f"{event.scheduled_at.astimezone(EASTERN):%a %d %b} {_eastern_time(event)} ET",
        next_event=event,
    )


def format_calendar_for_prompt(summary: CalendarSummary, now: datetime | None = None) -> str:
    """Render the calendar as a prompt section body."""
    now = now or datetime.now(UTC)
    lines = [f"- Trading caution: {summary.caution.value}"]
    lines.extend(f"- {warning}" for warning in summary.warnings)

    if summary.today:
        lines.append("- Today:")
        lines.extend(
            f"  - {_eastern_time(e)} ET {e.title} [{e.impact.value}]: {e.gold_impact}"
            for e in summary.today
        )
    else:
        lines.append("- Today: no major releases")

    later = [
        e
        for e in summary.this_week
        if e.impact == EventImpact.high and e.scheduled_at > now + timedelta(hours=24)
    ]
    if later:
        lines.append("- Later this week:")
        lines.extend(
            f"  - {e.scheduled_at.astimezone(EASTERN):%a %d %b} {_eastern_time(e)} ET {e.title}"
            for e in later[:MAX_WEEK_EVENTS_SHOWN]
        )

    if summary.caution == TradingCaution.high:
        lines.append("- Avoid new entries in the 30 minutes before a release and widen stops")
    elif summary.caution == TradingCaution.medium:
        lines.append("- Check release times before planning trades")
    return "\n".join(lines)
