"""Support and resistance levels from open-interest concentration."""

from __future__ import annotations

from collections.abc import Sequence

from aurum.analysis.models import KeyLevel, KeyLevels, StrikeRow
from aurum.core.constants import KEY_LEVEL_COUNT


def _top_levels(strikes: Sequence[StrikeRow], side: str, count: int) -> list[KeyLevel]:
    ordered = sorted(strikes, key=lambda row: row.strike)
    ranked = sorted(
        (row for row in ordered if getattr(row, side) > 0),
        key=lambda row: getattr(row, side),
        reverse=True,
    )
    return [
        KeyLevel(strike=row.strike, open_interest=getattr(row, side), strength=count - rank)
        for rank, row in enumerate(ranked[:count])
    ]


def find_key_levels(
    strikes: Sequence[StrikeRow],
    max_pain: float | None = None,
    count: int = KEY_LEVEL_COUNT,
) -> KeyLevels:
    """Rank strikes by open interest.

    The top ``count`` strikes by put OI become support and by call OI become
    resistance, with strength ``count`` for rank 1 down to 1. Strikes with no
    open interest on the relevant side are skipped and equal OI keeps
    ascending strike order.
    """
    return KeyLevels(
        support=_top_levels(strikes, "put_oi", count),
        resistance=_top_levels(strikes, "call_oi", count),
        max_pain=max_pain,
    )
