"""In-memory snapshot and prediction store.

Used when no database is configured and in tests. An asyncio lock makes
each conditional update atomic with respect to other coroutines.
"""

from __future__ import annotations

import asyncio
from bisect import insort
from collections import defaultdict
from datetime import datetime
from typing import Any
from uuid import uuid4

from aurum.accuracy.models import AccuracyStats, Outcome, Prediction
from aurum.analysis.models import MarketSnapshot
from aurum.core.constants import MAX_SNAPSHOTS_PER_PRODUCT
from aurum.core.logging import get_logger

logger = get_logger(__name__)


class InMemoryStore:
    """Implements both SnapshotStore and PredictionStore."""

    def __init__(self, max_snapshots: int = MAX_SNAPSHOTS_PER_PRODUCT) -> None:
        self._max_snapshots = max_snapshots
        self._snapshots: dict[str, list[MarketSnapshot]] = defaultdict(list)
        self._predictions: dict[str, Prediction] = {}
        self._stats: dict[str, AccuracyStats] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def save_snapshot(self, snapshot: MarketSnapshot) -> None:
        """Insert in capture order, dropping the oldest beyond the per-product cap."""
        history = self._snapshots[snapshot.product]
        insort(history, snapshot, key=lambda s: s.captured_at)
        if len(history) > self._max_snapshots:
            del history[: len(history) - self._max_snapshots]
        logger.debug(
            "Snapshot stored",
            product=snapshot.product,
            strikes=len(snapshot.strikes),
            captured_at=snapshot.captured_at.isoformat(),
        )

    async def get_latest_snapshot(
        self, product: str, as_of: datetime | None = None
    ) -> MarketSnapshot | None:
        for snapshot in reversed(self._snapshots.get(product, [])):
            if as_of is None or snapshot.captured_at <= as_of:
                return snapshot
        return None

    async def get_previous_snapshot(
        self, product: str, before: datetime
    ) -> MarketSnapshot | None:
        for snapshot in reversed(self._snapshots.get(product, [])):
            if snapshot.captured_at < before:
                return snapshot
        return None

    async def list_snapshots(self, product: str, since: datetime) -> list[MarketSnapshot]:
        return [s for s in self._snapshots.get(product, []) if s.captured_at >= since]

    # -------------------------------------------------------------------------
    # Predictions
    # -------------------------------------------------------------------------

    async def save(self, prediction: Prediction) -> str:
        prediction_id = prediction.id or uuid4().hex
        async with self._lock:
            self._predictions[prediction_id] = prediction.model_copy(update={"id": prediction_id})
        return prediction_id

    async def get(self, prediction_id: str) -> Prediction | None:
        return self._predictions.get(prediction_id)

    async def find_pending(self, expired_before: datetime) -> list[Prediction]:
        return [
            p
            for p in self._predictions.values()
            if p.outcome == Outcome.pending and p.expires_at <= expired_before
        ]

    async def update(
        self,
        prediction_id: str,
        fields: dict[str, Any],
        expected_outcome: Outcome | None = None,
    ) -> bool:
        async with self._lock:
            current = self._predictions.get(prediction_id)
            if current is None:
                return False
            if expected_outcome is not None and current.outcome != expected_outcome:
                return False
            self._predictions[prediction_id] = current.model_copy(update=fields)
            return True

    async def list_predictions(self, provider: str | None = None) -> list[Prediction]:
        return [
            p for p in self._predictions.values() if provider is None or p.provider == provider
        ]

    # -------------------------------------------------------------------------
    # Accuracy stats
    # -------------------------------------------------------------------------

    async def upsert_stats(self, stats: AccuracyStats) -> None:
        self._stats[stats.provider] = stats

    async def get_stats(self) -> list[AccuracyStats]:
        return list(self._stats.values())
