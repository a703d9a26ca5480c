"""Storage protocols.

The analysis service and the accuracy tracker only depend on these
interfaces, so the asyncpg Database and the InMemoryStore are
interchangeable.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aurum.accuracy.models import AccuracyStats, Outcome, Prediction
    from aurum.analysis.models import MarketSnapshot


@runtime_checkable
class SnapshotStore(Protocol):
    """Protocol for option-chain snapshot storage."""

    async def save_snapshot(self, snapshot: MarketSnapshot) -> None:
        """Persist a snapshot. Snapshots are append-only."""
        ...

    async def get_latest_snapshot(
        self, product: str, as_of: datetime | None = None
    ) -> MarketSnapshot | None:
        """Most recent snapshot for a product, optionally captured at or before ``as_of``."""
        ...

    async def get_previous_snapshot(
        self, product: str, before: datetime
    ) -> MarketSnapshot | None:
        """Most recent snapshot captured strictly before ``before``."""
        ...

    async def list_snapshots(self, product: str, since: datetime) -> list[MarketSnapshot]:
        """Snapshots captured at or after ``since``, oldest first."""
        ...


@runtime_checkable
class PredictionStore(Protocol):
    """Protocol for prediction and accuracy-stats storage."""

    async def save(self, prediction: Prediction) -> str:
        """Persist a new prediction and return its id."""
        ...

    async def get(self, prediction_id: str) -> Prediction | None: ...

    async def find_pending(self, expired_before: datetime) -> list[Prediction]:
        """PENDING predictions whose expiry is at or before ``expired_before``."""
        ...

    async def update(
        self,
        prediction_id: str,
        fields: dict[str, Any],
        expected_outcome: Outcome | None = None,
    ) -> bool:
        """Apply field updates to one prediction.

        When ``expected_outcome`` is given the update only applies if the
        stored outcome still equals it.

        Returns:
            True if a row was updated
        """
        ...

    async def list_predictions(self, provider: str | None = None) -> list[Prediction]: ...

    async def upsert_stats(self, stats: AccuracyStats) -> None: ...

    async def get_stats(self) -> list[AccuracyStats]: ...
