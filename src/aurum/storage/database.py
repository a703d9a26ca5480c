"""PostgreSQL database connection using raw asyncpg."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, cast
from uuid import UUID

import asyncpg
import orjson

from aurum.accuracy.models import AccuracyStats, Outcome, Prediction
from aurum.analysis.models import MarketSnapshot
from aurum.core.exceptions import DatabaseConnectionError
from aurum.core.logging import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE SCHEMA IF NOT EXISTS aurum;

CREATE TABLE IF NOT EXISTS aurum.snapshots (
    id BIGSERIAL PRIMARY KEY,
    product TEXT NOT NULL,
    expiry TEXT NOT NULL DEFAULT '',
    current_price DOUBLE PRECISION NOT NULL,
    captured_at TIMESTAMPTZ NOT NULL,
    payload JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS snapshots_product_captured_idx
    ON aurum.snapshots (product, captured_at DESC);

CREATE TABLE IF NOT EXISTS aurum.predictions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    provider TEXT NOT NULL,
    model TEXT,
    product TEXT NOT NULL,
    recommendation TEXT NOT NULL,
    confidence INTEGER NOT NULL,
    entry_start DOUBLE PRECISION NOT NULL,
    entry_end DOUBLE PRECISION NOT NULL,
    stop_loss DOUBLE PRECISION NOT NULL,
    take_profit_1 DOUBLE PRECISION NOT NULL,
    take_profit_2 DOUBLE PRECISION NOT NULL,
    take_profit_3 DOUBLE PRECISION,
    price_at_prediction DOUBLE PRECISION NOT NULL,
    timeframe TEXT NOT NULL,
    outcome TEXT NOT NULL DEFAULT 'PENDING',
    price_at_outcome DOUBLE PRECISION,
    hit_tp1 BOOLEAN NOT NULL DEFAULT FALSE,
    hit_tp2 BOOLEAN NOT NULL DEFAULT FALSE,
    hit_sl BOOLEAN NOT NULL DEFAULT FALSE,
    notes TEXT,
    payload JSONB NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    evaluated_at TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS predictions_pending_idx
    ON aurum.predictions (expires_at) WHERE outcome = 'PENDING';

CREATE TABLE IF NOT EXISTS aurum.accuracy_stats (
    provider TEXT PRIMARY KEY,
    win_rate DOUBLE PRECISION NOT NULL,
    payload JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
);
"""

# Columns the accuracy tracker may change after a prediction is stored
UPDATABLE_PREDICTION_COLUMNS = frozenset(
    {
        "outcome",
        "price_at_outcome",
        "hit_tp1",
        "hit_tp2",
        "hit_sl",
        "notes",
        "evaluated_at",
    }
)


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def _to_db(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _prediction_from_row(row: asyncpg.Record) -> Prediction:
    data = dict(row)
    data["id"] = str(data["id"])
    data["payload"] = orjson.loads(data["payload"]) if data.get("payload") else {}
    return Prediction.model_validate(data)


class Database:
    """Async PostgreSQL database wrapper using asyncpg."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        # Convert SQLAlchemy-style DSN to asyncpg format
        dsn = self._dsn.replace("postgresql+asyncpg://", "postgresql://")

        async def init_connection(conn: asyncpg.Connection[asyncpg.Record]) -> None:
            """Initialize each connection with aurum schema search_path."""
            await conn.execute("SET search_path TO aurum, public")

        try:
            self._pool = await asyncpg.create_pool(
                dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                init=init_connection,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DatabaseConnectionError(f"Could not connect to database: {e}") from e
        logger.debug("Database pool created", min_size=self._min_size, max_size=self._max_size)

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            logger.debug("Database pool closed")

    async def ensure_schema(self) -> None:
        """Create the aurum schema and tables if they do not exist."""
        await self.execute(SCHEMA)
        logger.debug("Database schema ensured")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool."""
        if not self._pool:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query and return status."""
        async with self.acquire() as conn:
            result = await conn.execute(query, *args)
            return cast(str, result)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Fetch multiple rows."""
        async with self.acquire() as conn:
            result = await conn.fetch(query, *args)
            return list(result)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def save_snapshot(self, snapshot: MarketSnapshot) -> None:
        """Insert a snapshot; the full chain is kept as a JSONB payload."""
        query = """
            INSERT INTO snapshots (product, expiry, current_price, captured_at, payload)
            VALUES ($1, $2, $3, $4, $5)
        """
        await self.execute(
            query,
            snapshot.product,
            snapshot.expiry,
            snapshot.current_price,
            snapshot.captured_at,
            orjson.dumps(snapshot.model_dump(mode="json")).decode("utf-8"),
        )
        logger.debug(
            "Snapshot inserted",
            product=snapshot.product,
            strikes=len(snapshot.strikes),
            captured_at=snapshot.captured_at.isoformat(),
        )

    async def get_latest_snapshot(
        self, product: str, as_of: datetime | None = None
    ) -> MarketSnapshot | None:
        if as_of is None:
            row = await self.fetchrow(
                "SELECT payload FROM snapshots WHERE product = $1 "
                "ORDER BY captured_at DESC LIMIT 1",
                product,
            )
        else:
            row = await self.fetchrow(
                "SELECT payload FROM snapshots WHERE product = $1 AND captured_at <= $2 "
                "ORDER BY captured_at DESC LIMIT 1",
                product,
                as_of,
            )
        return MarketSnapshot.model_validate(orjson.loads(row["payload"])) if row else None

    async def get_previous_snapshot(
        self, product: str, before: datetime
    ) -> MarketSnapshot | None:
        row = await self.fetchrow(
            "SELECT payload FROM snapshots WHERE product = $1 AND captured_at < $2 "
            "ORDER BY captured_at DESC LIMIT 1",
            product,
            before,
        )
        return MarketSnapshot.model_validate(orjson.loads(row["payload"])) if row else None

    async def list_snapshots(self, product: str, since: datetime) -> list[MarketSnapshot]:
        rows = await self.fetch(
            "SELECT payload FROM snapshots WHERE product = $1 AND captured_at >= $2 "
            "ORDER BY captured_at ASC",
            product,
            since,
        )
        return [MarketSnapshot.model_validate(orjson.loads(row["payload"])) for row in rows]

    # -------------------------------------------------------------------------
    # Predictions
    # -------------------------------------------------------------------------

    async def save(self, prediction: Prediction) -> str:
        """Insert a prediction and return its generated id."""
        query = """
            INSERT INTO predictions (
                provider, model, product, recommendation, confidence,
                entry_start, entry_end, stop_loss, take_profit_1, take_profit_2,
                take_profit_3, price_at_prediction, timeframe, outcome, payload,
                created_at, expires_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
            RETURNING id
        """
        result = await self.fetchval(
            query,
            prediction.provider,
            prediction.model,
            prediction.product,
            prediction.recommendation.value,
            prediction.confidence,
            prediction.entry_start,
            prediction.entry_end,
            prediction.stop_loss,
            prediction.take_profit_1,
            prediction.take_profit_2,
            prediction.take_profit_3,
            prediction.price_at_prediction,
            prediction.timeframe,
            prediction.outcome.value,
            orjson.dumps(prediction.payload).decode("utf-8"),
            prediction.created_at,
            prediction.expires_at,
        )
        prediction_id = str(cast(UUID, result))
        logger.debug(
            "Prediction inserted",
            id=prediction_id,
            provider=prediction.provider,
            recommendation=prediction.recommendation.value,
        )
        return prediction_id

    async def get(self, prediction_id: str) -> Prediction | None:
        uid = _parse_uuid(prediction_id)
        if uid is None:
            return None
        row = await self.fetchrow("SELECT * FROM predictions WHERE id = $1", uid)
        return _prediction_from_row(row) if row else None

    async def find_pending(self, expired_before: datetime) -> list[Prediction]:
        rows = await self.fetch(
            "SELECT * FROM predictions WHERE outcome = 'PENDING' AND expires_at <= $1 "
            "ORDER BY expires_at",
            expired_before,
        )
        return [_prediction_from_row(row) for row in rows]

    async def update(
        self,
        prediction_id: str,
        fields: dict[str, Any],
        expected_outcome: Outcome | None = None,
    ) -> bool:
        """Update a prediction, optionally only while its outcome is unchanged.

        The outcome check happens in the UPDATE's WHERE clause, so it is
        atomic per row.
        """
        unknown = set(fields) - UPDATABLE_PREDICTION_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update prediction columns: {sorted(unknown)}")
        uid = _parse_uuid(prediction_id)
        if uid is None or not fields:
            return False

        columns = list(fields)
        assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(columns, start=1))
        args: list[Any] = [_to_db(fields[col]) for col in columns]
        args.append(uid)
        query = f"UPDATE predictions SET {assignments} WHERE id = ${len(args)}"
        if expected_outcome is not None:
            args.append(expected_outcome.value)
            query += f" AND outcome = ${len(args)}"

        status = await self.execute(query, *args)
        updated = status.endswith(" 1")
        logger.debug(
            "Prediction update",
            id=prediction_id,
            columns=columns,
            expected_outcome=expected_outcome.value if expected_outcome else None,
            applied=updated,
        )
        return updated

    async def list_predictions(self, provider: str | None = None) -> list[Prediction]:
        if provider is None:
            rows = await self.fetch("SELECT * FROM predictions ORDER BY created_at")
        else:
            rows = await self.fetch(
                "SELECT * FROM predictions WHERE provider = $1 ORDER BY created_at",
                provider,
            )
        return [_prediction_from_row(row) for row in rows]

    # -------------------------------------------------------------------------
    # Accuracy stats
    # -------------------------------------------------------------------------

    async def upsert_stats(self, stats: AccuracyStats) -> None:
        query = """
            INSERT INTO accuracy_stats (provider, win_rate, payload, updated_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (provider) DO UPDATE SET
                win_rate = EXCLUDED.win_rate,
                payload = EXCLUDED.payload,
                updated_at = EXCLUDED.updated_at
        """
        await self.execute(
            query,
            stats.provider,
            stats.win_rate,
            orjson.dumps(stats.model_dump(mode="json")).decode("utf-8"),
            stats.updated_at,
        )

    async def get_stats(self) -> list[AccuracyStats]:
        rows = await self.fetch("SELECT payload FROM accuracy_stats ORDER BY win_rate DESC")
        return [AccuracyStats.model_validate(orjson.loads(row["payload"])) for row in rows]


# Global database instance (initialized in lifespan)
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


async def init_database(dsn: str) -> Database:
    """Initialize the global database instance."""
    global _db
    _db = Database(dsn)
    await _db.connect()
    await _db.ensure_schema()
    return _db


async def close_database() -> None:
    """Close the global database instance."""
    global _db
    if _db:
        await _db.disconnect()
        _db = None
