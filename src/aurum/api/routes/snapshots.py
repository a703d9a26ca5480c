"""Snapshot ingestion from the browser extension."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from aurum.analysis.models import MarketSnapshot
from aurum.core.dependencies import StoreDep
from aurum.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class SnapshotAccepted(BaseModel):
    product: str
    expiry: str
    captured_at: datetime
    strikes: int


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SnapshotAccepted)
async def ingest_snapshot(snapshot: MarketSnapshot, store: StoreDep) -> SnapshotAccepted:
    await store.save_snapshot(snapshot)
    logger.info(
        "Snapshot ingested",
        product=snapshot.product,
        expiry=snapshot.expiry,
        strikes=len(snapshot.strikes),
        price=snapshot.current_price,
    )
    return SnapshotAccepted(
        product=snapshot.product,
        expiry=snapshot.expiry,
        captured_at=snapshot.captured_at,
        strikes=len(snapshot.strikes),
    )


@router.get("/{product}/latest", response_model=MarketSnapshot)
async def latest_snapshot(product: str, store: StoreDep) -> MarketSnapshot:
    snapshot = await store.get_latest_snapshot(product.upper())
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for {product.upper()}")
    return snapshot
