"""Full option-chain analysis, GEX profile and price context for the latest snapshot."""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from aurum.analysis.gex import compute_gex
from aurum.analysis.history import build_historical_context, build_history_points
from aurum.analysis.indicators import build_candles, compute_indicators
from aurum.analysis.models import (
    AnalysisResult,
    GexResult,
    HistoricalContext,
    MarketSnapshot,
    TechnicalIndicators,
)
from aurum.analysis.service import run_analysis
from aurum.core.constants import HISTORY_DAYS
from aurum.core.dependencies import AnalysisConfigDep, StoreDep

router = APIRouter()


async def _latest(store: StoreDep, product: str) -> MarketSnapshot:
    snapshot = await store.get_latest_snapshot(product)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for {product}")
    return snapshot


@router.get("/{product}", response_model=AnalysisResult)
async def analyze(product: str, store: StoreDep, config: AnalysisConfigDep) -> AnalysisResult:
    current = await _latest(store, product.upper())
    previous = await store.get_previous_snapshot(current.product, current.captured_at)
    return run_analysis(current, previous, config)


@router.get("/{product}/gex", response_model=GexResult)
async def gamma_exposure(
    product: str,
    store: StoreDep,
    config: AnalysisConfigDep,
    days: float | None = Query(default=None, ge=0, description="Days to expiry"),
    iv: float | None = Query(default=None, gt=0, le=5, description="Implied volatility"),
) -> GexResult:
    current = await _latest(store, product.upper())
    return compute_gex(
        current.strikes,
        current.current_price,
        days if days is not None else config.days_to_expiry,
        iv if iv is not None else config.iv,
    )


class AnalysisContext(BaseModel):
    """Indicators and history over the stored snapshots of a product."""

    product: str
    snapshots: int
    technicals: TechnicalIndicators | None = None
    history: HistoricalContext | None = None


@router.get("/{product}/context", response_model=AnalysisContext)
async def analysis_context(
    product: str,
    store: StoreDep,
    config: AnalysisConfigDep,
    days: int = Query(default=HISTORY_DAYS, ge=1, le=90, description="History window in days"),
) -> AnalysisContext:
    current = await _latest(store, product.upper())
    snapshots = await store.list_snapshots(
        current.product, current.captured_at - timedelta(days=days)
    )
    candles = build_candles(snapshots)
    return AnalysisContext(
        product=current.product,
        snapshots=len(snapshots),
        technicals=compute_indicators(candles, current.current_price) if candles else None,
        history=build_historical_context(
            build_history_points(snapshots, config), now=current.captured_at
        ),
    )
