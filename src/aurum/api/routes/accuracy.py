"""Prediction accuracy endpoints."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from aurum.accuracy.models import (
    AccuracyStats,
    EvaluationSummary,
    Outcome,
    Prediction,
    ProviderComparison,
)
from aurum.core.dependencies import SettingsDep, StoreDep, TrackerDep
from aurum.core.exceptions import PredictionNotFoundError

router = APIRouter()


class EvaluateRequest(BaseModel):
    price: float | None = Field(
        default=None, gt=0, description="Price to evaluate against (default: latest snapshot)"
    )
    product: str | None = None


class OutcomeRequest(BaseModel):
    outcome: Outcome
    price: float = Field(gt=0)
    notes: str | None = None

    @field_validator("outcome")
    @classmethod
    def must_be_resolved(cls, v: Outcome) -> Outcome:
        if v == Outcome.pending:
            raise ValueError("Outcome must be WIN, LOSS or BREAKEVEN")
        return v


@router.post("/evaluate", response_model=EvaluationSummary)
async def evaluate(
    tracker: TrackerDep,
    store: StoreDep,
    settings: SettingsDep,
    request: EvaluateRequest | None = None,
) -> EvaluationSummary:
    request = request or EvaluateRequest()
    price = request.price
    if price is None:
        product = (request.product or settings.default_product).upper()
        snapshot = await store.get_latest_snapshot(product)
        if snapshot is None or snapshot.current_price <= 0:
            raise HTTPException(status_code=404, detail=f"No price available for {product}")
        price = snapshot.current_price
    return await tracker.evaluate_pending(price)


@router.get("/stats", response_model=list[AccuracyStats])
async def stats(tracker: TrackerDep) -> list[AccuracyStats]:
    return await tracker.get_stats()


@router.get("/compare", response_model=ProviderComparison)
async def compare(tracker: TrackerDep) -> ProviderComparison:
    return await tracker.compare_providers()


@router.get("/predictions", response_model=list[Prediction])
async def recent_predictions(
    tracker: TrackerDep,
    limit: int = Query(default=20, ge=1, le=200),
) -> list[Prediction]:
    return await tracker.recent_predictions(limit)


@router.post("/predictions/{prediction_id}/outcome", response_model=Prediction)
async def set_outcome(
    prediction_id: str,
    request: OutcomeRequest,
    tracker: TrackerDep,
) -> Prediction:
    try:
        return await tracker.mark_outcome(
            prediction_id, request.outcome, request.price, request.notes
        )
    except PredictionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
