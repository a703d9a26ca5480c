"""Multi-provider AI consensus on the latest analysis."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from aurum.analysis.service import run_analysis
from aurum.consensus.aggregator import get_consensus
from aurum.consensus.models import ConsensusResult
from aurum.consensus.context import prepare_market_summary
from aurum.core.constants import CONSENSUS_CHANNEL
from aurum.core.dependencies import (
    AnalysisConfigDep,
    RedisDep,
    RegistryDep,
    SettingsDep,
    SpotFeedDep,
    StoreDep,
    TrackerDep,
)
from aurum.core.exceptions import InsufficientProvidersError, UnknownProviderError
from aurum.core.logging import get_logger
from aurum.notifications.dispatcher import notify_consensus
from aurum.storage.redis import publish_model

logger = get_logger(__name__)

router = APIRouter()


class ConsensusRequest(BaseModel):
    providers: list[str] | None = Field(
        default=None, description="Provider names (default: configured consensus providers)"
    )
    min_providers: int | None = Field(default=None, ge=1)
    spot_price: float | None = Field(default=None, gt=0, description="XAU spot price")
    economic_warnings: list[str] = Field(default_factory=list)
    record: bool = Field(default=True, description="Store predictions for accuracy tracking")
    notify: bool = Field(default=False, description="Send the result to Telegram")


class ConsensusResponse(BaseModel):
    result: ConsensusResult
    prediction_id: str | None = None
    provider_prediction_ids: dict[str, str] = Field(default_factory=dict)


@router.post("/{product}", response_model=ConsensusResponse)
async def run_consensus(
    product: str,
    store: StoreDep,
    tracker: TrackerDep,
    registry: RegistryDep,
    config: AnalysisConfigDep,
    settings: SettingsDep,
    spot_feed: SpotFeedDep,
    redis: RedisDep,
    request: ConsensusRequest | None = None,
) -> ConsensusResponse:
    request = request or ConsensusRequest()
    product = product.upper()

    current = await store.get_latest_snapshot(product)
    if current is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for {product}")
    previous = await store.get_previous_snapshot(product, current.captured_at)

    analysis = run_analysis(current, previous, config)
    summary = await prepare_market_summary(
        analysis,
        store,
        spot_price=request.spot_price,
        spot_feed=spot_feed,
        economic_warnings=request.economic_warnings,
        config=config,
        calendar_days_ahead=settings.calendar_days_ahead,
    )

    try:
        result = await get_consensus(
            summary,
            providers=request.providers or settings.consensus_providers or None,
            min_providers=request.min_providers or settings.consensus_min_providers,
            registry=registry,
            timeout=settings.provider_timeout_seconds,
        )
    except UnknownProviderError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except InsufficientProvidersError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": e.message,
                "required": e.required,
                "succeeded": e.succeeded,
                "errors": e.errors,
            },
        ) from e

    response = ConsensusResponse(result=result)
    if request.record:
        price = summary.xau_spot_price or current.current_price
        response.prediction_id = await tracker.record_consensus(result, price, product)
        for r in result.results:
            if r.success and r.prediction is not None:
                response.provider_prediction_ids[r.provider] = await tracker.record_prediction(
                    r.prediction, r.provider, price, product, model=r.model
                )

    try:
        await publish_model(redis, CONSENSUS_CHANNEL, result)
    except Exception:
        logger.exception("Failed to publish consensus", product=product)

    if request.notify:
        await notify_consensus(result)

    return response
