"""Multi-provider consensus.

Every selected provider gets the same MarketSummary concurrently. Each call
is isolated: it has its own timeout and its failure becomes a failed
ProviderResult instead of an exception. Once all calls settle, the
successful predictions are combined by ``aggregate_predictions``.
"""

from __future__ import annotations

import asyncio
import time
from statistics import fmean

from aurum.analysis.models import SignalType
from aurum.analysis.scoring import round_half_up
from aurum.config import get_settings
from aurum.consensus.models import (
    AgreementLevel,
    ConsensusResult,
    EntryZone,
    MarketSummary,
    ProviderResult,
    VoteCounts,
)
from aurum.consensus.providers import PredictionProvider, ProviderRegistry, get_registry
from aurum.core.constants import DEFAULT_MIN_PROVIDERS, MAX_CONSENSUS_WARNINGS
from aurum.core.exceptions import ConsensusError, InsufficientProvidersError
from aurum.core.logging import get_logger

logger = get_logger(__name__)

RECOMMENDATION_SCORES: dict[SignalType, int] = {
    SignalType.strong_buy: 2,
    SignalType.buy: 1,
    SignalType.neutral: 0,
    SignalType.sell: -1,
    SignalType.strong_sell: -2,
}

# (minimum vote share, level), checked in order
AGREEMENT_CUTOFFS: tuple[tuple[float, AgreementLevel], ...] = (
    (0.9, AgreementLevel.high),
    (0.7, AgreementLevel.medium),
    (0.5, AgreementLevel.low),
)


def score_to_recommendation(score: float) -> SignalType:
    """Re-bucket an average provider score into a recommendation."""
    if score >= 1.5:
        return SignalType.strong_buy
    if score >= 0.5:
        return SignalType.buy
    if score <= -1.5:
        return SignalType.strong_sell
    if score <= -0.5:
        return SignalType.sell
    return SignalType.neutral


def count_votes(recommendations: list[SignalType]) -> VoteCounts:
    votes = VoteCounts()
    for rec in recommendations:
        setattr(votes, rec.name, getattr(votes, rec.name) + 1)
    return votes


def agreement_level(votes: VoteCounts, total: int) -> AgreementLevel:
    """Concentration of votes in the largest buy / neutral / sell block."""
    if total <= 0:
        return AgreementLevel.conflict
    largest = max(votes.strong_buy + votes.buy, votes.neutral, votes.sell + votes.strong_sell)
    ratio = largest / total
    for cutoff, level in AGREEMENT_CUTOFFS:
        if ratio >= cutoff:
            return level
    return AgreementLevel.conflict


def _unique_warnings(results: list[ProviderResult]) -> list[str]:
    seen: dict[str, None] = {}
    for r in results:
        if r.prediction is None:
            continue
        for warning in r.prediction.warnings:
            seen.setdefault(warning, None)
    return list(seen)[:MAX_CONSENSUS_WARNINGS]


def build_summary(
    recommendation: SignalType,
    agreement: AgreementLevel,
    votes: VoteCounts,
    providers: list[str],
    confidence: int,
) -> str:
    vote_text = ", ".join(
        f"{name.upper()}: {count}"
        for name, count in votes.model_dump().items()
        if count > 0
    )
    return (
        f"{len(providers)} AI ({', '.join(providers)}) consensus: {recommendation.value} | "
        f"agreement {agreement.value} | avg confidence {confidence}% | votes: {vote_text}"
    )


def aggregate_predictions(results: list[ProviderResult], total_time_ms: int = 0) -> ConsensusResult:
    """Combine provider results into a ConsensusResult.

    Only successful results contribute. Levels are arithmetic means rounded
    to 2 decimals; TP3 is averaged over the providers that supplied one.

    Raises:
        ConsensusError: If no result succeeded
    """
    succeeded = [r for r in results if r.success and r.prediction is not None]
    if not succeeded:
        raise ConsensusError("Cannot aggregate without a successful prediction")

    predictions = [r.prediction for r in succeeded if r.prediction is not None]
    recommendations = [p.recommendation for p in predictions]

    average_score = fmean(RECOMMENDATION_SCORES[rec] for rec in recommendations)
    recommendation = score_to_recommendation(average_score)
    confidence = round_half_up(fmean(p.confidence for p in predictions))
    votes = count_votes(recommendations)
    agreement = agreement_level(votes, len(predictions))

    tp3_values = [p.take_profit_3 for p in predictions if p.take_profit_3 is not None]
    providers_used = [r.provider for r in succeeded]

    return ConsensusResult(
        recommendation=recommendation,
        confidence=confidence,
        average_score=round(average_score, 2),
        agreement_level=agreement,
        entry_zone=EntryZone(
            start=round(fmean(p.entry_zone.start for p in predictions), 2),
            end=round(fmean(p.entry_zone.end for p in predictions), 2),
            description=f"Average of {len(predictions)} providers",
        ),
        stop_loss=round(fmean(p.stop_loss for p in predictions), 2),
        take_profit_1=round(fmean(p.take_profit_1 for p in predictions), 2),
        take_profit_2=round(fmean(p.take_profit_2 for p in predictions), 2),
        take_profit_3=round(fmean(tp3_values), 2) if tp3_values else None,
        votes=votes,
        results=results,
        summary=build_summary(recommendation, agreement, votes, providers_used, confidence),
        warnings=_unique_warnings(succeeded),
        providers_used=providers_used,
        providers_failed=[r.provider for r in results if not r.success],
        total_time_ms=total_time_ms,
    )


async def _run_provider(
    provider: PredictionProvider,
    summary: MarketSummary,
    timeout: float,
) -> ProviderResult:
    """Run one provider, turning any failure into a failed ProviderResult."""
    start = time.perf_counter()
    model = getattr(provider, "model_name", None)
    try:
        prediction = await asyncio.wait_for(provider.predict(summary), timeout=timeout)
    except TimeoutError:
        elapsed = int((time.perf_counter() - start) * 1000)
        logger.warning("Provider timed out", provider=provider.name, timeout=timeout)
        return ProviderResult(
            provider=provider.name,
            model=model,
            success=False,
            error=f"Timed out after {timeout:g}s",
            processing_time_ms=elapsed,
        )
    except Exception as e:
        elapsed = int((time.perf_counter() - start) * 1000)
        logger.warning("Provider failed", provider=provider.name, error=str(e))
        return ProviderResult(
            provider=provider.name,
            model=model,
            success=False,
            error=str(e) or type(e).__name__,
            processing_time_ms=elapsed,
        )

    return ProviderResult(
        provider=provider.name,
        model=model,
        success=True,
        prediction=prediction,
        processing_time_ms=int((time.perf_counter() - start) * 1000),
    )


async def get_consensus(
    summary: MarketSummary,
    providers: list[str] | None = None,
    min_providers: int = DEFAULT_MIN_PROVIDERS,
    *,
    registry: ProviderRegistry | None = None,
    timeout: float | None = None,
) -> ConsensusResult:
    """Ask every selected provider for a prediction and aggregate the answers.

    Args:
        summary: Market data sent to each provider
        providers: Provider names, or None for every registered provider
        min_providers: Successful predictions required
        registry: Provider registry (defaults to the one built from settings)
        timeout: Per-provider timeout in seconds (defaults to settings)

    Returns:
        ConsensusResult over the successful providers

    Raises:
        UnknownProviderError: If a requested provider is not registered
        InsufficientProvidersError: If fewer than min_providers succeed
    """
    registry = registry if registry is not None else get_registry()
    timeout = timeout if timeout is not None else get_settings().provider_timeout_seconds
    selected = registry.select(providers)

    logger.info(
        "Requesting consensus",
        product=summary.product,
        providers=[p.name for p in selected],
        min_providers=min_providers,
    )

    start = time.perf_counter()
    results = list(
        await asyncio.gather(*(_run_provider(p, summary, timeout) for p in selected))
    )
    total_time_ms = int((time.perf_counter() - start) * 1000)

    succeeded = len({r.provider for r in results if r.success})
    if succeeded < min_providers:
        errors = {r.provider: r.error or "unknown error" for r in results if not r.success}
        logger.warning(
            "Insufficient providers for consensus",
            required=min_providers,
            succeeded=succeeded,
            errors=errors,
        )
        raise InsufficientProvidersError(min_providers, succeeded, errors)

    result = aggregate_predictions(results, total_time_ms)

    logger.info(
        "Consensus complete",
        recommendation=result.recommendation.value,
        confidence=result.confidence,
        agreement=result.agreement_level.value,
        providers=result.providers_used,
        failed=result.providers_failed,
        total_time_ms=total_time_ms,
    )
    return result
