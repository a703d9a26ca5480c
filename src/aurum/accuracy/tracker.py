"""Prediction accuracy tracking.

Predictions are stored PENDING with an expiry. Once expired, the evaluation
sweep resolves each one against the current price with a compare-and-set
update, so a second sweep (or a sweep racing a manual override) never
re-resolves a prediction. Statistics are always recomputed from the full
history.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from aurum.accuracy.models import (
    AccuracyStats,
    EvaluationSummary,
    Outcome,
    Prediction,
    ProviderComparison,
)
from aurum.consensus.models import ConsensusResult, ProviderPrediction
from aurum.core.constants import (
    CONSENSUS_EXPIRY_HOURS,
    CONSENSUS_PROVIDER_NAME,
    INTRADAY_EXPIRY_HOURS,
    MIN_SAMPLES_FOR_RECOMMENDATION,
    SWING_EXPIRY_HOURS,
)
from aurum.core.exceptions import PredictionNotFoundError
from aurum.core.logging import get_logger

if TYPE_CHECKING:
    from aurum.storage.base import PredictionStore

logger = get_logger(__name__)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def evaluate_outcome(prediction: Prediction, price: float) -> dict[str, object]:
    """Resolve a prediction against a price.

    BUY family: WIN at or above TP1, LOSS at or below the stop, else
    BREAKEVEN. SELL family is mirrored. NEUTRAL always resolves BREAKEVEN.

    Returns:
        Fields to write: outcome and the TP1/TP2/SL hit flags
    """
    rec = prediction.recommendation
    if rec.is_buy:
        hit_tp1 = price >= prediction.take_profit_1
        hit_tp2 = price >= prediction.take_profit_2
        hit_sl = price <= prediction.stop_loss
    elif rec.is_sell:
        hit_tp1 = price <= prediction.take_profit_1
        hit_tp2 = price <= prediction.take_profit_2
        hit_sl = price >= prediction.stop_loss
    else:
        return {
            "outcome": Outcome.breakeven,
            "hit_tp1": False,
            "hit_tp2": False,
            "hit_sl": False,
        }

    if hit_tp1:
        outcome = Outcome.win
    elif hit_sl:
        outcome = Outcome.loss
    else:
        outcome = Outcome.breakeven

    return {"outcome": outcome, "hit_tp1": hit_tp1, "hit_tp2": hit_tp2, "hit_sl": hit_sl}


def compute_stats(
    provider: str,
    predictions: list[Prediction],
    now: datetime | None = None,
) -> AccuracyStats:
    """Recompute a provider's accuracy from its full prediction history."""
    now = now or datetime.now(UTC)
    total = len(predictions)
    resolved = [p for p in predictions if p.is_resolved]
    wins = sum(1 for p in resolved if p.outcome == Outcome.win)
    losses = sum(1 for p in resolved if p.outcome == Outcome.loss)

    buys = [p for p in resolved if p.recommendation.is_buy]
    sells = [p for p in resolved if p.recommendation.is_sell]

    def window_win_rate(days: int) -> float:
        since = now - timedelta(days=days)
        recent = [p for p in resolved if p.created_at >= since]
        return _percent(sum(1 for p in recent if p.outcome == Outcome.win), len(recent))

    avg_confidence = (
        round(sum(p.confidence for p in predictions) / total, 1) if total else 0.0
    )

    return AccuracyStats(
        provider=provider,
        total_predictions=total,
        resolved=len(resolved),
        wins=wins,
        losses=losses,
        pending=total - len(resolved),
        win_rate=_percent(wins, len(resolved)),
        buy_accuracy=_percent(sum(1 for p in buys if p.outcome == Outcome.win), len(buys)),
        sell_accuracy=_percent(sum(1 for p in sells if p.outcome == Outcome.win), len(sells)),
        tp1_hit_rate=_percent(sum(1 for p in resolved if p.hit_tp1), len(resolved)),
        tp2_hit_rate=_percent(sum(1 for p in resolved if p.hit_tp2), len(resolved)),
        sl_hit_rate=_percent(sum(1 for p in resolved if p.hit_sl), len(resolved)),
        avg_confidence=avg_confidence,
        last_7_days_win_rate=window_win_rate(7),
        last_30_days_win_rate=window_win_rate(30),
        updated_at=now,
    )


class AccuracyTracker:
    """Records predictions, resolves them and maintains per-provider stats.

    Usage:
        tracker = AccuracyTracker(store)
        await tracker.record_consensus(result, price=2650.0, product="GC")
        summary = await tracker.evaluate_pending(current_price=2672.5)
    """

    compute_stats = staticmethod(compute_stats)

    def __init__(self, store: PredictionStore) -> None:
        self.store = store

    async def record_prediction(
        self,
        prediction: ProviderPrediction,
        provider: str,
        price: float,
        product: str,
        model: str | None = None,
    ) -> str:
        """Store a single provider's prediction as PENDING.

        Intraday predictions expire after 24 hours, swing after 72.
        """
        hours = (
            INTRADAY_EXPIRY_HOURS
            if prediction.suggested_timeframe == "Intraday"
            else SWING_EXPIRY_HOURS
        )
        now = datetime.now(UTC)
        record = Prediction(
            provider=provider,
            model=model,
            product=product,
            recommendation=prediction.recommendation,
            confidence=prediction.confidence,
            entry_start=prediction.entry_zone.start,
            entry_end=prediction.entry_zone.end,
            stop_loss=prediction.stop_loss,
            take_profit_1=prediction.take_profit_1,
            take_profit_2=prediction.take_profit_2,
            take_profit_3=prediction.take_profit_3,
            price_at_prediction=price,
            timeframe=prediction.suggested_timeframe,
            payload=prediction.model_dump(mode="json"),
            created_at=now,
            expires_at=now + timedelta(hours=hours),
        )
        prediction_id = await self.store.save(record)
        logger.debug(
            "Prediction recorded",
            prediction_id=prediction_id,
            provider=provider,
            recommendation=prediction.recommendation.value,
        )
        return prediction_id

    async def record_consensus(self, result: ConsensusResult, price: float, product: str) -> str:
        """Store a consensus result as a PENDING prediction expiring after 48 hours."""
        now = datetime.now(UTC)
        record = Prediction(
            provider=CONSENSUS_PROVIDER_NAME,
            model=f"Multi-AI ({', '.join(result.providers_used)})",
            product=product,
            recommendation=result.recommendation,
            confidence=result.confidence,
            entry_start=result.entry_zone.start,
            entry_end=result.entry_zone.end,
            stop_loss=result.stop_loss,
            take_profit_1=result.take_profit_1,
            take_profit_2=result.take_profit_2,
            take_profit_3=result.take_profit_3,
            price_at_prediction=price,
            timeframe="Consensus",
            payload=result.model_dump(mode="json", exclude={"results"}),
            created_at=now,
            expires_at=now + timedelta(hours=CONSENSUS_EXPIRY_HOURS),
        )
        prediction_id = await self.store.save(record)
        logger.debug(
            "Consensus prediction recorded",
            prediction_id=prediction_id,
            recommendation=result.recommendation.value,
        )
        return prediction_id

    async def evaluate_pending(
        self,
        current_price: float,
        now: datetime | None = None,
    ) -> EvaluationSummary:
        """Resolve every expired PENDING prediction against the current price.

        Each resolution only applies while the stored outcome is still
        PENDING; predictions resolved concurrently are skipped and not counted.
        """
        now = now or datetime.now(UTC)
        pending = await self.store.find_pending(now)
        summary = EvaluationSummary()

        for prediction in pending:
            if prediction.id is None:
                continue
            fields = evaluate_outcome(prediction, current_price)
            fields.update(price_at_outcome=current_price, evaluated_at=now)

            applied = await self.store.update(
                prediction.id, fields, expected_outcome=Outcome.pending
            )
            if not applied:
                logger.debug("Prediction already resolved", prediction_id=prediction.id)
                continue

            summary.evaluated += 1
            if fields["outcome"] == Outcome.win:
                summary.wins += 1
            elif fields["outcome"] == Outcome.loss:
                summary.losses += 1

        await self.refresh_stats(now)

        logger.info(
            "Predictions evaluated",
            candidates=len(pending),
            evaluated=summary.evaluated,
            wins=summary.wins,
            losses=summary.losses,
            price=current_price,
        )
        return summary

    async def mark_outcome(
        self,
        prediction_id: str,
        outcome: Outcome,
        price: float,
        notes: str | None = None,
    ) -> Prediction:
        """Manually set a prediction's outcome, overriding any earlier resolution.

        The TP1/TP2/SL hit flags are recomputed against ``price``; the
        outcome itself is taken as given.

        Raises:
            PredictionNotFoundError: If no prediction has this id
        """
        current = await self.store.get(prediction_id)
        if current is None:
            raise PredictionNotFoundError(f"Prediction {prediction_id} not found")

        now = datetime.now(UTC)
        fields = evaluate_outcome(current, price)
        fields.update(
            outcome=outcome,
            price_at_outcome=price,
            notes=notes,
            evaluated_at=now,
        )
        if not await self.store.update(prediction_id, fields):
            raise PredictionNotFoundError(f"Prediction {prediction_id} not found")

        await self.refresh_stats(now)

        updated = await self.store.get(prediction_id)
        if updated is None:
            raise PredictionNotFoundError(f"Prediction {prediction_id} not found")

        logger.info(
            "Prediction outcome set manually",
            prediction_id=prediction_id,
            outcome=outcome.value,
            price=price,
        )
        return updated

    async def refresh_stats(self, now: datetime | None = None) -> list[AccuracyStats]:
        """Recompute and store stats for every provider present in history."""
        by_provider: dict[str, list[Prediction]] = defaultdict(list)
        for prediction in await self.store.list_predictions():
            by_provider[prediction.provider].append(prediction)

        stats = [compute_stats(provider, preds, now) for provider, preds in by_provider.items()]
        for entry in stats:
            await self.store.upsert_stats(entry)
        return stats

    async def get_stats(self) -> list[AccuracyStats]:
        """Stored stats ordered by win rate, best first."""
        stats = await self.store.get_stats()
        return sorted(stats, key=lambda s: s.win_rate, reverse=True)

    async def compare_providers(self) -> ProviderComparison:
        """Recommend a provider by recent win rate.

        Only providers with enough resolved predictions are eligible;
        otherwise the consensus is recommended.
        """
        stats = await self.get_stats()
        if not stats:
            return ProviderComparison(
                providers=[],
                best_provider=CONSENSUS_PROVIDER_NAME,
                recommendation="Not enough data yet, use the multi-AI consensus",
            )

        qualified = [s for s in stats if s.resolved >= MIN_SAMPLES_FOR_RECOMMENDATION]
        if not qualified:
            counts = ", ".join(f"{s.provider}: {s.resolved}" for s in stats)
            return ProviderComparison(
                providers=stats,
                best_provider=CONSENSUS_PROVIDER_NAME,
                recommendation=(
                    f"Too few resolved predictions ({counts}), use the multi-AI consensus"
                ),
            )

        best = qualified[0]
        for candidate in qualified[1:]:
            if candidate.last_7_days_win_rate > best.last_7_days_win_rate:
                best = candidate

        return ProviderComparison(
            providers=stats,
            best_provider=best.provider,
            recommendation=(
                f"{best.provider} has a 7-day win rate of {best.last_7_days_win_rate}% "
                f"over {best.resolved} resolved predictions"
            ),
        )

    async def recent_predictions(self, limit: int = 20) -> list[Prediction]:
        predictions = await self.store.list_predictions()
        predictions.sort(key=lambda p: p.created_at, reverse=True)
        return predictions[:limit]
