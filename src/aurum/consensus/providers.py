"""Prediction providers and the registry the consensus draws from.

A provider is anything with a ``name`` and an async ``predict`` that turns a
MarketSummary into a ProviderPrediction. LLM-backed providers wrap a
PydanticAI agent; tests register plain fakes.

Architecture follows the PydanticAI pattern used by the analyzers:
- Typed deps via ``deps_type=MarketSummary``
- Market data injected through ``@agent.system_prompt``
- Short user prompt focused on the task
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Protocol, runtime_checkable

from pydantic_ai import Agent, PromptedOutput, RunContext
from pydantic_ai.models import Model

from aurum.config import Settings, get_settings
from aurum.consensus.llm import PROVIDER_NAMES, create_model, provider_api_key, provider_model_name
from aurum.consensus.models import MarketSummary, ProviderPrediction
from aurum.consensus.prompts import PREDICTION_SYSTEM_PROMPT, format_market_summary
from aurum.core.exceptions import UnknownProviderError
from aurum.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class PredictionProvider(Protocol):
    """Protocol for anything that can produce a trade prediction."""

    name: str

    async def predict(self, summary: MarketSummary) -> ProviderPrediction:
        """Predict a trade from the market summary.

        Raises on failure; the aggregator records the error.
        """
        ...


class ProviderRegistry:
    """Named prediction providers, kept in registration order."""

    def __init__(self) -> None:
        self._providers: dict[str, PredictionProvider] = {}

    def register(self, provider: PredictionProvider) -> None:
        if provider.name in self._providers:
            logger.warning("Replacing prediction provider", provider=provider.name)
        self._providers[provider.name] = provider

    def unregister(self, name: str) -> None:
        self._providers.pop(name, None)

    def get(self, name: str) -> PredictionProvider:
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(name, self.names()) from None

    def names(self) -> list[str]:
        return list(self._providers)

    def select(self, names: list[str] | None = None) -> list[PredictionProvider]:
        """Resolve provider names, or every registered provider when None.

        Repeated names resolve once, at their first position.

        Raises:
            UnknownProviderError: If any name is not registered
        """
        if names is None:
            return list(self._providers.values())
        return [self.get(name) for name in dict.fromkeys(names)]

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def create_prediction_agent(model: Model | str) -> Agent[MarketSummary, ProviderPrediction]:
    """Create the PydanticAI agent shared by every LLM provider."""
    agent: Agent[MarketSummary, ProviderPrediction] = Agent(
        model,
        deps_type=MarketSummary,
        output_type=PromptedOutput(ProviderPrediction),
        system_prompt=PREDICTION_SYSTEM_PROMPT,
    )

    @agent.system_prompt
    def inject_market_data(ctx: RunContext[MarketSummary]) -> str:
        return format_market_summary(ctx.deps)

    return agent


class LLMPredictionProvider:
    """Prediction provider backed by one LLM through PydanticAI."""

    def __init__(self, name: str, model: Model | str, model_name: str | None = None) -> None:
        self.name = name
        self.model_name = model_name
        self._model = model
        self._agent: Agent[MarketSummary, ProviderPrediction] | None = None

    @property
    def agent(self) -> Agent[MarketSummary, ProviderPrediction]:
        """Get or create the prediction agent."""
        if self._agent is None:
            self._agent = create_prediction_agent(self._model)
        return self._agent

    async def predict(self, summary: MarketSummary) -> ProviderPrediction:
        start = time.perf_counter()
        logger.debug(
            "Requesting prediction",
            provider=self.name,
            model=self.model_name,
            product=summary.product,
        )

        result = await self.agent.run(self._build_prompt(summary), deps=summary)
        prediction = result.output

        logger.info(
            "Prediction received",
            provider=self.name,
            recommendation=prediction.recommendation.value,
            confidence=prediction.confidence,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        return prediction

    def _build_prompt(self, summary: MarketSummary) -> str:
        return (
            f"Analyze the {summary.product} options data above and recommend an XAU trade. "
            "Take direction from intraday volume and levels from open interest."
        )


def build_default_registry(settings: Settings) -> ProviderRegistry:
    """Register an LLM provider for every configured API key."""
    registry = ProviderRegistry()
    for name in PROVIDER_NAMES:
        if provider_api_key(name, settings) is None:
            continue
        registry.register(
            LLMPredictionProvider(
                name,
                create_model(name, settings),
                model_name=provider_model_name(name, settings),
            )
        )

    logger.info("Prediction providers configured", providers=registry.names())
    return registry


@lru_cache(maxsize=1)
def get_registry() -> ProviderRegistry:
    """Get the singleton registry built from application settings."""
    return build_default_registry(get_settings())
