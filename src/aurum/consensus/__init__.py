"""Multi-provider AI consensus over a market summary."""

from aurum.consensus.aggregator import aggregate_predictions, get_consensus
from aurum.consensus.models import (
    AgreementLevel,
    ConsensusResult,
    EntryZone,
    MarketSummary,
    ProviderPrediction,
    ProviderResult,
)
from aurum.consensus.prompts import build_market_summary, format_market_summary
from aurum.consensus.providers import (
    LLMPredictionProvider,
    PredictionProvider,
    ProviderRegistry,
    build_default_registry,
    get_registry,
)

__all__ = [
    "AgreementLevel",
    "ConsensusResult",
    "EntryZone",
    "LLMPredictionProvider",
    "MarketSummary",
    "PredictionProvider",
    "ProviderPrediction",
    "ProviderRegistry",
    "ProviderResult",
    "aggregate_predictions",
    "build_default_registry",
    "build_market_summary",
    "format_market_summary",
    "get_consensus",
    "get_registry",
]
