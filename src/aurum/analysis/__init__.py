"""Option-chain analysis: PCR, max pain, OI flow, key levels, GEX and signals."""

from aurum.analysis.gex import compute_gex
from aurum.analysis.key_levels import find_key_levels
from aurum.analysis.max_pain import calculate_max_pain
from aurum.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    GexResult,
    MarketSnapshot,
    Sentiment,
    Signal,
    SignalType,
    StrikeRow,
)
from aurum.analysis.oi_flow import analyze_atm_buildup, analyze_oi_flow, classify_flow
from aurum.analysis.pcr import calculate_atm_pcr, calculate_pcr, calculate_volume_pcr
from aurum.analysis.service import run_analysis
from aurum.analysis.signal import classify_net_score, compute_signal

__all__ = [
    # Models
    "AnalysisConfig",
    "AnalysisResult",
    "GexResult",
    "MarketSnapshot",
    "Sentiment",
    "Signal",
    "SignalType",
    "StrikeRow",
    # Analyzers
    "analyze_atm_buildup",
    "analyze_oi_flow",
    "calculate_atm_pcr",
    "calculate_max_pain",
    "calculate_pcr",
    "calculate_volume_pcr",
    "classify_flow",
    "classify_net_score",
    "compute_gex",
    "compute_signal",
    "find_key_levels",
    "run_analysis",
]
