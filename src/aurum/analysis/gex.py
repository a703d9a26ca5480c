"""Gamma exposure (GEX) estimation.

Black-Scholes gamma per strike, scaled by open interest, price and the
contract multiplier. Calls are counted as positive dealer gamma and puts
as negative. This is the usual retail approximation of dealer positioning,
not a measurement: nobody outside the dealers knows which side of each
contract they hold.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from scipy.stats import norm

from aurum.analysis.models import GexRegime, GexResult, StrikeGex, StrikeRow
from aurum.core.constants import (
    CONTRACT_MULTIPLIER,
    DEFAULT_DAYS_TO_EXPIRY,
    DEFAULT_IV,
    MIN_TIME_TO_EXPIRY_YEARS,
    RISK_FREE_RATE,
    ZERO_GAMMA_MAX_ITERATIONS,
    ZERO_GAMMA_STEPS,
    ZERO_GAMMA_WINDOW,
)


def time_to_expiry(days_to_expiry: float) -> float:
    """Convert days to years, floored so gamma never divides by zero."""
    return max(days_to_expiry / 365, MIN_TIME_TO_EXPIRY_YEARS)


def bs_gamma(
    spot: float,
    strikes: np.ndarray,
    t: float,
    sigma: float,
    r: float = RISK_FREE_RATE,
) -> np.ndarray:
    """Black-Scholes gamma for each strike (identical for calls and puts).

    Non-positive spot, volatility or strike gives gamma 0.
    """
    strikes = np.asarray(strikes, dtype=float)
    gamma = np.zeros_like(strikes)
    if spot <= 0 or sigma <= 0 or t <= 0:
        return gamma

    valid = strikes > 0
    k = strikes[valid]
    d1 = (np.log(spot / k) + (r + 0.5 * sigma**2) * t) / (sigma * np.sqrt(t))
    gamma[valid] = norm.pdf(d1) / (spot * sigma * np.sqrt(t))
    return gamma


def net_exposure(
    spot: float,
    strikes: np.ndarray,
    call_oi: np.ndarray,
    put_oi: np.ndarray,
    t: float,
    sigma: float,
) -> float:
    """Total signed gamma exposure of the chain if the underlying were at ``spot``."""
    gamma = bs_gamma(spot, strikes, t, sigma)
    return float(np.sum(gamma * (call_oi - put_oi)) * spot * CONTRACT_MULTIPLIER)


def find_zero_gamma(
    current_price: float,
    strikes: np.ndarray,
    call_oi: np.ndarray,
    put_oi: np.ndarray,
    t: float,
    sigma: float,
) -> float | None:
    """Approximate the price where aggregate exposure flips sign.

    Scans +/-10% around the current price in 20 equal steps and returns the
    candidate with the smallest absolute exposure (first one on ties).
    """
    if current_price <= 0:
        return None

    low = current_price * (1 - ZERO_GAMMA_WINDOW)
    high = current_price * (1 + ZERO_GAMMA_WINDOW)
    step = max((high - low) / ZERO_GAMMA_STEPS, 0.01)

    best_price = current_price
    best_abs = float("inf")
    price = low
    for _ in range(ZERO_GAMMA_MAX_ITERATIONS):
        if price > high + 1e-9:
            break
        exposure = abs(net_exposure(price, strikes, call_oi, put_oi, t, sigma))
        if exposure < best_abs:
            best_abs = exposure
            best_price = price
        price += step

    return round(best_price, 2)


def compute_gex(
    strikes: Sequence[StrikeRow],
    current_price: float,
    days_to_expiry: float = DEFAULT_DAYS_TO_EXPIRY,
    iv: float = DEFAULT_IV,
) -> GexResult:
    """Estimate the dealer gamma profile of an option chain.

    Args:
        strikes: Option chain
        current_price: Underlying price
        days_to_expiry: Calendar days to expiry
        iv: Implied volatility as a decimal (0.15 = 15%)

    Returns:
        GexResult with per-strike exposure, totals, the zero-gamma level and
        a regime label (positive total = mean reverting, otherwise trending)
    """
    t = time_to_expiry(days_to_expiry)

    strike_arr = np.array([row.strike for row in strikes], dtype=float)
    call_oi = np.array([row.call_oi for row in strikes], dtype=float)
    put_oi = np.array([row.put_oi for row in strikes], dtype=float)

    gamma = bs_gamma(current_price, strike_arr, t, iv)
    scale = max(current_price, 0.0) * CONTRACT_MULTIPLIER
    call_gex = gamma * call_oi * scale
    put_gex = -gamma * put_oi * scale

    per_strike = [
        StrikeGex(
            strike=float(k),
            gamma=float(g),
            call_gex=round(float(c), 2),
            put_gex=round(float(p), 2),
            net_gex=round(float(c + p), 2),
        )
        for k, g, c, p in zip(strike_arr, gamma, call_gex, put_gex)
    ]

    total_call = float(np.sum(call_gex))
    total_put = float(np.sum(put_gex))
    total = total_call + total_put

    if total > 0:
        regime = GexRegime.mean_reverting
        description = "Positive gamma: dealers dampen moves, mean reversion and low volatility"
    else:
        regime = GexRegime.trending
        description = "Negative gamma: dealers amplify moves, trending and high volatility"

    return GexResult(
        current_price=current_price,
        days_to_expiry=days_to_expiry,
        iv=iv,
        total_gex=round(total, 2),
        call_gex=round(total_call, 2),
        put_gex=round(total_put, 2),
        zero_gamma_level=find_zero_gamma(current_price, strike_arr, call_oi, put_oi, t, iv),
        regime=regime,
        description=description,
        strikes=per_strike,
    )
