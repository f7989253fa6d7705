"""
Delta-Normal Risk Mapping
===========================

Maps the book onto two risk factors, the index log return (SPX factor)
and the volatility-index log return (VIX factor), using first-order
sensitivities only:

    dV ~ Delta * S * r_SPX + Vega * V * r_VIX

    E[dV]   = Vega * V * mean_VIX
    Var[dV] = Delta^2 S^2 Var_SPX + Vega^2 V^2 Var_VIX
              + 2 Delta Vega S V rho sqrt(Var_SPX Var_VIX)

The book is not repriced. Gamma, Theta and Rho are excluded by
construction: a delta-normal P&L is linear in the factor returns, so the
book's convexity, time decay and rate exposure do not enter the estimate.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from typing import Tuple

from fhs_risk.exceptions import InputDomainError, NumericalInstabilityError
from fhs_risk.utils.logger import get_logger
from .portfolio import PortfolioGreeks
from .var_engine import VaRResult, normal_var

log = get_logger(__name__)


def delta_normal_moments(delta: float, vega: float, spot: float, vol_level: float,
                         spx_variance: float, vix_mean: float, vix_variance: float,
                         rho: float) -> Tuple[float, float]:
    """Mean and variance of the one-step book value change."""
    if spx_variance < 0 or vix_variance < 0:
        raise NumericalInstabilityError("Negative factor variance in delta-normal mapping")
    if abs(rho) > 1:
        raise NumericalInstabilityError(f"Correlation {rho} outside [-1, 1]")

    ds = delta * spot
    dv = vega * vol_level
    mean = dv * vix_mean
    variance = (ds ** 2 * spx_variance + dv ** 2 * vix_variance
                + 2.0 * ds * dv * rho * np.sqrt(spx_variance * vix_variance))
    return float(mean), float(max(variance, 0.0))


def delta_normal_var(greeks: PortfolioGreeks, spot: float, vol_level: float,
                     spx_forecast: Tuple[float, float],
                     vix_forecast: Tuple[float, float],
                     rho: float, confidence: float = 0.95) -> VaRResult:
    """
    One-day delta-normal VaR of the book.

    Parameters:
        greeks: Portfolio Greeks (currency units, raw vega)
        spot: Current index level S
        vol_level: Current volatility-index level as a decimal (VIX / 100)
        spx_forecast: One-step (mean, variance) of the index factor
        vix_forecast: One-step (mean, variance) of the vol-index factor
        rho: One-step conditional correlation between the factors
        confidence: VaR confidence level (0.95 -> 5% tail)

    Returns:
        VaRResult with var / cvar as positive loss magnitudes
    """
    if not spot > 0 or not vol_level > 0:
        raise InputDomainError("Spot and volatility level must be positive")

    _, spx_var = spx_forecast
    vix_mean, vix_var = vix_forecast
    mean, variance = delta_normal_moments(greeks.delta, greeks.vega, spot, vol_level,
                                          spx_var, vix_mean, vix_var, rho)
    res = normal_var(mean, np.sqrt(variance), confidence)
    res.method = "Delta-Normal"
    res.additional.update({"variance": variance, "rho": rho,
                           "spx_exposure": greeks.delta * spot,
                           "vix_exposure": greeks.vega * vol_level})
    log.info("Delta-normal VaR(%.0f%%) = %.2f (mean=%.2f, std=%.2f)",
             confidence * 100, res.var, mean, np.sqrt(variance))
    return res
