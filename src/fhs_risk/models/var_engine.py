"""
VaR / Expected Shortfall Primitives
=====================================

Result container and quantile helpers shared by the delta-normal mapper
and the Filtered Historical Simulation engine. Both measures are reported
as positive numbers when the tail outcome is a loss.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from scipy.stats import norm
from dataclasses import dataclass
from typing import Optional

from fhs_risk.exceptions import DataContractError


@dataclass
class VaRResult:
    """Container for VaR/CVaR computation results."""
    var: float
    cvar: float
    confidence: float
    method: str
    additional: Optional[dict] = None


def _alpha(confidence: float) -> float:
    if not 0.0 < confidence < 1.0:
        raise DataContractError(f"Confidence must lie in (0, 1), got {confidence}")
    return 1.0 - confidence


def empirical_var(pnl: np.ndarray, confidence: float = 0.95) -> float:
    """
    Empirical VaR of a P&L sample: -percentile(P&L, 100 * alpha).
    Non-parametric, no distributional assumptions.
    """
    pnl = np.asarray(pnl, dtype=np.float64)
    if pnl.size == 0:
        raise DataContractError("P&L sample is empty")
    return float(-np.percentile(pnl, _alpha(confidence) * 100))


def empirical_cvar(pnl: np.ndarray, confidence: float = 0.95) -> float:
    """Expected shortfall: minus the mean P&L at or below the VaR threshold."""
    pnl = np.asarray(pnl, dtype=np.float64)
    var = empirical_var(pnl, confidence)
    tail = pnl[pnl <= -var]
    return float(-np.mean(tail)) if len(tail) > 0 else var


def normal_var(mean: float, std: float, confidence: float = 0.95) -> VaRResult:
    """
    Parametric VaR of a normally distributed P&L.

        VaR = -(mu + z_alpha * sigma),   z_alpha = Phi^{-1}(alpha) < 0
        ES  = -(mu - sigma * phi(z_alpha) / alpha)
    """
    alpha = _alpha(confidence)
    z = norm.ppf(alpha)
    var = -(mean + z * std)
    cvar = -(mean - std * norm.pdf(z) / alpha)
    return VaRResult(var=float(var), cvar=float(cvar), confidence=confidence,
                     method="Parametric Normal",
                     additional={"mean": mean, "std": std, "z_alpha": z})
