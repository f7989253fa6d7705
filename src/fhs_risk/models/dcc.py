"""
Dynamic Conditional Correlation (DCC) Recursion
=================================================

Two-factor DCC(1,1) on GARCH standardized residuals (z1, z2):

    q11_t = 1      + a (z1^2   - 1)      + b (q11_{t-1} - 1)
    q22_t = 1      + a (z2^2   - 1)      + b (q22_{t-1} - 1)
    q12_t = rhobar + a (z1 z2  - rhobar) + b (q12_{t-1} - rhobar)
    rho_t = q12_t / sqrt(q11_t q22_t)

rhobar is the long-run correlation, the window mean of z1 * z2. With
a, b >= 0, a + b < 1 and |rhobar| <= 1 every Q_t is positive semi-definite,
so |rho_t| <= 1; a violation signals numerical breakdown.

Author: Jose Orlando Bobadilla Fuentes | CQF

References:
    Engle, R. (2002). Dynamic Conditional Correlation. JBES, 20(3), 339-350.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from fhs_risk.exceptions import DataContractError, NumericalInstabilityError

_RHO_TOL = 1e-12

QMatrix = Tuple[float, float, float]   # (q11, q22, q12)


@dataclass(frozen=True)
class DCCCoefficients:
    a: float
    b: float

    def __post_init__(self):
        if self.a < 0 or self.b < 0 or self.a + self.b >= 1:
            raise DataContractError(
                f"DCC coefficients need a, b >= 0 and a + b < 1, got a={self.a}, b={self.b}")


@dataclass(frozen=True, eq=False)
class CorrelationState:
    """
    Fitted DCC state: coefficients, long-run correlation, the last fitted
    pseudo-correlation matrix Q and the last pair of standardized residuals.
    Histories are kept for reporting.
    """
    coefficients: DCCCoefficients
    rho_bar: float
    q_last: QMatrix
    z_last: Tuple[float, float]
    rho_history: Optional[np.ndarray] = None

    def __post_init__(self):
        if abs(self.rho_bar) > 1:
            raise DataContractError(f"Long-run correlation {self.rho_bar} outside [-1, 1]")
        q11, q22, _ = self.q_last
        if not (q11 > 0 and q22 > 0):
            raise DataContractError(f"Q diagonal must be positive, got {self.q_last}")

    @property
    def last_correlation(self) -> float:
        q11, q22, q12 = self.q_last
        return float(q12 / np.sqrt(q11 * q22))

    def forecast(self) -> Tuple[QMatrix, float]:
        """One-step-ahead (Q, rho)."""
        return dcc_update(self.coefficients, self.rho_bar, self.q_last, self.z_last)


def long_run_correlation(z1: np.ndarray, z2: np.ndarray) -> float:
    """Window mean of the product of the two standardized-residual series."""
    z1 = np.asarray(z1, dtype=np.float64)
    z2 = np.asarray(z2, dtype=np.float64)
    if z1.shape != z2.shape or z1.size == 0:
        raise DataContractError("Residual series must be non-empty and aligned")
    return float(np.mean(z1 * z2))


def dcc_update(coefs: DCCCoefficients, rho_bar: float, q_prev: QMatrix,
               z_prev: Tuple[float, float]) -> Tuple[QMatrix, float]:
    """
    One DCC step: (Q_{t-1}, z_{t-1}) -> (Q_t, rho_t).

    Raises:
        NumericalInstabilityError: non-positive q11/q22 or |rho_t| > 1.
    """
    a, b = coefs.a, coefs.b
    q11_p, q22_p, q12_p = q_prev
    z1, z2 = z_prev

    q11 = 1.0 + a * (z1 * z1 - 1.0) + b * (q11_p - 1.0)
    q22 = 1.0 + a * (z2 * z2 - 1.0) + b * (q22_p - 1.0)
    q12 = rho_bar + a * (z1 * z2 - rho_bar) + b * (q12_p - rho_bar)

    if not (q11 > 0 and q22 > 0):
        raise NumericalInstabilityError(
            f"DCC diagonal not positive (q11={q11!r}, q22={q22!r})")
    rho = q12 / np.sqrt(q11 * q22)
    if not np.isfinite(rho) or abs(rho) > 1.0 + _RHO_TOL:
        raise NumericalInstabilityError(f"DCC correlation {rho!r} outside [-1, 1]")

    return (float(q11), float(q22), float(q12)), float(np.clip(rho, -1.0, 1.0))


def dcc_filter(coefs: DCCCoefficients, z1: np.ndarray, z2: np.ndarray,
               rho_bar: Optional[float] = None) -> CorrelationState:
    """
    Run the recursion over the estimation window.

    Q_0 is the unconditional matrix [[1, rhobar], [rhobar, 1]]; Q_t for
    t >= 1 is driven by z_{t-1}. The returned state holds Q_{n-1} and
    z_{n-1}, ready for the one-step forecast of Q_n.
    """
    z1 = np.asarray(z1, dtype=np.float64)
    z2 = np.asarray(z2, dtype=np.float64)
    if rho_bar is None:
        rho_bar = long_run_correlation(z1, z2)
    elif z1.shape != z2.shape or z1.size == 0:
        raise DataContractError("Residual series must be non-empty and aligned")

    n = len(z1)
    rho = np.empty(n)
    q = (1.0, 1.0, rho_bar)
    rho[0] = rho_bar
    for t in range(1, n):
        q, rho[t] = dcc_update(coefs, rho_bar, q, (z1[t - 1], z2[t - 1]))

    return CorrelationState(coefficients=coefs, rho_bar=rho_bar, q_last=q,
                            z_last=(float(z1[-1]), float(z2[-1])),
                            rho_history=rho)
