"""
GARCH(1,1) Forward Recursion
==============================

Per risk factor, with fitted coefficients supplied by the estimation step:

    mean_t     = mu + ar1 * r_{t-1}                 (mu = ar1 = 0 without a mean equation)
    variance_t = omega + alpha1 * r_{t-1}^2 + beta1 * variance_{t-1}

Used once for the one-step forecast behind delta-normal VaR and repeatedly
inside the multi-day Filtered Historical Simulation, where r_{t-1} is the
previous simulated return. Returns are daily log returns in decimals.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from fhs_risk.exceptions import DataContractError, NumericalInstabilityError


@dataclass(frozen=True)
class GARCHCoefficients:
    omega: float
    alpha1: float
    beta1: float
    mu: float = 0.0
    ar1: float = 0.0

    @property
    def persistence(self) -> float:
        return self.alpha1 + self.beta1

    @property
    def unconditional_variance(self) -> float:
        """omega / (1 - alpha1 - beta1); NaN when the process is not stationary."""
        if self.persistence >= 1.0:
            return float("nan")
        return self.omega / (1.0 - self.persistence)


@dataclass(frozen=True, eq=False)
class VolatilityState:
    """
    Fitted GARCH state for one risk factor.

    Attributes:
        name: Factor label used in error context ("SPX", "VIX")
        coefficients: Fitted GARCHCoefficients
        std_residuals: Standardized residuals over the estimation window
        cond_variance: Conditional variances aligned with std_residuals
        returns: Observed returns aligned with std_residuals
    """
    name: str
    coefficients: GARCHCoefficients
    std_residuals: np.ndarray
    cond_variance: np.ndarray
    returns: np.ndarray

    def __post_init__(self):
        for attr in ("std_residuals", "cond_variance", "returns"):
            arr = np.array(getattr(self, attr), dtype=np.float64)
            arr.setflags(write=False)
            object.__setattr__(self, attr, arr)
        n = len(self.std_residuals)
        if n == 0:
            raise DataContractError("Empty standardized-residual series", factor=self.name)
        if len(self.cond_variance) != n or len(self.returns) != n:
            raise DataContractError(
                "Residual, variance and return series must have equal length",
                factor=self.name)
        if not np.all(np.isfinite(self.std_residuals)):
            raise DataContractError("Standardized residuals contain NaN/inf",
                                    factor=self.name)

    @property
    def window(self) -> int:
        return len(self.std_residuals)

    @property
    def last_return(self) -> float:
        return float(self.returns[-1])

    @property
    def last_variance(self) -> float:
        return float(self.cond_variance[-1])

    def tail(self, n: int) -> "VolatilityState":
        """The last n observations, e.g. to align two factors on a common window."""
        return VolatilityState(self.name, self.coefficients, self.std_residuals[-n:],
                               self.cond_variance[-n:], self.returns[-n:])

    def forecast(self) -> Tuple[float, float]:
        """One-step-ahead (mean, variance) from the last observed return and variance."""
        return one_step_forecast(self.coefficients, self.last_return,
                                 self.last_variance, factor=self.name)


def garch_step(coefs: GARCHCoefficients, last_return, last_variance):
    """Unchecked recursion; broadcasts over numpy arrays of draws."""
    mean = coefs.mu + coefs.ar1 * last_return
    variance = coefs.omega + coefs.alpha1 * last_return ** 2 + coefs.beta1 * last_variance
    return mean, variance


def one_step_forecast(coefs: GARCHCoefficients, last_return: float,
                      last_variance: float,
                      factor: Optional[str] = None) -> Tuple[float, float]:
    """
    Pure one-step forecast (mean, variance).

    Raises:
        NumericalInstabilityError: variance is non-positive or not finite.
    """
    mean, variance = garch_step(coefs, last_return, last_variance)
    if not np.isfinite(variance) or variance <= 0:
        raise NumericalInstabilityError(
            f"GARCH variance forecast {variance!r} is not positive", factor=factor)
    return float(mean), float(variance)


def garch_filter(coefs: GARCHCoefficients, returns: np.ndarray,
                 initial_variance: Optional[float] = None,
                 name: str = "factor") -> VolatilityState:
    """
    Rebuild conditional variances and standardized residuals from returns.

    variance_0 defaults to the sample variance of the returns; for t >= 1
    the recursion is driven by the observed r_{t-1}. The residual is
    z_t = (r_t - mean_t) / sqrt(variance_t) with mean_0 = mu.
    """
    r = np.asarray(returns, dtype=np.float64)
    if r.ndim != 1 or len(r) < 2:
        raise DataContractError("Need a 1-D return series of length >= 2", factor=name)

    n = len(r)
    var = np.empty(n)
    mean = np.empty(n)
    var[0] = float(np.var(r, ddof=1)) if initial_variance is None else initial_variance
    mean[0] = coefs.mu
    for t in range(1, n):
        mean[t], var[t] = garch_step(coefs, r[t - 1], var[t - 1])

    if not np.all(np.isfinite(var)) or np.any(var <= 0):
        bad = int(np.argmax(~(np.isfinite(var) & (var > 0))))
        raise NumericalInstabilityError(
            f"Conditional variance breaks down at t={bad}", factor=name)

    z = (r - mean) / np.sqrt(var)
    return VolatilityState(name=name, coefficients=coefs, std_residuals=z,
                           cond_variance=var, returns=r)
