"""
Zero-Coupon Yield Curve Lookup
================================
Piecewise-linear interpolation on a (tenor-in-days, rate) curve:

    r_n = r1 + (r2 - r1) / (t2 - t1) * (t_n - t1),   t1 <= t_n <= t2

Outside the quoted tenors the policy is explicit: "raise" rejects the
lookup, "flat" clamps to the boundary rate.
"""
from __future__ import annotations

import numpy as np
from typing import Optional, Sequence, Tuple

from fhs_risk.config import CONFIG
from fhs_risk.exceptions import DataContractError, InputDomainError

_POLICIES = ("raise", "flat")


class YieldCurve:
    """
    Immutable zero curve.

    Parameters
    ----------
    tenors_days  : strictly increasing tenors in calendar days.
    rates        : continuously compounded zero rates, decimal.
    extrapolation: "raise" or "flat" (defaults to CONFIG).
    day_count    : days per year used to convert year fractions.
    """

    def __init__(self, tenors_days: Sequence[float], rates: Sequence[float],
                 extrapolation: Optional[str] = None,
                 day_count: Optional[int] = None):
        tenors = np.asarray(tenors_days, dtype=np.float64)
        values = np.asarray(rates, dtype=np.float64)
        if tenors.ndim != 1 or tenors.shape != values.shape:
            raise DataContractError("Yield curve tenors and rates must be 1-D and equal length")
        if len(tenors) < 2:
            raise DataContractError("Yield curve needs at least two points")
        if not np.all(np.isfinite(tenors)) or not np.all(np.isfinite(values)):
            raise DataContractError("Yield curve contains missing values")
        if np.any(np.diff(tenors) <= 0):
            raise DataContractError("Yield curve tenors must be strictly increasing")

        self.extrapolation = extrapolation or CONFIG.pricing.curve_extrapolation
        if self.extrapolation not in _POLICIES:
            raise DataContractError(
                f"Unknown extrapolation policy {self.extrapolation!r}; use one of {_POLICIES}")

        self.day_count = day_count or CONFIG.pricing.day_count
        self._tenors = tenors
        self._rates = values
        self._tenors.setflags(write=False)
        self._rates.setflags(write=False)

    @property
    def tenors_days(self) -> np.ndarray:
        return self._tenors

    @property
    def rates(self) -> np.ndarray:
        return self._rates

    def bracket(self, t_days: float) -> Tuple[int, int]:
        """Indices (i, j) of the curve points with tenor_i <= t_days <= tenor_j."""
        if t_days < self._tenors[0] or t_days > self._tenors[-1]:
            raise InputDomainError(
                f"Tenor {t_days:.2f}d outside curve range "
                f"[{self._tenors[0]:g}, {self._tenors[-1]:g}]d")
        j = int(np.searchsorted(self._tenors, t_days, side="left"))
        if self._tenors[j] == t_days:
            return j, j
        return j - 1, j

    def rate_at_days(self, t_days: float) -> float:
        if t_days < self._tenors[0] or t_days > self._tenors[-1]:
            if self.extrapolation == "flat":
                return float(self._rates[0] if t_days < self._tenors[0] else self._rates[-1])
        i, j = self.bracket(t_days)
        if i == j:
            return float(self._rates[i])
        t1, t2 = self._tenors[i], self._tenors[j]
        r1, r2 = self._rates[i], self._rates[j]
        return float(r1 + (r2 - r1) / (t2 - t1) * (t_days - t1))

    def rate(self, t_years: float) -> float:
        """Interpolated zero rate for a year-fraction tenor."""
        return self.rate_at_days(t_years * self.day_count)

    def __repr__(self) -> str:
        return (f"YieldCurve(n={len(self._tenors)}, "
                f"tenors={self._tenors[0]:g}-{self._tenors[-1]:g}d, "
                f"extrapolation={self.extrapolation!r})")
