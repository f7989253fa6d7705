"""
Implied Volatility Solver
==========================

Extracts implied volatility from an observed option price by inverting the
Black-Scholes-Merton formula inside an explicit volatility bracket.

Methods:
    1. Newton-Raphson with Vega as analytical derivative (quadratic convergence)
    2. Brent's method as robust fallback (guaranteed convergence in the bracket)
    3. Brenner-Subrahmanyam (1988) approximation for initial guess

The price is strictly increasing in sigma, so a price outside
[BS(sigma_lo), BS(sigma_hi)] admits no solution in the bracket and is
rejected as an InputDomainError instead of silently clamped.

Author: Jose Orlando Bobadilla Fuentes | CQF

References:
    Brenner, M., & Subrahmanyam, M.G. (1988). A Simple Formula to Compute
    the Implied Standard Deviation. FAJ.
"""

import numpy as np
from scipy.optimize import brentq
from typing import Optional

from fhs_risk.config import CONFIG
from fhs_risk.exceptions import InputDomainError, NumericalInstabilityError
from .black_scholes import BlackScholesEngine, OptionParameters, OptionType


class ImpliedVolatilitySolver:
    """
    Numerical solver for Black-Scholes implied volatility.

    Attempts Newton-Raphson first for speed, falling back to Brent's
    method if convergence is not achieved.

    Usage:
        >>> solver = ImpliedVolatilitySolver()
        >>> iv = solver.solve(market_price=10.45, S=100, K=100, T=1.0,
        ...                   r=0.05, q=0.0, option_type=OptionType.CALL)
    """

    def __init__(self, tol: Optional[float] = None, max_iter: Optional[int] = None,
                 vol_bounds: Optional[tuple] = None):
        cfg = CONFIG.pricing
        self.engine = BlackScholesEngine()
        self.tol = tol if tol is not None else cfg.iv_tol
        self.max_iter = max_iter if max_iter is not None else cfg.iv_max_iter
        self.vol_bounds = vol_bounds or (cfg.iv_lower, cfg.iv_upper)

    def _price(self, sigma, S, K, T, r, q, option_type):
        params = OptionParameters(S=S, K=K, T=T, r=r, sigma=sigma, q=q)
        return self.engine.price(params, option_type)

    def _brenner_guess(self, price: float, S: float, K: float,
                       T: float, r: float, q: float) -> float:
        """Brenner-Subrahmanyam (1988) initial guess for ATM options."""
        forward = S * np.exp((r - q) * T)
        return price * np.sqrt(2.0 * np.pi / T) / forward

    def _newton_raphson(self, market_price, S, K, T, r, q, option_type,
                        initial_guess=None):
        """
        sigma_{n+1} = sigma_n - [BS(sigma_n) - mkt] / Vega
        Returns None when the iteration leaves the bracket or stalls.
        """
        lo, hi = self.vol_bounds
        sigma = initial_guess or self._brenner_guess(market_price, S, K, T, r, q)
        sigma = max(lo, min(sigma, hi))

        for _ in range(self.max_iter):
            params = OptionParameters(S=S, K=K, T=T, r=r, sigma=sigma, q=q)
            diff = self.engine.price(params, option_type) - market_price
            if abs(diff) < self.tol:
                return sigma

            vega = self.engine.vega(params)
            if vega < 1e-12:
                return None

            step = diff / vega
            sigma -= step
            if sigma <= lo or sigma >= hi:
                return None
            if abs(step) < self.tol:
                return sigma

        return None

    def _brent_solver(self, market_price, S, K, T, r, q, option_type):
        """Brent's method fallback: guaranteed convergence within brackets."""
        def obj(sigma):
            return self._price(sigma, S, K, T, r, q, option_type) - market_price
        try:
            return brentq(obj, self.vol_bounds[0], self.vol_bounds[1],
                          xtol=self.tol, maxiter=self.max_iter)
        except ValueError as exc:
            # objective has the same sign at both bracket ends
            raise InputDomainError(
                f"Price {market_price:.6f} is not bracketed by [{self.vol_bounds[0]:g}, "
                f"{self.vol_bounds[1]:g}]: {exc}") from exc
        except RuntimeError as exc:
            raise NumericalInstabilityError(
                f"Brent implied-vol search did not converge: {exc}") from exc

    def solve(self, market_price, S, K, T, r, q, option_type,
              initial_guess=None) -> float:
        """
        Extract implied volatility from market price.
        Strategy: bracket check, Newton-Raphson first, Brent's fallback.

        Raises:
            InputDomainError: T <= 0, or no sigma in the bracket reproduces
                the price.
            NumericalInstabilityError: the fallback solver did not converge.
        """
        if not T > 0:
            raise InputDomainError(f"Time to expiration must be positive, got {T}")
        if not market_price > 0:
            raise InputDomainError(f"Market price must be positive, got {market_price}")

        lo, hi = self.vol_bounds
        p_lo = self._price(lo, S, K, T, r, q, option_type)
        p_hi = self._price(hi, S, K, T, r, q, option_type)
        if not p_lo - self.tol <= market_price <= p_hi + self.tol:
            raise InputDomainError(
                f"Price {market_price:.6f} admits no implied volatility in "
                f"[{lo:g}, {hi:g}] (attainable range {p_lo:.6f} - {p_hi:.6f})")

        iv = self._newton_raphson(market_price, S, K, T, r, q, option_type,
                                  initial_guess)
        return iv if iv is not None else self._brent_solver(
            market_price, S, K, T, r, q, option_type)


def implied_volatility(market_price: float, S: float, K: float, T: float,
                       r: float, b: float,
                       option_type: OptionType = OptionType.CALL) -> float:
    """
    Implied volatility with the carry given as b = r - q.

    Example:
        >>> implied_volatility(132.69, S=3500, K=3500, T=0.25, r=0.005, b=-0.015)
    """
    return ImpliedVolatilitySolver().solve(market_price, S, K, T, r, r - b,
                                           option_type)
