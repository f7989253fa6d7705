"""
Black-Scholes-Merton Options Pricing Engine
============================================

Closed-form valuation and Greeks for European options on an equity index
with continuous dividend yield (cost of carry b = r - q).

Mathematical Framework:
    Under the risk-neutral measure Q, the index level S(t) follows:

        dS = (r - q) * S * dt + sigma * S * dW^Q

    d1 = [ln(S/K) + (r - q + 0.5 * sigma^2) * T] / (sigma * sqrt(T))
    d2 = d1 - sigma * sqrt(T)

Greeks are returned in raw units: vega per 1.00 of volatility, rho per 1.00
of rate, theta per year (divide by 365 or 252 for daily decay).

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
from scipy.stats import norm
from dataclasses import dataclass
from enum import Enum
from typing import Union

from fhs_risk.exceptions import InputDomainError


class OptionType(Enum):
    """Enumeration of option types."""
    CALL = "call"
    PUT = "put"


@dataclass(frozen=True)
class OptionParameters:
    """
    Container for option pricing parameters.

    Attributes:
        S: Current spot price of the underlying index
        K: Strike price of the option
        T: Time to expiration in years (T > 0)
        r: Annualized risk-free interest rate (continuous compounding)
        sigma: Annualized volatility (sigma > 0)
        q: Continuous dividend yield (default: 0.0)

    Example:
        >>> params = OptionParameters(S=3500, K=3500, T=0.25, r=0.005, sigma=0.20, q=0.02)
    """
    S: float
    K: float
    T: float
    r: float
    sigma: float
    q: float = 0.0

    def __post_init__(self):
        """Validate input parameters after initialization."""
        if self.S <= 0:
            raise InputDomainError(f"Spot price must be positive, got {self.S}")
        if self.K <= 0:
            raise InputDomainError(f"Strike price must be positive, got {self.K}")
        if not self.T > 0:
            raise InputDomainError(f"Time to expiration must be positive, got {self.T}")
        if not self.sigma > 0:
            raise InputDomainError(f"Volatility must be positive, got {self.sigma}")

    @property
    def b(self) -> float:
        """Cost of carry."""
        return self.r - self.q


class BlackScholesEngine:
    """
    Black-Scholes-Merton pricing engine.

    Computes European option prices and first/second-order Greeks using
    closed-form analytical solutions. Scalar methods take an
    OptionParameters; price_vectorized broadcasts over numpy arrays for
    book revaluation under simulated scenarios.

    Usage:
        >>> engine = BlackScholesEngine()
        >>> params = OptionParameters(S=100, K=100, T=1.0, r=0.05, sigma=0.20)
        >>> price = engine.price(params, OptionType.CALL)
        >>> greeks = engine.compute_all_greeks(params, OptionType.CALL)
    """

    def __init__(self):
        self._norm_cdf = norm.cdf
        self._norm_pdf = norm.pdf

    def _compute_d1_d2(
        self,
        S: Union[float, np.ndarray],
        K: Union[float, np.ndarray],
        T: Union[float, np.ndarray],
        r: Union[float, np.ndarray],
        sigma: Union[float, np.ndarray],
        q: float = 0.0
    ) -> tuple:
        """
        Compute the d1 and d2 parameters of the Black-Scholes formula.

        Returns:
            Tuple of (d1, d2) values
        """
        sqrt_T = np.sqrt(T)
        d1 = (np.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * sqrt_T)
        d2 = d1 - sigma * sqrt_T
        return d1, d2

    def d1_d2(self, params: OptionParameters) -> tuple:
        return self._compute_d1_d2(
            params.S, params.K, params.T, params.r, params.sigma, params.q)

    def price(self, params: OptionParameters, option_type: OptionType) -> float:
        """
        Compute the Black-Scholes-Merton price of a European option.

        For a European call:
            C = S * exp(-q*T) * N(d1) - K * exp(-r*T) * N(d2)

        For a European put:
            P = K * exp(-r*T) * N(-d2) - S * exp(-q*T) * N(-d1)
        """
        d1, d2 = self.d1_d2(params)
        discount = np.exp(-params.r * params.T)
        fwd_discount = np.exp(-params.q * params.T)

        if option_type == OptionType.CALL:
            return float(params.S * fwd_discount * self._norm_cdf(d1)
                         - params.K * discount * self._norm_cdf(d2))
        else:
            return float(params.K * discount * self._norm_cdf(-d2)
                         - params.S * fwd_discount * self._norm_cdf(-d1))

    def price_vectorized(
        self, S: np.ndarray, K: np.ndarray, T: np.ndarray,
        r: np.ndarray, sigma: np.ndarray, q: float, is_call: np.ndarray
    ) -> np.ndarray:
        """
        Vectorized pricing for scenario revaluation.

        All array arguments broadcast against each other; `is_call` is a
        boolean mask selecting the call formula, the put formula elsewhere.
        Inputs are assumed validated (T > 0, sigma > 0).
        """
        d1, d2 = self._compute_d1_d2(S, K, T, r, sigma, q)
        disc = np.exp(-r * T)
        fwd = np.exp(-q * T)
        call = S * fwd * self._norm_cdf(d1) - K * disc * self._norm_cdf(d2)
        put = K * disc * self._norm_cdf(-d2) - S * fwd * self._norm_cdf(-d1)
        return np.where(is_call, call, put)

    def delta(self, params: OptionParameters, option_type: OptionType) -> float:
        """
        Call Delta = exp(-q*T) * N(d1)        [range: 0 to 1]
        Put Delta  = -exp(-q*T) * N(-d1)      [range: -1 to 0]
        """
        d1, _ = self.d1_d2(params)
        fwd = np.exp(-params.q * params.T)
        if option_type == OptionType.CALL:
            return float(fwd * self._norm_cdf(d1))
        return float(-fwd * self._norm_cdf(-d1))

    def gamma(self, params: OptionParameters) -> float:
        """Gamma = exp(-q*T) * n(d1) / (S * sigma * sqrt(T)). Identical for calls/puts."""
        d1, _ = self.d1_d2(params)
        fwd = np.exp(-params.q * params.T)
        return float(fwd * self._norm_pdf(d1) / (params.S * params.sigma * np.sqrt(params.T)))

    def vega(self, params: OptionParameters) -> float:
        """Vega = S * exp(-q*T) * n(d1) * sqrt(T), per unit of volatility."""
        d1, _ = self.d1_d2(params)
        fwd = np.exp(-params.q * params.T)
        return float(params.S * fwd * self._norm_pdf(d1) * np.sqrt(params.T))

    def compute_all_greeks(self, params: OptionParameters, option_type: OptionType) -> dict:
        """
        Compute the five Greeks in a single pass, sharing d1 and d2.

        Theta is annualized, i.e. -dV/dT with T in years.

        Returns:
            Dictionary: delta, gamma, theta, vega, rho
        """
        d1, d2 = self.d1_d2(params)
        fwd = np.exp(-params.q * params.T)
        disc = np.exp(-params.r * params.T)
        sqrt_T = np.sqrt(params.T)
        n_d1 = self._norm_pdf(d1)

        gamma = fwd * n_d1 / (params.S * params.sigma * sqrt_T)
        vega = params.S * fwd * n_d1 * sqrt_T

        term1 = -(params.S * params.sigma * fwd * n_d1) / (2.0 * sqrt_T)
        if option_type == OptionType.CALL:
            delta = fwd * self._norm_cdf(d1)
            theta = (term1 - params.r * params.K * disc * self._norm_cdf(d2)
                     + params.q * params.S * fwd * self._norm_cdf(d1))
            rho = params.K * params.T * disc * self._norm_cdf(d2)
        else:
            delta = -fwd * self._norm_cdf(-d1)
            theta = (term1 + params.r * params.K * disc * self._norm_cdf(-d2)
                     - params.q * params.S * fwd * self._norm_cdf(-d1))
            rho = -params.K * params.T * disc * self._norm_cdf(-d2)

        return {"delta": float(delta), "gamma": float(gamma), "theta": float(theta),
                "vega": float(vega), "rho": float(rho)}

    def put_call_parity_check(self, params: OptionParameters) -> dict:
        """
        Verify put-call parity: C - P = S*exp(-qT) - K*exp(-rT).
        """
        call = self.price(params, OptionType.CALL)
        put = self.price(params, OptionType.PUT)
        theoretical = (params.S * np.exp(-params.q * params.T)
                       - params.K * np.exp(-params.r * params.T))
        actual = call - put
        return {
            "call_price": call, "put_price": put,
            "theoretical_C_minus_P": theoretical, "actual_C_minus_P": actual,
            "parity_error": abs(actual - theoretical),
            "parity_holds": abs(actual - theoretical) < 1e-8,
        }


_ENGINE = BlackScholesEngine()


def price(option_type: OptionType, S: float, K: float, T: float,
          r: float, q: float, sigma: float) -> float:
    """Functional form of BlackScholesEngine.price; raises InputDomainError on T <= 0 or sigma <= 0."""
    return _ENGINE.price(OptionParameters(S=S, K=K, T=T, r=r, sigma=sigma, q=q),
                         option_type)


def greeks(option_type: OptionType, S: float, K: float, T: float,
           r: float, q: float, sigma: float) -> dict:
    """Functional form of BlackScholesEngine.compute_all_greeks."""
    return _ENGINE.compute_all_greeks(
        OptionParameters(S=S, K=K, T=T, r=r, sigma=sigma, q=q), option_type)


def intrinsic_value(S, K, is_call):
    """Payoff at expiry; broadcasts like price_vectorized."""
    return np.where(is_call, np.maximum(S - K, 0.0), np.maximum(K - S, 0.0))
