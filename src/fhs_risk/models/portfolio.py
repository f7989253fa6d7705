"""
Option Book Aggregation
========================

Holds the static option book, values every position against an immutable
MarketState and aggregates position Greeks into portfolio Greeks:

    Greek_book = sum_i quantity_i * multiplier_i * Greek_i
    Value_book = sum_i quantity_i * multiplier_i * Price_i(S, sigma_i, t_i)

Per position the pipeline is: time to expiry -> interpolated zero rate ->
implied volatility from the observed price -> d1/d2, price and Greeks.
A position that cannot be valued is reported and dropped; the book only
fails when no position survives.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Sequence

from fhs_risk.config import CONFIG
from fhs_risk.exceptions import (DataContractError, InputDomainError,
                                 NumericalInstabilityError, RiskEngineError)
from fhs_risk.utils.logger import get_logger, timeit
from .black_scholes import (BlackScholesEngine, OptionParameters, OptionType,
                            intrinsic_value)
from .implied_volatility import ImpliedVolatilitySolver
from .yield_curve import YieldCurve

log = get_logger(__name__)

SESSIONS = ("open", "close")


@dataclass(frozen=True)
class OptionPosition:
    """
    One line of the option book.

    Attributes:
        strike: Strike price
        quantity: Signed number of contracts (negative = short)
        multiplier: Contract multiplier (index points -> currency)
        expiry: Expiry date
        expiry_session: "open" (AM-settled) or "close" (PM-settled)
        market_price: Observed option price per unit of underlying
        option_type: OptionType.CALL or OptionType.PUT
        implied_vol: Optional known volatility; skips inversion when set
    """
    strike: float
    quantity: float
    multiplier: float
    expiry: pd.Timestamp
    expiry_session: str = "close"
    market_price: float = float("nan")
    option_type: OptionType = OptionType.CALL
    implied_vol: Optional[float] = None

    def __post_init__(self):
        if not self.strike > 0:
            raise DataContractError(f"Strike must be positive, got {self.strike}")
        if not self.multiplier > 0:
            raise DataContractError(f"Multiplier must be positive, got {self.multiplier}")
        if self.expiry_session not in SESSIONS:
            raise DataContractError(
                f"expiry_session must be one of {SESSIONS}, got {self.expiry_session!r}")
        if not isinstance(self.option_type, OptionType):
            object.__setattr__(self, "option_type", OptionType(str(self.option_type).lower()))
        object.__setattr__(self, "expiry", pd.Timestamp(self.expiry))


@dataclass(frozen=True)
class MarketState:
    """Immutable snapshot for one evaluation run."""
    evaluation_date: pd.Timestamp
    spot: float
    dividend_yield: float
    yield_curve: YieldCurve

    def __post_init__(self):
        if not self.spot > 0:
            raise DataContractError(f"Spot price must be positive, got {self.spot}")
        object.__setattr__(self, "evaluation_date", pd.Timestamp(self.evaluation_date))


@dataclass(frozen=True)
class PortfolioGreeks:
    """Quantity- and multiplier-weighted Greeks of the book, in currency units."""
    delta: float
    gamma: float
    theta: float
    vega: float
    rho: float
    value: float

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def time_to_expiry(position: OptionPosition, evaluation_date,
                   day_count: Optional[int] = None) -> float:
    """
    Year fraction from evaluation date to expiry.

    AM-settled contracts ("open") settle on the opening print and lose the
    expiry day itself.
    """
    day_count = day_count or CONFIG.pricing.day_count
    days = (position.expiry.normalize() - pd.Timestamp(evaluation_date).normalize()).days
    if position.expiry_session == "open":
        days -= 1
    return days / day_count


@dataclass
class _BookArrays:
    strike: np.ndarray
    t: np.ndarray
    rate: np.ndarray
    iv: np.ndarray
    weight: np.ndarray
    is_call: np.ndarray
    index: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=int))


class OptionBook:
    """
    Static option book valued against one MarketState.

    Usage:
        >>> book = OptionBook(positions, market)
        >>> book.valuation                 # per-position DataFrame
        >>> g = book.portfolio_greeks()    # PortfolioGreeks
        >>> book.portfolio_value(spot=0.95 * market.spot)
    """

    def __init__(self, positions: Sequence[OptionPosition], market: MarketState,
                 solver: Optional[ImpliedVolatilitySolver] = None):
        if not positions:
            raise DataContractError("Position list is empty")
        self.positions = tuple(positions)
        self.market = market
        self.engine = BlackScholesEngine()
        self.solver = solver or ImpliedVolatilitySolver()
        self.errors: Dict[int, RiskEngineError] = {}
        self.valuation = self._evaluate()
        self._arrays = self._build_arrays()

    # ------------------------------------------------------------------
    # Position-level valuation
    # ------------------------------------------------------------------

    def _value_position(self, i: int, pos: OptionPosition) -> dict:
        m = self.market
        t = time_to_expiry(pos, m.evaluation_date, self.market.yield_curve.day_count)
        if t <= 0:
            raise InputDomainError(f"Non-positive time to expiry {t:.6f}y")
        r = m.yield_curve.rate(t)

        if pos.implied_vol is not None:
            iv = pos.implied_vol
        else:
            iv = self.solver.solve(pos.market_price, m.spot, pos.strike, t, r,
                                   m.dividend_yield, pos.option_type)

        params = OptionParameters(S=m.spot, K=pos.strike, T=t, r=r,
                                  sigma=iv, q=m.dividend_yield)
        d1, d2 = self.engine.d1_d2(params)
        row = {"option_type": pos.option_type.value, "strike": pos.strike,
               "quantity": pos.quantity, "multiplier": pos.multiplier,
               "t": t, "rate": r, "iv": iv, "d1": float(d1), "d2": float(d2),
               "price": self.engine.price(params, pos.option_type)}
        row.update(self.engine.compute_all_greeks(params, pos.option_type))
        return row

    @timeit
    def _evaluate(self) -> pd.DataFrame:
        rows = {}
        for i, pos in enumerate(self.positions):
            try:
                rows[i] = self._value_position(i, pos)
            except (InputDomainError, NumericalInstabilityError) as exc:
                err = type(exc)(str(exc), position_index=i)
                self.errors[i] = err
                log.warning("Dropping position %d: %s", i, err)

        if not rows:
            raise InputDomainError(
                f"None of the {len(self.positions)} positions could be valued")

        log.info("Valued %d/%d positions", len(rows), len(self.positions))
        return pd.DataFrame.from_dict(rows, orient="index")

    def _build_arrays(self) -> _BookArrays:
        v = self.valuation
        return _BookArrays(
            strike=v["strike"].to_numpy(dtype=np.float64),
            t=v["t"].to_numpy(dtype=np.float64),
            rate=v["rate"].to_numpy(dtype=np.float64),
            iv=v["iv"].to_numpy(dtype=np.float64),
            weight=(v["quantity"] * v["multiplier"]).to_numpy(dtype=np.float64),
            is_call=(v["option_type"] == OptionType.CALL.value).to_numpy(),
            index=v.index.to_numpy(),
        )

    @property
    def implied_vols(self) -> np.ndarray:
        return self._arrays.iv.copy()

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def portfolio_greeks(self) -> PortfolioGreeks:
        """Sum of quantity * multiplier * Greek over valued positions."""
        v = self.valuation
        w = v["quantity"] * v["multiplier"]
        return PortfolioGreeks(
            delta=float((w * v["delta"]).sum()),
            gamma=float((w * v["gamma"]).sum()),
            theta=float((w * v["theta"]).sum()),
            vega=float((w * v["vega"]).sum()),
            rho=float((w * v["rho"]).sum()),
            value=float((w * v["price"]).sum()),
        )

    def revalue(self, spots, vol_scale=1.0, time_shift: float = 0.0,
                sigmas: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Book value under a batch of scenarios.

        Parameters:
            spots: Scenario spot levels, shape (n,)
            vol_scale: Multiplicative shift applied to every position's
                implied vol, scalar or shape (n,)
            time_shift: Years elapsed; positions at or past expiry are
                settled at intrinsic value
            sigmas: Explicit vol vector (n_pos,) or matrix (n, n_pos);
                overrides vol_scale

        Returns:
            Array of book values, shape (n,)
        """
        a = self._arrays
        S = np.atleast_1d(np.asarray(spots, dtype=np.float64))[:, None]
        if not np.all(S > 0) or not np.all(np.isfinite(S)):
            raise InputDomainError("Scenario spot must be positive and finite")

        if sigmas is not None:
            sig = np.broadcast_to(np.asarray(sigmas, dtype=np.float64),
                                  (S.shape[0], a.iv.size))
        else:
            scale = np.atleast_1d(np.asarray(vol_scale, dtype=np.float64))
            sig = a.iv[None, :] * scale[:, None]
            sig = np.broadcast_to(sig, (S.shape[0], a.iv.size))
        if not np.all(sig > 0) or not np.all(np.isfinite(sig)):
            raise InputDomainError("Scenario volatility must be positive and finite")

        t_rem = a.t - time_shift
        alive = t_rem > 0
        if not np.all(alive):
            log.warning("%d position(s) expire within the %.4fy horizon; "
                        "settling at intrinsic value", int((~alive).sum()), time_shift)
        T = np.where(alive, t_rem, 1.0)[None, :]

        bs = self.engine.price_vectorized(S, a.strike[None, :], T, a.rate[None, :],
                                          sig, self.market.dividend_yield,
                                          a.is_call[None, :])
        payoff = intrinsic_value(S, a.strike[None, :], a.is_call[None, :])
        prices = np.where(alive[None, :], bs, payoff)
        return prices @ a.weight

    def portfolio_value(self, spot: Optional[float] = None, vol_scale: float = 1.0,
                        time_shift: float = 0.0,
                        sigmas: Optional[np.ndarray] = None) -> float:
        """Book value at one (spot, vol) point; defaults to the market snapshot."""
        spot = self.market.spot if spot is None else spot
        return float(self.revalue([spot], vol_scale, time_shift, sigmas)[0])

    def value_curve(self, pct_range: Optional[tuple] = None,
                    n_points: Optional[int] = None) -> pd.DataFrame:
        """Book value with spot scanned over pct_range around the snapshot."""
        cfg = CONFIG.simulation
        lo, hi = pct_range or cfg.value_curve_range
        pct = np.linspace(lo, hi, n_points or cfg.value_curve_points)
        spots = self.market.spot * (1.0 + pct)
        return pd.DataFrame({"pct_change": pct, "spot": spots,
                             "value": self.revalue(spots)})
