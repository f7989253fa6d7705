"""
Filtered Historical Simulation (FHS) VaR
==========================================

Bootstraps the joint pool of historical standardized residuals
(z_SPX, z_VIX), pushes them through each factor's GARCH recursion and
fully reprices the option book on the simulated scenarios.

1-day horizon (one scenario per residual pair, i = 1..W):
    r_f,i       = mean_f + sqrt(variance_f) * z_f,i     (one-step forecast, shared)
    S_i         = S * exp(r_SPX,i)
    sigma_i     = sigma * exp(r_VIX,i)                   (every position's IV)
    PL_i        = V(S_i, sigma_i, t - 1d) - V_0

N-day horizon (M draws, N residual pairs sampled jointly with replacement):
    day 1 uses the one-step forecast from the last observed return/variance,
    days 2..N recurse on the previous *simulated* return and variance;
    the book is repriced once per draw on the cumulative log returns with
    t reduced by N days.

VaR = -percentile(PL, 100 * alpha). Draws whose variance or scaled
volatility breaks down are discarded and counted, never priced.

All bootstrap indices are drawn up front from one seeded generator, so the
P&L vector does not depend on how repricing is split across workers.

Author: Jose Orlando Bobadilla Fuentes | CQF

References:
    Barone-Adesi, G., Giannopoulos, K., & Vosper, L. (1999). VaR without
    correlations for portfolios of derivative securities. J. Futures Markets.
"""

import threading
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Optional

from fhs_risk.config import CONFIG, SimulationConfig
from fhs_risk.exceptions import (DataContractError, NumericalInstabilityError,
                                 SimulationCancelled)
from fhs_risk.utils.logger import get_logger, timeit
from .garch import VolatilityState, garch_step
from .portfolio import OptionBook
from .var_engine import VaRResult, empirical_cvar, empirical_var

log = get_logger(__name__)


@dataclass(eq=False)
class FactorPaths:
    """Per-step simulated state of one factor, arrays of shape (n_draws, n_days)."""
    mean: np.ndarray
    variance: np.ndarray
    shock: np.ndarray
    returns: np.ndarray

    @property
    def cumulative(self) -> np.ndarray:
        return self.returns.sum(axis=1)

    @property
    def valid(self) -> np.ndarray:
        """Draws whose variance stayed positive and returns stayed finite."""
        return (np.all(np.isfinite(self.variance) & (self.variance > 0), axis=1)
                & np.all(np.isfinite(self.returns), axis=1))


@dataclass(eq=False)
class SimulationResult:
    """
    FHS output: VaR/ES, the P&L distribution and discard accounting.

    discarded_draws holds the draw numbers (row in the bootstrap index
    matrix, or residual pair for the 1-day run) that were not priced;
    discard_factor names what broke each one: "SPX", "VIX", "SPX+VIX" for
    a factor recursion or scaled level, "book" for a non-finite book value.
    """
    var: float
    cvar: float
    confidence: float
    horizon_days: int
    pnl: np.ndarray
    initial_value: float
    n_requested: int
    n_discarded: int
    discarded_draws: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=int))
    discard_factor: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=object))
    paths: Optional[Dict[str, FactorPaths]] = None

    @property
    def n_valid(self) -> int:
        return len(self.pnl)

    @property
    def discard_rate(self) -> float:
        return self.n_discarded / self.n_requested if self.n_requested else 0.0

    def to_var_result(self) -> VaRResult:
        return VaRResult(
            var=self.var, cvar=self.cvar, confidence=self.confidence,
            method=f"Filtered Historical Simulation ({self.horizon_days}d)",
            additional={"n_draws": self.n_requested, "n_discarded": self.n_discarded,
                        "discard_rate": self.discard_rate,
                        "discards_by_factor": self.discards_by_factor()})

    def discards_by_factor(self) -> Dict[str, int]:
        labels, counts = np.unique(self.discard_factor.astype(str), return_counts=True)
        return {str(k): int(c) for k, c in zip(labels, counts)}


def _check_cancel(cancel_event: Optional[threading.Event], where: str):
    if cancel_event is not None and cancel_event.is_set():
        raise SimulationCancelled(f"Simulation cancelled during {where}")


class FHSSimulator:
    """
    Filtered Historical Simulation engine for the option book.

    Parameters:
        book: Valued OptionBook (spot, IVs and times to expiry at t0)
        spx: Fitted VolatilityState of the index factor
        vix: Fitted VolatilityState of the volatility-index factor
        config: SimulationConfig (defaults to CONFIG.simulation)

    Usage:
        >>> sim = FHSSimulator(book, spx_state, vix_state)
        >>> one = sim.one_day()
        >>> month = sim.multi_day(n_days=21, n_draws=5000, seed=42)
    """

    def __init__(self, book: OptionBook, spx: VolatilityState, vix: VolatilityState,
                 config: Optional[SimulationConfig] = None):
        if spx.window != vix.window:
            raise DataContractError(
                f"Residual windows differ (SPX={spx.window}, VIX={vix.window})")
        self.book = book
        self.spx = spx
        self.vix = vix
        self.config = config or CONFIG.simulation
        self.day_count = book.market.yield_curve.day_count
        self._pool = np.column_stack([spx.std_residuals, vix.std_residuals])
        self.initial_value = book.portfolio_value()

    @property
    def window(self) -> int:
        return self._pool.shape[0]

    def sample_indices(self, n_draws: int, n_days: int, seed: Optional[int]) -> np.ndarray:
        """Uniform bootstrap indices into the residual pool, with replacement."""
        rng = np.random.default_rng(seed)
        return rng.integers(0, self.window, size=(n_draws, n_days))

    # ------------------------------------------------------------------
    # Factor recursion
    # ------------------------------------------------------------------

    def _simulate_factor(self, state: VolatilityState, z: np.ndarray,
                         cancel_event: Optional[threading.Event] = None) -> FactorPaths:
        """Drive one factor's GARCH recursion along every draw; z is (M, N)."""
        n_draws, n_days = z.shape
        mean = np.empty((n_draws, n_days))
        var = np.empty((n_draws, n_days))
        ret = np.empty((n_draws, n_days))

        m0, v0 = state.forecast()
        mean[:, 0] = m0
        var[:, 0] = v0
        ret[:, 0] = m0 + np.sqrt(v0) * z[:, 0]

        with np.errstate(invalid="ignore", over="ignore"):
            for d in range(1, n_days):
                _check_cancel(cancel_event, f"{state.name} recursion day {d + 1}")
                mean[:, d], var[:, d] = garch_step(state.coefficients,
                                                   ret[:, d - 1], var[:, d - 1])
                ok = np.isfinite(var[:, d]) & (var[:, d] > 0)
                ret[:, d] = mean[:, d] + np.sqrt(np.where(ok, var[:, d], np.nan)) * z[:, d]

        return FactorPaths(mean=mean, variance=var, shock=z, returns=ret)

    # ------------------------------------------------------------------
    # Repricing
    # ------------------------------------------------------------------

    def _revalue_chunked(self, spots: np.ndarray, vol_scale: np.ndarray,
                         time_shift: float, n_workers: int,
                         cancel_event: Optional[threading.Event]) -> np.ndarray:
        size = max(1, self.config.chunk_size)
        bounds = [(s, min(s + size, len(spots))) for s in range(0, len(spots), size)]

        def work(bound):
            _check_cancel(cancel_event, "repricing")
            s, e = bound
            return self.book.revalue(spots[s:e], vol_scale[s:e], time_shift)

        if not bounds:
            return np.empty(0)
        if n_workers > 1:
            with ThreadPoolExecutor(max_workers=n_workers) as pool:
                parts = list(pool.map(work, bounds))
        else:
            parts = [work(b) for b in bounds]
        return np.concatenate(parts)

    def _reprice(self, spx: FactorPaths, vix: FactorPaths, horizon_days: int,
                 confidence: float, n_workers: int,
                 cancel_event: Optional[threading.Event],
                 keep_paths: bool) -> SimulationResult:
        n_requested = spx.returns.shape[0]
        with np.errstate(over="ignore", invalid="ignore"):
            spots = self.book.market.spot * np.exp(spx.cumulative)
            scale = np.exp(vix.cumulative)
        spx_ok = spx.valid & np.isfinite(spots) & (spots > 0)
        vix_ok = vix.valid & np.isfinite(scale) & (scale > 0)
        keep = np.flatnonzero(spx_ok & vix_ok)

        values = self._revalue_chunked(spots[keep], scale[keep],
                                       horizon_days / self.day_count,
                                       n_workers, cancel_event)
        priced = np.isfinite(values)
        pnl = values[priced] - self.initial_value

        factor = np.full(n_requested, "", dtype=object)
        factor[~spx_ok] = "SPX"
        factor[~vix_ok] = "VIX"
        factor[~spx_ok & ~vix_ok] = "SPX+VIX"
        factor[keep[~priced]] = "book"
        discarded = np.flatnonzero(factor != "")
        result = SimulationResult(
            var=np.nan, cvar=np.nan, confidence=confidence,
            horizon_days=horizon_days, pnl=pnl, initial_value=self.initial_value,
            n_requested=n_requested, n_discarded=len(discarded),
            discarded_draws=discarded, discard_factor=factor[discarded],
            paths={"SPX": spx, "VIX": vix} if keep_paths else None)

        if len(pnl) == 0:
            raise NumericalInstabilityError(
                f"All {n_requested} simulated draws failed for the {horizon_days}d horizon "
                f"({result.discards_by_factor()})",
                draw_index=int(discarded[0]), factor=str(factor[discarded[0]]))
        if len(discarded):
            log.warning("Discarded %d/%d draws (%.2f%%) by factor %s; first draws %s",
                        len(discarded), n_requested, 100.0 * result.discard_rate,
                        result.discards_by_factor(), discarded[:10].tolist())

        result.var = empirical_var(pnl, confidence)
        result.cvar = empirical_cvar(pnl, confidence)
        log.info("FHS %dd VaR(%.0f%%) = %.2f, ES = %.2f over %d draws",
                 horizon_days, confidence * 100, result.var, result.cvar, len(pnl))
        return result

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @timeit
    def one_day(self, confidence: Optional[float] = None,
                keep_paths: bool = False) -> SimulationResult:
        """1-day FHS: one scenario per historical residual pair."""
        confidence = self.config.confidence if confidence is None else confidence
        z = self._pool[:, None, :]                       # (W, 1, 2)
        spx = self._simulate_factor(self.spx, z[:, :, 0])
        vix = self._simulate_factor(self.vix, z[:, :, 1])
        return self._reprice(spx, vix, 1, confidence, 1, None, keep_paths)

    @timeit
    def multi_day(self, n_days: Optional[int] = None, n_draws: Optional[int] = None,
                  seed: Optional[int] = None, confidence: Optional[float] = None,
                  n_workers: Optional[int] = None,
                  cancel_event: Optional[threading.Event] = None,
                  keep_paths: bool = False) -> SimulationResult:
        """
        N-day FHS with M bootstrap draws.

        Parameters:
            n_days: Horizon in trading days (default 21)
            n_draws: Number of simulated paths (default 5000)
            seed: Seed of the bootstrap generator (default CONFIG seed)
            confidence: VaR confidence level
            n_workers: Threads used for repricing chunks
            cancel_event: Set it from another thread to abort the run
            keep_paths: Attach per-step FactorPaths to the result

        Raises:
            DataContractError: n_days or n_draws below 1.
            NumericalInstabilityError: every draw was discarded; the error
                names the first failing draw and its factor.
            SimulationCancelled: cancel_event was set before completion.
        """
        cfg = self.config
        n_days = cfg.horizon_days if n_days is None else n_days
        n_draws = cfg.n_draws if n_draws is None else n_draws
        seed = cfg.seed if seed is None else seed
        confidence = cfg.confidence if confidence is None else confidence
        n_workers = cfg.n_workers if n_workers is None else n_workers
        if n_days < 1 or n_draws < 1:
            raise DataContractError("n_days and n_draws must be positive")

        _check_cancel(cancel_event, "setup")
        idx = self.sample_indices(n_draws, n_days, seed)
        z = self._pool[idx]                              # (M, N, 2)
        spx = self._simulate_factor(self.spx, z[:, :, 0], cancel_event)
        vix = self._simulate_factor(self.vix, z[:, :, 1], cancel_event)
        return self._reprice(spx, vix, n_days, confidence, n_workers,
                             cancel_event, keep_paths)

    def run(self, horizon_days: int = 1, **kwargs) -> SimulationResult:
        """Dispatch to the 1-day or N-day simulation."""
        if horizon_days == 1:
            return self.one_day(confidence=kwargs.get("confidence"),
                                keep_paths=kwargs.get("keep_paths", False))
        return self.multi_day(n_days=horizon_days, **kwargs)
