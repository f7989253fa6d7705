"""
Unit Tests -- Yield Curve Lookup & Option Book Aggregation
============================================================

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pandas as pd
import pytest

from fhs_risk.exceptions import DataContractError, InputDomainError
from fhs_risk.models.black_scholes import OptionType, greeks, price
from fhs_risk.models.portfolio import (MarketState, OptionBook, OptionPosition,
                                       time_to_expiry)
from fhs_risk.models.implied_volatility import ImpliedVolatilitySolver
from fhs_risk.models.yield_curve import YieldCurve


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def curve():
    return YieldCurve([1, 30, 90, 365], [0.001, 0.002, 0.004, 0.006])


@pytest.fixture
def market(curve):
    return MarketState(evaluation_date="2021-01-04", spot=3500.0,
                       dividend_yield=0.02, yield_curve=curve)


@pytest.fixture
def positions(market):
    """Long call, short put (priced from a known vol) and a long call spread leg."""
    t_put = time_to_expiry(OptionPosition(3300, -2, 100, "2021-03-19", "open"),
                           market.evaluation_date)
    put_px = price(OptionType.PUT, 3500, 3300, t_put,
                   market.yield_curve.rate(t_put), 0.02, 0.24)
    return [
        OptionPosition(3500, 1, 100, "2021-04-05", "close", implied_vol=0.20),
        OptionPosition(3300, -2, 100, "2021-03-19", "open", market_price=put_px,
                       option_type=OptionType.PUT),
        OptionPosition(3700, 3, 50, "2021-06-18", "open", implied_vol=0.17),
    ]


@pytest.fixture
def book(positions, market):
    return OptionBook(positions, market)


# ---------------------------------------------------------------------------
# Yield curve
# ---------------------------------------------------------------------------
class TestYieldCurve:
    def test_exact_at_knots(self, curve):
        assert curve.rate_at_days(30) == 0.002
        assert curve.rate_at_days(90) == 0.004

    def test_midpoint(self, curve):
        assert curve.rate_at_days(60) == pytest.approx(0.003, abs=1e-15)

    def test_year_fraction_lookup(self, curve):
        np.testing.assert_allclose(curve.rate(90 / 365), 0.004)

    def test_beyond_last_tenor_raises(self, curve):
        with pytest.raises(InputDomainError):
            curve.rate(2.0)

    def test_flat_extrapolation(self):
        c = YieldCurve([30, 90], [0.01, 0.02], extrapolation="flat")
        assert c.rate_at_days(400) == 0.02
        assert c.rate_at_days(5) == 0.01

    def test_unsorted_curve_rejected(self):
        with pytest.raises(DataContractError):
            YieldCurve([30, 10, 90], [0.01, 0.02, 0.03])

    def test_bracket(self, curve):
        assert curve.bracket(45) == (1, 2)
        assert curve.bracket(90) == (2, 2)


# ---------------------------------------------------------------------------
# Position and book
# ---------------------------------------------------------------------------
class TestTimeToExpiry:
    def test_close_session(self):
        pos = OptionPosition(100, 1, 100, "2021-04-05", "close", implied_vol=0.2)
        assert time_to_expiry(pos, "2021-01-04") == pytest.approx(91 / 365)

    def test_open_session_loses_expiry_day(self):
        pos = OptionPosition(100, 1, 100, "2021-04-05", "open", implied_vol=0.2)
        assert time_to_expiry(pos, "2021-01-04") == pytest.approx(90 / 365)

    def test_bad_session(self):
        with pytest.raises(DataContractError):
            OptionPosition(100, 1, 100, "2021-04-05", "noon")


class TestOptionBook:
    def test_implied_vol_recovered(self, book):
        assert book.valuation.loc[1, "iv"] == pytest.approx(0.24, abs=1e-6)

    def test_reference_call_row(self, book):
        row = book.valuation.loc[0]
        g = greeks(OptionType.CALL, 3500, 3500, row["t"], row["rate"], 0.02, 0.20)
        assert row["delta"] == pytest.approx(g["delta"])
        assert row["d2"] == pytest.approx(row["d1"] - 0.20 * np.sqrt(row["t"]))

    def test_greeks_are_weighted_sums(self, book):
        v = book.valuation
        w = v["quantity"] * v["multiplier"]
        g = book.portfolio_greeks()
        for name in ("delta", "gamma", "theta", "vega", "rho"):
            assert getattr(g, name) == pytest.approx((w * v[name]).sum())
        assert g.value == pytest.approx((w * v["price"]).sum())

    def test_scaling_quantities_scales_greeks(self, positions, market, book):
        k = 3.0
        scaled = [OptionPosition(p.strike, k * p.quantity, p.multiplier, p.expiry,
                                 p.expiry_session, p.market_price, p.option_type,
                                 p.implied_vol) for p in positions]
        g1 = book.portfolio_greeks().as_dict()
        g3 = OptionBook(scaled, market).portfolio_greeks().as_dict()
        for name, val in g1.items():
            assert g3[name] == pytest.approx(k * val)

    def test_value_at_market_equals_greeks_value(self, book):
        assert book.portfolio_value() == pytest.approx(book.portfolio_greeks().value)

    def test_vol_scale_one_and_explicit_sigmas_agree(self, book):
        sig = book.implied_vols * 1.1
        assert book.portfolio_value(vol_scale=1.1) == pytest.approx(
            book.portfolio_value(sigmas=sig))

    def test_value_curve(self, market):
        long_call = OptionBook([OptionPosition(3500, 1, 100, "2021-04-05", "close",
                                               implied_vol=0.2)], market)
        curve = long_call.value_curve()
        assert len(curve) == 41
        assert curve["pct_change"].iloc[0] == pytest.approx(-0.2)
        assert curve["spot"].iloc[-1] == pytest.approx(4200.0)
        assert np.all(np.diff(curve["value"]) > 0)

    def test_expired_at_horizon_settles_intrinsic(self, market):
        pos = OptionPosition(3400, 1, 100, "2021-01-20", "close", implied_vol=0.2)
        b = OptionBook([pos], market)
        assert b.portfolio_value(spot=3600.0, time_shift=30 / 365) == pytest.approx(200 * 100)

    def test_bad_position_dropped(self, market, positions):
        bad = OptionPosition(3500, 1, 100, "2020-12-31", "close", implied_vol=0.2)
        b = OptionBook(positions + [bad], market)
        assert 3 in b.errors
        assert b.errors[3].position_index == 3
        assert len(b.valuation) == 3

    def test_no_implied_vol_dropped(self, market, positions):
        bad = OptionPosition(3500, 1, 100, "2021-04-05", "close", market_price=5000.0)
        b = OptionBook(positions + [bad], market)
        assert isinstance(b.errors[3], InputDomainError)

    def test_price_at_vol_bracket_edge_dropped(self, market, positions, monkeypatch):
        solver = ImpliedVolatilitySolver()
        monkeypatch.setattr(solver, "_newton_raphson", lambda *a, **k: None)
        t = time_to_expiry(positions[1], market.evaluation_date)
        p_hi = solver._price(solver.vol_bounds[1], 3500.0, 3300.0, t,
                             market.yield_curve.rate(t), 0.02, OptionType.PUT)
        edge = OptionPosition(3300, -2, 100, "2021-03-19", "open",
                              market_price=p_hi + 0.5 * solver.tol,
                              option_type=OptionType.PUT)
        b = OptionBook(positions + [edge], market, solver=solver)
        assert isinstance(b.errors[3], InputDomainError)
        assert b.errors[3].position_index == 3
        assert len(b.valuation) == 3

    def test_all_positions_failing_raises(self, market):
        bad = OptionPosition(3500, 1, 100, "2020-12-31", "close", implied_vol=0.2)
        with pytest.raises(InputDomainError):
            OptionBook([bad], market)

    def test_empty_book(self, market):
        with pytest.raises(DataContractError):
            OptionBook([], market)

    def test_non_positive_scenario_vol(self, book):
        with pytest.raises(InputDomainError):
            book.revalue([3500.0], vol_scale=0.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
