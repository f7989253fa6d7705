"""
Unit Tests -- Feed Adapters
=============================

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pandas as pd
import pytest

from fhs_risk.exceptions import DataContractError
from fhs_risk.models.black_scholes import OptionType
from fhs_risk.utils.market_data import (load_positions, load_yield_curve, log_returns,
                                        positions_from_frame, yield_curve_from_frame)


@pytest.fixture
def position_frame():
    return pd.DataFrame({
        "strike": [4300, 4100],
        "quantity": [10, -15],
        "multiplier": [100, 100],
        "expiry_date": ["2021-09-17", "2021-09-17"],
        "expiry_session": ["open", " Close "],
        "market_price": [121.5, 64.2],
        "option_type": ["call", "PUT"],
    })


@pytest.fixture
def curve_frame():
    return pd.DataFrame({"tenor_days": [7, 30, 90, 365],
                         "rate_percent": [0.04, 0.05, 0.06, 0.10]})


class TestPositions:
    def test_rows_to_positions(self, position_frame):
        pos = positions_from_frame(position_frame)
        assert len(pos) == 2
        assert pos[0].expiry == pd.Timestamp("2021-09-17")
        assert pos[1].option_type is OptionType.PUT
        assert pos[1].expiry_session == "close"
        assert pos[1].quantity == -15.0

    def test_option_type_defaults_to_call(self, position_frame):
        pos = positions_from_frame(position_frame.drop(columns="option_type"))
        assert all(p.option_type is OptionType.CALL for p in pos)

    def test_missing_column(self, position_frame):
        with pytest.raises(DataContractError, match="market_price"):
            positions_from_frame(position_frame.drop(columns="market_price"))

    def test_missing_value(self, position_frame):
        position_frame.loc[1, "strike"] = np.nan
        with pytest.raises(DataContractError):
            positions_from_frame(position_frame)

    def test_bad_row_reports_index(self, position_frame):
        position_frame.loc[1, "expiry_session"] = "midday"
        with pytest.raises(DataContractError) as exc:
            positions_from_frame(position_frame)
        assert exc.value.position_index == 1

    def test_empty_feed(self, position_frame):
        with pytest.raises(DataContractError):
            positions_from_frame(position_frame.iloc[0:0])

    def test_csv_round_trip(self, position_frame, tmp_path):
        path = tmp_path / "positions.csv"
        position_frame.to_csv(path, index=False)
        pos = load_positions(path)
        assert [p.strike for p in pos] == [4300.0, 4100.0]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataContractError):
            load_positions(tmp_path / "nope.csv")


class TestYieldCurveFeed:
    def test_percent_to_decimal(self, curve_frame):
        curve = yield_curve_from_frame(curve_frame)
        assert curve.rate_at_days(30) == pytest.approx(0.0005)
        assert curve.rate_at_days(365) == pytest.approx(0.001)

    def test_unsorted_feed(self, curve_frame):
        with pytest.raises(DataContractError):
            yield_curve_from_frame(curve_frame.iloc[::-1])

    def test_extrapolation_passthrough(self, curve_frame, tmp_path):
        path = tmp_path / "curve.csv"
        curve_frame.to_csv(path, index=False)
        curve = load_yield_curve(path, extrapolation="flat")
        assert curve.rate_at_days(1000) == pytest.approx(0.001)


class TestReturns:
    def test_log_returns(self):
        idx = pd.bdate_range("2021-01-04", periods=3)
        r = log_returns(pd.Series([100.0, 110.0, 99.0], index=idx))
        np.testing.assert_allclose(r.values, [np.log(1.1), np.log(0.9)])
        assert r.index[0] == idx[1]

    def test_sorts_by_date(self):
        idx = pd.to_datetime(["2021-01-06", "2021-01-04", "2021-01-05"])
        r = log_returns(pd.Series([121.0, 100.0, 110.0], index=idx))
        np.testing.assert_allclose(r.values, [np.log(1.1), np.log(1.1)])

    def test_non_positive_prices(self):
        with pytest.raises(DataContractError):
            log_returns(pd.Series([100.0, 0.0, 101.0]))


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
