"""
Feed Adapters
==============
Builds validated engine inputs from tabular feeds (pandas DataFrames or
CSV files):
    - position feed     : strike, quantity, multiplier, expiry_date,
                          expiry_session, market_price [, option_type]
    - yield-curve feed  : tenor_days, rate_percent (ascending tenor)
    - price history     : date, close -> daily log returns

Malformed feeds fail fast with DataContractError before any computation.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from pathlib import Path
from typing import List, Optional, Union

from fhs_risk.exceptions import DataContractError
from fhs_risk.models.black_scholes import OptionType
from fhs_risk.models.portfolio import OptionPosition
from fhs_risk.models.yield_curve import YieldCurve

POSITION_COLUMNS = ["strike", "quantity", "multiplier", "expiry_date",
                    "expiry_session", "market_price"]
CURVE_COLUMNS = ["tenor_days", "rate_percent"]

FrameOrPath = Union[pd.DataFrame, str, Path]


def _as_frame(source: FrameOrPath) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        return source.copy()
    path = Path(source)
    if not path.exists():
        raise DataContractError(f"Feed file not found: {path}")
    return pd.read_csv(path)


def _require(df: pd.DataFrame, columns: List[str], feed: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataContractError(f"{feed} feed is missing columns {missing}")
    if df[columns].isna().any().any():
        bad = df.index[df[columns].isna().any(axis=1)].tolist()
        raise DataContractError(f"{feed} feed has missing values in rows {bad}")


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
def positions_from_frame(df: pd.DataFrame) -> List[OptionPosition]:
    """One OptionPosition per row; option_type defaults to call."""
    if df.empty:
        raise DataContractError("Position feed is empty")
    _require(df, POSITION_COLUMNS, "Position")

    positions = []
    for i, row in enumerate(df.itertuples(index=False)):
        try:
            positions.append(OptionPosition(
                strike=float(row.strike),
                quantity=float(row.quantity),
                multiplier=float(row.multiplier),
                expiry=pd.Timestamp(row.expiry_date),
                expiry_session=str(row.expiry_session).strip().lower(),
                market_price=float(row.market_price),
                option_type=OptionType(str(getattr(row, "option_type", "call")).lower()),
            ))
        except (ValueError, TypeError) as exc:
            raise DataContractError(f"Invalid position row: {exc}",
                                    position_index=i) from exc
    return positions


def load_positions(source: FrameOrPath) -> List[OptionPosition]:
    return positions_from_frame(_as_frame(source))


# ---------------------------------------------------------------------------
# Yield curve
# ---------------------------------------------------------------------------
def yield_curve_from_frame(df: pd.DataFrame,
                           extrapolation: Optional[str] = None) -> YieldCurve:
    """Rates are quoted in percent by the feed and stored as decimals."""
    _require(df, CURVE_COLUMNS, "Yield curve")
    tenors = df["tenor_days"].to_numpy(dtype=np.float64)
    if np.any(np.diff(tenors) <= 0):
        raise DataContractError("Yield curve feed must be sorted by strictly increasing tenor")
    rates = df["rate_percent"].to_numpy(dtype=np.float64) / 100.0
    return YieldCurve(tenors, rates, extrapolation=extrapolation)


def load_yield_curve(source: FrameOrPath,
                     extrapolation: Optional[str] = None) -> YieldCurve:
    return yield_curve_from_frame(_as_frame(source), extrapolation)


# ---------------------------------------------------------------------------
# Price history
# ---------------------------------------------------------------------------
def log_returns(prices: pd.Series) -> pd.Series:
    """Daily log returns of a close-price series, sorted by date."""
    p = pd.Series(prices, dtype=np.float64).sort_index()
    if len(p) < 2:
        raise DataContractError("Need at least two prices for returns")
    if (p <= 0).any():
        raise DataContractError("Prices must be strictly positive")
    return np.log(p / p.shift(1)).dropna()
