"""
Publication-quality visualizations for the option-book risk engine.

Figures generated:
    01_value_curve.png             - Book value vs spot (0.8x - 1.2x)
    02_pnl_1d.png                  - 1-day FHS P&L distribution with VaR
    03_pnl_21d.png                 - 21-day FHS P&L distribution with VaR
    04_dcc_correlation.png         - Conditional SPX/VIX correlation

Author: Jose Orlando Bobadilla Fuentes, CQF
"""
import os
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

NAVY = "#1a1a2e"; TEAL = "#16697a"; CORAL = "#db6400"
GOLD = "#c5a880"; SLATE = "#4a4e69"

plt.rcParams.update({
    "figure.facecolor": "white", "axes.facecolor": "white",
    "axes.grid": True, "grid.alpha": 0.3, "grid.linestyle": "--",
    "savefig.facecolor": "white",
})


def _wm(fig):
    fig.text(0.99, 0.01, "J. Bobadilla | CQF", fontsize=7,
             color="gray", alpha=0.5, ha="right", va="bottom")


def _sv(fig, output_dir, name):
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, name)
    fig.savefig(path, dpi=150, bbox_inches="tight"); plt.close(fig); return path


def plot_value_curve(curve: pd.DataFrame, output_dir="outputs/figures",
                     name="01_value_curve.png"):
    fig, ax = plt.subplots(figsize=(10, 5.5))
    ax.plot(curve["pct_change"] * 100, curve["value"], color=NAVY, lw=2)
    ax.axvline(0, color=SLATE, ls=":", lw=1)
    ax.set_xlabel("Spot change (%)"); ax.set_ylabel("Book value")
    ax.set_title("Option Book Value vs Spot", fontweight="bold")
    _wm(fig)
    return _sv(fig, output_dir, name)


def plot_pnl_distribution(pnl: np.ndarray, var: float, confidence: float,
                          horizon_days: int, output_dir="outputs/figures",
                          name=None):
    fig, ax = plt.subplots(figsize=(10, 5.5))
    ax.hist(pnl, bins=60, color=TEAL, alpha=0.75, edgecolor="white")
    ax.axvline(-var, color=CORAL, lw=2,
               label=f"VaR {confidence:.0%} = {var:,.0f}")
    tail = pnl[pnl <= -var]
    if len(tail):
        ax.axvline(tail.mean(), color=GOLD, lw=2, ls="--",
                   label=f"ES {confidence:.0%} = {-tail.mean():,.0f}")
    ax.set_xlabel(f"{horizon_days}-day P&L"); ax.set_ylabel("Frequency")
    ax.set_title(f"Filtered Historical Simulation - {horizon_days}-day P&L",
                 fontweight="bold")
    ax.legend()
    _wm(fig)
    return _sv(fig, output_dir, name or f"pnl_{horizon_days}d.png")


def plot_conditional_correlation(rho: np.ndarray, rho_bar: float,
                                 index=None, output_dir="outputs/figures",
                                 name="04_dcc_correlation.png"):
    fig, ax = plt.subplots(figsize=(11, 5))
    x = index if index is not None else np.arange(len(rho))
    ax.plot(x, rho, color=NAVY, lw=1.2, label="DCC conditional correlation")
    ax.axhline(rho_bar, color=CORAL, ls="--", lw=1.5, label=f"Long-run = {rho_bar:.3f}")
    ax.set_ylim(-1, 1); ax.set_ylabel("rho")
    ax.set_title("SPX / VIX Conditional Correlation", fontweight="bold")
    ax.legend()
    _wm(fig)
    return _sv(fig, output_dir, name)
