"""
config.py
---------
Centralised configuration for the risk engine.
Parameters are read from environment variables with sensible defaults, so
the same code runs the desk defaults and quick test settings.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass
class PricingConfig:
    """Option pricing and implied-volatility inversion parameters."""
    day_count:           int   = 365
    iv_lower:            float = 1e-6
    iv_upper:            float = 5.0
    iv_tol:              float = 1e-10
    iv_max_iter:         int   = 100
    curve_extrapolation: str   = os.getenv("FHS_CURVE_EXTRAPOLATION", "raise")  # raise | flat


@dataclass
class SimulationConfig:
    """Filtered Historical Simulation parameters."""
    confidence:         float = float(os.getenv("FHS_CONFIDENCE", "0.95"))
    horizon_days:       int   = 21
    n_draws:            int   = int(os.getenv("FHS_N_DRAWS", "5000"))
    seed:               int   = int(os.getenv("FHS_SEED", "42"))
    n_workers:          int   = int(os.getenv("FHS_WORKERS", "1"))
    chunk_size:         int   = 1000
    value_curve_range:  Tuple[float, float] = (-0.20, 0.20)
    value_curve_points: int   = 41


@dataclass
class EngineConfig:
    """Master configuration aggregating all sub-configs."""
    pricing:    PricingConfig    = field(default_factory=PricingConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    log_level:  str           = os.getenv("LOG_LEVEL", "INFO")
    log_dir:    Optional[str] = os.getenv("FHS_LOG_DIR")   # unset = console only
    output_dir: str           = os.getenv("FHS_OUTPUT_DIR", "outputs")


# Singleton instance used throughout the project
CONFIG = EngineConfig()
