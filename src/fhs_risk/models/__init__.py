from fhs_risk.models.black_scholes import (
    BlackScholesEngine, OptionParameters, OptionType, price, greeks,
)
from fhs_risk.models.implied_volatility import ImpliedVolatilitySolver, implied_volatility
from fhs_risk.models.yield_curve import YieldCurve
from fhs_risk.models.portfolio import (
    OptionBook, OptionPosition, MarketState, PortfolioGreeks, time_to_expiry,
)
from fhs_risk.models.garch import (
    GARCHCoefficients, VolatilityState, one_step_forecast, garch_filter,
)
from fhs_risk.models.dcc import (
    DCCCoefficients, CorrelationState, dcc_update, dcc_filter, long_run_correlation,
)
from fhs_risk.models.var_engine import VaRResult, empirical_var, empirical_cvar
from fhs_risk.models.delta_normal import delta_normal_var
from fhs_risk.models.fhs import FHSSimulator, SimulationResult, FactorPaths

__all__ = [
    "BlackScholesEngine", "OptionParameters", "OptionType", "price", "greeks",
    "ImpliedVolatilitySolver", "implied_volatility",
    "YieldCurve",
    "OptionBook", "OptionPosition", "MarketState", "PortfolioGreeks", "time_to_expiry",
    "GARCHCoefficients", "VolatilityState", "one_step_forecast", "garch_filter",
    "DCCCoefficients", "CorrelationState", "dcc_update", "dcc_filter",
    "long_run_correlation",
    "VaRResult", "empirical_var", "empirical_cvar",
    "delta_normal_var",
    "FHSSimulator", "SimulationResult", "FactorPaths",
]
