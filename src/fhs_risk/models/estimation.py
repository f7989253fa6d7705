"""
Estimation Adapter
====================

Produces the fitted-model feed consumed by the engine:

    fit_garch : univariate GARCH(1,1) by MLE through the `arch` package,
                zero mean (index factor) or AR(1) mean (vol-index factor)
    fit_dcc   : DCC(1,1) correlation stage by quasi-maximum likelihood
                over the standardized residuals of the two GARCH fits

    -log L_c(a, b) = 0.5 * sum_t [ log(1 - rho_t^2)
                     + (z1_t^2 + z2_t^2 - 2 rho_t z1_t z2_t) / (1 - rho_t^2) ]

Coefficients are reported for decimal log returns.

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import numpy as np
import pandas as pd
from arch import arch_model
from scipy.optimize import minimize

from fhs_risk.exceptions import DataContractError, RiskEngineError
from fhs_risk.utils.logger import get_logger
from .dcc import CorrelationState, DCCCoefficients, dcc_filter, long_run_correlation
from .garch import GARCHCoefficients, VolatilityState

log = get_logger(__name__)

_PENALTY = 1e10


def fit_garch(returns: pd.Series, name: str, mean: str = "Zero",
              dist: str = "normal") -> VolatilityState:
    """
    Fit GARCH(1,1) and return the factor's VolatilityState.

    Parameters:
        returns: Daily log returns (decimal)
        name: Factor label
        mean: "Zero" or "AR" (AR(1) conditional mean)
        dist: Error distribution passed to arch ('normal', 't', 'skewt')
    """
    r = pd.Series(returns, dtype=np.float64).dropna()
    if len(r) < 100:
        raise DataContractError(f"Need at least 100 returns to fit, got {len(r)}",
                                factor=name)
    if mean not in ("Zero", "AR"):
        raise DataContractError(f"Unsupported mean model {mean!r}", factor=name)

    # arch expects percentage returns
    kwargs = {"lags": 1} if mean == "AR" else {}
    model = arch_model(r * 100, mean=mean, vol="GARCH", p=1, q=1, dist=dist, **kwargs)
    res = model.fit(disp="off")
    params = res.params

    mu, ar1 = 0.0, 0.0
    if mean == "AR":
        mu = float(params.get("Const", 0.0)) / 100
        ar_names = [k for k in params.index
                    if k.endswith("[1]") and not k.startswith(("alpha", "beta"))]
        ar1 = float(params[ar_names[0]])

    coefs = GARCHCoefficients(omega=float(params["omega"]) / 1e4,
                              alpha1=float(params["alpha[1]"]),
                              beta1=float(params["beta[1]"]), mu=mu, ar1=ar1)

    z = np.asarray(res.std_resid, dtype=np.float64)
    var = (np.asarray(res.conditional_volatility, dtype=np.float64) / 100) ** 2
    ok = np.isfinite(z) & np.isfinite(var)
    log.info("%s GARCH(1,1) fit: omega=%.3e alpha=%.4f beta=%.4f mu=%.2e ar1=%.4f "
             "(persistence=%.4f, LL=%.1f)", name, coefs.omega, coefs.alpha1,
             coefs.beta1, coefs.mu, coefs.ar1, coefs.persistence, res.loglikelihood)

    return VolatilityState(name=name, coefficients=coefs, std_residuals=z[ok],
                           cond_variance=var[ok], returns=r.to_numpy()[ok])


def _dcc_neg_loglik(theta, z1, z2, rho_bar):
    a, b = theta
    if a < 0 or b < 0 or a + b >= 1:
        return _PENALTY
    try:
        rho = dcc_filter(DCCCoefficients(a, b), z1, z2, rho_bar).rho_history
    except RiskEngineError:
        return _PENALTY
    one_m = 1.0 - rho ** 2
    if np.any(one_m <= 0):
        return _PENALTY
    return 0.5 * float(np.sum(np.log(one_m)
                              + (z1 ** 2 + z2 ** 2 - 2.0 * rho * z1 * z2) / one_m))


def fit_dcc(z1: np.ndarray, z2: np.ndarray, start=(0.02, 0.95)) -> CorrelationState:
    """Fit DCC(1,1) on aligned standardized residuals and return the filtered state."""
    z1 = np.asarray(z1, dtype=np.float64)
    z2 = np.asarray(z2, dtype=np.float64)
    rho_bar = long_run_correlation(z1, z2)
    if abs(rho_bar) >= 1:
        raise DataContractError(f"Residual cross-moment {rho_bar:.4f} is not a correlation")

    res = minimize(_dcc_neg_loglik, x0=np.asarray(start), args=(z1, z2, rho_bar),
                   method="SLSQP", bounds=[(0.0, 0.999), (0.0, 0.999)],
                   constraints=[{"type": "ineq", "fun": lambda x: 0.9999 - x[0] - x[1]}])
    a, b = (float(v) for v in res.x)
    if not res.success:
        log.warning("DCC optimizer did not report success: %s", res.message)
    log.info("DCC fit: a=%.4f b=%.4f rhobar=%.4f", a, b, rho_bar)
    return dcc_filter(DCCCoefficients(max(a, 0.0), max(b, 0.0)), z1, z2, rho_bar)
