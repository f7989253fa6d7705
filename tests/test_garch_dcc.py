"""
Unit Tests -- GARCH(1,1) and DCC(1,1) Forward Recursions
==========================================================

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pytest

from fhs_risk.exceptions import DataContractError, NumericalInstabilityError
from fhs_risk.models.dcc import (CorrelationState, DCCCoefficients, dcc_filter,
                                 dcc_update, long_run_correlation)
from fhs_risk.models.garch import (GARCHCoefficients, VolatilityState, garch_filter,
                                   one_step_forecast)


@pytest.fixture
def spx_coefs():
    return GARCHCoefficients(omega=2e-6, alpha1=0.12, beta1=0.86)


@pytest.fixture
def vix_coefs():
    return GARCHCoefficients(omega=2e-4, alpha1=0.10, beta1=0.85, mu=0.001, ar1=-0.05)


@pytest.fixture
def residual_pair():
    rng = np.random.default_rng(11)
    z = rng.multivariate_normal([0, 0], [[1.0, -0.7], [-0.7, 1.0]], size=1000)
    return z[:, 0], z[:, 1]


# ---------------------------------------------------------------------------
# GARCH
# ---------------------------------------------------------------------------
class TestGARCH:
    def test_one_step_without_mean(self, spx_coefs):
        mean, var = one_step_forecast(spx_coefs, -0.02, 1.5e-4)
        assert mean == 0.0
        assert var == pytest.approx(2e-6 + 0.12 * 4e-4 + 0.86 * 1.5e-4)

    def test_one_step_with_ar_mean(self, vix_coefs):
        mean, var = one_step_forecast(vix_coefs, 0.10, 4e-3)
        assert mean == pytest.approx(0.001 - 0.005)
        assert var == pytest.approx(2e-4 + 0.10 * 0.01 + 0.85 * 4e-3)

    def test_negative_variance_raises(self):
        bad = GARCHCoefficients(omega=-1e-3, alpha1=0.0, beta1=0.5)
        with pytest.raises(NumericalInstabilityError) as exc:
            one_step_forecast(bad, 0.0, 1e-4, factor="VIX")
        assert exc.value.factor == "VIX"

    def test_persistence(self, spx_coefs):
        assert spx_coefs.persistence == pytest.approx(0.98)
        assert spx_coefs.unconditional_variance == pytest.approx(2e-6 / 0.02)

    def test_filter_recovers_residuals(self, spx_coefs):
        rng = np.random.default_rng(3)
        n = 500
        z = rng.standard_normal(n)
        r, var = np.empty(n), np.empty(n)
        var[0] = 1e-4
        r[0] = np.sqrt(var[0]) * z[0]
        for t in range(1, n):
            var[t] = 2e-6 + 0.12 * r[t-1]**2 + 0.86 * var[t-1]
            r[t] = np.sqrt(var[t]) * z[t]
        state = garch_filter(spx_coefs, r, initial_variance=1e-4, name="SPX")
        np.testing.assert_allclose(state.cond_variance, var, rtol=1e-12)
        np.testing.assert_allclose(state.std_residuals, z, rtol=1e-9)
        assert state.window == n
        assert state.last_return == r[-1]

    def test_state_forecast_uses_last_observation(self, spx_coefs):
        state = VolatilityState("SPX", spx_coefs, [0.1, -0.3], [1e-4, 2e-4], [0.001, -0.004])
        assert state.forecast() == one_step_forecast(spx_coefs, -0.004, 2e-4)

    def test_state_is_read_only(self, spx_coefs):
        src = np.array([0.1, -0.3])
        state = VolatilityState("SPX", spx_coefs, src, [1e-4, 2e-4], [0.001, -0.004])
        with pytest.raises(ValueError):
            state.std_residuals[0] = 5.0
        src[0] = 7.0
        assert state.std_residuals[0] == 0.1

    def test_misaligned_state(self, spx_coefs):
        with pytest.raises(DataContractError):
            VolatilityState("SPX", spx_coefs, [0.1, 0.2], [1e-4], [0.0, 0.0])


# ---------------------------------------------------------------------------
# DCC
# ---------------------------------------------------------------------------
class TestDCC:
    def test_update_formula(self):
        coefs = DCCCoefficients(a=0.05, b=0.90)
        q, rho = dcc_update(coefs, -0.6, (1.1, 0.9, -0.5), (1.5, -2.0))
        q11 = 1 + 0.05 * (2.25 - 1) + 0.90 * (1.1 - 1)
        q22 = 1 + 0.05 * (4.0 - 1) + 0.90 * (0.9 - 1)
        q12 = -0.6 + 0.05 * (-3.0 + 0.6) + 0.90 * (-0.5 + 0.6)
        np.testing.assert_allclose(q, (q11, q22, q12))
        assert rho == pytest.approx(q12 / np.sqrt(q11 * q22))

    def test_long_run_correlation(self, residual_pair):
        z1, z2 = residual_pair
        assert long_run_correlation(z1, z2) == pytest.approx(np.mean(z1 * z2))
        assert -0.85 < long_run_correlation(z1, z2) < -0.55

    @pytest.mark.parametrize("a,b", [(0.05, 0.93), (0.2, 0.79), (0.0, 0.0), (0.5, 0.49)])
    def test_correlation_bounded(self, a, b):
        rng = np.random.default_rng(2024)
        coefs = DCCCoefficients(a, b)
        rho_bar = -0.65
        q = (1.0, 1.0, rho_bar)
        for _ in range(10_000):
            z = rng.standard_normal(2) * rng.uniform(0.1, 4.0)
            q, rho = dcc_update(coefs, rho_bar, q, (z[0], z[1]))
            assert -1.0 <= rho <= 1.0
            assert q[0] > 0 and q[1] > 0

    def test_filter_state(self, residual_pair):
        z1, z2 = residual_pair
        state = dcc_filter(DCCCoefficients(0.04, 0.94), z1, z2)
        assert state.rho_history.shape == (1000,)
        assert state.rho_history[0] == pytest.approx(state.rho_bar)
        assert np.all(np.abs(state.rho_history) <= 1)
        assert state.last_correlation == pytest.approx(state.rho_history[-1])
        q, rho = state.forecast()
        assert q == dcc_update(state.coefficients, state.rho_bar,
                               state.q_last, state.z_last)[0]
        assert -1 <= rho <= 1

    def test_invalid_coefficients(self):
        with pytest.raises(DataContractError):
            DCCCoefficients(0.3, 0.7)
        with pytest.raises(DataContractError):
            DCCCoefficients(-0.01, 0.5)

    def test_unstable_pseudo_correlation(self):
        coefs = DCCCoefficients(0.05, 0.9)
        with pytest.raises(NumericalInstabilityError):
            dcc_update(coefs, 0.0, (-30.0, 1.0, 0.0), (0.0, 0.0))
        with pytest.raises(NumericalInstabilityError):
            dcc_update(coefs, 0.0, (1.0, 1.0, 5.0), (0.0, 0.0))

    def test_state_validation(self):
        with pytest.raises(DataContractError):
            CorrelationState(DCCCoefficients(0.05, 0.9), 1.2, (1.0, 1.0, 0.5), (0.0, 0.0))


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
