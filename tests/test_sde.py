import math

import numpy as np
import pytest

from mcoptions import ConfigurationError, EulerScheme, GBMScheme, MilsteinScheme, OptionContract, SchemeKind, get_scheme
from mcoptions.sde import diffusion, diffusion_derivative, drift


@pytest.fixture
def contract():
    return OptionContract(0.2, 0.05, 1.0, 100.0, 100.0, n_simulations=1, n_steps=10)


class TestCoefficients:
    """Drift and diffusion functions"""

    def test_drift(self):
        """mu(r, V) = r V"""
        assert drift(0.05, 100.0) == pytest.approx(5.0)

    def test_diffusion_gbm(self):
        """sigma(sigma, V) = sigma V when beta = 1"""
        assert diffusion(0.2, 50.0) == pytest.approx(10.0)

    def test_diffusion_cev(self):
        """CEV exponent enters as a power"""
        assert diffusion(0.2, 4.0, beta=0.5) == pytest.approx(0.4)

    def test_diffusion_derivative_constant(self):
        """With beta = 1 the slope term is 0.5 sigma regardless of V"""
        out = diffusion_derivative(0.3, np.array([1.0, 50.0, 200.0]))
        np.testing.assert_allclose(out, 0.15)


class TestSchemes:
    """Single-step behaviour of each scheme"""

    def test_gbm_zero_draw(self, contract):
        """Z = 0 gives the drift-only lognormal value"""
        out = GBMScheme().advance(100.0, 0.0, 1.0, contract)
        assert float(out) == pytest.approx(100.0 * math.exp(0.05 - 0.02))

    def test_gbm_vectorised(self, contract):
        """Arrays of paths are advanced elementwise"""
        z = np.array([-1.0, 0.0, 1.0])
        out = GBMScheme().advance(np.full(3, 100.0), z, 1.0, contract)
        expected = 100.0 * np.exp(0.03 + 0.2 * z)
        np.testing.assert_allclose(out, expected)

    def test_euler_step(self, contract):
        """V + dt r V + sqrt(dt) sigma V Z"""
        dt = 0.01
        out = EulerScheme().advance(100.0, 0.5, dt, contract)
        expected = 100.0 + dt * 5.0 + math.sqrt(dt) * 20.0 * 0.5
        assert float(out) == pytest.approx(expected)

    def test_milstein_adds_correction(self, contract):
        """Milstein differs from Euler by 0.5 b b' ((sqrt(dt) Z)^2 - dt)"""
        dt, z, v = 0.01, 1.3, 100.0
        euler = float(EulerScheme().advance(v, z, dt, contract))
        milstein = float(MilsteinScheme().advance(v, z, dt, contract))
        correction = 0.5 * (0.2 * v) * (0.5 * 0.2) * ((math.sqrt(dt) * z) ** 2 - dt)
        assert milstein - euler == pytest.approx(correction)

    def test_milstein_equals_euler_when_z_squared_is_one(self, contract):
        """The correction vanishes when Z^2 = 1"""
        e = EulerScheme().advance(100.0, 1.0, 0.01, contract)
        m = MilsteinScheme().advance(100.0, 1.0, 0.01, contract)
        assert float(m) == pytest.approx(float(e))

    def test_zero_volatility_is_deterministic(self):
        """With sigma = 0 the Euler step is pure growth"""
        c = OptionContract(0.0, 0.1, 1.0, 100.0, 100.0, n_simulations=1, n_steps=1)
        out = EulerScheme().advance(100.0, 3.0, 0.5, c)
        assert float(out) == pytest.approx(105.0)


class TestSchemeKind:
    """Scheme registry"""

    def test_display_names(self):
        """Display names used in reports"""
        assert [k.display_name for k in SchemeKind] == ["GBM", "Explicit Euler", "Milstein Method"]

    def test_discretizes(self):
        """Only GBM runs without a step count"""
        assert not SchemeKind.GBM.discretizes
        assert SchemeKind.EXPLICIT_EULER.discretizes
        assert SchemeKind.MILSTEIN.discretizes

    @pytest.mark.parametrize(
        "kind, cls",
        [("gbm", GBMScheme), (SchemeKind.EXPLICIT_EULER, EulerScheme), ("milstein", MilsteinScheme)],
    )
    def test_get_scheme(self, kind, cls):
        """get_scheme returns an instance of the matching class"""
        scheme = get_scheme(kind)
        assert type(scheme) is cls
        assert scheme.kind is SchemeKind(kind)

    def test_get_scheme_unknown(self):
        """Unknown schemes raise ConfigurationError"""
        with pytest.raises(ConfigurationError, match="Unknown scheme"):
            get_scheme("runge_kutta")

    def test_get_scheme_forwards_beta(self):
        """The CEV exponent reaches discretising schemes"""
        assert get_scheme("milstein", beta=0.5).beta == 0.5
