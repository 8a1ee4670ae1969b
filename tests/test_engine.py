"""Tests for the analytic BSM + Hull-White engine.

Validation strategies:
- Regression fixture (S=K=100, T=1, sigma_S=20%, a=0.1, sigma_r=1%, r=2%)
- sigma_r = 0 reduces to Black-Scholes on the curve forward
- Adjusted variance is affine in the correlation
- Zero maturity prices at intrinsic value
- Put-call parity and analytic Greeks against Black-Scholes
"""

import math

import numpy as np
import pytest

from hybridpricer.black_scholes_vec import black_price_vec, bs_greeks_vec, bs_price_vec
from hybridpricer.core import OptionSpec, CALL, PUT
from hybridpricer.curves import FlatForward, ZeroCurve
from hybridpricer.engine import AnalyticBSMHullWhiteEngine
from hybridpricer.errors import ConfigurationError, InputError, UpstreamModelError
from hybridpricer.short_rate import HullWhite

R = 0.02


@pytest.fixture
def model():
    return HullWhite(FlatForward(R), a=0.1, sigma=0.01)


def _spec(**kw):
    base = dict(spot=100.0, strike=100.0, maturity=1.0, volatility=0.2, rate=R)
    base.update(kw)
    return OptionSpec.flat(**base)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------
class TestConstruction:
    @pytest.mark.parametrize("rho", [1.5, -2.0, float("nan")])
    def test_bad_correlation(self, model, rho):
        with pytest.raises(ConfigurationError):
            AnalyticBSMHullWhiteEngine(rho, model)

    @pytest.mark.parametrize("rho", [-1.0, 0.0, 1.0])
    def test_boundary_correlation(self, model, rho):
        assert AnalyticBSMHullWhiteEngine(rho, model).correlation == rho

    def test_configuration_error_is_value_error(self, model):
        with pytest.raises(ValueError):
            AnalyticBSMHullWhiteEngine(1.5, model)


# ---------------------------------------------------------------------------
# Regression values
# ---------------------------------------------------------------------------
class TestRegression:
    def test_call(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        assert abs(engine.calculate(_spec()).value - 8.919061990902) < 1e-6

    def test_put(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        assert abs(engine.calculate(_spec(kind=PUT)).value - 6.938929321578) < 1e-6

    def test_positive_correlation(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.3, model)
        assert abs(engine.calculate(_spec()).value - 8.975584965249) < 1e-6

    def test_above_black_scholes(self, model):
        """Stochastic rates add variance, so the ATM call is worth more."""
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        bs = float(bs_price_vec(100, 100, 1.0, R, 0.0, 0.2, CALL))
        assert engine.calculate(_spec()).value > bs

    def test_result_fields(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        res = engine.calculate(_spec())
        assert res.discount == pytest.approx(math.exp(-R))
        assert res.forward == pytest.approx(100.0 * math.exp(R))
        assert res.variance == pytest.approx(0.04 + 3.09459532928003e-05, rel=1e-12)
        assert res.greeks is None


# ---------------------------------------------------------------------------
# Deterministic-rate limit
# ---------------------------------------------------------------------------
class TestDegenerateRates:
    @pytest.mark.parametrize("a", [0.01, 0.1, 1.0])
    @pytest.mark.parametrize("rho", [-1.0, -0.4, 0.0, 0.7])
    @pytest.mark.parametrize("kind", [CALL, PUT])
    def test_matches_black_scholes(self, a, rho, kind):
        engine = AnalyticBSMHullWhiteEngine(rho, HullWhite(FlatForward(0.03), a=a, sigma=0.0))
        for S, K, T, sigma in [(100, 100, 1.0, 0.2), (80, 100, 0.25, 0.35),
                               (120, 90, 3.0, 0.15), (100, 130, 10.0, 0.5)]:
            spec = OptionSpec.flat(S, K, T, sigma, rate=0.03, dividend=0.01, kind=kind)
            expected = float(bs_price_vec(S, K, T, 0.03, 0.01, sigma, kind))
            assert engine.calculate(spec).value == pytest.approx(expected, rel=1e-12, abs=1e-12)

    def test_matches_black_on_zero_curve(self):
        curve = ZeroCurve(times=(0.5, 1.0, 2.0, 5.0), rates=(0.01, 0.015, 0.02, 0.03))
        divs = FlatForward(0.005)
        engine = AnalyticBSMHullWhiteEngine(0.5, HullWhite(curve, a=0.2, sigma=0.0))
        spec = OptionSpec(spot=100.0, strike=105.0, maturity=3.0, volatility=0.25,
                          risk_free_curve=curve, dividend_curve=divs)
        D = curve.discount(3.0)
        F = 100.0 * divs.discount(3.0) / D
        expected = float(black_price_vec(F, 105.0, 0.25 ** 2 * 3.0, D, CALL))
        assert engine.calculate(spec).value == pytest.approx(expected, rel=1e-12)

    def test_zero_total_variance(self):
        engine = AnalyticBSMHullWhiteEngine(0.0, HullWhite(FlatForward(R), a=0.1, sigma=0.0))
        spec = _spec(volatility=0.0, strike=90.0)
        D = math.exp(-R)
        assert engine.calculate(spec).value == pytest.approx(D * (100.0 / D - 90.0))
        assert engine.calculate(_spec(volatility=0.0, strike=150.0)).value == 0.0


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------
class TestCorrelation:
    @pytest.mark.parametrize("rho", [0.0, 0.25, 0.6, 1.0])
    def test_variance_antisymmetry(self, model, rho):
        spec = _spec(maturity=5.0)
        up = AnalyticBSMHullWhiteEngine(rho, model).adjusted_variance(spec)
        dn = AnalyticBSMHullWhiteEngine(-rho, model).adjusted_variance(spec)
        base = 0.2 ** 2 * 5.0 + model.integrated_variance(5.0)
        assert up + dn == pytest.approx(2.0 * base, rel=1e-14)

    def test_variance_affine(self, model):
        spec = _spec(maturity=2.0)
        rhos = np.linspace(-1.0, 1.0, 9)
        v = np.array([AnalyticBSMHullWhiteEngine(r, model).adjusted_variance(spec) for r in rhos])
        np.testing.assert_allclose(np.diff(v), np.diff(v)[0], rtol=1e-10)
        slope = 2.0 * 0.2 * model.integrated_covariance(2.0)
        assert (v[-1] - v[0]) / 2.0 == pytest.approx(slope, rel=1e-10)

    def test_zero_correlation_keeps_rate_variance(self, model):
        spec = _spec()
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        assert engine.variance_offset(1.0, 0.2) == model.integrated_variance(1.0)
        assert engine.adjusted_variance(spec) == pytest.approx(0.04 + model.integrated_variance(1.0))

    def test_price_increases_with_correlation(self, model):
        spec = _spec()
        prices = [AnalyticBSMHullWhiteEngine(r, model).calculate(spec).value for r in (-0.5, 0.0, 0.5)]
        assert prices[0] < prices[1] < prices[2]

    def test_forward_independent_of_correlation(self, model):
        spec = _spec(maturity=4.0)
        fwd = {AnalyticBSMHullWhiteEngine(r, model).adjusted_forward(spec) for r in (-1.0, 0.0, 1.0)}
        assert len(fwd) == 1


# ---------------------------------------------------------------------------
# Zero maturity
# ---------------------------------------------------------------------------
class TestZeroMaturity:
    @pytest.mark.parametrize("rho", [-1.0, 0.0, 0.8])
    @pytest.mark.parametrize("a,sigma_r", [(0.1, 0.01), (2.0, 0.05), (1e-6, 0.0)])
    def test_intrinsic_value(self, rho, a, sigma_r):
        engine = AnalyticBSMHullWhiteEngine(rho, HullWhite(FlatForward(R), a=a, sigma=sigma_r))
        for S, K in [(100.0, 90.0), (100.0, 110.0), (100.0, 100.0)]:
            call = engine.calculate(_spec(spot=S, strike=K, maturity=0.0)).value
            put = engine.calculate(_spec(spot=S, strike=K, maturity=0.0, kind=PUT)).value
            assert call == max(S - K, 0.0)
            assert put == max(K - S, 0.0)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class TestErrors:
    @pytest.mark.parametrize("changes", [
        {"strike": 0.0}, {"strike": -1.0}, {"spot": 0.0}, {"maturity": -0.1},
        {"volatility": -0.2}, {"kind": "straddle"},
        {"maturity": math.inf}, {"spot": math.inf}, {"strike": math.nan},
    ])
    def test_invalid_spec(self, changes):
        with pytest.raises(InputError):
            _spec(**changes)

    def test_unfitted_model(self):
        engine = AnalyticBSMHullWhiteEngine(0.0, HullWhite(a=0.1, sigma=0.01))
        with pytest.raises(UpstreamModelError):
            engine.calculate(_spec())

    def test_error_does_not_poison_engine(self):
        model = HullWhite(a=0.1, sigma=0.01)
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        with pytest.raises(UpstreamModelError):
            engine.calculate(_spec())
        model.fit(FlatForward(R))
        assert abs(engine.calculate(_spec()).value - 8.919061990902) < 1e-6


# ---------------------------------------------------------------------------
# Parity and Greeks
# ---------------------------------------------------------------------------
class TestGreeks:
    @pytest.mark.parametrize("rho", [-0.6, 0.0, 0.6])
    def test_put_call_parity(self, model, rho):
        engine = AnalyticBSMHullWhiteEngine(rho, model)
        spec = _spec(strike=95.0, maturity=2.0, dividend=0.01)
        c = engine.calculate(spec).value
        p = engine.calculate(_spec(strike=95.0, maturity=2.0, dividend=0.01, kind=PUT)).value
        rhs = 100.0 * math.exp(-0.01 * 2.0) - 95.0 * math.exp(-R * 2.0)
        assert c - p == pytest.approx(rhs, abs=1e-10)

    @pytest.mark.parametrize("kind", [CALL, PUT])
    def test_match_black_scholes_when_rates_deterministic(self, kind):
        engine = AnalyticBSMHullWhiteEngine(0.3, HullWhite(FlatForward(0.05), a=0.1, sigma=0.0))
        spec = OptionSpec.flat(100, 105, 0.75, 0.25, rate=0.05, dividend=0.02, kind=kind)
        got = engine.calculate(spec, greeks=True).greeks
        expected = bs_greeks_vec(100, 105, 0.75, 0.05, 0.02, 0.25, kind)
        for key in ("delta", "gamma", "vega", "theta", "rho"):
            assert got[key] == pytest.approx(float(expected[key]), rel=1e-9, abs=1e-12), key

    def test_delta_gamma_vega_vs_finite_differences(self, model):
        engine = AnalyticBSMHullWhiteEngine(-0.4, model)
        spec = _spec(strike=110.0, maturity=3.0)
        g = engine.calculate(spec, greeks=True).greeks

        h = 1e-3
        up = engine.calculate(_spec(strike=110.0, maturity=3.0, spot=100.0 + h)).value
        dn = engine.calculate(_spec(strike=110.0, maturity=3.0, spot=100.0 - h)).value
        mid = engine.calculate(spec).value
        assert g["delta"] == pytest.approx((up - dn) / (2 * h), rel=1e-6)
        assert g["gamma"] == pytest.approx((up - 2 * mid + dn) / h ** 2, rel=1e-4)

        vu = engine.calculate(_spec(strike=110.0, maturity=3.0, volatility=0.2 + 1e-5)).value
        vd = engine.calculate(_spec(strike=110.0, maturity=3.0, volatility=0.2 - 1e-5)).value
        assert g["vega"] == pytest.approx((vu - vd) / 2e-5, rel=1e-6)

    def test_theta_holds_rate_terms_fixed(self, model):
        """Theta equals -dV/dT with V_r(T) and C(T) frozen at the current maturity."""
        rho, T, h = 0.3, 2.0, 1e-5
        engine = AnalyticBSMHullWhiteEngine(rho, model)
        g = engine.calculate(_spec(maturity=T), greeks=True).greeks
        offset = engine.variance_offset(T, 0.2)

        def frozen(t):
            D = math.exp(-R * t)
            return float(black_price_vec(100.0 / D, 100.0, 0.04 * t + offset, D, CALL))

        assert g["theta"] == pytest.approx(-(frozen(T + h) - frozen(T - h)) / (2 * h), rel=1e-6)

    def test_greeks_at_zero_maturity(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        g = engine.calculate(_spec(strike=90.0, maturity=0.0), greeks=True).greeks
        assert g["delta"] == 1.0
        assert g["gamma"] == 0.0
        assert g["vega"] == 0.0
        assert g["itm_cash_probability"] == 1.0


# ---------------------------------------------------------------------------
# Recalculation on model change
# ---------------------------------------------------------------------------
class TestRecalculation:
    def test_cached_until_model_changes(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        spec = _spec()
        first = engine.calculate(spec)
        assert not engine.is_stale
        again = engine.calculate(spec)
        assert again == first and again is not first

        model.set_parameters(0.1, 0.03)
        assert engine.is_stale
        second = engine.calculate(spec)
        assert second.value > first.value
        assert not engine.is_stale

    def test_cached_greeks_are_not_shared(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.3, model)
        spec = _spec()
        first = engine.calculate(spec, greeks=True)
        delta = first.greeks["delta"]
        first.greeks["delta"] = -999.0
        assert engine.calculate(spec, greeks=True).greeks["delta"] == delta

    def test_refit_during_computation_is_not_lost(self, model, monkeypatch):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        spec = _spec()
        variance = model.integrated_variance
        fired = []

        def refit_once(*args, **kwargs):
            if not fired:
                fired.append(True)
                model.set_parameters(0.1, 0.05)
            return variance(*args, **kwargs)

        monkeypatch.setattr(model, "integrated_variance", refit_once)
        first = engine.calculate(spec)
        assert abs(first.value - 8.919061990902) < 1e-6
        assert engine.is_stale
        assert engine.calculate(spec).value > first.value

    def test_refit_curve_marks_stale(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        engine.calculate(_spec())
        model.fit(FlatForward(0.04))
        assert engine.is_stale

    def test_new_spec_recomputes(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        a = engine.calculate(_spec())
        b = engine.calculate(_spec(strike=90.0))
        assert b.value > a.value

    def test_always_uses_latest_parameters(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        spec = _spec()
        model.set_parameters(0.1, 0.0)
        assert engine.calculate(spec).value == pytest.approx(
            float(bs_price_vec(100, 100, 1.0, R, 0.0, 0.2, CALL)), rel=1e-12)
        model.set_parameters(0.1, 0.01)
        assert abs(engine.calculate(spec).value - 8.919061990902) < 1e-6

    def test_close_unsubscribes(self, model):
        engine = AnalyticBSMHullWhiteEngine(0.0, model)
        engine.calculate(_spec())
        engine.close()
        model.set_parameters(0.2, 0.02)
        assert not engine.is_stale
