"""Analytic European option engine with Hull-White stochastic rates.

The equity follows Black-Scholes-Merton dynamics, the short rate follows the
Hull-White model, and the two Brownian motions have correlation ``rho``.
Under the T-forward measure the forward price F(t) = S(t) P_q(t, T) / P(t, T)
is a martingale with instantaneous variance

    sigma_S^2 + sigma_P(t, T)^2 + 2 rho sigma_S sigma_P(t, T)

so ln F(T) is Gaussian and the ordinary Black formula applies with total
variance

    Sigma^2 = sigma_S^2 T + V_r(T) + 2 rho sigma_S C(T)

(Brigo & Mercurio, *Interest Rate Models*).  Because the model is fitted to
the discount curve, F(0) is the curve-implied forward: the rate/equity
covariance moves the variance, not the forward.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Optional

from scipy.stats import norm

from .black_scholes_vec import black_price_vec
from .core import OptionSpec, PricingResult
from .errors import ConfigurationError
from .short_rate import HullWhite, HullWhiteParams

__all__ = ["AnalyticBSMHullWhiteEngine"]

logger = logging.getLogger(__name__)


def _copy(result: PricingResult) -> PricingResult:
    greeks = None if result.greeks is None else dict(result.greeks)
    return replace(result, greeks=greeks)


class AnalyticBSMHullWhiteEngine:
    """Price European vanillas under BSM equity + Hull-White rates.

    Parameters
    ----------
    correlation : float
        Instantaneous equity / short-rate correlation, in [-1, 1].
    model : HullWhite
        Rate model; not owned.  Its current parameters are read on every
        computation.
    """

    def __init__(self, correlation: float, model: HullWhite):
        correlation = float(correlation)
        if not -1.0 <= correlation <= 1.0:
            raise ConfigurationError(
                f"correlation must lie in [-1, 1], got {correlation}"
            )
        self._rho = correlation
        self._model = model
        self._last_key = None
        self._last_result: Optional[PricingResult] = None
        self._stale = True
        self._unsubscribe = model.on_parameters_changed(self._on_model_changed)

    def __repr__(self) -> str:
        return f"AnalyticBSMHullWhiteEngine(correlation={self._rho!r}, model={self._model!r})"

    @property
    def correlation(self) -> float:
        return self._rho

    @property
    def model(self) -> HullWhite:
        return self._model

    @property
    def is_stale(self) -> bool:
        """True when no result is cached or the model changed since."""
        return self._stale

    def _on_model_changed(self) -> None:
        if not self._stale:
            logger.debug("rate model changed; cached result marked stale")
        self._stale = True

    def close(self) -> None:
        """Stop listening to the model."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Adjusted inputs
    # ------------------------------------------------------------------
    def variance_offset(self, maturity: float, volatility: float,
                        params: Optional[HullWhiteParams] = None) -> float:
        """Rate-induced part of the total variance: V_r(T) + 2 rho sigma_S C(T)."""
        params = params or self._model.parameters()
        v = self._model.integrated_variance(maturity, params=params)
        c = self._model.integrated_covariance(maturity, params=params)
        return v + 2.0 * self._rho * volatility * c

    def adjusted_variance(self, spec: OptionSpec,
                          params: Optional[HullWhiteParams] = None) -> float:
        """Total variance Sigma^2 of ln F(T) over the option's life."""
        offset = self.variance_offset(spec.maturity, spec.volatility, params)
        return max(spec.volatility * spec.volatility * spec.maturity + offset, 0.0)

    def adjusted_forward(self, spec: OptionSpec) -> float:
        """Curve-implied forward S P_q(0, T) / P_r(0, T)."""
        T = spec.maturity
        return spec.spot * spec.dividend_curve.discount(T) / spec.risk_free_curve.discount(T)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def calculate(self, spec: OptionSpec, *, greeks: bool = False) -> PricingResult:
        """Price ``spec``; reuse the previous computation if nothing changed.

        Every call returns a new ``PricingResult`` with its own ``greeks``
        dict, so callers cannot alter what later calls see.
        """
        key = (spec, greeks)
        if self._stale or key != self._last_key:
            self._model.require_fitted()
            # cleared before the snapshot so a refit during _compute re-stales
            self._stale = False
            params = self._model.parameters()
            try:
                result = self._compute(spec, params, greeks)
            except Exception:
                self._stale = True
                raise
            self._last_key = key
            self._last_result = result
        return _copy(self._last_result)

    def _compute(self, spec: OptionSpec, params: HullWhiteParams, want_greeks: bool) -> PricingResult:
        T = spec.maturity
        disc_r = spec.risk_free_curve.discount(T)
        disc_q = spec.dividend_curve.discount(T)
        forward = spec.spot * disc_q / disc_r
        variance = self.adjusted_variance(spec, params)
        value = float(black_price_vec(forward, spec.strike, variance, disc_r, spec.kind))
        logger.debug(
            "T=%g a=%g sigma_r=%g rho=%g -> variance=%.10g forward=%.10g value=%.10g",
            T, params.a, params.sigma, self._rho, variance, forward, value,
        )

        greeks = None
        if want_greeks:
            cov = self._model.integrated_covariance(T, params=params)
            greeks = self._greeks(spec, value, forward, variance, disc_r, disc_q, cov)
        return PricingResult(value=value, variance=variance, forward=forward,
                             discount=disc_r, greeks=greeks)

    def _greeks(self, spec, value, forward, variance, disc_r, disc_q, cov) -> dict[str, float]:
        """Analytic sensitivities with V_r(T) and C(T) held fixed."""
        S, K, T, sigma = spec.spot, spec.strike, spec.maturity, spec.volatility
        w = spec.omega
        f_r = spec.risk_free_curve.forward_rate(T)
        f_q = spec.dividend_curve.forward_rate(T)
        std = math.sqrt(variance)

        if std > 0.0:
            d1 = math.log(forward / K) / std + 0.5 * std
            d2 = d1 - std
            n_d1 = norm.pdf(d1)
            N_wd1 = norm.cdf(w * d1)
            N_wd2 = norm.cdf(w * d2)

            delta = w * disc_q * N_wd1
            gamma = disc_q * n_d1 / (S * std)
            # dSigma/dsigma_S = (sigma_S T + rho C) / Sigma
            vega = S * disc_q * n_d1 * (sigma * T + self._rho * cov) / std
            # dV/dT: discounting, forward drift, and sigma_S^2 of extra variance
            dv_dT = (-f_r * value
                     + w * S * disc_q * N_wd1 * (f_r - f_q)
                     + S * disc_q * n_d1 * sigma * sigma / (2.0 * std))
            itm_prob = N_wd2
        else:
            itm = w * (forward - K) > 0.0
            delta = w * disc_q if itm else 0.0
            gamma = 0.0
            vega = 0.0
            N_wd1 = 1.0 if itm else 0.0
            dv_dT = -f_r * value + w * S * disc_q * N_wd1 * (f_r - f_q)
            itm_prob = N_wd1

        return {
            "delta": float(delta),
            "gamma": float(gamma),
            "vega": float(vega),
            "theta": float(-dv_dT),
            "rho": float(w * K * T * disc_r * itm_prob),
            "dividend_rho": float(-w * S * T * disc_q * N_wd1),
            "itm_cash_probability": float(itm_prob),
        }
