"""One-factor Hull-White short-rate model.

Under the risk-neutral measure the short rate follows

    dr(t) = (theta(t) - a r(t)) dt + sigma dW_r(t)

with ``theta(t)`` chosen so that the model reprices the fitted discount
curve.  This module only carries what an equity/rate hybrid pricer needs
from the model: the parameters, the fitted curve, and the closed-form
second moments of the integrated short rate.

With ``tau = T - t`` and ``B(tau) = (1 - exp(-a tau)) / a`` the zero-coupon
bond volatility is ``sigma_P(t, T) = sigma B(T - t)`` and

    V_r(t, T) = int_t^T sigma_P(s, T)^2 ds
              = sigma^2/a^2 [tau + 2/a e^{-a tau} - 1/(2a) e^{-2 a tau} - 3/(2a)]

    C(t, T)   = int_t^T sigma_P(s, T) ds
              = sigma/a [tau - B(tau)]

``V_r`` is the variance of ``int_t^T r(s) ds``; ``C`` is its covariance with
the equity Brownian motion per unit of equity volatility and correlation.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .curves import YieldTermStructure
from .errors import ConfigurationError, UpstreamModelError

__all__ = ["HullWhiteParams", "HullWhite"]

logger = logging.getLogger(__name__)

# below this value of a*tau the closed forms lose digits to cancellation
_SMALL_A_TAU = np.finfo(float).eps ** 0.25


@dataclass(frozen=True)
class HullWhiteParams:
    """Immutable snapshot of the fitted model parameters."""
    a: float
    sigma: float

    def __post_init__(self):
        if not (self.a > 0 and math.isfinite(self.a)):
            raise ConfigurationError(f"mean reversion a must be positive, got {self.a}")
        if not (self.sigma >= 0 and math.isfinite(self.sigma)):
            raise ConfigurationError(f"sigma must be non-negative, got {self.sigma}")


class HullWhite:
    """Hull-White model with a pull-based parameter snapshot.

    Parameters
    ----------
    term_structure : YieldTermStructure | None
        Curve the model is fitted to.  ``None`` leaves the model unfitted
        until ``fit`` is called.
    a : float
        Mean-reversion speed (> 0).
    sigma : float
        Short-rate volatility (>= 0).
    """

    def __init__(
        self,
        term_structure: Optional[YieldTermStructure] = None,
        a: float = 0.1,
        sigma: float = 0.01,
    ):
        self._lock = threading.Lock()
        self._params = HullWhiteParams(float(a), float(sigma))
        self._term_structure = term_structure
        self._listeners: list[Callable[[], None]] = []

    def __repr__(self) -> str:
        p = self.parameters()
        return f"HullWhite(a={p.a!r}, sigma={p.sigma!r}, fitted={self.is_fitted()})"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def parameters(self) -> HullWhiteParams:
        """Read-consistent ``(a, sigma)`` snapshot."""
        with self._lock:
            return self._params

    @property
    def term_structure(self) -> Optional[YieldTermStructure]:
        with self._lock:
            return self._term_structure

    def is_fitted(self) -> bool:
        return self.term_structure is not None

    def require_fitted(self) -> None:
        if not self.is_fitted():
            raise UpstreamModelError("Hull-White model is not fitted to a term structure")

    def set_parameters(self, a: float, sigma: float) -> None:
        """Replace ``(a, sigma)``, e.g. after an external calibration."""
        params = HullWhiteParams(float(a), float(sigma))
        with self._lock:
            self._params = params
        logger.debug("Hull-White parameters updated: a=%g sigma=%g", params.a, params.sigma)
        self._notify()

    def fit(self, term_structure: YieldTermStructure) -> None:
        """Fit (or refit) the model to a discount curve."""
        with self._lock:
            self._term_structure = term_structure
        logger.debug("Hull-White model fitted to %r", term_structure)
        self._notify()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------
    def on_parameters_changed(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` for every refit; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        # callbacks run outside the lock so they may read the model
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            callback()

    # ------------------------------------------------------------------
    # Closed-form moments
    # ------------------------------------------------------------------
    def bond_volatility(self, t: float, T: float, params: Optional[HullWhiteParams] = None) -> float:
        """Volatility sigma_P(t, T) of the zero-coupon bond maturing at T."""
        p = params or self.parameters()
        tau = _tau(t, T)
        return p.sigma * -math.expm1(-p.a * tau) / p.a

    def integrated_variance(self, T: float, t: float = 0.0,
                            params: Optional[HullWhiteParams] = None) -> float:
        """Variance of the integrated short rate over [t, T]."""
        p = params or self.parameters()
        tau = _tau(t, T)
        a, sigma = p.a, p.sigma
        if sigma == 0.0 or tau == 0.0:
            return 0.0
        x = a * tau
        if x > _SMALL_A_TAU:
            return sigma * sigma / (a * a) * (
                tau + 2.0 / a * math.exp(-x) - 0.5 / a * math.exp(-2.0 * x) - 1.5 / a
            )
        return sigma * sigma * tau ** 3 * (1.0 / 3.0 - 0.25 * x + 7.0 / 60.0 * x * x)

    def integrated_covariance(self, T: float, t: float = 0.0,
                              params: Optional[HullWhiteParams] = None) -> float:
        """Covariance of the integrated short rate with the equity driver over [t, T].

        This is the raw term before multiplication by the correlation and
        the equity volatility.
        """
        p = params or self.parameters()
        tau = _tau(t, T)
        a, sigma = p.a, p.sigma
        if sigma == 0.0 or tau == 0.0:
            return 0.0
        x = a * tau
        if x > _SMALL_A_TAU:
            return sigma / a * (tau + math.expm1(-x) / a)
        return sigma * tau * tau * (0.5 - x / 6.0 + x * x / 24.0)


def _tau(t: float, T: float) -> float:
    if t < 0 or T < t:
        raise ValueError(f"need 0 <= t <= T, got t={t}, T={T}")
    return T - t
