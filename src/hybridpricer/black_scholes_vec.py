# black_scholes_vec.py
# Vectorised Black (forward-based) and Black-Scholes pricing and Greeks.
# All public functions accept scalars *or* NumPy arrays and broadcast.

from __future__ import annotations
import numpy as np
from scipy.stats import norm

_N = norm.cdf   # vectorised standard-normal CDF
_n = norm.pdf   # vectorised standard-normal PDF

__all__ = [
    "black_price_vec",
    "bs_price_vec",
    "bs_greeks_vec",
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------
def _black_d1_d2(F, K, std):
    """d1, d2 from forward, strike and total standard deviation.

    Entries with ``std == 0`` come out as +-inf / NaN; callers mask them.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        d1 = np.log(F / K) / std + 0.5 * std
    d2 = d1 - std
    return d1, d2


def _is_call(kind) -> np.ndarray:
    """Return boolean mask: True where kind == 'call'."""
    kind = np.asarray(kind)
    if kind.ndim == 0:
        return np.bool_(str(kind) == "call")
    return np.array([str(k) == "call" for k in kind.flat], dtype=bool).reshape(kind.shape)


# ---------------------------------------------------------------------------
# Black formula on the forward
# ---------------------------------------------------------------------------
def black_price_vec(F, K, variance, discount, kind) -> np.ndarray:
    """Undiscounted-forward Black price times ``discount``.

    Parameters
    ----------
    F : array-like
        Forward price of the underlying for the option's expiry.
    K : array-like
        Strike.
    variance : array-like
        Total variance of ln(F_T) over the option's life (sigma^2 T for
        plain Black-Scholes).  Non-positive variance prices the
        discounted intrinsic value of the forward.
    discount : array-like
        Discount factor to expiry.

    Returns
    -------
    np.ndarray
        Option prices (same shape as broadcasted inputs).
    """
    F, K, variance, discount = (np.asarray(x, dtype=float) for x in (F, K, variance, discount))
    std = np.sqrt(np.maximum(variance, 0.0))
    d1, d2 = _black_d1_d2(F, K, std)

    with np.errstate(invalid="ignore"):
        call_px = discount * (F * _N(d1) - K * _N(d2))
        put_px  = discount * (K * _N(-d2) - F * _N(-d1))
    call_px = np.where(std > 0, call_px, discount * np.maximum(F - K, 0.0))
    put_px  = np.where(std > 0, put_px, discount * np.maximum(K - F, 0.0))

    return np.where(_is_call(kind), call_px, put_px)


# ---------------------------------------------------------------------------
# Black-Scholes on spot with flat rates
# ---------------------------------------------------------------------------
def bs_price_vec(S, K, T, r, q, sigma, kind) -> np.ndarray:
    """Vectorised Black-Scholes price with flat continuous r and q."""
    S, K, T, r, q, sigma = (np.asarray(x, dtype=float) for x in (S, K, T, r, q, sigma))
    disc_r = np.exp(-r * T)
    disc_q = np.exp(-q * T)
    return black_price_vec(S * disc_q / disc_r, K, sigma * sigma * T, disc_r, kind)


def bs_greeks_vec(S, K, T, r, q, sigma, kind) -> dict[str, np.ndarray]:
    """Vectorised Black-Scholes Greeks, taken on the Black forward.

    Returns dict with keys: delta, gamma, vega, theta, rho.
    Vega is dPrice/dSigma (absolute), theta is -dPrice/dT (per year).
    Requires ``T > 0`` and ``sigma > 0``.
    """
    S, K, T, r, q, sigma = (np.asarray(x, dtype=float) for x in (S, K, T, r, q, sigma))
    sqrt_T = np.sqrt(T)
    std = sigma * sqrt_T
    disc_r = np.exp(-r * T)
    disc_q = np.exp(-q * T)
    F = S * disc_q / disc_r
    d1, d2 = _black_d1_d2(F, K, std)
    w = np.where(_is_call(kind), 1.0, -1.0)
    n_d1 = _n(d1)
    N_wd1 = _N(w * d1)

    price = black_price_vec(F, K, std * std, disc_r, kind)
    # dV/dT: discounting, forward drift (r - q), variance growth
    dv_dT = (-r * price
             + w * S * disc_q * N_wd1 * (r - q)
             + S * disc_q * n_d1 * sigma / (2.0 * sqrt_T))

    return {
        "delta": w * disc_q * N_wd1,
        "gamma": disc_q * n_d1 / (S * std),
        "vega": S * disc_q * n_d1 * sqrt_T,
        "theta": -dv_dT,
        "rho": w * K * T * disc_r * _N(w * d2),
    }
