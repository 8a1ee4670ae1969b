from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Optional

from .curves import FlatForward, YieldTermStructure
from .errors import InputError

CALL = "call"
PUT  = "put"


@dataclass(frozen=True)
class OptionSpec:
    """European vanilla option plus the equity market it lives in.

    Parameters
    ----------
    spot : float
        Current underlying price.
    strike : float
        Strike price.
    maturity : float
        Time to expiry in years; zero prices at intrinsic value.
    volatility : float
        Black-Scholes volatility of the equity (sigma_S).
    risk_free_curve : YieldTermStructure
        Discount curve.
    dividend_curve : YieldTermStructure
        Continuous dividend / funding yield curve (default flat zero).
    kind : str
        ``"call"`` or ``"put"``.
    """
    spot: float
    strike: float
    maturity: float          # years
    volatility: float
    risk_free_curve: YieldTermStructure
    dividend_curve: YieldTermStructure = field(default_factory=lambda: FlatForward(0.0))
    kind: str = CALL

    def __post_init__(self):
        if not (self.spot > 0 and math.isfinite(self.spot)):
            raise InputError(f"spot must be positive and finite, got {self.spot}")
        if not (self.strike > 0 and math.isfinite(self.strike)):
            raise InputError(f"strike must be positive and finite, got {self.strike}")
        if not (self.maturity >= 0 and math.isfinite(self.maturity)):
            raise InputError(f"maturity must be non-negative and finite, got {self.maturity}")
        if not (self.volatility >= 0 and math.isfinite(self.volatility)):
            raise InputError(f"volatility must be non-negative, got {self.volatility}")
        if self.kind not in (CALL, PUT):
            raise InputError(f"kind must be 'call' or 'put', got {self.kind!r}")

    @classmethod
    def flat(
        cls, spot: float, strike: float, maturity: float, volatility: float,
        rate: float, dividend: float = 0.0, kind: str = CALL,
    ) -> "OptionSpec":
        """Build a spec on flat risk-free and dividend curves."""
        return cls(
            spot=spot, strike=strike, maturity=maturity, volatility=volatility,
            risk_free_curve=FlatForward(rate), dividend_curve=FlatForward(dividend),
            kind=kind,
        )

    @property
    def omega(self) -> float:
        """+1 for calls, -1 for puts."""
        return 1.0 if self.kind == CALL else -1.0


@dataclass(frozen=True)
class PricingResult:
    """Output of one engine computation.

    ``variance``, ``forward`` and ``discount`` are the adjusted inputs that
    were fed to the Black formula; ``greeks`` is ``None`` unless requested.
    """
    value: float
    variance: float
    forward: float
    discount: float
    greeks: Optional[dict] = None
