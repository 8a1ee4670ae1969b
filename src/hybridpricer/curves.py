# curves.py
# Continuously-compounded yield term structures used for discounting and
# for dividend yields.  Times are year fractions from the valuation date.

from __future__ import annotations
import math
import numpy as np
from dataclasses import dataclass

from .errors import ConfigurationError

__all__ = [
    "YieldTermStructure",
    "FlatForward",
    "ZeroCurve",
]


class YieldTermStructure:
    """Interface shared by all curves.

    Subclasses implement ``zero_rate(t)`` and ``forward_rate(t)``;
    discount factors follow from the zero rate.
    """

    def zero_rate(self, t: float) -> float:
        raise NotImplementedError

    def forward_rate(self, t: float) -> float:
        """Instantaneous forward rate f(0, t) = -d ln P(0, t) / dt."""
        raise NotImplementedError

    def discount(self, t: float) -> float:
        """Discount factor P(0, t) = exp(-z(t) t)."""
        if t < 0:
            raise ValueError(f"t must be non-negative, got {t}")
        return math.exp(-self.zero_rate(t) * t)


@dataclass(frozen=True)
class FlatForward(YieldTermStructure):
    """Flat continuously-compounded rate."""
    rate: float

    def zero_rate(self, t: float) -> float:
        return self.rate

    def forward_rate(self, t: float) -> float:
        return self.rate


@dataclass(frozen=True)
class ZeroCurve(YieldTermStructure):
    """Zero rates linearly interpolated in time, flat beyond the pillars.

    Parameters
    ----------
    times : sequence of float
        Strictly increasing pillar times (years, > 0).
    rates : sequence of float
        Continuously-compounded zero rates at the pillars.
    """
    times: tuple
    rates: tuple

    def __post_init__(self):
        times = tuple(float(t) for t in self.times)
        rates = tuple(float(r) for r in self.rates)
        if not times or len(times) != len(rates):
            raise ConfigurationError("times and rates must be non-empty and of equal length")
        if times[0] <= 0 or any(b <= a for a, b in zip(times, times[1:])):
            raise ConfigurationError("pillar times must be positive and strictly increasing")
        # keep hashable tuples so specs holding the curve stay comparable
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "rates", rates)

    def zero_rate(self, t: float) -> float:
        return float(np.interp(t, self.times, self.rates))

    def _slope(self, t: float) -> float:
        times = np.asarray(self.times)
        if t <= times[0] or t >= times[-1]:
            return 0.0
        i = int(np.searchsorted(times, t, side="right")) - 1
        return (self.rates[i + 1] - self.rates[i]) / (self.times[i + 1] - self.times[i])

    def forward_rate(self, t: float) -> float:
        # d/dt [z(t) t] = z(t) + t z'(t)
        return self.zero_rate(t) + t * self._slope(t)
