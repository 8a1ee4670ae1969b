"""Error taxonomy for the hybrid pricer.

Every error raised on purpose by the package derives from ``PricingError``.
The concrete classes also derive from the builtin that best describes them,
so callers used to catching ``ValueError`` keep working.
"""

__all__ = [
    "PricingError",
    "ConfigurationError",
    "InputError",
    "UpstreamModelError",
]


class PricingError(Exception):
    """Base class for all pricer errors."""


class ConfigurationError(PricingError, ValueError):
    """Invalid set-up: engine correlation, model parameters, config files."""


class InputError(PricingError, ValueError):
    """Invalid option specification passed in for a single pricing request."""


class UpstreamModelError(PricingError, RuntimeError):
    """The rate model cannot be used yet, e.g. it was never fitted to a curve."""
