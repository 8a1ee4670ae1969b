# hybridpricer: European options under BSM equity + Hull-White rates
# Public API

# Data model
from .core import OptionSpec, PricingResult, CALL, PUT
from .errors import PricingError, ConfigurationError, InputError, UpstreamModelError

# Curves
from .curves import YieldTermStructure, FlatForward, ZeroCurve

# Closed forms
from .black_scholes_vec import black_price_vec, bs_price_vec, bs_greeks_vec

# Rate model & engine
from .short_rate import HullWhite, HullWhiteParams
from .engine import AnalyticBSMHullWhiteEngine

# Risk engine
from .risk import numerical_greeks, scenario_grid, correlation_sensitivity

# Dates
from .calendars import (
    Market, BusinessDayConvention, TimeUnit, Calendar, south_korea,
)
from .daycounters import (
    Actual365Fixed, Actual360, ActualActualISDA, Thirty360,
    day_counter, maturity_from_dates,
)

# Configuration
from .config import PricerConfig

__all__ = [
    # Data model
    "OptionSpec", "PricingResult", "CALL", "PUT",
    "PricingError", "ConfigurationError", "InputError", "UpstreamModelError",
    # Curves
    "YieldTermStructure", "FlatForward", "ZeroCurve",
    # Closed forms
    "black_price_vec", "bs_price_vec", "bs_greeks_vec",
    # Rate model & engine
    "HullWhite", "HullWhiteParams", "AnalyticBSMHullWhiteEngine",
    # Risk
    "numerical_greeks", "scenario_grid", "correlation_sensitivity",
    # Dates
    "Market", "BusinessDayConvention", "TimeUnit", "Calendar", "south_korea",
    "Actual365Fixed", "Actual360", "ActualActualISDA", "Thirty360",
    "day_counter", "maturity_from_dates",
    # Configuration
    "PricerConfig",
]

__version__ = "0.1.0"
