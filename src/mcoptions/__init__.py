"""mcoptions package public API."""

from .black_scholes import black_scholes_call, black_scholes_price, black_scholes_put
from .config import DECISION_TOLERANCE, DEFAULT_SETTINGS, PricerSettings
from .contract import OptionContract
from .core import (
    JobOutcome,
    PricingFramework,
    PricingJob,
    SimulationResult,
    StatisticsRecord,
)
from .exceptions import ConfigurationError, InputParseError, NumericDomainError, PricingError
from .inputs import ParseOutcome, parse_contract, parse_engine, parse_payoff, parse_scheme
from .payoffs import OptionType, Payoff, PayoffStyle
from .reporting import format_report, write_csv_report, write_reports, write_text_report
from .rng import NormalVariateSource, RandomEngine, VariateSource
from .sde import EulerScheme, GBMScheme, MilsteinScheme, SchemeKind, get_scheme
from .simulation import MonteCarloPricer, PathSample, run_simulation, simulate_path
from .statistics import StatisticsAggregator, compute_statistics
from .stats_engine import (
    DEFAULT_ENGINE,
    FnMetric,
    StatsContext,
    StatsEngine,
)
from .utils import autocrit, t_crit, z_crit

__all__ = [
    "OptionContract",
    "OptionType",
    "PayoffStyle",
    "Payoff",
    "RandomEngine",
    "VariateSource",
    "NormalVariateSource",
    "SchemeKind",
    "GBMScheme",
    "EulerScheme",
    "MilsteinScheme",
    "get_scheme",
    "MonteCarloPricer",
    "PathSample",
    "run_simulation",
    "simulate_path",
    "SimulationResult",
    "StatisticsRecord",
    "StatisticsAggregator",
    "compute_statistics",
    "black_scholes_call",
    "black_scholes_put",
    "black_scholes_price",
    "PricingJob",
    "JobOutcome",
    "PricingFramework",
    "ParseOutcome",
    "parse_contract",
    "parse_scheme",
    "parse_payoff",
    "parse_engine",
    "format_report",
    "write_text_report",
    "write_csv_report",
    "write_reports",
    "PricerSettings",
    "DEFAULT_SETTINGS",
    "DECISION_TOLERANCE",
    "PricingError",
    "ConfigurationError",
    "NumericDomainError",
    "InputParseError",
    "StatsEngine",
    "StatsContext",
    "FnMetric",
    "DEFAULT_ENGINE",
    "z_crit",
    "t_crit",
    "autocrit",
]

__version__ = "0.1.0"
