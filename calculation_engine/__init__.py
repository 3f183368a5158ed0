"""calculation_engine package"""
from .aggregator import AgentCostBreakdown, CostAggregator, CostComponent
from .diagnostics import RateWarning, WarningCode
from .engine import CalculationEngine, CalculationResult, calculate
from .exceptions import CalculationError, InvalidRequest
from .resolver import OptionKind, Resolution, RouteOption, RouteOptionResolver
from .selector import MinimumCostSelector, Selection
from .validity import is_valid_on_date, select_active, validity_status
__all__ = [
    "AgentCostBreakdown","CostAggregator","CostComponent",
    "RateWarning","WarningCode",
    "CalculationEngine","CalculationResult","calculate",
    "CalculationError","InvalidRequest",
    "OptionKind","Resolution","RouteOption","RouteOptionResolver",
    "MinimumCostSelector","Selection",
    "is_valid_on_date","select_active","validity_status",
]
