"""
query_processor/models.py
Shared CalculationRequest dataclass used by the parser, the calculation
engine, guardrails and the API.  Kept in a separate module to avoid circular
imports.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class CostCategory(str, Enum):
    SEA_FREIGHT        = "sea_freight"
    LOCAL_CHARGE       = "local_charge"
    DTHC               = "dthc"
    COMBINED_FREIGHT   = "combined_freight"
    PORT_BORDER        = "port_border"
    BORDER_DESTINATION = "border_destination"
    WEIGHT_SURCHARGE   = "weight_surcharge"
    DP                 = "dp"
    DOMESTIC_TRANSPORT = "domestic_transport"


OTHER_COST_PREFIX = "other_"


def other_cost_key(index: int) -> str:
    """Exclusion key of the index-th caller supplied cost."""
    return f"{OTHER_COST_PREFIX}{index}"


def is_known_category(key: str) -> bool:
    if key in {c.value for c in CostCategory}:
        return True
    suffix = key[len(OTHER_COST_PREFIX):] if key.startswith(OTHER_COST_PREFIX) else ""
    return suffix.isdigit()


@dataclass(frozen=True)
class OtherCost:
    label: str
    amount: float


@dataclass(frozen=True)
class CalculationRequest:
    """
    Route, cargo and caller choices for one cost calculation.
    Used as the single source of truth throughout the calculation pipeline.
    """
    # Route
    pol: str = ""
    pod: str = ""
    destination_id: str = ""

    # Cargo
    weight: float = 0.0

    # Options
    include_dp: bool = False
    reference_date: Optional[date] = None            # None: today, read once
    selected_sea_freight_ids: Optional[frozenset[str]] = None
    excluded_categories: frozenset[str] = frozenset()
    other_costs: tuple[OtherCost, ...] = ()
    domestic_transport: Optional[float] = None

    def is_excluded(self, category: str) -> bool:
        return category in self.excluded_categories
