"""
api/models.py
Pydantic request/response models.

The calculate endpoint takes a route, a weight and optional caller choices.
Set `historical` together with `reference_date` to price against the rate
tables as they stood on that day instead of the current ones.
"""
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class OtherCostItem(BaseModel):
    label:  str   = Field(default="", description="Free-text label shown in the breakdown")
    amount: float


class CalculationRequest(BaseModel):
    pol:            str = Field(..., description="Port of loading code, e.g. 'BUSAN'")
    pod:            str = Field(..., description="Port of discharge code, e.g. 'QINGDAO'")
    destination_id: str = Field(..., description="Final inland destination id, e.g. 'OSH'")
    weight:         float = Field(..., description="Cargo weight in kg")

    include_dp:     bool = Field(default=False, description="Add the DP cost of the origin port")
    reference_date: Optional[date] = Field(
        default=None,
        description="Date the rates must be valid on. Defaults to today.",
    )
    selected_sea_freight_ids: Optional[list[str]] = Field(
        default=None,
        description="Restrict sea legs to these record ids. Omit to consider every active one.",
    )
    excluded_categories: list[str] = Field(
        default_factory=list,
        description=(
            "Categories that must not count toward the total: sea_freight, local_charge, dthc, "
            "combined_freight, port_border, border_destination, weight_surcharge, dp, "
            "domestic_transport, other_<index>."
        ),
    )
    other_costs:        list[OtherCostItem] = Field(default_factory=list)
    domestic_transport: Optional[float] = Field(default=None, description="Fixed domestic transport amount")
    historical:         bool = Field(
        default=False,
        description="Reconstruct the rate tables as of reference_date from the audit log.",
    )

    @model_validator(mode="after")
    def historical_needs_date(self):
        if self.historical and self.reference_date is None:
            raise ValueError("'reference_date' is required when 'historical' is true.")
        return self


class CostComponentOut(BaseModel):
    category:     str
    label:        str
    amount:       float
    present:      bool
    included:     bool
    contribution: float
    source_id:    Optional[str] = None


class BreakdownOut(BaseModel):
    agent:               str
    rail_agent:          str
    truck_agent:         Optional[str] = None
    kind:                str
    is_combined_freight: bool
    sea_freight_id:      Optional[str] = None
    carrier:             Optional[str] = None
    agent_specific_sea:  bool
    components:          list[CostComponentOut]
    total:               float
    expired:             bool
    warnings:            list[str]


class GuardrailReport(BaseModel):
    passed:          bool
    quality_score:   float
    issues:          list[str]
    expired_options: int


class CalculationResponse(BaseModel):
    success:          bool
    request_id:       Optional[str] = None
    timestamp:        str           = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    currency:         str
    reference_date:   str
    is_historical:    bool
    best:             Optional[BreakdownOut] = None
    breakdowns:       list[BreakdownOut]     = []
    guardrail_report: GuardrailReport
    warnings:         list[str]              = []


class ReloadResponse(BaseModel):
    success: bool
    tables:  dict[str, int] = {}
    rejected: dict[str, int] = {}


class ErrorResponse(BaseModel):
    success:    bool          = False
    error:      str
    detail:     Optional[Any] = None
    request_id: Optional[str] = None
