"""
rate_store/models.py
Typed rate records and the immutable snapshot handed to the calculation engine.

Every record is frozen; the engine only ever reads them.  Optional numeric
fields are ``None`` when the source row had no value, never 0, so an
explicit zero charge stays distinguishable from a missing one.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True, kw_only=True)
class RateRecord:
    """Fields shared by every date-gated rate table."""
    id: str
    valid_from: date
    valid_to: date
    version: int = 1
    created_at: Optional[datetime] = None


@dataclass(frozen=True, kw_only=True)
class SeaFreight(RateRecord):
    carrier: str
    pol: str
    pod: str
    rate: float
    local_charge: Optional[float] = None


@dataclass(frozen=True, kw_only=True)
class AgentSeaFreight(RateRecord):
    agent: str
    pol: str
    pod: str
    rate: float
    carrier: Optional[str] = None
    local_charge: Optional[float] = None     # the L.LOCAL amount


@dataclass(frozen=True, kw_only=True)
class DTHC(RateRecord):
    agent: str
    pol: str
    pod: str
    amount: float
    carrier: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CombinedFreight(RateRecord):
    agent: str
    pod: str
    destination_id: str
    rate: float
    pol: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PortBorderFreight(RateRecord):
    agent: str
    pod: str
    rate: float
    pol: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class BorderDestinationFreight(RateRecord):
    agent: str
    destination_id: str
    rate: float


@dataclass(frozen=True, kw_only=True)
class WeightSurchargeRule(RateRecord):
    agent: str
    min_weight: float
    max_weight: float
    surcharge: float

    def covers(self, weight: float) -> bool:
        return self.min_weight <= weight <= self.max_weight


@dataclass(frozen=True, kw_only=True)
class DPCost(RateRecord):
    port: str
    amount: float


@dataclass(frozen=True)
class Agent:
    """Rail or truck agent. Agents are not date-gated."""
    id: str
    name: str
    code: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    """One recorded edit of a rate record, used for historical reconstruction."""
    entity_type: str
    entity_id: str
    action: str                      # create | update | delete
    timestamp: datetime
    record: Optional[dict] = None    # row as it looked after the edit


@dataclass(frozen=True)
class RateSnapshot:
    """All rate tables as loaded at one point in time."""
    sea_freights:               tuple[SeaFreight, ...] = ()
    agent_sea_freights:         tuple[AgentSeaFreight, ...] = ()
    dthc:                       tuple[DTHC, ...] = ()
    dp_costs:                   tuple[DPCost, ...] = ()
    combined_freights:          tuple[CombinedFreight, ...] = ()
    port_border_freights:       tuple[PortBorderFreight, ...] = ()
    border_destination_freights: tuple[BorderDestinationFreight, ...] = ()
    weight_surcharge_rules:     tuple[WeightSurchargeRule, ...] = ()
    rail_agents:                tuple[Agent, ...] = ()
    truck_agents:               tuple[Agent, ...] = ()
    audit_log:                  tuple[AuditEntry, ...] = field(default=(), compare=False)

    def counts(self) -> dict[str, int]:
        return {
            "sea_freights":                len(self.sea_freights),
            "agent_sea_freights":          len(self.agent_sea_freights),
            "dthc":                        len(self.dthc),
            "dp_costs":                    len(self.dp_costs),
            "combined_freights":           len(self.combined_freights),
            "port_border_freights":        len(self.port_border_freights),
            "border_destination_freights": len(self.border_destination_freights),
            "weight_surcharge_rules":      len(self.weight_surcharge_rules),
            "rail_agents":                 len(self.rail_agents),
            "truck_agents":                len(self.truck_agents),
            "audit_log":                   len(self.audit_log),
        }
