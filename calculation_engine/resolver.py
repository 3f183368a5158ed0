"""
calculation_engine/resolver.py
Route Option Resolver

Enumerates every viable inland path for a route and crosses it with the
sea-leg candidates:

  combined: one all-in CombinedFreight price, pod → final destination
  separate: PortBorderFreight (rail agent) + BorderDestinationFreight (truck agent)

An agent with both a combined and a separate path yields both options; the
selector decides which one wins.  Expired inland records never produce an
option, they only surface as route warnings.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar, Union

from calculation_engine.diagnostics import RateWarning, WarningCode, lookup_warnings
from calculation_engine.validity import is_valid_on_date, select_active
from monitoring import get_logger
from query_processor.models import CalculationRequest, CostCategory
from rate_store.models import (
    Agent,
    AgentSeaFreight,
    BorderDestinationFreight,
    CombinedFreight,
    PortBorderFreight,
    RateSnapshot,
    SeaFreight,
)

log = get_logger(__name__)

T = TypeVar("T")


class OptionKind(str, Enum):
    COMBINED = "combined"
    SEPARATE = "separate"


@dataclass(frozen=True)
class SeaLeg:
    freight: Union[SeaFreight, AgentSeaFreight]

    @property
    def agent_specific(self) -> bool:
        return isinstance(self.freight, AgentSeaFreight)

    @property
    def agent(self) -> Optional[str]:
        return self.freight.agent if isinstance(self.freight, AgentSeaFreight) else None

    @property
    def id(self) -> str:
        return self.freight.id

    @property
    def rate(self) -> float:
        return self.freight.rate

    @property
    def local_charge(self) -> Optional[float]:
        return self.freight.local_charge

    @property
    def carrier(self) -> Optional[str]:
        return self.freight.carrier


@dataclass(frozen=True)
class InlandLeg:
    kind: OptionKind
    rail_agent: str
    truck_agent: Optional[str] = None
    combined: Optional[CombinedFreight] = None
    port_border: Optional[PortBorderFreight] = None
    border_destination: Optional[BorderDestinationFreight] = None


@dataclass(frozen=True)
class RouteOption:
    """One candidate: an inland path plus (at most) one sea leg."""
    inland: InlandLeg
    sea_leg: Optional[SeaLeg] = None

    @property
    def kind(self) -> OptionKind:
        return self.inland.kind

    @property
    def is_combined(self) -> bool:
        return self.inland.kind is OptionKind.COMBINED

    @property
    def rail_agent(self) -> str:
        return self.inland.rail_agent

    @property
    def truck_agent(self) -> Optional[str]:
        return self.inland.truck_agent

    @property
    def label(self) -> str:
        truck = self.inland.truck_agent
        if truck is None or truck == self.inland.rail_agent:
            return self.inland.rail_agent
        return f"{self.inland.rail_agent} + {truck}"


@dataclass
class Resolution:
    options: list[RouteOption] = field(default_factory=list)
    warnings: list[RateWarning] = field(default_factory=list)


class RouteOptionResolver:
    """Stateless apart from the snapshot it reads."""

    def __init__(self, snapshot: RateSnapshot) -> None:
        self.snapshot = snapshot

    def resolve(self, request: CalculationRequest, reference_date: date) -> Resolution:
        warnings: list[RateWarning] = []
        inland   = self._inland_legs(request, reference_date, warnings)
        sea_legs = self._sea_legs(request, reference_date, warnings)

        options: list[RouteOption] = []
        for leg in inland:
            candidates = [
                s for s in sea_legs
                if not s.agent_specific or s.agent == leg.rail_agent
            ]
            if not candidates:
                options.append(RouteOption(inland=leg))
                continue
            options.extend(RouteOption(inland=leg, sea_leg=s) for s in candidates)

        log.debug(
            "Route options resolved",
            pol=request.pol, pod=request.pod, destination=request.destination_id,
            inland_legs=len(inland), sea_legs=len(sea_legs), options=len(options),
        )
        return Resolution(options=options, warnings=warnings)

    # ── Inland ────────────────────────────────────────────────────────────────

    def _inland_legs(
        self, request: CalculationRequest, day: date, warnings: list[RateWarning]
    ) -> list[InlandLeg]:
        snap = self.snapshot
        pol, pod, dest = request.pol, request.pod, request.destination_id

        trucks: dict[str, BorderDestinationFreight] = {}
        for truck in _agent_names(snap.truck_agents):
            lookup = select_active(
                (f for f in snap.border_destination_freights
                 if f.agent == truck and f.destination_id == dest),
                day,
            )
            warnings.extend(lookup_warnings(
                lookup, CostCategory.BORDER_DESTINATION.value,
                f"truck freight {truck} border→{dest}", day, required=False,
            ))
            if lookup.found:
                trucks[truck] = lookup.record

        legs: list[InlandLeg] = []
        for rail in _agent_names(snap.rail_agents):
            combined = select_active(
                (f for f in snap.combined_freights
                 if f.agent == rail and f.pod == pod and f.destination_id == dest
                 and (f.pol is None or f.pol == pol)),
                day,
            )
            warnings.extend(lookup_warnings(
                combined, CostCategory.COMBINED_FREIGHT.value,
                f"combined freight {rail} {pod}→{dest}", day, required=False,
            ))
            if combined.found:
                legs.append(InlandLeg(OptionKind.COMBINED, rail, combined=combined.record))

            rail_leg = select_active(
                (f for f in snap.port_border_freights if f.agent == rail and f.pod == pod),
                day,
            )
            warnings.extend(lookup_warnings(
                rail_leg, CostCategory.PORT_BORDER.value,
                f"rail freight {rail} {pod}→border", day, required=False,
            ))
            if not rail_leg.found:
                continue
            for truck, truck_freight in trucks.items():
                legs.append(InlandLeg(
                    OptionKind.SEPARATE, rail, truck,
                    port_border=rail_leg.record,
                    border_destination=truck_freight,
                ))
        return legs

    # ── Sea ───────────────────────────────────────────────────────────────────

    def _sea_legs(
        self, request: CalculationRequest, day: date, warnings: list[RateWarning]
    ) -> list[SeaLeg]:
        pol, pod = request.pol, request.pod
        generic = [f for f in self.snapshot.sea_freights if f.pol == pol and f.pod == pod]
        per_agent = [f for f in self.snapshot.agent_sea_freights if f.pol == pol and f.pod == pod]

        selected = request.selected_sea_freight_ids
        if selected is not None:
            on_file = {f.id: f for f in (*generic, *per_agent)}
            for sid in sorted(selected):
                rec = on_file.get(sid)
                if rec is None:
                    warnings.append(RateWarning(
                        WarningCode.UNAVAILABLE_SELECTION, CostCategory.SEA_FREIGHT.value,
                        f"selected sea freight {sid} is not on file for {pol}→{pod}",
                    ))
                elif not is_valid_on_date(rec.valid_from, rec.valid_to, day):
                    warnings.append(RateWarning(
                        WarningCode.UNAVAILABLE_SELECTION, CostCategory.SEA_FREIGHT.value,
                        f"selected sea freight {sid} is not valid on {day.isoformat()}",
                    ))
            generic = [f for f in generic if f.id in selected]
            per_agent = [f for f in per_agent if f.id in selected]

        legs: list[SeaLeg] = []
        for group in _grouped(generic, lambda f: (f.carrier,)):
            carrier = group[0].carrier
            lookup = select_active(group, day)
            warnings.extend(lookup_warnings(
                lookup, CostCategory.SEA_FREIGHT.value,
                f"sea freight {carrier} {pol}→{pod}", day, required=False,
            ))
            if lookup.found:
                legs.append(SeaLeg(lookup.record))

        for group in _grouped(per_agent, lambda f: (f.agent, f.carrier or "")):
            head = group[0]
            carrier = f" {head.carrier}" if head.carrier is not None else ""
            lookup = select_active(group, day)
            warnings.extend(lookup_warnings(
                lookup, CostCategory.SEA_FREIGHT.value,
                f"agent sea freight {head.agent}{carrier} {pol}→{pod}", day, required=False,
            ))
            if lookup.found:
                legs.append(SeaLeg(lookup.record))
        return legs


def _agent_names(agents: Iterable[Agent]) -> list[str]:
    return sorted({a.name for a in agents})


def _grouped(records: Iterable[T], key: Callable[[T], tuple]) -> list[list[T]]:
    groups: dict[tuple, list[T]] = {}
    for rec in records:
        groups.setdefault(key(rec), []).append(rec)
    return [groups[k] for k in sorted(groups)]
