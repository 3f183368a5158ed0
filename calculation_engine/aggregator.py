"""
calculation_engine/aggregator.py
Cost Aggregator: turns one RouteOption into an AgentCostBreakdown.

Component order in every breakdown:
  sea_freight, local_charge, dthc,
  combined_freight | port_border + border_destination,
  weight_surcharge, dp, domestic_transport, other_<i>...

A component keeps its looked-up amount even when it does not count toward
the total (excluded by the caller, DP not requested), so the breakdown always
shows what the rate tables hold.  Only `contribution` feeds the total.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from calculation_engine.diagnostics import RateWarning, WarningCode, lookup_warnings
from calculation_engine.resolver import OptionKind, RouteOption
from calculation_engine.validity import select_active
from monitoring import get_logger
from query_processor.models import CalculationRequest, CostCategory, other_cost_key
from rate_store.models import RateSnapshot

log = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Result types
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class CostComponent:
    category: str
    label: str
    amount: float                     # looked-up value, 0.0 when nothing applies
    present: bool                     # a value was on file (explicit 0 counts)
    included: bool                    # counts toward the total
    source_id: Optional[str] = None

    @property
    def contribution(self) -> float:
        return self.amount if self.included else 0.0

    def to_dict(self) -> dict:
        return {
            "category":     self.category,
            "label":        self.label,
            "amount":       self.amount,
            "present":      self.present,
            "included":     self.included,
            "contribution": self.contribution,
            "source_id":    self.source_id,
        }


@dataclass(frozen=True)
class AgentCostBreakdown:
    label: str
    rail_agent: str
    truck_agent: Optional[str]
    kind: OptionKind
    sea_freight_id: Optional[str]
    carrier: Optional[str]
    agent_specific_sea: bool
    components: tuple[CostComponent, ...]
    total: float
    expired: bool
    warnings: tuple[RateWarning, ...] = field(default=())

    @property
    def is_combined_freight(self) -> bool:
        return self.kind is OptionKind.COMBINED

    def component(self, category: str) -> Optional[CostComponent]:
        for c in self.components:
            if c.category == category:
                return c
        return None

    def amount(self, category: str) -> float:
        """Looked-up amount of a category, 0.0 when the breakdown has none."""
        c = self.component(category)
        return c.amount if c is not None else 0.0

    @property
    def sea_freight(self) -> float:
        return self.amount(CostCategory.SEA_FREIGHT.value)

    @property
    def local_charge(self) -> float:
        return self.amount(CostCategory.LOCAL_CHARGE.value)

    @property
    def local_charge_present(self) -> bool:
        c = self.component(CostCategory.LOCAL_CHARGE.value)
        return c is not None and c.present

    @property
    def dthc(self) -> float:
        return self.amount(CostCategory.DTHC.value)

    @property
    def weight_surcharge(self) -> float:
        return self.amount(CostCategory.WEIGHT_SURCHARGE.value)

    @property
    def dp(self) -> float:
        return self.amount(CostCategory.DP.value)

    @property
    def inland(self) -> float:
        return (
            self.amount(CostCategory.COMBINED_FREIGHT.value)
            + self.amount(CostCategory.PORT_BORDER.value)
            + self.amount(CostCategory.BORDER_DESTINATION.value)
        )

    @property
    def fingerprint(self) -> tuple:
        """Identity used to collapse duplicate breakdowns."""
        return (
            self.kind.value, self.rail_agent, self.truck_agent or "", self.sea_freight_id or "",
            tuple((c.category, c.amount, c.included) for c in self.components),
        )

    def to_dict(self) -> dict:
        return {
            "agent":               self.label,
            "rail_agent":          self.rail_agent,
            "truck_agent":         self.truck_agent,
            "kind":                self.kind.value,
            "is_combined_freight": self.is_combined_freight,
            "sea_freight_id":      self.sea_freight_id,
            "carrier":             self.carrier,
            "agent_specific_sea":  self.agent_specific_sea,
            "components":          [c.to_dict() for c in self.components],
            "total":               self.total,
            "expired":             self.expired,
            "warnings":            [str(w) for w in self.warnings],
        }


# ─────────────────────────────────────────────────────────────────────────────
# Aggregator
# ─────────────────────────────────────────────────────────────────────────────
class CostAggregator:

    def __init__(self, snapshot: RateSnapshot) -> None:
        self.snapshot = snapshot

    def aggregate(
        self,
        option: RouteOption,
        request: CalculationRequest,
        reference_date: date,
    ) -> AgentCostBreakdown:
        components: list[CostComponent] = []
        warnings: list[RateWarning] = []

        self._sea(option, request, reference_date, components, warnings)
        self._dthc(option, request, reference_date, components, warnings)
        self._inland(option, request, components)
        self._weight_surcharge(option, request, reference_date, components, warnings)
        self._dp(request, reference_date, components, warnings)
        self._caller_costs(request, components)

        total = round(sum(c.contribution for c in components), 2)
        sea = option.sea_leg
        breakdown = AgentCostBreakdown(
            label=option.label,
            rail_agent=option.rail_agent,
            truck_agent=option.truck_agent,
            kind=option.kind,
            sea_freight_id=sea.id if sea is not None else None,
            carrier=sea.carrier if sea is not None else None,
            agent_specific_sea=sea.agent_specific if sea is not None else False,
            components=tuple(components),
            total=total,
            expired=any(w.marks_expired for w in warnings),
            warnings=tuple(warnings),
        )
        log.debug(
            "Option aggregated",
            agent=breakdown.label, kind=breakdown.kind.value,
            sea_freight=breakdown.sea_freight_id, total=total, expired=breakdown.expired,
        )
        return breakdown

    # ── Sea leg ───────────────────────────────────────────────────────────────

    def _sea(self, option, request, day, components, warnings) -> None:
        sea_cat, local_cat = CostCategory.SEA_FREIGHT.value, CostCategory.LOCAL_CHARGE.value
        sea = option.sea_leg

        if sea is None:
            components.append(CostComponent(sea_cat, "Sea freight", 0.0, False, False))
            components.append(CostComponent(local_cat, "Local charge", 0.0, False, False))
            if not request.is_excluded(sea_cat):
                warnings.append(RateWarning(
                    WarningCode.MISSING_RATE, sea_cat,
                    f"sea freight {request.pol}→{request.pod}: no rate valid on {day.isoformat()}",
                ))
            return

        origin = f"agent {sea.agent}" if sea.agent_specific else (sea.carrier or "generic")
        components.append(CostComponent(
            sea_cat, f"Sea freight ({origin})", round(sea.rate, 2), True,
            not request.is_excluded(sea_cat), sea.id,
        ))

        local = sea.local_charge
        present = local is not None
        components.append(CostComponent(
            local_cat, "L.LOCAL" if sea.agent_specific else "Local charge",
            round(local, 2) if present else 0.0, present,
            present and not request.is_excluded(local_cat), sea.id,
        ))
        if not present and not request.is_excluded(local_cat):
            warnings.append(RateWarning(
                WarningCode.ABSENT_LOCAL_CHARGE, local_cat,
                f"sea freight {sea.id} carries no local charge, counted as 0",
            ))

    def _dthc(self, option, request, day, components, warnings) -> None:
        cat = CostCategory.DTHC.value
        agent = option.rail_agent
        carrier = option.sea_leg.carrier if option.sea_leg is not None else None
        keyed = [
            d for d in self.snapshot.dthc
            if d.agent == agent and d.pol == request.pol and d.pod == request.pod
        ]

        # carrier-specific record first, then the carrier-agnostic one
        if carrier is None:
            lookup = select_active(keyed, day)
        else:
            lookup = select_active((d for d in keyed if d.carrier is None), day)
            specific = select_active((d for d in keyed if d.carrier == carrier), day)
            if specific.found or not lookup.exists:
                lookup = specific

        rec = lookup.record
        excluded = request.is_excluded(cat)
        components.append(CostComponent(
            cat, "DTHC", round(rec.amount, 2) if rec is not None else 0.0,
            rec is not None, rec is not None and not excluded,
            rec.id if rec is not None else None,
        ))
        if not excluded:
            warnings.extend(lookup_warnings(
                lookup, cat, f"DTHC {agent} {request.pol}→{request.pod}", day,
            ))

    # ── Inland ────────────────────────────────────────────────────────────────

    def _inland(self, option, request, components) -> None:
        leg = option.inland
        if leg.kind is OptionKind.COMBINED:
            cat = CostCategory.COMBINED_FREIGHT.value
            components.append(CostComponent(
                cat, f"Combined freight ({leg.rail_agent})", round(leg.combined.rate, 2),
                True, not request.is_excluded(cat), leg.combined.id,
            ))
            return

        rail_cat = CostCategory.PORT_BORDER.value
        truck_cat = CostCategory.BORDER_DESTINATION.value
        components.append(CostComponent(
            rail_cat, f"Rail freight ({leg.rail_agent})", round(leg.port_border.rate, 2),
            True, not request.is_excluded(rail_cat), leg.port_border.id,
        ))
        components.append(CostComponent(
            truck_cat, f"Truck freight ({leg.truck_agent})", round(leg.border_destination.rate, 2),
            True, not request.is_excluded(truck_cat), leg.border_destination.id,
        ))

    # ── Surcharges and fixed costs ────────────────────────────────────────────

    def _weight_surcharge(self, option, request, day, components, warnings) -> None:
        cat = CostCategory.WEIGHT_SURCHARGE.value
        agent = option.rail_agent
        lookup = select_active(
            (r for r in self.snapshot.weight_surcharge_rules
             if r.agent == agent and r.covers(request.weight)),
            day,
        )
        rec = lookup.record
        excluded = request.is_excluded(cat)
        components.append(CostComponent(
            cat, f"Weight surcharge ({request.weight:,.0f} kg)",
            round(rec.surcharge, 2) if rec is not None else 0.0,
            rec is not None, rec is not None and not excluded,
            rec.id if rec is not None else None,
        ))
        if not excluded:
            warnings.extend(lookup_warnings(
                lookup, cat, f"weight surcharge {agent} @ {request.weight:g} kg", day,
                required=False,
            ))

    def _dp(self, request, day, components, warnings) -> None:
        cat = CostCategory.DP.value
        lookup = select_active((d for d in self.snapshot.dp_costs if d.port == request.pol), day)
        rec = lookup.record
        counts = request.include_dp and not request.is_excluded(cat)
        components.append(CostComponent(
            cat, f"DP ({request.pol})", round(rec.amount, 2) if rec is not None else 0.0,
            rec is not None, rec is not None and counts,
            rec.id if rec is not None else None,
        ))
        if counts:
            warnings.extend(lookup_warnings(lookup, cat, f"DP cost {request.pol}", day))

    @staticmethod
    def _caller_costs(request, components) -> None:
        if request.domestic_transport is not None:
            cat = CostCategory.DOMESTIC_TRANSPORT.value
            components.append(CostComponent(
                cat, "Domestic transport", round(request.domestic_transport, 2),
                True, not request.is_excluded(cat),
            ))
        for i, cost in enumerate(request.other_costs):
            key = other_cost_key(i)
            components.append(CostComponent(
                key, cost.label or f"Other cost {i + 1}", round(cost.amount, 2),
                True, not request.is_excluded(key),
            ))
