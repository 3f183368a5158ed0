"""
calculation_engine/engine.py
Calculation facade: request → route options → per-option breakdowns → ranking.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from calculation_engine.aggregator import AgentCostBreakdown, CostAggregator
from calculation_engine.diagnostics import RateWarning, WarningCode
from calculation_engine.exceptions import InvalidRequest
from calculation_engine.resolver import RouteOptionResolver
from calculation_engine.selector import MinimumCostSelector
from guardrails.guardrail_layer import GuardrailLayer
from monitoring import CALC_REQUESTS, OPTIONS_GAUGE, STALE_RATES, get_logger, timed
from query_processor.models import CalculationRequest
from rate_store.models import RateSnapshot

log = get_logger(__name__)


@dataclass
class CalculationResult:
    """Ranked breakdowns for one route plus every diagnostic raised on the way."""
    breakdowns: list[AgentCostBreakdown] = field(default_factory=list)
    best: Optional[AgentCostBreakdown] = None
    warnings: list[str] = field(default_factory=list)
    reference_date: Optional[date] = None
    is_historical: bool = False
    rate_warnings: list[RateWarning] = field(default_factory=list)

    @property
    def has_route(self) -> bool:
        return self.best is not None

    def to_dict(self) -> dict:
        return {
            "reference_date": self.reference_date.isoformat() if self.reference_date else None,
            "is_historical":  self.is_historical,
            "best":           self.best.to_dict() if self.best is not None else None,
            "breakdowns":     [b.to_dict() for b in self.breakdowns],
            "warnings":       list(self.warnings),
        }


class CalculationEngine:
    """
    Single entry point of the cost calculation.

    Holds one immutable snapshot; `calculate` is pure apart from logging and
    metrics, so one engine can serve concurrent requests.
    """

    def __init__(
        self,
        snapshot: RateSnapshot,
        clock: Callable[[], date] = date.today,
        guardrail: Optional[GuardrailLayer] = None,
        is_historical: bool = False,
    ) -> None:
        self.snapshot      = snapshot
        self.is_historical = is_historical
        self._clock        = clock
        self._guardrail    = guardrail or GuardrailLayer()
        self._resolver     = RouteOptionResolver(snapshot)
        self._aggregator   = CostAggregator(snapshot)
        self._selector     = MinimumCostSelector()

    @timed("calculate")
    def calculate(self, request: CalculationRequest) -> CalculationResult:
        """
        Price every route option for the request and rank them.

        Args:
            request: Route, weight and caller choices.

        Returns:
            CalculationResult with ranked breakdowns, the cheapest one and warnings.

        Raises:
            InvalidRequest: a required field is missing or malformed.
        """
        report = self._guardrail.validate_input(request)
        if not report.passed:
            CALC_REQUESTS.labels(status="invalid").inc()
            raise InvalidRequest(report.issues)

        # read once; every lookup below sees the same day
        if request.reference_date is not None:
            reference_date = request.reference_date
        else:
            reference_date = self._clock()

        log.info(
            "Starting calculation",
            pol=request.pol, pod=request.pod, destination=request.destination_id,
            weight=request.weight, reference_date=reference_date.isoformat(),
            historical=self.is_historical,
        )

        resolution = self._resolver.resolve(request, reference_date)
        breakdowns = [
            self._aggregator.aggregate(option, request, reference_date)
            for option in resolution.options
        ]
        selection = self._selector.select_best(breakdowns)

        rate_warnings = _unique(
            [*resolution.warnings, *(w for b in selection.ranked for w in b.warnings)]
        )
        if not selection.ranked:
            rate_warnings.append(RateWarning(
                WarningCode.NO_ROUTE, "route",
                f"no route available for {request.pol}→{request.pod}→{request.destination_id} "
                f"on {reference_date.isoformat()}",
            ))

        result = CalculationResult(
            breakdowns=selection.ranked,
            best=selection.cheapest,
            warnings=[*report.warnings, *(str(w) for w in rate_warnings)],
            reference_date=reference_date,
            is_historical=self.is_historical,
            rate_warnings=rate_warnings,
        )

        for w in rate_warnings:
            if w.marks_expired:
                STALE_RATES.labels(category=w.category).inc()
        OPTIONS_GAUGE.set(len(result.breakdowns))
        CALC_REQUESTS.labels(status="ok" if result.has_route else "no_route").inc()

        log.info(
            "Calculation complete",
            options=len(result.breakdowns),
            best=result.best.label if result.best else None,
            best_total=result.best.total if result.best else None,
            warnings=len(result.warnings),
        )
        return result


def calculate(
    snapshot: RateSnapshot,
    request: CalculationRequest,
    clock: Callable[[], date] = date.today,
) -> CalculationResult:
    """One-shot convenience wrapper around CalculationEngine."""
    return CalculationEngine(snapshot, clock=clock).calculate(request)


def _unique(warnings: list[RateWarning]) -> list[RateWarning]:
    seen: set[RateWarning] = set()
    out: list[RateWarning] = []
    for w in warnings:
        if w not in seen:
            seen.add(w)
            out.append(w)
    return out
