"""
guardrails/guardrail_layer.py
Guardrail Layer
Quality and safety checks around a calculation:
  1. InputValidator : validates CalculationRequest before calculation (hard issues + soft warnings)
  2. OutputValidator: recomputes totals from components and checks the ranking
  3. QualityScorer  : share of breakdowns priced entirely from valid rates
"""
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from config.settings import settings
from monitoring import get_logger
from query_processor.models import CalculationRequest, is_known_category

if TYPE_CHECKING:
    from calculation_engine.engine import CalculationResult

log = get_logger(__name__)

# Totals are rounded to cents; allow for float noise across many components
_TOLERANCE = 0.011


@dataclass
class ValidationReport:
    passed: bool
    confidence_score: float
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ── 1. Input Validator ────────────────────────────────────────────────────────

class InputValidator:

    def validate(self, request: CalculationRequest) -> ValidationReport:
        issues: list[str] = []
        warnings: list[str] = []
        score = 1.0

        for name in ("pol", "pod", "destination_id"):
            if not getattr(request, name):
                issues.append(f"{name} is required")
                score -= 0.3

        weight = request.weight
        if not isinstance(weight, (int, float)) or isinstance(weight, bool) or not math.isfinite(weight):
            issues.append("weight must be a finite number")
            score -= 0.5
        elif weight <= 0:
            issues.append("weight must be > 0")
            score -= 0.5
        elif weight > settings.max_reasonable_weight_kg:
            warnings.append(f"weight {weight:,.0f} kg is unusually large, please verify")
            score -= 0.1

        if request.pol and request.pol == request.pod:
            warnings.append(f"pol and pod are both {request.pol}")
            score -= 0.1

        if request.domestic_transport is not None and not _finite(request.domestic_transport):
            issues.append("domestic_transport must be a finite number")
        for i, cost in enumerate(request.other_costs):
            if not _finite(cost.amount):
                issues.append(f"other cost #{i} ({cost.label or 'unlabelled'}) must have a finite amount")

        for key in sorted(request.excluded_categories):
            if not is_known_category(key):
                warnings.append(f"unknown excluded category '{key}' ignored")

        return ValidationReport(
            passed=len(issues) == 0,
            confidence_score=max(0.0, score),
            issues=issues,
            warnings=warnings,
        )


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# ── 2. Output Validator ───────────────────────────────────────────────────────

class OutputValidator:

    def validate(self, result: "CalculationResult") -> ValidationReport:
        issues: list[str] = []

        for b in result.breakdowns:
            recomputed = round(sum(c.contribution for c in b.components), 2)
            if abs(recomputed - b.total) > _TOLERANCE:
                issues.append(f"{b.label}: total {b.total:.2f} does not match components {recomputed:.2f}")
            if b.total < 0:
                issues.append(f"{b.label}: total cannot be negative")

        if result.breakdowns and result.best is not result.breakdowns[0]:
            issues.append("best option is not the first ranked breakdown")
        if result.best is not None and any(b.total < result.best.total for b in result.breakdowns):
            issues.append("a cheaper breakdown than the best option exists")

        return ValidationReport(
            passed=len(issues) == 0,
            confidence_score=1.0 if not issues else 0.5,
            issues=issues,
        )


# ── 3. Quality Scorer ─────────────────────────────────────────────────────────

class QualityScorer:

    def score(self, result: "CalculationResult") -> float:
        if not result.breakdowns:
            return 0.0
        fresh = sum(1 for b in result.breakdowns if not b.expired)
        return round(fresh / len(result.breakdowns), 3)


# ── Guardrail Orchestrator ────────────────────────────────────────────────────

class GuardrailLayer:
    """
    Runs all guardrail components and returns a unified report.
    """

    def __init__(self) -> None:
        self._input_validator  = InputValidator()
        self._output_validator = OutputValidator()
        self._quality_scorer   = QualityScorer()

    def validate_input(self, request: CalculationRequest) -> ValidationReport:
        report = self._input_validator.validate(request)
        if not report.passed:
            log.warning("Input validation failed", issues=report.issues)
            from monitoring import GUARDRAIL_FAILURES
            GUARDRAIL_FAILURES.labels(check_type="input").inc()
        return report

    def validate_output(self, result: "CalculationResult") -> dict[str, Any]:
        """
        Runs all post-calculation checks and returns a serialisable summary dict.
        """
        output_report = self._output_validator.validate(result)
        quality       = self._quality_scorer.score(result)

        log.info(
            "Guardrail output check",
            passed=output_report.passed,
            quality=quality,
            issues=len(output_report.issues),
        )

        if not output_report.passed:
            from monitoring import GUARDRAIL_FAILURES
            GUARDRAIL_FAILURES.labels(check_type="output").inc()

        return {
            "passed": output_report.passed,
            "quality_score": quality,
            "issues": output_report.issues,
            "expired_options": sum(1 for b in result.breakdowns if b.expired),
        }
