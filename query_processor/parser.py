"""
query_processor/parser.py
Request parser: loosely typed payloads (API bodies, CLI arguments, JSON
files) → CalculationRequest.

Keys are accepted in snake_case or camelCase.  Values that are present but
cannot be parsed raise InvalidRequest; absent values keep the request
defaults and are left to the input guardrail to judge.
"""
from datetime import date, datetime
from typing import Any, Iterable, Optional

from calculation_engine.exceptions import InvalidRequest
from monitoring import get_logger
from query_processor.models import CalculationRequest, OtherCost
from rate_store.rows import normalise_code

log = get_logger(__name__)

_KEYS: dict[str, tuple[str, ...]] = {
    "pol":                      ("pol", "origin"),
    "pod":                      ("pod", "destination_port", "destinationPort"),
    "destination_id":           ("destination_id", "destinationId", "destination"),
    "weight":                   ("weight", "weight_kg", "weightKg"),
    "include_dp":               ("include_dp", "includeDp", "includeDP"),
    "reference_date":           ("reference_date", "referenceDate", "calculation_date", "calculationDate"),
    "selected_sea_freight_ids": ("selected_sea_freight_ids", "selectedSeaFreightIds"),
    "excluded_categories":      ("excluded_categories", "excludedCategories", "excludedCosts"),
    "other_costs":              ("other_costs", "otherCosts"),
    "domestic_transport":       ("domestic_transport", "domesticTransport"),
}


class RequestParser:
    """Stateless; one instance can be shared."""

    def from_payload(self, payload: dict[str, Any]) -> CalculationRequest:
        if not isinstance(payload, dict):
            raise InvalidRequest(["request body must be an object"])

        issues: list[str] = []
        get = lambda name: _first(payload, _KEYS[name])  # noqa: E731

        weight = self._number(get("weight"), "weight", issues)
        domestic = self._number(get("domestic_transport"), "domestic_transport", issues)

        request = CalculationRequest(
            pol=self._code(get("pol")),
            pod=self._code(get("pod")),
            destination_id=self._code(get("destination_id")),
            weight=weight if weight is not None else 0.0,
            include_dp=self._flag(get("include_dp"), "include_dp", issues),
            reference_date=self._date(get("reference_date"), issues),
            selected_sea_freight_ids=self._ids(get("selected_sea_freight_ids"), issues),
            excluded_categories=self._categories(get("excluded_categories"), issues),
            other_costs=self._other_costs(get("other_costs"), issues),
            domestic_transport=domestic,
        )
        if issues:
            log.warning("Request payload rejected", issues=issues)
            raise InvalidRequest(issues)

        log.debug(
            "Request parsed",
            pol=request.pol, pod=request.pod, destination=request.destination_id,
            weight=request.weight,
        )
        return request

    # ── Field parsers ─────────────────────────────────────────────────────────

    @staticmethod
    def _code(raw: Any) -> str:
        if raw is None:
            return ""
        return normalise_code(str(raw))

    @staticmethod
    def _number(raw: Any, name: str, issues: list[str]) -> Optional[float]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        if isinstance(raw, bool):
            issues.append(f"{name} must be a number")
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            issues.append(f"{name} must be a number, got {raw!r}")
            return None

    @staticmethod
    def _flag(raw: Any, name: str, issues: list[str]) -> bool:
        if raw is None:
            return False
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in ("1", "true", "yes", "y"):
            return True
        if text in ("0", "false", "no", "n", ""):
            return False
        issues.append(f"{name} must be a boolean, got {raw!r}")
        return False

    @staticmethod
    def _date(raw: Any, issues: list[str]) -> Optional[date]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        try:
            return date.fromisoformat(str(raw).strip()[:10])
        except ValueError:
            issues.append(f"reference_date is not an ISO date: {raw!r}")
            return None

    @staticmethod
    def _ids(raw: Any, issues: list[str]) -> Optional[frozenset[str]]:
        # None or blank means "no preference"; an empty list is an explicit empty selection
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        if isinstance(raw, str):
            raw = [s for s in raw.split(",") if s.strip()]
        if not _is_sequence(raw):
            issues.append("selected_sea_freight_ids must be a list of ids")
            return None
        return frozenset(str(s).strip() for s in raw)

    @staticmethod
    def _categories(raw: Any, issues: list[str]) -> frozenset[str]:
        if raw is None:
            return frozenset()
        if isinstance(raw, str):
            raw = raw.split(",")
        if isinstance(raw, dict):
            # {"dthc": true, "dp": false} form
            raw = [k for k, v in raw.items() if v]
        if not _is_sequence(raw):
            issues.append("excluded_categories must be a list of category keys")
            return frozenset()
        return frozenset(str(c).strip().lower() for c in raw if str(c).strip())

    def _other_costs(self, raw: Any, issues: list[str]) -> tuple[OtherCost, ...]:
        if raw is None:
            return ()
        if not _is_sequence(raw):
            issues.append("other_costs must be a list")
            return ()
        costs: list[OtherCost] = []
        for i, item in enumerate(raw):
            if not isinstance(item, dict):
                issues.append(f"other cost #{i} must be an object")
                continue
            label = _first(item, ("label", "category", "name"))
            amount = self._number(_first(item, ("amount",)), f"other cost #{i} amount", issues)
            if amount is None:
                if _first(item, ("amount",)) is None:
                    issues.append(f"other cost #{i} needs an amount")
                continue
            costs.append(OtherCost(label=str(label).strip() if label is not None else "", amount=amount))
        return tuple(costs)


def _first(payload: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))
