"""
rate_store/rows.py
Row → record conversion at the loader boundary.

Source rows come from a loosely typed export (camelCase or snake_case keys).
A row missing a required field, or carrying a value that does not parse, is
rejected here with RowError so the calculation engine only ever sees fully
formed records.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional

from rate_store.models import (
    Agent,
    AgentSeaFreight,
    AuditEntry,
    BorderDestinationFreight,
    CombinedFreight,
    DPCost,
    DTHC,
    PortBorderFreight,
    RateRecord,
    SeaFreight,
    WeightSurchargeRule,
)


class RowError(ValueError):
    """A source row cannot be turned into a record."""


_COMMON_ALIASES: dict[str, tuple[str, ...]] = {
    "valid_from":     ("valid_from", "validFrom"),
    "valid_to":       ("valid_to", "validTo"),
    "created_at":     ("created_at", "createdAt"),
    "destination_id": ("destination_id", "destinationId"),
    "min_weight":     ("min_weight", "minWeight"),
    "max_weight":     ("max_weight", "maxWeight"),
    "local_charge":   ("local_charge", "localCharge"),
}

_NUMERIC = {"rate", "amount", "surcharge", "min_weight", "max_weight", "local_charge"}
_CODES   = {"pol", "pod", "port", "destination_id"}


@dataclass(frozen=True)
class TableSpec:
    json_key: str
    entity_type: str            # name used by the audit log
    attr: str                   # RateSnapshot attribute
    record_cls: type
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    aliases: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def keys_for(self, name: str) -> tuple[str, ...]:
        return self.aliases.get(name) or _COMMON_ALIASES.get(name) or (name,)


_WINDOW = ("id", "valid_from", "valid_to")
_META   = ("version", "created_at")

TABLES: tuple[TableSpec, ...] = (
    TableSpec("seaFreights", "seaFreight", "sea_freights", SeaFreight,
              _WINDOW + ("carrier", "pol", "pod", "rate"), _META + ("local_charge",)),
    TableSpec("agentSeaFreights", "agentSeaFreight", "agent_sea_freights", AgentSeaFreight,
              _WINDOW + ("agent", "pol", "pod", "rate"), _META + ("carrier", "local_charge"),
              aliases={"local_charge": ("local_charge", "localCharge", "llocal")}),
    TableSpec("dthcList", "dthc", "dthc", DTHC,
              _WINDOW + ("agent", "pol", "pod", "amount"), _META + ("carrier",)),
    TableSpec("dpCosts", "dpCost", "dp_costs", DPCost,
              _WINDOW + ("port", "amount"), _META),
    TableSpec("combinedFreights", "combinedFreight", "combined_freights", CombinedFreight,
              _WINDOW + ("agent", "pod", "destination_id", "rate"), _META + ("pol",)),
    TableSpec("portBorderFreights", "portBorderFreight", "port_border_freights", PortBorderFreight,
              _WINDOW + ("agent", "pod", "rate"), _META + ("pol",)),
    TableSpec("borderDestinationFreights", "borderDestinationFreight", "border_destination_freights",
              BorderDestinationFreight, _WINDOW + ("agent", "destination_id", "rate"), _META),
    TableSpec("weightSurchargeRules", "weightSurcharge", "weight_surcharge_rules", WeightSurchargeRule,
              _WINDOW + ("agent", "min_weight", "max_weight", "surcharge"), _META),
)

TABLE_BY_ENTITY: dict[str, TableSpec] = {t.entity_type: t for t in TABLES}


def normalise_code(value: str) -> str:
    """Port and destination codes compare case-insensitively."""
    return " ".join(value.split()).upper()


def parse_record(table_spec: TableSpec, row: dict[str, Any]) -> RateRecord:
    if not isinstance(row, dict):
        raise RowError(f"{table_spec.json_key}: row is not an object")
    kwargs: dict[str, Any] = {}
    for name in table_spec.required:
        raw = _lookup(row, table_spec.keys_for(name))
        if raw is None:
            raise RowError(f"{table_spec.json_key}: missing required field '{name}'")
        kwargs[name] = _convert(table_spec, name, raw)
    for name in table_spec.optional:
        raw = _lookup(row, table_spec.keys_for(name))
        if raw is not None:
            kwargs[name] = _convert(table_spec, name, raw)
    if kwargs.get("version", 1) < 1:
        raise RowError(f"{table_spec.json_key}: version must be a positive integer")
    return table_spec.record_cls(**kwargs)


def parse_agent(row: dict[str, Any]) -> Agent:
    if not isinstance(row, dict):
        raise RowError("agent row is not an object")
    agent_id = _lookup(row, ("id",))
    name     = _lookup(row, ("name",))
    if agent_id is None or name is None:
        raise RowError("agent row needs 'id' and 'name'")
    code = _lookup(row, ("code",))
    return Agent(id=str(agent_id), name=str(name).strip(), code=str(code).strip() if code is not None else None)


def parse_audit_entry(row: dict[str, Any]) -> AuditEntry:
    if not isinstance(row, dict):
        raise RowError("audit row is not an object")
    entity_type = _lookup(row, ("entity_type", "entityType"))
    entity_id   = _lookup(row, ("entity_id", "entityId"))
    action      = _lookup(row, ("action",))
    timestamp   = _lookup(row, ("timestamp",))
    if None in (entity_type, entity_id, action, timestamp):
        raise RowError("audit row needs entityType, entityId, action and timestamp")
    if action not in ("create", "update", "delete"):
        raise RowError(f"unknown audit action '{action}'")
    record = _lookup(row, ("entity_snapshot", "entitySnapshot"))
    return AuditEntry(
        entity_type=str(entity_type),
        entity_id=str(entity_id),
        action=str(action),
        timestamp=_to_datetime("timestamp", timestamp),
        record=dict(record) if isinstance(record, dict) else None,
    )


# ── Private ───────────────────────────────────────────────────────────────────

def _lookup(row: dict[str, Any], keys: tuple[str, ...]) -> Optional[Any]:
    for key in keys:
        if key in row and row[key] is not None:
            value = row[key]
            if isinstance(value, str) and not value.strip():
                continue
            return value
    return None


def _convert(table_spec: TableSpec, name: str, raw: Any) -> Any:
    if name in ("valid_from", "valid_to"):
        return _to_date(name, raw)
    if name == "created_at":
        return _to_datetime(name, raw)
    if name == "version":
        if isinstance(raw, bool) or not isinstance(raw, (int, str)):
            raise RowError(f"{table_spec.json_key}: '{name}' must be an integer")
        try:
            return int(raw)
        except ValueError:
            raise RowError(f"{table_spec.json_key}: '{name}' must be an integer") from None
    if name in _NUMERIC:
        return _to_float(table_spec, name, raw)
    text = str(raw).strip()
    return normalise_code(text) if name in _CODES else text


def _to_float(table_spec: TableSpec, name: str, raw: Any) -> float:
    if isinstance(raw, bool):
        raise RowError(f"{table_spec.json_key}: '{name}' must be numeric")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise RowError(f"{table_spec.json_key}: '{name}' must be numeric, got {raw!r}") from None
    if not math.isfinite(value):
        raise RowError(f"{table_spec.json_key}: '{name}' must be finite")
    return value


def _to_date(name: str, raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip()[:10])
    except ValueError:
        raise RowError(f"'{name}' is not an ISO date: {raw!r}") from None


def _to_datetime(name: str, raw: Any) -> datetime:
    """Timestamps are compared as naive UTC."""
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    else:
        try:
            value = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
        except ValueError:
            raise RowError(f"'{name}' is not an ISO timestamp: {raw!r}") from None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
