"""
rate_store/json_store.py
JSON rate snapshot store
"""
import json
from collections import Counter
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Optional, Union

from calculation_engine.validity import periods_overlap, validate_validity_period, validity_status
from config.settings import settings
from monitoring import REJECTED_ROWS, get_logger
from rate_store.history import reconstruct_snapshot
from rate_store.models import RateRecord, RateSnapshot
from rate_store.rows import TABLES, RowError, TableSpec, parse_agent, parse_audit_entry, parse_record

log = get_logger(__name__)

# Fields that identify "the same rate" for the overlap lint, per table
_LINT_KEYS: dict[str, tuple[str, ...]] = {
    "seaFreights":               ("carrier", "pol", "pod"),
    "agentSeaFreights":          ("agent", "carrier", "pol", "pod"),
    "dthcList":                  ("agent", "carrier", "pol", "pod"),
    "dpCosts":                   ("port",),
    "combinedFreights":          ("agent", "pol", "pod", "destination_id"),
    "portBorderFreights":        ("agent", "pod"),
    "borderDestinationFreights": ("agent", "destination_id"),
    "weightSurchargeRules":      ("agent", "min_weight", "max_weight"),
}


def load_snapshot(data: dict[str, Any], source: str = "<memory>") -> tuple[RateSnapshot, dict[str, int]]:
    """
    Build a RateSnapshot from a parsed JSON document.

    Returns the snapshot and the number of rejected rows per table.
    """
    rejected: Counter = Counter()
    tables: dict[str, tuple] = {}

    for table_spec in TABLES:
        records: list[RateRecord] = []
        for i, row in enumerate(_rows(data, table_spec.json_key, source)):
            try:
                records.append(parse_record(table_spec, row))
            except RowError as exc:
                rejected[table_spec.json_key] += 1
                log.warning("Row rejected", table=table_spec.json_key, index=i, reason=str(exc))
        _lint(table_spec, records)
        tables[table_spec.attr] = tuple(records)

    for key, attr in (("railAgents", "rail_agents"), ("truckAgents", "truck_agents")):
        agents = []
        for i, row in enumerate(_rows(data, key, source)):
            try:
                agents.append(parse_agent(row))
            except RowError as exc:
                rejected[key] += 1
                log.warning("Row rejected", table=key, index=i, reason=str(exc))
        tables[attr] = tuple(agents)

    audit = []
    for i, row in enumerate(_rows(data, "auditLogs", source)):
        try:
            audit.append(parse_audit_entry(row))
        except RowError as exc:
            rejected["auditLogs"] += 1
            log.warning("Row rejected", table="auditLogs", index=i, reason=str(exc))
    tables["audit_log"] = tuple(sorted(audit, key=lambda e: e.timestamp))

    for table, n in rejected.items():
        REJECTED_ROWS.labels(table=table).inc(n)

    return RateSnapshot(**tables), dict(rejected)


class JSONRateStore:
    """
    Read-optimised interface to the rate snapshot file.
    Lazy-loads on first access and caches in memory.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path or settings.rate_snapshot_path)
        self._snapshot: Optional[RateSnapshot] = None
        self._rejected: dict[str, int] = {}

    # ── Public API ────────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> RateSnapshot:
        if self._snapshot is None:
            self._snapshot, self._rejected = self._load()
        return self._snapshot

    @property
    def rejected(self) -> dict[str, int]:
        if self._snapshot is None:
            self._snapshot, self._rejected = self._load()
        return dict(self._rejected)

    def reload(self) -> RateSnapshot:
        """Drop the cache and read the file again."""
        self._snapshot = None
        log.info("Rate snapshot cache cleared, reloading", path=str(self.path))
        return self.snapshot

    def snapshot_as_of(self, day: date) -> RateSnapshot:
        """Rate tables as they stood at the end of `day`, replayed from the audit log."""
        snap = self.snapshot
        return reconstruct_snapshot(snap, snap.audit_log, datetime.combine(day, time.max))

    def stats(self) -> dict[str, Any]:
        return {
            "path":     str(self.path),
            "loaded":   self.path.exists(),
            "tables":   self.snapshot.counts(),
            "rejected": self.rejected,
        }

    def validity_summary(self, today: Optional[date] = None) -> dict[str, int]:
        """Count rate records per validity status relative to `today`."""
        if today is None:
            today = date.today()
        counts: Counter = Counter()
        snap = self.snapshot
        for table_spec in TABLES:
            for rec in getattr(snap, table_spec.attr):
                info = validity_status(rec.valid_from, rec.valid_to, today, settings.expiring_within_days)
                counts[info.status] += 1
        return dict(counts)

    def ports(self) -> dict[str, list[str]]:
        """Distinct route codes present in the snapshot."""
        snap = self.snapshot
        pols = {f.pol for f in (*snap.sea_freights, *snap.agent_sea_freights)}
        pods = {f.pod for f in (*snap.sea_freights, *snap.agent_sea_freights, *snap.port_border_freights)}
        dests = {f.destination_id for f in (*snap.combined_freights, *snap.border_destination_freights)}
        return {"pol": sorted(pols), "pod": sorted(pods), "destination": sorted(dests)}

    # ── Private ───────────────────────────────────────────────────────────────

    def _load(self) -> tuple[RateSnapshot, dict[str, int]]:
        if not self.path.exists():
            log.warning("Rate snapshot not found, using empty snapshot", path=str(self.path))
            return RateSnapshot(), {}
        with open(self.path, encoding="utf-8") as f:
            data: dict[str, Any] = json.load(f)
        snapshot, rejected = load_snapshot(data, str(self.path))
        log.info(
            "Rate snapshot loaded",
            path=str(self.path),
            rejected=sum(rejected.values()),
            **snapshot.counts(),
        )
        return snapshot, rejected


def _rows(data: dict[str, Any], key: str, source: str) -> list:
    rows = data.get(key) or []
    if not isinstance(rows, list):
        log.warning("Table is not a list, ignored", table=key, source=source)
        return []
    return rows


def _lint(table_spec: TableSpec, records: list[RateRecord]) -> None:
    """Log inverted and overlapping windows; such rows are kept."""
    key_fields = _LINT_KEYS.get(table_spec.json_key, ())
    groups: dict[tuple, list[RateRecord]] = {}
    for rec in records:
        problem = validate_validity_period(rec.valid_from, rec.valid_to)
        if problem:
            log.warning("Inverted validity window", table=table_spec.json_key, id=rec.id, problem=problem)
            continue
        groups.setdefault(tuple(getattr(rec, f, None) for f in key_fields), []).append(rec)

    for key, group in groups.items():
        group.sort(key=lambda r: (r.valid_from, r.id))
        widest = group[0]
        for rec in group[1:]:
            if periods_overlap(widest.valid_from, widest.valid_to, rec.valid_from, rec.valid_to):
                log.warning(
                    "Overlapping validity windows",
                    table=table_spec.json_key, key=key, first=widest.id, second=rec.id,
                )
            if rec.valid_to > widest.valid_to:
                widest = rec
