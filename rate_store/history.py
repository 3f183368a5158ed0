"""
rate_store/history.py
Historical reconstruction: the rate tables as they stood at a past instant.

Starts from the records that already existed at `as_of` and replays the
audit log up to that instant.  Agents are not versioned and are kept as-is.
"""
import dataclasses
from datetime import datetime
from typing import Iterable

from monitoring import get_logger
from rate_store.models import AuditEntry, RateRecord, RateSnapshot
from rate_store.rows import TABLE_BY_ENTITY, TABLES, RowError, parse_record

log = get_logger(__name__)


def reconstruct_snapshot(
    snapshot: RateSnapshot,
    audit_log: Iterable[AuditEntry],
    as_of: datetime,
) -> RateSnapshot:
    """
    Args:
        snapshot:  current rate tables.
        audit_log: edits to replay; entries after `as_of` are ignored.
        as_of:     naive UTC instant to reconstruct.

    Returns:
        A new RateSnapshot; the input is not modified.
    """
    tables: dict[str, dict[str, RateRecord]] = {}
    for table_spec in TABLES:
        tables[table_spec.attr] = {
            rec.id: rec
            for rec in getattr(snapshot, table_spec.attr)
            if rec.created_at is None or rec.created_at <= as_of
        }

    replayed = skipped = 0
    entries = sorted((e for e in audit_log if e.timestamp <= as_of), key=lambda e: e.timestamp)
    for entry in entries:
        table_spec = TABLE_BY_ENTITY.get(entry.entity_type)
        if table_spec is None:
            skipped += 1
            log.debug("Audit entry for untracked entity skipped", entity_type=entry.entity_type)
            continue
        table = tables[table_spec.attr]

        if entry.action == "delete":
            table.pop(entry.entity_id, None)
            replayed += 1
            continue

        if entry.record is None:
            skipped += 1
            log.warning("Audit entry without record snapshot", entity=entry.entity_id, action=entry.action)
            continue
        try:
            rec = parse_record(table_spec, {"id": entry.entity_id, **entry.record})
        except RowError as exc:
            skipped += 1
            log.warning("Audit entry record unparsable", entity=entry.entity_id, reason=str(exc))
            continue
        table[entry.entity_id] = rec
        replayed += 1

    log.info(
        "Snapshot reconstructed",
        as_of=as_of.isoformat(), replayed=replayed, skipped=skipped,
    )
    return dataclasses.replace(
        snapshot,
        **{attr: tuple(records.values()) for attr, records in tables.items()},
        audit_log=tuple(entries),
    )
