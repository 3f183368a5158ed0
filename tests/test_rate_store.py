"""
tests/test_rate_store.py
Loader boundary, JSON snapshot store and historical reconstruction.
"""
import json
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from rate_store.history import reconstruct_snapshot
from rate_store.json_store import JSONRateStore, load_snapshot
from rate_store.models import AuditEntry, CombinedFreight, RateSnapshot
from rate_store.rows import TABLE_BY_ENTITY, TABLES, RowError, parse_agent, parse_audit_entry, parse_record

BUNDLED = Path(__file__).parent.parent / "data" / "rates.json"


class TestRows:

    def test_camel_case_row(self):
        rec = parse_record(TABLE_BY_ENTITY["combinedFreight"], {
            "id": "cf-1", "agent": "A", "pod": " qingdao ", "destinationId": "osh", "rate": "300.5",
            "validFrom": "2025-05-01", "validTo": "2025-06-30T00:00:00Z",
        })
        assert rec.pod == "QINGDAO"
        assert rec.destination_id == "OSH"
        assert rec.rate == 300.5
        assert rec.valid_to == date(2025, 6, 30)
        assert rec.pol is None
        assert rec.version == 1

    def test_llocal_alias(self):
        rec = parse_record(TABLE_BY_ENTITY["agentSeaFreight"], {
            "id": "asf-1", "agent": "A", "pol": "BUSAN", "pod": "QINGDAO", "rate": 420, "llocal": 50,
            "valid_from": "2025-01-01", "valid_to": "2025-12-31",
        })
        assert rec.local_charge == 50.0

    def test_zero_local_charge_kept_as_zero(self):
        rec = parse_record(TABLE_BY_ENTITY["seaFreight"], {
            "id": "sf-1", "carrier": "C", "pol": "BUSAN", "pod": "QINGDAO", "rate": 400, "localCharge": 0,
            "validFrom": "2025-01-01", "validTo": "2025-12-31",
        })
        assert rec.local_charge == 0.0

    def test_missing_local_charge_is_none(self):
        rec = parse_record(TABLE_BY_ENTITY["seaFreight"], {
            "id": "sf-1", "carrier": "C", "pol": "BUSAN", "pod": "QINGDAO", "rate": 400, "localCharge": "",
            "validFrom": "2025-01-01", "validTo": "2025-12-31",
        })
        assert rec.local_charge is None

    @pytest.mark.parametrize("row", [
        {"id": "dp-1", "port": "BUSAN", "validFrom": "2025-01-01", "validTo": "2025-12-31"},
        {"id": "dp-1", "port": "BUSAN", "amount": "abc", "validFrom": "2025-01-01", "validTo": "2025-12-31"},
        {"id": "dp-1", "port": "BUSAN", "amount": True, "validFrom": "2025-01-01", "validTo": "2025-12-31"},
        {"id": "dp-1", "port": "BUSAN", "amount": 5, "validFrom": "01/01/2025", "validTo": "2025-12-31"},
        {"id": "dp-1", "port": "BUSAN", "amount": 5, "validFrom": "2025-01-01", "validTo": "2025-12-31",
         "version": 0},
        "not a row",
    ])
    def test_bad_rows_rejected(self, row):
        with pytest.raises(RowError):
            parse_record(TABLE_BY_ENTITY["dpCost"], row)

    def test_agent_row(self):
        agent = parse_agent({"id": 7, "name": " A ", "code": "AGA"})
        assert (agent.id, agent.name, agent.code) == ("7", "A", "AGA")
        with pytest.raises(RowError):
            parse_agent({"id": "x"})

    def test_audit_row(self):
        entry = parse_audit_entry({
            "entityType": "dpCost", "entityId": "dp-1", "action": "update",
            "timestamp": "2025-05-20T16:30:00+02:00", "entitySnapshot": {"amount": 5},
        })
        assert entry.timestamp == datetime(2025, 5, 20, 14, 30)
        assert entry.record == {"amount": 5}
        with pytest.raises(RowError):
            parse_audit_entry({**{"entityType": "dpCost", "entityId": "dp-1",
                                  "timestamp": "2025-05-20"}, "action": "rename"})


class TestLoadSnapshot:

    def test_bad_rows_counted_per_table(self):
        data = {
            "dpCosts": [
                {"id": "dp-1", "port": "BUSAN", "amount": 80, "validFrom": "2025-01-01", "validTo": "2025-12-31"},
                {"id": "dp-2", "port": "BUSAN", "validFrom": "2025-01-01", "validTo": "2025-12-31"},
            ],
            "railAgents": [{"id": "ra-1", "name": "A"}, {"name": "nameless"}],
        }
        snap, rejected = load_snapshot(data)
        assert [d.id for d in snap.dp_costs] == ["dp-1"]
        assert len(snap.rail_agents) == 1
        assert rejected == {"dpCosts": 1, "railAgents": 1}

    def test_inverted_and_overlapping_windows_kept(self):
        data = {"dpCosts": [
            {"id": "dp-1", "port": "BUSAN", "amount": 80, "validFrom": "2025-01-01", "validTo": "2025-12-31"},
            {"id": "dp-2", "port": "BUSAN", "amount": 85, "validFrom": "2025-06-01", "validTo": "2026-05-31"},
            {"id": "dp-3", "port": "BUSAN", "amount": 90, "validFrom": "2025-12-31", "validTo": "2025-01-01"},
        ]}
        snap, rejected = load_snapshot(data)
        assert len(snap.dp_costs) == 3
        assert rejected == {}

    def test_non_list_table_ignored(self):
        snap, _ = load_snapshot({"seaFreights": {"oops": 1}})
        assert snap.sea_freights == ()


class TestJSONRateStore:

    def test_bundled_file_loads(self):
        store = JSONRateStore(BUNDLED)
        counts = store.stats()["tables"]
        assert counts["sea_freights"] == 2
        assert counts["rail_agents"] == 2
        assert store.rejected == {}
        assert "BUSAN" in store.ports()["pol"]
        assert "OSH" in store.ports()["destination"]

    def test_missing_file_gives_empty_snapshot(self, tmp_path):
        store = JSONRateStore(tmp_path / "absent.json")
        assert store.snapshot == RateSnapshot()
        assert store.stats()["loaded"] is False

    def test_lazy_and_reload(self, tmp_path):
        path = tmp_path / "rates.json"
        path.write_text(json.dumps({"railAgents": [{"id": "ra-1", "name": "A"}]}))
        store = JSONRateStore(path)
        first = store.snapshot
        assert store.snapshot is first

        path.write_text(json.dumps({"railAgents": [{"id": "ra-1", "name": "A"}, {"id": "ra-2", "name": "B"}]}))
        assert len(store.snapshot.rail_agents) == 1
        assert len(store.reload().rail_agents) == 2

    def test_validity_summary(self):
        store = JSONRateStore(BUNDLED)
        summary = store.validity_summary(date(2025, 6, 1))
        total = sum(len(getattr(store.snapshot, t.attr)) for t in TABLES)
        assert sum(summary.values()) == total
        assert summary["expired"] >= 1

    def test_snapshot_as_of_replays_audit_log(self):
        store = JSONRateStore(BUNDLED)
        before_update = store.snapshot_as_of(date(2025, 5, 10))
        after_update = store.snapshot_as_of(date(2025, 6, 1))
        assert before_update.combined_freights[0].rate == 280.0
        assert after_update.combined_freights[0].rate == 300.0

    def test_snapshot_as_of_before_creation(self):
        store = JSONRateStore(BUNDLED)
        assert store.snapshot_as_of(date(2025, 4, 1)).combined_freights == ()


class TestReconstruct:

    def test_created_after_as_of_is_dropped(self):
        snap = RateSnapshot(combined_freights=(cf("cf-1", 300.0, created=datetime(2025, 5, 1)),))
        assert reconstruct_snapshot(snap, (), datetime(2025, 4, 30)).combined_freights == ()

    def test_records_without_created_at_are_kept(self):
        snap = RateSnapshot(combined_freights=(cf("cf-1", 300.0),))
        assert len(reconstruct_snapshot(snap, (), datetime(2000, 1, 1)).combined_freights) == 1

    def test_delete_then_recreate(self):
        snap = RateSnapshot(combined_freights=(cf("cf-1", 300.0),))
        log = (
            audit("delete", datetime(2025, 5, 2)),
            audit("create", datetime(2025, 5, 3), rate=310),
        )
        mid = reconstruct_snapshot(snap, log[:1], datetime(2025, 5, 2, 12))
        assert mid.combined_freights == ()
        end = reconstruct_snapshot(snap, log, datetime(2025, 5, 4))
        assert [c.rate for c in end.combined_freights] == [310.0]

    def test_entries_replayed_in_time_order(self):
        snap = RateSnapshot()
        log = (
            audit("update", datetime(2025, 5, 5), rate=320),
            audit("create", datetime(2025, 5, 1), rate=300),
        )
        out = reconstruct_snapshot(snap, log, datetime(2025, 5, 6))
        assert out.combined_freights[0].rate == 320.0

    def test_unparsable_entry_skipped(self):
        snap = RateSnapshot(combined_freights=(cf("cf-1", 300.0),))
        bad = AuditEntry("combinedFreight", "cf-1", "update", datetime(2025, 5, 2), {"rate": "x"})
        out = reconstruct_snapshot(snap, (bad,), datetime(2025, 5, 3))
        assert out.combined_freights[0].rate == 300.0

    def test_input_not_modified(self):
        snap = RateSnapshot(combined_freights=(cf("cf-1", 300.0),))
        reconstruct_snapshot(snap, (audit("delete", datetime(2025, 5, 2)),), datetime(2025, 5, 3))
        assert len(snap.combined_freights) == 1


# ── Helpers ───────────────────────────────────────────────────────────────────

def cf(id_: str, rate: float, created=None) -> CombinedFreight:
    return CombinedFreight(id=id_, agent="A", pod="QINGDAO", destination_id="OSH", rate=rate,
                           valid_from=date(2025, 5, 1), valid_to=date(2025, 6, 30), created_at=created)


def audit(action: str, ts: datetime, rate=None) -> AuditEntry:
    record = None
    if rate is not None:
        record = {"agent": "A", "pod": "QINGDAO", "destinationId": "OSH", "rate": rate,
                  "validFrom": "2025-05-01", "validTo": "2025-06-30"}
    return AuditEntry("combinedFreight", "cf-1", action, ts, record)
