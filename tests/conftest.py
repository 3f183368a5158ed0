"""
tests/conftest.py
Shared fixtures: the BUSAN → QINGDAO → OSH reference route.
"""
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from query_processor.models import CalculationRequest
from rate_store.models import (
    DTHC,
    Agent,
    AgentSeaFreight,
    CombinedFreight,
    DPCost,
    RateSnapshot,
    SeaFreight,
    WeightSurchargeRule,
)

Y2025 = {"valid_from": date(2025, 1, 1), "valid_to": date(2025, 12, 31)}

JUNE_1 = date(2025, 6, 1)


@pytest.fixture
def busan_snapshot() -> RateSnapshot:
    """
    Reference route, priced on 2025-06-01:
      generic sea 400 (no local charge), agent A sea 420 + L.LOCAL 50,
      A combined 300 (May–June only), A DTHC 100, A surcharge 75 for 3–6 t.
    """
    return RateSnapshot(
        sea_freights=(
            SeaFreight(id="sf-1", carrier="COSCO", pol="BUSAN", pod="QINGDAO", rate=400.0, **Y2025),
        ),
        agent_sea_freights=(
            AgentSeaFreight(id="asf-1", agent="A", pol="BUSAN", pod="QINGDAO",
                            rate=420.0, local_charge=50.0, **Y2025),
        ),
        dthc=(
            DTHC(id="dthc-a", agent="A", pol="BUSAN", pod="QINGDAO", amount=100.0, **Y2025),
        ),
        dp_costs=(
            DPCost(id="dp-busan", port="BUSAN", amount=80.0, **Y2025),
        ),
        combined_freights=(
            CombinedFreight(id="cf-a", agent="A", pod="QINGDAO", destination_id="OSH", rate=300.0,
                            valid_from=date(2025, 5, 1), valid_to=date(2025, 6, 30)),
        ),
        weight_surcharge_rules=(
            WeightSurchargeRule(id="ws-a", agent="A", min_weight=3000, max_weight=6000,
                                surcharge=75.0, **Y2025),
        ),
        rail_agents=(Agent("ra-1", "A"), Agent("ra-2", "B")),
        truck_agents=(Agent("ta-1", "T"),),
    )


@pytest.fixture
def busan_request() -> CalculationRequest:
    return CalculationRequest(
        pol="BUSAN", pod="QINGDAO", destination_id="OSH",
        weight=5000, reference_date=JUNE_1,
    )
