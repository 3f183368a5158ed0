"""
calculation_engine/selector.py
Minimum-Cost Selector: ranks breakdowns and picks the cheapest.

Ranking key (a total order, so output never depends on input order):
  total ↑, non-expired first, agent label, truck agent, option kind, sea freight id
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from calculation_engine.aggregator import AgentCostBreakdown
from monitoring import get_logger

log = get_logger(__name__)


@dataclass
class Selection:
    ranked: list[AgentCostBreakdown] = field(default_factory=list)
    cheapest: Optional[AgentCostBreakdown] = None
    duplicates: int = 0


def rank_key(b: AgentCostBreakdown) -> tuple:
    return (
        b.total,
        b.expired,
        b.label,
        b.truck_agent or "",
        b.kind.value,
        b.sea_freight_id or "",
    )


def deduplicate(breakdowns: Iterable[AgentCostBreakdown]) -> tuple[list[AgentCostBreakdown], int]:
    """
    Drop repeated breakdowns, keeping the first of each fingerprint.

    The resolver already yields one option per (kind, agents, sea leg), so
    engine output passes through unchanged; this guards callers that hand
    select_best breakdowns gathered from several calculations.  Options from
    different agents at the same price are distinct and both kept.
    """
    seen: set[tuple] = set()
    unique: list[AgentCostBreakdown] = []
    dropped = 0
    for b in breakdowns:
        fp = b.fingerprint
        if fp in seen:
            dropped += 1
            continue
        seen.add(fp)
        unique.append(b)
    return unique, dropped


class MinimumCostSelector:

    def select_best(self, breakdowns: Iterable[AgentCostBreakdown]) -> Selection:
        unique, dropped = deduplicate(breakdowns)
        if dropped:
            log.debug("Duplicate breakdowns collapsed", dropped=dropped)
        ranked = sorted(unique, key=rank_key)
        return Selection(
            ranked=ranked,
            cheapest=ranked[0] if ranked else None,
            duplicates=dropped,
        )
