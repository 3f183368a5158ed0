"""
calculation_engine/diagnostics.py
Non-fatal findings attached to a calculation.

Gaps in the rate data never abort a calculation: the affected category
contributes 0 and a RateWarning explains why.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum

from calculation_engine.validity import Lookup


class WarningCode(str, Enum):
    STALE_RATE            = "stale_rate"             # record exists, not valid on the date
    MISSING_RATE          = "missing_rate"           # no record for the key at all
    ABSENT_LOCAL_CHARGE   = "absent_local_charge"    # sea freight carries no local charge value
    AMBIGUOUS_RATE        = "ambiguous_rate"         # several records valid on the same date
    INVALID_WINDOW        = "invalid_window"         # record with start after end, ignored
    UNAVAILABLE_SELECTION = "unavailable_selection"  # caller picked a sea freight that cannot apply
    NO_ROUTE              = "no_route"


_EXPIRING = {WarningCode.STALE_RATE, WarningCode.MISSING_RATE}


@dataclass(frozen=True)
class RateWarning:
    code: WarningCode
    category: str
    message: str

    @property
    def marks_expired(self) -> bool:
        """True when a contributing category had no record valid on the date."""
        return self.code in _EXPIRING

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


def lookup_warnings(
    lookup: Lookup,
    category: str,
    what: str,
    reference_date: date,
    required: bool = True,
) -> list[RateWarning]:
    """Translate a Lookup into warnings; `required=False` keeps a plain miss silent."""
    out: list[RateWarning] = []
    day = reference_date.isoformat()

    if lookup.inverted:
        ids = ", ".join(r.id for r in lookup.inverted)
        out.append(RateWarning(
            WarningCode.INVALID_WINDOW, category,
            f"{what}: ignored record(s) with start date after end date ({ids})",
        ))

    if lookup.found:
        if lookup.ambiguous:
            rec = lookup.record
            out.append(RateWarning(
                WarningCode.AMBIGUOUS_RATE, category,
                f"{what}: {lookup.active_count} records valid on {day}, using {rec.id} (v{rec.version})",
            ))
        return out

    if lookup.stale is not None:
        rec = lookup.stale
        out.append(RateWarning(
            WarningCode.STALE_RATE, category,
            f"{what}: record {rec.id} valid {rec.valid_from.isoformat()}..{rec.valid_to.isoformat()} "
            f"does not cover {day}",
        ))
    elif required:
        out.append(RateWarning(WarningCode.MISSING_RATE, category, f"{what}: no rate on file"))
    return out
