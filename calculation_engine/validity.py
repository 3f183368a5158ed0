"""
calculation_engine/validity.py
Validity windows: is a rate record applicable on a given calendar date?

Windows are inclusive on both ends.  A window whose start is after its end is
a data-entry anomaly and is never applicable (fail-closed).
"""
from dataclasses import dataclass
from datetime import date
from typing import Generic, Iterable, Optional, TypeVar

from rate_store.models import RateRecord

R = TypeVar("R", bound=RateRecord)


def is_valid_on_date(valid_from: date, valid_to: date, reference_date: date) -> bool:
    if valid_from > valid_to:
        return False
    return valid_from <= reference_date <= valid_to


@dataclass(frozen=True)
class ValidityInfo:
    status: str                 # active | expiring | expired | future | invalid
    days: Optional[int] = None  # until expiry, or until start for "future"


def validity_status(
    valid_from: date,
    valid_to: date,
    today: date,
    expiring_within_days: int = 7,
) -> ValidityInfo:
    """Classify a window relative to today for display and loader lint."""
    if valid_from > valid_to:
        return ValidityInfo("invalid")
    if valid_from > today:
        return ValidityInfo("future", (valid_from - today).days)
    days_left = (valid_to - today).days
    if days_left < 0:
        return ValidityInfo("expired", days_left)
    if days_left <= expiring_within_days:
        return ValidityInfo("expiring", days_left)
    return ValidityInfo("active", days_left)


def validate_validity_period(valid_from: Optional[date], valid_to: Optional[date]) -> Optional[str]:
    """Return an error message for an unusable window, else None."""
    if valid_from is None or valid_to is None:
        return "Both start and end date are required."
    if valid_to < valid_from:
        return f"End date {valid_to.isoformat()} is before start date {valid_from.isoformat()}."
    return None


def periods_overlap(a_from: date, a_to: date, b_from: date, b_to: date) -> bool:
    return a_from <= b_to and b_from <= a_to


@dataclass(frozen=True)
class Lookup(Generic[R]):
    """Outcome of picking the applicable record among those sharing one key."""
    record: Optional[R] = None      # the record that applies on the date
    stale: Optional[R] = None       # most recent record that exists but does not apply
    active_count: int = 0
    inverted: tuple = ()            # records with valid_from > valid_to

    @property
    def found(self) -> bool:
        return self.record is not None

    @property
    def ambiguous(self) -> bool:
        return self.active_count > 1

    @property
    def exists(self) -> bool:
        return self.record is not None or self.stale is not None or bool(self.inverted)


def select_active(records: Iterable[R], reference_date: date) -> Lookup[R]:
    """
    Pick the record applicable on reference_date.

    Several active records for one key (overlapping windows) resolve to the
    highest version, then the latest start date, then the highest id.
    """
    active: list[R] = []
    inactive: list[R] = []
    inverted: list[R] = []
    for rec in records:
        if rec.valid_from > rec.valid_to:
            inverted.append(rec)
        elif is_valid_on_date(rec.valid_from, rec.valid_to, reference_date):
            active.append(rec)
        else:
            inactive.append(rec)

    return Lookup(
        record=max(active, key=_recency) if active else None,
        stale=max(inactive, key=_recency) if inactive else None,
        active_count=len(active),
        inverted=tuple(sorted(inverted, key=lambda r: r.id)),
    )


def _recency(rec: RateRecord) -> tuple:
    return (rec.version, rec.valid_from, rec.id)
