"""
payroll_engines.rate_history -- Effective-dated rate resolution.

Responsibility:
    Resolve the rate in effect for a given month from a history of
    (rate, effective-from-year, effective-from-month) entries, falling back
    to a base rate.  Owns the immutable ``RateHistory`` collection that
    employee salary / roj rates and job rates are edited through, and the
    ``JobRateCatalog`` that maps (part type, job name) to a resolved
    piece rate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.
    Consumed by the work-log aggregator (via ``JobRateCatalog.as_resolver``),
    the salary composer and the payroll service.

Invariants enforced:
    - Replay safety: identical inputs produce identical outputs; no clock.
    - Entries are compared by ``year * 100 + month``; the greatest entry at
      or before the target month wins.  An entry effective after the target
      month is never applied (a future hike leaves past months unchanged).
    - A history holds at most one entry per (year, month) key, kept sorted
      ascending.  Entries are addressed by that key, never by list index.
    - The "current rate" is derived from the history, never stored.

Failure modes:
    - DuplicateRateEntryError on insert/update colliding with an existing key.
    - RateEntryNotFoundError on update/remove of an unknown key.
    - InvalidPeriodError when an effective year is outside the allowed range.
    - DuplicateJobTypeError / JobTypeNotFoundError from ``JobRateCatalog``.

Usage:
    from payroll_engines.rate_history import RateHistory, resolve_rate

    history = RateHistory.of(employee.salary_history)
    rate = history.rate_for(employee.salary_per_day, 2024, 3)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from payroll_kernel.domain.records import (
    JobType,
    PartType,
    RateHistoryEntry,
    sorted_rate_history,
)
from payroll_kernel.domain.values import PayPeriod
from payroll_kernel.exceptions import (
    DuplicateJobTypeError,
    DuplicateRateEntryError,
    InvalidPeriodError,
    JobTypeNotFoundError,
    RateEntryNotFoundError,
    ValidationError,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.rate_history")

DEFAULT_MIN_RATE_YEAR = 2000
DEFAULT_MAX_RATE_YEAR = 2100

RateResolver = Callable[[PartType, str, int, int], Decimal]


def _part_type(value: PartType | str) -> PartType:
    if isinstance(value, PartType):
        return value
    try:
        return PartType(str(value).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Invalid part_type: {value!r}") from e


@traced_engine(
    "rate_history", "1.0",
    fingerprint_fields=("history", "base_rate", "target_year", "target_month"),
)
def resolve_rate(
    history: Iterable[RateHistoryEntry],
    base_rate: Decimal,
    target_year: int,
    target_month: int,
) -> Decimal:
    """
    Rate in effect for (target_year, target_month).

    Preconditions:
        target_month is 1..12.
    Postconditions:
        Returns the rate of the entry with the greatest encoded
        (year * 100 + month) that is <= the target, else ``base_rate``.
    """
    target = PayPeriod(target_year, target_month).encoded
    best: RateHistoryEntry | None = None
    for entry in history:
        if entry.encoded <= target and (best is None or entry.encoded > best.encoded):
            best = entry
    return best.rate if best is not None else base_rate


@dataclass(frozen=True)
class RateHistory:
    """
    Immutable, sorted rate history edited by (year, month) key.

    Contract:
        Every mutating method returns a new ``RateHistory``; the receiver
        is never modified.
    Guarantees:
        - ``entries`` sorted ascending, unique per key.
        - Effective years within [min_year, max_year] for entries added or
          updated through this class.
    Non-goals:
        - Does not persist; the caller writes ``entries`` back to its record.
    """

    entries: tuple[RateHistoryEntry, ...] = ()
    min_year: int = DEFAULT_MIN_RATE_YEAR
    max_year: int = DEFAULT_MAX_RATE_YEAR

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", sorted_rate_history(self.entries))

    @classmethod
    def of(
        cls,
        entries: Iterable[RateHistoryEntry] = (),
        *,
        min_year: int = DEFAULT_MIN_RATE_YEAR,
        max_year: int = DEFAULT_MAX_RATE_YEAR,
    ) -> RateHistory:
        return cls(tuple(entries), min_year, max_year)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def keys(self) -> tuple[tuple[int, int], ...]:
        return tuple(e.key for e in self.entries)

    def get(self, key: tuple[int, int]) -> RateHistoryEntry:
        for entry in self.entries:
            if entry.key == key:
                return entry
        raise RateEntryNotFoundError(*key)

    def _check_year(self, year: int, month: int) -> None:
        if not self.min_year <= year <= self.max_year:
            raise InvalidPeriodError(
                year, month, f"year must be between {self.min_year} and {self.max_year}",
            )

    def _replace(self, entries: Iterable[RateHistoryEntry]) -> RateHistory:
        return RateHistory(tuple(entries), self.min_year, self.max_year)

    def add(self, entry: RateHistoryEntry) -> RateHistory:
        """Insert an entry; its (year, month) must not already exist."""
        self._check_year(entry.effective_from_year, entry.effective_from_month)
        if entry.key in self.keys():
            raise DuplicateRateEntryError(*entry.key)
        logger.info("rate_history_entry_added", extra={
            "effective_from": str(entry.period),
            "rate": str(entry.rate),
        })
        return self._replace(self.entries + (entry,))

    def update(
        self,
        key: tuple[int, int],
        *,
        rate: Decimal | None = None,
        effective_from_year: int | None = None,
        effective_from_month: int | None = None,
    ) -> RateHistory:
        """
        Replace the entry at ``key``, optionally re-keying it.

        Raises:
            RateEntryNotFoundError: no entry at ``key``.
            DuplicateRateEntryError: re-keyed onto another existing entry.
        """
        current = self.get(key)
        updated = RateHistoryEntry(
            rate=current.rate if rate is None else rate,
            effective_from_year=(
                current.effective_from_year if effective_from_year is None
                else effective_from_year
            ),
            effective_from_month=(
                current.effective_from_month if effective_from_month is None
                else effective_from_month
            ),
        )
        self._check_year(updated.effective_from_year, updated.effective_from_month)
        others = tuple(e for e in self.entries if e.key != key)
        if updated.key in {e.key for e in others}:
            raise DuplicateRateEntryError(*updated.key)
        logger.info("rate_history_entry_updated", extra={
            "previous_key": f"{key[0]:04d}-{key[1]:02d}",
            "effective_from": str(updated.period),
            "rate": str(updated.rate),
        })
        return self._replace(others + (updated,))

    def remove(self, key: tuple[int, int]) -> RateHistory:
        """Delete the entry at ``key``."""
        self.get(key)
        logger.info("rate_history_entry_removed", extra={
            "effective_from": f"{key[0]:04d}-{key[1]:02d}",
        })
        return self._replace(e for e in self.entries if e.key != key)

    def current_rate(self, base_rate: Decimal) -> Decimal:
        """Latest entry's rate, or ``base_rate`` when the history is empty."""
        if not self.entries:
            return base_rate
        return self.entries[-1].rate

    def rate_for(self, base_rate: Decimal, year: int, month: int) -> Decimal:
        return resolve_rate(self.entries, base_rate, year, month)


class JobRateCatalog:
    """
    Piece rates per (part type, job name), each with its own history.

    Contract:
        Built once from the job-type catalog; read-only afterwards.
    Guarantees:
        - Job names match case-insensitively and ignore surrounding spaces.
        - A known job with rate 0 resolves to 0; an unknown job raises
          ``JobTypeNotFoundError``.  The two are never conflated.
    """

    def __init__(self, job_types: Iterable[JobType]):
        self._jobs: dict[tuple[PartType, str], JobType] = {}
        for job in job_types:
            if job.key in self._jobs:
                raise DuplicateJobTypeError(job.part_type.value, job.job_name)
            self._jobs[job.key] = job

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        part_type, job_name = key
        try:
            part = _part_type(part_type)
        except ValidationError:
            return False
        return (part, str(job_name).strip().casefold()) in self._jobs

    def job(self, part_type: PartType | str, job_name: str) -> JobType:
        part = _part_type(part_type)
        found = self._jobs.get((part, job_name.strip().casefold()))
        if found is None:
            logger.warning("job_type_not_found", extra={
                "part_type": part.value,
                "job_name": job_name,
            })
            raise JobTypeNotFoundError(part.value, job_name)
        return found

    def rate_for(
        self,
        part_type: PartType | str,
        job_name: str,
        year: int,
        month: int,
    ) -> Decimal:
        job = self.job(part_type, job_name)
        return resolve_rate(job.rate_history, job.rate, year, month)

    def as_resolver(self) -> RateResolver:
        """Callable with the signature the earnings aggregator expects."""
        return self.rate_for
