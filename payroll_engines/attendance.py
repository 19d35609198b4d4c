"""
payroll_engines.attendance -- Presence counting and bulk attendance reconciliation.

Responsibility:
    Count present days, plan the write operations that bring a month's
    attendance to an exact present-day target, apply such plans to an
    in-memory record set, and total overtime hours.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.
    Consumed by the salary composer and the payroll service.  Write
    operations are handed back to the (external) persistence layer.

Invariants enforced:
    - One logical record per (employee_id, date): later records in the
      input replace earlier ones (upsert semantics).
    - Reconciliation target state is "exactly days 1..N present".  Only
      present records outside that range are reset, so re-running the plan
      against its own result yields zero operations (idempotent, converges
      after an interrupted batch).
    - Desired present count is validated, never clamped.
    - Inputs are never mutated; every function returns new tuples.

Failure modes:
    - PresentDaysOutOfRangeError when the target is outside 0..days_in_month.
    - InvalidPeriodError when days_in_month disagrees with the calendar.
    - OvertimeWithoutPresenceError from ``validate_overtime_entry``.

Usage:
    from payroll_engines.attendance import reconcile_to_target, apply_write_ops

    ops = reconcile_to_target(records, 22, 30, employee_id="E1", year=2024, month=4)
    records = apply_write_ops(records, ops)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.records import AttendanceRecord, OvertimeEntry
from payroll_kernel.domain.values import ZERO, PayPeriod
from payroll_kernel.exceptions import (
    InvalidPeriodError,
    OvertimeWithoutPresenceError,
    PresentDaysOutOfRangeError,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.attendance")


class AttendanceOpKind(str, Enum):
    """Kind of write a reconciliation plan asks the store to perform."""

    CREATE_PRESENT = "create_present"  # no record exists for the day
    MARK_PRESENT = "mark_present"  # record exists, currently absent
    MARK_ABSENT = "mark_absent"  # reset of a present day outside the target


@dataclass(frozen=True)
class AttendanceWriteOp:
    """One planned attendance write."""

    kind: AttendanceOpKind
    employee_id: str
    date: date

    @property
    def present(self) -> bool:
        return self.kind != AttendanceOpKind.MARK_ABSENT


@dataclass(frozen=True)
class OvertimeSummary:
    """Overtime rows for a period with their summed hours."""

    total_hours: Decimal
    rows: tuple[OvertimeEntry, ...]


def _latest_by_key(
    records: Iterable[AttendanceRecord],
) -> dict[tuple[str, date], AttendanceRecord]:
    by_key: dict[tuple[str, date], AttendanceRecord] = {}
    for record in records:
        by_key[record.key] = record
    return by_key


def _ordered(by_key: dict[tuple[str, date], AttendanceRecord]) -> tuple[AttendanceRecord, ...]:
    return tuple(by_key[k] for k in sorted(by_key))


def present_days(records: Iterable[AttendanceRecord]) -> int:
    """Number of distinct (employee, day) records marked present."""
    return sum(1 for r in _latest_by_key(records).values() if r.present)


def present_days_by_employee(
    records: Iterable[AttendanceRecord],
    year: int,
    month: int,
) -> dict[str, int]:
    """Present-day count per employee for one month, ordered by employee id."""
    period = PayPeriod(year, month)
    counts: dict[str, int] = {}
    for record in _latest_by_key(records).values():
        if not period.contains(record.date):
            continue
        counts.setdefault(record.employee_id, 0)
        if record.present:
            counts[record.employee_id] += 1
    return dict(sorted(counts.items()))


@traced_engine(
    "attendance", "1.0",
    fingerprint_fields=("desired_present_count", "days_in_month", "employee_id", "year", "month"),
)
def reconcile_to_target(
    records: Iterable[AttendanceRecord],
    desired_present_count: int,
    days_in_month: int,
    *,
    employee_id: str,
    year: int,
    month: int,
) -> tuple[AttendanceWriteOp, ...]:
    """
    Plan the writes that leave exactly days 1..N of the month present.

    Preconditions:
        0 <= desired_present_count <= days_in_month.
    Postconditions:
        Resets (MARK_ABSENT) come first, ordered by date, for every present
        record outside days 1..N.  Fills follow in calendar order:
        CREATE_PRESENT where no record exists, MARK_PRESENT where the
        record is absent.  Days already present inside 1..N are untouched.

    Raises:
        InvalidPeriodError: days_in_month is not the length of the month.
        PresentDaysOutOfRangeError: desired count outside the range.
    """
    period = PayPeriod(year, month)
    if days_in_month != period.days_in_month:
        raise InvalidPeriodError(
            year, month,
            f"month has {period.days_in_month} days, got days_in_month={days_in_month}",
        )
    if (
        isinstance(desired_present_count, bool)
        or not isinstance(desired_present_count, int)
        or not 0 <= desired_present_count <= days_in_month
    ):
        logger.warning("attendance_target_out_of_range", extra={
            "employee_id": employee_id,
            "desired_present_count": desired_present_count,
            "days_in_month": days_in_month,
        })
        raise PresentDaysOutOfRangeError(desired_present_count, days_in_month)

    by_date = {
        r.date: r
        for r in _latest_by_key(records).values()
        if r.employee_id == employee_id and period.contains(r.date)
    }
    target_days = {period.day(d) for d in range(1, desired_present_count + 1)}

    resets = tuple(
        AttendanceWriteOp(AttendanceOpKind.MARK_ABSENT, employee_id, day)
        for day in sorted(by_date)
        if by_date[day].present and day not in target_days
    )

    fills: list[AttendanceWriteOp] = []
    for day in sorted(target_days):
        existing = by_date.get(day)
        if existing is None:
            fills.append(AttendanceWriteOp(AttendanceOpKind.CREATE_PRESENT, employee_id, day))
        elif not existing.present:
            fills.append(AttendanceWriteOp(AttendanceOpKind.MARK_PRESENT, employee_id, day))

    logger.info("attendance_reconciliation_planned", extra={
        "employee_id": employee_id,
        "period": str(period),
        "desired_present_count": desired_present_count,
        "reset_count": len(resets),
        "fill_count": len(fills),
    })
    return resets + tuple(fills)


def upsert_record(
    records: Iterable[AttendanceRecord],
    record: AttendanceRecord,
) -> tuple[AttendanceRecord, ...]:
    """Insert or replace the record for (employee_id, date)."""
    by_key = _latest_by_key(records)
    by_key[record.key] = record
    return _ordered(by_key)


def apply_write_ops(
    records: Iterable[AttendanceRecord],
    ops: Iterable[AttendanceWriteOp],
) -> tuple[AttendanceRecord, ...]:
    """
    Apply a reconciliation plan to an in-memory record set.

    Existing notes are kept when a record's presence flips.
    """
    by_key = _latest_by_key(records)
    for op in ops:
        key = (op.employee_id, op.date)
        existing = by_key.get(key)
        by_key[key] = AttendanceRecord(
            employee_id=op.employee_id,
            date=op.date,
            present=op.present,
            note=existing.note if existing is not None else None,
        )
    return _ordered(by_key)


def remove_month(
    records: Iterable[AttendanceRecord],
    employee_id: str,
    year: int,
    month: int,
) -> tuple[AttendanceRecord, ...]:
    """Drop one employee's records for a month; other records are kept."""
    period = PayPeriod(year, month)
    kept = {
        k: r for k, r in _latest_by_key(records).items()
        if not (r.employee_id == employee_id and period.contains(r.date))
    }
    return _ordered(kept)


def validate_overtime_entry(
    entry: OvertimeEntry,
    attendance_records: Iterable[AttendanceRecord],
) -> OvertimeEntry:
    """
    Write-time check that overtime falls on a present day.

    Returns the entry unchanged when valid.

    Raises:
        OvertimeWithoutPresenceError: no present record for that day.
    """
    record = _latest_by_key(attendance_records).get((entry.employee_id, entry.date))
    if record is None or not record.present:
        logger.warning("overtime_without_presence", extra={
            "employee_id": entry.employee_id,
            "work_date": entry.date.isoformat(),
        })
        raise OvertimeWithoutPresenceError(entry.employee_id, entry.date.isoformat())
    return entry


def overtime_totals(entries: Iterable[OvertimeEntry]) -> OvertimeSummary:
    """Sum overtime hours; rows are returned sorted by date."""
    rows = tuple(sorted(entries, key=lambda e: (e.date, e.employee_id)))
    total = sum((e.hours for e in rows), ZERO)
    return OvertimeSummary(total_hours=total, rows=rows)
