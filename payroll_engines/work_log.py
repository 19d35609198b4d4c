"""
payroll_engines.work_log -- Piece-rate earnings from daily work logs.

Responsibility:
    Turn an employee's work logs for a month into priced lines, per-day
    totals, a month total and per-job column totals.  Rates come from an
    injected resolver (normally ``JobRateCatalog.as_resolver()``), so the
    rate in effect for the log's own month is always used.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel and payroll_engines.rate_history types.
    Consumed by the salary composer (Contract employees) and the service.

Invariants enforced:
    - ok_parts = quantity - rejection; amount = ok_parts * rate.
    - day_total = sum of the day's line amounts; month_total = sum of
      day totals (additivity: concatenating two disjoint log sets adds
      their month totals).
    - Days are reported in ascending date order; lines keep input order
      within a day.
    - A rate of 0 is a valid rate and prices the line at 0.
    - Logs without a job name are priced as the default job name.

Failure modes:
    - JobTypeNotFoundError propagates from the resolver when a log names a
      job the catalog does not know.  Unknown jobs are never priced at 0.

Usage:
    from payroll_engines.work_log import compute_daily_and_month_totals

    report = compute_daily_and_month_totals(logs, catalog.as_resolver())
    report.month_total
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.records import PartType, WorkLogEntry
from payroll_kernel.domain.values import ZERO
from payroll_kernel.logging_config import get_logger
from payroll_engines.rate_history import RateResolver
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.work_log")

DEFAULT_JOB_NAME = "Standard"


@dataclass(frozen=True)
class EarningLine:
    """One priced work log."""

    job_name: str
    part_type: PartType
    quantity: Decimal
    rejection: Decimal
    ok_parts: Decimal
    rate: Decimal
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "part_type": self.part_type.value,
            "quantity": str(self.quantity),
            "rejection": str(self.rejection),
            "ok_parts": str(self.ok_parts),
            "rate": str(self.rate),
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class DailyEarnings:
    """All priced lines for one day."""

    date: date
    lines: tuple[EarningLine, ...]
    day_total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "lines": [line.to_dict() for line in self.lines],
            "day_total": str(self.day_total),
        }


@dataclass(frozen=True)
class JobColumn:
    """Month totals for one (job name, part type) column."""

    job_name: str
    part_type: PartType
    ok_parts: Decimal
    amount: Decimal

    @property
    def key(self) -> tuple[str, PartType]:
        return (self.job_name, self.part_type)


@dataclass(frozen=True)
class EarningsReport:
    """
    Priced work logs for a period.

    ``job_columns`` are ordered by part type then job name, one per
    distinct (job name, part type) pair.
    """

    daily_logs: tuple[DailyEarnings, ...]
    month_total: Decimal
    job_columns: tuple[JobColumn, ...] = ()

    @property
    def total_ok_parts(self) -> Decimal:
        return sum((c.ok_parts for c in self.job_columns), ZERO)

    def column(self, job_name: str, part_type: PartType) -> JobColumn | None:
        for col in self.job_columns:
            if col.key == (job_name, part_type):
                return col
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_logs": [d.to_dict() for d in self.daily_logs],
            "month_total": str(self.month_total),
            "job_columns": [
                {
                    "job_name": c.job_name,
                    "part_type": c.part_type.value,
                    "ok_parts": str(c.ok_parts),
                    "amount": str(c.amount),
                }
                for c in self.job_columns
            ],
        }


EMPTY_EARNINGS = EarningsReport(daily_logs=(), month_total=ZERO)


def price_log(
    log: WorkLogEntry,
    rate_resolver: RateResolver,
    default_job_name: str = DEFAULT_JOB_NAME,
) -> EarningLine:
    """Price a single work log at the rate in effect for its own month."""
    job_name = log.job_name or default_job_name
    rate = rate_resolver(log.job_type, job_name, log.date.year, log.date.month)
    ok_parts = log.ok_parts
    return EarningLine(
        job_name=job_name,
        part_type=log.job_type,
        quantity=log.quantity,
        rejection=log.rejection,
        ok_parts=ok_parts,
        rate=rate,
        amount=ok_parts * rate,
    )


@traced_engine("work_log", "1.0", fingerprint_fields=("logs", "default_job_name"))
def compute_daily_and_month_totals(
    logs: Iterable[WorkLogEntry],
    rate_resolver: RateResolver,
    default_job_name: str = DEFAULT_JOB_NAME,
) -> EarningsReport:
    """
    Price every log, group by day and total.

    Preconditions:
        ``logs`` are already filtered to the employee and period of interest.
    Postconditions:
        Days ascending; month_total equals the sum of day totals.

    Raises:
        JobTypeNotFoundError: from ``rate_resolver`` for an unknown job.
    """
    logs = tuple(logs)
    logger.info("earnings_aggregation_started", extra={"log_count": len(logs)})

    by_day: dict[date, list[EarningLine]] = {}
    columns: dict[tuple[str, PartType], tuple[Decimal, Decimal]] = {}
    for log in logs:
        line = price_log(log, rate_resolver, default_job_name)
        by_day.setdefault(log.date, []).append(line)
        ok, amt = columns.get((line.job_name, line.part_type), (ZERO, ZERO))
        columns[(line.job_name, line.part_type)] = (ok + line.ok_parts, amt + line.amount)

    daily = tuple(
        DailyEarnings(
            date=day,
            lines=tuple(by_day[day]),
            day_total=sum((line.amount for line in by_day[day]), ZERO),
        )
        for day in sorted(by_day)
    )
    month_total = sum((d.day_total for d in daily), ZERO)

    part_order = {p: i for i, p in enumerate(PartType)}
    job_columns = tuple(
        JobColumn(job_name=name, part_type=part, ok_parts=ok, amount=amt)
        for (name, part), (ok, amt) in sorted(
            columns.items(), key=lambda kv: (part_order[kv[0][1]], kv[0][0].casefold()),
        )
    )

    logger.info("earnings_aggregation_computed", extra={
        "day_count": len(daily),
        "column_count": len(job_columns),
        "month_total": str(month_total),
    })
    return EarningsReport(daily_logs=daily, month_total=month_total, job_columns=job_columns)
