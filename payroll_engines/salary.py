"""
payroll_engines.salary -- Net monthly salary composition.

Responsibility:
    Combine the figures produced by the other engines (present days,
    piece-rate earnings, overtime, Upad advances, loan EMI) into a single
    salary report for one employee-month.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import payroll_kernel and sibling engines.
    Consumed by ``payroll_services.payroll_service``.

Invariants enforced:
    - Monthly:   basic = present_days * salary rate resolved for the month.
    - Daily Roj: basic = present_days * roj rate resolved for the month
                 + overtime, each overtime row priced at its own rate or
                 roj rate / overtime_hours_per_day.
    - Contract:  basic = piece-rate month total.
    - net = basic - upad - loan EMI.  Pending loan is reported, never
      deducted.
    - A negative net is returned as-is with ``is_negative`` set and a
      WARNING logged.  Nothing is clamped.

Failure modes:
    - UnsupportedEmploymentTypeError for an employment type outside the
      closed set.
    - InvalidAmountError when present days or overtime hours-per-day are
      not usable.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.records import (
    Employee,
    EmploymentType,
    OvertimeEntry,
    UpadEntry,
)
from payroll_kernel.domain.values import ZERO, PayPeriod
from payroll_kernel.exceptions import InvalidAmountError, UnsupportedEmploymentTypeError
from payroll_kernel.logging_config import get_logger
from payroll_engines.attendance import OvertimeSummary, overtime_totals
from payroll_engines.rate_history import resolve_rate
from payroll_engines.tracer import traced_engine
from payroll_engines.work_log import EMPTY_EARNINGS, EarningsReport

logger = get_logger("engines.salary")

DEFAULT_OVERTIME_HOURS_PER_DAY = 8


@dataclass(frozen=True)
class SalaryReport:
    """Salary slip figures for one employee-month. All amounts unrounded."""

    employee_id: str
    year: int
    month: int
    employment_type: EmploymentType
    present_days: int
    rate: Decimal
    base_basic: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    basic: Decimal
    upad: Decimal
    loan_installment: Decimal
    pending_loan: Decimal
    net_amount: Decimal
    is_negative: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "year": self.year,
            "month": self.month,
            "employment_type": self.employment_type.value,
            "present_days": self.present_days,
            "rate": str(self.rate),
            "base_basic": str(self.base_basic),
            "overtime_hours": str(self.overtime_hours),
            "overtime_amount": str(self.overtime_amount),
            "basic": str(self.basic),
            "upad": str(self.upad),
            "loan_installment": str(self.loan_installment),
            "pending_loan": str(self.pending_loan),
            "net_amount": str(self.net_amount),
            "is_negative": self.is_negative,
        }


def upad_total(
    entries: Iterable[UpadEntry],
    employee_id: str,
    year: int,
    month: int,
) -> Decimal:
    """Sum of an employee's Upad advances for the month."""
    period = PayPeriod(year, month)
    return sum(
        (e.amount for e in entries if e.employee_id == employee_id and e.period == period),
        ZERO,
    )


def overtime_amount(
    overtime: OvertimeSummary,
    roj_rate: Decimal,
    hours_per_day: int = DEFAULT_OVERTIME_HOURS_PER_DAY,
) -> Decimal:
    """Price each overtime row at its own rate, else the hourly roj rate."""
    if hours_per_day <= 0:
        raise InvalidAmountError("overtime_hours_per_day", hours_per_day, "> 0")
    hourly = roj_rate / Decimal(hours_per_day)
    return sum(
        (row.hours * (row.rate if row.rate is not None else hourly) for row in overtime.rows),
        ZERO,
    )


def _as_summary(
    overtime: OvertimeSummary | Iterable[OvertimeEntry] | None,
) -> OvertimeSummary:
    if overtime is None:
        return overtime_totals(())
    if isinstance(overtime, OvertimeSummary):
        return overtime
    return overtime_totals(overtime)


@traced_engine(
    "salary", "1.0",
    fingerprint_fields=(
        "employee", "year", "month", "present_days",
        "upad_total", "loan_emi_total", "pending_loan",
    ),
)
def compute_salary(
    employee: Employee,
    year: int,
    month: int,
    *,
    present_days: int = 0,
    earnings: EarningsReport | None = None,
    overtime: OvertimeSummary | Iterable[OvertimeEntry] | None = None,
    upad_total: Decimal = ZERO,
    loan_emi_total: Decimal = ZERO,
    pending_loan: Decimal = ZERO,
    overtime_hours_per_day: int = DEFAULT_OVERTIME_HOURS_PER_DAY,
) -> SalaryReport:
    """
    Compose the salary report for ``employee`` in (year, month).

    Preconditions:
        ``present_days``, ``earnings`` and ``overtime`` were computed for
        this employee and month.  ``loan_emi_total`` and ``pending_loan``
        come from ``loan_ledger.employee_loan_position``.

    Raises:
        UnsupportedEmploymentTypeError: unknown employment type.
        InvalidAmountError: negative present days.
    """
    period = PayPeriod(year, month)
    if isinstance(present_days, bool) or not isinstance(present_days, int) or present_days < 0:
        raise InvalidAmountError("present_days", present_days, "a non-negative integer")

    logger.info("salary_computation_started", extra={
        "employee_id": employee.employee_id,
        "period": str(period),
        "employment_type": employee.employment_type.value,
        "present_days": present_days,
    })

    summary = _as_summary(overtime)
    ot_hours = ZERO
    ot_amount = ZERO
    rate = ZERO

    if employee.employment_type == EmploymentType.MONTHLY:
        rate = resolve_rate(employee.salary_history, employee.salary_per_day, year, month)
        base_basic = Decimal(present_days) * rate
        basic = base_basic
    elif employee.employment_type == EmploymentType.DAILY_ROJ:
        rate = resolve_rate(employee.roj_rate_history, employee.daily_roj_rate, year, month)
        base_basic = Decimal(present_days) * rate
        ot_hours = summary.total_hours
        ot_amount = overtime_amount(summary, rate, overtime_hours_per_day)
        basic = base_basic + ot_amount
    elif employee.employment_type == EmploymentType.CONTRACT:
        base_basic = (earnings or EMPTY_EARNINGS).month_total
        basic = base_basic
    else:
        raise UnsupportedEmploymentTypeError(employee.employment_type)

    net = basic - upad_total - loan_emi_total
    is_negative = net < ZERO

    report = SalaryReport(
        employee_id=employee.employee_id,
        year=year,
        month=month,
        employment_type=employee.employment_type,
        present_days=present_days,
        rate=rate,
        base_basic=base_basic,
        overtime_hours=ot_hours,
        overtime_amount=ot_amount,
        basic=basic,
        upad=upad_total,
        loan_installment=loan_emi_total,
        pending_loan=pending_loan,
        net_amount=net,
        is_negative=is_negative,
    )

    if is_negative:
        logger.warning("salary_net_negative", extra={
            "employee_id": employee.employee_id,
            "period": str(period),
            "basic": str(basic),
            "upad": str(upad_total),
            "loan_installment": str(loan_emi_total),
            "net_amount": str(net),
        })

    logger.info("salary_computed", extra={
        "employee_id": employee.employee_id,
        "period": str(period),
        "basic": str(basic),
        "net_amount": str(net),
    })
    return report
