"""
Payroll Domain Records (``payroll_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass records for the nouns the payroll engine consumes:
employees and their rate histories, job types, attendance and overtime,
piece-rate work logs, Upad advances, loans and loan transactions.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Records are
built by the (external) persistence layer from already-fetched rows and
handed to ``payroll_engines``.

Invariants enforced
-------------------
* All records are ``frozen=True`` (immutable after construction).
* All monetary and quantity fields are ``Decimal`` -- NEVER ``float``.
* Rate histories are stored sorted ascending by (year, month) with at most
  one entry per month.
* Invalid values are rejected at construction; nothing is clamped.

Failure modes
-------------
* ``ValidationError`` subclasses from ``payroll_kernel.exceptions`` for
  negative amounts, rejection > quantity, bad periods, empty identifiers,
  unknown enum values and duplicate rate months.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from payroll_kernel.domain.values import ZERO, PayPeriod, to_decimal
from payroll_kernel.exceptions import (
    DuplicateRateEntryError,
    InvalidAmountError,
    MissingIdentifierError,
    RejectionExceedsQuantityError,
    UnsupportedEmploymentTypeError,
    ValidationError,
)


class EmploymentType(str, Enum):
    """How an employee is paid."""

    CONTRACT = "Contract"  # piece-rate, paid from work logs
    MONTHLY = "Monthly"  # fixed per present day
    DAILY_ROJ = "Daily Roj"  # daily wage plus overtime


class PartType(str, Enum):
    """Workshop part families a piece-rate job belongs to."""

    SLEEVE = "sleeve"
    ROD = "rod"
    PIN = "pin"


class LoanStatus(str, Enum):
    """Loan lifecycle states."""

    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class TransactionMode(str, Enum):
    """How a loan installment was paid."""

    SALARY_DEDUCTION = "salary-deduction"
    MANUAL_PAYMENT = "manual-payment"


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


def _require_id(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise MissingIdentifierError(field_name)
    return str(value).strip()


def _coerce_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"{field_name} is not an ISO date: {value!r}") from e
    raise ValidationError(f"Cannot parse {field_name} from {value!r}")


def _coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from e


def _non_negative(value: Any, field_name: str) -> Decimal:
    result = to_decimal(value, field_name)
    if result < ZERO:
        raise InvalidAmountError(field_name, value, ">= 0")
    return result


def _positive(value: Any, field_name: str) -> Decimal:
    result = to_decimal(value, field_name)
    if result <= ZERO:
        raise InvalidAmountError(field_name, value, "> 0")
    return result


# ---------------------------------------------------------------------------
# Rate history
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RateHistoryEntry:
    """
    A rate effective from a given month onward.

    The stable identity of an entry is ``key`` -- its (year, month) -- not
    its position in a list.
    """

    rate: Decimal
    effective_from_year: int
    effective_from_month: int

    def __post_init__(self) -> None:
        _set(self, "rate", _non_negative(self.rate, "rate"))
        # Validates integer year and month 1-12
        PayPeriod(self.effective_from_year, self.effective_from_month)

    @property
    def key(self) -> tuple[int, int]:
        return (self.effective_from_year, self.effective_from_month)

    @property
    def encoded(self) -> int:
        return self.effective_from_year * 100 + self.effective_from_month

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.effective_from_year, self.effective_from_month)


def sorted_rate_history(
    entries: Iterable[RateHistoryEntry],
) -> tuple[RateHistoryEntry, ...]:
    """
    Sort a rate history ascending by effective month.

    Raises:
        DuplicateRateEntryError: if two entries share a (year, month).
    """
    ordered = tuple(sorted(entries, key=lambda e: e.encoded))
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.key == cur.key:
            raise DuplicateRateEntryError(*cur.key)
    return ordered


@dataclass(frozen=True, slots=True)
class Employee:
    """An employee as seen by payroll."""

    employee_id: str
    name: str
    employment_type: EmploymentType
    salary_per_day: Decimal = ZERO
    salary_history: tuple[RateHistoryEntry, ...] = ()
    daily_roj_rate: Decimal = ZERO
    roj_rate_history: tuple[RateHistoryEntry, ...] = ()
    is_active: bool = True

    def __post_init__(self) -> None:
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        if not isinstance(self.employment_type, EmploymentType):
            try:
                _set(self, "employment_type", EmploymentType(self.employment_type))
            except ValueError as e:
                raise UnsupportedEmploymentTypeError(self.employment_type) from e
        _set(self, "salary_per_day", _non_negative(self.salary_per_day, "salary_per_day"))
        _set(self, "daily_roj_rate", _non_negative(self.daily_roj_rate, "daily_roj_rate"))
        _set(self, "salary_history", sorted_rate_history(self.salary_history))
        _set(self, "roj_rate_history", sorted_rate_history(self.roj_rate_history))


@dataclass(frozen=True, slots=True)
class JobType:
    """A piece-rate job: a named operation on a part family, with rates."""

    part_type: PartType
    job_name: str
    rate: Decimal = ZERO
    rate_history: tuple[RateHistoryEntry, ...] = ()

    def __post_init__(self) -> None:
        part = self.part_type.strip().lower() if isinstance(self.part_type, str) else self.part_type
        _set(self, "part_type", _coerce_enum(PartType, part, "part_type"))
        _set(self, "job_name", _require_id(self.job_name, "job_name"))
        _set(self, "rate", _non_negative(self.rate, "rate"))
        _set(self, "rate_history", sorted_rate_history(self.rate_history))

    @property
    def key(self) -> tuple[PartType, str]:
        """Lookup key; job names compare case-insensitively."""
        return (self.part_type, self.job_name.casefold())


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AttendanceRecord:
    """Presence of one employee on one day."""

    employee_id: str
    date: date
    present: bool = True
    note: str | None = None

    def __post_init__(self) -> None:
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        _set(self, "date", _coerce_date(self.date, "date"))

    @property
    def key(self) -> tuple[str, date]:
        return (self.employee_id, self.date)

    @property
    def period(self) -> PayPeriod:
        return PayPeriod.from_date(self.date)


@dataclass(frozen=True, slots=True)
class OvertimeEntry:
    """Extra hours worked on a present day, optionally at an explicit rate."""

    employee_id: str
    date: date
    hours: Decimal
    rate: Decimal | None = None

    def __post_init__(self) -> None:
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        _set(self, "date", _coerce_date(self.date, "date"))
        _set(self, "hours", _non_negative(self.hours, "hours"))
        if self.rate is not None:
            _set(self, "rate", _non_negative(self.rate, "rate"))

    @property
    def period(self) -> PayPeriod:
        return PayPeriod.from_date(self.date)


# ---------------------------------------------------------------------------
# Piece-rate work
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WorkLogEntry:
    """Parts produced by an employee on a day for one job."""

    employee_id: str
    job_type: PartType
    job_name: str
    quantity: Decimal
    rejection: Decimal
    date: date

    def __post_init__(self) -> None:
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        _set(self, "job_type", _coerce_enum(PartType, self.job_type, "job_type"))
        _set(self, "job_name", (self.job_name or "").strip())
        quantity = _non_negative(self.quantity, "quantity")
        rejection = _non_negative(self.rejection, "rejection")
        if rejection > quantity:
            raise RejectionExceedsQuantityError(quantity, rejection)
        _set(self, "quantity", quantity)
        _set(self, "rejection", rejection)
        _set(self, "date", _coerce_date(self.date, "date"))

    @property
    def ok_parts(self) -> Decimal:
        return self.quantity - self.rejection

    @property
    def period(self) -> PayPeriod:
        return PayPeriod.from_date(self.date)


# ---------------------------------------------------------------------------
# Advances and loans
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UpadEntry:
    """An off-cycle cash advance deducted from that month's salary."""

    employee_id: str
    month: int
    year: int
    amount: Decimal
    note: str | None = None

    def __post_init__(self) -> None:
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        PayPeriod(self.year, self.month)
        _set(self, "amount", _non_negative(self.amount, "amount"))

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.year, self.month)


@dataclass(frozen=True, slots=True)
class Loan:
    """
    An employee loan repaid by monthly installments.

    ``status`` is the persisted value; the ledger derives the status the
    transactions imply and returns it, it never mutates this record.
    """

    loan_id: str
    employee_id: str
    start_month: int
    start_year: int
    principal: Decimal
    default_installment: Decimal
    status: LoanStatus = LoanStatus.ACTIVE
    note: str | None = None

    def __post_init__(self) -> None:
        _set(self, "loan_id", _require_id(self.loan_id, "loan_id"))
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        PayPeriod(self.start_year, self.start_month)
        _set(self, "principal", _positive(self.principal, "principal"))
        _set(
            self,
            "default_installment",
            _positive(self.default_installment, "default_installment"),
        )
        _set(self, "status", _coerce_enum(LoanStatus, self.status, "status"))

    @property
    def start_period(self) -> PayPeriod:
        return PayPeriod(self.start_year, self.start_month)

    def has_started_by(self, period: PayPeriod) -> bool:
        return period >= self.start_period


@dataclass(frozen=True, slots=True)
class LoanTransaction:
    """
    A repayment booked against a loan for a month.

    A manual-payment with amount 0 is the explicit "skipped EMI" marker: it
    suppresses the implicit deduction for that month without paying anything.
    """

    transaction_id: str
    loan_id: str
    employee_id: str
    month: int
    year: int
    amount: Decimal
    mode: TransactionMode = TransactionMode.SALARY_DEDUCTION

    def __post_init__(self) -> None:
        _set(self, "transaction_id", _require_id(self.transaction_id, "transaction_id"))
        _set(self, "loan_id", _require_id(self.loan_id, "loan_id"))
        _set(self, "employee_id", _require_id(self.employee_id, "employee_id"))
        PayPeriod(self.year, self.month)
        _set(self, "amount", _non_negative(self.amount, "amount"))
        _set(self, "mode", _coerce_enum(TransactionMode, self.mode, "mode"))

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.year, self.month)

    @property
    def is_manual(self) -> bool:
        return self.mode == TransactionMode.MANUAL_PAYMENT

    @property
    def is_skip_marker(self) -> bool:
        return self.is_manual and self.amount == ZERO
