"""
payroll_engines.loan_ledger -- Loan EMI, pending balance and status derivation.

Responsibility:
    Single home for every loan figure payroll needs: amount paid to date,
    outstanding balance, the EMI deducted in a month (with the
    manual-payment waiver), the pending balance shown on a salary slip, the
    active/closed status the transactions imply, and the write plans for
    lump-sum payoff and back-filling missing EMIs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.
    Consumed by the salary composer and the payroll service.  Every
    consumer that shows an EMI or pending figure goes through this module
    so the figures agree.

Invariants enforced:
    - Status is derived, never mutated in place: ``active`` becomes
      ``closed`` once total paid >= principal - tolerance and reverts to
      ``active`` when it drops below.  ``cancelled`` is never entered or
      left automatically.
    - EMI for a month: 0 before the loan starts; 0 when any manual-payment
      transaction exists in the month; else the sum of that month's
      transactions if any; else the default installment.
    - Pending balance counts only salary-deduction transactions up to the
      as-of month.  Manual payments only reduce it through a payoff that
      closes the loan.
    - Plans never overwrite an existing transaction and are idempotent:
      re-planning against the applied result yields nothing new.
    - Inputs are never mutated; transaction collections are returned as
      new tuples.

Failure modes:
    - LoanCancelledError on payoff of, or new transactions for, a
      cancelled loan.
    - LoanAlreadySettledError when a payoff finds nothing outstanding.
    - LoanNotFoundError when a transaction does not belong to the loan.
    - LoanTransactionNotFoundError on edit/delete of an unknown id.
    - Orphaned transactions (loan deleted) are reported and logged at
      WARNING, never raised.

Usage:
    from payroll_engines.loan_ledger import monthly_emi, pending_balance

    emi = monthly_emi(loan, transactions, 2024, 3)
    pending = pending_balance(loan, transactions, 2024, 3)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.records import (
    Loan,
    LoanStatus,
    LoanTransaction,
    TransactionMode,
)
from payroll_kernel.domain.values import ZERO, PayPeriod, round_amount
from payroll_kernel.exceptions import (
    LoanAlreadySettledError,
    LoanCancelledError,
    LoanNotFoundError,
    LoanTransactionNotFoundError,
    ValidationError,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.loan_ledger")

DEFAULT_CLOSE_TOLERANCE = Decimal("0.01")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoanStats:
    """Per-loan running figures."""

    loan_id: str
    principal: Decimal
    total_paid: Decimal
    outstanding: Decimal
    status: LoanStatus
    transaction_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "loan_id": self.loan_id,
            "principal": str(self.principal),
            "total_paid": str(self.total_paid),
            "outstanding": str(self.outstanding),
            "status": self.status.value,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class PayoffPlan:
    """Manual-payment transaction that settles a loan, and the status it implies."""

    loan_id: str
    transaction: LoanTransaction
    status: LoanStatus


@dataclass(frozen=True)
class MissingEmiPlan:
    """
    Salary-deduction transactions to create, with the resulting statuses.

    ``statuses`` maps loan_id to the status derived after the planned
    transactions are applied.
    """

    transactions: tuple[LoanTransaction, ...]
    statuses: dict[str, LoanStatus] = field(default_factory=dict)

    @property
    def created(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True)
class LedgerChange:
    """New transaction collection for a loan after an add/edit/delete."""

    loan_id: str
    transactions: tuple[LoanTransaction, ...]
    status: LoanStatus
    previous_status: LoanStatus

    @property
    def status_changed(self) -> bool:
        return self.status != self.previous_status


@dataclass(frozen=True)
class LoanMonthLine:
    """One loan's contribution to an employee's month."""

    loan_id: str
    status: LoanStatus
    emi: Decimal
    pending: Decimal


@dataclass(frozen=True)
class LoanPosition:
    """EMI and pending balance summed over all of an employee's loans."""

    year: int
    month: int
    emi_total: Decimal
    pending_total: Decimal
    lines: tuple[LoanMonthLine, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "emi_total": str(self.emi_total),
            "pending_total": str(self.pending_total),
            "lines": [
                {
                    "loan_id": line.loan_id,
                    "status": line.status.value,
                    "emi": str(line.emi),
                    "pending": str(line.pending),
                }
                for line in self.lines
            ],
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def transactions_for(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
) -> tuple[LoanTransaction, ...]:
    """Transactions booked against ``loan``, in input order."""
    return tuple(t for t in transactions if t.loan_id == loan.loan_id)


def planned_transaction_id(loan_id: str, period: PayPeriod, kind: str) -> str:
    """Deterministic id for a planned transaction so re-planning is stable."""
    return f"{loan_id}:{period}:{kind}"


def _month(txs: Iterable[LoanTransaction], period: PayPeriod) -> tuple[LoanTransaction, ...]:
    return tuple(t for t in txs if t.period == period)


# ---------------------------------------------------------------------------
# Figures
# ---------------------------------------------------------------------------


def total_paid(loan: Loan, transactions: Iterable[LoanTransaction]) -> Decimal:
    """Sum of every transaction amount for the loan, any mode."""
    return sum((t.amount for t in transactions_for(loan, transactions)), ZERO)


def outstanding_balance(loan: Loan, transactions: Iterable[LoanTransaction]) -> Decimal:
    """Principal less everything paid, clamped at zero."""
    return max(ZERO, loan.principal - total_paid(loan, transactions))


def derive_status(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> LoanStatus:
    """
    Status the loan's transactions imply.

    Postconditions:
        ``cancelled`` is returned unchanged.  Otherwise ``closed`` when
        total paid >= principal - tolerance, else ``active``.
    """
    if loan.status == LoanStatus.CANCELLED:
        return LoanStatus.CANCELLED
    if total_paid(loan, transactions) >= loan.principal - tolerance:
        return LoanStatus.CLOSED
    return LoanStatus.ACTIVE


@traced_engine("loan_ledger", "1.0", fingerprint_fields=("loan", "year", "month"))
def monthly_emi(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    year: int,
    month: int,
) -> Decimal:
    """
    Installment deducted from salary for (year, month).

    Postconditions:
        - 0 when the month is before the loan start.
        - 0 when any manual-payment transaction exists in the month
          (a manual payment, including the 0-amount skip marker, waives
          the salary deduction).
        - Sum of the month's transactions when there are any.
        - ``default_installment`` otherwise.  Not capped at the pending
          balance.
    """
    period = PayPeriod(year, month)
    if not loan.has_started_by(period):
        return ZERO
    in_month = _month(transactions_for(loan, transactions), period)
    if any(t.is_manual for t in in_month):
        return ZERO
    if in_month:
        return sum((t.amount for t in in_month), ZERO)
    return loan.default_installment


@traced_engine("loan_ledger", "1.0", fingerprint_fields=("loan", "as_of_year", "as_of_month"))
def pending_balance(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    as_of_year: int,
    as_of_month: int,
) -> Decimal:
    """
    Balance still to be recovered through salary after the as-of month.

    Postconditions:
        - ``principal`` when the loan has not started.
        - Otherwise principal less salary-deduction transactions up to and
          including the as-of month, clamped at 0; then, when the as-of
          month has no transaction at all, the default installment the
          month will deduct is also subtracted (clamped at 0).
        - A month holding only manual payments leaves the figure equal to
          the previous month's.
    """
    as_of = PayPeriod(as_of_year, as_of_month)
    if not loan.has_started_by(as_of):
        return loan.principal
    txs = transactions_for(loan, transactions)
    deducted = sum(
        (
            t.amount for t in txs
            if t.mode == TransactionMode.SALARY_DEDUCTION and t.period <= as_of
        ),
        ZERO,
    )
    pending = max(ZERO, loan.principal - deducted)
    if not _month(txs, as_of):
        pending = max(ZERO, pending - loan.default_installment)
    return pending


def loan_stats(
    loans: Iterable[Loan],
    transactions: Iterable[LoanTransaction],
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> tuple[LoanStats, ...]:
    """Paid-to-date, outstanding and derived status for each loan."""
    transactions = tuple(transactions)
    return tuple(
        LoanStats(
            loan_id=loan.loan_id,
            principal=loan.principal,
            total_paid=total_paid(loan, transactions),
            outstanding=outstanding_balance(loan, transactions),
            status=derive_status(loan, transactions, tolerance),
            transaction_count=len(transactions_for(loan, transactions)),
        )
        for loan in loans
    )


@traced_engine("loan_ledger", "1.0", fingerprint_fields=("loans", "year", "month"))
def employee_loan_position(
    loans: Iterable[Loan],
    transactions: Iterable[LoanTransaction],
    year: int,
    month: int,
    *,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> LoanPosition:
    """
    EMI and pending balance for a month across an employee's loans.

    Each loan is routed by the status its transactions imply
    (``derive_status``), not the stored status, so a loan paid off by
    deductions not yet persisted as ``closed`` stops deducting at once.

    Postconditions:
        - Active loans contribute ``monthly_emi`` and ``pending_balance``.
        - Closed loans contribute only the salary-deduction amounts
          actually recorded in the month, and no pending balance.
        - Cancelled loans contribute nothing and are not listed.
    """
    period = PayPeriod(year, month)
    transactions = tuple(transactions)
    lines: list[LoanMonthLine] = []
    for loan in loans:
        status = derive_status(loan, transactions, tolerance)
        if status == LoanStatus.CANCELLED:
            continue
        if status == LoanStatus.CLOSED:
            recorded = sum(
                (
                    t.amount for t in _month(transactions_for(loan, transactions), period)
                    if t.mode == TransactionMode.SALARY_DEDUCTION
                ),
                ZERO,
            )
            lines.append(LoanMonthLine(loan.loan_id, status, recorded, ZERO))
            continue
        lines.append(
            LoanMonthLine(
                loan_id=loan.loan_id,
                status=status,
                emi=monthly_emi(loan, transactions, year, month),
                pending=pending_balance(loan, transactions, year, month),
            )
        )

    position = LoanPosition(
        year=year,
        month=month,
        emi_total=sum((line.emi for line in lines), ZERO),
        pending_total=sum((line.pending for line in lines), ZERO),
        lines=tuple(lines),
    )
    logger.info("loan_position_computed", extra={
        "period": str(period),
        "loan_count": len(lines),
        "emi_total": str(position.emi_total),
        "pending_total": str(position.pending_total),
    })
    return position


def find_orphaned_transactions(
    loans: Iterable[Loan],
    transactions: Iterable[LoanTransaction],
) -> tuple[LoanTransaction, ...]:
    """Transactions whose loan is no longer present. Reported, not dropped."""
    known = {loan.loan_id for loan in loans}
    orphans = tuple(t for t in transactions if t.loan_id not in known)
    if orphans:
        logger.warning("loan_transactions_orphaned", extra={
            "orphan_count": len(orphans),
            "loan_ids": sorted({t.loan_id for t in orphans}),
        })
    return orphans


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


@traced_engine("loan_ledger", "1.0", fingerprint_fields=("loan", "year", "month"))
def plan_payoff(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    year: int,
    month: int,
    *,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
    places: int = 2,
) -> PayoffPlan:
    """
    Lump-sum manual payment of the full outstanding balance.

    Postconditions:
        The planned transaction is a manual payment for the outstanding
        amount rounded to ``places``; applying it closes the loan.

    Raises:
        LoanCancelledError: the loan is cancelled.
        LoanAlreadySettledError: nothing is outstanding.
    """
    if loan.status == LoanStatus.CANCELLED:
        raise LoanCancelledError(loan.loan_id)
    transactions = tuple(transactions)
    outstanding = round_amount(outstanding_balance(loan, transactions), places)
    if outstanding <= ZERO:
        raise LoanAlreadySettledError(loan.loan_id, outstanding)

    period = PayPeriod(year, month)
    tx = LoanTransaction(
        transaction_id=planned_transaction_id(loan.loan_id, period, "payoff"),
        loan_id=loan.loan_id,
        employee_id=loan.employee_id,
        month=month,
        year=year,
        amount=outstanding,
        mode=TransactionMode.MANUAL_PAYMENT,
    )
    status = derive_status(loan, transactions + (tx,), tolerance)
    logger.info("loan_payoff_planned", extra={
        "loan_id": loan.loan_id,
        "period": str(period),
        "amount": str(outstanding),
        "status": status.value,
    })
    return PayoffPlan(loan_id=loan.loan_id, transaction=tx, status=status)


@traced_engine(
    "loan_ledger", "1.0",
    fingerprint_fields=("loans", "target_year", "target_month"),
)
def plan_missing_emis(
    loans: Iterable[Loan],
    transactions: Iterable[LoanTransaction],
    target_year: int,
    target_month: int,
    *,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> MissingEmiPlan:
    """
    Back-fill salary deductions for months with no transaction.

    For every active or closed loan, each month from the loan start through
    the target month that has no transaction of any kind gets a
    salary-deduction transaction of ``default_installment``.  Existing
    transactions are never touched, so the plan is idempotent.
    """
    target = PayPeriod(target_year, target_month)
    transactions = tuple(transactions)
    planned: list[LoanTransaction] = []
    statuses: dict[str, LoanStatus] = {}

    for loan in loans:
        if loan.status == LoanStatus.CANCELLED:
            continue
        existing = transactions_for(loan, transactions)
        booked = {t.period for t in existing}
        created: list[LoanTransaction] = []
        for period in loan.start_period.through(target):
            if period in booked:
                continue
            created.append(
                LoanTransaction(
                    transaction_id=planned_transaction_id(loan.loan_id, period, "emi"),
                    loan_id=loan.loan_id,
                    employee_id=loan.employee_id,
                    month=period.month,
                    year=period.year,
                    amount=loan.default_installment,
                    mode=TransactionMode.SALARY_DEDUCTION,
                )
            )
        statuses[loan.loan_id] = derive_status(loan, existing + tuple(created), tolerance)
        planned.extend(created)

    logger.info("missing_emis_planned", extra={
        "target_period": str(target),
        "loan_count": len(statuses),
        "created_count": len(planned),
    })
    return MissingEmiPlan(transactions=tuple(planned), statuses=statuses)


# ---------------------------------------------------------------------------
# Transaction edits
# ---------------------------------------------------------------------------


def _change(
    loan: Loan,
    transactions: tuple[LoanTransaction, ...],
    tolerance: Decimal,
    previous: LoanStatus,
    action: str,
) -> LedgerChange:
    status = derive_status(loan, transactions, tolerance)
    if status != previous:
        logger.info("loan_status_changed", extra={
            "loan_id": loan.loan_id,
            "from_status": previous.value,
            "to_status": status.value,
            "action": action,
        })
    return LedgerChange(
        loan_id=loan.loan_id,
        transactions=transactions,
        status=status,
        previous_status=previous,
    )


def record_transaction(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    transaction: LoanTransaction,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> LedgerChange:
    """
    Add a transaction to the loan and re-derive the status.

    Raises:
        LoanNotFoundError: the transaction names another loan.
        LoanCancelledError: the loan is cancelled.
        ValidationError: the transaction id is already used.
    """
    if transaction.loan_id != loan.loan_id:
        raise LoanNotFoundError(transaction.loan_id)
    if loan.status == LoanStatus.CANCELLED:
        raise LoanCancelledError(loan.loan_id)
    existing = transactions_for(loan, transactions)
    if any(t.transaction_id == transaction.transaction_id for t in existing):
        raise ValidationError(
            f"Loan transaction already exists: {transaction.transaction_id}"
        )
    previous = derive_status(loan, existing, tolerance)
    return _change(loan, existing + (transaction,), tolerance, previous, "record")


def edit_transaction(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    transaction_id: str,
    *,
    amount: Decimal | None = None,
    month: int | None = None,
    year: int | None = None,
    mode: TransactionMode | str | None = None,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> LedgerChange:
    """
    Correct a transaction in place (by id) and re-derive the status.

    Raises:
        LoanTransactionNotFoundError: no such transaction on the loan.
    """
    existing = transactions_for(loan, transactions)
    current = next((t for t in existing if t.transaction_id == transaction_id), None)
    if current is None:
        raise LoanTransactionNotFoundError(transaction_id)
    updated = LoanTransaction(
        transaction_id=current.transaction_id,
        loan_id=current.loan_id,
        employee_id=current.employee_id,
        month=current.month if month is None else month,
        year=current.year if year is None else year,
        amount=current.amount if amount is None else amount,
        mode=current.mode if mode is None else mode,
    )
    previous = derive_status(loan, existing, tolerance)
    replaced = tuple(updated if t.transaction_id == transaction_id else t for t in existing)
    return _change(loan, replaced, tolerance, previous, "edit")


def delete_transaction(
    loan: Loan,
    transactions: Iterable[LoanTransaction],
    transaction_id: str,
    tolerance: Decimal = DEFAULT_CLOSE_TOLERANCE,
) -> LedgerChange:
    """
    Remove a transaction (by id) and re-derive the status.

    Raises:
        LoanTransactionNotFoundError: no such transaction on the loan.
    """
    existing = transactions_for(loan, transactions)
    if not any(t.transaction_id == transaction_id for t in existing):
        raise LoanTransactionNotFoundError(transaction_id)
    previous = derive_status(loan, existing, tolerance)
    remaining = tuple(t for t in existing if t.transaction_id != transaction_id)
    return _change(loan, remaining, tolerance, previous, "delete")
