"""
Property-based tests for the payroll engines.

Properties checked here:
- Rate resolution: a later history entry never changes an earlier month
- Attendance reconciliation: applying the plan reaches the target, and
  re-planning afterwards yields no operations
- Loan status: closed exactly when total paid >= principal - tolerance
- Manual payments waive the month's EMI and leave pending unchanged
- Piece-rate earnings are additive over disjoint log sets
"""

from datetime import date
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_engines.attendance import apply_write_ops, present_days, reconcile_to_target
from payroll_engines.loan_ledger import derive_status, monthly_emi, pending_balance
from payroll_engines.rate_history import JobRateCatalog, resolve_rate
from payroll_engines.work_log import compute_daily_and_month_totals
from payroll_kernel.domain.records import (
    AttendanceRecord,
    JobType,
    Loan,
    LoanStatus,
    LoanTransaction,
    PartType,
    RateHistoryEntry,
    TransactionMode,
    WorkLogEntry,
)
from payroll_kernel.domain.values import PayPeriod

amounts = st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2)
positive_amounts = st.decimals(min_value=Decimal("1"), max_value=Decimal("100000"), places=2)
periods = st.builds(PayPeriod, st.integers(2000, 2030), st.integers(1, 12))


@st.composite
def rate_histories(draw):
    keys = draw(st.sets(st.tuples(st.integers(2000, 2030), st.integers(1, 12)), max_size=8))
    return tuple(RateHistoryEntry(draw(amounts), y, m) for y, m in keys)


@st.composite
def attendance_months(draw):
    days = draw(st.dictionaries(st.integers(1, 30), st.booleans(), max_size=30))
    return [AttendanceRecord("E1", date(2024, 4, d), present) for d, present in days.items()]


@st.composite
def work_logs(draw, day_range=(1, 28)):
    parts = draw(st.lists(
        st.tuples(
            st.integers(*day_range),
            st.sampled_from(["sleeve", "rod"]),
            st.integers(0, 500),
        ),
        max_size=10,
    ))
    logs = []
    for day, part, qty in parts:
        rejection = draw(st.integers(0, qty))
        logs.append(WorkLogEntry("E3", part, "Standard", qty, rejection, date(2024, 4, day)))
    return logs


CATALOG = JobRateCatalog([
    JobType(PartType.SLEEVE, "Standard", Decimal("2.50")),
    JobType(PartType.ROD, "Standard", Decimal("1.25")),
])


class TestRateResolutionProperties:

    @given(history=rate_histories(), target=periods, later=periods, rate=amounts)
    @settings(max_examples=100)
    def test_later_entry_does_not_change_earlier_month(self, history, target, later, rate):
        if later <= target or later.encoded in {e.encoded for e in history}:
            return
        before = resolve_rate(history, Decimal("1"), target.year, target.month)
        extended = history + (RateHistoryEntry(rate, later.year, later.month),)
        assert resolve_rate(extended, Decimal("1"), target.year, target.month) == before

    @given(history=rate_histories(), target=periods)
    @settings(max_examples=100)
    def test_resolved_rate_is_base_or_an_entry(self, history, target):
        rate = resolve_rate(history, Decimal("-1"), target.year, target.month)
        assert rate == Decimal("-1") or rate in {e.rate for e in history}


class TestReconciliationProperties:

    @given(records=attendance_months(), desired=st.integers(0, 30))
    @settings(max_examples=100)
    def test_reaches_target_and_is_idempotent(self, records, desired):
        ops = reconcile_to_target(records, desired, 30, employee_id="E1", year=2024, month=4)
        applied = apply_write_ops(records, ops)
        assert present_days(applied) == desired
        assert reconcile_to_target(
            applied, desired, 30, employee_id="E1", year=2024, month=4,
        ) == ()


class TestLoanProperties:

    @given(principal=positive_amounts, payments=st.lists(amounts, max_size=6))
    @settings(max_examples=100)
    def test_closed_iff_paid_within_tolerance(self, principal, payments):
        loan = Loan("L1", "E1", 1, 2024, principal, Decimal("100"))
        txs = [
            LoanTransaction(f"T{i}", "L1", "E1", 1, 2024, amount)
            for i, amount in enumerate(payments)
        ]
        closed = sum(payments, Decimal("0")) >= principal - Decimal("0.01")
        expected = LoanStatus.CLOSED if closed else LoanStatus.ACTIVE
        assert derive_status(loan, txs) == expected

    @given(
        principal=positive_amounts,
        installment=positive_amounts,
        manual=amounts,
        month=st.integers(2, 12),
    )
    @settings(max_examples=100)
    def test_manual_payment_waives_month(self, principal, installment, manual, month):
        loan = Loan("L1", "E1", 1, 2024, principal, installment)
        prior = [
            LoanTransaction(f"D{m}", "L1", "E1", m, 2024, installment)
            for m in range(1, month)
        ]
        txs = prior + [
            LoanTransaction("M", "L1", "E1", month, 2024, manual, TransactionMode.MANUAL_PAYMENT),
        ]
        assert monthly_emi(loan, txs, 2024, month) == Decimal("0")
        assert pending_balance(loan, txs, 2024, month) == pending_balance(
            loan, prior, 2024, month - 1,
        )


class TestEarningsProperties:

    @given(first=work_logs(day_range=(1, 14)), second=work_logs(day_range=(15, 28)))
    @settings(max_examples=100)
    def test_month_total_is_additive(self, first, second):
        resolver = CATALOG.as_resolver()
        total_first = compute_daily_and_month_totals(first, resolver).month_total
        total_second = compute_daily_and_month_totals(second, resolver).month_total
        combined = compute_daily_and_month_totals(first + second, resolver).month_total
        assert combined == total_first + total_second
