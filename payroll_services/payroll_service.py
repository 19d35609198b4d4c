"""
payroll_services.payroll_service -- One-call salary computation for an employee-month.

Responsibility:
    Compose the pure payroll engines with the active configuration so that
    every consumer (salary slip, salary sheet, loan screen, export) gets
    the same present-day, earnings, EMI and pending-loan figures from one
    shared call.  Also exposes the configured entrypoints for the write
    plans (attendance reconciliation, missing EMIs, payoff, transaction
    edits) and for rate-history edits.

Architecture position:
    Services -- orchestration over engines + config.
    Stateless: holds only the frozen ``PayrollEngineConfig``.  Does no
    I/O; the caller loads records and persists returned plans.

Invariants enforced:
    - Records handed in are filtered to the employee and month before any
      engine sees them, so a bundle may safely contain other employees'
      rows or other months.
    - Loan figures are computed only through ``payroll_engines.loan_ledger``.
    - Configured constants (close tolerance, overtime hours per day,
      default job name, rate-year bounds) come only from the config.
    - Log records emitted during a computation carry ``employee_id`` and
      ``period`` through ``LogContext``.

Failure modes:
    - Any ``PayrollKernelError`` raised by an engine propagates unchanged.

Usage:
    from payroll_config import get_active_config
    from payroll_services.payroll_service import EmployeeMonthRecords, PayrollService

    service = PayrollService(get_active_config())
    report = service.compute_employee_salary(employee, 2024, 3, records, catalog)
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from payroll_config import get_active_config
from payroll_config.schema import PayrollEngineConfig
from payroll_engines.attendance import (
    AttendanceWriteOp,
    overtime_totals,
    present_days,
    reconcile_to_target,
)
from payroll_engines.loan_ledger import (
    LedgerChange,
    LoanPosition,
    LoanStats,
    MissingEmiPlan,
    PayoffPlan,
    delete_transaction,
    edit_transaction,
    employee_loan_position,
    loan_stats,
    plan_missing_emis,
    plan_payoff,
    record_transaction,
)
from payroll_engines.rate_history import JobRateCatalog, RateHistory
from payroll_engines.salary import SalaryReport, compute_salary, upad_total
from payroll_engines.work_log import EarningsReport, compute_daily_and_month_totals
from payroll_kernel.domain.records import (
    AttendanceRecord,
    Employee,
    EmploymentType,
    JobType,
    Loan,
    LoanTransaction,
    OvertimeEntry,
    RateHistoryEntry,
    TransactionMode,
    UpadEntry,
    WorkLogEntry,
)
from payroll_kernel.domain.values import PayPeriod
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.payroll")


@dataclass(frozen=True)
class EmployeeMonthRecords:
    """
    Already-loaded records a salary computation reads.

    Rows for other employees or months are ignored by the service.
    """

    attendance: tuple[AttendanceRecord, ...] = ()
    overtime: tuple[OvertimeEntry, ...] = ()
    work_logs: tuple[WorkLogEntry, ...] = ()
    upad_entries: tuple[UpadEntry, ...] = ()
    loans: tuple[Loan, ...] = ()
    loan_transactions: tuple[LoanTransaction, ...] = ()


class PayrollService:
    """
    Stateless facade over the payroll engines.

    Contract:
        Receives the configuration via constructor injection (defaults to
        ``get_active_config()``).
    Guarantees:
        - ``compute_employee_salary`` returns the same figures that
          ``loan_position`` and ``earnings`` return for the same inputs.
        - Never mutates inputs; plans are returned for the caller to apply.
    Non-goals:
        - Does not load or persist records.
        - Does not format amounts for display.
    """

    def __init__(self, config: PayrollEngineConfig | None = None):
        self._config = config if config is not None else get_active_config()

    @property
    def config(self) -> PayrollEngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    def rate_history(self, entries: Iterable[RateHistoryEntry] = ()) -> RateHistory:
        """Editable rate history bounded by the configured year range."""
        return RateHistory.of(
            entries,
            min_year=self._config.min_rate_year,
            max_year=self._config.max_rate_year,
        )

    def job_catalog(self, job_types: Iterable[JobType]) -> JobRateCatalog:
        return JobRateCatalog(job_types)

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    def reconcile_attendance(
        self,
        records: Iterable[AttendanceRecord],
        employee_id: str,
        year: int,
        month: int,
        desired_present_count: int,
    ) -> tuple[AttendanceWriteOp, ...]:
        """Plan writes setting the month to exactly N present days."""
        period = PayPeriod(year, month)
        with LogContext.bind(employee_id=employee_id, period=str(period)):
            return reconcile_to_target(
                records,
                desired_present_count,
                period.days_in_month,
                employee_id=employee_id,
                year=year,
                month=month,
            )

    # ------------------------------------------------------------------
    # Earnings
    # ------------------------------------------------------------------

    def earnings(
        self,
        work_logs: Iterable[WorkLogEntry],
        catalog: JobRateCatalog,
        employee_id: str,
        year: int,
        month: int,
    ) -> EarningsReport:
        """Piece-rate earnings for one employee-month."""
        period = PayPeriod(year, month)
        logs = tuple(
            log for log in work_logs
            if log.employee_id == employee_id and log.period == period
        )
        return compute_daily_and_month_totals(
            logs, catalog.as_resolver(), self._config.default_job_name,
        )

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    @staticmethod
    def _employee_loans(
        loans: Iterable[Loan],
        transactions: Iterable[LoanTransaction],
        employee_id: str,
    ) -> tuple[tuple[Loan, ...], tuple[LoanTransaction, ...]]:
        own = tuple(loan for loan in loans if loan.employee_id == employee_id)
        ids = {loan.loan_id for loan in own}
        return own, tuple(t for t in transactions if t.loan_id in ids)

    def loan_position(
        self,
        loans: Iterable[Loan],
        transactions: Iterable[LoanTransaction],
        employee_id: str,
        year: int,
        month: int,
    ) -> LoanPosition:
        """EMI and pending loan for the salary slip."""
        own, txs = self._employee_loans(loans, transactions, employee_id)
        return employee_loan_position(
            own, txs, year, month, tolerance=self._config.loan_close_tolerance,
        )

    def loan_stats(
        self,
        loans: Iterable[Loan],
        transactions: Iterable[LoanTransaction],
        employee_id: str,
    ) -> tuple[LoanStats, ...]:
        own, txs = self._employee_loans(loans, transactions, employee_id)
        return loan_stats(own, txs, self._config.loan_close_tolerance)

    def plan_missing_emis(
        self,
        loans: Iterable[Loan],
        transactions: Iterable[LoanTransaction],
        employee_id: str,
        target_year: int,
        target_month: int,
    ) -> MissingEmiPlan:
        own, txs = self._employee_loans(loans, transactions, employee_id)
        with LogContext.bind(employee_id=employee_id):
            return plan_missing_emis(
                own, txs, target_year, target_month,
                tolerance=self._config.loan_close_tolerance,
            )

    def plan_payoff(
        self,
        loan: Loan,
        transactions: Iterable[LoanTransaction],
        year: int,
        month: int,
    ) -> PayoffPlan:
        return plan_payoff(
            loan, transactions, year, month,
            tolerance=self._config.loan_close_tolerance,
            places=self._config.amount_places,
        )

    def record_loan_transaction(
        self,
        loan: Loan,
        transactions: Iterable[LoanTransaction],
        transaction: LoanTransaction,
    ) -> LedgerChange:
        return record_transaction(
            loan, transactions, transaction, self._config.loan_close_tolerance,
        )

    def edit_loan_transaction(
        self,
        loan: Loan,
        transactions: Iterable[LoanTransaction],
        transaction_id: str,
        *,
        amount: Decimal | None = None,
        month: int | None = None,
        year: int | None = None,
        mode: TransactionMode | str | None = None,
    ) -> LedgerChange:
        return edit_transaction(
            loan, transactions, transaction_id,
            amount=amount, month=month, year=year, mode=mode,
            tolerance=self._config.loan_close_tolerance,
        )

    def delete_loan_transaction(
        self,
        loan: Loan,
        transactions: Iterable[LoanTransaction],
        transaction_id: str,
    ) -> LedgerChange:
        return delete_transaction(
            loan, transactions, transaction_id, self._config.loan_close_tolerance,
        )

    # ------------------------------------------------------------------
    # Salary
    # ------------------------------------------------------------------

    def compute_employee_salary(
        self,
        employee: Employee,
        year: int,
        month: int,
        records: EmployeeMonthRecords,
        catalog: JobRateCatalog | None = None,
    ) -> SalaryReport:
        """
        Full salary report for one employee-month.

        Preconditions:
            ``catalog`` is required for Contract employees with work logs.
        Postconditions:
            Loan EMI and pending figures equal ``loan_position`` for the
            same inputs.
        """
        period = PayPeriod(year, month)
        eid = employee.employee_id
        t0 = time.monotonic()

        with LogContext.bind(employee_id=eid, period=str(period)):
            attendance = tuple(
                r for r in records.attendance
                if r.employee_id == eid and period.contains(r.date)
            )
            overtime = overtime_totals(
                e for e in records.overtime
                if e.employee_id == eid and period.contains(e.date)
            )

            earnings = None
            if employee.employment_type == EmploymentType.CONTRACT:
                earnings = self.earnings(
                    records.work_logs, catalog or JobRateCatalog(()), eid, year, month,
                )

            position = self.loan_position(
                records.loans, records.loan_transactions, eid, year, month,
            )

            report = compute_salary(
                employee,
                year,
                month,
                present_days=present_days(attendance),
                earnings=earnings,
                overtime=overtime,
                upad_total=upad_total(records.upad_entries, eid, year, month),
                loan_emi_total=position.emi_total,
                pending_loan=position.pending_total,
                overtime_hours_per_day=self._config.overtime_hours_per_day,
            )

            logger.info("employee_salary_computed", extra={
                "config_id": self._config.config_id,
                "config_version": self._config.version,
                "net_amount": str(report.net_amount),
                "is_negative": report.is_negative,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
        return report

    def compute_payroll(
        self,
        employees: Iterable[Employee],
        year: int,
        month: int,
        records: EmployeeMonthRecords,
        catalog: JobRateCatalog | None = None,
        *,
        run_id: str | None = None,
    ) -> tuple[SalaryReport, ...]:
        """
        Salary reports for every active employee, ordered by employee id.

        Every log line emitted during the run carries ``run_id`` (a fresh
        uuid4 hex unless the caller supplies one).
        """
        run_id = run_id or uuid4().hex
        active = sorted(
            (e for e in employees if e.is_active), key=lambda e: e.employee_id,
        )
        with LogContext.bind(run_id=run_id):
            reports = tuple(
                self.compute_employee_salary(e, year, month, records, catalog)
                for e in active
            )
            logger.info("payroll_run_computed", extra={
                "period": str(PayPeriod(year, month)),
                "employee_count": len(reports),
                "negative_count": sum(1 for r in reports if r.is_negative),
            })
        return reports
