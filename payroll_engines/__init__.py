"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll calculation engines.  This is the import surface for
    payroll_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (and sibling engine modules).
    MUST NOT import payroll_services or payroll_config.

Invariants enforced:
    - Purity: engines never read the clock.  Periods are passed in.
    - Decimal-only arithmetic for every amount, rate and quantity.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - PayrollKernelError subclasses propagated from individual engines on
      invalid input.

Usage:
    from payroll_engines.rate_history import JobRateCatalog, RateHistory
    from payroll_engines.attendance import reconcile_to_target
    from payroll_engines.work_log import compute_daily_and_month_totals
    from payroll_engines.loan_ledger import monthly_emi, pending_balance
    from payroll_engines.salary import compute_salary
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.attendance import (
    AttendanceOpKind,
    AttendanceWriteOp,
    OvertimeSummary,
    apply_write_ops,
    overtime_totals,
    present_days,
    present_days_by_employee,
    reconcile_to_target,
    remove_month,
    upsert_record,
    validate_overtime_entry,
)
from payroll_engines.loan_ledger import (
    LedgerChange,
    LoanMonthLine,
    LoanPosition,
    LoanStats,
    MissingEmiPlan,
    PayoffPlan,
    delete_transaction,
    derive_status,
    edit_transaction,
    employee_loan_position,
    find_orphaned_transactions,
    loan_stats,
    monthly_emi,
    outstanding_balance,
    pending_balance,
    plan_missing_emis,
    plan_payoff,
    record_transaction,
    total_paid,
)
from payroll_engines.rate_history import (
    JobRateCatalog,
    RateHistory,
    RateResolver,
    resolve_rate,
)
from payroll_engines.salary import (
    SalaryReport,
    compute_salary,
    overtime_amount,
    upad_total,
)
from payroll_engines.tracer import traced_engine
from payroll_engines.work_log import (
    DailyEarnings,
    EarningLine,
    EarningsReport,
    JobColumn,
    compute_daily_and_month_totals,
)

__all__ = [
    # Attendance
    "AttendanceOpKind",
    "AttendanceWriteOp",
    "OvertimeSummary",
    "apply_write_ops",
    "overtime_totals",
    "present_days",
    "present_days_by_employee",
    "reconcile_to_target",
    "remove_month",
    "upsert_record",
    "validate_overtime_entry",
    # Loan ledger
    "LedgerChange",
    "LoanMonthLine",
    "LoanPosition",
    "LoanStats",
    "MissingEmiPlan",
    "PayoffPlan",
    "delete_transaction",
    "derive_status",
    "edit_transaction",
    "employee_loan_position",
    "find_orphaned_transactions",
    "loan_stats",
    "monthly_emi",
    "outstanding_balance",
    "pending_balance",
    "plan_missing_emis",
    "plan_payoff",
    "record_transaction",
    "total_paid",
    # Rate history
    "JobRateCatalog",
    "RateHistory",
    "RateResolver",
    "resolve_rate",
    # Salary
    "SalaryReport",
    "compute_salary",
    "overtime_amount",
    "upad_total",
    # Tracer
    "traced_engine",
    # Work log
    "DailyEarnings",
    "EarningLine",
    "EarningsReport",
    "JobColumn",
    "compute_daily_and_month_totals",
]
