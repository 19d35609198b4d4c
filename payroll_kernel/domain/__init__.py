"""
Payroll kernel domain layer: pure value objects and immutable records.

Nothing in this package performs I/O or reads the clock.
"""

from payroll_kernel.domain.records import (
    AttendanceRecord,
    Employee,
    EmploymentType,
    JobType,
    Loan,
    LoanStatus,
    LoanTransaction,
    OvertimeEntry,
    PartType,
    RateHistoryEntry,
    TransactionMode,
    UpadEntry,
    WorkLogEntry,
)
from payroll_kernel.domain.values import ZERO, PayPeriod, round_amount, to_decimal

__all__ = [
    "AttendanceRecord",
    "Employee",
    "EmploymentType",
    "JobType",
    "Loan",
    "LoanStatus",
    "LoanTransaction",
    "OvertimeEntry",
    "PartType",
    "PayPeriod",
    "RateHistoryEntry",
    "TransactionMode",
    "UpadEntry",
    "WorkLogEntry",
    "ZERO",
    "round_amount",
    "to_decimal",
]
