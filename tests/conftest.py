"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured logging configured once per session
- LogContext isolation between tests
- A ``captured_logs`` fixture returning parsed JSON log records
- Small record builders shared by engine and service tests
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from payroll_kernel.domain.records import (
    AttendanceRecord,
    Employee,
    EmploymentType,
    JobType,
    Loan,
    LoanTransaction,
    PartType,
    TransactionMode,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            compute_salary(...)
            logs = captured_logs()
            assert any(r["message"] == "salary_computed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Record builders
# =============================================================================


def _make_loan(
    loan_id: str = "L1",
    employee_id: str = "E1",
    principal: str = "6000",
    installment: str = "1000",
    start_year: int = 2024,
    start_month: int = 1,
    status: str = "active",
) -> Loan:
    return Loan(
        loan_id=loan_id,
        employee_id=employee_id,
        start_month=start_month,
        start_year=start_year,
        principal=Decimal(principal),
        default_installment=Decimal(installment),
        status=status,
    )


def _make_tx(
    transaction_id: str,
    year: int,
    month: int,
    amount: str,
    mode: TransactionMode = TransactionMode.SALARY_DEDUCTION,
    loan_id: str = "L1",
    employee_id: str = "E1",
) -> LoanTransaction:
    return LoanTransaction(
        transaction_id=transaction_id,
        loan_id=loan_id,
        employee_id=employee_id,
        month=month,
        year=year,
        amount=Decimal(amount),
        mode=mode,
    )


def _make_attendance(
    day: date,
    present: bool = True,
    employee_id: str = "E1",
) -> AttendanceRecord:
    return AttendanceRecord(employee_id=employee_id, date=day, present=present)


@pytest.fixture
def loan() -> Loan:
    """Principal 6000, installment 1000, starting 2024-01."""
    return _make_loan()


@pytest.fixture
def loan_factory():
    """Build loans with keyword overrides."""
    return _make_loan


@pytest.fixture
def tx_factory():
    """Build loan transactions: tx_factory("T1", 2024, 2, "500")."""
    return _make_tx


@pytest.fixture
def attendance_factory():
    return _make_attendance


@pytest.fixture
def monthly_employee() -> Employee:
    return Employee(
        employee_id="E1",
        name="Ramesh",
        employment_type=EmploymentType.MONTHLY,
        salary_per_day=Decimal("500"),
    )


@pytest.fixture
def roj_employee() -> Employee:
    return Employee(
        employee_id="E2",
        name="Suresh",
        employment_type=EmploymentType.DAILY_ROJ,
        daily_roj_rate=Decimal("400"),
    )


@pytest.fixture
def contract_employee() -> Employee:
    return Employee(
        employee_id="E3",
        name="Mahesh",
        employment_type=EmploymentType.CONTRACT,
    )


@pytest.fixture
def job_types() -> tuple[JobType, ...]:
    return (
        JobType(part_type=PartType.SLEEVE, job_name="Standard", rate=Decimal("2.50")),
        JobType(part_type=PartType.ROD, job_name="Threading", rate=Decimal("1.25")),
        JobType(part_type=PartType.PIN, job_name="Standard", rate=Decimal("0")),
    )
