"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll figures feed real cash payouts. Callers (HTTP handlers, batch jobs,
admin tools) must be able to tell a bad input apart from a missing record
without parsing message strings.

Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        ops = reconcile_to_target(records, desired, days_in_month, ...)
    except PresentDaysOutOfRangeError as e:
        api_response(code=e.code, desired=e.desired, maximum=e.days_in_month)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidPeriodError
    |   +-- InvalidAmountError
    |   +-- RejectionExceedsQuantityError
    |   +-- MissingIdentifierError
    |   +-- PresentDaysOutOfRangeError
    |   +-- DuplicateRateEntryError
    |   +-- DuplicateJobTypeError
    |   +-- OvertimeWithoutPresenceError
    |   +-- UnsupportedEmploymentTypeError
    |
    +-- NotFoundError
    |   +-- RateEntryNotFoundError
    |   +-- JobTypeNotFoundError
    |   +-- LoanNotFoundError
    |   +-- LoanTransactionNotFoundError
    |
    +-- LoanStateError
        +-- LoanCancelledError
        +-- LoanAlreadySettledError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                         | When Raised
------------|------------------------------|------------------------------------
Validation  | INVALID_PERIOD               | Month outside 1-12, bad year
            | INVALID_AMOUNT               | Negative or non-positive amount
            | REJECTION_EXCEEDS_QUANTITY   | Work log rejection > quantity
            | MISSING_IDENTIFIER           | Empty employee/loan/job id
            | PRESENT_DAYS_OUT_OF_RANGE    | Bulk target outside [0, days]
            | DUPLICATE_RATE_ENTRY         | Two rate entries for one month
            | DUPLICATE_JOB_TYPE           | Same (part type, job name) twice
            | OVERTIME_WITHOUT_PRESENCE    | Overtime on an absent day
            | UNSUPPORTED_EMPLOYMENT_TYPE  | Employment type outside closed set
------------|------------------------------|------------------------------------
Not found   | RATE_ENTRY_NOT_FOUND         | Edit/delete of unknown rate month
            | JOB_TYPE_NOT_FOUND           | Work log references unknown job
            | LOAN_NOT_FOUND               | Transaction for unknown loan
            | LOAN_TRANSACTION_NOT_FOUND   | Edit/delete of unknown transaction
------------|------------------------------|------------------------------------
Loan state  | LOAN_CANCELLED               | Payoff/EMI on a cancelled loan
            | LOAN_ALREADY_SETTLED         | Payoff with nothing outstanding

Inconsistent-state conditions (negative net salary, orphaned loan
transactions) are NOT exceptions.  They are returned as flags on the
computed result and logged at WARNING for human review.

===============================================================================
"""

from decimal import Decimal


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Validation errors


class ValidationError(PayrollKernelError):
    """Base exception for rejected input. No partial state change occurs."""

    code: str = "VALIDATION_ERROR"


class InvalidPeriodError(ValidationError):
    """Year/month pair is not a valid calendar month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: object, month: object, reason: str = ""):
        self.year = year
        self.month = month
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Invalid period {year}-{month}{detail}")


class InvalidAmountError(ValidationError):
    """A monetary or quantity field violates its sign constraint."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, value: object, constraint: str):
        self.field_name = field_name
        self.value = value
        self.constraint = constraint
        super().__init__(f"{field_name} must be {constraint}, got {value}")


class RejectionExceedsQuantityError(ValidationError):
    """Work log rejection count is larger than the produced quantity."""

    code: str = "REJECTION_EXCEEDS_QUANTITY"

    def __init__(self, quantity: Decimal, rejection: Decimal):
        self.quantity = quantity
        self.rejection = rejection
        super().__init__(
            f"Rejection {rejection} exceeds quantity {quantity}"
        )


class MissingIdentifierError(ValidationError):
    """A required identifier is empty."""

    code: str = "MISSING_IDENTIFIER"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"{field_name} is required")


class PresentDaysOutOfRangeError(ValidationError):
    """Bulk present-day target is outside [0, days_in_month]."""

    code: str = "PRESENT_DAYS_OUT_OF_RANGE"

    def __init__(self, desired: int, days_in_month: int):
        self.desired = desired
        self.days_in_month = days_in_month
        super().__init__(
            f"Present days {desired} outside allowed range 0..{days_in_month}"
        )


class DuplicateRateEntryError(ValidationError):
    """A rate history already has an entry effective from this month."""

    code: str = "DUPLICATE_RATE_ENTRY"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(
            f"Rate entry already exists effective from {year}-{month:02d}"
        )


class DuplicateJobTypeError(ValidationError):
    """Two job types share the same (part type, job name)."""

    code: str = "DUPLICATE_JOB_TYPE"

    def __init__(self, part_type: str, job_name: str):
        self.part_type = part_type
        self.job_name = job_name
        super().__init__(
            f"Job type already exists for part type {part_type}: {job_name}"
        )


class OvertimeWithoutPresenceError(ValidationError):
    """Overtime was registered for a day the employee was not present."""

    code: str = "OVERTIME_WITHOUT_PRESENCE"

    def __init__(self, employee_id: str, work_date: str):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(
            f"Employee {employee_id} was absent on {work_date}. "
            f"Cannot register overtime."
        )


class UnsupportedEmploymentTypeError(ValidationError):
    """Employment type is outside the closed set."""

    code: str = "UNSUPPORTED_EMPLOYMENT_TYPE"

    def __init__(self, employment_type: object):
        self.employment_type = employment_type
        super().__init__(f"Unsupported employment type: {employment_type}")


# Not-found errors


class NotFoundError(PayrollKernelError):
    """Base exception for references to absent records."""

    code: str = "NOT_FOUND"


class RateEntryNotFoundError(NotFoundError):
    """No rate history entry is effective from the given month."""

    code: str = "RATE_ENTRY_NOT_FOUND"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Rate history entry not found: {year}-{month:02d}")


class JobTypeNotFoundError(NotFoundError):
    """No job type is registered for (part type, job name)."""

    code: str = "JOB_TYPE_NOT_FOUND"

    def __init__(self, part_type: str, job_name: str):
        self.part_type = part_type
        self.job_name = job_name
        super().__init__(f"Job type not found: {part_type}:{job_name}")


class LoanNotFoundError(NotFoundError):
    """Loan with given ID was not found."""

    code: str = "LOAN_NOT_FOUND"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan not found: {loan_id}")


class LoanTransactionNotFoundError(NotFoundError):
    """Loan transaction with given ID was not found."""

    code: str = "LOAN_TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Loan transaction not found: {transaction_id}")


# Loan state errors


class LoanStateError(PayrollKernelError):
    """Base exception for operations not allowed in the loan's status."""

    code: str = "LOAN_STATE_ERROR"


class LoanCancelledError(LoanStateError):
    """Cancelled loans are terminal and accept no further operations."""

    code: str = "LOAN_CANCELLED"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} is cancelled")


class LoanAlreadySettledError(LoanStateError):
    """Lump-sum payoff requested but nothing is outstanding."""

    code: str = "LOAN_ALREADY_SETTLED"

    def __init__(self, loan_id: str, outstanding: Decimal):
        self.loan_id = loan_id
        self.outstanding = outstanding
        super().__init__(
            f"Loan {loan_id} has no outstanding balance ({outstanding})"
        )
