"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the value types every payroll computation shares: the
    ``PayPeriod`` (a calendar month) and the Decimal coercion helpers used
    at record boundaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by records and by every engine. No outward dependencies.

Invariants enforced:
    - Amounts are always Decimal, never float (floats are converted via
      ``str`` so 0.1 stays 0.1).
    - A PayPeriod month is always an integer in 1..12.
    - PayPeriod ordering equals ``year * 100 + month`` ordering.

Failure modes:
    - InvalidPeriodError on construction with a bad year or month.
    - InvalidAmountError when a value cannot be read as a Decimal.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterator

from payroll_kernel.exceptions import InvalidAmountError, InvalidPeriodError

ZERO = Decimal("0")


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """
    Coerce a numeric input to Decimal.

    Preconditions:
        - ``value`` is a Decimal, int, float or numeric string.
    Postconditions:
        - Returns a finite Decimal. Floats go through ``str`` first.
    Raises:
        InvalidAmountError: if the value is not numeric or not finite.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(field_name, value, "a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise InvalidAmountError(field_name, value, "a number") from e
    if not result.is_finite():
        raise InvalidAmountError(field_name, value, "finite")
    return result


def round_amount(value: Decimal, places: int = 2) -> Decimal:
    """Round half-up to ``places`` decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True, order=True)
class PayPeriod:
    """
    A calendar month (the unit every payroll figure is computed for).

    Contract:
        Frozen, ordered by (year, month). Constructed with validation.

    Guarantees:
        - month in 1..12, year >= 1.
        - ``encoded`` is ``year * 100 + month`` and orders identically.
        - ``next()`` / ``previous()`` roll over year boundaries.

    Non-goals:
        - Does NOT model pay cycles other than calendar months.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidPeriodError(self.year, self.month, "year must be an integer")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise InvalidPeriodError(self.year, self.month, "month must be an integer")
        if self.year < 1:
            raise InvalidPeriodError(self.year, self.month, "year must be positive")
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(self.year, self.month, "month must be 1-12")

    @classmethod
    def of(cls, year: int, month: int) -> PayPeriod:
        """Factory alias used at call sites that read better with ``of``."""
        return cls(year, month)

    @classmethod
    def from_date(cls, value: date) -> PayPeriod:
        """Period containing the given calendar day."""
        return cls(value.year, value.month)

    @property
    def encoded(self) -> int:
        """Comparable integer key: year * 100 + month."""
        return self.year * 100 + self.month

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def day(self, day_of_month: int) -> date:
        """Calendar date for a day number within this period."""
        return date(self.year, self.month, day_of_month)

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def next(self) -> PayPeriod:
        if self.month == 12:
            return PayPeriod(self.year + 1, 1)
        return PayPeriod(self.year, self.month + 1)

    def previous(self) -> PayPeriod:
        if self.month == 1:
            return PayPeriod(self.year - 1, 12)
        return PayPeriod(self.year, self.month - 1)

    def through(self, last: PayPeriod) -> Iterator[PayPeriod]:
        """Iterate this period through ``last`` inclusive (empty if last < self)."""
        current = self
        while current <= last:
            yield current
            current = current.next()

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
