"""
PayrollEngineConfig schema.

The runtime artifact handed to ``payroll_services``.  It is built by the
loader from a YAML configuration set and is frozen; the engines never see
it directly, the service passes the individual values in.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payroll_config.lifecycle import ConfigStatus


@dataclass(frozen=True)
class PayrollEngineConfig:
    """Tunable constants of the payroll engines."""

    config_id: str
    version: int
    status: ConfigStatus = ConfigStatus.PUBLISHED
    loan_close_tolerance: Decimal = Decimal("0.01")
    overtime_hours_per_day: int = 8
    default_job_name: str = "Standard"
    min_rate_year: int = 2000
    max_rate_year: int = 2100
    amount_places: int = 2
    checksum: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Canonical form used for checksumming (checksum itself excluded)."""
        return {
            "config_id": self.config_id,
            "version": self.version,
            "status": self.status.value,
            "loan_close_tolerance": str(self.loan_close_tolerance),
            "overtime_hours_per_day": self.overtime_hours_per_day,
            "default_job_name": self.default_job_name,
            "min_rate_year": self.min_rate_year,
            "max_rate_year": self.max_rate_year,
            "amount_places": self.amount_places,
        }
