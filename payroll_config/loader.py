"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``PayrollEngineConfig``.  This is tooling for ``get_active_config()``;
services and engines never call it directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on engines or
services; it imports only ``payroll_config.schema``.

Invariants enforced
-------------------
* Parse and validation errors raise ``ValueError`` or ``KeyError`` with
  descriptive messages; no silent defaults for required fields
  (``config_id``, ``version``).
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.lifecycle import ConfigStatus
from payroll_config.schema import PayrollEngineConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_decimal(value: Any, key: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{key} must be a number, got {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"{key} must be finite, got {value!r}")
    return result


def _parse_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def parse_config(data: dict[str, Any]) -> PayrollEngineConfig:
    """
    Parse a ``PayrollEngineConfig`` from a dict.

    Preconditions:
        - ``data`` contains ``config_id`` and ``version``; the ``engines``
          section is optional and falls back to schema defaults.
    Postconditions:
        - Returns a validated ``PayrollEngineConfig`` with its checksum set.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if a value is malformed or out of range.
    """
    engines = data.get("engines") or {}
    loans = engines.get("loan_ledger") or {}
    salary = engines.get("salary") or {}
    work_log = engines.get("work_log") or {}
    rates = engines.get("rate_history") or {}
    defaults = PayrollEngineConfig(config_id="defaults", version=0)

    config = PayrollEngineConfig(
        config_id=str(data["config_id"]),
        version=_parse_int(data["version"], "version"),
        status=ConfigStatus(data.get("status", ConfigStatus.PUBLISHED.value)),
        loan_close_tolerance=_parse_decimal(
            loans.get("close_tolerance", defaults.loan_close_tolerance),
            "loan_ledger.close_tolerance",
        ),
        overtime_hours_per_day=_parse_int(
            salary.get("overtime_hours_per_day", defaults.overtime_hours_per_day),
            "salary.overtime_hours_per_day",
        ),
        default_job_name=str(work_log.get("default_job_name", defaults.default_job_name)),
        min_rate_year=_parse_int(
            rates.get("min_year", defaults.min_rate_year), "rate_history.min_year",
        ),
        max_rate_year=_parse_int(
            rates.get("max_year", defaults.max_rate_year), "rate_history.max_year",
        ),
        amount_places=_parse_int(
            data.get("amount_places", defaults.amount_places), "amount_places",
        ),
    )
    validate_config(config)
    checksum = compute_checksum(config.to_dict())
    return replace(config, checksum=checksum)


def validate_config(config: PayrollEngineConfig) -> None:
    """
    Range checks on a parsed configuration.

    Raises:
        ValueError: listing every violated constraint.
    """
    errors: list[str] = []
    if config.loan_close_tolerance < 0:
        errors.append("loan_ledger.close_tolerance must be >= 0")
    if config.overtime_hours_per_day <= 0:
        errors.append("salary.overtime_hours_per_day must be > 0")
    if not config.default_job_name.strip():
        errors.append("work_log.default_job_name must not be empty")
    if config.min_rate_year > config.max_rate_year:
        errors.append("rate_history.min_year must be <= rate_history.max_year")
    if config.amount_places < 0:
        errors.append("amount_places must be >= 0")
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
