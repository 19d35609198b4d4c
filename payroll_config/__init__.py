"""
payroll_config -- single public entrypoint for payroll engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``PayrollEngineConfig``.
    YAML loading is internal tooling and never exposed to callers.

Architecture position:
    Configuration -- YAML-driven, load-time validation.
    This package sits above ``payroll_kernel`` and below
    ``payroll_services``.  Engines MUST NEVER import from
    ``payroll_config``; the service passes configured values in.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Only PUBLISHED configuration sets are served.
    - Deterministic identity: the same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- configuration file does not exist.
    - ``ValueError`` -- validation failure or a non-published set.
    - ``KeyError`` -- required key missing.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry containing the config_id, version
    and checksum, tying each salary run to the configuration it used.
"""

from __future__ import annotations

import logging
from pathlib import Path

from payroll_config.lifecycle import ConfigStatus
from payroll_config.loader import load_yaml_file, parse_config
from payroll_config.schema import PayrollEngineConfig

_logger = logging.getLogger("payroll_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> PayrollEngineConfig:
    """The ONLY public configuration entrypoint.

    Contract:
        No other component reads configuration files.

    Guarantees:
        - The returned config has passed validation and carries the
          checksum of its canonical form.
        - A ``PAYROLL_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Does NOT cache; callers hold the returned config for the
          duration of a payroll run.

    Args:
        config_path: Override path to a YAML configuration set.
            Defaults to payroll_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If validation fails or the set is not published.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    if config.status != ConfigStatus.PUBLISHED:
        raise ValueError(
            f"Configuration {config.config_id} v{config.version} is "
            f"{config.status.value}, only published sets can be used"
        )

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "ConfigStatus",
    "PayrollEngineConfig",
    "get_active_config",
]
