"""Tests for payroll configuration loading, validation and the active-config entrypoint."""

from __future__ import annotations

from decimal import Decimal

import pytest
import yaml

from payroll_config import ConfigStatus, PayrollEngineConfig, get_active_config
from payroll_config.lifecycle import validate_transition
from payroll_config.loader import compute_checksum, load_yaml_file, parse_config


def _minimal(**overrides) -> dict:
    data = {"config_id": "TEST", "version": 3}
    data.update(overrides)
    return data


def _write(tmp_path, data: dict, name: str = "set.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:
    """The packaged default set."""

    def test_default_values(self):
        config = get_active_config()
        assert config.config_id == "PAYROLL-DEFAULT"
        assert config.version == 1
        assert config.status == ConfigStatus.PUBLISHED
        assert config.loan_close_tolerance == Decimal("0.01")
        assert config.overtime_hours_per_day == 8
        assert config.default_job_name == "Standard"
        assert (config.min_rate_year, config.max_rate_year) == (2000, 2100)
        assert config.amount_places == 2

    def test_checksum_stable_across_loads(self):
        assert get_active_config().checksum == get_active_config().checksum
        assert len(get_active_config().checksum) == 64

    def test_emits_config_trace(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_set_id"] == "PAYROLL-DEFAULT"
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["source"].endswith("default.yaml")


class TestParseConfig:
    """parse_config and validate_config."""

    def test_engine_section_optional(self):
        config = parse_config(_minimal())
        assert config.loan_close_tolerance == Decimal("0.01")
        assert config.status == ConfigStatus.PUBLISHED

    def test_engine_overrides(self):
        config = parse_config(_minimal(engines={
            "loan_ledger": {"close_tolerance": "1"},
            "salary": {"overtime_hours_per_day": 10},
            "work_log": {"default_job_name": "Turning"},
            "rate_history": {"min_year": 2010, "max_year": 2050},
        }))
        assert config.loan_close_tolerance == Decimal("1")
        assert config.overtime_hours_per_day == 10
        assert config.default_job_name == "Turning"
        assert config.min_rate_year == 2010

    def test_float_tolerance_read_exactly(self):
        config = parse_config(_minimal(engines={"loan_ledger": {"close_tolerance": 0.1}}))
        assert config.loan_close_tolerance == Decimal("0.1")

    @pytest.mark.parametrize("missing", ["config_id", "version"])
    def test_required_keys(self, missing):
        data = _minimal()
        del data[missing]
        with pytest.raises(KeyError):
            parse_config(data)

    def test_all_violations_reported(self):
        with pytest.raises(ValueError) as exc_info:
            parse_config(_minimal(engines={
                "loan_ledger": {"close_tolerance": "-1"},
                "salary": {"overtime_hours_per_day": 0},
                "rate_history": {"min_year": 2200},
            }))
        message = str(exc_info.value)
        assert "close_tolerance must be >= 0" in message
        assert "overtime_hours_per_day must be > 0" in message
        assert "min_year must be <=" in message

    def test_non_numeric_tolerance(self):
        with pytest.raises(ValueError, match="close_tolerance"):
            parse_config(_minimal(engines={"loan_ledger": {"close_tolerance": "abc"}}))

    def test_non_integer_hours(self):
        with pytest.raises(ValueError, match="overtime_hours_per_day"):
            parse_config(_minimal(engines={"salary": {"overtime_hours_per_day": "8"}}))

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            parse_config(_minimal(status="archived"))

    def test_checksum_tracks_content(self):
        a = parse_config(_minimal())
        b = parse_config(_minimal(engines={"salary": {"overtime_hours_per_day": 9}}))
        assert a.checksum != b.checksum
        assert a.checksum == compute_checksum(a.to_dict())

    def test_to_dict_excludes_checksum(self):
        assert "checksum" not in parse_config(_minimal()).to_dict()


class TestActiveConfigFromFile:
    """get_active_config with an explicit path."""

    def test_loads_custom_set(self, tmp_path):
        path = _write(tmp_path, _minimal(status="published"))
        config = get_active_config(path)
        assert isinstance(config, PayrollEngineConfig)
        assert config.config_id == "TEST"

    @pytest.mark.parametrize("status", ["draft", "superseded"])
    def test_non_published_rejected(self, tmp_path, status):
        path = _write(tmp_path, _minimal(status=status))
        with pytest.raises(ValueError, match="only published"):
            get_active_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_empty_file_loads_as_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}


class TestLifecycle:

    def test_allowed(self):
        assert validate_transition(ConfigStatus.DRAFT, ConfigStatus.PUBLISHED)
        assert validate_transition(ConfigStatus.PUBLISHED, ConfigStatus.SUPERSEDED)

    def test_disallowed(self):
        assert not validate_transition(ConfigStatus.DRAFT, ConfigStatus.SUPERSEDED)
        assert not validate_transition(ConfigStatus.SUPERSEDED, ConfigStatus.PUBLISHED)
