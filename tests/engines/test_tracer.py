"""
Tests for the engine tracer.

Verifies:
- Fingerprints are deterministic and sensitive to selected fields only
- Canonicalization of enums, dicts and sequences
- The decorator returns the wrapped result and emits PAYROLL_ENGINE_TRACE
"""

from decimal import Decimal

from payroll_engines.tracer import _canonicalize, compute_input_fingerprint, traced_engine
from payroll_kernel.domain.records import PartType


class TestCanonicalize:

    def test_scalars(self):
        assert _canonicalize(None) == "null"
        assert _canonicalize(Decimal("1.50")) == "1.50"
        assert _canonicalize(7) == "7"
        assert _canonicalize("x") == "x"

    def test_enum_uses_value(self):
        assert _canonicalize(PartType.ROD) == "rod"

    def test_dict_key_order_irrelevant(self):
        assert _canonicalize({"b": 1, "a": 2}) == _canonicalize({"a": 2, "b": 1})

    def test_sequence_order_preserved(self):
        assert _canonicalize([1, 2]) != _canonicalize([2, 1])
        assert _canonicalize((1, 2)) == "[1,2]"


class TestComputeInputFingerprint:

    def test_deterministic(self):
        args = {"year": 2024, "month": 3}
        first = compute_input_fingerprint(("year", "month"), args)
        second = compute_input_fingerprint(("year", "month"), dict(args))
        assert first == second
        assert len(first) == 16

    def test_unselected_fields_ignored(self):
        a = compute_input_fingerprint(("year",), {"year": 2024, "month": 3})
        b = compute_input_fingerprint(("year",), {"year": 2024, "month": 9})
        assert a == b

    def test_selected_field_changes_fingerprint(self):
        a = compute_input_fingerprint(("month",), {"month": 3})
        b = compute_input_fingerprint(("month",), {"month": 4})
        assert a != b

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None},
        )


class TestTracedEngine:

    def test_returns_result_and_logs(self, captured_logs):
        @traced_engine("demo", "2.1", fingerprint_fields=("a",))
        def add(a, b):
            return a + b

        assert add(2, b=3) == 5
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "demo"
        assert trace["engine_version"] == "2.1"
        assert trace["input_fingerprint"] == compute_input_fingerprint(("a",), {"a": 2})
        assert trace["function"].endswith("add")
        assert trace["duration_ms"] >= 0

    def test_positional_and_keyword_fingerprint_match(self, captured_logs):
        @traced_engine("demo", "1.0", fingerprint_fields=("a", "b"))
        def add(a, b):
            return a + b

        add(1, 2)
        add(a=1, b=2)
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]

    def test_no_fingerprint_fields(self, captured_logs):
        @traced_engine("demo", "1.0")
        def noop():
            return None

        noop()
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == ""

    def test_preserves_name(self):
        @traced_engine("demo", "1.0")
        def named():
            """Docstring."""

        assert named.__name__ == "named"
        assert named.__doc__ == "Docstring."
