"""
Tests for the rate history resolver.

Covers:
- resolve_rate: base fallback, greatest-at-or-before, future entries
- RateHistory add / update / remove by (year, month) key
- Derived current rate
- JobRateCatalog lookups, zero rates and unknown jobs
"""

from decimal import Decimal

import pytest

from payroll_engines.rate_history import JobRateCatalog, RateHistory, resolve_rate
from payroll_kernel.domain.records import JobType, PartType, RateHistoryEntry
from payroll_kernel.exceptions import (
    DuplicateJobTypeError,
    DuplicateRateEntryError,
    InvalidPeriodError,
    JobTypeNotFoundError,
    RateEntryNotFoundError,
)

BASE = Decimal("500")


def _history() -> tuple[RateHistoryEntry, ...]:
    return (
        RateHistoryEntry(Decimal("550"), 2024, 1),
        RateHistoryEntry(Decimal("600"), 2024, 7),
    )


class TestResolveRate:
    """Tests for resolve_rate."""

    def test_empty_history_uses_base(self):
        assert resolve_rate((), BASE, 2024, 3) == BASE

    def test_before_first_entry_uses_base(self):
        assert resolve_rate(_history(), BASE, 2023, 12) == BASE

    def test_entry_month_itself(self):
        assert resolve_rate(_history(), BASE, 2024, 1) == Decimal("550")

    def test_between_entries(self):
        assert resolve_rate(_history(), BASE, 2024, 6) == Decimal("550")

    def test_after_last_entry(self):
        assert resolve_rate(_history(), BASE, 2025, 2) == Decimal("600")

    def test_unsorted_input(self):
        """Resolution does not depend on input order."""
        history = tuple(reversed(_history()))
        assert resolve_rate(history, BASE, 2024, 8) == Decimal("600")

    def test_future_hike_leaves_past_months(self):
        """Adding a later entry never changes an earlier month's rate."""
        before = resolve_rate(_history(), BASE, 2024, 3)
        extended = _history() + (RateHistoryEntry(Decimal("900"), 2025, 1),)
        assert resolve_rate(extended, BASE, 2024, 3) == before

    def test_year_boundary_ordering(self):
        """2023-12 sorts before 2024-01 (encoded as year*100+month)."""
        history = (
            RateHistoryEntry(Decimal("1"), 2023, 12),
            RateHistoryEntry(Decimal("2"), 2024, 1),
        )
        assert resolve_rate(history, BASE, 2023, 12) == Decimal("1")
        assert resolve_rate(history, BASE, 2024, 1) == Decimal("2")

    def test_emits_engine_trace(self, captured_logs):
        resolve_rate(_history(), BASE, 2024, 3)
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces
        assert traces[0]["engine_name"] == "rate_history"
        assert len(traces[0]["input_fingerprint"]) == 16


class TestRateHistory:
    """Tests for the immutable RateHistory collection."""

    def setup_method(self):
        self.history = RateHistory.of(_history())

    def test_current_rate_is_latest(self):
        assert self.history.current_rate(BASE) == Decimal("600")

    def test_current_rate_empty_is_base(self):
        assert RateHistory().current_rate(BASE) == BASE

    def test_add_keeps_sorted(self):
        updated = self.history.add(RateHistoryEntry(Decimal("575"), 2024, 4))
        assert updated.keys() == ((2024, 1), (2024, 4), (2024, 7))
        # Receiver unchanged
        assert self.history.keys() == ((2024, 1), (2024, 7))

    def test_add_duplicate_key(self):
        with pytest.raises(DuplicateRateEntryError) as exc_info:
            self.history.add(RateHistoryEntry(Decimal("1"), 2024, 7))
        assert (exc_info.value.year, exc_info.value.month) == (2024, 7)

    def test_add_year_out_of_bounds(self):
        with pytest.raises(InvalidPeriodError):
            self.history.add(RateHistoryEntry(Decimal("1"), 1999, 1))

    def test_custom_year_bounds(self):
        history = RateHistory.of((), min_year=2020, max_year=2030)
        with pytest.raises(InvalidPeriodError):
            history.add(RateHistoryEntry(Decimal("1"), 2031, 1))

    def test_update_rate_by_key(self):
        updated = self.history.update((2024, 7), rate=Decimal("650"))
        assert updated.get((2024, 7)).rate == Decimal("650")
        assert updated.current_rate(BASE) == Decimal("650")

    def test_update_rekeys_and_resorts(self):
        updated = self.history.update((2024, 7), effective_from_year=2023, effective_from_month=6)
        assert updated.keys() == ((2023, 6), (2024, 1))
        assert updated.current_rate(BASE) == Decimal("550")

    def test_update_onto_existing_key(self):
        with pytest.raises(DuplicateRateEntryError):
            self.history.update((2024, 7), effective_from_month=1)

    def test_update_unknown_key(self):
        with pytest.raises(RateEntryNotFoundError):
            self.history.update((2022, 1), rate=Decimal("1"))

    def test_remove(self):
        updated = self.history.remove((2024, 1))
        assert updated.keys() == ((2024, 7),)
        assert updated.rate_for(BASE, 2024, 3) == BASE

    def test_remove_unknown_key(self):
        with pytest.raises(RateEntryNotFoundError):
            self.history.remove((2024, 2))

    def test_rate_for_delegates(self):
        assert self.history.rate_for(BASE, 2024, 9) == Decimal("600")


class TestJobRateCatalog:
    """Tests for JobRateCatalog."""

    def setup_method(self):
        self.catalog = JobRateCatalog([
            JobType(
                PartType.ROD, "Threading", Decimal("1.00"),
                rate_history=(RateHistoryEntry(Decimal("1.50"), 2024, 6),),
            ),
            JobType(PartType.SLEEVE, "Threading", Decimal("2.00")),
            JobType(PartType.PIN, "Standard", Decimal("0")),
        ])

    def test_rate_uses_history(self):
        assert self.catalog.rate_for(PartType.ROD, "Threading", 2024, 5) == Decimal("1.00")
        assert self.catalog.rate_for(PartType.ROD, "Threading", 2024, 6) == Decimal("1.50")

    def test_same_name_distinct_per_part_type(self):
        assert self.catalog.rate_for(PartType.SLEEVE, "Threading", 2024, 6) == Decimal("2.00")

    def test_case_insensitive_lookup(self):
        assert self.catalog.rate_for("rod", "  threading ", 2024, 1) == Decimal("1.00")

    def test_zero_rate_is_valid(self):
        assert self.catalog.rate_for(PartType.PIN, "Standard", 2024, 1) == Decimal("0")

    def test_unknown_job_raises(self):
        with pytest.raises(JobTypeNotFoundError) as exc_info:
            self.catalog.rate_for(PartType.PIN, "Polish", 2024, 1)
        assert exc_info.value.job_name == "Polish"

    def test_duplicate_job_types(self):
        with pytest.raises(DuplicateJobTypeError):
            JobRateCatalog([
                JobType(PartType.ROD, "Threading"),
                JobType(PartType.ROD, "THREADING"),
            ])

    def test_contains(self):
        assert (PartType.ROD, "threading") in self.catalog
        assert ("pin", "Polish") not in self.catalog
        assert len(self.catalog) == 3

    def test_contains_unknown_part_type_is_false(self):
        assert ("bolt", "Threading") not in self.catalog
        assert "rod" not in self.catalog

    def test_as_resolver(self):
        resolver = self.catalog.as_resolver()
        assert resolver(PartType.ROD, "Threading", 2024, 7) == Decimal("1.50")
