"""
Configuration lifecycle status.

Configuration sets are append-only. Only PUBLISHED sets are served by
``get_active_config()``. Superseded sets remain so historical payroll runs
can be recomputed with the figures they were paid with.
"""

from enum import Enum, unique


@unique
class ConfigStatus(str, Enum):
    """Lifecycle status for a payroll configuration set."""

    DRAFT = "draft"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"


ALLOWED_TRANSITIONS: dict[ConfigStatus, frozenset[ConfigStatus]] = {
    ConfigStatus.DRAFT: frozenset({ConfigStatus.PUBLISHED}),
    ConfigStatus.PUBLISHED: frozenset({ConfigStatus.SUPERSEDED}),
    ConfigStatus.SUPERSEDED: frozenset(),  # Terminal
}


def validate_transition(current: ConfigStatus, target: ConfigStatus) -> bool:
    """Check if a status transition is valid."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
