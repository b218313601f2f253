"""Alert candidate generation (inspection deadlines, unread reports, conflicts)."""

from pyflotta.alerts.rules import (
    conflict_candidates,
    deadline_candidates,
    generate_alert_candidates,
    report_candidates,
)

__all__ = [
    "conflict_candidates",
    "deadline_candidates",
    "generate_alert_candidates",
    "report_candidates",
]
