"""Audit report creation and lifecycle."""

from .lifecycle import ALLOWED_TRANSITIONS, can_transition, check_transition, is_terminal
from .orchestrator import AuditOrchestrator, enabled_categories, normalize_options

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AuditOrchestrator",
    "can_transition",
    "check_transition",
    "enabled_categories",
    "is_terminal",
    "normalize_options",
]
