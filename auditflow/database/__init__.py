"""
Auditflow Database Layer

Usage:
    from auditflow.database import Database, repository, AuditReport

    db = Database(settings.DATABASE_URL)
    db.init()

    with db.session() as session:
        project = repository.create_project(session, user_id, "Marketing site")
"""

# Models
from .models import (
    Base,
    ReportStatus,
    RewriteStatus,
    ACTIVE_REPORT_STATUSES,
    TERMINAL_REPORT_STATUSES,
    Project,
    AuditReport,
    ContentRewrite,
    CompetitorContent,
    CompetitorAnalysis,
)

# Session management
from .session import Database, get_database_url, create_db_engine

from . import repository

__all__ = [
    # Models
    "Base",
    "ReportStatus",
    "RewriteStatus",
    "ACTIVE_REPORT_STATUSES",
    "TERMINAL_REPORT_STATUSES",
    "Project",
    "AuditReport",
    "ContentRewrite",
    "CompetitorContent",
    "CompetitorAnalysis",
    # Session
    "Database",
    "get_database_url",
    "create_db_engine",
    # Repository
    "repository",
]
