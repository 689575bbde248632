"""
Repository Layer - Clean Interface for Data Operations

Provides simple functions to store and retrieve rows.
Every function takes the caller's Session so the caller controls the
transaction boundary. Ownership filters are applied here: passing a
`user_id` restricts lookups to rows the user owns, and anything the user
does not own is reported exactly like a missing row.
"""

import logging
from datetime import datetime
from typing import List, Dict, Any, Optional, Union
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.orm import Session

from auditflow.errors import NotFoundError, ValidationError
from auditflow.utils.clock import utcnow
from .models import (
    Project,
    AuditReport,
    ReportStatus,
    RewriteStatus,
    ACTIVE_REPORT_STATUSES,
    ContentRewrite,
    CompetitorContent,
    CompetitorAnalysis,
)

logger = logging.getLogger(__name__)


def parse_uuid(value: Union[str, UUID, None], field: str) -> UUID:
    """Parse an identifier or raise ValidationError naming the field."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid UUID", {"field": field})


# =============================================================================
# PROJECTS
# =============================================================================

def create_project(
    db: Session,
    user_id: str,
    name: str,
    domain: Optional[str] = None,
) -> Project:
    """Create a project owned by `user_id`."""
    project = Project(user_id=user_id, name=name, domain=domain)
    db.add(project)
    db.flush()
    logger.info(f"Created project {project.id} for user {user_id}")
    return project


def get_owned_project(db: Session, project_id: UUID, user_id: Optional[str]) -> Project:
    """
    Load a project, enforcing ownership when `user_id` is given.

    Raises:
        NotFoundError: if missing or owned by someone else
    """
    query = db.query(Project).filter(Project.id == project_id)
    if user_id is not None:
        query = query.filter(Project.user_id == user_id)
    project = query.first()
    if not project:
        raise NotFoundError("Project not found or access denied")
    return project


# =============================================================================
# AUDIT REPORTS
# =============================================================================

def find_active_report(db: Session, project_id: UUID, url: str) -> Optional[AuditReport]:
    """Return the pending/running report for a (project, url) pair, if any."""
    return (
        db.query(AuditReport)
        .filter(
            AuditReport.project_id == project_id,
            AuditReport.url == url,
            AuditReport.status.in_(ACTIVE_REPORT_STATUSES),
        )
        .order_by(desc(AuditReport.created_at))
        .first()
    )


def insert_report(
    db: Session,
    project_id: UUID,
    user_id: str,
    name: str,
    url: str,
    options: Optional[Dict[str, Any]] = None,
) -> AuditReport:
    """Insert a new pending report."""
    now = utcnow()
    report = AuditReport(
        project_id=project_id,
        user_id=user_id,
        name=name,
        url=url,
        options=options or {},
        status=ReportStatus.PENDING,
        overall_grade="N/A",
        categories=[],
        issues=[],
        recommendations=[],
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    db.flush()
    return report


def get_report(db: Session, report_id: UUID, user_id: Optional[str] = None) -> AuditReport:
    """
    Load a report, enforcing ownership when `user_id` is given.

    Raises:
        NotFoundError: if missing or owned by someone else
    """
    query = db.query(AuditReport).filter(AuditReport.id == report_id)
    if user_id is not None:
        query = query.join(Project).filter(Project.user_id == user_id)
    report = query.first()
    if not report:
        raise NotFoundError("Report not found")
    return report


def list_reports(db: Session, project_id: UUID) -> List[AuditReport]:
    """All reports of a project, newest first."""
    return (
        db.query(AuditReport)
        .filter(AuditReport.project_id == project_id)
        .order_by(desc(AuditReport.created_at))
        .all()
    )


def list_active_reports(db: Session) -> List[AuditReport]:
    """Reports not yet in a terminal state."""
    return db.query(AuditReport).filter(AuditReport.status.in_(ACTIVE_REPORT_STATUSES)).all()


def update_report(db: Session, report: AuditReport, **fields) -> AuditReport:
    """Set fields on a report and bump updated_at."""
    for key, value in fields.items():
        if not hasattr(report, key):
            raise AttributeError(f"AuditReport has no field {key}")
        setattr(report, key, value)
    report.updated_at = utcnow()
    db.flush()
    return report


# =============================================================================
# CONTENT REWRITES
# =============================================================================

def insert_rewrite(db: Session, **fields) -> ContentRewrite:
    """Insert an immutable rewrite version."""
    fields.setdefault("created_at", utcnow())
    rewrite = ContentRewrite(**fields)
    db.add(rewrite)
    db.flush()
    return rewrite


def insert_failed_rewrite(db: Session, error_message: str, **fields) -> ContentRewrite:
    """Record a rewrite request whose generation gave up, with its reason."""
    return insert_rewrite(
        db,
        status=RewriteStatus.FAILED,
        error_message=error_message,
        keyword_coverage_incomplete=True,
        **fields,
    )


def list_content_rewrites(
    db: Session,
    content_id: UUID,
    user_id: Optional[str] = None,
) -> List[ContentRewrite]:
    """Rewrite versions of one content item, newest first."""
    query = db.query(ContentRewrite).filter(ContentRewrite.content_id == content_id)
    if user_id is not None:
        query = query.join(Project).filter(Project.user_id == user_id)
    return query.order_by(desc(ContentRewrite.created_at)).all()


def list_project_rewrites(db: Session, project_id: UUID, limit: int = 10) -> List[ContentRewrite]:
    """Most recent rewrites of a project, newest first."""
    return (
        db.query(ContentRewrite)
        .filter(ContentRewrite.project_id == project_id)
        .order_by(desc(ContentRewrite.created_at))
        .limit(limit)
        .all()
    )


def get_rewrite(db: Session, rewrite_id: UUID, user_id: Optional[str] = None) -> ContentRewrite:
    """
    Raises:
        NotFoundError: if missing or owned by someone else
    """
    query = db.query(ContentRewrite).filter(ContentRewrite.id == rewrite_id)
    if user_id is not None:
        query = query.join(Project).filter(Project.user_id == user_id)
    rewrite = query.first()
    if not rewrite:
        raise NotFoundError("Rewrite not found")
    return rewrite


def delete_rewrite(db: Session, rewrite: ContentRewrite) -> None:
    """Delete a single rewrite version. Other versions are untouched."""
    db.delete(rewrite)
    db.flush()


# =============================================================================
# COMPETITORS
# =============================================================================

def insert_competitor(db: Session, project_id: UUID, url: str, created_by: str) -> CompetitorContent:
    competitor = CompetitorContent(project_id=project_id, url=url, created_by=created_by, created_at=utcnow())
    db.add(competitor)
    db.flush()
    return competitor


def list_competitors(db: Session, project_id: UUID) -> List[CompetitorContent]:
    """Competitor pages of a project, newest first."""
    return (
        db.query(CompetitorContent)
        .filter(CompetitorContent.project_id == project_id)
        .order_by(desc(CompetitorContent.created_at))
        .all()
    )


def get_competitor(db: Session, competitor_id: UUID, user_id: Optional[str] = None) -> CompetitorContent:
    """
    Raises:
        NotFoundError: if missing or owned by someone else
    """
    query = db.query(CompetitorContent).filter(CompetitorContent.id == competitor_id)
    if user_id is not None:
        query = query.join(Project).filter(Project.user_id == user_id)
    competitor = query.first()
    if not competitor:
        raise NotFoundError("Competitor content not found")
    return competitor


def insert_competitor_analysis(db: Session, competitor_id: UUID, **fields) -> CompetitorAnalysis:
    """Append a new analysis row. Existing rows are never updated."""
    fields.setdefault("created_at", utcnow())
    analysis = CompetitorAnalysis(competitor_content_id=competitor_id, **fields)
    db.add(analysis)
    db.flush()
    return analysis


def latest_competitor_analysis(db: Session, competitor_id: UUID) -> Optional[CompetitorAnalysis]:
    return (
        db.query(CompetitorAnalysis)
        .filter(CompetitorAnalysis.competitor_content_id == competitor_id)
        .order_by(desc(CompetitorAnalysis.created_at))
        .first()
    )


def delete_competitor(db: Session, competitor: CompetitorContent) -> None:
    """Delete competitor content together with its analyses."""
    db.delete(competitor)
    db.flush()


# =============================================================================
# SERIALIZATION
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def report_to_dict(report: AuditReport, pdf_url: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": str(report.id),
        "projectId": str(report.project_id),
        "name": report.name,
        "url": report.url,
        "status": report.status.value,
        "overallScore": report.overall_score,
        "overallGrade": report.overall_grade or "N/A",
        "categories": report.categories or [],
        "issues": report.issues or [],
        "recommendations": report.recommendations or [],
        "options": report.options or {},
        "errorMessage": report.error_message,
        "pdfRef": report.pdf_ref,
        "pdfUrl": pdf_url,
        "createdAt": _iso(report.created_at),
        "updatedAt": _iso(report.updated_at),
        "startedAt": _iso(report.started_at),
        "completedAt": _iso(report.completed_at),
    }


def rewrite_to_dict(rewrite: ContentRewrite) -> Dict[str, Any]:
    return {
        "id": str(rewrite.id),
        "projectId": str(rewrite.project_id),
        "contentId": str(rewrite.content_id) if rewrite.content_id else None,
        "status": rewrite.status.value,
        "errorMessage": rewrite.error_message,
        "originalContent": rewrite.original_content,
        "rewrittenContent": rewrite.rewritten_content,
        "targetKeywords": rewrite.target_keywords or [],
        "keywordsIncorporated": rewrite.keywords_incorporated or [],
        "preserveEEAT": rewrite.preserve_eeat,
        "keywordCoverageIncomplete": rewrite.keyword_coverage_incomplete,
        "keywordUsage": rewrite.keyword_usage or [],
        "eeatSignals": rewrite.eeat_signals or {},
        "readabilityScore": rewrite.readability_score,
        "contentLength": rewrite.content_length,
        "toneStyle": rewrite.tone_style,
        "contentType": rewrite.content_type,
        "createdAt": _iso(rewrite.created_at),
    }


def competitor_analysis_to_dict(analysis: CompetitorAnalysis) -> Dict[str, Any]:
    return {
        "id": str(analysis.id),
        "competitorContentId": str(analysis.competitor_content_id),
        "wordCount": analysis.word_count,
        "readingLevel": analysis.reading_level,
        "keywordDensity": analysis.keyword_density,
        "topTerms": analysis.top_terms or [],
        "contentStructure": analysis.content_structure or {},
        "readabilityScore": analysis.readability_score,
        "analyzedBy": analysis.analyzed_by,
        "createdAt": _iso(analysis.created_at),
    }


def competitor_to_dict(competitor: CompetitorContent, include_analyses: bool = True) -> Dict[str, Any]:
    data = {
        "id": str(competitor.id),
        "projectId": str(competitor.project_id),
        "url": competitor.url,
        "createdBy": competitor.created_by,
        "createdAt": _iso(competitor.created_at),
    }
    if include_analyses:
        data["analyses"] = [competitor_analysis_to_dict(a) for a in competitor.analyses]
    return data
