"""
SQLAlchemy Models for the Auditflow Pipeline

Design Principles:
1. Every row is owned by a project, every project by a user (row-level ownership)
2. Audit reports move through a one-way lifecycle
3. Rewrites and competitor analyses are append-only version history
4. Original content is stored verbatim so any rewrite can be diffed

Portable column types (Uuid, JSON) so the same models run on PostgreSQL
in production and SQLite locally.
"""

import enum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, Text,
    ForeignKey, Enum, Index, JSON, Uuid, text,
)
from sqlalchemy.orm import declarative_base, relationship

from auditflow.utils.clock import utcnow

Base = declarative_base()


# =============================================================================
# ENUMS
# =============================================================================

class ReportStatus(enum.Enum):
    """Status of an audit report"""
    PENDING = "pending"      # Created, waiting for a worker
    RUNNING = "running"      # Analysis in progress
    COMPLETED = "completed"  # Scores written (terminal)
    FAILED = "failed"        # Failure recorded (terminal)


ACTIVE_REPORT_STATUSES = (ReportStatus.PENDING, ReportStatus.RUNNING)
TERMINAL_REPORT_STATUSES = (ReportStatus.COMPLETED, ReportStatus.FAILED)


class RewriteStatus(enum.Enum):
    """Outcome of a rewrite request"""
    COMPLETED = "completed"  # Rewritten content stored
    FAILED = "failed"        # Generation gave up, error recorded


# =============================================================================
# CORE TABLES
# =============================================================================

class Project(Base):
    """Projects - the ownership root for everything else"""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(64), nullable=False)  # Subject from the identity provider

    name = Column(String(255), nullable=False)
    domain = Column(String(255))

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    audit_reports = relationship("AuditReport", back_populates="project", cascade="all, delete-orphan")
    rewrites = relationship("ContentRewrite", back_populates="project", cascade="all, delete-orphan")
    competitors = relationship("CompetitorContent", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_project_user", "user_id"),
    )


class AuditReport(Base):
    """Each audit request - the central entity"""
    __tablename__ = "audit_reports"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False)

    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    options = Column(JSON, default=dict)

    # Status tracking
    status = Column(Enum(ReportStatus), default=ReportStatus.PENDING, nullable=False)

    # Results
    overall_score = Column(Integer)
    overall_grade = Column(String(4), default="N/A")
    categories = Column(JSON, default=list)       # [{name, score, grade, weight}]
    issues = Column(JSON, default=list)           # [{category, type, severity, description}]
    recommendations = Column(JSON, default=list)  # [{category, priority, action}]
    analysis_computed_at = Column(DateTime)       # computedAt of the analysis used

    # Error tracking
    error_message = Column(Text)

    # Rendered artifact
    pdf_ref = Column(String(512))

    # Timing
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="audit_reports")

    __table_args__ = (
        Index("idx_report_project_time", "project_id", "created_at"),
        # At most one active report per (project, url), across processes
        Index(
            "uq_report_active_target",
            "project_id",
            "url",
            unique=True,
            sqlite_where=text("status IN ('PENDING', 'RUNNING')"),
            postgresql_where=text("status IN ('PENDING', 'RUNNING')"),
        ),
    )


class ContentRewrite(Base):
    """Immutable rewrite versions of a content item"""
    __tablename__ = "content_rewrites"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    content_id = Column(Uuid, nullable=True)  # Content page, owned outside the pipeline

    # Content (original kept verbatim)
    original_content = Column(Text, nullable=False)
    rewritten_content = Column(Text)  # Empty when generation failed

    # Request
    target_keywords = Column(JSON, nullable=False, default=list)
    preserve_eeat = Column(Boolean, nullable=False, default=True)
    tone_style = Column(String(32), default="professional")
    content_type = Column(String(32), default="blog")

    # Outcome
    keywords_incorporated = Column(JSON, default=list)
    keyword_coverage_incomplete = Column(Boolean, nullable=False, default=False)
    keyword_usage = Column(JSON, default=list)  # [{keyword, original_count, new_count, positions}]
    eeat_signals = Column(JSON, default=dict)   # {experience, expertise, authoritativeness, trustworthiness, overall}
    readability_score = Column(Float)
    content_length = Column(Integer)
    generation_attempts = Column(Integer, default=1)

    # Status
    status = Column(Enum(RewriteStatus), default=RewriteStatus.COMPLETED, nullable=False)
    error_message = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="rewrites")

    __table_args__ = (
        Index("idx_rewrite_project_time", "project_id", "created_at"),
        Index("idx_rewrite_content_time", "content_id", "created_at"),
    )


class CompetitorContent(Base):
    """Competitor pages tracked for a project"""
    __tablename__ = "competitor_content"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    url = Column(Text, nullable=False)
    created_by = Column(String(64))

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="competitors")
    analyses = relationship(
        "CompetitorAnalysis",
        back_populates="competitor_content",
        cascade="all, delete-orphan",
        order_by="CompetitorAnalysis.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_competitor_project_time", "project_id", "created_at"),
    )


class CompetitorAnalysis(Base):
    """Append-only analyses of a competitor page"""
    __tablename__ = "competitor_analyses"

    id = Column(Uuid, primary_key=True, default=uuid4)
    competitor_content_id = Column(
        Uuid, ForeignKey("competitor_content.id", ondelete="CASCADE"), nullable=False
    )

    word_count = Column(Integer)
    reading_level = Column(String(32))  # Elementary, Intermediate, Advanced
    keyword_density = Column(Float)     # Percent of words that are top terms
    top_terms = Column(JSON, default=list)
    content_structure = Column(JSON, default=dict)  # {headings, paragraphs, lists}
    readability_score = Column(Float)
    analyzed_by = Column(String(64))

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    competitor_content = relationship("CompetitorContent", back_populates="analyses")

    __table_args__ = (
        Index("idx_competitor_analysis_time", "competitor_content_id", "created_at"),
    )
