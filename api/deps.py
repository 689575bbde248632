"""FastAPI dependencies resolving services from the application container."""

from fastapi import Depends, Request

from auditflow.audit import AuditOrchestrator
from auditflow.analysis import TechnicalSEOEngine
from auditflow.competitors import CompetitorService
from auditflow.reporter import ReportRenderer
from auditflow.rewriter import ContentRewriter
from .container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> AuditOrchestrator:
    return container.orchestrator


def get_engine(container: ServiceContainer = Depends(get_container)) -> TechnicalSEOEngine:
    return container.engine


def get_rewriter(container: ServiceContainer = Depends(get_container)) -> ContentRewriter:
    return container.rewriter


def get_competitor_service(container: ServiceContainer = Depends(get_container)) -> CompetitorService:
    return container.competitors


def get_renderer(container: ServiceContainer = Depends(get_container)) -> ReportRenderer:
    return container.renderer
