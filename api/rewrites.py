"""
API Endpoint for Content Rewrites

A single action-routed endpoint. The request body is discriminated on
`action`:
- rewriteContent: rewrite content for target keywords
- getContentRewrites: version history of one content item
- getProjectRewrites: latest rewrites of a project
- deleteRewrite: delete one version
"""

import logging
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field

from auditflow.auth import Principal, get_current_principal
from auditflow.rewriter import ContentRewriter, RewriteParams
from .deps import get_rewriter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rewrites",
    tags=["Rewrites"],
)


class _ActionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RewriteContentAction(_ActionModel):
    action: Literal["rewriteContent"]
    project_id: UUID = Field(..., alias="projectId")
    content_id: Optional[UUID] = Field(None, alias="contentId")
    original_content: str = Field(..., alias="originalContent")
    target_keywords: List[str] = Field(..., alias="targetKeywords")
    preserve_eeat: bool = Field(True, alias="preserveEEAT")
    tone_style: str = Field("professional", alias="toneStyle")
    content_type: str = Field("blog", alias="contentType")
    max_length: Optional[int] = Field(None, alias="maxLength", gt=0)

    def to_params(self) -> RewriteParams:
        return RewriteParams(
            project_id=self.project_id,
            content_id=self.content_id,
            original_content=self.original_content,
            target_keywords=self.target_keywords,
            preserve_eeat=self.preserve_eeat,
            tone_style=self.tone_style,
            content_type=self.content_type,
            max_length=self.max_length,
        )


class GetContentRewritesAction(_ActionModel):
    action: Literal["getContentRewrites"]
    content_id: UUID = Field(..., alias="contentId")


class GetProjectRewritesAction(_ActionModel):
    action: Literal["getProjectRewrites"]
    project_id: UUID = Field(..., alias="projectId")
    limit: int = Field(10, ge=1, le=100)


class DeleteRewriteAction(_ActionModel):
    action: Literal["deleteRewrite"]
    rewrite_id: UUID = Field(..., alias="rewriteId")


RewriteAction = Annotated[
    Union[
        RewriteContentAction,
        GetContentRewritesAction,
        GetProjectRewritesAction,
        DeleteRewriteAction,
    ],
    Field(discriminator="action"),
]


@router.post("")
async def handle_rewrite_action(
    body: RewriteAction = Body(...),
    principal: Principal = Depends(get_current_principal),
    rewriter: ContentRewriter = Depends(get_rewriter),
):
    """Dispatch on `action`. Unknown actions and missing fields are 400s."""
    if isinstance(body, RewriteContentAction):
        return {"rewrite": await rewriter.rewrite_content(principal, body.to_params())}
    if isinstance(body, GetContentRewritesAction):
        return {"rewrites": await rewriter.get_content_rewrites(principal, body.content_id)}
    if isinstance(body, GetProjectRewritesAction):
        return {"rewrites": await rewriter.get_project_rewrites(principal, body.project_id, body.limit)}
    return await rewriter.delete_rewrite(principal, body.rewrite_id)
