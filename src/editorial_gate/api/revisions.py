"""
AI 修订 API 路由 - 请求 / 审批 / 回滚 / 训练数据
"""
from typing import Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from editorial_gate.api.articles import ArticleResponse, article_response
from editorial_gate.api.errors import to_http_error
from editorial_gate.core import get_logger
from editorial_gate.models import AIRevision
from editorial_gate.services.diff_service import DiffResult, diff_content
from editorial_gate.services.revision_service import (
    ApprovalResult,
    PendingRevision,
    RestoreResult,
    get_revision_workflow,
)
from editorial_gate.services.training_service import get_training_service
from editorial_gate.services.validation_service import generate_validation_summary

logger = get_logger(__name__)
router = APIRouter(tags=["AI 修订"])

# 服务实例
revision_workflow = get_revision_workflow()
training_service = get_training_service()


# ============ 请求/响应模型 ============

class PendingRevisionResponse(BaseModel):
    """待审批修订响应"""
    pending: PendingRevision
    report: str


class SessionStateResponse(BaseModel):
    state: str
    pending: Optional[PendingRevision] = None
    has_unsaved_content: bool = False


class RejectResponse(BaseModel):
    revision_id: int
    content: str


class TrainingToggleRequest(BaseModel):
    include_in_training: bool


class BulkTrainingRequest(BaseModel):
    revision_ids: list[int]
    include_in_training: bool


class RevisionResponse(BaseModel):
    """修订记录响应"""
    id: int
    article_id: int
    previous_version: str
    revised_version: str
    comments_snapshot: list[dict]
    revision_type: str
    article_context: dict
    model_used: Optional[str]
    validation_result: Optional[dict]
    include_in_training: bool
    approved: Optional[bool]
    rolled_back_at: Optional[str]
    created_at: str


def revision_response(revision: AIRevision) -> RevisionResponse:
    return RevisionResponse(
        id=revision.id,
        article_id=revision.article_id,
        previous_version=revision.previous_version,
        revised_version=revision.revised_version,
        comments_snapshot=revision.snapshot_list(),
        revision_type=revision.revision_type,
        article_context=revision.context_dict(),
        model_used=revision.model_used,
        validation_result=revision.validation_dict(),
        include_in_training=revision.include_in_training,
        approved=revision.approved,
        rolled_back_at=revision.rolled_back_at.isoformat() if revision.rolled_back_at else None,
        created_at=revision.created_at.isoformat(),
    )


# ============ 编辑会话 ============

@router.post("/articles/{article_id}/revisions", response_model=PendingRevisionResponse)
async def request_revision(article_id: int):
    """
    根据待处理批注发起 AI 修订

    生成完成后进入待审批状态，文章内容不会被修改
    """
    try:
        pending = await revision_workflow.request_revision(article_id)
    except Exception as e:
        raise to_http_error(e)

    if pending is None:
        raise HTTPException(status_code=409, detail="修订请求已取消")
    return PendingRevisionResponse(
        pending=pending,
        report=generate_validation_summary(pending.validation_result),
    )


@router.get("/articles/{article_id}/revisions/pending", response_model=SessionStateResponse)
async def get_pending_revision(article_id: int):
    """当前编辑会话状态"""
    return SessionStateResponse(
        state=revision_workflow.state_of(article_id),
        pending=revision_workflow.pending_revision(article_id),
        has_unsaved_content=revision_workflow.unsaved_content(article_id) is not None,
    )


@router.post("/articles/{article_id}/revisions/cancel")
async def cancel_revision(article_id: int):
    """取消生成中的修订"""
    return {"cancelled": revision_workflow.cancel(article_id)}


@router.post("/articles/{article_id}/revisions/approve", response_model=ApprovalResult)
async def approve_revision(article_id: int):
    """通过待审批修订"""
    try:
        return revision_workflow.approve(article_id)
    except Exception as e:
        raise to_http_error(e)


@router.post("/articles/{article_id}/revisions/reject", response_model=RejectResponse)
async def reject_revision(article_id: int):
    """拒绝待审批修订，返回原始内容"""
    try:
        pending = revision_workflow.pending_revision(article_id)
        content = revision_workflow.reject(article_id)
        return RejectResponse(revision_id=pending.revision_id, content=content)
    except Exception as e:
        raise to_http_error(e)


@router.post("/articles/{article_id}/revisions/retry-save", response_model=ArticleResponse)
async def retry_save(article_id: int):
    """重试保存审批后未保存的内容"""
    try:
        return article_response(revision_workflow.retry_save(article_id))
    except Exception as e:
        raise to_http_error(e)


@router.get("/articles/{article_id}/revisions", response_model=list[RevisionResponse])
async def list_article_revisions(article_id: int):
    """文章的修订历史（新的在前）"""
    revisions = revision_workflow.store.list_revisions(article_id=article_id)
    return [revision_response(r) for r in revisions]


# ============ 训练数据 ============

@router.get("/revisions/training/export")
async def export_training_data(include_rejected: bool = False):
    """导出训练样本"""
    return training_service.export_training_examples(include_rejected=include_rejected)


@router.get("/revisions/training/stats")
async def get_training_stats():
    """修订统计"""
    return training_service.revision_stats()


@router.post("/revisions/training/bulk")
async def bulk_update_training(request: BulkTrainingRequest):
    """批量设置训练开关"""
    updated = training_service.bulk_set_training_inclusion(
        request.revision_ids,
        request.include_in_training,
    )
    return {"updated": updated}


# ============ 历史修订 ============

@router.post("/revisions/{revision_id}/rollback", response_model=RestoreResult)
async def rollback_revision(revision_id: int):
    """回滚修订并恢复修订前内容"""
    try:
        return revision_workflow.rollback(revision_id)
    except Exception as e:
        raise to_http_error(e)


@router.post("/revisions/{revision_id}/reapply", response_model=RestoreResult)
async def reapply_revision(revision_id: int):
    """重新应用已回滚的修订"""
    try:
        return revision_workflow.reapply(revision_id)
    except Exception as e:
        raise to_http_error(e)


@router.patch("/revisions/{revision_id}/training", response_model=RevisionResponse)
async def toggle_training(revision_id: int, request: TrainingToggleRequest):
    """设置是否纳入训练数据"""
    try:
        revision = revision_workflow.set_training_inclusion(
            revision_id,
            request.include_in_training,
        )
        return revision_response(revision)
    except Exception as e:
        raise to_http_error(e)


@router.get("/revisions/{revision_id}/diff", response_model=DiffResult)
async def get_revision_diff(revision_id: int):
    """修订前后的词级对比"""
    revision = revision_workflow.store.get_revision(revision_id)
    if not revision:
        raise HTTPException(status_code=404, detail=f"修订记录不存在: {revision_id}")
    return diff_content(revision.previous_version, revision.revised_version)
