"""
编辑批注 API 路由
"""
from typing import Optional
from fastapi import APIRouter
from pydantic import BaseModel

from editorial_gate.api.errors import to_http_error
from editorial_gate.models import ArticleComment
from editorial_gate.services.comment_service import (
    CATEGORY_CONFIG,
    SEVERITY_CONFIG,
    get_comment_service,
    severity_config,
)

router = APIRouter(tags=["编辑批注"])

# 服务实例
comment_service = get_comment_service()


# ============ 请求/响应模型 ============

class CreateCommentRequest(BaseModel):
    """创建批注请求"""
    selected_text: str
    feedback: str
    category: str = "general"
    severity: str = "minor"


class CommentResponse(BaseModel):
    """批注响应"""
    id: int
    article_id: int
    selected_text: str
    category: str
    severity: str
    color: str
    feedback: str
    status: str
    revision_id: Optional[int]
    validation_details: Optional[dict]
    addressed_at: Optional[str]
    created_at: str


def comment_response(comment: ArticleComment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        article_id=comment.article_id,
        selected_text=comment.selected_text,
        category=comment.category,
        severity=comment.severity,
        color=severity_config(comment.severity)["color"],
        feedback=comment.feedback,
        status=comment.status,
        revision_id=comment.revision_id,
        validation_details=comment.validation_dict(),
        addressed_at=comment.addressed_at.isoformat() if comment.addressed_at else None,
        created_at=comment.created_at.isoformat(),
    )


# ============ API 接口 ============

@router.get("/comments/config")
async def get_comment_config():
    """批注类别与严重程度配置"""
    return {"categories": CATEGORY_CONFIG, "severities": SEVERITY_CONFIG}


@router.post("/articles/{article_id}/comments", response_model=CommentResponse)
async def create_comment(article_id: int, request: CreateCommentRequest):
    """创建批注"""
    try:
        comment = comment_service.create_comment(
            article_id=article_id,
            selected_text=request.selected_text,
            feedback=request.feedback,
            category=request.category,
            severity=request.severity,
        )
        return comment_response(comment)
    except Exception as e:
        raise to_http_error(e)


@router.get("/articles/{article_id}/comments", response_model=list[CommentResponse])
async def list_comments(article_id: int, status: Optional[str] = None):
    """获取文章的批注"""
    return [comment_response(c) for c in comment_service.list_comments(article_id, status)]


@router.post("/comments/{comment_id}/dismiss", response_model=CommentResponse)
async def dismiss_comment(comment_id: int):
    """忽略批注"""
    try:
        return comment_response(comment_service.dismiss(comment_id))
    except Exception as e:
        raise to_http_error(e)


@router.post("/comments/{comment_id}/reopen", response_model=CommentResponse)
async def reopen_comment(comment_id: int):
    """重新打开待复核的批注"""
    try:
        return comment_response(comment_service.reopen(comment_id))
    except Exception as e:
        raise to_http_error(e)


@router.delete("/comments/{comment_id}")
async def delete_comment(comment_id: int):
    """删除批注"""
    try:
        comment_service.delete(comment_id)
        return {"message": "删除成功"}
    except Exception as e:
        raise to_http_error(e)
