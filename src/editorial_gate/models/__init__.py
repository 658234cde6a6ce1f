"""
数据模型模块
"""
from .article import Article, ArticleStatus
from .article_comment import (
    ArticleComment,
    CommentCategory,
    CommentSeverity,
    CommentStatus,
)
from .ai_revision import AIRevision, RevisionType, MUTABLE_REVISION_FIELDS

__all__ = [
    "Article",
    "ArticleStatus",
    "ArticleComment",
    "CommentCategory",
    "CommentSeverity",
    "CommentStatus",
    "AIRevision",
    "RevisionType",
    "MUTABLE_REVISION_FIELDS",
]
