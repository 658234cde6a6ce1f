"""
批注服务 - 编辑批注的创建与生命周期
"""
from datetime import datetime
from typing import Optional

from editorial_gate.core import get_logger
from editorial_gate.models import ArticleComment, CommentCategory, CommentSeverity, CommentStatus
from editorial_gate.services.errors import InvalidTransitionError, NotFoundError
from editorial_gate.services.store import EditorialStore, SQLModelStore

logger = get_logger(__name__)


CATEGORY_CONFIG = [
    {"value": "accuracy", "label": "Accuracy", "description": "Factual errors or outdated information"},
    {"value": "tone", "label": "Tone", "description": "Voice, style, or writing tone issues"},
    {"value": "structure", "label": "Structure", "description": "Organization, headings, flow"},
    {"value": "seo", "label": "SEO", "description": "Keyword usage, meta content, optimization"},
    {"value": "compliance", "label": "Compliance", "description": "Linking rules and editorial policy"},
    {"value": "grammar", "label": "Grammar", "description": "Spelling, punctuation, syntax"},
    {"value": "style", "label": "Style", "description": "Word choice and house style"},
    {"value": "formatting", "label": "Formatting", "description": "HTML structure, lists, emphasis"},
    {"value": "general", "label": "General", "description": "Other feedback or suggestions"},
]

# 严重程度对应固定的高亮颜色
SEVERITY_CONFIG = [
    {"value": "minor", "label": "Minor", "color": "#3B82F6", "description": "Nice to fix"},
    {"value": "moderate", "label": "Moderate", "color": "#F59E0B", "description": "Should be fixed"},
    {"value": "major", "label": "Major", "color": "#F97316", "description": "Important to fix"},
    {"value": "critical", "label": "Critical", "color": "#EF4444", "description": "Must be fixed"},
]


def category_config(category: Optional[str]) -> dict:
    """类别配置，未知类别按 general 处理"""
    for config in CATEGORY_CONFIG:
        if config["value"] == category:
            return config
    return CATEGORY_CONFIG[-1]


def severity_config(severity: Optional[str]) -> dict:
    """严重程度配置，未知值按 minor 处理"""
    for config in SEVERITY_CONFIG:
        if config["value"] == severity:
            return config
    return SEVERITY_CONFIG[0]


class CommentService:
    """
    批注服务

    pending 之外的状态只能通过 dismiss / reopen 和修订审批流转
    """

    def __init__(self, store: Optional[EditorialStore] = None):
        self.store = store or SQLModelStore()

    def create_comment(
        self,
        article_id: int,
        selected_text: str,
        feedback: str,
        category: str = CommentCategory.GENERAL.value,
        severity: str = CommentSeverity.MINOR.value,
    ) -> ArticleComment:
        """
        创建批注

        Args:
            article_id: 文章ID
            selected_text: 选中的原文
            feedback: 修改意见
            category: 类别
            severity: 严重程度

        Returns:
            ArticleComment 对象
        """
        if not self.store.get_article(article_id):
            raise NotFoundError(f"文章不存在: {article_id}")
        if category not in {c.value for c in CommentCategory}:
            raise ValueError(f"未知的批注类别: {category}")
        if severity not in {s.value for s in CommentSeverity}:
            raise ValueError(f"未知的严重程度: {severity}")
        if not (feedback or "").strip():
            raise ValueError("修改意见不能为空")

        comment = self.store.create_comment({
            "article_id": article_id,
            "selected_text": selected_text or "",
            "feedback": feedback.strip(),
            "category": category,
            "severity": severity,
            "status": CommentStatus.PENDING.value,
        })
        logger.info(f"创建批注: id={comment.id}, article_id={article_id}, category={category}")
        return comment

    def list_comments(self, article_id: int, status: Optional[str] = None) -> list[ArticleComment]:
        return self.store.list_comments(article_id, status=status)

    def pending_comments(self, article_id: int) -> list[ArticleComment]:
        return self.store.list_comments(article_id, status=CommentStatus.PENDING.value)

    def _get(self, comment_id: int) -> ArticleComment:
        comment = self.store.get_comment(comment_id)
        if not comment:
            raise NotFoundError(f"批注不存在: {comment_id}")
        return comment

    def dismiss(self, comment_id: int) -> ArticleComment:
        """不经 AI 修订直接关闭批注"""
        comment = self._get(comment_id)
        if comment.status != CommentStatus.PENDING.value:
            raise InvalidTransitionError(f"只有待处理的批注可以忽略: {comment.status}")
        return self.store.update_comment(comment_id, {
            "status": CommentStatus.DISMISSED.value,
            "addressed_at": datetime.now(),
        })

    def reopen(self, comment_id: int) -> ArticleComment:
        """人工复核后重新打开批注"""
        comment = self._get(comment_id)
        if comment.status != CommentStatus.PENDING_REVIEW.value:
            raise InvalidTransitionError(f"只有待复核的批注可以重新打开: {comment.status}")
        return self.store.update_comment(comment_id, {
            "status": CommentStatus.PENDING.value,
            "addressed_at": None,
        })

    def delete(self, comment_id: int) -> None:
        comment = self._get(comment_id)
        if comment.status != CommentStatus.PENDING.value:
            raise InvalidTransitionError(f"只有待处理的批注可以删除: {comment.status}")
        self.store.delete_comment(comment_id)
        logger.info(f"删除批注: id={comment_id}")


# 全局单例
_comment_service: Optional[CommentService] = None


def get_comment_service() -> CommentService:
    """获取批注服务单例"""
    global _comment_service
    if _comment_service is None:
        _comment_service = CommentService()
    return _comment_service
