"""
文章批注数据模型
"""
import json
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class CommentCategory(str, Enum):
    """批注类别"""
    ACCURACY = "accuracy"
    TONE = "tone"
    STRUCTURE = "structure"
    SEO = "seo"
    COMPLIANCE = "compliance"
    GRAMMAR = "grammar"
    STYLE = "style"
    FORMATTING = "formatting"
    GENERAL = "general"


class CommentSeverity(str, Enum):
    """批注严重程度"""
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"


class CommentStatus(str, Enum):
    """
    批注状态

    pending -> addressed | dismissed | pending_review
    pending_review -> pending（人工重新打开）
    """
    PENDING = "pending"
    ADDRESSED = "addressed"
    DISMISSED = "dismissed"
    PENDING_REVIEW = "pending_review"


class ArticleComment(SQLModel, table=True):
    """
    编辑批注模型

    编辑选中一段原文并给出结构化修改意见
    """
    __tablename__ = "article_comments"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 关联文章
    article_id: int = Field(
        foreign_key="articles.id",
        index=True,
        description="关联的文章ID",
    )

    # 批注内容
    selected_text: str = Field(default="", description="选中的原文片段")
    category: str = Field(default=CommentCategory.GENERAL.value, description="类别")
    severity: str = Field(default=CommentSeverity.MINOR.value, description="严重程度")
    feedback: str = Field(default="", description="修改意见")

    # 状态
    status: str = Field(
        default=CommentStatus.PENDING.value,
        description="状态: pending/addressed/dismissed/pending_review",
    )

    # 关联修订：说明“为什么被标记为已处理”
    revision_id: Optional[int] = Field(
        default=None,
        foreign_key="ai_revisions.id",
        description="处理该批注的修订ID",
    )

    # 校验详情（JSON格式存储）: {"status", "evidence", "warnings"}
    validation_details: Optional[str] = Field(default=None, description="校验详情JSON")

    addressed_at: Optional[datetime] = Field(default=None, description="处理时间")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")
    updated_at: datetime = Field(default_factory=datetime.now, description="更新时间")

    def validation_dict(self) -> Optional[dict]:
        """解析校验详情"""
        if not self.validation_details:
            return None
        try:
            return json.loads(self.validation_details)
        except json.JSONDecodeError:
            return None

    def to_feedback_item(self) -> dict:
        """转换为修订校验所需的反馈条目"""
        return {
            "id": self.id,
            "selected_text": self.selected_text,
            "category": self.category,
            "severity": self.severity,
            "feedback": self.feedback,
        }
