"""
AI 修订记录数据模型
"""
import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from sqlmodel import SQLModel, Field


class RevisionType(str, Enum):
    """修订类型"""
    FEEDBACK = "feedback"
    AUTO_FIX = "auto_fix"
    HUMANIZE = "humanize"
    QUALITY_IMPROVEMENT = "quality_improvement"


# 修订记录创建后只允许修改这三个字段
MUTABLE_REVISION_FIELDS = frozenset({"include_in_training", "approved", "rolled_back_at"})


class AIRevision(SQLModel, table=True):
    """
    AI 修订记录模型

    每一次 AI 改写尝试一条记录，同时作为训练数据和审计依据
    """
    __tablename__ = "ai_revisions"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 关联文章
    article_id: int = Field(
        foreign_key="articles.id",
        index=True,
        description="关联的文章ID",
    )

    # 修订前后完整 HTML 快照
    previous_version: str = Field(description="修订前内容")
    revised_version: str = Field(description="修订后内容")

    # 生成时的批注快照（JSON格式存储）
    comments_snapshot: str = Field(default="[]", description="批注快照JSON")

    revision_type: str = Field(default=RevisionType.FEEDBACK.value, description="修订类型")

    # 文章上下文（JSON格式存储）: 标题、关键词、内容类型、作者、字数等
    article_context: str = Field(default="{}", description="文章上下文JSON")

    prompt_used: Optional[str] = Field(default=None, description="实际使用的 Prompt")
    model_used: Optional[str] = Field(default=None, description="使用的模型")

    # 校验结果（JSON格式存储），生成时计算一次，之后不再重算
    validation_result: Optional[str] = Field(default=None, description="校验结果JSON")

    # 可变字段
    include_in_training: bool = Field(default=True, description="是否纳入训练数据")
    approved: Optional[bool] = Field(
        default=None,
        description="审批结果: None(待审批)/True(通过)/False(拒绝)",
    )
    rolled_back_at: Optional[datetime] = Field(default=None, description="回滚时间")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")

    def snapshot_list(self) -> list[dict]:
        """解析批注快照"""
        return _loads(self.comments_snapshot, [])

    def context_dict(self) -> dict:
        """解析文章上下文"""
        return _loads(self.article_context, {})

    def validation_dict(self) -> Optional[dict]:
        """解析校验结果"""
        return _loads(self.validation_result, None)


def _loads(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default
