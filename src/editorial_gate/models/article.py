"""
文章数据模型
"""
import json
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class ArticleStatus(str, Enum):
    """文章状态"""
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    PUBLISHED = "published"


class Article(SQLModel, table=True):
    """
    文章模型

    content 为完整 HTML，只会被保存操作和已批准的修订改写
    """
    __tablename__ = "articles"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 基本信息
    title: str = Field(default="", description="标题")
    focus_keyword: Optional[str] = Field(default=None, description="主关键词")
    target_keywords: Optional[str] = Field(
        default=None,
        description="目标关键词 JSON 数组",
    )
    content_type: Optional[str] = Field(default=None, description="内容类型")
    contributor_name: Optional[str] = Field(default=None, description="署名作者")
    contributor_style: Optional[str] = Field(default=None, description="作者风格说明")

    # 正文
    content: str = Field(default="", description="文章 HTML")
    word_count: int = Field(default=0, description="字数")

    # FAQ（JSON格式存储）: [{"question": "...", "answer": "..."}]
    faqs: Optional[str] = Field(default=None, description="FAQ JSON")

    # 状态
    status: str = Field(
        default=ArticleStatus.DRAFT.value,
        description="状态: draft/in_review/approved/published",
    )

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")
    updated_at: datetime = Field(default_factory=datetime.now, description="更新时间")

    def faq_list(self) -> list[dict]:
        """解析 FAQ 列表，格式错误时视为空"""
        if not self.faqs:
            return []
        try:
            data = json.loads(self.faqs)
        except json.JSONDecodeError:
            return []
        return data if isinstance(data, list) else []

    def target_keyword_list(self) -> list[str]:
        """解析 target_keywords"""
        if not self.target_keywords:
            return []
        try:
            data = json.loads(self.target_keywords)
        except json.JSONDecodeError:
            return []
        return [str(k) for k in data if k] if isinstance(data, list) else []

    def keyword_list(self) -> list[str]:
        """目标关键词列表，优先 target_keywords，其次 focus_keyword"""
        keywords = self.target_keyword_list()
        if not keywords and self.focus_keyword:
            keywords = [self.focus_keyword]
        return keywords
