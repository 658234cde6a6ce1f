"""
编辑数据存储 - 文章 / 批注 / 修订的增删改查

修订流程只依赖 EditorialStore 接口，不关心具体存储引擎
"""
import json
from datetime import datetime
from typing import Any, Optional, Protocol

from sqlmodel import Session, select

from editorial_gate.core import get_logger
from editorial_gate.services.errors import NotFoundError
from editorial_gate.models import (
    AIRevision,
    Article,
    ArticleComment,
    MUTABLE_REVISION_FIELDS,
)

logger = get_logger(__name__)

# 这些字段在模型里以 JSON 字符串保存
_ARTICLE_JSON_FIELDS = ("faqs", "target_keywords")
_COMMENT_JSON_FIELDS = ("validation_details",)
_REVISION_JSON_FIELDS = ("comments_snapshot", "article_context", "validation_result")


def _encode_json_fields(data: dict, fields: tuple[str, ...]) -> dict:
    encoded = dict(data)
    for name in fields:
        value = encoded.get(name)
        if value is not None and not isinstance(value, str):
            encoded[name] = json.dumps(value, ensure_ascii=False)
    return encoded


class EditorialStore(Protocol):
    """抽象存储接口"""

    def get_article(self, article_id: int) -> Optional[Article]: ...

    def create_article(self, data: dict) -> Article: ...

    def save_article(self, article_id: int, patch: dict) -> Article: ...

    def create_comment(self, data: dict) -> ArticleComment: ...

    def get_comment(self, comment_id: int) -> Optional[ArticleComment]: ...

    def update_comment(self, comment_id: int, patch: dict) -> ArticleComment: ...

    def delete_comment(self, comment_id: int) -> bool: ...

    def list_comments(
        self, article_id: int, status: Optional[str] = None
    ) -> list[ArticleComment]: ...

    def create_revision(self, data: dict) -> AIRevision: ...

    def get_revision(self, revision_id: int) -> Optional[AIRevision]: ...

    def update_revision(self, revision_id: int, patch: dict) -> AIRevision: ...

    def list_revisions(
        self,
        article_id: Optional[int] = None,
        approved: Any = ...,
        include_in_training: Optional[bool] = None,
        exclude_rolled_back: bool = False,
    ) -> list[AIRevision]: ...


class SQLModelStore:
    """
    基于 SQLModel 的存储实现

    每个方法独立开启 Session，返回已刷新的对象
    """

    def __init__(self, engine=None):
        if engine is None:
            from editorial_gate.core.database import engine as default_engine
            engine = default_engine
        self.engine = engine

    # ---------- 文章 ----------

    def get_article(self, article_id: int) -> Optional[Article]:
        with Session(self.engine) as session:
            return session.get(Article, article_id)

    def create_article(self, data: dict) -> Article:
        with Session(self.engine) as session:
            article = Article(**_encode_json_fields(data, _ARTICLE_JSON_FIELDS))
            session.add(article)
            session.commit()
            session.refresh(article)
            logger.info(f"创建文章: id={article.id}")
            return article

    def save_article(self, article_id: int, patch: dict) -> Article:
        """保存文章修改，文章不存在时抛出 NotFoundError"""
        with Session(self.engine) as session:
            article = session.get(Article, article_id)
            if not article:
                raise NotFoundError(f"文章不存在: {article_id}")

            for key, value in _encode_json_fields(patch, _ARTICLE_JSON_FIELDS).items():
                if key == "id" or not hasattr(article, key):
                    continue
                setattr(article, key, value)
            article.updated_at = datetime.now()

            session.add(article)
            session.commit()
            session.refresh(article)
            return article

    # ---------- 批注 ----------

    def create_comment(self, data: dict) -> ArticleComment:
        with Session(self.engine) as session:
            comment = ArticleComment(**_encode_json_fields(data, _COMMENT_JSON_FIELDS))
            session.add(comment)
            session.commit()
            session.refresh(comment)
            return comment

    def get_comment(self, comment_id: int) -> Optional[ArticleComment]:
        with Session(self.engine) as session:
            return session.get(ArticleComment, comment_id)

    def update_comment(self, comment_id: int, patch: dict) -> ArticleComment:
        with Session(self.engine) as session:
            comment = session.get(ArticleComment, comment_id)
            if not comment:
                raise NotFoundError(f"批注不存在: {comment_id}")

            for key, value in _encode_json_fields(patch, _COMMENT_JSON_FIELDS).items():
                if key == "id" or not hasattr(comment, key):
                    continue
                setattr(comment, key, value)
            comment.updated_at = datetime.now()

            session.add(comment)
            session.commit()
            session.refresh(comment)
            return comment

    def delete_comment(self, comment_id: int) -> bool:
        with Session(self.engine) as session:
            comment = session.get(ArticleComment, comment_id)
            if not comment:
                return False
            session.delete(comment)
            session.commit()
            return True

    def list_comments(
        self, article_id: int, status: Optional[str] = None
    ) -> list[ArticleComment]:
        with Session(self.engine) as session:
            statement = select(ArticleComment).where(ArticleComment.article_id == article_id)
            if status:
                statement = statement.where(ArticleComment.status == status)
            statement = statement.order_by(ArticleComment.created_at, ArticleComment.id)
            return list(session.exec(statement).all())

    # ---------- 修订 ----------

    def create_revision(self, data: dict) -> AIRevision:
        with Session(self.engine) as session:
            revision = AIRevision(**_encode_json_fields(data, _REVISION_JSON_FIELDS))
            session.add(revision)
            session.commit()
            session.refresh(revision)
            logger.info(f"创建修订记录: id={revision.id}, article_id={revision.article_id}")
            return revision

    def get_revision(self, revision_id: int) -> Optional[AIRevision]:
        with Session(self.engine) as session:
            return session.get(AIRevision, revision_id)

    def update_revision(self, revision_id: int, patch: dict) -> AIRevision:
        """
        更新修订记录

        修订创建后只允许修改 include_in_training / approved / rolled_back_at
        """
        illegal = set(patch) - MUTABLE_REVISION_FIELDS
        if illegal:
            raise ValueError(f"修订记录不可修改字段: {', '.join(sorted(illegal))}")

        with Session(self.engine) as session:
            revision = session.get(AIRevision, revision_id)
            if not revision:
                raise NotFoundError(f"修订记录不存在: {revision_id}")

            for key, value in patch.items():
                setattr(revision, key, value)

            session.add(revision)
            session.commit()
            session.refresh(revision)
            return revision

    def list_revisions(
        self,
        article_id: Optional[int] = None,
        approved: Any = ...,
        include_in_training: Optional[bool] = None,
        exclude_rolled_back: bool = False,
    ) -> list[AIRevision]:
        """
        查询修订记录（新的在前）

        Args:
            article_id: 按文章过滤
            approved: 按审批结果过滤，None 表示待审批，省略表示不过滤
            include_in_training: 按训练开关过滤
            exclude_rolled_back: 是否排除已回滚的修订
        """
        with Session(self.engine) as session:
            statement = select(AIRevision)
            if article_id is not None:
                statement = statement.where(AIRevision.article_id == article_id)
            if approved is None:
                statement = statement.where(AIRevision.approved.is_(None))
            elif approved is not ...:
                statement = statement.where(AIRevision.approved == approved)
            if include_in_training is not None:
                statement = statement.where(AIRevision.include_in_training == include_in_training)
            if exclude_rolled_back:
                statement = statement.where(AIRevision.rolled_back_at.is_(None))
            statement = statement.order_by(AIRevision.created_at.desc(), AIRevision.id.desc())
            return list(session.exec(statement).all())
