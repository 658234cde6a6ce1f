"""
训练数据服务 - 修订记录的导出与统计
"""
from datetime import datetime, timedelta
from typing import Optional

from editorial_gate.core import get_logger
from editorial_gate.models import AIRevision
from editorial_gate.services.store import EditorialStore, SQLModelStore

logger = get_logger(__name__)


class TrainingService:
    """训练数据服务"""

    def __init__(self, store: Optional[EditorialStore] = None):
        self.store = store or SQLModelStore()

    def _to_example(self, revision: AIRevision, label: str) -> dict:
        article = self.store.get_article(revision.article_id)
        return {
            "id": revision.id,
            "article_id": revision.article_id,
            "article_title": article.title if article else None,
            "focus_keyword": article.focus_keyword if article else None,
            "content_type": article.content_type if article else None,
            "before_content": revision.previous_version,
            "after_content": revision.revised_version,
            "feedback": revision.snapshot_list(),
            "revision_type": revision.revision_type,
            "model": revision.model_used,
            "timestamp": revision.created_at.isoformat(),
            "label": label,
        }

    def export_training_examples(self, include_rejected: bool = False) -> list[dict]:
        """
        导出训练样本

        默认只导出已通过、纳入训练且未回滚的修订；
        include_rejected 时追加被拒绝的修订作为负样本

        Returns:
            样本列表（新的在前）
        """
        approved = self.store.list_revisions(
            approved=True,
            include_in_training=True,
            exclude_rolled_back=True,
        )
        examples = [self._to_example(r, "positive") for r in approved]

        if include_rejected:
            rejected = self.store.list_revisions(
                approved=False,
                include_in_training=True,
                exclude_rolled_back=True,
            )
            examples.extend(self._to_example(r, "negative") for r in rejected)

        logger.info(f"导出训练样本: {len(examples)} 条")
        return examples

    def revision_stats(self, now: Optional[datetime] = None) -> dict:
        """修订记录统计"""
        now = now or datetime.now()
        seven_days_ago = now - timedelta(days=7)
        thirty_days_ago = now - timedelta(days=30)

        revisions = self.store.list_revisions()
        stats = {
            "total": len(revisions),
            "included_in_training": 0,
            "excluded_from_training": 0,
            "by_type": {},
            "last_7_days": 0,
            "last_30_days": 0,
            "approved": 0,
            "rejected": 0,
            "pending": 0,
        }

        for revision in revisions:
            if revision.include_in_training:
                stats["included_in_training"] += 1
            else:
                stats["excluded_from_training"] += 1

            revision_type = revision.revision_type or "unknown"
            stats["by_type"][revision_type] = stats["by_type"].get(revision_type, 0) + 1

            if revision.created_at >= seven_days_ago:
                stats["last_7_days"] += 1
            if revision.created_at >= thirty_days_ago:
                stats["last_30_days"] += 1

            if revision.approved is True:
                stats["approved"] += 1
            elif revision.approved is False:
                stats["rejected"] += 1
            else:
                stats["pending"] += 1

        return stats

    def bulk_set_training_inclusion(self, revision_ids: list[int], include: bool) -> int:
        """
        批量设置训练开关

        Returns:
            实际更新的条数，不存在的 ID 跳过
        """
        updated = 0
        for revision_id in revision_ids:
            if not self.store.get_revision(revision_id):
                logger.warning(f"修订记录不存在，跳过: {revision_id}")
                continue
            self.store.update_revision(revision_id, {"include_in_training": include})
            updated += 1
        return updated


# 全局单例
_training_service: Optional[TrainingService] = None


def get_training_service() -> TrainingService:
    """获取训练数据服务单例"""
    global _training_service
    if _training_service is None:
        _training_service = TrainingService()
    return _training_service
