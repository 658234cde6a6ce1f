"""
服务模块
"""
from .link_service import LinkRules, LinkReport, analyze_links
from .quality_service import QualityThresholds, QualityMeta, QualitySnapshot, evaluate_quality
from .diff_service import DiffResult, diff_content
from .validation_service import FeedbackItem, ValidationResult, validate_revision
from .store import EditorialStore, SQLModelStore
from .revision_service import RevisionWorkflow, get_revision_workflow

__all__ = [
    "LinkRules",
    "LinkReport",
    "analyze_links",
    "QualityThresholds",
    "QualityMeta",
    "QualitySnapshot",
    "evaluate_quality",
    "DiffResult",
    "diff_content",
    "FeedbackItem",
    "ValidationResult",
    "validate_revision",
    "EditorialStore",
    "SQLModelStore",
    "RevisionWorkflow",
    "get_revision_workflow",
]
