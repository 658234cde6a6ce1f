"""
修订流程异常

都继承 ValueError，路由层沿用 ValueError 的处理方式映射为 HTTP 错误
"""


class RevisionWorkflowError(ValueError):
    """修订流程错误基类"""


class RevisionInFlightError(RevisionWorkflowError):
    """同一篇文章已有修订在生成中"""


class PendingRevisionError(RevisionWorkflowError):
    """没有待审批的修订，或已有修订在等待审批"""


class RevisionGenerationError(RevisionWorkflowError):
    """AI 生成失败"""


class InvalidTransitionError(RevisionWorkflowError):
    """批注或修订的状态不允许此操作"""


class NotFoundError(ValueError):
    """文章、批注或修订不存在"""
