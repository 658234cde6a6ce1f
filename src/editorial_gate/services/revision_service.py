"""
AI 修订工作流 - 批注 → AI 修订 → 校验 → 人工审批

每篇文章一个编辑会话：idle → generating → pending_approval → idle
生成流程用 LangGraph 编排：generate → clean → validate → record
"""
import asyncio
import re
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypedDict

from langgraph.graph import StateGraph, END
from pydantic import BaseModel, Field

from editorial_gate.core import get_settings, get_logger
from editorial_gate.models import AIRevision, Article, CommentStatus, RevisionType
from editorial_gate.services.comment_service import category_config, severity_config
from editorial_gate.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    PendingRevisionError,
    RevisionGenerationError,
    RevisionInFlightError,
)
from editorial_gate.services.quality_service import count_words, plain_text
from editorial_gate.services.store import EditorialStore, SQLModelStore
from editorial_gate.services.validation_service import (
    FeedbackItem,
    ValidationResult,
    validate_revision,
)

logger = get_logger(__name__)
settings = get_settings()

GenerateFn = Callable[..., Awaitable[str]]

THINK_BLOCK_PATTERN = re.compile(r"<(think|thinking)>.*?</\1>", re.IGNORECASE | re.DOTALL)
THINK_TAG_PATTERN = re.compile(r"</?(?:think|thinking)>", re.IGNORECASE)
FENCE_OPEN_PATTERN = re.compile(r"^```[a-zA-Z]*\s*")
FENCE_CLOSE_PATTERN = re.compile(r"\s*```\s*$")
PREAMBLE_PATTERN = re.compile(r"^Here is the revised.*?:\s*", re.IGNORECASE)

AUTO_SAVE_FAILED_WARNING = (
    "Revision applied but auto-save failed. Please save manually to keep your changes."
)

REVISION_SYSTEM_PROMPT = (
    "You are a senior editor revising web articles. "
    "Return only the revised HTML, with no commentary."
)

# 修订 Prompt
REVISION_PROMPT = """You are revising an article based on editorial feedback. Your output MUST be valid HTML that preserves the original formatting structure.

CRITICAL FORMATTING RULES:
1. Output ONLY valid HTML - no markdown, no code fences, no explanations
2. Preserve ALL existing HTML elements: <h2>, <h3>, <p>, <ul>, <ol>, <li>, <a>, <strong>, <em>, <blockquote>
3. Preserve ALL H2 IDs exactly (e.g., <h2 id="section-name">)
4. Preserve ALL links (<a> tags) with their href attributes
5. Preserve ALL shortcodes: [degree_table], [ge_internal_link], [ge_cta], etc.
6. Keep paragraphs as <p> tags, lists as <ul>/<ol> with <li> items
7. Do NOT convert HTML to markdown or any other format
8. Do NOT wrap output in code blocks or add any prefix/suffix text

ARTICLE CONTEXT:
{article_context}

CURRENT HTML CONTENT:
{content}

EDITORIAL FEEDBACK TO ADDRESS:
{feedback_items}

REVISION INSTRUCTIONS:
1. Apply ALL feedback items to the content
2. Make targeted changes that address each specific feedback point
3. Preserve the EXACT same HTML structure and formatting
4. Keep images (<img> tags) in their current positions unless feedback specifically mentions them
5. Keep the same approximate length unless told to expand/shorten
6. Return ONLY the revised HTML content, starting directly with the first HTML tag

Revised HTML:"""


# ============ 数据结构 ============

class PendingRevision(BaseModel):
    """待审批的修订，只存在于编辑会话中"""
    article_id: int
    revision_id: int
    previous_content: str
    revised_content: str
    feedback_items: list[FeedbackItem] = Field(default_factory=list)
    validation_result: ValidationResult
    timestamp: datetime = Field(default_factory=datetime.now)


class ApprovalResult(BaseModel):
    revision_id: int
    content: str
    saved: bool = True
    warning: Optional[str] = None
    addressed_comment_ids: list[int] = Field(default_factory=list)
    pending_review_comment_ids: list[int] = Field(default_factory=list)
    skipped_comment_ids: list[int] = Field(default_factory=list)


class RestoreResult(BaseModel):
    """回滚 / 重新应用后需要恢复到文章的内容"""
    revision_id: int
    article_id: int
    content: str
    rolled_back_at: Optional[datetime] = None
    include_in_training: bool = True


class RevisionSession:
    """单篇文章的修订会话状态"""

    IDLE = "idle"
    GENERATING = "generating"
    PENDING_APPROVAL = "pending_approval"

    def __init__(self, article_id: int):
        self.article_id = article_id
        self.state = self.IDLE
        self.token: Optional[str] = None
        self.task: Optional[asyncio.Task] = None
        self.pending: Optional[PendingRevision] = None
        # 审批后保存失败的内容，等待 retry_save
        self.unsaved_content: Optional[str] = None

    def reset(self) -> None:
        self.state = self.IDLE
        self.token = None
        self.task = None
        self.pending = None


class RevisionState(TypedDict):
    """生成流程状态"""

    # 输入
    article_id: int
    token: str
    prompt: str
    previous_content: str
    feedback_items: list[dict]
    article_context: dict

    # 中间结果
    raw_output: str
    revised_content: str
    validation: dict

    # 输出
    revision_id: Optional[int]


# ============ 工具函数 ============

def clean_revision_output(raw: Optional[str]) -> str:
    """
    清理模型输出中的包装文本

    去掉思考块、代码围栏和 "Here is the revised..." 开场白
    """
    text = THINK_BLOCK_PATTERN.sub("", raw or "")
    text = THINK_TAG_PATTERN.sub("", text).strip()
    text = PREAMBLE_PATTERN.sub("", text)
    text = FENCE_OPEN_PATTERN.sub("", text)
    text = FENCE_CLOSE_PATTERN.sub("", text)
    text = PREAMBLE_PATTERN.sub("", text.strip())
    return text.strip()


def _unique(values: list[str]) -> list[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def build_article_context(article: Article, feedback_items: list[FeedbackItem]) -> dict:
    return {
        "title": article.title,
        "focus_keyword": article.focus_keyword,
        "content_type": article.content_type,
        "contributor_name": article.contributor_name,
        "contributor_style": article.contributor_style,
        "comment_count": len(feedback_items),
        "categories_addressed": _unique([item.category for item in feedback_items]),
        "severities_addressed": _unique([item.severity for item in feedback_items]),
    }


def build_revision_prompt(article: Article, content: str, feedback_items: list[FeedbackItem]) -> str:
    """根据文章上下文和批注组装修订 Prompt"""
    context_lines = [f"Title: {article.title}"]
    if article.focus_keyword:
        context_lines.append(f"Focus Keyword: {article.focus_keyword}")
    if article.content_type:
        context_lines.append(f"Content Type: {article.content_type}")
    if article.contributor_name:
        author = article.contributor_name
        if article.contributor_style:
            author += f" - {article.contributor_style}"
        context_lines.append(f"Author Style: {author}")

    feedback_lines = []
    for index, item in enumerate(feedback_items, start=1):
        category = category_config(item.category)["label"].upper()
        severity = severity_config(item.severity)["label"].upper()
        feedback_lines.append(
            f"{index}. [{category} - {severity}]\n"
            f"   Selected Text: \"{item.selected_text}\"\n"
            f"   Feedback: \"{item.feedback}\""
        )

    return REVISION_PROMPT.format(
        article_context="\n".join(context_lines),
        content=content,
        feedback_items="\n\n".join(feedback_lines),
    )


async def default_generate(prompt: str, **options: Any) -> str:
    """默认生成函数：调用 LLM 服务"""
    from editorial_gate.services.llm_service import get_llm_service

    return await get_llm_service().agenerate(
        prompt,
        system_prompt=REVISION_SYSTEM_PROMPT,
        **options,
    )


# ============ 工作流 ============

class RevisionWorkflow:
    """
    AI 修订工作流

    同一篇文章同时最多一个生成任务；生成结果在人工审批前不会写入文章
    """

    def __init__(
        self,
        store: Optional[EditorialStore] = None,
        generate_fn: Optional[GenerateFn] = None,
        model_name: Optional[str] = None,
    ):
        self.store = store or SQLModelStore()
        self.generate_fn = generate_fn or default_generate
        if model_name is None and generate_fn is None:
            model_name = settings.openai_model
        self.model_name = model_name
        self._sessions: dict[int, RevisionSession] = {}
        self.graph = self._create_graph().compile()

    # ---------- 生成流程 ----------

    def _create_graph(self) -> StateGraph:
        graph = StateGraph(RevisionState)

        graph.add_node("generate", self._node_generate)
        graph.add_node("clean", self._node_clean)
        graph.add_node("validate", self._node_validate)
        graph.add_node("record", self._node_record)

        graph.set_entry_point("generate")
        graph.add_edge("generate", "clean")
        graph.add_edge("clean", "validate")

        # 请求已取消时不落库
        graph.add_conditional_edges(
            "validate",
            self._after_validate,
            {
                "record": "record",
                "discard": END,
            },
        )
        graph.add_edge("record", END)
        return graph

    async def _node_generate(self, state: RevisionState) -> dict:
        logger.info(f"[LangGraph] 调用 AI 修订: article_id={state['article_id']}")
        raw = await self.generate_fn(
            state["prompt"],
            temperature=settings.revision_temperature,
            max_tokens=settings.revision_max_tokens,
        )
        return {"raw_output": raw or ""}

    def _node_clean(self, state: RevisionState) -> dict:
        cleaned = clean_revision_output(state["raw_output"])
        if not cleaned:
            raise ValueError("AI 返回内容为空")
        return {"revised_content": cleaned}

    def _node_validate(self, state: RevisionState) -> dict:
        result = validate_revision(
            state["previous_content"],
            state["revised_content"],
            state["feedback_items"],
        )
        return {"validation": result.model_dump()}

    def _after_validate(self, state: RevisionState) -> str:
        if self._is_current(state["article_id"], state["token"]):
            return "record"
        logger.info(f"修订请求已取消，丢弃生成结果: article_id={state['article_id']}")
        return "discard"

    def _node_record(self, state: RevisionState) -> dict:
        before = count_words(plain_text(state["previous_content"]))
        after = count_words(plain_text(state["revised_content"]))
        context = dict(state["article_context"])
        context.update({
            "word_count_before": before,
            "word_count_after": after,
            "word_count_delta": after - before,
        })

        revision = self.store.create_revision({
            "article_id": state["article_id"],
            "previous_version": state["previous_content"],
            "revised_version": state["revised_content"],
            "comments_snapshot": state["feedback_items"],
            "revision_type": RevisionType.FEEDBACK.value,
            "article_context": context,
            "prompt_used": state["prompt"],
            "model_used": self.model_name,
            "validation_result": state["validation"],
            "include_in_training": True,
            "approved": None,
        })
        return {"revision_id": revision.id}

    # ---------- 会话 ----------

    def _session(self, article_id: int) -> RevisionSession:
        session = self._sessions.get(article_id)
        if session is None:
            session = RevisionSession(article_id)
            self._sessions[article_id] = session
        return session

    def _is_current(self, article_id: int, token: str) -> bool:
        session = self._sessions.get(article_id)
        return session is not None and session.token == token

    def state_of(self, article_id: int) -> str:
        return self._session(article_id).state

    def pending_revision(self, article_id: int) -> Optional[PendingRevision]:
        return self._session(article_id).pending

    def unsaved_content(self, article_id: int) -> Optional[str]:
        return self._session(article_id).unsaved_content

    # ---------- 状态转换 ----------

    async def request_revision(self, article_id: int) -> Optional[PendingRevision]:
        """
        请求 AI 修订

        Args:
            article_id: 文章ID

        Returns:
            PendingRevision；请求在完成前被取消时返回 None

        Raises:
            RevisionInFlightError: 已有生成任务
            PendingRevisionError: 已有修订等待审批
            InvalidTransitionError: 没有待处理批注，或上次通过的修订尚未保存
            RevisionGenerationError: AI 调用失败
        """
        session = self._session(article_id)
        if session.state == RevisionSession.GENERATING:
            raise RevisionInFlightError(f"文章 {article_id} 已有修订正在生成")
        if session.pending is not None:
            raise PendingRevisionError(f"文章 {article_id} 有修订等待审批")
        if session.unsaved_content is not None:
            # 新修订只能基于已保存的内容生成
            raise InvalidTransitionError(f"文章 {article_id} 有已通过但未保存的修订，请先重试保存")

        article = self.store.get_article(article_id)
        if not article:
            raise NotFoundError(f"文章不存在: {article_id}")

        comments = self.store.list_comments(article_id, status=CommentStatus.PENDING.value)
        if not comments:
            raise InvalidTransitionError("没有待处理的批注")

        feedback_items = [FeedbackItem(**c.to_feedback_item()) for c in comments]
        prompt = build_revision_prompt(article, article.content, feedback_items)

        token = uuid.uuid4().hex
        session.state = RevisionSession.GENERATING
        session.token = token
        logger.info(f"开始 AI 修订: article_id={article_id}, comments={len(feedback_items)}")

        initial_state: RevisionState = {
            "article_id": article_id,
            "token": token,
            "prompt": prompt,
            "previous_content": article.content,
            "feedback_items": [item.model_dump() for item in feedback_items],
            "article_context": build_article_context(article, feedback_items),
            "raw_output": "",
            "revised_content": "",
            "validation": {},
            "revision_id": None,
        }
        task = asyncio.create_task(self.graph.ainvoke(initial_state))
        session.task = task

        try:
            final_state = await task
        except asyncio.CancelledError:
            if session.token != token:
                logger.info(f"修订请求已取消: article_id={article_id}")
                return None
            session.reset()
            raise
        except Exception as e:
            if session.token != token:
                logger.info(f"已取消的修订请求失败，忽略: article_id={article_id}, error={e}")
                return None
            session.reset()
            logger.error(f"AI 修订失败: article_id={article_id}, error={e}")
            raise RevisionGenerationError(f"AI 修订失败: {e}") from e

        if session.token != token:
            # 落库之后才被取消：修订不再进入审批，也不作为训练数据
            revision_id = final_state.get("revision_id")
            if revision_id is not None:
                self.store.update_revision(revision_id, {"include_in_training": False})
            logger.info(f"修订请求已取消，丢弃生成结果: article_id={article_id}")
            return None

        pending = PendingRevision(
            article_id=article_id,
            revision_id=final_state["revision_id"],
            previous_content=article.content,
            revised_content=final_state["revised_content"],
            feedback_items=feedback_items,
            validation_result=ValidationResult.model_validate(final_state["validation"]),
        )
        session.pending = pending
        session.state = RevisionSession.PENDING_APPROVAL
        session.task = None
        logger.info(
            f"AI 修订待审批: article_id={article_id}, revision_id={pending.revision_id}, "
            f"{pending.validation_result.summary}"
        )
        return pending

    def cancel(self, article_id: int) -> bool:
        """取消生成中的修订，迟到的结果会被丢弃"""
        session = self._session(article_id)
        if session.state != RevisionSession.GENERATING:
            return False
        task = session.task
        session.reset()
        if task is not None and not task.done():
            task.cancel()
        logger.info(f"取消 AI 修订: article_id={article_id}")
        return True

    def approve(self, article_id: int) -> ApprovalResult:
        """
        通过待审批修订

        已处理的批注标记为 addressed 并关联修订；部分处理或失败的进入 pending_review
        """
        session = self._session(article_id)
        pending = session.pending
        if pending is None:
            raise PendingRevisionError(f"文章 {article_id} 没有待审批的修订")

        result = ApprovalResult(revision_id=pending.revision_id, content=pending.revised_content)
        now = datetime.now()

        for item in pending.validation_result.items:
            comment = self.store.get_comment(item.id) if item.id is not None else None
            if comment is None or comment.status != CommentStatus.PENDING.value:
                # 生成期间被删除或忽略的批注
                if item.id is not None:
                    result.skipped_comment_ids.append(item.id)
                continue

            if item.status == "addressed":
                self.store.update_comment(item.id, {
                    "status": CommentStatus.ADDRESSED.value,
                    "revision_id": pending.revision_id,
                    "addressed_at": now,
                    "validation_details": {
                        "status": item.status,
                        "evidence": item.evidence,
                        "warnings": item.warnings,
                    },
                })
                result.addressed_comment_ids.append(item.id)
            else:
                self.store.update_comment(item.id, {
                    "status": CommentStatus.PENDING_REVIEW.value,
                    "revision_id": pending.revision_id,
                    "validation_details": {
                        "status": item.status,
                        "evidence": item.evidence,
                        "warnings": item.warnings,
                    },
                })
                result.pending_review_comment_ids.append(item.id)

        self.store.update_revision(pending.revision_id, {"approved": True})
        session.reset()

        try:
            self.save_content(article_id, pending.revised_content)
            session.unsaved_content = None
        except Exception as e:
            logger.error(f"修订已应用但保存失败: article_id={article_id}, error={e}")
            session.unsaved_content = pending.revised_content
            result.saved = False
            result.warning = AUTO_SAVE_FAILED_WARNING

        logger.info(
            f"修订已通过: revision_id={pending.revision_id}, "
            f"addressed={len(result.addressed_comment_ids)}, "
            f"pending_review={len(result.pending_review_comment_ids)}"
        )
        return result

    def reject(self, article_id: int) -> str:
        """
        拒绝待审批修订

        Returns:
            修订前的原始内容
        """
        session = self._session(article_id)
        pending = session.pending
        if pending is None:
            raise PendingRevisionError(f"文章 {article_id} 没有待审批的修订")

        self.store.update_revision(pending.revision_id, {"approved": False})
        session.reset()
        logger.info(f"修订已拒绝: revision_id={pending.revision_id}")
        return pending.previous_content

    def retry_save(self, article_id: int) -> Article:
        """重试保存审批后未能保存的内容"""
        session = self._session(article_id)
        if session.unsaved_content is None:
            raise InvalidTransitionError(f"文章 {article_id} 没有待保存的内容")
        article = self.save_content(article_id, session.unsaved_content)
        session.unsaved_content = None
        return article

    def save_content(self, article_id: int, content: str) -> Article:
        return self.store.save_article(article_id, {
            "content": content,
            "word_count": count_words(plain_text(content)),
        })

    def _get_revision(self, revision_id: int) -> AIRevision:
        revision = self.store.get_revision(revision_id)
        if not revision:
            raise NotFoundError(f"修订记录不存在: {revision_id}")
        return revision

    def rollback(self, revision_id: int) -> RestoreResult:
        """
        回滚已通过的修订

        恢复修订前内容；不会重新打开该修订处理过的批注，回滚后的修订不再作为训练数据
        """
        revision = self._get_revision(revision_id)
        if revision.approved is not True:
            raise InvalidTransitionError("只有已通过的修订可以回滚")
        if revision.rolled_back_at is not None:
            raise InvalidTransitionError("修订已经回滚")

        # 先恢复文章内容，保存失败时修订状态不变
        self.save_content(revision.article_id, revision.previous_version)
        revision = self.store.update_revision(revision_id, {
            "rolled_back_at": datetime.now(),
            "include_in_training": False,
        })
        logger.info(f"修订已回滚: revision_id={revision_id}")
        return RestoreResult(
            revision_id=revision.id,
            article_id=revision.article_id,
            content=revision.previous_version,
            rolled_back_at=revision.rolled_back_at,
            include_in_training=revision.include_in_training,
        )

    def reapply(self, revision_id: int) -> RestoreResult:
        """重新应用已回滚的修订，恢复修订后内容"""
        revision = self._get_revision(revision_id)
        if revision.rolled_back_at is None:
            raise InvalidTransitionError("只有已回滚的修订可以重新应用")

        self.save_content(revision.article_id, revision.revised_version)
        revision = self.store.update_revision(revision_id, {
            "rolled_back_at": None,
            "include_in_training": True,
        })
        logger.info(f"修订已重新应用: revision_id={revision_id}")
        return RestoreResult(
            revision_id=revision.id,
            article_id=revision.article_id,
            content=revision.revised_version,
            rolled_back_at=None,
            include_in_training=revision.include_in_training,
        )

    def set_training_inclusion(self, revision_id: int, include: bool) -> AIRevision:
        """切换是否纳入训练数据，不影响文章和批注"""
        self._get_revision(revision_id)
        return self.store.update_revision(revision_id, {"include_in_training": include})


# 全局单例
_revision_workflow: Optional[RevisionWorkflow] = None


def get_revision_workflow() -> RevisionWorkflow:
    """获取修订工作流单例"""
    global _revision_workflow
    if _revision_workflow is None:
        _revision_workflow = RevisionWorkflow()
    return _revision_workflow
