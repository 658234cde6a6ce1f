"""
修订校验服务 - 判断 AI 修订是否真正处理了每条批注

策略保守：没有文本证据时一律不判定为已处理
"""
import re
from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from editorial_gate.core import get_logger
from editorial_gate.services.diff_service import normalize_html

logger = get_logger(__name__)

WORD_PATTERN = re.compile(r"\w+(?:['’]\w+)*")

# 选中文本两侧各取多少个词作为上下文窗口
CONTEXT_WORDS = 8
NGRAM_SIZE = 3


class FeedbackItem(BaseModel):
    """需要被修订处理的批注"""
    id: Optional[int] = None
    selected_text: str = ""
    category: str = "general"
    severity: str = "minor"
    feedback: str = ""


class ValidationItem(BaseModel):
    id: Optional[int] = None
    status: str  # addressed/partial/failed
    evidence: str = ""
    warnings: list[str] = Field(default_factory=list)
    category: str = "general"
    severity: str = "minor"
    feedback: str = ""
    selected_text: str = ""


class ValidationResult(BaseModel):
    success: bool = True
    addressed_count: int = 0
    partial_count: int = 0
    failed_count: int = 0
    items: list[ValidationItem] = Field(default_factory=list)
    summary: str = ""

    def item_for(self, comment_id: int) -> Optional[ValidationItem]:
        for item in self.items:
            if item.id == comment_id:
                return item
        return None


def _words(text: str) -> list[str]:
    return WORD_PATTERN.findall(text)


def _find_sequence(haystack: list[str], needle: list[str]) -> int:
    """needle 在 haystack 中连续出现的起始下标，找不到返回 -1"""
    if not needle or len(needle) > len(haystack):
        return -1
    size = len(needle)
    first = needle[0]
    for start in range(len(haystack) - size + 1):
        if haystack[start] == first and haystack[start:start + size] == needle:
            return start
    return -1


def _ngrams(words: list[str], n: int) -> set[tuple[str, ...]]:
    return {tuple(words[i:i + n]) for i in range(len(words) - n + 1)}


def _snippet(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _locate_revised_passage(
    previous_words: list[str],
    selected_words: list[str],
    revised_words: list[str],
) -> Optional[tuple[int, int]]:
    """
    在修订稿中寻找与原文上下文对应的段落

    以选中文本为中心取上下文窗口，用 n-gram 重叠在修订稿中滑动匹配

    Returns:
        修订稿中的 (起, 止) 词下标，找不到返回 None
    """
    start = _find_sequence(previous_words, selected_words)
    if start == -1:
        return None
    end = start + len(selected_words)
    window = previous_words[max(0, start - CONTEXT_WORDS):end + CONTEXT_WORDS]

    n = min(NGRAM_SIZE, len(window))
    if n == 0 or not revised_words:
        return None
    context_grams = _ngrams(window, n)

    span = min(len(window), len(revised_words))
    best_score, best_start = 0, -1
    for offset in range(len(revised_words) - span + 1):
        grams = _ngrams(revised_words[offset:offset + span], min(n, span))
        score = len(grams & context_grams)
        if score > best_score:
            best_score, best_start = score, offset
    if best_start == -1:
        return None
    return best_start, best_start + span


def validate_feedback_item(
    previous_content: str,
    revised_content: str,
    item: FeedbackItem,
) -> ValidationItem:
    """
    校验单条批注

    Args:
        previous_content: 修订前 HTML
        revised_content: 修订后 HTML
        item: 批注

    Returns:
        ValidationItem
    """
    result = ValidationItem(
        id=item.id,
        status="partial",
        category=item.category,
        severity=item.severity,
        feedback=item.feedback,
        selected_text=item.selected_text,
    )

    selected = (item.selected_text or "").strip()
    if not selected:
        result.evidence = "No specific text was selected for this feedback"
        result.warnings.append("Please verify this change manually")
        return result

    previous_content = previous_content or ""
    revised_content = revised_content or ""
    selected_plain = normalize_html(selected)
    previous_plain = normalize_html(previous_content)
    revised_plain = normalize_html(revised_content)

    # 选中文本原样保留 -> 没有处理
    if selected in revised_content or (selected_plain and selected_plain in revised_plain):
        result.status = "failed"
        result.evidence = f'The text "{_snippet(selected)}" still appears in the revised content'
        result.warnings.append("The AI may not have made the requested change")
        return result

    # 原文里也找不到：批注快照已过期
    if selected not in previous_content and selected_plain not in previous_plain:
        result.evidence = "The selected text was not found in the original content"
        result.warnings.append(
            "The selected text does not match the content the revision was generated from"
        )
        return result

    selected_words = [w.lower() for w in _words(selected_plain)]
    previous_words = [w.lower() for w in _words(previous_plain)]
    revised_original = _words(revised_plain)
    revised_words = [w.lower() for w in revised_original]

    # 词序列仍然连续存在，只改了标点、空白或大小写
    if not selected_words or _find_sequence(revised_words, selected_words) != -1:
        result.evidence = "Only punctuation or whitespace around the selection changed"
        result.warnings.append("The change may be too small to address the feedback")
        return result

    span = _locate_revised_passage(previous_words, selected_words, revised_words)
    if span is None:
        result.evidence = "Could not locate a comparable passage in the revised content"
        result.warnings.append("Please verify this change manually")
        return result

    result.status = "addressed"
    result.evidence = " ".join(revised_original[span[0]:span[1]])
    return result


def validate_revision(
    previous_content: str,
    revised_content: str,
    feedback_items: Iterable[Union[FeedbackItem, dict]],
) -> ValidationResult:
    """
    校验一次修订

    结果在生成修订时计算一次并随修订保存，之后不再重算

    Args:
        previous_content: 修订前 HTML
        revised_content: 修订后 HTML
        feedback_items: 批注列表

    Returns:
        ValidationResult
    """
    items = [
        item if isinstance(item, FeedbackItem) else FeedbackItem.model_validate(item)
        for item in (feedback_items or [])
    ]
    results = ValidationResult()

    if not items:
        results.summary = "No feedback items to validate"
        return results

    for item in items:
        validation = validate_feedback_item(previous_content, revised_content, item)
        results.items.append(validation)
        if validation.status == "addressed":
            results.addressed_count += 1
        elif validation.status == "failed":
            results.failed_count += 1
        else:
            results.partial_count += 1

    results.success = results.failed_count == 0
    if results.failed_count == 0 and results.partial_count == 0:
        results.summary = f"All {results.addressed_count} feedback items were successfully addressed"
    elif results.failed_count > 0:
        results.summary = (
            f"{results.failed_count} of {len(items)} items may not have been fully addressed. "
            "Please review."
        )
    else:
        results.summary = (
            f"{results.addressed_count} items addressed, "
            f"{results.partial_count} partially addressed"
        )

    logger.debug(
        f"修订校验完成: addressed={results.addressed_count}, "
        f"partial={results.partial_count}, failed={results.failed_count}"
    )
    return results


def generate_validation_summary(result: ValidationResult) -> str:
    """生成给编辑看的校验摘要"""
    lines = []

    if result.failed_count > 0:
        lines.append(f"⚠️ {result.failed_count} item(s) may need manual review:")
        for item in result.items:
            if item.status != "failed":
                continue
            feedback = item.feedback or ""
            lines.append(f"  - {_snippet(feedback, 60)}")
            if item.warnings:
                lines.append(f"    Reason: {item.warnings[0]}")

    if result.addressed_count > 0:
        lines.append(f"✅ {result.addressed_count} item(s) successfully addressed")

    if result.partial_count > 0:
        lines.append(f"⚡ {result.partial_count} item(s) partially addressed (please verify)")

    return "\n".join(lines)
