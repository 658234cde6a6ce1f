"""
文本对比服务 - 版本之间的词级差异

HTML 先归一化为纯文本，再按词做最长公共子序列对比
"""
import math
import re
from typing import Optional

from pydantic import BaseModel, Field

from editorial_gate.core import get_logger
from editorial_gate.services.html_utils import html_to_text

logger = get_logger(__name__)

# 词（允许内部撇号）或单个标点，带上前导空白
TOKEN_PATTERN = re.compile(r"\s*(?:\w+(?:['’]\w+)*|[^\w\s])")
WORD_CHAR = re.compile(r"\w")

NO_DIFFERENCES = "No differences found"


class DiffPart(BaseModel):
    """对比片段，added/removed 都为 False 表示未变化"""
    value: str
    added: bool = False
    removed: bool = False


class DiffStats(BaseModel):
    added: int = 0
    removed: int = 0
    unchanged: int = 0
    change_percentage: int = 0


class DiffResult(BaseModel):
    identical: bool = False
    message: Optional[str] = None
    old_text: str = ""
    new_text: str = ""
    parts: list[DiffPart] = Field(default_factory=list)
    stats: DiffStats = Field(default_factory=DiffStats)
    added_words: list[str] = Field(default_factory=list)
    removed_words: list[str] = Field(default_factory=list)
    unchanged_words: list[str] = Field(default_factory=list)


def normalize_html(content: Optional[str]) -> str:
    """
    HTML 转为用于对比的纯文本

    去掉 script/style 块，其余标签替换为空格，解码实体，合并空白
    """
    return html_to_text(content)


def tokenize(text: str) -> list[str]:
    return TOKEN_PATTERN.findall(text)


def _key(token: str) -> str:
    return token.strip()


def _is_word(token: str) -> bool:
    return bool(WORD_CHAR.search(token))


def _lcs_ops(old: list[str], new: list[str]) -> list[tuple[str, str]]:
    """
    基于 LCS 的编辑序列

    Returns:
        [(op, token)]，op 为 "=", "-", "+"
    """
    old_keys = [_key(t) for t in old]
    new_keys = [_key(t) for t in new]

    # 公共前后缀不进入 DP
    start = 0
    while start < len(old) and start < len(new) and old_keys[start] == new_keys[start]:
        start += 1
    end_old, end_new = len(old), len(new)
    while end_old > start and end_new > start and old_keys[end_old - 1] == new_keys[end_new - 1]:
        end_old -= 1
        end_new -= 1

    a = old_keys[start:end_old]
    b = new_keys[start:end_new]
    n, m = len(a), len(b)

    # lengths[i][j] = a[i:] 与 b[j:] 的 LCS 长度
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lengths[i], lengths[i + 1]
        for j in range(m - 1, -1, -1):
            if a[i] == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]

    ops: list[tuple[str, str]] = [("=", new[k]) for k in range(start)]
    i = j = 0
    while i < n and j < m:
        if a[i] == b[j]:
            ops.append(("=", new[start + j]))
            i += 1
            j += 1
            continue
        down, right = lengths[i + 1][j], lengths[i][j + 1]
        # 平局时按内容决定跳过哪一侧，保证 diff(a, b) 与 diff(b, a) 互为镜像
        if down > right or (down == right and a[i] < b[j]):
            ops.append(("-", old[start + i]))
            i += 1
        else:
            ops.append(("+", new[start + j]))
            j += 1
    ops.extend(("-", old[start + k]) for k in range(i, n))
    ops.extend(("+", new[start + k]) for k in range(j, m))
    ops.extend(("=", new[k]) for k in range(end_new, len(new)))
    return ops


def _merge(ops: list[tuple[str, str]]) -> list[DiffPart]:
    """合并相邻同类片段，变化区内删除在前、新增在后"""
    parts: list[DiffPart] = []
    removed: list[str] = []
    added: list[str] = []

    def flush_changes():
        if removed:
            parts.append(DiffPart(value="".join(removed), removed=True))
        if added:
            parts.append(DiffPart(value="".join(added), added=True))
        removed.clear()
        added.clear()

    for op, token in ops:
        if op == "-":
            removed.append(token)
        elif op == "+":
            added.append(token)
        else:
            flush_changes()
            if parts and not parts[-1].added and not parts[-1].removed:
                parts[-1].value += token
            else:
                parts.append(DiffPart(value=token))
    flush_changes()
    return parts


def _words(parts: list[DiffPart], added: bool = False, removed: bool = False) -> list[str]:
    words = []
    for part in parts:
        if part.added == added and part.removed == removed:
            words.extend(_key(t) for t in tokenize(part.value) if _is_word(t))
    return words


def change_percentage(added: int, removed: int, unchanged: int) -> int:
    """变化比例，分母为旧版本基线（未变 + 删除）"""
    baseline = unchanged + removed
    if baseline == 0:
        return 0
    return int(math.floor(100 * (added + removed) / baseline + 0.5))


def diff_content(old_content: Optional[str], new_content: Optional[str]) -> DiffResult:
    """
    对比两个 HTML 版本

    Args:
        old_content: 旧版本 HTML
        new_content: 新版本 HTML

    Returns:
        DiffResult
    """
    old_text = normalize_html(old_content)
    new_text = normalize_html(new_content)

    if old_text == new_text:
        words = [_key(t) for t in tokenize(new_text) if _is_word(t)]
        return DiffResult(
            identical=True,
            message=NO_DIFFERENCES,
            old_text=old_text,
            new_text=new_text,
            parts=[DiffPart(value=new_text)] if new_text else [],
            stats=DiffStats(unchanged=len(words)),
            unchanged_words=words,
        )

    parts = _merge(_lcs_ops(tokenize(old_text), tokenize(new_text)))
    added_words = _words(parts, added=True)
    removed_words = _words(parts, removed=True)
    unchanged_words = _words(parts)

    return DiffResult(
        old_text=old_text,
        new_text=new_text,
        parts=parts,
        stats=DiffStats(
            added=len(added_words),
            removed=len(removed_words),
            unchanged=len(unchanged_words),
            change_percentage=change_percentage(
                len(added_words), len(removed_words), len(unchanged_words)
            ),
        ),
        added_words=added_words,
        removed_words=removed_words,
        unchanged_words=unchanged_words,
    )


def render_unified(
    result: DiffResult,
    show_additions: bool = True,
    show_deletions: bool = True,
) -> list[DiffPart]:
    """统一视图：新增和删除内联显示，可分别隐藏"""
    return [
        part for part in result.parts
        if not (part.added and not show_additions)
        and not (part.removed and not show_deletions)
    ]


def render_split(result: DiffResult) -> tuple[list[DiffPart], list[DiffPart]]:
    """分栏视图：左侧旧版本（不含新增），右侧新版本（不含删除）"""
    old_side = [part for part in result.parts if not part.added]
    new_side = [part for part in result.parts if not part.removed]
    return old_side, new_side


def quick_diff(
    old_content: Optional[str],
    new_content: Optional[str],
    limit: int = 5,
    max_chars: int = 80,
) -> list[DiffPart]:
    """版本历史预览用：只取前 limit 个变化片段，过长的截断"""
    result = diff_content(old_content, new_content)
    changes = []
    for part in result.parts:
        if not part.added and not part.removed:
            continue
        value = part.value.strip()
        if len(value) > max_chars:
            value = value[:max_chars] + "..."
        changes.append(DiffPart(value=value, added=part.added, removed=part.removed))
        if len(changes) >= limit:
            break
    return changes
