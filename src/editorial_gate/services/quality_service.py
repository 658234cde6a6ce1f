"""
质量评分服务 - 文章发布前的统一质量检查

编辑器和生成流程都必须使用这里的评分，保证列表页与编辑页分数一致
"""
import asyncio
import math
import re
from typing import Callable, Optional

from pydantic import BaseModel, Field

from editorial_gate.core import get_settings, get_logger
from editorial_gate.services.html_utils import html_to_text, parse_html, soup_text
from editorial_gate.services.link_service import LinkReport, LinkRules, analyze_links

logger = get_logger(__name__)

SENTENCE_SPLIT = re.compile(r"[.!?]+")
VOWEL_CLUSTER = re.compile(r"[aeiouy]+", re.IGNORECASE)
BLS_MARKERS = ("bls.gov", "bureau of labor")


class QualityThresholds(BaseModel):
    """质量阈值配置"""
    min_word_count: int = 800
    max_word_count: int = 2500
    min_internal_links: int = 3
    min_external_links: int = 1
    require_bls_citation: bool = False
    require_faq_schema: bool = False
    require_headings: bool = True
    min_heading_count: int = 3
    min_images: int = 1
    require_image_alt_text: bool = True
    keyword_density_min: float = 0.5
    keyword_density_max: float = 2.5
    min_readability_score: float = 60
    max_readability_score: float = 80

    @classmethod
    def from_settings(cls, settings=None) -> "QualityThresholds":
        settings = settings or get_settings()
        return cls(**{name: getattr(settings, name) for name in cls.model_fields})


class QualityMeta(BaseModel):
    """文章元数据：关键词与 FAQ"""
    keywords: list[str] = Field(default_factory=list)
    faq_count: int = 0

    @classmethod
    def from_article(cls, article) -> "QualityMeta":
        return cls(keywords=article.keyword_list(), faq_count=len(article.faq_list()))

    @property
    def primary_keyword(self) -> Optional[str]:
        for keyword in self.keywords:
            if keyword and keyword.strip():
                return keyword.strip().lower()
        return None


class QualityCheck(BaseModel):
    passed: bool
    critical: bool = False
    label: str
    value: str
    issue: Optional[str] = None


class QualityIssue(BaseModel):
    check: str
    description: str
    critical: bool = False
    severity: str = "minor"


class QualitySnapshot(BaseModel):
    """一次质量评估的完整结果"""
    score: int = 0
    can_publish: bool = False
    checks: dict[str, QualityCheck] = Field(default_factory=dict)
    issues: list[QualityIssue] = Field(default_factory=list)
    word_count: int = 0
    links: Optional[LinkReport] = None


def plain_text(content: str) -> str:
    """正文纯文本：去掉 script/style，标签替换为空格，解码实体"""
    return html_to_text(content)


def count_words(text: str) -> int:
    return len([w for w in text.split() if w])


def count_syllables(word: str) -> int:
    """元音簇近似音节数，每个词至少 1"""
    return max(1, len(VOWEL_CLUSTER.findall(word)))


def readability_score(text: str) -> float:
    """
    Flesch 易读度

    206.835 - 1.015 * (词数 / 句数) - 84.6 * (音节 / 词数)，截断到 0-100；
    没有句子时返回 50
    """
    words = text.split()
    sentences = [s for s in SENTENCE_SPLIT.split(text) if s.strip()]
    if not sentences or not words:
        return 50.0
    syllables = sum(count_syllables(w) for w in words)
    score = (
        206.835
        - 1.015 * (len(words) / len(sentences))
        - 84.6 * (syllables / len(words))
    )
    return max(0.0, min(100.0, score))


def readability_label(score: float) -> str:
    if score >= 70:
        return "Easy"
    if score >= 60:
        return "Standard"
    if score >= 50:
        return "Difficult"
    return "Very Difficult"


def keyword_density(text: str, keyword: Optional[str], word_count: int) -> float:
    """关键词密度（%），大小写不敏感的字面子串匹配"""
    if not keyword or word_count <= 0:
        return 0.0
    occurrences = text.lower().count(keyword.lower())
    return occurrences / word_count * 100


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def evaluate_quality(
    content: str,
    meta: Optional[QualityMeta] = None,
    thresholds: Optional[QualityThresholds] = None,
    link_rules: Optional[LinkRules] = None,
    on_snapshot: Optional[Callable[[QualitySnapshot], None]] = None,
) -> QualitySnapshot:
    """
    计算文章质量快照

    Args:
        content: 文章 HTML
        meta: 关键词、FAQ 等元数据
        thresholds: 质量阈值，默认从配置读取
        link_rules: 链接规则，默认从配置读取（最少链接数以阈值为准）
        on_snapshot: 结果回调

    Returns:
        QualitySnapshot，未启用的检查项不出现在 checks 中
    """
    if not content or not content.strip():
        snapshot = QualitySnapshot()
        if on_snapshot:
            on_snapshot(snapshot)
        return snapshot

    t = thresholds or QualityThresholds.from_settings()
    meta = meta or QualityMeta()
    rules = (link_rules or LinkRules.from_settings()).model_copy(
        update={
            "min_internal_links": t.min_internal_links,
            "min_external_links": t.min_external_links,
        }
    )

    soup = parse_html(content)
    headings = len(soup.find_all(["h2", "h3"]))
    images = soup.find_all("img")
    image_count = len(images)
    images_with_alt = len([img for img in images if (img.get("alt") or "").strip()])

    text = soup_text(soup)
    word_count = count_words(text)
    lowered = content.lower()

    links = analyze_links(content, rules)
    internal = links.internal_links
    external = links.external_links
    blocked = len(links.blocking_issues)

    has_faq = meta.faq_count > 0
    has_bls = any(marker in lowered for marker in BLS_MARKERS)
    keyword = meta.primary_keyword
    density = keyword_density(text, keyword, word_count)
    readability = readability_score(text)

    # (启用, 检查项)
    candidates: dict[str, tuple[bool, QualityCheck]] = {}

    word_issue = None
    if word_count < t.min_word_count:
        word_issue = f"Add {t.min_word_count - word_count} more words"
    elif word_count > t.max_word_count:
        word_issue = f"Remove {word_count - t.max_word_count} words"
    candidates["word_count"] = (True, QualityCheck(
        passed=word_issue is None,
        label=f"{t.min_word_count}-{t.max_word_count} words",
        value=f"{word_count} words",
        issue=word_issue,
    ))

    candidates["internal_links"] = (True, QualityCheck(
        passed=internal >= t.min_internal_links,
        critical=True,
        label=f"At least {t.min_internal_links} internal links",
        value=_plural(internal, "link"),
        issue=(
            f"Add {t.min_internal_links - internal} more internal link(s)"
            if internal < t.min_internal_links else None
        ),
    ))

    candidates["external_links"] = (True, QualityCheck(
        passed=external >= t.min_external_links,
        label=f"At least {_plural(t.min_external_links, 'external citation')}",
        value=_plural(external, "citation"),
        issue=(
            f"Add {t.min_external_links - external} more external citation(s)"
            if external < t.min_external_links else None
        ),
    ))

    candidates["faq_schema"] = (t.require_faq_schema, QualityCheck(
        passed=has_faq,
        critical=t.require_faq_schema,
        label="FAQ Schema markup",
        value=f"{meta.faq_count} FAQs" if has_faq else "Missing",
        issue=None if has_faq else "Add FAQ schema markup",
    ))

    candidates["bls_citation"] = (t.require_bls_citation, QualityCheck(
        passed=has_bls,
        critical=t.require_bls_citation,
        label="BLS data citation",
        value="Present" if has_bls else "Missing",
        issue=None if has_bls else "Add BLS citation",
    ))

    candidates["headings"] = (t.require_headings, QualityCheck(
        passed=headings >= t.min_heading_count,
        label=f"At least {t.min_heading_count} headings (H2/H3)",
        value=_plural(headings, "heading"),
        issue=(
            f"Add {t.min_heading_count - headings} more heading(s)"
            if headings < t.min_heading_count else None
        ),
    ))

    candidates["images"] = (t.min_images > 0, QualityCheck(
        passed=image_count >= t.min_images,
        label=f"At least {_plural(t.min_images, 'image')}",
        value=_plural(image_count, "image"),
        issue=(
            f"Add {t.min_images - image_count} more image(s)"
            if image_count < t.min_images else None
        ),
    ))

    candidates["image_alt"] = (t.require_image_alt_text and image_count > 0, QualityCheck(
        passed=images_with_alt == image_count,
        label="All images have alt text",
        value=f"{images_with_alt}/{image_count} with alt text" if image_count else "No images",
        issue=(
            f"Add alt text to {image_count - images_with_alt} image(s)"
            if images_with_alt < image_count else None
        ),
    ))

    density_issue = None
    if density < t.keyword_density_min:
        density_issue = "Increase keyword usage"
    elif density > t.keyword_density_max:
        density_issue = "Reduce keyword usage (potential stuffing)"
    candidates["keyword_density"] = (keyword is not None, QualityCheck(
        passed=density_issue is None,
        label=f"Keyword density {t.keyword_density_min}%-{t.keyword_density_max}%",
        value=f"{density:.2f}%",
        issue=density_issue,
    ))

    readability_issue = None
    if readability < t.min_readability_score:
        readability_issue = "Simplify sentence structure"
    elif readability > t.max_readability_score:
        readability_issue = "Add more complexity for target audience"
    candidates["readability"] = (True, QualityCheck(
        passed=readability_issue is None,
        label=f"Readability {t.min_readability_score:g}-{t.max_readability_score:g}",
        value=f"{readability:.0f} ({readability_label(readability)})",
        issue=readability_issue,
    ))

    candidates["link_policy"] = (True, QualityCheck(
        passed=blocked == 0,
        critical=True,
        label="No blocked links",
        value="Compliant" if blocked == 0 else _plural(blocked, "blocked link"),
        issue=f"Remove {blocked} blocked link(s)" if blocked else None,
    ))

    checks = {name: check for name, (enabled, check) in candidates.items() if enabled}
    passed = len([c for c in checks.values() if c.passed])
    score = _round_half_up(100 * passed / len(checks)) if checks else 0

    issues = [
        QualityIssue(
            check=name,
            description=check.issue,
            critical=check.critical,
            severity="major" if check.critical else "minor",
        )
        for name, check in checks.items()
        if not check.passed and check.issue
    ]

    snapshot = QualitySnapshot(
        score=score,
        can_publish=not any(c.critical and not c.passed for c in checks.values()),
        checks=checks,
        issues=issues,
        word_count=word_count,
        links=links,
    )
    if on_snapshot:
        on_snapshot(snapshot)
    return snapshot


class AnalysisDebouncer:
    """
    内容变更防抖分析

    连续提交时只在静默 delay 之后计算最后一次内容，并把结果交给回调
    """

    def __init__(
        self,
        callback: Callable[[QualitySnapshot], None],
        delay_ms: Optional[int] = None,
        thresholds: Optional[QualityThresholds] = None,
        link_rules: Optional[LinkRules] = None,
    ):
        if delay_ms is None:
            delay_ms = get_settings().analysis_debounce_ms
        self.delay = max(0, delay_ms) / 1000
        self.callback = callback
        self.thresholds = thresholds
        self.link_rules = link_rules
        self._task: Optional[asyncio.Task] = None

    def submit(self, content: str, meta: Optional[QualityMeta] = None) -> None:
        """提交新内容，取消尚未执行的上一次分析"""
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(content, meta))

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """等待当前排队的分析完成"""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("防抖分析已取消")

    async def _run(self, content: str, meta: Optional[QualityMeta]) -> None:
        await asyncio.sleep(self.delay)
        evaluate_quality(
            content,
            meta=meta,
            thresholds=self.thresholds,
            link_rules=self.link_rules,
            on_snapshot=self.callback,
        )
