"""
链接合规服务 - 解析文章中的链接并按站点规则分类
"""
import re
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from editorial_gate.core import get_settings, get_logger
from editorial_gate.services.html_utils import collapse_whitespace, parse_html

logger = get_logger(__name__)

ANCHOR_TEXT_DISPLAY_LIMIT = 50

SCHOOL_PAGE_PATH = "geteducated.com/online-schools/"
DEGREE_PAGE_PATH = "geteducated.com/online-degrees/"
RANKING_REPORT_PATH = "geteducated.com/online-college-ratings-and-rankings/"


class LinkRules(BaseModel):
    """链接检查配置"""
    min_internal_links: int = 3
    min_external_links: int = 1
    # 站点自身域名，未指定时取配置
    site_domains: list[str] = Field(default_factory=lambda: list(get_settings().site_domains))
    blocked_domains: list[str] = Field(default_factory=list)
    allowed_external_domains: list[str] = Field(default_factory=list)

    @classmethod
    def from_settings(cls, settings=None) -> "LinkRules":
        settings = settings or get_settings()
        return cls(
            min_internal_links=settings.min_internal_links,
            min_external_links=settings.min_external_links,
            site_domains=settings.site_domains,
            blocked_domains=settings.blocked_domains,
            allowed_external_domains=settings.allowed_external_domains,
        )


class LinkRecord(BaseModel):
    """单条链接的分类结果"""
    url: str
    anchor_text: str = ""
    domain: str = ""
    type: str = "internal"  # internal/external/anchor
    severity: str = "none"  # none/warning/blocking
    issues: list[str] = Field(default_factory=list)


class LinkIssue(BaseModel):
    url: str
    anchor_text: str = ""
    issues: list[str] = Field(default_factory=list)


class LinkReport(BaseModel):
    """整篇文章的链接报告"""
    links: list[LinkRecord] = Field(default_factory=list)
    total_links: int = 0
    internal_links: int = 0
    external_links: int = 0
    anchor_links: int = 0
    blocking_issues: list[LinkIssue] = Field(default_factory=list)
    warnings: list[LinkIssue] = Field(default_factory=list)
    is_compliant: bool = False
    recommendation: Optional[str] = None


def _domain_matches(host: str, domain: str) -> bool:
    domain = domain.lower().strip()
    return bool(domain) and (host == domain or host.endswith("." + domain))


def _any_domain_matches(host: str, domains: list[str]) -> Optional[str]:
    for domain in domains:
        if _domain_matches(host, domain):
            return domain
    return None


def _display_anchor_text(raw: str) -> str:
    text = collapse_whitespace(raw)
    if len(text) > ANCHOR_TEXT_DISPLAY_LIMIT:
        return text[:ANCHOR_TEXT_DISPLAY_LIMIT] + "..."
    return text


def extract_links(content: str) -> list[tuple[str, str]]:
    """
    提取文章中的所有链接

    Returns:
        [(url, 锚文本)]，按出现顺序；没有 href 或 href 为空的不计入
    """
    if not content:
        return []
    results = []
    for anchor in parse_html(content).find_all("a", href=True):
        url = anchor["href"].strip()
        if not url:
            continue
        results.append((url, _display_anchor_text(anchor.get_text(" "))))
    return results


def classify_link(url: str, rules: LinkRules, anchor_text: str = "") -> LinkRecord:
    """
    按站点规则对单个 URL 分类

    Args:
        url: 链接地址
        rules: 链接规则
        anchor_text: 锚文本

    Returns:
        LinkRecord
    """
    record = LinkRecord(url=url, anchor_text=anchor_text)

    # 页内锚点
    if url.startswith("#"):
        record.type = "anchor"
        return record

    # 站内相对路径（协议相对的 //host 除外）
    if url.startswith("/") and not url.startswith("//"):
        record.type = "internal"
        return record

    try:
        parsed = urlparse(url if not url.startswith("//") else "https:" + url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        parsed = None
        host = ""

    # 无协议无主机，视为相对路径
    if parsed is not None and not parsed.scheme and not host:
        record.type = "internal"
        return record

    record.domain = host

    if host and _any_domain_matches(host, rules.site_domains):
        record.type = "internal"
        return record

    record.type = "external"

    if host:
        competitor = _any_domain_matches(host, rules.blocked_domains)
        if competitor:
            record.severity = "blocking"
            record.issues.append(
                f"Competitor link detected: {competitor}. This link is not allowed."
            )
            return record

        allowed = _any_domain_matches(host, rules.allowed_external_domains)
        if host.endswith(".edu") and not allowed:
            record.severity = "blocking"
            record.issues.append(
                "Direct .edu links are not allowed. Use GetEducated school pages instead."
            )
            return record

        if allowed:
            return record

    record.severity = "warning"
    record.issues.append(
        f"External link to {host or url} is not on the approved list. "
        "Consider using BLS, government, or nonprofit sources."
    )
    return record


def analyze_links(content: str, rules: Optional[LinkRules] = None) -> LinkReport:
    """
    分析文章链接合规性

    纯函数，相同输入得到相同结果；HTML 残缺时不抛异常

    Args:
        content: 文章 HTML
        rules: 链接规则，默认从配置读取

    Returns:
        LinkReport
    """
    rules = rules or LinkRules.from_settings()
    report = LinkReport()

    for url, anchor_text in extract_links(content):
        record = classify_link(url, rules, anchor_text)
        report.links.append(record)

        if record.type == "internal":
            report.internal_links += 1
        elif record.type == "external":
            report.external_links += 1
        else:
            report.anchor_links += 1

        issue = LinkIssue(url=record.url, anchor_text=record.anchor_text, issues=record.issues)
        if record.severity == "blocking":
            report.blocking_issues.append(issue)
        elif record.severity == "warning":
            report.warnings.append(issue)

    report.total_links = len(report.links)
    report.is_compliant = (
        not report.blocking_issues
        and report.internal_links >= rules.min_internal_links
        and report.external_links >= rules.min_external_links
    )
    report.recommendation = _recommendation(report, rules)
    return report


def _recommendation(report: LinkReport, rules: LinkRules) -> Optional[str]:
    need_internal = max(0, rules.min_internal_links - report.internal_links)
    need_external = max(0, rules.min_external_links - report.external_links)
    if not need_internal and not need_external:
        return None
    return (
        f"Add {need_internal} more internal link(s) and "
        f"{need_external} more external link(s) for optimal SEO."
    )


def can_publish_links(report: LinkReport) -> dict:
    """根据链接报告判断能否发布（只看阻断问题）"""
    if report.blocking_issues:
        return {
            "can_publish": False,
            "reason": "Content contains blocked links that must be removed before publishing.",
            "blocking_issues": report.blocking_issues,
            "warnings": report.warnings,
        }
    return {
        "can_publish": True,
        "reason": None,
        "blocking_issues": [],
        "warnings": report.warnings,
    }


def is_school_page(url: Optional[str]) -> bool:
    return bool(url) and SCHOOL_PAGE_PATH in url


def is_degree_page(url: Optional[str]) -> bool:
    return bool(url) and DEGREE_PAGE_PATH in url


def is_ranking_report(url: Optional[str]) -> bool:
    return bool(url) and RANKING_REPORT_PATH in url


def school_page_url(school_name: Optional[str]) -> str:
    """根据学校名生成站内学校页地址"""
    if not school_name:
        return ""
    slug = re.sub(r"[^a-z0-9\s-]", "", school_name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return f"https://www.geteducated.com/online-schools/{slug}/"
