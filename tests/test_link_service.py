"""
链接合规服务测试
"""
import pytest

from editorial_gate.core.config import DEFAULT_ALLOWED_EXTERNAL_DOMAINS, DEFAULT_BLOCKED_DOMAINS
from editorial_gate.services.link_service import (
    LinkRules,
    analyze_links,
    can_publish_links,
    classify_link,
    extract_links,
    is_degree_page,
    is_ranking_report,
    is_school_page,
    school_page_url,
)


@pytest.fixture
def rules() -> LinkRules:
    return LinkRules(
        min_internal_links=3,
        min_external_links=1,
        site_domains=["geteducated.com", "www.geteducated.com"],
        blocked_domains=DEFAULT_BLOCKED_DOMAINS,
        allowed_external_domains=DEFAULT_ALLOWED_EXTERNAL_DOMAINS,
    )


def _links(*hrefs: str) -> str:
    return "".join(f'<p><a href="{href}">link {i}</a></p>' for i, href in enumerate(hrefs))


class TestClassifyLink:
    """单链接分类测试"""

    def test_relative_path_is_internal(self, rules):
        assert classify_link("/online-degrees/mba/", rules).type == "internal"

    def test_bare_relative_path_is_internal(self, rules):
        assert classify_link("resources/faq.html", rules).type == "internal"

    def test_site_domain_and_subdomain_are_internal(self, rules):
        assert classify_link("https://geteducated.com/x", rules).type == "internal"
        assert classify_link("https://blog.geteducated.com/post", rules).type == "internal"

    def test_fragment_is_anchor(self, rules):
        record = classify_link("#faq", rules)
        assert record.type == "anchor"
        assert record.severity == "none"

    def test_protocol_relative_url_is_external(self, rules):
        record = classify_link("//www.bls.gov/ooh/", rules)
        assert record.type == "external"
        assert record.domain == "www.bls.gov"
        assert record.severity == "none"

    def test_competitor_is_blocking(self, rules):
        record = classify_link("https://www.onlineu.com/rankings", rules)
        assert record.type == "external"
        assert record.severity == "blocking"
        assert record.issues == ["Competitor link detected: onlineu.com. This link is not allowed."]

    def test_edu_is_blocking(self, rules):
        record = classify_link("https://www.ufl.edu/admissions", rules)
        assert record.severity == "blocking"
        assert record.issues == [
            "Direct .edu links are not allowed. Use GetEducated school pages instead."
        ]

    def test_allowlisted_edu_is_not_blocked(self, rules):
        record = classify_link("https://www.aacsb.edu/accredited", rules)
        assert record.type == "external"
        assert record.severity == "none"

    def test_unknown_external_is_warning(self, rules):
        record = classify_link("https://example.org/page", rules)
        assert record.severity == "warning"
        assert record.issues == [
            "External link to example.org is not on the approved list. "
            "Consider using BLS, government, or nonprofit sources."
        ]

    def test_lookalike_domain_is_not_matched(self, rules):
        # notbls.gov 不是 bls.gov 的子域名
        record = classify_link("https://notbls.gov/data", rules)
        assert record.severity == "warning"


class TestAnalyzeLinks:
    """整篇链接报告测试"""

    def test_single_internal_link_is_not_compliant(self, rules):
        report = analyze_links("<p>See <a href='https://geteducated.com/x'>x</a></p>", rules)

        assert report.internal_links == 1
        assert report.external_links == 0
        assert report.total_links == 1
        assert report.is_compliant is False
        assert report.recommendation == (
            "Add 2 more internal link(s) and 1 more external link(s) for optimal SEO."
        )

    def test_blocked_domain_forces_non_compliance(self, rules):
        content = _links("/a", "/b", "/c", "https://www.bls.gov/ooh/", "https://onlineu.com/y")

        report = analyze_links(content, rules)

        assert report.internal_links == 3
        assert report.external_links == 2
        assert len(report.blocking_issues) == 1
        assert report.blocking_issues[0].url == "https://onlineu.com/y"
        assert report.is_compliant is False
        assert report.recommendation is None

    def test_compliant_content(self, rules):
        content = _links("/a", "/b", "https://www.geteducated.com/c", "https://nces.ed.gov/")

        report = analyze_links(content, rules)

        assert report.is_compliant is True
        assert report.blocking_issues == []
        assert report.warnings == []

    def test_anchor_links_do_not_count_as_internal(self, rules):
        report = analyze_links(_links("#top", "#faq", "/a"), rules)

        assert report.anchor_links == 2
        assert report.internal_links == 1
        assert report.total_links == 3

    def test_warnings_are_collected_separately(self, rules):
        report = analyze_links(_links("https://example.org/a"), rules)

        assert len(report.warnings) == 1
        assert report.blocking_issues == []

    def test_malformed_html_never_raises(self, rules):
        content = "<p><a>no href</a> <a href=>empty</a> <a href=\"/b\">unclosed</p>"
        report = analyze_links(content, rules)
        assert [link.url for link in report.links] == ["/b"]

    def test_unquoted_href_is_extracted(self, rules):
        report = analyze_links('<a href=/online-degrees/mba/>MBA</a> <a href="/a">a</a>', rules)

        assert report.total_links == 2
        assert report.internal_links == 2

    def test_site_domain_defaults_from_settings(self):
        rules = LinkRules(
            min_internal_links=3,
            min_external_links=1,
            blocked_domains=[],
            allowed_external_domains=[],
        )

        report = analyze_links("<p>See <a href='https://geteducated.com/x'>x</a></p>", rules)

        assert report.internal_links == 1
        assert report.external_links == 0
        assert report.is_compliant is False

    def test_links_are_reported_in_document_order(self, rules):
        report = analyze_links(_links("/first", "https://www.bls.gov/", "#last"), rules)
        assert [link.url for link in report.links] == ["/first", "https://www.bls.gov/", "#last"]

    def test_analysis_is_idempotent(self, rules):
        content = _links("/a", "https://onlineu.com/b", "https://example.org")
        assert analyze_links(content, rules) == analyze_links(content, rules)

    def test_defaults_come_from_settings(self):
        report = analyze_links(_links("https://www.geteducated.com/a"))
        assert report.internal_links == 1


class TestExtractLinks:
    """链接提取测试"""

    def test_nested_tags_are_stripped_from_anchor_text(self):
        links = extract_links('<a class="x" href="/mba"><strong>Online</strong> MBA</a>')
        assert links == [("/mba", "Online MBA")]

    def test_long_anchor_text_is_truncated(self):
        text = "word " * 20
        [(url, anchor)] = extract_links(f'<a href="/x">{text}</a>')
        assert anchor.endswith("...")
        assert len(anchor) == 53

    def test_href_entities_are_decoded(self):
        [(url, _)] = extract_links('<a href="/search?a=1&amp;b=2">s</a>')
        assert url == "/search?a=1&b=2"


class TestPublishHelpers:
    """发布判断与站内页面辅助函数"""

    def test_can_publish_links_blocks_on_blocking_issue(self, rules):
        report = analyze_links(_links("https://bestcolleges.com/x"), rules)

        verdict = can_publish_links(report)

        assert verdict["can_publish"] is False
        assert verdict["reason"] == (
            "Content contains blocked links that must be removed before publishing."
        )
        assert len(verdict["blocking_issues"]) == 1

    def test_can_publish_links_ignores_missing_counts(self, rules):
        verdict = can_publish_links(analyze_links("<p>No links</p>", rules))
        assert verdict["can_publish"] is True
        assert verdict["reason"] is None

    def test_page_type_helpers(self):
        assert is_school_page("https://www.geteducated.com/online-schools/ufl/")
        assert is_degree_page("https://www.geteducated.com/online-degrees/mba/")
        assert is_ranking_report(
            "https://www.geteducated.com/online-college-ratings-and-rankings/best-mba/"
        )
        assert not is_school_page(None)
        assert not is_degree_page("https://example.org/online-degrees/")

    def test_school_page_url(self):
        assert school_page_url("University of Florida!") == (
            "https://www.geteducated.com/online-schools/university-of-florida/"
        )
        assert school_page_url("") == ""
