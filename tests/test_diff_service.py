"""
文本对比服务测试
"""
from editorial_gate.services.diff_service import (
    change_percentage,
    diff_content,
    normalize_html,
    quick_diff,
    render_split,
    render_unified,
)


class TestDiffContent:
    """词级对比测试"""

    def test_added_words(self):
        result = diff_content("The cat sat.", "The big cat sat quietly.")

        assert result.identical is False
        assert result.added_words == ["big", "quietly"]
        assert result.removed_words == []
        assert result.unchanged_words == ["The", "cat", "sat"]
        assert result.stats.change_percentage == 67

    def test_identical_content(self):
        result = diff_content("<p>Same text.</p>", "<p>Same text.</p>")

        assert result.identical is True
        assert result.message == "No differences found"
        assert result.stats.added == 0
        assert result.stats.removed == 0
        assert result.stats.change_percentage == 0
        assert [p.value for p in result.parts] == ["Same text."]

    def test_markup_only_changes_are_identical(self):
        result = diff_content(
            "<p>Hello&nbsp;world</p>",
            "<div class='lead'>Hello   world</div><script>track();</script>",
        )
        assert result.identical is True

    def test_replacement(self):
        result = diff_content("<p>This is very good.</p>", "<p>This is excellent.</p>")

        assert result.removed_words == ["very", "good"]
        assert result.added_words == ["excellent"]
        assert result.unchanged_words == ["This", "is"]
        # (1 + 2) / (2 + 2)
        assert result.stats.change_percentage == 75

    def test_removed_parts_come_before_added(self):
        result = diff_content("one two three four", "one 2 three 4")

        flags = [(p.removed, p.added) for p in result.parts]
        assert flags == [
            (False, False),
            (True, False),
            (False, True),
            (False, False),
            (True, False),
            (False, True),
        ]

    def test_reversed_diff_mirrors(self):
        pairs = [
            ("x y", "y x"),
            ("The cat sat.", "The big cat sat quietly."),
            ("alpha beta gamma delta", "beta alpha delta epsilon gamma"),
        ]
        for old, new in pairs:
            forward = diff_content(old, new)
            backward = diff_content(new, old)

            assert forward.added_words == backward.removed_words
            assert forward.removed_words == backward.added_words
            assert forward.unchanged_words == backward.unchanged_words

    def test_empty_baseline_reports_zero_percent(self):
        result = diff_content("", "<p>Brand new text</p>")

        assert result.added_words == ["Brand", "new", "text"]
        assert result.stats.change_percentage == 0

    def test_everything_removed(self):
        result = diff_content("<p>Old words</p>", "")

        assert result.removed_words == ["Old", "words"]
        assert result.stats.change_percentage == 100

    def test_punctuation_is_not_counted_as_words(self):
        result = diff_content("Costs rose.", "Costs rose!")

        assert result.identical is False
        assert result.added_words == []
        assert result.removed_words == []
        assert result.stats.change_percentage == 0

    def test_apostrophes_stay_in_words(self):
        result = diff_content("It is the student's choice.", "It is the students' choice.")
        assert result.removed_words == ["student's"]


class TestNormalizeHtml:
    def test_strips_tags_and_entities(self):
        content = "<h2>Cost &amp; Aid</h2>\n<p>Tuition &lt;$10k&gt;</p><style>p{}</style>"
        assert normalize_html(content) == "Cost & Aid Tuition <$10k>"

    def test_none_and_empty(self):
        assert normalize_html(None) == ""
        assert normalize_html("") == ""

    def test_ampersand_decoded_last(self):
        assert normalize_html("&amp;lt;") == "&lt;"

    def test_numeric_and_named_entities(self):
        assert normalize_html("<p>It&#39;s &ldquo;free&rdquo;&hellip;</p>") == "It's \u201cfree\u201d\u2026"


class TestRendering:
    """对比视图测试"""

    def test_unified_toggles(self):
        result = diff_content("This is very good.", "This is excellent.")

        full = render_unified(result)
        no_additions = render_unified(result, show_additions=False)
        no_deletions = render_unified(result, show_deletions=False)

        assert any(p.added for p in full) and any(p.removed for p in full)
        assert not any(p.added for p in no_additions)
        assert not any(p.removed for p in no_deletions)

    def test_split_view(self):
        result = diff_content("This is very good.", "This is excellent.")

        old_side, new_side = render_split(result)

        assert "".join(p.value for p in old_side).split() == ["This", "is", "very", "good."]
        assert "".join(p.value for p in new_side).split() == ["This", "is", "excellent."]

    def test_quick_diff_limits_changes(self):
        changes = quick_diff("one two three four", "one 2 three 4", limit=3)

        assert [c.value for c in changes] == ["two", "2", "four"]
        assert [c.removed for c in changes] == [True, False, True]

    def test_quick_diff_truncates_long_changes(self):
        long_text = " ".join(["word"] * 40)
        [change] = quick_diff("", long_text, max_chars=20)

        assert change.added is True
        assert change.value == long_text[:20] + "..."

    def test_change_percentage_rounding(self):
        assert change_percentage(1, 0, 2) == 50
        assert change_percentage(1, 0, 8) == 13
        assert change_percentage(5, 0, 0) == 0
