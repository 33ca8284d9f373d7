"""
Unit tests for on-page SEO scoring.
"""

from draftsmith.models import SeoScore
from draftsmith.seo.scoring import markdown_to_html, score_content


class TestMarkdownToHtml:
    """Test the markdown conversion used for scoring."""

    def test_headings_paragraphs_and_lists(self):
        html = markdown_to_html("# Title\n\nFirst line\nsame paragraph\n\n## Sub\n\n- one\n- **two**")

        assert "<h1>Title</h1>" in html
        assert "<p>First line\nsame paragraph</p>" in html
        assert "<h2>Sub</h2>" in html
        assert "<li><strong>two</strong></li>" in html

    def test_text_is_escaped(self):
        html = markdown_to_html("a < b & *c*")

        assert "&lt;" in html
        assert "<em>c</em>" in html

    def test_fenced_code_is_not_a_heading(self):
        html = markdown_to_html("```\n# not a title\n```")

        assert "<h1>" not in html
        assert "<code>" in html


class TestScoreContent:
    """Test score_content."""

    def test_all_checks_pass(self):
        document = (
            "# Best Hiking Boots for 2025\n\n"
            "Choosing the best hiking boots starts with fit.\n\n"
            "## Why best hiking boots matter\n\n"
            "Support and grip."
        )

        score = score_content(document, "Best Hiking Boots")

        assert score.keyword_in_h1
        assert score.keyword_in_first_paragraph
        assert score.keyword_in_h2
        assert score.word_count == 21
        assert score.entity_density == round(3 / 21 * 100, 2)

    def test_keyword_absent(self):
        score = score_content("# Trail Shoes\n\nLight and fast.\n\n## Grip\n\nSticky rubber.", "hiking boots")

        assert not score.keyword_in_h1
        assert not score.keyword_in_first_paragraph
        assert not score.keyword_in_h2
        assert score.entity_density == 0.0
        assert score.word_count == 8

    def test_first_paragraph_only(self):
        score = score_content("# Title\n\nIntro.\n\nLater mention of boots.", "boots")

        assert not score.keyword_in_first_paragraph
        assert score.entity_density > 0

    def test_empty_document(self):
        assert score_content("", "boots") == SeoScore()
        assert score_content("   \n", "boots") == SeoScore()
