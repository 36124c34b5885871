# tests/unit/core/test_unit_text.py - v1
"""Tests for core/text.py."""

from __future__ import annotations

from contentflow.core.text import (
    count_words,
    first_paragraph_text,
    fix_year,
    slugify,
    strip_tags,
)


class TestStripTags:
    def test_tags_become_spaces(self):
        assert strip_tags("<p>Hello<br/>world</p>") == "Hello world"

    def test_plain_text_unchanged(self):
        assert strip_tags("no markup") == "no markup"


class TestCountWords:
    def test_nested_markup(self):
        assert count_words("<p>Hello <b>world</b></p>") == 2

    def test_empty(self):
        assert count_words("") == 0
        assert count_words("<p></p>") == 0


class TestFixYear:
    def test_replaces_stale_year(self):
        assert fix_year("Guide 2023 du potager", year=2026) == "Guide 2026 du potager"

    def test_ignores_other_numbers(self):
        assert fix_year("Top 2019 et 20245", year=2026) == "Top 2019 et 20245"


class TestSlugify:
    def test_accents_and_punctuation(self):
        assert slugify("Café à Paris !") == "cafe-a-paris"

    def test_year_removed(self):
        assert slugify("Jardin potager : guide 2024") == "jardin-potager-guide"

    def test_year_in_middle(self):
        assert slugify("Les 10 outils 2025 indispensables") == "les-10-outils-indispensables"


class TestFirstParagraph:
    def test_first_p_only(self):
        assert first_paragraph_text("<p>Intro <em>text</em></p><p>second</p>") == "Intro text"

    def test_without_p_uses_whole_html(self):
        assert first_paragraph_text("<div>Bare</div>") == "Bare"

    def test_truncated(self):
        assert len(first_paragraph_text("<p>" + "a" * 500 + "</p>", limit=50)) == 50
