"""Tests for annotation grouping and markdown rendering."""

import pytest

from weread_notes.models import Annotation, Chapter
from weread_notes.notebook import (
    ChapterNotes,
    assemble,
    group_best_bookmarks,
    group_bookmarks,
    render_document,
    render_quote,
)


def bookmark(chapter_uid, text, start):
    return Annotation(chapter_uid=chapter_uid, text=text, start=start, end=start + 1)


@pytest.fixture
def chapters():
    """Two chapters, listed out of uid order."""
    return [Chapter("2", "Preface", 1), Chapter("10", "Storm", 2)]


class TestGroupBookmarks:
    """Tests for grouping personal bookmarks."""

    def test_sorted_by_start_within_chapter(self):
        """Bookmarks within a chapter are ordered by start offset."""
        groups = group_bookmarks([
            bookmark("c1", "third", 300),
            bookmark("c1", "first", 5),
            bookmark("c1", "second", 42),
        ])

        assert [a.text for a in groups["c1"]] == ["first", "second", "third"]

    def test_grouped_by_chapter(self):
        groups = group_bookmarks([
            bookmark("c2", "b", 1),
            bookmark("c1", "a", 1),
            bookmark("c2", "c", 0),
        ])

        assert set(groups) == {"c1", "c2"}
        assert [a.text for a in groups["c2"]] == ["c", "b"]

    def test_empty_input(self):
        assert group_bookmarks([]) == {}


class TestGroupBestBookmarks:
    """Tests for grouping popular bookmarks."""

    def test_api_order_preserved(self):
        """Popular bookmarks keep the order the API returned them in."""
        groups = group_best_bookmarks([
            Annotation("c1", "most popular"),
            Annotation("c2", "other chapter"),
            Annotation("c1", "second"),
        ])

        assert [a.text for a in groups["c1"]] == ["most popular", "second"]
        assert [a.text for a in groups["c2"]] == ["other chapter"]


class TestAssemble:
    """Tests for pairing chapters with annotation groups."""

    def test_follows_chapter_order(self, chapters):
        groups = {"10": [bookmark("10", "storm", 1)], "2": [bookmark("2", "preface", 1)]}

        sections = assemble(chapters, groups)

        assert [s.chapter.chapter_uid for s in sections] == ["2", "10"]

    def test_empty_chapter_omitted_by_default(self, chapters):
        """A chapter without annotations is left out instead of failing."""
        sections = assemble(chapters, {"10": [bookmark("10", "storm", 1)]})

        assert [s.chapter.title for s in sections] == ["Storm"]
        assert all(s.annotations for s in sections)

    def test_empty_chapter_included_when_requested(self, chapters):
        sections = assemble(chapters, {"10": [bookmark("10", "storm", 1)]},
                            include_empty_chapters=True)

        assert [s.chapter.title for s in sections] == ["Preface", "Storm"]
        assert sections[0].annotations == []


class TestRenderDocument:
    """Tests for markdown rendering."""

    def test_quote_trims_whitespace(self):
        assert render_quote(" Hello ") == "> Hello\n\n"

    def test_single_chapter(self):
        """Heading at the chapter's level, quotes, then a blank line."""
        sections = [ChapterNotes(Chapter("c1", "Intro", 1), [bookmark("c1", " Hello ", 5)])]

        assert render_document(sections) == "# Intro\n> Hello\n\n\n"

    def test_heading_depth_follows_level(self, chapters):
        sections = [
            ChapterNotes(chapters[0], [bookmark("2", "a", 1)]),
            ChapterNotes(chapters[1], [bookmark("10", "b", 1), bookmark("10", "c", 2)]),
        ]

        assert render_document(sections) == (
            "# Preface\n> a\n\n\n"
            "## Storm\n> b\n\n> c\n\n\n"
        )

    def test_empty_chapter_renders_heading_only(self, chapters):
        sections = [ChapterNotes(chapters[0], [])]

        assert render_document(sections) == "# Preface\n\n"

    def test_level_offset(self, chapters):
        sections = [ChapterNotes(chapters[1], [bookmark("10", "b", 1)])]

        assert render_document(sections, level_offset=1).startswith("### Storm\n")

    def test_no_sections(self):
        assert render_document([]) == ""

    def test_rendering_is_idempotent(self, chapters):
        """Rendering the same input twice gives identical text."""
        groups = group_bookmarks([bookmark("10", "b", 9), bookmark("2", "a", 3), bookmark("10", "c", 1)])

        first = render_document(assemble(chapters, groups))
        second = render_document(assemble(chapters, groups))

        assert first == second
