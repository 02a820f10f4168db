"""Tests for chapter outline resolution."""

import pytest

from weread_notes.errors import ChapterLookupError, DecodeError, MissingFieldError
from weread_notes.models import Chapter, ChapterRef
from weread_notes.outline import (
    Outline,
    build_outline,
    outline_entries,
    reconcile_chapters,
    resolve_outline,
)


def wrap(updated):
    """Wrap outline entries the way chapterInfos returns them."""
    return {"data": [{"bookId": "1", "updated": updated}]}


class TestResolveOutline:
    """Tests for resolve_outline across the three response shapes."""

    def test_mixed_level_and_anchor_entries(self):
        """Level entries and anchor entries resolve together."""
        payload = wrap([
            {"title": "Intro", "level": 1},
            {"title": "Body", "anchors": [{"title": "Body.1", "level": 2}]},
        ])

        assert resolve_outline(payload) == {"Intro": 1, "Body": 1, "Body.1": 2}

    def test_anchor_parent_keeps_declared_level(self):
        """An anchored entry with its own level uses it."""
        payload = wrap([
            {"title": "Part II", "level": 2, "anchors": [{"title": "Section", "level": 3}]},
        ])

        assert resolve_outline(payload) == {"Part II": 2, "Section": 3}

    def test_only_anchor_entries_contain_every_title(self):
        """Every parent and anchor title appears exactly once."""
        payload = wrap([
            {"title": "A", "anchors": [{"title": "A.1", "level": 2}, {"title": "A.2", "level": 2}]},
            {"title": "B", "anchors": [{"title": "B.1", "level": 2}]},
        ])

        result = resolve_outline(payload)

        assert sorted(result) == ["A", "A.1", "A.2", "B", "B.1"]

    def test_flat_entries_default_to_level_one(self):
        """Entries without level or anchors are top level."""
        payload = wrap([{"title": "One"}, {"title": "Two"}])

        assert resolve_outline(payload) == {"One": 1, "Two": 1}

    def test_duplicate_title_last_write_wins(self):
        """A later entry with the same title overwrites the earlier level."""
        payload = wrap([
            {"title": "Notes", "level": 1},
            {"title": "Part", "anchors": [{"title": "Notes", "level": 3}]},
        ])

        assert resolve_outline(payload)["Notes"] == 3

    def test_fixture_response(self, chapter_infos):
        """The recorded response resolves all entries and anchors."""
        result = resolve_outline(chapter_infos)

        assert result == {
            "封面": 1,
            "序言": 1,
            "第一部 起源": 1,
            "第一节 火种": 2,
            "第二节 远航": 2,
            "第一章 风暴": 2,
        }

    def test_empty_outline(self):
        """A book without chapters yields an empty map."""
        assert resolve_outline(wrap([])) == {}


class TestOutlineErrors:
    """Tests for malformed chapterInfos responses."""

    def test_missing_data(self):
        """A response without data raises MissingFieldError."""
        with pytest.raises(MissingFieldError) as exc_info:
            outline_entries({"errmsg": "ok"})
        assert exc_info.value.field == "data"

    def test_empty_data(self):
        """An empty data array raises MissingFieldError."""
        with pytest.raises(MissingFieldError):
            outline_entries({"data": []})

    def test_missing_updated(self):
        """data[0] without updated raises MissingFieldError."""
        with pytest.raises(MissingFieldError) as exc_info:
            outline_entries({"data": [{"bookId": "1"}]})
        assert exc_info.value.field == "updated"

    def test_entry_without_title(self):
        """An outline entry without a title raises MissingFieldError."""
        with pytest.raises(MissingFieldError):
            build_outline([{"level": 1}])

    def test_anchor_without_level(self):
        """Anchors have no default level."""
        with pytest.raises(MissingFieldError) as exc_info:
            build_outline([{"title": "A", "anchors": [{"title": "A.1"}]}])
        assert exc_info.value.field == "level"

    def test_invalid_level(self):
        """A non-positive level is rejected."""
        with pytest.raises(DecodeError):
            build_outline([{"title": "A", "level": 0}])


class TestOutlineLookup:
    """Tests for Outline.level_for and reconcile_chapters."""

    def test_uid_preferred_over_title(self):
        """A chapter uid in the outline beats a duplicate title."""
        outline = build_outline([
            {"chapterUid": 5, "title": "Notes", "level": 1},
            {"chapterUid": 9, "title": "Notes", "level": 2},
        ])

        assert outline.level_for(ChapterRef("5", "Notes")) == 1
        assert outline.level_for(ChapterRef("9", "Notes")) == 2

    def test_title_fallback(self):
        """Without a known uid the title map is used."""
        outline = build_outline([{"title": "Intro", "level": 2}])

        assert outline.level_for(ChapterRef("77", "Intro")) == 2

    def test_unknown_chapter_raises_key_error(self):
        """An unmatched chapter raises ChapterLookupError, a KeyError."""
        outline = Outline()

        with pytest.raises(KeyError):
            outline.level_for(ChapterRef("1", "Missing"))
        with pytest.raises(ChapterLookupError) as exc_info:
            outline.level_for(ChapterRef("1", "Missing"))
        assert exc_info.value.chapter_uid == "1"
        assert "Missing" in str(exc_info.value)

    def test_reconcile_keeps_payload_order(self, chapter_infos):
        """Reconciled chapters follow the annotation payload's order."""
        outline = build_outline(outline_entries(chapter_infos))
        refs = [ChapterRef("10", "第一章 风暴"), ChapterRef("2", "序言")]

        chapters = reconcile_chapters(refs, outline)

        assert chapters == [
            Chapter("10", "第一章 风暴", 2),
            Chapter("2", "序言", 1),
        ]
