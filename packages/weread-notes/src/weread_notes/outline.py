"""
Chapter outline resolution for WeRead books.

The `/book/chapterInfos` endpoint describes a book's table of contents in
one of three shapes, depending on how the publisher structured it:

  1. entries with an `anchors` array (a chapter plus its sub-sections,
     each sub-section carrying its own level),
  2. flat entries with a `level` field,
  3. flat entries with neither, which are all top level.

Annotation payloads only name chapters by uid and title, so the outline is
what gives each chapter heading its depth in an export.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from weread_notes.errors import ChapterLookupError, DecodeError, MissingFieldError
from weread_notes.models import Chapter, ChapterRef

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 1


@dataclass
class Outline:
    """Heading levels for a book, indexed by title and by chapter uid."""

    by_title: Dict[str, int] = field(default_factory=dict)
    by_uid: Dict[str, int] = field(default_factory=dict)

    def add(self, title: str, level: int, chapter_uid: Any = None) -> None:
        if title in self.by_title and self.by_title[title] != level:
            logger.debug("Outline title %r redefined: level %d -> %d",
                         title, self.by_title[title], level)
        # Later entries win on duplicate titles
        self.by_title[title] = level
        if chapter_uid is not None:
            self.by_uid[str(chapter_uid)] = level

    def level_for(self, chapter: ChapterRef) -> int:
        """
        Look up the heading level for a chapter.

        The chapter uid is preferred, since titles can repeat across a
        book; the title map is the fallback for outlines without uids.

        Raises:
            ChapterLookupError: neither the uid nor the title is known
        """
        if chapter.chapter_uid in self.by_uid:
            return self.by_uid[chapter.chapter_uid]
        try:
            return self.by_title[chapter.title]
        except KeyError:
            raise ChapterLookupError(chapter.chapter_uid, chapter.title) from None


def _level(entry: Dict[str, Any], default: Any = None) -> int:
    value = entry.get("level", default)
    if value is None:
        raise MissingFieldError("level", "outline anchor", entry)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise DecodeError(f"Invalid outline level: {value!r}")
    return value


def _title(entry: Any, context: str) -> str:
    if not isinstance(entry, dict):
        raise DecodeError(f"Expected an object for {context}")
    title = entry.get("title")
    if title is None:
        raise MissingFieldError("title", context, entry)
    if not isinstance(title, str):
        raise DecodeError(f"Title in {context} is not a string: {title!r}")
    return title


def build_outline(entries: Iterable[Any]) -> Outline:
    """
    Build an outline from the `updated` entries of a chapterInfos response.

    Args:
        entries: Outline entries in table-of-contents order

    Returns:
        Outline mapping every chapter and anchor title to its level
    """
    outline = Outline()
    for entry in entries:
        title = _title(entry, "outline entry")
        uid = entry.get("chapterUid")
        if "anchors" in entry:
            outline.add(title, _level(entry, DEFAULT_LEVEL), uid)
            for anchor in entry["anchors"] or []:
                outline.add(_title(anchor, "outline anchor"), _level(anchor))
        elif "level" in entry:
            outline.add(title, _level(entry, DEFAULT_LEVEL), uid)
        else:
            outline.add(title, DEFAULT_LEVEL, uid)
    return outline


def outline_entries(payload: Dict[str, Any]) -> List[Any]:
    """Pull `data[0].updated` out of a chapterInfos response."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data:
        raise MissingFieldError("data", "chapterInfos response", payload)
    first = data[0]
    if not isinstance(first, dict) or "updated" not in first:
        raise MissingFieldError("updated", "chapterInfos response", payload)
    updated = first["updated"]
    if not isinstance(updated, list):
        raise DecodeError("Field 'updated' in chapterInfos response is not an array")
    return updated


def resolve_outline(payload: Dict[str, Any]) -> Dict[str, int]:
    """
    Resolve a chapterInfos response to a title -> level mapping.

    Example:
        >>> resolve_outline({"data": [{"updated": [
        ...     {"title": "Intro", "level": 1},
        ...     {"title": "Body", "anchors": [{"title": "Body.1", "level": 2}]},
        ... ]}]})
        {'Intro': 1, 'Body': 1, 'Body.1': 2}
    """
    return build_outline(outline_entries(payload)).by_title


def reconcile_chapters(chapters: Iterable[ChapterRef], outline: Outline) -> List[Chapter]:
    """
    Attach outline levels to the chapters of an annotation payload.

    Args:
        chapters: Chapters in the order the annotation payload lists them
        outline: Outline of the same book

    Returns:
        Chapters keyed by uid and carrying their level, same order as input

    Raises:
        ChapterLookupError: a chapter has no outline entry
    """
    return [
        Chapter(chapter_uid=c.chapter_uid, title=c.title, level=outline.level_for(c))
        for c in chapters
    ]
