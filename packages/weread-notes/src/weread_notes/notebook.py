"""
Grouping annotations by chapter and rendering them as a markdown notebook.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from weread_notes.models import Annotation, Chapter

HEADING_MARK = "#"
QUOTE_MARK = ">"


@dataclass
class ChapterNotes:
    """One chapter of an exported document and its ordered annotations."""

    chapter: Chapter
    annotations: List[Annotation]


def group_bookmarks(annotations: Iterable[Annotation]) -> Dict[str, List[Annotation]]:
    """
    Group personal bookmarks by chapter uid, in reading order.

    Bookmarks are visited in chapter uid order (string comparison) and each
    chapter's group is then sorted by the bookmark's start offset.
    """
    groups: Dict[str, List[Annotation]] = defaultdict(list)
    for annotation in sorted(annotations, key=lambda a: a.chapter_uid):
        groups[annotation.chapter_uid].append(annotation)
    for uid in groups:
        groups[uid].sort(key=lambda a: a.start if a.start is not None else 0)
    return dict(groups)


def group_best_bookmarks(annotations: Iterable[Annotation]) -> Dict[str, List[Annotation]]:
    """Group popular bookmarks by chapter uid, keeping the API's order."""
    groups: Dict[str, List[Annotation]] = defaultdict(list)
    for annotation in annotations:
        groups[annotation.chapter_uid].append(annotation)
    return dict(groups)


def assemble(
    chapters: Sequence[Chapter],
    groups: Dict[str, List[Annotation]],
    include_empty_chapters: bool = False,
) -> List[ChapterNotes]:
    """
    Pair each chapter with its annotation group.

    Args:
        chapters: Chapters in payload order
        groups: Annotations keyed by chapter uid
        include_empty_chapters: Keep chapters that have no annotations

    Returns:
        Ordered document sections
    """
    sections = []
    for chapter in chapters:
        annotations = groups.get(chapter.chapter_uid, [])
        if not annotations and not include_empty_chapters:
            continue
        sections.append(ChapterNotes(chapter=chapter, annotations=list(annotations)))
    return sections


def render_heading(title: str, level: int) -> str:
    return f"{HEADING_MARK * level} {title}\n"


def render_quote(text: str) -> str:
    return f"{QUOTE_MARK} {text.strip()}\n\n"


def render_document(sections: Iterable[ChapterNotes], level_offset: int = 0) -> str:
    """
    Render document sections as markdown text.

    Each chapter becomes a heading at its outline level, followed by one
    block quote per annotation and a trailing blank line.

    Args:
        sections: Output of assemble()
        level_offset: Added to every heading level (used under a book title)

    Returns:
        The rendered notebook
    """
    parts = []
    for section in sections:
        parts.append(render_heading(section.chapter.title, section.chapter.level + level_offset))
        for annotation in section.annotations:
            parts.append(render_quote(annotation.text))
        parts.append("\n")
    return "".join(parts)
