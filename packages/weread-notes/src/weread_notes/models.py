"""
Typed records decoded from WeRead API payloads.

The API is private and unversioned, so decoders only insist on the fields
an export actually needs. Anything else is optional and may be None.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from weread_notes.errors import DecodeError, MissingFieldError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Book:
    """A book on the shelf or in the notebook list."""

    book_id: str
    title: str
    author: str
    cover: str

    @staticmethod
    def is_valid_id(book_id: Any) -> bool:
        """Return True for ids made of digits with a positive value.

        Shelf payloads mix in non-book entries (public lists, articles)
        whose ids are not numeric; those are not exportable. JSON numbers
        are accepted the same way `from_api` accepts them.
        """
        if isinstance(book_id, int) and not isinstance(book_id, bool):
            book_id = str(book_id)
        if not isinstance(book_id, str):
            return False
        # isdigit() alone lets through non-ASCII digits such as "²"
        return book_id.isascii() and book_id.isdigit() and int(book_id) > 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Book":
        context = "book"
        return cls(
            book_id=_require_str(data, "bookId", context),
            title=_require_str(data, "title", context),
            author=_require_str(data, "author", context),
            cover=_require_str(data, "cover", context),
        )


@dataclass(frozen=True)
class Chapter:
    """A chapter with its resolved heading depth (1 = top level)."""

    chapter_uid: str
    title: str
    level: int = 1


@dataclass(frozen=True)
class ChapterRef:
    """A chapter entry from the `chapters` array of an annotation payload."""

    chapter_uid: str
    title: str
    chapter_idx: Optional[int] = None


@dataclass(frozen=True)
class Annotation:
    """A highlight, either the user's own bookmark or a popular one."""

    chapter_uid: str
    text: str
    bookmark_id: Optional[str] = None
    create_time: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None
    total_count: Optional[int] = None


@dataclass
class BookmarkList:
    """Decoded `/book/bookmarklist` or `/book/bestbookmarks` response."""

    chapters: List[ChapterRef]
    annotations: List[Annotation]


# -- field helpers ----------------------------------------------------------

def _require(data: Dict[str, Any], field: str, context: str) -> Any:
    if not isinstance(data, dict):
        raise DecodeError(f"Expected an object for {context}, got {type(data).__name__}")
    if field not in data or data[field] is None:
        raise MissingFieldError(field, context, data)
    return data[field]


def _require_str(data: Dict[str, Any], field: str, context: str) -> str:
    value = _require(data, field, context)
    # chapterUid and bookId come back as numbers for some books
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise DecodeError(f"Field '{field}' in {context} is not a string: {value!r}")
    return value


def _require_list(data: Dict[str, Any], field: str, context: str) -> List[Any]:
    value = _require(data, field, context)
    if not isinstance(value, list):
        raise DecodeError(f"Field '{field}' in {context} is not an array")
    return value


def _optional_int(data: Dict[str, Any], field: str) -> Optional[int]:
    value = data.get(field)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(data: Dict[str, Any], field: str) -> Optional[str]:
    value = data.get(field)
    if value is None:
        return None
    return str(value)


def parse_range(value: Any) -> tuple:
    """
    Parse a WeRead `"start-end"` range string.

    Args:
        value: Range string such as "120-154"

    Returns:
        (start, end) tuple; end is None when the string carries no end part
    """
    if not isinstance(value, str):
        raise DecodeError(f"Range is not a string: {value!r}")
    start_text, _, end_text = value.partition("-")
    try:
        start = int(start_text)
    except ValueError:
        raise DecodeError(f"Range does not start with an integer: {value!r}") from None
    try:
        end = int(end_text) if end_text else None
    except ValueError:
        end = None
    return start, end


def decode_records(
    records: Iterable[Any],
    decoder: Callable[[Any], T],
    skip_malformed: bool = False,
    context: str = "record",
) -> List[T]:
    """
    Decode each record, either aborting or skipping on the first bad one.

    Args:
        records: Raw JSON objects
        decoder: Callable turning one raw object into a typed record
        skip_malformed: Log and drop records that fail to decode instead of raising
        context: Name used in log messages

    Returns:
        List of decoded records, in input order
    """
    decoded = []
    for index, record in enumerate(records):
        try:
            decoded.append(decoder(record))
        except DecodeError as e:
            if not skip_malformed:
                raise
            logger.warning("Skipping malformed %s #%d: %s", context, index, e)
    return decoded


# -- payload decoders -------------------------------------------------------

def decode_chapter_ref(data: Dict[str, Any]) -> ChapterRef:
    return ChapterRef(
        chapter_uid=_require_str(data, "chapterUid", "chapter"),
        title=_require_str(data, "title", "chapter"),
        chapter_idx=_optional_int(data, "chapterIdx"),
    )


def decode_bookmark(data: Dict[str, Any]) -> Annotation:
    """Decode one personal bookmark; `range` is required for ordering."""
    context = "bookmark"
    chapter_uid = _require_str(data, "chapterUid", context)
    text = _require_str(data, "markText", context)
    start, end = parse_range(_require(data, "range", context))
    return Annotation(
        chapter_uid=chapter_uid,
        text=text,
        bookmark_id=_optional_str(data, "bookmarkId"),
        create_time=_optional_int(data, "createTime"),
        start=start,
        end=end,
    )


def decode_best_bookmark(data: Dict[str, Any]) -> Annotation:
    """Decode one popular bookmark; these carry no usable position."""
    context = "best bookmark"
    return Annotation(
        chapter_uid=_require_str(data, "chapterUid", context),
        text=_require_str(data, "markText", context),
        bookmark_id=_optional_str(data, "bookmarkId"),
        total_count=_optional_int(data, "totalCount"),
    )


def decode_chapter_refs(payload: Dict[str, Any], skip_malformed: bool = False) -> List[ChapterRef]:
    raw = _require_list(payload, "chapters", "response")
    return decode_records(raw, decode_chapter_ref, skip_malformed, "chapter")


def decode_bookmark_list(payload: Dict[str, Any], skip_malformed: bool = False) -> BookmarkList:
    """Decode a `/book/bookmarklist` response (chapters + updated)."""
    chapters = decode_chapter_refs(payload, skip_malformed)
    raw = _require_list(payload, "updated", "response")
    annotations = decode_records(raw, decode_bookmark, skip_malformed, "bookmark")
    return BookmarkList(chapters=chapters, annotations=annotations)


def decode_best_bookmark_list(payload: Dict[str, Any], skip_malformed: bool = False) -> BookmarkList:
    """Decode a `/book/bestbookmarks` response (chapters + items)."""
    chapters = decode_chapter_refs(payload, skip_malformed)
    raw = _require_list(payload, "items", "response")
    annotations = decode_records(raw, decode_best_bookmark, skip_malformed, "best bookmark")
    return BookmarkList(chapters=chapters, annotations=annotations)


def decode_shelf(payload: Dict[str, Any], skip_malformed: bool = False) -> List[Book]:
    """
    Decode a `/shelf/friendCommon` response into books sorted by title.

    Finished and recent books are chained without deduplication; entries
    without a numeric bookId are dropped.
    """
    finished = _require_list(payload, "finishReadBooks", "shelf")
    recent = _require_list(payload, "recentBooks", "shelf")
    candidates = [
        b for b in finished + recent
        if isinstance(b, dict) and Book.is_valid_id(b.get("bookId"))
    ]
    books = decode_records(candidates, Book.from_api, skip_malformed, "shelf book")
    return sorted(books, key=lambda b: b.title)


def decode_notebooks(payload: Dict[str, Any], skip_malformed: bool = False) -> List[Book]:
    """
    Decode a `/user/notebooks` response into books sorted by title.

    Entries whose nested book has a non-numeric bookId are dropped before
    decoding, as on the shelf.
    """
    entries = _require_list(payload, "books", "notebooks")

    def is_book(entry: Any) -> bool:
        book = entry.get("book") if isinstance(entry, dict) else None
        # Entries without a book object go on to fail in decode_entry
        return not isinstance(book, dict) or Book.is_valid_id(book.get("bookId"))

    def decode_entry(entry: Any) -> Book:
        return Book.from_api(_require(entry, "book", "notebook entry"))

    candidates = [e for e in entries if is_book(e)]
    books = decode_records(candidates, decode_entry, skip_malformed, "notebook")
    return sorted(books, key=lambda b: b.title)
