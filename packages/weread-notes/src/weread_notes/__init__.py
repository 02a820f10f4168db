"""
weread-notes - export WeRead highlights and notes as markdown.

Provides functionality for:
- Listing the books on a user's shelf and in their notebook
- Exporting a user's own highlights per book, grouped by chapter
- Exporting a book's popular highlights
"""

from weread_notes.api import (
    WeReadAPI,
    export_best_bookmarks,
    export_bookmarks,
    get_book_info,
    list_notebooks,
    list_shelf,
)
from weread_notes.errors import (
    ApiError,
    ChapterLookupError,
    DecodeError,
    MissingFieldError,
    RemoteError,
    TransportError,
    WeReadError,
)
from weread_notes.models import Annotation, Book, Chapter

__version__ = "0.1.0"
__all__ = [
    "WeReadAPI",
    "export_bookmarks",
    "export_best_bookmarks",
    "get_book_info",
    "list_shelf",
    "list_notebooks",
    "Book",
    "Chapter",
    "Annotation",
    "WeReadError",
    "TransportError",
    "RemoteError",
    "ApiError",
    "DecodeError",
    "MissingFieldError",
    "ChapterLookupError",
]
