"""
WeRead private API client

Fetches a user's shelf, notebooks and highlights from the WeRead web API
using the session cookies of a logged-in browser, and exports highlights
as a markdown notebook with one heading per chapter.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urljoin

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from weread_notes.config import DEFAULT_BASE_URL, RetryConfig, WeReadConfig
from weread_notes.errors import (
    ApiError,
    DecodeError,
    MissingFieldError,
    RemoteError,
    TransportError,
)
from weread_notes.models import (
    Book,
    decode_best_bookmark_list,
    decode_bookmark_list,
    decode_notebooks,
    decode_shelf,
)
from weread_notes.notebook import (
    ChapterNotes,
    assemble,
    group_best_bookmarks,
    group_bookmarks,
    render_document,
    render_heading,
)
from weread_notes.outline import Outline, build_outline, outline_entries, reconcile_chapters

logger = logging.getLogger(__name__)

# Header profile of a desktop browser; the service rejects bare clients
DEFAULT_HEADERS = {
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Encoding": "gzip, deflate, br",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
}

USER_VID_COOKIE = "wr_vid"

BOOKMARKS_SECTION = "My Notes"
BEST_BOOKMARKS_SECTION = "Popular Highlights"


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, RemoteError) and not isinstance(exc, ApiError):
        return exc.status >= 500 or exc.status == 429
    return False


class WeReadAPI:
    """Client for WeRead's private HTTP API.

    One instance is one export session: the cookie set is fixed at
    construction and book outlines are cached per book id for the lifetime
    of the instance. Create a new instance to see upstream changes.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        base_url: str = DEFAULT_BASE_URL,
        timeout: Tuple[float, float] = (5.0, 30.0),
        retry: Optional[RetryConfig] = None,
        include_empty_chapters: bool = False,
        skip_malformed: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the WeRead API client

        Args:
            cookies: Session cookies of a logged-in user (name -> value)
            base_url: API host (default: https://i.weread.qq.com)
            timeout: (connect, read) timeouts in seconds
            retry: Retry policy for GET requests; POST is never retried
            include_empty_chapters: Render chapters that have no highlights
            skip_malformed: Drop malformed records instead of failing the export
            session: Pre-built requests session, mostly for tests
        """
        self.base_url = base_url.rstrip('/')
        self.cookies = dict(cookies)
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.include_empty_chapters = include_empty_chapters
        self.skip_malformed = skip_malformed
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        requests.utils.add_dict_to_cookiejar(self.session.cookies, self.cookies)
        self._outlines: Dict[str, Outline] = {}

    @classmethod
    def from_config(cls, config: WeReadConfig, cookies: Optional[Mapping[str, str]] = None) -> "WeReadAPI":
        """Build a client from a loaded WeReadConfig; explicit cookies win."""
        return cls(
            cookies=cookies if cookies is not None else config.cookies,
            base_url=config.http.base_url,
            timeout=config.http.timeout,
            retry=config.retry,
            include_empty_chapters=config.export.include_empty_chapters,
            skip_malformed=config.export.skip_malformed,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "WeReadAPI":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- transport -----------------------------------------------------------

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]],
              payload: Optional[Dict[str, Any]]) -> Any:
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(url, str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("errcode"):
            raise ApiError(url, response.status_code, data["errcode"], data.get("errmsg", ""))
        if not response.ok:
            raise RemoteError(url, response.status_code)
        if data is None and response.content.strip() != b"null":
            raise DecodeError(f"Response from {url} is not valid JSON")
        return data

    def _make_request(self, endpoint: str, method: str = "GET",
                      params: Optional[Dict[str, Any]] = None,
                      payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a request to the WeRead API and decode the JSON body

        Args:
            endpoint: API endpoint (will be joined with base_url)
            method: HTTP method; only GET is retried
            params: Query string parameters
            payload: JSON request body

        Returns:
            Decoded JSON body

        Raises:
            TransportError: the request could not be completed
            RemoteError: non-success status or WeRead error envelope
            DecodeError: the body is not JSON
        """
        url = urljoin(self.base_url + '/', endpoint.lstrip('/'))

        if method != "GET" or self.retry.max_attempts <= 1:
            return self._send(method, url, params, payload)

        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry.initial_delay,
                exp_base=self.retry.backoff_factor,
                max=self.retry.max_delay,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self._send, method, url, params, payload)

    # -- raw endpoints -------------------------------------------------------

    def get_bookmark_list(self, book_id: str) -> Dict[str, Any]:
        """Raw `/book/bookmarklist` payload: chapters[] and updated[]."""
        return self._make_request("/book/bookmarklist", params={"bookId": book_id})

    def get_best_bookmark_list(self, book_id: str) -> Dict[str, Any]:
        """Raw `/book/bestbookmarks` payload: chapters[] and items[]."""
        return self._make_request("/book/bestbookmarks", params={"bookId": book_id})

    def get_chapter_infos(self, book_id: str) -> Dict[str, Any]:
        """Raw `/book/chapterInfos` payload for a single book."""
        return self._make_request(
            "/book/chapterInfos",
            method="POST",
            payload={"bookIds": [book_id], "synckeys": [0]},
        )

    def get_book_info(self, book_id: str) -> Dict[str, Any]:
        """
        Get the book detail object

        Args:
            book_id: WeRead book id

        Returns:
            The `/book/info` response, unmodified
        """
        return self._make_request("/book/info", params={"bookId": book_id})

    def get_shelf(self) -> Dict[str, Any]:
        """Raw `/shelf/friendCommon` payload for the logged-in user."""
        user_vid = self.cookies.get(USER_VID_COOKIE)
        if not user_vid:
            raise MissingFieldError(USER_VID_COOKIE, "cookies")
        return self._make_request("/shelf/friendCommon", params={"userVid": user_vid})

    def get_notebooks(self) -> Dict[str, Any]:
        """Raw `/user/notebooks` payload."""
        return self._make_request("/user/notebooks")

    # -- outline -------------------------------------------------------------

    def get_outline(self, book_id: str) -> Outline:
        """Fetch and cache the chapter outline of a book for this session."""
        if book_id not in self._outlines:
            payload = self.get_chapter_infos(book_id)
            self._outlines[book_id] = build_outline(outline_entries(payload))
            logger.debug("Outline for book %s: %d titles",
                         book_id, len(self._outlines[book_id].by_title))
        return self._outlines[book_id]

    def clear_cache(self) -> None:
        self._outlines.clear()

    # -- annotations ---------------------------------------------------------

    def get_bookmarks(self, book_id: str) -> List[ChapterNotes]:
        """
        Get the user's own highlights for a book, grouped by chapter

        Chapters follow the order of the bookmark payload; highlights within
        a chapter are in reading order.
        """
        bookmarks = decode_bookmark_list(self.get_bookmark_list(book_id), self.skip_malformed)
        chapters = reconcile_chapters(bookmarks.chapters, self.get_outline(book_id))
        logger.info("Book %s: %d bookmarks in %d chapters",
                    book_id, len(bookmarks.annotations), len(chapters))
        return assemble(chapters, group_bookmarks(bookmarks.annotations), self.include_empty_chapters)

    def get_best_bookmarks(self, book_id: str) -> List[ChapterNotes]:
        """Get a book's popular highlights grouped by chapter, in API order."""
        best = decode_best_bookmark_list(self.get_best_bookmark_list(book_id), self.skip_malformed)
        chapters = reconcile_chapters(best.chapters, self.get_outline(book_id))
        logger.info("Book %s: %d popular highlights in %d chapters",
                    book_id, len(best.annotations), len(chapters))
        return assemble(chapters, group_best_bookmarks(best.annotations), self.include_empty_chapters)

    def export_bookmarks(self, book_id: str) -> str:
        """Export the user's highlights for a book as markdown."""
        return render_document(self.get_bookmarks(book_id))

    def export_best_bookmarks(self, book_id: str) -> str:
        """Export a book's popular highlights as markdown."""
        return render_document(self.get_best_bookmarks(book_id))

    def export_notebook(self, book_id: str, with_title: bool = False) -> str:
        """
        Export both the user's and the popular highlights of a book

        The outline is fetched once and shared by both sections.

        Args:
            book_id: WeRead book id
            with_title: Start with the book title as a level-1 heading

        Returns:
            Markdown with one section per highlight source
        """
        parts = []
        section_level = 1
        if with_title:
            info = self.get_book_info(book_id)
            title = info.get("title") if isinstance(info, dict) else None
            if not title:
                raise MissingFieldError("title", "book info", info)
            parts.append(render_heading(title, 1) + "\n")
            section_level = 2

        for section, sections in (
            (BOOKMARKS_SECTION, self.get_bookmarks(book_id)),
            (BEST_BOOKMARKS_SECTION, self.get_best_bookmarks(book_id)),
        ):
            parts.append(render_heading(section, section_level) + "\n")
            parts.append(render_document(sections, level_offset=section_level))
        return "".join(parts)

    # -- listings ------------------------------------------------------------

    def list_shelf(self) -> List[Book]:
        """Books on the user's shelf (finished, then recent), sorted by title."""
        return decode_shelf(self.get_shelf(), self.skip_malformed)

    def list_notebooks(self) -> List[Book]:
        """Books that have the user's notes, sorted by title."""
        return decode_notebooks(self.get_notebooks(), self.skip_malformed)


# -- one-shot helpers ----------------------------------------------------------
# Each call uses a fresh client, so nothing is cached between calls.

def export_bookmarks(book_id: str, cookies: Mapping[str, str], **kwargs) -> str:
    with WeReadAPI(cookies, **kwargs) as api:
        return api.export_bookmarks(book_id)


def export_best_bookmarks(book_id: str, cookies: Mapping[str, str], **kwargs) -> str:
    with WeReadAPI(cookies, **kwargs) as api:
        return api.export_best_bookmarks(book_id)


def get_book_info(book_id: str, cookies: Mapping[str, str], **kwargs) -> Dict[str, Any]:
    with WeReadAPI(cookies, **kwargs) as api:
        return api.get_book_info(book_id)


def list_shelf(cookies: Mapping[str, str], **kwargs) -> List[Book]:
    with WeReadAPI(cookies, **kwargs) as api:
        return api.list_shelf()


def list_notebooks(cookies: Mapping[str, str], **kwargs) -> List[Book]:
    with WeReadAPI(cookies, **kwargs) as api:
        return api.list_notebooks()
