"""
Exception hierarchy for the WeRead notebook client.

Every failure raised by this package derives from WeReadError, so a caller
that only wants "did the export work" can catch that single type.
"""

from typing import Any, Optional


class WeReadError(Exception):
    """Base class for all errors raised by weread_notes."""


class TransportError(WeReadError):
    """The HTTP request could not be completed (DNS, connection, TLS, timeout)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class RemoteError(WeReadError):
    """The server answered with a non-success HTTP status."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"Request to {url} failed with status {status}")


class ApiError(RemoteError):
    """The server answered with a WeRead error envelope (errcode/errmsg).

    The envelope takes precedence over the HTTP status, so `status` is
    whatever came with it and may be a 2xx code.
    """

    def __init__(self, url: str, status: int, errcode: int, errmsg: str = ""):
        self.errcode = errcode
        self.errmsg = errmsg
        super().__init__(url, status)
        self.args = (f"WeRead API error {errcode} from {url}: {errmsg or 'no message'}",)


class DecodeError(WeReadError):
    """A response body or one of its fields could not be decoded."""


class MissingFieldError(DecodeError):
    """A field required to build a record is absent."""

    def __init__(self, field: str, context: str = "record", record: Optional[Any] = None):
        self.field = field
        self.context = context
        self.record = record
        super().__init__(f"Missing field '{field}' in {context}")


class ChapterLookupError(WeReadError, KeyError):
    """A chapter could not be matched to an outline level."""

    def __init__(self, chapter_uid: str, title: str):
        self.chapter_uid = chapter_uid
        self.title = title
        super().__init__(f"No outline level for chapter {chapter_uid} ({title!r})")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])
