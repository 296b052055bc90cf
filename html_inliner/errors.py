"""Exception types raised by the inlining pipeline."""

from __future__ import annotations


class InlineError(Exception):
    """Base class for every error raised by the inliner."""


class FetchError(InlineError):
    """A resource could not be fetched; callers keep the original reference."""


class UnsupportedSchemeError(FetchError):
    def __init__(self, url: str, scheme: str) -> None:
        super().__init__(f"not supported URL scheme {scheme!r}: {url}")
        self.url = url
        self.scheme = scheme


class InvalidURLError(FetchError):
    """The reference cannot be parsed as a URL (e.g. an unbalanced IPv6 bracket)."""


class ResourceIOError(FetchError):
    """Reading a local file failed."""


class NetworkError(FetchError):
    """The HTTP transport failed before a response was received."""


class HttpStatusError(FetchError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Response status code: {status_code} ({url})")
        self.url = url
        self.status_code = status_code


class ResourceDecodeError(FetchError):
    """Text was required but the payload is not valid UTF-8."""


class ContractViolation(InlineError):
    """A handler ran on a node without the attribute its selector promises."""


class InputError(InlineError):
    """The document to process could not be acquired."""
