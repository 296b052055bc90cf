"""Resolve references against the base URL and fetch them from disk or HTTP."""

from __future__ import annotations

import logging
import mimetypes
import threading
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urljoin, urlparse
from urllib.request import url2pathname

import requests
from filetype import guess
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_RETRIES, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .errors import (
    HttpStatusError,
    InvalidURLError,
    NetworkError,
    ResourceDecodeError,
    ResourceIOError,
    UnsupportedSchemeError,
)
from .models import Resource
from .utils import Log

logger = logging.getLogger("html_inliner")

OCTET_STREAM = "application/octet-stream"

# Signatures trusted over the file extension.
SNIFFED_MIME_TYPES = {
    "image/gif",
    "image/png",
    "image/x-icon",
    "image/jpeg",
    "image/bmp",
    "image/tiff",
}

# mimetypes databases disagree on fonts, so these are pinned.
FONT_MIME_TYPES = {
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
}

MAX_RETRIES = 19
BACKOFF_FACTOR = 0.005


def build_retry(retries: int) -> Retry:
    """Retry connection and read failures only; HTTP statuses are final."""
    retries = max(0, min(retries, MAX_RETRIES))
    return Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=0,
        backoff_factor=BACKOFF_FACTOR,
        allowed_methods={"GET"},
        raise_on_status=False,
    )


def _parse(url: str):
    try:
        return urlparse(url)
    except ValueError as exc:
        raise InvalidURLError(f"cannot parse {url!r}: {exc}") from exc


def guess_mime(data: bytes, log: Log = logger) -> Optional[str]:
    """Detect a MIME type from magic bytes using filetype."""
    kind = guess(data) if data else None
    if kind is None or kind.mime not in SNIFFED_MIME_TYPES:
        return None
    log.debug(
        "magic guess %s -> %s",
        " ".join(f"{byte:02X}" for byte in data[:7]),
        kind.mime,
    )
    return kind.mime


def guess_mime_by_extension(extension: str, log: Log = logger) -> Optional[str]:
    extension = extension.lower().lstrip(".")
    if not extension:
        return None
    mime = FONT_MIME_TYPES.get(extension)
    if mime is None:
        mime = mimetypes.guess_type(f"resource.{extension}", strict=False)[0] or OCTET_STREAM
    log.debug("extension guess %r -> %s", extension, mime)
    return mime


def normalize_content_type(value: str) -> str:
    """Drop whitespace around parameters so the value embeds cleanly in a data URI."""
    return ";".join(part.strip() for part in value.split(";") if part.strip())


def detect_mime(url: str, data: bytes, content_type: Optional[str] = None, log: Log = logger) -> str:
    """Header first, then magic bytes, then the extension, then octet-stream."""
    if content_type:
        normalized = normalize_content_type(content_type)
        if normalized:
            return normalized
    sniffed = guess_mime(data, log)
    if sniffed:
        return sniffed
    suffix = PurePosixPath(unquote(urlparse(url).path)).suffix
    return guess_mime_by_extension(suffix, log) or OCTET_STREAM


class ResourceLoader:
    """Fetch ``file``, ``http`` and ``https`` resources relative to a base URL.

    The loader is shared by every worker; each thread gets its own
    ``requests.Session``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.retries = retries
        self.user_agent = user_agent
        self._local = threading.local()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=build_retry(self.retries))
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            session.headers.update({"User-Agent": self.user_agent})
            self._local.session = session
        return session

    def resolve(self, reference: str) -> str:
        """Absolute references are kept, relative ones are joined onto the base."""
        if _parse(reference).scheme:
            return reference
        try:
            return urljoin(self.base_url, reference)
        except ValueError as exc:
            raise InvalidURLError(f"cannot resolve {reference!r}: {exc}") from exc

    def load(self, reference: str, log: Log = logger) -> Resource:
        return self.load_url(self.resolve(reference), log)

    def load_url(self, url: str, log: Log = logger) -> Resource:
        scheme = _parse(url).scheme.lower()
        if scheme == "file":
            return self._load_file(url, log)
        if scheme in ("http", "https"):
            return self._load_http(url, log)
        raise UnsupportedSchemeError(url, scheme)

    def load_string(self, reference: str, log: Log = logger) -> str:
        url = self.resolve(reference)
        resource = self.load_url(url, log)
        try:
            return resource.data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ResourceDecodeError(f"{url} is not valid UTF-8: {exc}") from exc

    def _load_file(self, url: str, log: Log) -> Resource:
        path = url2pathname(_parse(url).path)
        log.info("reading file://%s", path)
        try:
            with open(path, "rb") as handle:
                data = handle.read()
        except (OSError, ValueError) as exc:
            # ValueError: the decoded path holds a NUL byte.
            raise ResourceIOError(f"cannot read {path!r}: {exc}") from exc
        return Resource(detect_mime(url, data, log=log), data)

    def _load_http(self, url: str, log: Log) -> Resource:
        log.info("requesting %s", url)
        try:
            response = self._session().get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NetworkError(f"request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise HttpStatusError(url, response.status_code)

        data = response.content
        content_type = response.headers.get("Content-Type")
        return Resource(detect_mime(url, data, content_type, log), data)
