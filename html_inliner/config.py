"""Configuration objects and constants for the inliner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlparse

DEFAULT_THREADS = 40
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 2
DEFAULT_USER_AGENT = "html-inliner/0.1"

SUPPORTED_SCHEMES = ("file", "http", "https")


@dataclass
class InlineConfig:
    """Settings that control which resources get embedded and how they are fetched."""

    base_url: str
    threads: int = DEFAULT_THREADS
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    embed_js: bool = True
    embed_css: bool = True
    embed_images: bool = True
    user_agent: str = DEFAULT_USER_AGENT


def directory_url(path: Path) -> str:
    """Return a ``file://`` URL for a directory, always with a trailing slash."""
    uri = path.resolve().as_uri()
    return uri if uri.endswith("/") else uri + "/"


def source_url(value: str) -> str:
    """Turn a CLI argument into a URL; anything without a known scheme is a path."""
    if urlparse(value).scheme in SUPPORTED_SCHEMES:
        return value
    return Path(value).expanduser().resolve().as_uri()


def base_url_for(source: Optional[str]) -> str:
    """Directory that relative references are resolved against."""
    if source is None:
        return directory_url(Path.cwd())
    return urljoin(source, "./")
