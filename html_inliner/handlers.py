"""Selector-scoped transforms that embed one kind of reference each.

Every transform runs on a worker thread and only reads the tree. Whatever it
wants to change comes back as a patch that the dispatcher applies on its own
thread once all workers are done.
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlparse

from bs4.element import NavigableString, Script, Stylesheet, Tag

from .config import InlineConfig
from .css import rewrite_css, rewrite_urls
from .datauri import make_data_uri
from .errors import ContractViolation, FetchError
from .models import Handler, Job, Patch
from .utils import format_node


def _require(node: Tag, attr: str) -> str:
    value = node.get(attr)
    if value is None:
        raise ContractViolation(f"cannot find `{attr}` attr in {format_node(node)}")
    if isinstance(value, list):
        value = " ".join(value)
    return value


def _set_attribute(node: Tag, attr: str, value: str) -> Patch:
    def apply() -> None:
        node[attr] = value

    return apply


def _replace_with(node: Tag, replacement: Tag) -> Patch:
    def apply() -> None:
        node.insert_after(replacement)
        node.extract()

    return apply


def _style_tag(job: Job, css: str) -> Tag:
    tag = job.document.new_tag("style", attrs={"type": "text/css"})
    tag.string = Stylesheet(css)
    return tag


def base_href(node: Tag, job: Job) -> Optional[Patch]:
    """Point relative links at the original location when it is a web URL."""
    existing = node.select_one("base[href]")
    if existing is not None:
        job.log.debug("%s found; skipping", format_node(existing))
        return None

    base_url = job.config.base_url
    if urlparse(base_url).scheme not in ("http", "https"):
        return None

    def apply() -> None:
        if node.select_one("base[href]") is not None:
            return
        tag = job.document.new_tag("base", attrs={"href": base_url})
        job.log.debug("appending %s", format_node(tag))
        node.append(tag)

    return apply


# https://en.wikipedia.org/wiki/Favicon
def favicon(node: Tag, job: Job) -> Optional[Patch]:
    href = _require(node, "href")
    encoded = make_data_uri(href, job)
    if encoded == href:
        return None
    return _set_attribute(node, "href", encoded)


def image(node: Tag, job: Job) -> Optional[Patch]:
    src = _require(node, "src")
    encoded = make_data_uri(src, job)
    if encoded == src:
        return None
    return _set_attribute(node, "src", encoded)


def external_stylesheet(node: Tag, job: Job) -> Optional[Patch]:
    href = _require(node, "href")
    try:
        css = job.loader.load_string(href, job.log)
    except FetchError as exc:
        job.log.debug("leaving %s as is: %s", format_node(node), exc)
        return None
    return _replace_with(node, _style_tag(job, rewrite_css(css, job)))


def internal_stylesheet(node: Tag, job: Job) -> Optional[Patch]:
    css = "".join(str(child) for child in node.children if isinstance(child, NavigableString))
    return _replace_with(node, _style_tag(job, rewrite_css(css, job)))


def inline_style(node: Tag, job: Job) -> Optional[Patch]:
    style = _require(node, "style")
    patched = rewrite_urls(style, job)
    if patched == style:
        return None
    return _set_attribute(node, "style", patched)


def external_script(node: Tag, job: Job) -> Optional[Patch]:
    if node.name == "link":
        attr = "href"
    elif node.name == "script":
        attr = "src"
    else:
        return None

    reference = _require(node, attr)
    try:
        script = job.loader.load_string(reference, job.log)
    except FetchError as exc:
        job.log.debug("leaving %s as is: %s", format_node(node), exc)
        return None

    tag = job.document.new_tag("script")
    tag.string = Script(script)
    return _replace_with(node, tag)


BASE = Handler("base", "head", base_href)
FAVICON = Handler(
    "favicon",
    'link[rel="shortcut icon"][href], link[rel="icon"][href], link[rel="apple-touch-icon"][href]',
    favicon,
)
IMAGE = Handler("image", "img[src]", image)
CSS_EXTERN = Handler("css-extern", 'link[rel="stylesheet"][href]', external_stylesheet)
CSS_INTERN = Handler("css-intern", "style", internal_stylesheet)
CSS_INLINE = Handler("css-inline", "[style]", inline_style)
SCRIPT_TAG = Handler("script", "script[src]", external_script)
LINK_TAG = Handler(
    "script-link",
    "link[type='application/x-javascript'][href], "
    "link[type='application/javascript'][href], "
    "link[type='text/javascript'][href]",
    external_script,
)
LINK_JSON_TAG = Handler("json-link", "link[type='application/json'][href]", external_script)


def build_handlers(config: InlineConfig) -> List[Handler]:
    """Handler table for the resource kinds enabled in ``config``."""
    handlers = [BASE, FAVICON]
    if config.embed_js:
        handlers.extend([SCRIPT_TAG, LINK_TAG, LINK_JSON_TAG])
    if config.embed_css:
        handlers.extend([CSS_INTERN, CSS_EXTERN, CSS_INLINE])
    if config.embed_images:
        handlers.append(IMAGE)
    return handlers
