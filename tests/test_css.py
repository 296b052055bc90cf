from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from bs4 import BeautifulSoup

from fixtures import BMP, GIF, PNG, TIF, SlowLoader, data_uri
from html_inliner.config import InlineConfig
from html_inliner.css import (
    find_imports,
    find_urls,
    rewrite_css,
    rewrite_imports,
    rewrite_urls,
)
from html_inliner.models import Job

CSS = """
    @import url("fineprint.css") print;
    @import url("bluish.css") projection, tv;
    @import 'custom.css';
    @import url("chrome://communicator/skin/");
    @import "common.css" screen, projection;
    @import url('landscape.css') screen and (orientation:landscape);

    @font-face {
      font-family: header;
      src: url("chava.ttf") format("truetype");
    }

    @font-face {
        font-family: body;
        src: url("poiretone.ttf") format("truetype");
    }

    @media screen {
        .test {
            background:url("test.jpg") repeat-y;
        }
    }

    .grass {
        background-image:url(green.png);
    }

    .logo {
        background: center / contain no-repeat url("../../media/examples/firefox-logo.svg"),
                    #eee 35% url("../../media/examples/lizard.png");
    }
"""


def test_find_imports():
    assert find_imports(CSS) == [
        ("fineprint.css", "print"),
        ("bluish.css", "projection, tv"),
        ("custom.css", ""),
        ("chrome://communicator/skin/", ""),
        ("common.css", "screen, projection"),
        ("landscape.css", "screen and (orientation:landscape)"),
    ]


def test_find_urls():
    assert find_urls(CSS) == [
        "fineprint.css",
        "bluish.css",
        "chrome://communicator/skin/",
        "landscape.css",
        "chava.ttf",
        "poiretone.ttf",
        "test.jpg",
        "green.png",
        "../../media/examples/firefox-logo.svg",
        "../../media/examples/lizard.png",
    ]


def test_import_with_media_is_wrapped(job):
    assert rewrite_css('@import url("a.css") print;', job) == "@media print {\np{color:red}\n}"


def test_import_without_media_is_bare(job):
    assert rewrite_imports('@import "a.css";', job) == "p{color:red}"
    assert rewrite_imports("@import url('a.css');", job) == "p{color:red}"


def test_failed_imports_are_left_alone(job):
    css = '@import "missing.css";\n@import "bad.css" screen;\n@import "a.css";'
    assert rewrite_imports(css, job) == '@import "missing.css";\n@import "bad.css" screen;\np{color:red}'


def test_url_inside_import_is_embedded(job):
    result = rewrite_css('@import "b.css";', job)
    assert result == f"body{{background:url({data_uri('image/png', PNG)})}}"


def test_missing_urls_are_byte_identical(job):
    css = 'p { background: url("missing.png") } q { background: url( nope.gif ) }'
    assert rewrite_urls(css, job) == css
    assert rewrite_css(css, job) == css


def test_each_url_is_fetched_once(job, loader):
    css = (
        'a { background: url("img/i.gif") }\n'
        "b { background: url('img/i.gif') }\n"
        "c { background: url(img/i.gif) }\n"
    )
    expected = f"url({data_uri('image/gif', GIF)})"

    result = rewrite_urls(css, job)

    assert result.count(expected) == 3
    assert loader.calls[loader.resolve("img/i.gif")] == 1


def test_each_import_is_fetched_once(job, loader):
    css = '@import "a.css";\n@import "a.css" print;\n'
    result = rewrite_imports(css, job)
    assert result == "p{color:red}\n@media print {\np{color:red}\n}\n"
    assert loader.calls[loader.resolve("a.css")] == 1


def test_import_and_url_are_fetched_separately(job, loader):
    css = '@import "a.css";\n.x { background: url("a.css") }'
    result = rewrite_css(css, job)
    assert result.startswith("p{color:red}\n")
    assert f"url({data_uri('text/css', b'p{color:red}')})" in result
    assert loader.calls[loader.resolve("a.css")] == 2


def test_mixed_stylesheet(job):
    css = "@import 'assets/002.css';\nbody { background-image: url(\"img/i.tif\"); }"
    result = rewrite_css(css, job)
    assert result == (
        f"p {{ background-image: url({data_uri('image/bmp', BMP)}); }}\n"
        f"body {{ background-image: url({data_uri('image/tiff', TIF)}); }}"
    )


def test_single_thread_matches_pool(config, loader, job):
    css = 'a{background:url(img/i.png)} b{background:url(img/i.gif)} @import "a.css";'
    serial = Job(2, InlineConfig(base_url=config.base_url, threads=1), loader, job.document)
    assert rewrite_css(css, serial) == rewrite_css(css, job)


def test_text_without_references_is_untouched(job, loader):
    css = "p { color: blue; }"
    assert rewrite_css(css, job) == css
    assert not loader.calls


@pytest.mark.parametrize("reference", ["%00.png", "http://[broken/x.png"])
def test_unloadable_references_are_left_alone(job, reference):
    css = f'a {{ background: url({reference}) }}\n@import "{reference}";'
    assert rewrite_css(css, job) == css


def _many_urls(count: int) -> str:
    return "\n".join(f".r{n} {{ background: url(img/i.png?n={n}) }}" for n in range(count))


def test_fetch_concurrency_is_bounded_by_threads(config, site):
    loader = SlowLoader(config.base_url, retries=0)
    job = Job(1, config, loader, BeautifulSoup("", "html.parser"))
    baseline = threading.active_count()

    result = rewrite_urls(_many_urls(16), job)

    assert result.count(data_uri("image/png", PNG)) == 16
    assert 1 < loader.peak_in_flight <= config.threads
    assert loader.peak_threads <= baseline + config.threads - 1


def test_busy_shared_pool_does_not_stall_rewrite(job):
    release = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as pool:
        pool.submit(release.wait)
        job.pool = pool
        result = rewrite_urls(_many_urls(4), job)
        release.set()
    assert result.count(data_uri("image/png", PNG)) == 4
