"""Shared fixtures: a small on-disk site and a loader/job pointed at it."""

from __future__ import annotations

from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from fixtures import ASSET_CSS, BMP, GIF, ICO, JPG, PNG, TIF, CountingLoader
from html_inliner.config import InlineConfig, directory_url
from html_inliner.models import Job


@pytest.fixture
def site(tmp_path: Path) -> Path:
    img = tmp_path / "img"
    img.mkdir()
    (img / "i.png").write_bytes(PNG)
    (img / "i.gif").write_bytes(GIF)
    (img / "i.bmp").write_bytes(BMP)
    (img / "i.tif").write_bytes(TIF)
    (img / "i.jpg").write_bytes(JPG)
    (tmp_path / "favicon.ico").write_bytes(ICO)

    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "001.css").write_text(ASSET_CSS, encoding="utf-8")
    (assets / "002.css").write_text(
        'p { background-image: url("img/i.bmp"); }', encoding="utf-8"
    )
    (tmp_path / "a.css").write_text("p{color:red}", encoding="utf-8")
    (tmp_path / "b.css").write_text('body{background:url("img/i.png")}', encoding="utf-8")
    (tmp_path / "bad.css").write_bytes(b"\xff\xfe\xfa")
    (tmp_path / "a.js").write_text("console.log(1)", encoding="utf-8")
    (tmp_path / "data.json").write_text('{"a": 1}', encoding="utf-8")
    return tmp_path


@pytest.fixture
def config(site: Path) -> InlineConfig:
    return InlineConfig(base_url=directory_url(site), threads=4, retries=0)


@pytest.fixture
def loader(config: InlineConfig) -> CountingLoader:
    return CountingLoader(config.base_url, timeout=config.timeout, retries=config.retries)


@pytest.fixture
def job(config: InlineConfig, loader: CountingLoader) -> Job:
    return Job(1, config, loader, BeautifulSoup("", "html.parser"))
