"""Shared fixtures: an in-memory picture site served through httpx.MockTransport."""

from __future__ import annotations

import threading
from collections import Counter
from pathlib import Path

import httpx
import pytest

from fotomirror.config import MirrorConfig
from fotomirror.fetcher import Fetcher
from fotomirror.pipeline import MirrorSession

BASE = "http://picpix.test/kelly"


def listing_html(*keys: str) -> str:
    links = "".join(f'<li><a href="{BASE}/gallery/{k}">Gallery {k}</a></li>' for k in keys)
    return f"<html><body><ul>{links}</ul></body></html>"


def gallery_xml(linked_from=(), linked_to=(), items=()) -> bytes:
    """items: iterable of (pic_key, size, mime)."""
    parts = ["<?xml version='1.0' encoding='utf-8'?>", "<mediaSet>", "<mediaSetItems>"]
    for key, size, mime in items:
        parts.append(
            "<mediaSetItem>"
            f"<title>Picture {key}</title>"
            "<description>taken on holiday</description>"
            f"<infoURL>{BASE}/pic/{key}.xml</infoURL>"
            "<file>"
            '<digest type="md5">d41d8cd98f00b204e9800998ecf8427e</digest>'
            f"<mime>{mime}</mime><width>640</width><height>480</height>"
            f"<bytes>{size}</bytes><url>{BASE}/pic/{key}</url>"
            "</file>"
            "</mediaSetItem>"
        )
    parts.append("</mediaSetItems>")
    parts.append("<linkedFrom>" + "".join(f"<infoURL>{u}</infoURL>" for u in linked_from) + "</linkedFrom>")
    parts.append("<linkedTo>" + "".join(f"<infoURL>{u}</infoURL>" for u in linked_to) + "</linkedTo>")
    parts.append("</mediaSet>")
    return "".join(parts).encode("utf-8")


class FakeSite:
    """
    Routes full URLs to canned bodies. Listing pages beyond those configured
    return an empty page; any other unknown URL is a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.pages: list[str] = []
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def add(self, path: str, body: bytes | str, status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[f"{BASE}{path}"] = (status, body)

    def add_gallery(self, key: str, **kwargs) -> None:
        self.add(f"/gallery/{key}.xml", gallery_xml(**kwargs))

    def add_picture(self, key: str, size: int) -> None:
        self.add(f"/pic/{key}.xml", f"<mediaSetItem><title>{key}</title></mediaSetItem>")
        self.add(f"/pic/{key}", b"\xff" * size)

    def count(self, path: str) -> int:
        with self._lock:
            return Counter(self.requests)[f"{BASE}{path}"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.requests.append(url)
        if request.url.params.get("sort") == "alpha":
            page = int(request.url.params["page"])
            html = self.pages[page - 1] if page <= len(self.pages) else "<html></html>"
            return httpx.Response(200, text=html, headers={"Content-Type": "text/html"})
        status, body = self.routes.get(url, (404, b"not found"))
        return httpx.Response(status, content=body)

    def fetcher(self) -> Fetcher:
        return Fetcher(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def make_session(site: FakeSite, tmp_path: Path):
    sessions: list[MirrorSession] = []

    def _make(**overrides) -> MirrorSession:
        opts = dict(
            base_url=BASE,
            dest=tmp_path / "backup",
            concurrency=4,
            local_capacity=64,
            poll_interval=0.01,
            progress=False,
        )
        opts.update(overrides)
        session = MirrorSession(MirrorConfig(**opts), fetcher=site.fetcher())
        sessions.append(session)
        return session

    yield _make
    for s in sessions:
        s.close()
