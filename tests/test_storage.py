"""Backup layout, skip check, and owner-only atomic writes."""

from __future__ import annotations

import os
import stat
import sys

import pytest

from fotomirror.entities import Gallery, MediaFile, MediaItem
from fotomirror.storage import backup_path, extension_for_mime, is_complete, write_binary


@pytest.mark.parametrize(
    "mime,ext",
    [("image/jpeg", "jpg"), ("image/png", "png"), ("image/gif", "gif"), ("image/webp", ""), ("", "")],
)
def test_extension_for_mime(mime, ext):
    assert extension_for_mime(mime) == ext


def test_entity_paths_and_urls(tmp_path):
    gallery = Gallery("aaaaaaaa")
    assert gallery.xml_path(tmp_path) == tmp_path / "gallery-aaaaaaaa.xml"
    assert gallery.xml_url("http://h/u") == "http://h/u/gallery/aaaaaaaa.xml"

    pic = MediaItem(key="cccccccc", file=MediaFile(mime="image/png", size=10))
    assert pic.xml_path(tmp_path) == tmp_path / "pic-cccccccc.xml"
    assert pic.blob_path(tmp_path) == tmp_path / "pic-cccccccc.png"
    assert pic.blob_url("http://h/u") == "http://h/u/pic/cccccccc"

    unknown = MediaItem(key="dddddddd", file=MediaFile(mime="video/mp4", size=10))
    assert unknown.blob_path(tmp_path) == backup_path(tmp_path, "pic", "dddddddd", "")
    assert unknown.blob_path(tmp_path).name == "pic-dddddddd."


def test_is_complete(tmp_path):
    path = tmp_path / "pic-cccccccc.jpg"
    assert not is_complete(path, None)
    path.write_bytes(b"")
    assert not is_complete(path, None)
    path.write_bytes(b"12345")
    assert is_complete(path, None)
    assert is_complete(path, 5)
    assert not is_complete(path, 6)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_write_binary_is_owner_only_and_leaves_no_temp(tmp_path):
    path = tmp_path / "nested" / "gallery-aaaaaaaa.xml"
    write_binary(path, b"<mediaSet/>")
    assert path.read_bytes() == b"<mediaSet/>"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert [p.name for p in path.parent.iterdir()] == ["gallery-aaaaaaaa.xml"]


def test_write_binary_replaces_existing(tmp_path):
    path = tmp_path / "pic-cccccccc.jpg"
    path.write_bytes(b"short")
    write_binary(path, b"the full payload")
    assert path.read_bytes() == b"the full payload"
