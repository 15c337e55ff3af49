"""Identifier extraction and the at-most-once registries for galleries and pictures."""

import re
import threading
from typing import Generic, TypeVar

from fotomirror.errors import MalformedReference

KEY_LENGTH = 8

# /gallery/{8 chars} and /pic/{8 chars}, anywhere in a URL or page body
GALLERY_PATTERN = re.compile(r"/gallery/([0-9a-z]{8})")
PIC_PATTERN = re.compile(r"/pic/([0-9a-z]{8})")
_BARE_KEY_RE = re.compile(r"^[0-9a-z]{8}$")

T = TypeVar("T")


def find_key(key_or_url: str, pattern: re.Pattern[str]) -> str:
    """
    Return the 8-character identifier for a bare key or a URL matching pattern.
    Raises MalformedReference when neither applies.
    """
    if _BARE_KEY_RE.match(key_or_url):
        return key_or_url
    m = pattern.search(key_or_url)
    if m is None:
        raise MalformedReference(f"Failed to parse identifier from {key_or_url!r}")
    key = m.group(1)
    if len(key) != KEY_LENGTH:
        raise MalformedReference(f"Expected {KEY_LENGTH}-char identifier in {key_or_url!r}")
    return key


class Registry(Generic[T]):
    """Key -> entity map with atomic check-then-insert. One lock per registry."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, T] = {}

    def register_if_new(self, key: str, entity: T) -> tuple[T, bool]:
        """Insert entity under key unless present. Returns (stored entity, is_new)."""
        with self._lock:
            existing = self._items.get(key)
            if existing is not None:
                return existing, False
            self._items[key] = entity
            return entity, True

    def get(self, key: str) -> T | None:
        with self._lock:
            return self._items.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
