"""Extract gallery references from listing pages and parse gallery metadata XML."""

from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from fotomirror.entities import MediaFile, MediaItem
from fotomirror.registry import GALLERY_PATTERN


@dataclass
class GalleryDocument:
    """Parsed gallery metadata. Linked galleries may point back at us (not a DAG)."""

    linked_from: list[str] = field(default_factory=list)
    linked_to: list[str] = field(default_factory=list)
    items: list[MediaItem] = field(default_factory=list)

    @property
    def linked_galleries(self) -> list[str]:
        return self.linked_from + self.linked_to


def find_gallery_keys(html: str) -> list[str]:
    """All gallery identifiers referenced in a page, in order of appearance (duplicates kept)."""
    return [m.group(1) for m in GALLERY_PATTERN.finditer(html)]


def _child(tag: Tag | None, name: str) -> Tag | None:
    """First direct child element named name (case-insensitive)."""
    if tag is None:
        return None
    lname = name.lower()
    for c in tag.find_all(True, recursive=False):
        if c.name.lower() == lname:
            return c
    return None


def _children(tag: Tag | None, name: str) -> list[Tag]:
    if tag is None:
        return []
    lname = name.lower()
    return [c for c in tag.find_all(True, recursive=False) if c.name.lower() == lname]


def _text(tag: Tag | None, name: str) -> str:
    c = _child(tag, name)
    return c.get_text(strip=True) if c is not None else ""


def _int(tag: Tag | None, name: str) -> int:
    value = _text(tag, name)
    try:
        return int(value)
    except ValueError:
        return 0


def _parse_file(tag: Tag | None) -> MediaFile:
    if tag is None:
        return MediaFile()
    digest = _child(tag, "digest")
    digest_type = ""
    if digest is not None:
        digest_type = next((v for k, v in digest.attrs.items() if k.lower() == "type"), "")
    return MediaFile(
        digest=digest.get_text(strip=True) if digest is not None else "",
        digest_type=digest_type,
        mime=_text(tag, "mime"),
        width=_int(tag, "width"),
        height=_int(tag, "height"),
        size=_int(tag, "bytes"),
        url=_text(tag, "url"),
    )


def _parse_item(tag: Tag) -> MediaItem:
    return MediaItem(
        title=_text(tag, "title"),
        description=_text(tag, "description"),
        info_url=_text(tag, "infoURL"),
        file=_parse_file(_child(tag, "file")),
    )


def parse_gallery_xml(raw: bytes | str) -> GalleryDocument:
    """
    Parse a <mediaSet> document into linked gallery URLs and picture records.
    Picture records come back without a key. Raises ValueError if there is no mediaSet root.
    """
    soup = BeautifulSoup(raw, "xml")
    root = next(
        (t for t in soup.find_all(True, recursive=False) if t.name.lower() == "mediaset"),
        None,
    )
    if root is None:
        raise ValueError("no <mediaSet> root element")

    def _urls(section: str) -> list[str]:
        return [t.get_text(strip=True) for t in _children(_child(root, section), "infoURL")]

    items = [_parse_item(t) for t in _children(_child(root, "mediaSetItems"), "mediaSetItem")]
    return GalleryDocument(
        linked_from=_urls("linkedFrom"),
        linked_to=_urls("linkedTo"),
        items=items,
    )
