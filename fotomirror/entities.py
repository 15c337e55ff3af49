"""Galleries and pictures: identity, remote URLs, and backup paths."""

from dataclasses import dataclass, field
from pathlib import Path

from fotomirror.storage import backup_path, extension_for_mime


@dataclass(frozen=True)
class Gallery:
    key: str

    def xml_url(self, base: str) -> str:
        return f"{base}/gallery/{self.key}.xml"

    def xml_path(self, dest: Path) -> Path:
        return backup_path(dest, "gallery", self.key, "xml")


@dataclass(frozen=True)
class MediaFile:
    """The <file> block of a picture: digest, type, dimensions, exact size, raw URL."""

    digest: str = ""
    digest_type: str = ""
    mime: str = ""
    width: int = 0
    height: int = 0
    size: int = 0
    url: str = ""


@dataclass(frozen=True)
class MediaItem:
    """A picture listed in a gallery. `key` is attached from info_url before registration."""

    title: str = ""
    description: str = ""
    info_url: str = ""
    file: MediaFile = field(default_factory=MediaFile)
    key: str = ""

    def xml_url(self, base: str) -> str:
        return f"{base}/pic/{self.key}.xml"

    def blob_url(self, base: str) -> str:
        return f"{base}/pic/{self.key}"

    def xml_path(self, dest: Path) -> Path:
        return backup_path(dest, "pic", self.key, "xml")

    def blob_path(self, dest: Path) -> Path:
        return backup_path(dest, "pic", self.key, extension_for_mime(self.file.mime))
