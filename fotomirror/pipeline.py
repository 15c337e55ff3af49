"""Mirror pipeline: seed-page frontier, recursive gallery/picture fetchers, drain. Used by CLI and programmatic callers."""

import dataclasses
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from tqdm import tqdm

from fotomirror.config import MirrorConfig
from fotomirror.entities import Gallery, MediaItem
from fotomirror.errors import (
    ErrorLog,
    InvariantViolation,
    MalformedMetadata,
    MirrorError,
    PersistenceFailure,
    TransportFailure,
)
from fotomirror.extractors import find_gallery_keys, parse_gallery_xml
from fotomirror.fetcher import Fetcher
from fotomirror.gate import AdmissionGate
from fotomirror.registry import GALLERY_PATTERN, PIC_PATTERN, Registry, find_key
from fotomirror.storage import is_complete, write_binary

LISTING_QUERY = "/?sort=alpha&page={page}"


class MirrorSession:
    """
    State for one mirror run: admission gate, registries, error log, shared fetcher.
    Fetchers are submitted fire-and-forget to a thread pool sized to the local
    pool; the gate's in-flight counter is the only join point.
    """

    def __init__(
        self,
        config: MirrorConfig,
        *,
        fetcher: Fetcher | None = None,
        gate: AdmissionGate | None = None,
    ) -> None:
        self.config = config
        self.base = config.base_url
        self.dest = Path(config.dest)
        self.fetcher = fetcher or Fetcher(timeout=config.timeout, max_connections=config.concurrency)
        self.gate = gate or AdmissionGate(config.concurrency, config.local_capacity)
        self.galleries: Registry[Gallery] = Registry()
        self.pictures: Registry[MediaItem] = Registry()
        self.errors = ErrorLog(continue_on_error=config.continue_on_error)
        self.pages_fetched = 0
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=self.gate.local_capacity, thread_name_prefix="fotomirror"
        )

    # --- spawning ---

    def _spawn(self, name: str, target: Callable[..., None], *args: object) -> None:
        """
        Count a local operation and queue target(*args) on the pool. The caller never
        waits for a slot, so a task holding one can hand off work without deadlock.
        The task seats the operation when it starts; errors are recorded before the
        operation is released, so the drain loop never sees zero ahead of a fatal error.
        """
        op = self.gate.admit_local_op()
        if self._closed or self.errors.aborted.is_set():
            op.release()
            return

        def _run() -> None:
            try:
                op.seat()
                target(*args)
            except MirrorError as e:
                self.errors.record(e)
            except Exception as e:
                err = InvariantViolation(f"Unexpected error in {name}: {e!r}")
                err.__cause__ = e
                self.errors.record(err)
            finally:
                op.release()

        try:
            self._executor.submit(_run)
        except RuntimeError:
            op.release()
            if not self._closed:
                raise

    # --- registration ---

    def note_gallery(self, key_or_url: str) -> bool:
        """Register a gallery by key or URL; spawn its fetcher if new. Returns is_new."""
        key = find_key(key_or_url, GALLERY_PATTERN)
        gallery, is_new = self.galleries.register_if_new(key, Gallery(key))
        if not is_new:
            return False
        print(f"Gallery: {gallery.xml_url(self.base)}", file=sys.stderr)
        self._spawn(f"gallery-{key}", self.fetch_gallery, gallery)
        return True

    def note_picture(self, item: MediaItem) -> bool:
        """Register a keyed picture record; spawn its fetcher if new. Returns is_new."""
        pic, is_new = self.pictures.register_if_new(item.key, item)
        if not is_new:
            return False
        print(f"Photo: {pic.xml_url(self.base)}", file=sys.stderr)
        self._spawn(f"pic-{pic.key}", self.fetch_picture, pic)
        return True

    # --- fetch primitive ---

    def fetch_to_file(self, url: str, path: Path, expected_size: int | None = None) -> bool:
        """
        Ensure url's content is at path. Skips the network when the file already
        exists with expected_size bytes (or is non-empty when the size is unknown).
        Failures are recorded in the error log and return False, as does any call
        after the run has aborted.
        """
        if self.errors.aborted.is_set():
            return False
        if is_complete(path, expected_size):
            return True

        with self.gate.begin_network_op():
            try:
                data, _final_url = self.fetcher.fetch_bytes(url)
            except TransportFailure as e:
                self.errors.record(e)
                return False
            try:
                write_binary(path, data)
            except OSError as e:
                self.errors.record(PersistenceFailure(f"Error writing file {path}: {e}"))
                return False
        return True

    # --- entity fetchers ---

    def fetch_gallery(self, gallery: Gallery) -> None:
        """Fetch a gallery's metadata; on success hand it to a parse task."""
        path = gallery.xml_path(self.dest)
        if self.fetch_to_file(gallery.xml_url(self.base), path):
            self._spawn(f"parse-{gallery.key}", self.parse_gallery, path)

    def parse_gallery(self, path: Path) -> None:
        """Parse saved gallery metadata and register every linked gallery and picture."""
        try:
            raw = path.read_bytes()
        except OSError as e:
            self.errors.record(PersistenceFailure(f"Failed to open {path}: {e}"))
            return
        try:
            doc = parse_gallery_xml(raw)
        except ValueError as e:
            self.errors.record(MalformedMetadata(f"Failed to parse {path}: {e}"))
            return

        for url in doc.linked_galleries:
            self.note_gallery(url)
        for item in doc.items:
            keyed = dataclasses.replace(item, key=find_key(item.info_url, PIC_PATTERN))
            self.note_picture(keyed)

    def fetch_picture(self, pic: MediaItem) -> None:
        """Fetch a picture's metadata, then its payload checked against the declared size."""
        if not self.fetch_to_file(pic.xml_url(self.base), pic.xml_path(self.dest)):
            return
        if pic.file.size <= 0:
            raise InvariantViolation(f"Picture {pic.key} ({pic.info_url}) has no known file size")
        self.fetch_to_file(pic.blob_url(self.base), pic.blob_path(self.dest), pic.file.size)

    # --- frontier ---

    def fetch_listing_page(self, page: int) -> int:
        """Fetch one listing page and register the galleries it references. Returns matches found."""
        print(f"Fetching gallery page {page}", file=sys.stderr)
        html, final_url = self.fetcher.fetch_html(self.base + LISTING_QUERY.format(page=page))
        self.pages_fetched += 1
        print(f"Fetched page {page}: {final_url}", file=sys.stderr)
        print(f"read {len(html)} bytes", file=sys.stderr)
        keys = find_gallery_keys(html)
        for key in keys:
            self.note_gallery(key)
        return len(keys)

    def crawl_frontier(self) -> int:
        """
        Walk listing pages 1, 2, ... until a page adds no new gallery.
        Transport errors propagate: the frontier has no partial-failure mode.
        Returns the number of pages fetched.
        """
        page = 1
        while True:
            before = len(self.galleries)
            self.fetch_listing_page(page)
            after = len(self.galleries)
            print(f"Galleries known: {after}", file=sys.stderr)
            if after == before:
                print("No new galleries, stopping.", file=sys.stderr)
                return page
            if self.errors.aborted.is_set():
                return page
            page += 1

    # --- drain ---

    def drain(self) -> None:
        """
        Block until no operation is in flight. Raises the first fatal error as soon
        as one is recorded (the wait doubles as the poll sleep).
        """
        pbar = (
            tqdm(desc="Mirror", file=sys.stderr, total=None)
            if self.config.progress
            else None
        )
        try:
            while True:
                fatal = self.errors.fatal
                if fatal is not None:
                    raise fatal
                n = self.gate.in_flight()
                if n == 0:
                    return
                if pbar is not None:
                    pbar.set_postfix(
                        in_flight=n, galleries=len(self.galleries), pictures=len(self.pictures)
                    )
                    pbar.refresh()
                else:
                    print(f"{n} operations in-flight. Waiting.", file=sys.stderr)
                self.errors.aborted.wait(self.config.poll_interval)
        finally:
            if pbar is not None:
                pbar.close()

    def run(self) -> None:
        """Frontier, then drain. Raises MirrorError on any fatal condition."""
        print("Starting.", file=sys.stderr)
        self.crawl_frontier()
        self.drain()
        print(
            f"{len(self.galleries)} galleries, {len(self.pictures)} pictures, {len(self.errors)} errors",
            file=sys.stderr,
        )

    def summary(self) -> dict:
        return {
            "in_flight": self.gate.in_flight(),
            "galleries": len(self.galleries),
            "pictures": len(self.pictures),
            "errors": len(self.errors),
            "pages": self.pages_fetched,
        }

    def close(self) -> None:
        """Stop accepting work, drop queued tasks and close the fetcher."""
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.fetcher.close()

    def __enter__(self) -> "MirrorSession":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
