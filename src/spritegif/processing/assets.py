"""
Decoded image cache for spritegif.

This module handles all image-source functionality including:
- Resolving source identifiers (paths, raw bytes, data: URLs) to pixels
- Asynchronous, memoized decoding shared by the renderer and exporter
- Building Frame records from freshly ingested sources
"""

from __future__ import annotations

import base64
import binascii
import concurrent.futures as futures
import io
import threading
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..config import DECODE_WORKERS
from ..core.constants import DATA_URL_PREFIX, SURFACE_MODE
from ..core.errors import DecodeFailure
from ..core.types import Frame, SourceId


def cache_key(source_id: object) -> object:
    """Normalize a source identifier for use as a dictionary key."""
    # Path("a.png") and "a.png" name the same file.
    if isinstance(source_id, Path):
        return str(source_id)
    if isinstance(source_id, bytearray):
        return bytes(source_id)
    return source_id


def read_source_bytes(source_id: SourceId) -> bytes:
    """Return the encoded bytes behind a source identifier.

    Args:
        source_id (SourceId): File path, raw bytes, or a base64 data: URL.

    Returns:
        bytes: Encoded image data.

    Raises:
        DecodeFailure: When the source cannot be read.
    """
    if isinstance(source_id, (bytes, bytearray)):
        return bytes(source_id)
    text = str(source_id)
    if isinstance(source_id, str) and text.startswith(DATA_URL_PREFIX):
        header, _, payload = text.partition(",")
        if ";base64" not in header:
            raise DecodeFailure(source_id, "only base64 data URLs are supported")
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as ex:
            raise DecodeFailure(source_id, f"bad base64 payload: {ex}") from ex
    try:
        return Path(text).read_bytes()
    except OSError as ex:
        raise DecodeFailure(source_id, f"{type(ex).__name__}: {ex}") from ex


def decode_image(source_id: SourceId) -> Image.Image:
    """Decode a source fully into an RGBA image."""
    data = read_source_bytes(source_id)
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            return im.convert(SURFACE_MODE)
    except (UnidentifiedImageError, OSError, ValueError) as ex:
        raise DecodeFailure(source_id, f"{type(ex).__name__}: {ex}") from ex


class AssetCache:
    """Memoizes decoded images by source identifier.

    Each distinct source is decoded at most once while its entry lives; the
    returned Future is the single "loaded" signal for that source. Decoded
    images are shared and must be treated as read-only. Failed decodes are
    dropped from the cache so a later explicit request decodes again;
    whoever consumes the Future reports the failure.

    Args:
        executor: Executor that runs decodes. Defaults to a private thread pool.
    """

    def __init__(
        self,
        executor: futures.Executor | None = None,
    ) -> None:
        self._owns_executor = executor is None
        self._executor = executor or futures.ThreadPoolExecutor(
            max_workers=DECODE_WORKERS, thread_name_prefix="spritegif-decode"
        )
        self._entries: dict[SourceId, futures.Future] = {}
        self._lock = threading.Lock()

    def request(self, source_id: SourceId) -> futures.Future:
        """Start (or join) the decode of `source_id` and return its Future."""
        key = cache_key(source_id)
        with self._lock:
            fut = self._entries.get(key)
            if fut is not None:
                return fut
            fut = self._executor.submit(decode_image, source_id)
            self._entries[key] = fut
        fut.add_done_callback(lambda f, k=key: self._on_done(k, f))
        return fut

    def load(self, source_id: SourceId) -> Image.Image:
        """Block until `source_id` is decoded.

        Raises:
            DecodeFailure: When decoding failed.
        """
        fut = self.request(source_id)
        try:
            return fut.result()
        except DecodeFailure:
            raise
        except Exception as ex:
            raise DecodeFailure(source_id, f"{type(ex).__name__}: {ex}") from ex

    def peek(self, source_id: SourceId) -> Image.Image | None:
        """Return the decoded image if it is ready, else None. Never blocks."""
        with self._lock:
            fut = self._entries.get(cache_key(source_id))
        if fut is None or not fut.done() or fut.cancelled() or fut.exception() is not None:
            return None
        return fut.result()

    def make_frame(self, source_id: SourceId) -> Frame:
        """Decode a newly ingested source and describe it as a Frame."""
        image = self.load(source_id)
        return Frame(source=source_id, width=image.width, height=image.height)

    def evict(self, source_id: SourceId) -> bool:
        """Forget a source. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(cache_key(source_id), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def close(self) -> None:
        """Drop all entries and shut down a privately owned executor."""
        self.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __contains__(self, source_id: object) -> bool:
        with self._lock:
            return cache_key(source_id) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _on_done(self, key: SourceId, fut: futures.Future) -> None:
        if fut.cancelled() or fut.exception() is not None:
            with self._lock:
                if self._entries.get(key) is fut:
                    del self._entries[key]
