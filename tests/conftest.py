from __future__ import annotations

import concurrent.futures as futures
import io
import time
from pathlib import Path

import pytest
from PIL import Image

from spritegif.core.types import ExportOptions
from spritegif.processing.assets import AssetCache


def png_bytes(size: tuple[int, int], color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def write_png(path: Path, size: tuple[int, int], color=(255, 0, 0, 255)) -> Path:
    Image.new("RGBA", size, color).save(path, format="PNG")
    return path


def grid_png(path: Path, rows: int, cols: int, cell: tuple[int, int]) -> Path:
    """Atlas whose cell (r, c) is filled with the color (r * 40, c * 40, 200, 255)."""
    w, h = cell
    image = Image.new("RGBA", (cols * w, rows * h))
    for r in range(rows):
        for c in range(cols):
            image.paste((r * 40, c * 40, 200, 255), (c * w, r * h, (c + 1) * w, (r + 1) * h))
    image.save(path, format="PNG")
    return path


class ImmediateExecutor(futures.Executor):
    """Runs every submitted call synchronously."""

    def __init__(self):
        self.calls = 0

    def submit(self, fn, /, *args, **kwargs):
        self.calls += 1
        fut = futures.Future()
        try:
            fut.set_result(fn(*args, **kwargs))
        except Exception as ex:
            fut.set_exception(ex)
        return fut


class DeferredExecutor(futures.Executor):
    """Queues submitted calls until `run_all()`."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, /, *args, **kwargs):
        fut = futures.Future()
        self.pending.append((fut, fn, args, kwargs))
        return fut

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for fut, fn, args, kwargs in pending:
            try:
                fut.set_result(fn(*args, **kwargs))
            except Exception as ex:
                fut.set_exception(ex)


class ManualHandle:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.cancel_count = 0

    @property
    def active(self) -> bool:
        return self.cancel_count == 0

    def cancel(self) -> None:
        self.cancel_count += 1


class ManualScheduler:
    """Scheduler whose ticks only happen when the test calls `fire()`."""

    def __init__(self):
        self.handles: list[ManualHandle] = []

    def call_every(self, interval, callback):
        handle = ManualHandle(interval, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[ManualHandle]:
        return [h for h in self.handles if h.active]

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for handle in self.active:
                handle.callback()


class RecordingEncoder:
    def __init__(self, width, height, options, workdir, fail_on_render=False):
        self.size = (width, height)
        self.options = options
        self.workdir = workdir
        self.fail_on_render = fail_on_render
        self.frames: list[Image.Image] = []
        self.delays: list[int] = []
        self.closed = False

    def add_frame(self, image, delay_ms):
        self.frames.append(image.copy())
        self.delays.append(delay_ms)

    def render(self, on_progress=None):
        from spritegif.core.errors import EncoderError

        if self.fail_on_render:
            raise EncoderError("boom")
        if on_progress is not None:
            on_progress(0.5)
            on_progress(1.0)
        return b"GIF89a" + bytes(len(self.frames))

    def close(self):
        self.closed = True


class RecordingFactory:
    def __init__(self, fail_on_render=False):
        self.fail_on_render = fail_on_render
        self.encoders: list[RecordingEncoder] = []

    def __call__(self, width: int, height: int, options: ExportOptions, workdir: Path) -> RecordingEncoder:
        enc = RecordingEncoder(width, height, options, workdir, self.fail_on_render)
        self.encoders.append(enc)
        return enc

    @property
    def last(self) -> RecordingEncoder:
        return self.encoders[-1]


@pytest.fixture
def executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture
def cache(executor) -> AssetCache:
    c = AssetCache(executor=executor)
    yield c
    c.close()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


class RecordingLogger:
    """Collects (level, message) pairs instead of printing."""

    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def log(self, message, prefix="", error=False):
        self.records.append((prefix or "LOG", message))

    def progress(self, fraction, description=""):
        self.records.append(("PROGRESS", f"{fraction:.2f} {description}"))

    def section(self, title):
        self.records.append(("SECTION", title))

    def success(self, message):
        self.records.append(("SUCCESS", message))

    def info(self, message):
        self.records.append(("INFO", message))

    def warning(self, message):
        self.records.append(("WARNING", message))

    def error(self, message):
        self.records.append(("ERROR", message))

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.records if lvl == level]


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll `predicate` until it is true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
