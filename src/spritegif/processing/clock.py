"""
Playback clock for spritegif.

Advances the visible frame index on a recurring timer. At most one timer
is alive at a time and every path out of the running state cancels it
exactly once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from ..config import DEFAULT_FPS, app_config
from ..core.constants import MS_PER_SECOND
from ..core.types import PlaybackState
from ..output.logger import SimpleLogger


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs `callback` every `interval` seconds until the handle is cancelled."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


class RepeatingTimer:
    """Daemon thread firing a callback at a fixed interval.

    A callback that raises is logged and the timer keeps running; only
    `cancel()` ends the thread.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        logger: SimpleLogger | None = None,
    ) -> None:
        self.interval = interval
        self._callback = callback
        self._logger = logger or SimpleLogger(quiet=True)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="spritegif-clock", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._callback()
            except Exception as ex:
                self._logger.error(f"clock tick failed: {type(ex).__name__}: {ex}")


class ThreadingScheduler:
    """Default scheduler backed by one thread per running timer."""

    def __init__(self, logger: SimpleLogger | None = None) -> None:
        self.logger = logger

    def call_every(self, interval: float, callback: Callable[[], None]) -> RepeatingTimer:
        timer = RepeatingTimer(interval, callback, self.logger)
        timer.start()
        return timer


Listener = Callable[[PlaybackState], None]


class PlaybackClock:
    """Time-driven frame index.

    Args:
        frame_count: Returns the current number of playable frames.
        scheduler: Source of recurring ticks. Defaults to ThreadingScheduler.
        fps: Initial frame rate, clamped into the configured range.
        logger: Receives tick failures from the default scheduler.
    """

    def __init__(
        self,
        frame_count: Callable[[], int],
        scheduler: Scheduler | None = None,
        fps: int = DEFAULT_FPS,
        logger: SimpleLogger | None = None,
    ) -> None:
        self._frame_count = frame_count
        self._scheduler = scheduler or ThreadingScheduler(logger)
        self._fps = app_config.clamp_fps(fps)
        self._index = 0
        self._handle: TimerHandle | None = None
        # Bumped on every start/stop; ticks from an older timer are ignored.
        self._generation = 0
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ---------------
    # State
    # ---------------
    @property
    def index(self) -> int:
        return self._index

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def playing(self) -> bool:
        return self._handle is not None

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return 1.0 / self._fps

    @property
    def interval_ms(self) -> float:
        return MS_PER_SECOND / self._fps

    @property
    def state(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                current_index=self._index,
                fps=self._fps,
                playing=self.playing,
                total_frames=max(0, self._frame_count()),
            )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` after every index or playing change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------
    # Transitions
    # ---------------
    def play(self) -> bool:
        """Start playback. Returns False when there is nothing to play."""
        with self._lock:
            if self._frame_count() <= 0:
                changed = self._stop()
                started = False
            elif self._handle is not None:
                return True
            else:
                self._start()
                changed = started = True
        if changed:
            self._notify()
        return started

    def pause(self) -> None:
        with self._lock:
            changed = self._stop()
        if changed:
            self._notify()

    def toggle(self) -> bool:
        """Flip between playing and paused; returns the new playing flag."""
        if self.playing:
            self.pause()
            return False
        return self.play()

    def set_fps(self, fps: int) -> None:
        """Change the frame rate; a running timer is rescheduled without resetting the index."""
        with self._lock:
            fps = app_config.clamp_fps(fps)
            if fps == self._fps:
                return
            self._fps = fps
            if self._handle is not None:
                self._stop()
                self._start()
        self._notify()

    def seek(self, index: int) -> None:
        """Scrub to `index`; scrubbing always stops playback."""
        with self._lock:
            self._stop()
            total = self._frame_count()
            self._index = int(index) % total if total > 0 else 0
        self._notify()

    def step(self) -> None:
        """Advance one frame without touching the playing flag."""
        with self._lock:
            total = self._frame_count()
            if total <= 0:
                return
            self._index = (self._index + 1) % total
        self._notify()

    def reset(self) -> None:
        """Stop and rewind to frame 0, as after a mode or data-set change."""
        with self._lock:
            self._stop()
            self._index = 0
        self._notify()

    def sync(self) -> None:
        """Re-apply the index invariant after the frame count may have changed."""
        with self._lock:
            total = self._frame_count()
            if total <= 0:
                changed = self._stop() or self._index != 0
                self._index = 0
            else:
                new_index = self._index % total
                changed = new_index != self._index
                self._index = new_index
        if changed:
            self._notify()

    def close(self) -> None:
        self.pause()
        self._listeners.clear()

    # ---------------
    # Helpers
    # ---------------
    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._handle is None:
                return
            total = self._frame_count()
            if total <= 0:
                self._stop()
                self._index = 0
            else:
                self._index = (self._index + 1) % total
        self._notify()

    def _start(self) -> None:
        self._generation += 1
        generation = self._generation
        self._handle = self._scheduler.call_every(self.interval, lambda: self._tick(generation))

    def _stop(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        self._handle = None
        self._generation += 1
        handle.cancel()
        return True

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)
