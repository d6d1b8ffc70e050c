"""Subprocess and external command utilities."""

from __future__ import annotations

import shlex
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path


def write_ffconcat_file(frame_paths: list[Path], durations_ms: list[int], target_dir: Path) -> Path:
    """Write FFmpeg concat demuxer file with a display duration per frame.

    Args:
        frame_paths: List of frame paths in order
        durations_ms: Display time of each frame in milliseconds
        target_dir: Directory to write concat file

    Returns:
        Path to created concat file
    """
    if len(frame_paths) != len(durations_ms):
        raise ValueError("frame_paths and durations_ms must have the same length")

    target_dir.mkdir(parents=True, exist_ok=True)
    concat_path = target_dir / "input.ffconcat"

    with open(concat_path, "w", encoding="utf-8") as f:
        f.write("ffconcat version 1.0\n")
        for frame_path, duration in zip(frame_paths, durations_ms):
            escaped = frame_path.resolve().as_posix().replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")
            f.write(f"duration {duration / 1000:.3f}\n")

        # The demuxer ignores the last duration unless the last file is repeated
        if frame_paths:
            escaped = frame_paths[-1].resolve().as_posix().replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")

    return concat_path


def stream_subprocess(
    cmd: list[str],
    on_line: Callable[[str], None],
    *,
    timeout: int | None = None,
) -> tuple[int, str]:
    """Run a command, feeding each stdout line to `on_line` as it arrives.

    Args:
        cmd: Command and arguments list
        on_line: Called with every stripped stdout line
        timeout: Optional timeout in seconds

    Returns:
        Tuple of (return_code, stderr_output); -1 when the command could not run or timed out
    """
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        return -1, f"{shlex.join(cmd)}: {e}"

    stderr_chunks: list[str] = []
    # Drain stderr on the side so a chatty process cannot block on a full pipe
    drain = threading.Thread(target=lambda: stderr_chunks.append(proc.stderr.read()), daemon=True)
    drain.start()

    timed_out = threading.Event()

    def kill() -> None:
        timed_out.set()
        proc.kill()

    timer = threading.Timer(timeout, kill) if timeout is not None else None
    if timer is not None:
        timer.start()
    try:
        for line in proc.stdout:
            on_line(line.strip())
        code = proc.wait()
    finally:
        if timer is not None:
            timer.cancel()
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        drain.join()
        proc.stdout.close()
        proc.stderr.close()

    if timed_out.is_set():
        return -1, f"Command timed out after {timeout} seconds"
    return code, "".join(stderr_chunks)
