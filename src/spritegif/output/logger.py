"""
Console and file logging for spritegif.

Library components default to a quiet logger so they never print into a
host application; the CLI hands them a loud one.
"""

from __future__ import annotations

import sys
import threading
import time
from datetime import datetime
from pathlib import Path


class SimpleLogger:
    """Timestamped lines to stdout/stderr and an optional append-only file.

    Args:
        log_file: Every message is also appended here when set.
        quiet: Suppress console output. File output is unaffected.
    """

    def __init__(self, log_file: Path | None = None, quiet: bool = False):
        self.log_file = log_file
        self.quiet = quiet
        self.start_time = time.time()
        self._lock = threading.Lock()

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            rule = "=" * 60
            self._append(f"\n{rule}\nSession started: {datetime.now().isoformat()}\n{rule}")

    def log(self, message: str, prefix: str = "", error: bool = False) -> None:
        """Write one line as `[HH:MM:SS] PREFIX message`.

        Args:
            message: Text to log
            prefix: Level tag such as [INFO] or [ERROR]
            error: Send the console copy to stderr
        """
        stamp = datetime.now().strftime("%H:%M:%S")
        line = " ".join(part for part in (f"[{stamp}]", prefix, message) if part)

        with self._lock:
            if not self.quiet:
                print(line, file=sys.stderr if error else sys.stdout, flush=True)
            self._append(line)

    def progress(self, fraction: float, description: str = "") -> None:
        """Log a progress line for a fraction in [0, 1]."""
        percent = max(0.0, min(1.0, fraction)) * 100
        label = f"({percent:.1f}%) {description}".rstrip()
        self.log(f"{label} - {time.time() - self.start_time:.1f}s elapsed")

    def section(self, title: str) -> None:
        """Log a centered title between two rules."""
        rule = "=" * 60
        self.log("")
        self.log(rule)
        self.log(title.center(60))
        self.log(rule)

    def success(self, message: str) -> None:
        self.log(message, prefix="[SUCCESS]")

    def error(self, message: str) -> None:
        self.log(message, prefix="[ERROR]", error=True)

    def warning(self, message: str) -> None:
        self.log(message, prefix="[WARNING]")

    def info(self, message: str) -> None:
        self.log(message, prefix="[INFO]")

    def _append(self, text: str) -> None:
        if not self.log_file:
            return
        try:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(text + '\n')
        except OSError:
            pass  # logging must never break an export
