"""
External tool validation utilities for spritegif.

This module handles validation of the external tools an encoder needs.
"""

from __future__ import annotations

from shutil import which


def check_tools(encoder: str = "ffmpeg") -> tuple[bool, list[str]]:
    """Check availability of the external tools required by `encoder`.

    Args:
        encoder: Encoder name; only "ffmpeg" depends on an external tool.

    Returns:
        Tuple[bool, List[str]]: (all_ok, problems). If `all_ok` is False, problems lists the issues.
    """
    problems: list[str] = []
    if encoder == "ffmpeg" and which("ffmpeg") is None:
        problems.append("ffmpeg not found in PATH")
    return (len(problems) == 0, problems)
