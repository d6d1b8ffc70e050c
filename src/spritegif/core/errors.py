"""Exception types raised by spritegif."""

from __future__ import annotations


class SpriteGifError(Exception):
    """Base class for all spritegif errors."""


class DecodeFailure(SpriteGifError):
    """An image source could not be decoded."""

    def __init__(self, source_id: object, reason: str) -> None:
        self.source_id = source_id
        self.reason = reason
        super().__init__(f"Could not decode {describe_source(source_id)}: {reason}")


class EmptyInput(SpriteGifError):
    """There are no playable frames."""


class EncoderError(SpriteGifError):
    """The encoder could not produce a bitstream."""


class ExportError(SpriteGifError):
    """An export run was aborted."""


def describe_source(source_id: object) -> str:
    """Short printable label for a source identifier."""
    if isinstance(source_id, (bytes, bytearray)):
        return f"<{len(source_id)} bytes>"
    text = str(source_id)
    if text.startswith("data:"):
        return text[:32] + "..."
    return text
