"""Path codecs for obfuscated repository paths.

Files mirrored through gitreplay may be published under encoded names.
A codec turns each ``/``-separated segment of such a name back into the
real file or directory name before it touches the local mirror.
"""

from __future__ import annotations

from typing import Protocol

from gitreplay.core import PathDecodeError
from gitreplay.plugins import hookimpl

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_BASE62_INDEX = {char: i for i, char in enumerate(BASE62_ALPHABET)}


class PathCodec(Protocol):
    """Reversible transform applied to each delimited segment of a path."""

    def encode(self, text: str, delimiter: str = "/") -> str: ...

    def decode(self, text: str, delimiter: str = "/") -> str: ...


def encode_base62(data: bytes) -> str:
    """Encode bytes as a big-endian base-62 numeral.

    Leading zero bytes do not survive the round trip, as with any
    positional numeral.
    """
    value = int.from_bytes(data, "big")
    digits = []
    while value > 0:
        value, remainder = divmod(value, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))


def decode_base62(text: str) -> bytes:
    """Decode a base-62 numeral produced by :func:`encode_base62`."""
    value = 0
    for char in text:
        try:
            value = value * 62 + _BASE62_INDEX[char]
        except KeyError:
            raise PathDecodeError(
                f"Invalid character {char!r} in base62 segment {text!r}"
            ) from None
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


class Base62PathCodec:
    """Encodes each path segment's UTF-8 bytes as a base-62 numeral."""

    def encode(self, text: str, delimiter: str = "/") -> str:
        return delimiter.join(
            encode_base62(segment.encode("utf-8")) for segment in text.split(delimiter)
        )

    def decode(self, text: str, delimiter: str = "/") -> str:
        segments = []
        for segment in text.split(delimiter):
            try:
                segments.append(decode_base62(segment).decode("utf-8"))
            except UnicodeDecodeError as e:
                raise PathDecodeError(
                    f"Segment {segment!r} does not decode to UTF-8 text"
                ) from e
        return delimiter.join(segments)


class PlainPathCodec:
    """Identity codec for repositories whose paths are stored as-is."""

    def encode(self, text: str, delimiter: str = "/") -> str:
        return text

    def decode(self, text: str, delimiter: str = "/") -> str:
        return text


class Base62CodecPlugin:
    """Plugin providing the base62 path codec."""

    @hookimpl
    def gitreplay_get_plugin_info(self) -> dict[str, str]:
        return {
            "name": "base62",
            "description": "Base-62 encoded path segments (0-9A-Za-z)",
        }

    @hookimpl
    def gitreplay_get_path_codec(self, name: str) -> PathCodec | None:
        if name == "base62":
            return Base62PathCodec()
        return None


class PlainCodecPlugin:
    """Plugin providing the identity path codec."""

    @hookimpl
    def gitreplay_get_plugin_info(self) -> dict[str, str]:
        return {
            "name": "plain",
            "description": "Paths stored without encoding",
        }

    @hookimpl
    def gitreplay_get_path_codec(self, name: str) -> PathCodec | None:
        if name == "plain":
            return PlainPathCodec()
        return None
