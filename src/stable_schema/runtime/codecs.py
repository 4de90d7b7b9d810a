"""Codecs bound to schema versions at runtime.

A codec is an opaque encode/decode pair. The dispatcher only relies on the
failure contract: a decoder that cannot read a buffer raises DecodeError.

- Codec: Protocol every codec satisfies
- PydanticCodec: Structural derivation through a pydantic TypeAdapter (JSON)
- OfBinable: Wraps an existing codec through a pair of conversions
- OfStringable: Wraps a string representation
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError


class DecodeError(Exception):
    """A codec could not decode a buffer.

    Attributes:
        codec: Description of the codec that failed.
        reason: Why decoding failed.
    """

    def __init__(self, codec: str, reason: str) -> None:
        self.codec = codec
        self.reason = reason
        super().__init__(f"{codec}: {reason}")


# =============================================================================
# Codec Protocol
# =============================================================================


class Codec(Protocol):
    """Protocol for version codecs."""

    def encode(self, value: Any) -> bytes:
        """Serialize a value of the version's type."""
        ...

    def decode(self, buffer: bytes) -> Any:
        """Deserialize a buffer.

        Raises:
            DecodeError: If the buffer is not a value of this version.
        """
        ...


# =============================================================================
# Structural derivation
# =============================================================================


class PydanticCodec:
    """JSON codec derived from a type's structure.

    Decoding is strict: a buffer is accepted only if it validates against the
    version's type without coercion. Models that should reject buffers written
    by other versions declare ``extra="forbid"``.

    Example:
        >>> codec = PydanticCodec(AccountV1)
        >>> codec.decode(codec.encode(AccountV1(name="alice")))
        AccountV1(name='alice')
    """

    def __init__(self, type_: Any, *, strict: bool = True) -> None:
        self._adapter: TypeAdapter[Any] = TypeAdapter(type_)
        self._strict = strict
        self._name = getattr(type_, "__name__", repr(type_))

    def encode(self, value: Any) -> bytes:
        return self._adapter.dump_json(value)

    def decode(self, buffer: bytes) -> Any:
        try:
            return self._adapter.validate_json(buffer, strict=self._strict)
        except ValidationError as e:
            raise DecodeError(repr(self), f"{e.error_count()} validation error(s)") from e

    def __repr__(self) -> str:
        return f"PydanticCodec({self._name})"


# =============================================================================
# Binable adapters
# =============================================================================


class OfBinable:
    """Codec built by wrapping an existing binary representation.

    Args:
        wrapped: Codec of the wrapped representation.
        to_binable: Converts a version value to the wrapped representation.
        of_binable: Converts the wrapped representation back.
    """

    adapter = "of_binable"

    def __init__(
        self,
        wrapped: Codec,
        to_binable: Callable[[Any], Any],
        of_binable: Callable[[Any], Any],
    ) -> None:
        self.wrapped = wrapped
        self._to_binable = to_binable
        self._of_binable = of_binable

    def encode(self, value: Any) -> bytes:
        return self.wrapped.encode(self._to_binable(value))

    def decode(self, buffer: bytes) -> Any:
        representation = self.wrapped.decode(buffer)
        try:
            return self._of_binable(representation)
        except (ValueError, TypeError) as e:
            raise DecodeError(repr(self), str(e)) from e

    def __repr__(self) -> str:
        return f"OfBinable({self.wrapped!r})"


class OfStringable:
    """Codec built by wrapping a string representation.

    Args:
        to_string: Renders a version value as a string.
        of_string: Parses the string back; raises ValueError when invalid.
        encoding: Byte encoding of the string.
    """

    adapter = "of_stringable"

    def __init__(
        self,
        to_string: Callable[[Any], str],
        of_string: Callable[[str], Any],
        *,
        encoding: str = "utf-8",
    ) -> None:
        self._to_string = to_string
        self._of_string = of_string
        self.encoding = encoding

    def encode(self, value: Any) -> bytes:
        return self._to_string(value).encode(self.encoding)

    def decode(self, buffer: bytes) -> Any:
        try:
            text = buffer.decode(self.encoding)
            return self._of_string(text)
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            raise DecodeError(repr(self), str(e)) from e

    def __repr__(self) -> str:
        return f"OfStringable(encoding={self.encoding!r})"


# Adapter name -> codec class
BINABLE_ADAPTERS: dict[str, type] = {
    OfBinable.adapter: OfBinable,
    OfStringable.adapter: OfStringable,
}


__all__ = [
    "BINABLE_ADAPTERS",
    "Codec",
    "DecodeError",
    "OfBinable",
    "OfStringable",
    "PydanticCodec",
]
