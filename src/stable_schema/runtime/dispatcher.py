"""VersionedCodec: the executable serialize / deserialize_opt dispatcher.

``serialize`` delegates to the Latest codec and adds no version tag.
``deserialize_opt`` tries each version's decoder in a fixed order (newest
first); the first decoder that succeeds yields a value that is upgraded to
Latest. A buffer no decoder accepts gives ``None``: data from an unknown or
foreign version is expected, not a defect.

Only DecodeError is treated as "not this version". Any exception raised by an
upgrade function propagates.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from stable_schema.runtime.codecs import Codec, DecodeError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VersionDecoder:
    """Decoder of one version plus its upgrade to Latest (None for Latest)."""

    number: int
    codec: Codec
    upgrade: Callable[[Any], Any] | None = None


class VersionedCodec:
    """Combined codec of one family.

    Attributes:
        family: Dotted family name.
        latest: Number of the Latest version.

    Example:
        >>> codec = bind_family(family, bindings)
        >>> codec.deserialize_opt(codec.serialize(value)) == value
        True
    """

    def __init__(
        self, family: str, latest_codec: Codec, decoders: tuple[VersionDecoder, ...]
    ) -> None:
        if not decoders:
            raise ValueError(f"family '{family}' has no decoders")
        self.family = family
        self.latest = max(d.number for d in decoders)
        self._latest_codec = latest_codec
        self._decoders = decoders
        self._log = logger.bind(component="VersionedCodec", family=family)

    @property
    def decode_order(self) -> tuple[int, ...]:
        """Version numbers in the order decoders are tried."""
        return tuple(d.number for d in self._decoders)

    def serialize(self, value: Any) -> bytes:
        """Encode a Latest value with the Latest codec."""
        return self._latest_codec.encode(value)

    def deserialize_with_version_opt(self, buffer: bytes) -> tuple[int, Any] | None:
        """Decode a buffer written by any known version.

        Returns:
            ``(version_number, latest_value)`` for the first decoder that
            accepts the buffer, or None if none does.
        """
        for decoder in self._decoders:
            try:
                value = decoder.codec.decode(buffer)
            except DecodeError as e:
                self._log.debug("decoder_rejected_buffer", version=decoder.number, reason=e.reason)
                continue
            if decoder.upgrade is not None:
                value = decoder.upgrade(value)
            self._log.debug("buffer_decoded", version=decoder.number)
            return decoder.number, value

        self._log.debug("buffer_not_decoded", tried=len(self._decoders), size=len(buffer))
        return None

    def deserialize_opt(self, buffer: bytes) -> Any | None:
        """Decode a buffer to the Latest representation, or None."""
        decoded = self.deserialize_with_version_opt(buffer)
        if decoded is None:
            return None
        return decoded[1]

    def __repr__(self) -> str:
        return f"VersionedCodec({self.family!r}, order={self.decode_order})"


__all__ = ["VersionDecoder", "VersionedCodec"]
