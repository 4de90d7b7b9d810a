"""Binding a validated family to executable codecs and upgrades.

The compiler validates declarations; the host supplies the runtime pieces.
bind_family() pairs every version of a SchemaFamily with a codec and (for
non-latest versions) an upgrade callable, checks the pairing against the
family, and returns a VersionedCodec.

Example:
    >>> codec = bind_family(
    ...     family,
    ...     {
    ...         1: VersionBinding(PydanticCodec(AccountV1), upgrade=v1_to_latest),
    ...         2: VersionBinding(PydanticCodec(AccountV2)),
    ...     },
    ... )
    >>> codec.deserialize_opt(old_buffer)
    AccountV2(...)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from stable_schema.compilation.synthesizer import decode_order
from stable_schema.runtime.codecs import BINABLE_ADAPTERS, Codec
from stable_schema.runtime.dispatcher import VersionDecoder, VersionedCodec
from stable_schema.schemas.family import FamilyKind, SchemaFamily, VersionVariant

logger = structlog.get_logger(__name__)


class BindingError(Exception):
    """Runtime codecs do not match a family's declarations.

    Attributes:
        family: Dotted family name.
    """

    def __init__(self, family: str, message: str) -> None:
        self.family = family
        super().__init__(f"{family}: {message}")


@dataclass(frozen=True)
class VersionBinding:
    """Runtime pieces of one version.

    Attributes:
        codec: Codec of the version's type.
        upgrade: Direct upgrade to Latest; None for the Latest version.
    """

    codec: Codec
    upgrade: Callable[[Any], Any] | None = None


# Version number -> binding
Bindings = Mapping[int, VersionBinding]


def build_dispatcher(
    family: SchemaFamily,
    bindings: Bindings,
    type_name: str | None = None,
) -> VersionedCodec:
    """Check bindings against a family and assemble its dispatcher.

    Args:
        family: A validated family.
        bindings: One binding per version number.
        type_name: Versioned type the bindings are for (RPC families).

    Returns:
        VersionedCodec trying decoders in the synthesized order.

    Raises:
        BindingError: If versions are missing or extra, an upgrade is missing
            or misplaced, or a binable version is bound to a non-adapter codec.
    """
    subject = family.name if type_name is None else f"{family.name}.{type_name}"
    expected = {v.number for v in family.versions}
    provided = set(bindings)
    if provided != expected:
        missing = sorted(expected - provided)
        extra = sorted(provided - expected)
        raise BindingError(
            subject, f"bindings do not match versions (missing={missing}, extra={extra})"
        )

    latest = family.latest.number
    for version in family.versions:
        binding = bindings[version.number]
        if version.number == latest and binding.upgrade is not None:
            raise BindingError(subject, f"V{latest} is Latest and takes no upgrade function")
        if version.number != latest and binding.upgrade is None:
            raise BindingError(subject, f"V{version.number} has no upgrade function to V{latest}")
        if family.variant is VersionVariant.BINABLE:
            adapter = BINABLE_ADAPTERS.get(version.codec.adapter)
            if adapter is None or not isinstance(binding.codec, adapter):
                raise BindingError(
                    subject,
                    f"V{version.number} declares codec '{version.codec.adapter}' "
                    f"but is bound to {binding.codec!r}",
                )

    decoders = tuple(
        VersionDecoder(
            number=number,
            codec=bindings[number].codec,
            upgrade=bindings[number].upgrade,
        )
        for number in decode_order(family)
    )
    logger.debug("family_bound", family=subject, versions=len(decoders), latest=latest)
    return VersionedCodec(subject, bindings[latest].codec, decoders)


def bind_family(family: SchemaFamily, bindings: Bindings) -> VersionedCodec:
    """Bind an ordinary (non-RPC) family to its runtime codecs.

    Raises:
        BindingError: If the family is an RPC family or the bindings do not
            match its versions.
    """
    if family.kind is FamilyKind.RPC:
        raise BindingError(family.name, "RPC families are bound with bind_rpc()")
    return build_dispatcher(family, bindings)


__all__ = ["BindingError", "Bindings", "VersionBinding", "bind_family", "build_dispatcher"]
