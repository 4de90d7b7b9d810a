"""Executable dispatchers for validated families.

Example:
    >>> from stable_schema.runtime import PydanticCodec, VersionBinding, bind_family
    >>> codec = bind_family(family, {1: VersionBinding(PydanticCodec(AccountV1))})
    >>> codec.deserialize_opt(codec.serialize(account))
"""

from __future__ import annotations

from stable_schema.runtime.binding import (
    BindingError,
    Bindings,
    VersionBinding,
    bind_family,
    build_dispatcher,
)
from stable_schema.runtime.codecs import (
    BINABLE_ADAPTERS,
    Codec,
    DecodeError,
    OfBinable,
    OfStringable,
    PydanticCodec,
)
from stable_schema.runtime.dispatcher import VersionDecoder, VersionedCodec
from stable_schema.runtime.rpc import RpcVersionBinding, VersionedRpc, bind_rpc

__all__ = [
    "BINABLE_ADAPTERS",
    "BindingError",
    "Bindings",
    "Codec",
    "DecodeError",
    "OfBinable",
    "OfStringable",
    "PydanticCodec",
    "RpcVersionBinding",
    "VersionBinding",
    "VersionDecoder",
    "VersionedCodec",
    "VersionedRpc",
    "bind_family",
    "bind_rpc",
    "build_dispatcher",
]
