"""Runtime side of versioned RPC definitions.

An RPC family has two dispatchers, one for ``query`` and one for
``response``, plus the Latest version's call-site adapters. VersionedRpc
wires them together so callers and callees only handle their own models:

    caller model -> query_of_caller_model -> serialize_query
    deserialize_query_opt -> callee_model_of_query -> callee model
    callee model -> response_of_callee_model -> serialize_response
    deserialize_response_opt -> caller_model_of_response -> caller model

Transport is out of scope: buffers are handed to and from the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from stable_schema.runtime.binding import BindingError, VersionBinding, build_dispatcher
from stable_schema.runtime.dispatcher import VersionedCodec
from stable_schema.schemas.family import RPC_ADAPTER_NAMES, FamilyKind, SchemaFamily

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RpcVersionBinding:
    """Runtime pieces of one RPC version.

    Attributes:
        query: Codec and upgrade of the version's query type.
        response: Codec and upgrade of the version's response type.
        adapters: The four call-site adapters, by name.
    """

    query: VersionBinding
    response: VersionBinding
    adapters: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)


class VersionedRpc:
    """Query and response dispatchers of one RPC family.

    Attributes:
        family: Dotted family name.
        query: Dispatcher of the query type.
        response: Dispatcher of the response type.
    """

    def __init__(
        self,
        family: str,
        query: VersionedCodec,
        response: VersionedCodec,
        adapters: Mapping[str, Callable[[Any], Any]],
    ) -> None:
        self.family = family
        self.query = query
        self.response = response
        self._adapters = dict(adapters)

    def adapter(self, name: str) -> Callable[[Any], Any]:
        """Return a Latest call-site adapter by name."""
        return self._adapters[name]

    def encode_query(self, caller_model: Any) -> bytes:
        return self.query.serialize(self._adapters["query_of_caller_model"](caller_model))

    def decode_query_opt(self, buffer: bytes) -> Any | None:
        query = self.query.deserialize_opt(buffer)
        if query is None:
            return None
        return self._adapters["callee_model_of_query"](query)

    def encode_response(self, callee_model: Any) -> bytes:
        return self.response.serialize(self._adapters["response_of_callee_model"](callee_model))

    def decode_response_opt(self, buffer: bytes) -> Any | None:
        response = self.response.deserialize_opt(buffer)
        if response is None:
            return None
        return self._adapters["caller_model_of_response"](response)


def bind_rpc(family: SchemaFamily, bindings: Mapping[int, RpcVersionBinding]) -> VersionedRpc:
    """Bind an RPC family to its runtime codecs and adapters.

    Args:
        family: A validated RPC family.
        bindings: One RpcVersionBinding per version number.

    Returns:
        VersionedRpc for the family.

    Raises:
        BindingError: If the family is not an RPC family, bindings do not
            match its versions, or a version lacks one of the four adapters.
    """
    if family.kind is not FamilyKind.RPC:
        raise BindingError(family.name, "only RPC families are bound with bind_rpc()")

    for number, binding in bindings.items():
        missing = [name for name in RPC_ADAPTER_NAMES if name not in binding.adapters]
        if missing:
            raise BindingError(
                family.name, f"V{number} is missing adapter(s): {', '.join(missing)}"
            )

    query_type, response_type = family.type_names
    query = build_dispatcher(family, {n: b.query for n, b in bindings.items()}, query_type)
    response = build_dispatcher(family, {n: b.response for n, b in bindings.items()}, response_type)

    latest_adapters = bindings[family.latest.number].adapters
    logger.debug("rpc_bound", family=family.name, latest=family.latest.number)
    return VersionedRpc(family.name, query, response, latest_adapters)


__all__ = ["RpcVersionBinding", "VersionedRpc", "bind_rpc"]
