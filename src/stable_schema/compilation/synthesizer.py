"""Dispatcher Synthesizer: structural declarations generated for a family.

For a validated SchemaFamily the synthesizer emits, relative to the family
container:

- ``module Latest = V<n>`` with ``type t = V<n>.t`` for each versioned type
- ``serialize : Latest.t -> bytes``
- ``deserialize_opt : bytes -> Latest.t option``
- the decoder trial order (newest first)

RPC families get one operation pair per versioned type
(``serialize_query``, ``deserialize_query_opt``, ...).

The executable counterpart of these declarations lives in
``stable_schema.runtime``.
"""

from __future__ import annotations

import structlog

from stable_schema.schemas.config import CompilerConfig
from stable_schema.schemas.declarations import ModuleDecl, TypeDecl, TypeExpr, TypeKind, ValueDecl
from stable_schema.schemas.family import SchemaFamily
from stable_schema.schemas.generated import GeneratedFamily

logger = structlog.get_logger(__name__)

BUFFER_TYPE = "bytes"
OPTION_TYPE = "option"


def decode_order(family: SchemaFamily) -> tuple[int, ...]:
    """Version numbers in the order their decoders are tried (newest first)."""
    return tuple(v.number for v in reversed(family.versions))


def operation_names(type_name: str, config: CompilerConfig | None = None) -> tuple[str, str]:
    """Names of the serialize/deserialize pair generated for a versioned type.

    Example:
        >>> operation_names("t")
        ('serialize', 'deserialize_opt')
        >>> operation_names("query")
        ('serialize_query', 'deserialize_query_opt')
    """
    cfg = config or CompilerConfig()
    if type_name == cfg.versioned_type_name:
        return "serialize", "deserialize_opt"
    return f"serialize_{type_name}", f"deserialize_{type_name}_opt"


def synthesize(family: SchemaFamily, config: CompilerConfig | None = None) -> GeneratedFamily:
    """Generate the Latest alias and dispatcher declarations for a family.

    Args:
        family: A validated family.
        config: Naming conventions (defaults apply when None).

    Returns:
        GeneratedFamily with the Latest module, operations and decode order.
    """
    cfg = config or CompilerConfig()
    latest = family.latest

    latest_module = ModuleDecl(
        name=cfg.latest_name,
        alias_of=latest.name,
        types=tuple(
            TypeDecl(
                name=type_name,
                kind=TypeKind.ALIAS,
                alias=TypeExpr(path=(latest.name, type_name)),
                location=family.location,
            )
            for type_name in family.type_names
        ),
        location=family.location,
    )

    operations: list[ValueDecl] = []
    for type_name in family.type_names:
        latest_type = TypeExpr(path=(cfg.latest_name, type_name))
        serialize_name, deserialize_name = operation_names(type_name, cfg)
        operations.append(
            ValueDecl(
                name=serialize_name,
                params=(latest_type,),
                returns=TypeExpr.of(BUFFER_TYPE),
                location=family.location,
            )
        )
        operations.append(
            ValueDecl(
                name=deserialize_name,
                params=(TypeExpr.of(BUFFER_TYPE),),
                returns=TypeExpr(path=(OPTION_TYPE,), args=(latest_type,)),
                location=family.location,
            )
        )

    generated = GeneratedFamily(
        family=family.name,
        container_path=family.container_path,
        latest_version=latest.number,
        latest_module=latest_module,
        operations=tuple(operations),
        decode_order=decode_order(family),
    )
    logger.debug(
        "family_synthesized",
        family=family.name,
        latest=latest.number,
        operations=[op.name for op in operations],
    )
    return generated


__all__ = ["BUFFER_TYPE", "OPTION_TYPE", "decode_order", "operation_names", "synthesize"]
