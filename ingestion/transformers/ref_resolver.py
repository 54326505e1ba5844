"""
Inline internal "#/definitions/..." references into self-contained schemas.

Upstream definitions are untyped JSON. At the point of resolution every value
is classified into one of four node shapes so the recursion is exhaustive:

    RefNode     {"$ref": "#/definitions/X"}
    ObjectNode  any other mapping
    ArrayNode   any list or tuple
    ScalarNode  everything else (str, int, float, bool, None)

Cycle handling uses a per-path visited set. It is passed down by value, so two
sibling branches that reference the same definition both resolve fully and
only a definition that reappears on its own resolution path is cut off.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

DEFINITIONS_REF = re.compile(r"^#/definitions/(.+)$")


@dataclass(frozen=True)
class RefNode:
    target: str


@dataclass(frozen=True)
class ObjectNode:
    members: Mapping[str, Any]


@dataclass(frozen=True)
class ArrayNode:
    items: Sequence[Any]


@dataclass(frozen=True)
class ScalarNode:
    value: Any


JsonNode = Union[RefNode, ObjectNode, ArrayNode, ScalarNode]


def classify(value: Any) -> JsonNode:
    """Tag a raw JSON value with its node shape"""
    if isinstance(value, Mapping):
        ref = value.get("$ref")
        if isinstance(ref, str):
            match = DEFINITIONS_REF.match(ref)
            if match:
                return RefNode(target=match.group(1))
        return ObjectNode(members=value)
    if isinstance(value, (list, tuple)):
        return ArrayNode(items=value)
    return ScalarNode(value=value)


def resolve_refs(
    value: Any,
    definitions: Mapping[str, Any],
    visited: FrozenSet[str] = frozenset(),
) -> Any:
    """
    Return a copy of value with every reachable definition reference inlined.

    A reference whose target is already on the current path resolves to {}.
    So does a reference whose target is missing from the definitions table.
    The input is never modified.

    Args:
        value: Any JSON value (typically one definition or a projection of it)
        definitions: The full swagger definitions table
        visited: Definition names already being resolved on this path
    """
    node = classify(value)

    if isinstance(node, RefNode):
        if node.target in visited:
            return {}
        target = definitions.get(node.target)
        if target is None:
            logger.debug(f"Reference target {node.target} not in definitions, inlining {{}}")
            return {}
        return resolve_refs(target, definitions, visited | {node.target})

    if isinstance(node, ObjectNode):
        return {
            key: resolve_refs(member, definitions, visited)
            for key, member in node.members.items()
        }

    if isinstance(node, ArrayNode):
        return [resolve_refs(item, definitions, visited) for item in node.items]

    return node.value


def resolve_definition(
    definition_key: str,
    definitions: Mapping[str, Any],
    schema: Any = None,
) -> Dict[str, Any]:
    """
    Resolve one definition with its own name already on the path.

    schema defaults to the definition itself; pass a projection of it to
    resolve only selected fields against the full table.
    """
    if schema is None:
        schema = definitions.get(definition_key, {})
    return resolve_refs(schema, definitions, frozenset({definition_key}))
