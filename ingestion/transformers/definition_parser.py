"""
Turn a swagger definitions table into staged schema and GVK rows
"""

from typing import Any, Dict, Mapping, Tuple
import json
import logging

from ingestion.transformers.gvk import GVK_EXTENSION, extract_gvks
from ingestion.transformers.key_mapper import DefinitionKeyError, definition_key_to_schema_keys
from ingestion.transformers.ref_resolver import resolve_definition
from schemas.catalog import ParsedSchema, ParseResult

logger = logging.getLogger(__name__)

# Fields kept in the stored projection, in output order
PROJECTED_FIELDS = ("description", "properties", "required", "type", GVK_EXTENSION)


def project_definition(definition: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only the fields consumers read; falsy values are dropped"""
    return {
        field: definition[field]
        for field in PROJECTED_FIELDS
        if definition.get(field)
    }


def serialize_schema(schema: Any) -> str:
    return json.dumps(schema, separators=(",", ":"), ensure_ascii=False)


class DefinitionParser:
    """
    Parse swagger definitions into schema rows and GVK rows.

    For each definition:
    - Derive the versioned and unversioned schema keys
    - Project the definition and resolve the projection against the full table
    - Stage unresolved and resolved variants under both keys

    Staging is keyed by (schema_key, is_fully_resolved). Several definitions
    share an unversioned key (apps/v1 and apps/v1beta2 Deployment both map to
    "deployment"); the last definition processed wins and the row keeps the
    position where the key was first staged.
    """

    def parse(self, definitions: Mapping[str, Any]) -> ParseResult:
        staged: Dict[Tuple[str, bool], ParsedSchema] = {}
        skipped = []

        for definition_key, definition in definitions.items():
            if not isinstance(definition, Mapping):
                logger.warning(f"Skipping non-object definition {definition_key}")
                skipped.append(definition_key)
                continue

            try:
                keys = definition_key_to_schema_keys(definition_key)
            except DefinitionKeyError as e:
                logger.warning(f"Skipping definition: {e}")
                skipped.append(definition_key)
                continue

            projection = project_definition(definition)
            unresolved_json = serialize_schema(projection)
            resolved_json = serialize_schema(
                resolve_definition(definition_key, definitions, schema=projection)
            )

            for schema_key in (keys.versioned, keys.unversioned):
                staged[(schema_key, False)] = ParsedSchema(
                    schema_key=schema_key,
                    schema_data=unresolved_json,
                    is_fully_resolved=False,
                )
                staged[(schema_key, True)] = ParsedSchema(
                    schema_key=schema_key,
                    schema_data=resolved_json,
                    is_fully_resolved=True,
                )

        gvks = extract_gvks(definitions)

        logger.info(
            f"Parsed {len(definitions)} definitions into {len(staged)} schema rows "
            f"and {len(gvks)} GVKs ({len(skipped)} skipped)"
        )

        return ParseResult(
            schemas=list(staged.values()),
            gvks=gvks,
            definition_count=len(definitions),
            skipped_definitions=skipped,
        )


def parse_swagger_definitions(definitions: Mapping[str, Any]) -> ParseResult:
    """Module-level shortcut for DefinitionParser().parse"""
    return DefinitionParser().parse(definitions)
