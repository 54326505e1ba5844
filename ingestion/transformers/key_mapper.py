"""
Map fully-qualified swagger definition names onto catalog schema keys
"""

from schemas.catalog import SchemaKeys

# Groups that are addressed without a group segment in the versioned key
CORE_GROUP_ALIASES = frozenset({"core", "api"})


class DefinitionKeyError(ValueError):
    """Raised for a definition name too short to carry group, version and kind"""


def definition_key_to_schema_keys(definition_key: str) -> SchemaKeys:
    """
    Convert a swagger definition key to its versioned and unversioned schema keys.

    Examples:
        io.k8s.api.apps.v1.Deployment  -> deployment-apps-v1 / deployment
        io.k8s.api.core.v1.Pod         -> pod-v1 / pod
        io.k8s.apimachinery.pkg.apis.meta.v1.ObjectMeta -> objectmeta-meta-v1 / objectmeta

    Raises:
        DefinitionKeyError: If the name has fewer than three dot-separated segments
    """
    parts = definition_key.split(".")
    if len(parts) < 3 or not all(parts[-3:]):
        raise DefinitionKeyError(f"Cannot derive schema keys from {definition_key!r}")

    kind = parts[-1].lower()
    api_version = parts[-2].lower()
    group = parts[-3].lower()

    if group in CORE_GROUP_ALIASES:
        versioned = f"{kind}-{api_version}"
    else:
        versioned = f"{kind}-{group}-{api_version}"

    return SchemaKeys(versioned=versioned, unversioned=kind)
