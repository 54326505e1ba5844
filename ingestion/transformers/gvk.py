"""
Group-Version-Kind extraction and canonical version selection
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from pydantic import ValidationError
from schemas.catalog import GroupVersionKind

logger = logging.getLogger(__name__)

GVK_EXTENSION = "x-kubernetes-group-version-kind"

API_VERSION_PATTERN = re.compile(r"^v(\d+)(alpha|beta)?(\d+)?$")

MATURITY_STABLE = 3
MATURITY_BETA = 2
MATURITY_ALPHA = 1

UNRANKED: Tuple[int, int, int] = (-1, -1, -1)

# Kinds that are not hand-authored resources
EXCLUDED_KINDS = frozenset({
    # Meta / plumbing
    "Status", "APIGroup", "APIGroupList", "APIResourceList", "APIVersions",
    "WatchEvent", "DeleteOptions", "Scale", "Eviction",
    # Rarely hand-authored / system-generated
    "Binding", "ComponentStatus", "SelfSubjectAccessReview", "SelfSubjectRulesReview",
    "SelfSubjectReview", "SubjectAccessReview", "LocalSubjectAccessReview",
    "TokenRequest", "TokenReview", "StorageVersion", "StorageVersionMigration",
})

COLLECTION_SUFFIX = "List"


def rank_version(version: str) -> Tuple[int, int, int]:
    """
    Rank an API version as (major, maturity, sequence).

    v1 -> (1, 3, 0), v1beta2 -> (1, 2, 2), v2alpha1 -> (2, 1, 1).
    Anything that does not parse ranks (-1, -1, -1) and never wins.
    """
    match = API_VERSION_PATTERN.match(version or "")
    if not match:
        return UNRANKED

    major = int(match.group(1))
    stage = match.group(2)
    sequence = int(match.group(3) or 0)

    if stage is None:
        maturity = MATURITY_STABLE
    elif stage == "beta":
        maturity = MATURITY_BETA
    else:
        maturity = MATURITY_ALPHA

    return major, maturity, sequence


def extract_gvks(definitions: Mapping[str, Any]) -> List[GroupVersionKind]:
    """
    Collect x-kubernetes-group-version-kind annotations from every definition.

    Order follows the definitions table; duplicates keep their first occurrence.
    Malformed annotations are logged and skipped.
    """
    seen: Dict[Tuple[str, str, str], GroupVersionKind] = {}

    for definition_key, definition in definitions.items():
        if not isinstance(definition, Mapping):
            continue
        annotations = definition.get(GVK_EXTENSION)
        if annotations is None:
            continue
        if not isinstance(annotations, list):
            logger.warning(f"Ignoring non-list {GVK_EXTENSION} on {definition_key}")
            continue

        for annotation in annotations:
            try:
                gvk = GroupVersionKind.model_validate(annotation)
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed GVK annotation on {definition_key}: {annotation!r} "
                    f"({e.error_count()} errors)"
                )
                continue

            key = (gvk.group, gvk.version, gvk.kind)
            if key not in seen:
                seen[key] = gvk

    return list(seen.values())


def _is_real_resource(gvk: GroupVersionKind) -> bool:
    return not gvk.kind.endswith(COLLECTION_SUFFIX) and gvk.kind not in EXCLUDED_KINDS


def _preference(gvk: GroupVersionKind) -> Tuple[Tuple[int, int, int], str]:
    # Equal ranks fall back to the version string so input order never matters
    return rank_version(gvk.version), gvk.version


def filter_real_resources(gvks: Iterable[GroupVersionKind]) -> List[GroupVersionKind]:
    """
    Reduce a release's GVKs to one canonical entry per (group, kind).

    1. Drop list kinds and the excluded administrative kinds
    2. Keep the best ranked version per (group, kind)
    3. Sort by (group, kind, version) for stable display
    """
    best: Dict[Tuple[str, str], GroupVersionKind] = {}

    for gvk in gvks:
        if not _is_real_resource(gvk):
            continue
        key = (gvk.group, gvk.kind)
        current = best.get(key)
        if current is None or _preference(gvk) > _preference(current):
            best[key] = gvk

    return sorted(best.values(), key=lambda g: (g.group, g.kind, g.version))
