# section_merger.py
"""
Pruning and shaping of the JSON trees returned by the prefill generator before
they become a partial-update payload or a site form snapshot.
"""
from __future__ import annotations
import copy
from typing import Any, Dict, Mapping, Optional, Set

from schemas import JsonValue

# Sections whose AI output may only touch these fields
SECTION_ALLOWED_FIELDS: Dict[str, Set[str]] = {
    "generalImplementations": {"implementationNotes", "sectionStatus"},
    "aciInformation": {
        "ITContactName",
        "ITContactTitle",
        "ITContactPhone",
        "ITContactEmail",
        "ITContactExtension",
        "sectionStatus",
    },
}

_DROP = object()


def _prune(node: Any) -> Any:
    if isinstance(node, dict):
        kept = {}
        for key, value in node.items():
            pruned = _prune(value)
            if pruned is not _DROP:
                kept[key] = pruned
        return kept if kept else _DROP
    if isinstance(node, list):
        kept_items = [p for p in (_prune(v) for v in node) if p is not _DROP]
        return kept_items if kept_items else _DROP
    if node is None:
        return _DROP
    if isinstance(node, str) and not node.strip():
        return _DROP
    return node


def clean(tree: JsonValue) -> JsonValue:
    """
    Drop null and blank-string leaves, then any object or list left empty.
    Key order of the retained entries is unchanged and the input is not
    mutated. clean(clean(x)) == clean(x).

    An input that prunes away entirely comes back as the empty container of
    its own type ({} or []), or None for scalars.
    """
    pruned = _prune(tree)
    if pruned is _DROP:
        if isinstance(tree, dict):
            return {}
        if isinstance(tree, list):
            return []
        return None
    return pruned


def restrict_sections(tree: JsonValue, allowed: Optional[Mapping[str, Set[str]]] = None) -> JsonValue:
    """Keep only the allowed fields of the listed sections; other sections pass through."""
    if not isinstance(tree, dict):
        return tree
    allowed = SECTION_ALLOWED_FIELDS if allowed is None else allowed
    out = copy.deepcopy(tree)
    for section, fields in allowed.items():
        node = out.get(section)
        if isinstance(node, dict):
            out[section] = {k: v for k, v in node.items() if k in fields}
    return out


def to_update_payload(tree: JsonValue) -> Optional[Dict[str, Any]]:
    """Top-level object → update payload; anything else cannot be applied (None)."""
    if not isinstance(tree, dict):
        return None
    return copy.deepcopy(tree)
