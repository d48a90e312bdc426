# reconciler.py
import logging
from typing import Dict, List, Optional, Sequence

from blob_storage import BlobStorage
from errors import ExternalCollaboratorError
from rule_classifier import group_guidance, needs_lookup
from rule_parser import FileType, format_guidance_catalog, parse_byte_array_content
from schemas import GuidanceEntry, RuleRecord
from semantic_matcher import SemanticMatcher
from settings import settings

log = logging.getLogger("legacybrd.reconciler")


class GuidanceCatalogStore:
    """The guidance catalog is one blob; every save overwrites it."""

    def __init__(self, storage: BlobStorage, file_name: str = settings.GUIDANCE_FILE_NAME):
        self.storage = storage
        self.file_name = file_name

    async def load(self) -> List[GuidanceEntry]:
        content = await self.storage.fetch_file(self.file_name)
        entries = parse_byte_array_content(content, FileType.STANDARD_DATA)
        log.info("Parsed %d guidance data entries", len(entries))
        return entries

    async def save(self, entries: Sequence[GuidanceEntry]) -> None:
        log.info("Updating guidance document with %d total rules", len(entries))
        await self.storage.update_file(self.file_name, format_guidance_catalog(entries))


def find_new_rules(rules: Sequence[RuleRecord], existing: Sequence[GuidanceEntry]) -> List[GuidanceEntry]:
    """
    One candidate per distinct rule name that has no valid mapping yet,
    in first-seen order.
    """
    index = group_guidance(existing)
    seen = set()
    candidates: List[GuidanceEntry] = []
    for rule in rules:
        name = rule.match_name
        if name in seen or not needs_lookup(rule, index):
            continue
        seen.add(name)
        candidates.append(GuidanceEntry(source_name=name))
    log.info("Found %d new rules to process with AI", len(candidates))
    return candidates


def merge_guidance(existing: Sequence[GuidanceEntry], resolved: Sequence[GuidanceEntry]) -> List[GuidanceEntry]:
    """
    Existing entries keep their position; a resolved entry with a mapping
    replaces an unmapped entry of the same name, unknown names are appended.
    """
    merged = list(existing)
    position: Dict[str, int] = {}
    for i, g in enumerate(merged):
        if g.source_name is not None:
            position.setdefault(g.source_name, i)

    for g in resolved:
        if g.source_name is None:
            continue
        i = position.get(g.source_name)
        if i is None:
            position[g.source_name] = len(merged)
            merged.append(g)
        elif not settings.is_valid_mapping_key(merged[i].mapping_key) and settings.is_valid_mapping_key(g.mapping_key):
            merged[i] = g
    return merged


async def reconcile(
    existing: List[GuidanceEntry],
    new_rules: Sequence[RuleRecord],
    matcher: SemanticMatcher,
    catalog_store: Optional[GuidanceCatalogStore] = None,
) -> List[GuidanceEntry]:
    """
    Bring the guidance catalog up to date with an uploaded rule set.

    Rules whose name has no valid mapping are sent to the semantic matcher in
    a single batched call; results are merged into the catalog, which is then
    persisted as a whole. Matcher and persistence failures are fatal.
    """
    if not new_rules:
        log.info("No new rules to process, using existing guidance data")
        return existing

    candidates = find_new_rules(new_rules, existing)
    if not candidates:
        log.info("Every rule already has guidance, catalog unchanged")
        return existing

    log.info("Starting semantic matching for %d rule name(s)", len(candidates))
    try:
        resolved = await matcher.find_matches(candidates)
    except ExternalCollaboratorError:
        raise
    except Exception as e:
        log.error("Error in semantic matching: %s", e)
        raise ExternalCollaboratorError("semantic matcher", "matching failed", e) from e

    if resolved is None or len(resolved) != len(candidates):
        got = "None" if resolved is None else len(resolved)
        raise ExternalCollaboratorError(
            "semantic matcher", f"expected {len(candidates)} results, got {got}"
        )
    log.info("Semantic matching completed successfully")

    # results are positional; fill a missing name from its candidate
    resolved = [
        r if r.source_name else r.model_copy(update={"source_name": c.source_name})
        for c, r in zip(candidates, resolved)
    ]
    merged = merge_guidance(existing, resolved)
    if catalog_store is not None:
        try:
            await catalog_store.save(merged)
        except ExternalCollaboratorError:
            raise
        except Exception as e:
            raise ExternalCollaboratorError("guidance catalog", "cannot persist catalog", e) from e
    return merged
