# legacy_service.py
import asyncio
import logging
from typing import List, Sequence

from blob_storage import BlobStorage
from errors import ExternalCollaboratorError, RulesValidationError
from legacy_repo import LegacyBrdStore
from prefill_orchestrator import PrefillOrchestrator
from reconciler import GuidanceCatalogStore, reconcile
from rule_combiner import build_artifact
from rule_parser import FileType, parse_byte_array_content
from schemas import GuidanceEntry, LegacyBrd, LegacyBrdRequest, LegacyEntityInfo, LegacyPrefillRequest, RuleRecord
from semantic_matcher import SemanticMatcher
from settings import settings

log = logging.getLogger("legacybrd.service")


def derive_legacy_brd(rules: Sequence[RuleRecord], brd_id: str) -> LegacyBrd:
    """
    The first row of an export is the main entity. Every later row with the
    site marker rule whose value differs from its own owner id describes a
    site (deduplicated by id, export order kept).
    """
    if not rules:
        raise RulesValidationError("No BRD rules found in the uploaded file")
    first = rules[0]
    main = LegacyEntityInfo(id=first.owner_id or "", name=first.owner_name)

    sites: List[LegacyEntityInfo] = []
    seen = set()
    for rule in rules[1:]:
        if rule.rule_id != settings.SITE_MARKER_RULE_ID or not rule.owner_id:
            continue
        if rule.owner_id == rule.value or rule.owner_id in seen:
            continue
        seen.add(rule.owner_id)
        sites.append(LegacyEntityInfo(id=rule.owner_id, name=rule.owner_name))
    return LegacyBrd(brd_id=brd_id, main=main, sites=sites)


class LegacyBrdService:
    def __init__(self, storage: BlobStorage, matcher: SemanticMatcher,
                 legacy_store: LegacyBrdStore, orchestrator: PrefillOrchestrator,
                 catalog_store: GuidanceCatalogStore | None = None):
        self.storage = storage
        self.matcher = matcher
        self.legacy_store = legacy_store
        self.orchestrator = orchestrator
        self.catalog_store = catalog_store or GuidanceCatalogStore(storage)

    async def get_standard_data(self, file_url: str) -> List[GuidanceEntry]:
        if not file_url or not file_url.strip():
            raise ValueError("File URL must not be empty")
        content = await self.storage.fetch_file_from_url(file_url)
        return parse_byte_array_content(content, FileType.STANDARD_DATA)

    async def get_user_rules(self, file_url: str) -> List[RuleRecord]:
        if not file_url or not file_url.strip():
            raise ValueError("File URL must not be empty")
        content = await self.storage.fetch_file_from_url(file_url)
        return parse_byte_array_content(content, FileType.USER_RULES)

    async def get_rules_with_data(self, request: LegacyBrdRequest) -> bytes:
        """
        Reconcile an uploaded legacy rule export against the guidance catalog
        and return the combined rules artifact (pretty-printed JSON bytes).
        """
        log.info("Starting getRulesWithData for BRD ID: %s", request.brd_id)
        log.info("BRD Rules File URL: %s", request.brd_rules_file_url)

        guidance, rules = await asyncio.gather(
            self.catalog_store.load(),
            self.get_user_rules(request.brd_rules_file_url),
        )
        log.info("Parsed %d BRD rules", len(rules))

        legacy = derive_legacy_brd(rules, request.brd_id)
        try:
            await self.legacy_store.save(legacy)
        except Exception as e:
            raise ExternalCollaboratorError("legacy store", "Failed to save BRD data", e) from e

        updated = await reconcile(guidance, rules, self.matcher, self.catalog_store)
        return build_artifact(rules, updated)

    async def prefill_legacy_brd(self, request: LegacyPrefillRequest) -> bool:
        return await self.orchestrator.prefill(request)
