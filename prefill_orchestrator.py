# prefill_orchestrator.py
"""
Legacy BRD prefill: fill the main BRD and each of its sites from supporting
documents, steered by the legacy record when one exists.

FETCH_FORM -> DISPATCH_MAIN -> DISPATCH_SITES -> AGGREGATE -> DONE | FAILED

The result is a single boolean. "No BRD found", "no response data" and JSON
processing problems all come back as False; the only error that escapes is
LegacyBrdNotFoundError, when the form cannot be converted and there is no
legacy record to fall back on.
"""
from __future__ import annotations
import copy
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from brd_client import BrdClient
from errors import LegacyBrdNotFoundError
from legacy_repo import LegacyBrdStore, SiteStore
from prefill_generator import PrefillGenerator
from prefill_sections import map_response_to_prefill_sections
from schemas import ApiResponse, ContextName, JsonValue, LegacyBrd, LegacyEntityInfo, LegacyPrefillRequest, Site
from section_merger import clean, restrict_sections, to_update_payload

log = logging.getLogger("legacybrd.prefill")

BRD_CONTEXT_TEMPLATE = (
    "You will be processing a JSON document that contains BRD information. "
    "Focus ONLY on objects with brdId: {brdId}. from context"
    "Ignore any other objects with different brdId's. from context"
    "If you don't find any objects with the given brdId: {brdId}, then return the question exactly as it was given, maintaining the same format."
)

NEW_SITE_DESCRIPTION = "Site created from legacy BRD data"


class PrefillState(str, Enum):
    FETCH_FORM = "FETCH_FORM"
    DISPATCH_MAIN = "DISPATCH_MAIN"
    DISPATCH_SITES = "DISPATCH_SITES"
    AGGREGATE = "AGGREGATE"
    DONE = "DONE"
    FAILED = "FAILED"


def build_context(entity_id: str) -> str:
    return BRD_CONTEXT_TEMPLATE.replace("{brdId}", entity_id)


def process_brd_response(response: Optional[ApiResponse], brd_id: str) -> Optional[Dict[str, Any]]:
    """BRD form data from a fetch response, or None when there is nothing usable."""
    if response is None or response.data is None:
        log.error("No BRD data found in the response for BRD ID: %s", brd_id)
        return None
    if not isinstance(response.data, dict):
        log.error("BRD data for BRD ID %s is not an object", brd_id)
        return None
    return response.data


def handle_update_response(response: Optional[ApiResponse], brd_id: str) -> str:
    """BRD id to attach sites to; an empty update response is a no-op success."""
    if response is None or not isinstance(response.data, dict):
        log.warning("BRD response body or data is empty")
        return brd_id
    return response.data.get("brdId") or brd_id


def handle_conversion_error(error: Exception, brd_id: str, legacy: Optional[LegacyBrd]) -> bool:
    log.error("Error converting/processing BRD response: %s", error)
    if legacy is None:
        raise LegacyBrdNotFoundError(f"Legacy BRD data is not available for BRD ID: {brd_id}") from error
    return False


def aggregate(main_ok: bool, site_results: List[bool]) -> bool:
    if site_results:
        log.info("Completed prefill processing for all sites. Success rate: %d/%d",
                 sum(1 for r in site_results if r), len(site_results))
    return main_ok and all(site_results)


def new_site(brd_id: str, info: LegacyEntityInfo, form: Dict[str, Any]) -> Site:
    now = datetime.now(timezone.utc)
    return Site(
        brd_id=brd_id,
        site_id=info.id,
        site_name=info.name,
        identifier_code=info.id,
        description=NEW_SITE_DESCRIPTION,
        brd_form=copy.deepcopy(form),
        created_at=now,
        updated_at=now,
    )


class PrefillOrchestrator:
    def __init__(self, brd_client: BrdClient, generator: PrefillGenerator,
                 legacy_store: LegacyBrdStore, site_store: SiteStore):
        self.brd_client = brd_client
        self.generator = generator
        self.legacy_store = legacy_store
        self.site_store = site_store

    async def prefill(self, request: LegacyPrefillRequest) -> bool:
        brd_id, documents = request.brd_id, list(request.document_names)
        log.info("Prefill request received - BRD ID: %s, Documents: %s", brd_id, documents)

        self._enter(PrefillState.FETCH_FORM, brd_id)
        try:
            legacy = await self.legacy_store.find_by_brd_id(brd_id)
        except Exception as e:
            log.error("Error finding LegacyBRD with BRDId %s: %s", brd_id, e)
            return self._finish(PrefillState.FAILED, brd_id, False)
        if legacy is None:
            log.warning("No LegacyBRD found with BRDId: %s, proceeding without legacy data", brd_id)

        try:
            response = await self.brd_client.get_brd_by_id(brd_id)
        except Exception as e:
            log.error("Error fetching BRD with ID %s: %s", brd_id, e)
            return self._finish(PrefillState.FAILED, brd_id, False)
        form = process_brd_response(response, brd_id)
        if form is None:
            return self._finish(PrefillState.FAILED, brd_id, False)

        try:
            base = map_response_to_prefill_sections(form)
        except ValueError as e:
            return self._finish(PrefillState.FAILED, brd_id, handle_conversion_error(e, brd_id, legacy))

        state = self._enter(PrefillState.DISPATCH_MAIN, brd_id)
        use_legacy = legacy is not None and legacy.main is not None
        try:
            outcome = await self._dispatch_main(brd_id, base, legacy if use_legacy else None, documents)
        except Exception as e:
            log.error("Error during %s for BRD %s: %s", state.value, brd_id, e)
            return self._finish(PrefillState.FAILED, brd_id, False)
        if outcome is None:
            return self._finish(PrefillState.FAILED, brd_id, False)
        cleaned, target_brd_id = outcome

        site_results: List[bool] = []
        if use_legacy and legacy.sites:
            self._enter(PrefillState.DISPATCH_SITES, brd_id)
            site_results = await self._dispatch_sites(target_brd_id, legacy, cleaned, documents)
        elif legacy is not None and legacy.sites:
            log.warning("LegacyBRD %s has %d site(s) but no main entity; sites skipped",
                        brd_id, len(legacy.sites))
        else:
            log.info("No sites found in LegacyBRD to create for BRD ID: %s", target_brd_id)

        self._enter(PrefillState.AGGREGATE, brd_id)
        ok = aggregate(True, site_results)
        return self._finish(PrefillState.DONE if ok else PrefillState.FAILED, brd_id, ok)

    def _enter(self, state: PrefillState, brd_id: str) -> PrefillState:
        log.debug("Prefill %s -> %s", brd_id, state.value)
        return state

    def _finish(self, state: PrefillState, brd_id: str, result: bool) -> bool:
        log.info("Prefill %s finished in state %s (result=%s)", brd_id, state.value, result)
        return result

    async def _dispatch_main(self, brd_id: str, base: Dict[str, Any], legacy: Optional[LegacyBrd],
                             documents: List[str]) -> Optional[Tuple[Dict[str, Any], str]]:
        if legacy is not None:
            log.info("Enhancing prefill sections with LegacyBRD data - BRD ID: %s", brd_id)
            processed = await self.generator.generate_with_context(
                base, documents, ContextName.LEGACY_PREFILL, build_context(legacy.main.id)
            )
        else:
            log.info("No legacy BRD data available, prefilling without additional context")
            processed = await self.generator.generate(base, documents)

        cleaned = clean(restrict_sections(processed))
        payload = to_update_payload(cleaned)
        if payload is None:
            log.error("Processed JSON for BRD %s is not an object", brd_id)
            return None

        response = await self.brd_client.update_brd_partially_with_ordered_operations(brd_id, payload)
        return payload, handle_update_response(response, brd_id)

    async def _dispatch_sites(self, brd_id: str, legacy: LegacyBrd, base: Dict[str, Any],
                              documents: List[str]) -> List[bool]:
        log.info("Starting prefill processing for %d sites", len(legacy.sites))
        results = []
        # sequential: one prefill call in flight per request
        for info in legacy.sites:
            results.append(await self._process_site(brd_id, info, legacy, base, documents))
        return results

    async def _process_site(self, brd_id: str, info: LegacyEntityInfo, legacy: LegacyBrd,
                            base: Dict[str, Any], documents: List[str]) -> bool:
        log.info("Processing prefill for site: %s (%s)", info.name, info.id)
        try:
            site = await self.site_store.find_by_brd_id_and_site_id(brd_id, info.id)
            if site is None:
                log.info("No existing site found. Creating new site for brdId: %s and siteId: %s", brd_id, info.id)
                site = await self.site_store.save(new_site(brd_id, info, base))
            else:
                log.info("Found existing site: %s (%s)", site.site_name, site.site_id)

            processed: JsonValue = await self.generator.generate_with_context(
                copy.deepcopy(base), documents, ContextName.LEGACY_PREFILL, build_context(site.site_id)
            )
            form = clean(processed)
            if not isinstance(form, dict):
                log.error("Processed JSON for site %s is not an object", info.id)
                return False
            site.brd_form = form
            site.updated_at = datetime.now(timezone.utc)
            saved = await self.site_store.save(site)
            log.info("Successfully updated site %s with prefilled data", saved.site_id)
        except Exception as e:
            log.error("Error in prefill for site %s (%s): %s", info.name, info.id, e)
            return False

        return await self._record_site(legacy, info, saved)

    async def _record_site(self, legacy: LegacyBrd, info: LegacyEntityInfo, saved: Site) -> bool:
        if info.site_record_id == saved.id:
            return True
        info.site_record_id = saved.id
        try:
            await self.legacy_store.save(legacy)
        except Exception as e:
            log.error("Could not record site %s on LegacyBRD %s: %s", info.id, legacy.brd_id, e)
            return False
        return True
