"""
Prefill generation: fills the sections of a BRD JSON tree from supporting
documents, optionally steered by a legacy/site context.
"""
from __future__ import annotations
import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from document_store import DocumentStore
from llm_provider import LLMProvider, parse_json_reply
from schemas import ContextName, JsonValue
from settings import settings

log = logging.getLogger("legacybrd.prefill_generator")


class PrefillGenerator(ABC):
    @abstractmethod
    async def generate(self, base_json: JsonValue, document_names: List[str]) -> JsonValue:
        """Prefill without legacy context."""

    @abstractmethod
    async def generate_with_context(
        self,
        base_json: JsonValue,
        document_names: List[str],
        context_name: ContextName,
        additional_context: str,
    ) -> JsonValue:
        """Prefill scoped to one legacy entity (main BRD or site)."""


class LlmPrefillGenerator(PrefillGenerator):
    def __init__(self, provider: LLMProvider, documents: DocumentStore,
                 max_document_chars: int = settings.LLM_MAX_DOCUMENT_CHARS):
        self.provider = provider
        self.documents = documents
        self.max_document_chars = max_document_chars

    def _prompt(self, section: str, node: JsonValue, docs: Dict[str, str],
                context_name: ContextName, additional_context: Optional[str]) -> str:
        budget = self.max_document_chars // max(1, len(docs))
        doc_block = "\n\n".join(f"### {name}\n{text[:budget]}" for name, text in docs.items())
        extra = f"\nAdditional context:\n{additional_context}\n" if additional_context else ""
        return f"""{context_name.prompt}
{extra}
Supporting documents:
-----
{doc_block}
-----

Section "{section}":
{json.dumps(node, ensure_ascii=False, indent=2)}

Respond with ONLY the updated JSON for this section."""

    def _fill_section(self, section: str, node: JsonValue, docs: Dict[str, str],
                      context_name: ContextName, additional_context: Optional[str]) -> JsonValue:
        reply = self.provider.complete(self._prompt(section, node, docs, context_name, additional_context))
        try:
            filled = parse_json_reply(reply)
        except ValueError as e:
            log.warning("Section %s kept as-is, unparseable reply: %s", section, e)
            return node
        if type(filled) is not type(node):
            log.warning("Section %s kept as-is, reply changed the JSON type", section)
            return node
        return filled

    async def _run(self, base_json: JsonValue, document_names: List[str],
                   context_name: ContextName, additional_context: Optional[str]) -> JsonValue:
        if not isinstance(base_json, dict):
            return base_json
        docs = await self.documents.get_texts(document_names)
        out = copy.deepcopy(base_json)
        for section, node in base_json.items():
            if node is None:
                continue
            out[section] = await asyncio.to_thread(
                self._fill_section, section, node, docs, context_name, additional_context
            )
        log.info("Prefilled %d section(s) [%s]", len(out), context_name.value)
        return out

    async def generate(self, base_json: JsonValue, document_names: List[str]) -> JsonValue:
        return await self._run(base_json, document_names, ContextName.PREFILL, None)

    async def generate_with_context(self, base_json, document_names, context_name, additional_context):
        return await self._run(base_json, document_names, context_name, additional_context)
