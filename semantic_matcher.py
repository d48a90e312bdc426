"""
Semantic matching of legacy rule names to BRD form fields.

The pipeline only relies on the SemanticMatcher contract: one batched call,
results in the same order and of the same length as the candidates, with the
mapping fields left empty where nothing matched.
"""
from __future__ import annotations
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import yaml
from pydantic import BaseModel

from llm_provider import LLMProvider, parse_json_reply
from schemas import GuidanceEntry
from settings import settings

log = logging.getLogger("legacybrd.matcher")


class BrdField(BaseModel):
    key: str
    question_id: Optional[str] = None
    label: Optional[str] = None


def load_field_catalog(path: str = settings.BRD_FIELD_CATALOG_PATH) -> List[BrdField]:
    """Read the BRD field catalog (list of {key, question_id, label}) from YAML."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        log.warning("BRD field catalog %s not found; semantic matching will resolve nothing", path)
        return []
    items = raw.get("fields", []) if isinstance(raw, dict) else raw
    return [BrdField.model_validate(x) for x in (items or [])]


class SemanticMatcher(ABC):
    @abstractmethod
    async def find_matches(self, candidates: List[GuidanceEntry]) -> List[GuidanceEntry]: ...


class LlmSemanticMatcher(SemanticMatcher):
    """Asks an LLM to pick the closest BRD field for each rule name, in batches."""

    def __init__(self, provider: LLMProvider, fields: Sequence[BrdField],
                 batch_size: Optional[int] = None, min_similarity: float = settings.SEMANTIC_MIN_SIMILARITY):
        self.provider = provider
        self.fields: Dict[str, BrdField] = {f.key: f for f in fields}
        self.batch_size = settings.get_batch_size(batch_size)
        self.min_similarity = min_similarity

    def _prompt(self, names: List[str]) -> str:
        field_lines = "\n".join(
            f"- {f.key}: {f.label or f.key}" for f in self.fields.values()
        )
        return f"""You map rule names from a legacy payment onboarding system to fields of a Business Requirement Document.

Available BRD fields (key: description):
{field_lines}

Legacy rule names:
{json.dumps(names, ensure_ascii=False, indent=2)}

Respond with ONLY a JSON array, one object per rule name, in the same order:
[
  {{"ruleName": "...", "mappingKey": "field key or null", "similarity": 0.0, "explanation": "one sentence"}}
]

Requirements:
- mappingKey must be exactly one of the available field keys, or null when nothing fits
- similarity is your confidence from 0.0 to 1.0"""

    def _resolve(self, name: str, answer: Optional[dict]) -> GuidanceEntry:
        entry = GuidanceEntry(source_name=name)
        if not answer:
            return entry
        key = answer.get("mappingKey")
        field = self.fields.get(key) if isinstance(key, str) else None
        if field is None:
            return entry
        try:
            score = float(answer.get("similarity", 0.0))
        except (TypeError, ValueError):
            score = 0.0
        if score < self.min_similarity:
            return entry
        entry.mapping_key = field.key
        entry.similarity = f"{score:.2f}"
        entry.explanation = (answer.get("explanation") or "").strip() or None
        entry.question_id = field.question_id
        return entry

    def _match_batch(self, names: List[str]) -> List[GuidanceEntry]:
        reply = self.provider.complete(self._prompt(names))
        try:
            parsed = parse_json_reply(reply)
        except ValueError as e:
            log.warning("Unparseable matcher reply for %d rule(s): %s", len(names), e)
            parsed = []
        answers: Dict[str, dict] = {}
        if isinstance(parsed, list):
            for item in parsed:
                if isinstance(item, dict) and isinstance(item.get("ruleName"), str):
                    answers.setdefault(item["ruleName"].strip().lower(), item)
        return [self._resolve(n, answers.get(n.strip().lower())) for n in names]

    def _match_all(self, names: List[str]) -> List[GuidanceEntry]:
        out: List[GuidanceEntry] = []
        for i in range(0, len(names), self.batch_size):
            out.extend(self._match_batch(names[i:i + self.batch_size]))
        return out

    async def find_matches(self, candidates: List[GuidanceEntry]) -> List[GuidanceEntry]:
        names = [c.source_name or "" for c in candidates]
        if not names:
            return []
        if not self.fields:
            return [GuidanceEntry(source_name=n) for n in names]
        results = await asyncio.to_thread(self._match_all, names)
        matched = sum(1 for r in results if r.mapping_key)
        log.info("Processed %d rule names into %d mapped guidance entries", len(names), matched)
        return results
