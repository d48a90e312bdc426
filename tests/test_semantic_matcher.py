from __future__ import annotations

import json
import sys
import tempfile
import unittest
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from llm_provider import LLMProvider, parse_json_reply  # noqa: E402
from schemas import GuidanceEntry  # noqa: E402
from semantic_matcher import BrdField, LlmSemanticMatcher, load_field_catalog  # noqa: E402

FIELDS = [
    BrdField(key="paymentRules.minimumPaymentAmount", question_id="Q-PR-001", label="Minimum payment amount"),
    BrdField(key="clientInformation.companyName", question_id="Q-CI-001", label="Company name"),
]


class ScriptedProvider(LLMProvider):
    def __init__(self, replies: List[str]):
        self.replies = list(replies)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.replies.pop(0)


def _reply(*answers) -> str:
    return json.dumps([
        {"ruleName": name, "mappingKey": key, "similarity": score, "explanation": "because"}
        for name, key, score in answers
    ])


class LlmSemanticMatcherTests(unittest.IsolatedAsyncioTestCase):
    async def test_results_follow_candidate_order_and_catalog(self) -> None:
        provider = ScriptedProvider([
            "```json\n" + _reply(("company", "clientInformation.companyName", 0.8),
                                 ("Min Payment", "paymentRules.minimumPaymentAmount", 0.93)) + "\n```"
        ])
        matcher = LlmSemanticMatcher(provider, FIELDS, batch_size=10)

        out = await matcher.find_matches([GuidanceEntry(source_name="Min Payment"),
                                          GuidanceEntry(source_name="Company")])

        self.assertEqual([g.source_name for g in out], ["Min Payment", "Company"])
        self.assertEqual(out[0].mapping_key, "paymentRules.minimumPaymentAmount")
        self.assertEqual(out[0].similarity, "0.93")
        self.assertEqual(out[0].question_id, "Q-PR-001")
        self.assertEqual(out[1].question_id, "Q-CI-001")

    async def test_unknown_keys_and_low_scores_stay_unresolved(self) -> None:
        provider = ScriptedProvider([_reply(("A", "not.a.field", 0.99), ("B", "clientInformation.companyName", 0.2))])
        matcher = LlmSemanticMatcher(provider, FIELDS, batch_size=10, min_similarity=0.5)

        out = await matcher.find_matches([GuidanceEntry(source_name="A"), GuidanceEntry(source_name="B"),
                                          GuidanceEntry(source_name="C")])

        self.assertEqual(len(out), 3)
        self.assertTrue(all(g.mapping_key is None for g in out))

    async def test_names_are_sent_in_batches(self) -> None:
        provider = ScriptedProvider([_reply(), "no json here"])
        matcher = LlmSemanticMatcher(provider, FIELDS, batch_size=2)

        out = await matcher.find_matches([GuidanceEntry(source_name=n) for n in ("A", "B", "C")])

        self.assertEqual(len(provider.prompts), 2)
        self.assertIn('"C"', provider.prompts[1])
        self.assertEqual([g.source_name for g in out], ["A", "B", "C"])

    async def test_empty_field_catalog_skips_the_model(self) -> None:
        provider = ScriptedProvider([])
        out = await LlmSemanticMatcher(provider, []).find_matches([GuidanceEntry(source_name="A")])
        self.assertEqual(out, [GuidanceEntry(source_name="A")])
        self.assertEqual(provider.prompts, [])


class FieldCatalogTests(unittest.TestCase):
    def test_loads_yaml_catalog_and_tolerates_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "fields.yaml"
            path.write_text("fields:\n  - key: a.b\n    question_id: Q-1\n    label: A B\n", encoding="utf-8")
            self.assertEqual(load_field_catalog(str(path)), [BrdField(key="a.b", question_id="Q-1", label="A B")])
            self.assertEqual(load_field_catalog(str(Path(tmp) / "missing.yaml")), [])


class ParseJsonReplyTests(unittest.TestCase):
    def test_extracts_json_from_prose(self) -> None:
        self.assertEqual(parse_json_reply('Sure! Here it is: {"a": [1, 2]} Hope that helps.'), {"a": [1, 2]})
        with self.assertRaises(ValueError):
            parse_json_reply("nothing useful")


if __name__ == "__main__":
    unittest.main()
