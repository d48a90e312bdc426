from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from errors import ArtifactSerializationError, RulesValidationError  # noqa: E402
from rule_combiner import build_artifact, build_combined_rules  # noqa: E402
from schemas import GuidanceEntry, RuleRecord  # noqa: E402

MIN_PAYMENT_KEY = "paymentRules.minimumPaymentAmount"


class BuildCombinedRulesTests(unittest.TestCase):
    def test_empty_rule_set_is_rejected(self) -> None:
        with self.assertRaises(RulesValidationError):
            build_combined_rules([], [GuidanceEntry(source_name="Fee", mapping_key="K1")])

    def test_eligible_rows_keep_rule_order_and_join_guidance(self) -> None:
        rules = [
            RuleRecord(rule_id="1013", owner_id="BRD-1", owner_name="Main", rule_name="Site Marker",
                       value="BRD-1", order="1"),
            RuleRecord(rule_id="2001", owner_id="SITE-1", owner_name="North", rule_name="Min Payment",
                       value="5.00", order="2"),
            RuleRecord(rule_id="3000", rule_name="Orphan", value="x", order="3"),
            RuleRecord(rule_id="1013", owner_id="SITE-2", owner_name="South", rule_name="Site Marker",
                       value="BRD-1", order="4"),
        ]
        guidance = [
            GuidanceEntry(source_name="Min Payment", mapping_key=MIN_PAYMENT_KEY, similarity="0.91",
                          explanation="Minimum amount", question_id="Q-PR-001"),
            GuidanceEntry(source_name="Site Marker", mapping_key="No Mapping"),
        ]

        rows = build_combined_rules(rules, guidance)

        self.assertEqual([r.order for r in rows], ["1", "2", "4"])
        self.assertIsNone(rows[0].mapping_key)
        self.assertEqual(rows[1].mapping_key, MIN_PAYMENT_KEY)
        self.assertEqual(rows[1].question_id, "Q-PR-001")
        self.assertEqual(rows[1].owner_name, "North")
        self.assertIsNone(rows[2].mapping_key)

    def test_unowned_rule_with_mapping_is_kept(self) -> None:
        rules = [RuleRecord(rule_id="3000", rule_name="Fee", value="1")]
        rows = build_combined_rules(rules, [GuidanceEntry(source_name="Fee", mapping_key="K1")])
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].mapping_key, "K1")


class ArtifactTests(unittest.TestCase):
    def test_artifact_is_pretty_printed_camel_case_json(self) -> None:
        rules = [RuleRecord(rule_id="2001", owner_id="BRD-1", owner_name="Zürich", rule_name="Fee", value="1")]
        data = build_artifact(rules, [GuidanceEntry(source_name="Fee", mapping_key="K1")])

        self.assertIn(b"\n  ", data)
        self.assertIn("Zürich".encode("utf-8"), data)
        rows = json.loads(data.decode("utf-8"))
        self.assertEqual(rows[0]["ownerId"], "BRD-1")
        self.assertEqual(rows[0]["mappingKey"], "K1")

    def test_encoding_failure_is_reported(self) -> None:
        rules = [RuleRecord(rule_id="1013", owner_id="BRD-1", owner_name="Main")]
        with patch("rule_combiner.json.dumps", side_effect=TypeError("not serializable")):
            with self.assertRaises(ArtifactSerializationError) as ctx:
                build_artifact(rules, [])
        self.assertIsInstance(ctx.exception.__cause__, TypeError)


if __name__ == "__main__":
    unittest.main()
