from __future__ import annotations

import copy
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from section_merger import clean, restrict_sections, to_update_payload  # noqa: E402


class CleanTests(unittest.TestCase):
    def test_removes_empty_branches(self) -> None:
        self.assertEqual(clean({"a": {}, "b": [], "c": "", "d": {"e": "x"}}), {"d": {"e": "x"}})

    def test_is_idempotent(self) -> None:
        tree = {
            "clientInformation": {"companyName": "Acme", "phone": "  ", "contacts": [{"name": ""}, {"name": "Ann"}]},
            "paymentRules": {"limits": [[], {}, None], "fee": 0, "enabled": False},
            "notes": None,
        }
        once = clean(tree)
        self.assertEqual(clean(once), once)
        self.assertEqual(
            once,
            {
                "clientInformation": {"companyName": "Acme", "contacts": [{"name": "Ann"}]},
                "paymentRules": {"fee": 0, "enabled": False},
            },
        )

    def test_keeps_key_order_and_does_not_mutate_input(self) -> None:
        tree = {"z": "1", "a": {"y": "2", "b": ""}, "m": "3"}
        before = copy.deepcopy(tree)
        out = clean(tree)
        self.assertEqual(list(out), ["z", "a", "m"])
        self.assertEqual(tree, before)

    def test_fully_empty_input_keeps_its_container_type(self) -> None:
        self.assertEqual(clean({"a": {"b": None}}), {})
        self.assertEqual(clean([{}, ""]), [])
        self.assertIsNone(clean("   "))


class RestrictSectionsTests(unittest.TestCase):
    def test_only_allowed_fields_survive_in_listed_sections(self) -> None:
        tree = {
            "generalImplementations": {"implementationNotes": "n", "rules": ["x"], "sectionStatus": "DONE"},
            "aciInformation": {"ITContactName": "Bob", "accountManager": "Eve"},
            "paymentRules": {"fee": "1.00"},
        }
        out = restrict_sections(tree)
        self.assertEqual(out["generalImplementations"], {"implementationNotes": "n", "sectionStatus": "DONE"})
        self.assertEqual(out["aciInformation"], {"ITContactName": "Bob"})
        self.assertEqual(out["paymentRules"], {"fee": "1.00"})
        self.assertIn("rules", tree["generalImplementations"])

    def test_to_update_payload_requires_an_object(self) -> None:
        self.assertEqual(to_update_payload({"a": 1}), {"a": 1})
        self.assertIsNone(to_update_payload(["a"]))
        self.assertIsNone(to_update_payload(None))


if __name__ == "__main__":
    unittest.main()
