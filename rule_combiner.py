# rule_combiner.py
import json
import logging
from typing import List, Optional, Sequence

from errors import ArtifactSerializationError, RulesValidationError
from rule_classifier import find_valid_mapping, group_guidance, is_eligible
from schemas import CombinedRuleRow, GuidanceEntry, RuleRecord

log = logging.getLogger("legacybrd.combiner")


def _combine(rule: RuleRecord, mapping: Optional[GuidanceEntry]) -> CombinedRuleRow:
    row = CombinedRuleRow(
        owner_id=rule.owner_id,
        owner_name=rule.owner_name,
        rule_id=rule.rule_id,
        rule_name=rule.rule_name,
        value=rule.value,
        order=rule.order,
    )
    if mapping is not None:
        row.mapping_key = mapping.mapping_key
        row.similarity = mapping.similarity
        row.explanation = mapping.explanation
        row.question_id = mapping.question_id
    return row


def build_combined_rules(rules: Sequence[RuleRecord], guidance: Sequence[GuidanceEntry]) -> List[CombinedRuleRow]:
    """Join each eligible rule with its guidance mapping, keeping rule order."""
    if not rules:
        raise RulesValidationError("No BRD rules to combine; check the uploaded rules file")

    index = group_guidance(guidance)
    combined: List[CombinedRuleRow] = []
    no_mapping = []
    mapped = 0

    for rule in rules:
        mapping = find_valid_mapping(index.get(rule.match_name)) if rule.match_name else None
        if not is_eligible(rule, mapping):
            continue
        if mapping is not None:
            mapped += 1
        else:
            no_mapping.append(f"{rule.match_name} (ID: {rule.rule_id})")
        combined.append(_combine(rule, mapping))

    log.info("Processing complete - Total Rules: %d, Mapped: %d, No Mapping: %d",
             len(rules), mapped, len(set(no_mapping)))
    if no_mapping:
        log.info("Rules with no mapping: %s", ", ".join(dict.fromkeys(no_mapping)))
    log.info("Processed %d rules into %d combined rules", len(rules), len(combined))
    if combined:
        log.info("Rules with mapping: %d/%d (%d%%)", mapped, len(combined), mapped * 100 // len(combined))
    return combined


def serialize_rows(rows: Sequence[CombinedRuleRow]) -> bytes:
    try:
        payload = [r.model_dump(mode="json", by_alias=True) for r in rows]
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        log.error("Error creating JSON: %s", e)
        raise ArtifactSerializationError(f"Error creating JSON: {e}") from e


def build_artifact(rules: Sequence[RuleRecord], guidance: Sequence[GuidanceEntry]) -> bytes:
    """Pretty-printed UTF-8 JSON list of combined rule rows."""
    return serialize_rows(build_combined_rules(rules, guidance))
