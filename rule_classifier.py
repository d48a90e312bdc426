# rule_classifier.py
from typing import Dict, List, Optional, Sequence

from schemas import GuidanceEntry, RuleRecord
from settings import settings


def is_eligible(rule: RuleRecord, guidance: Optional[GuidanceEntry]) -> bool:
    """
    Decide whether a legacy rule gets a row in the combined rules export.

    Any of these is sufficient:
      - the rule is the always-included summary rule (rule id "1013")
      - the rule is attributable: owner id and owner name are both set
      - a resolved guidance mapping was found for it
    """
    if rule.rule_id == settings.SITE_MARKER_RULE_ID:
        return True
    if rule.owner_id and rule.owner_name:
        return True
    return guidance is not None and guidance.mapping_key is not None


def find_valid_mapping(candidates: Optional[Sequence[GuidanceEntry]]) -> Optional[GuidanceEntry]:
    """First candidate carrying a real mapping key ("No Mapping" does not count)."""
    if not candidates:
        return None
    for g in candidates:
        if settings.is_valid_mapping_key(g.mapping_key):
            return g
    return None


def group_guidance(guidance: Sequence[GuidanceEntry]) -> Dict[str, List[GuidanceEntry]]:
    grouped: Dict[str, List[GuidanceEntry]] = {}
    for g in guidance:
        if g.source_name is None:
            continue
        grouped.setdefault(g.source_name, []).append(g)
    return grouped


def needs_lookup(rule: RuleRecord, guidance_index: Dict[str, List[GuidanceEntry]]) -> bool:
    """True when the rule has a name to match on but no valid mapping exists yet."""
    name = rule.match_name
    if not name:
        return False
    return find_valid_mapping(guidance_index.get(name)) is None
