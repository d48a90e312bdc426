# rule_parser.py
"""
Readers/writers for the pipe-separated legacy files.

STANDARD_DATA (guidance catalog):  ruleName|mappingKey|similarity|explanation|questionId
USER_RULES    (legacy rule export): brdId|brdName|ruleId|ruleName|value|order
"""
from __future__ import annotations
import codecs
import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from schemas import GuidanceEntry, RuleRecord

log = logging.getLogger("legacybrd.parser")


class FileType(str, Enum):
    STANDARD_DATA = "STANDARD_DATA"
    USER_RULES = "USER_RULES"


_BOMS: List[Tuple[bytes, str]] = [
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
]

def decode_content(content: bytes) -> str:
    """Decode bytes using the BOM when present (UTF-8 / UTF-16), UTF-8 otherwise."""
    for bom, encoding in _BOMS:
        if content.startswith(bom):
            return content[len(bom):].decode(encoding)
    return content.decode("utf-8")

def _field(fields: List[str], idx: int) -> Optional[str]:
    if idx >= len(fields):
        return None
    return fields[idx].strip()

def _optional(fields: List[str], idx: int) -> Optional[str]:
    value = _field(fields, idx)
    return value or None

def parse_standard_data_line(line: str) -> GuidanceEntry:
    fields = line.split("|")
    return GuidanceEntry(
        source_name=_field(fields, 0),
        mapping_key=_optional(fields, 1),
        similarity=_optional(fields, 2),
        explanation=_optional(fields, 3),
        question_id=_optional(fields, 4),
    )

def parse_user_rules_line(line: str) -> RuleRecord:
    fields = line.split("|")
    return RuleRecord(
        owner_id=_field(fields, 0),
        owner_name=_field(fields, 1),
        rule_id=_field(fields, 2),
        rule_name=_field(fields, 3),
        value=_field(fields, 4),
        order=_field(fields, 5),
    )

def parse_byte_array_content(content: bytes, file_type: FileType) -> List[Union[GuidanceEntry, RuleRecord]]:
    """
    Parse a legacy file into GuidanceEntry (STANDARD_DATA) or RuleRecord
    (USER_RULES) objects. Blank lines are skipped.
    """
    if content is None:
        raise ValueError("file content must not be None")
    try:
        text = decode_content(content)
    except UnicodeDecodeError as e:
        raise ValueError(f"Error reading {file_type.value} content: {e}") from e

    if file_type is FileType.STANDARD_DATA:
        parse_line = parse_standard_data_line
    elif file_type is FileType.USER_RULES:
        parse_line = parse_user_rules_line
    else:
        raise ValueError(f"Unsupported file type: {file_type}")

    out = [parse_line(line) for line in text.splitlines() if line.strip()]
    log.debug("Parsed %d %s line(s)", len(out), file_type.value)
    return out

def format_guidance_catalog(entries: Iterable[GuidanceEntry]) -> str:
    """Write guidance entries back in STANDARD_DATA framing; None becomes an empty field."""
    lines = []
    for e in entries:
        lines.append("|".join(
            (v or "").replace("|", "/").replace("\n", " ")
            for v in (e.source_name, e.mapping_key, e.similarity, e.explanation, e.question_id)
        ))
    return "\n".join(lines)
