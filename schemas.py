# schemas.py
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Arbitrary JSON tree exchanged with the BRD form service and the prefill generator
JsonValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Legacy rule export ----------
class RuleRecord(CamelModel):
    rule_id: Optional[str] = None
    owner_id: Optional[str] = None      # legacy BRD id of the row's entity (main or site)
    owner_name: Optional[str] = None
    rule_name: Optional[str] = None
    value: Optional[str] = None
    order: Optional[str] = None

    @property
    def match_name(self) -> Optional[str]:
        # Rows without a rule label are joined to guidance through their owner name
        return self.rule_name or self.owner_name


class GuidanceEntry(CamelModel):
    source_name: Optional[str] = None
    mapping_key: Optional[str] = None
    similarity: Optional[str] = None
    explanation: Optional[str] = None
    question_id: Optional[str] = None


class CombinedRuleRow(CamelModel):
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    value: Optional[str] = None
    order: Optional[str] = None
    mapping_key: Optional[str] = None
    similarity: Optional[str] = None
    explanation: Optional[str] = None
    question_id: Optional[str] = None


# ---------- Legacy record / sites ----------
class LegacyEntityInfo(CamelModel):
    id: str
    name: Optional[str] = None
    # set once a Site row exists for this descriptor
    site_record_id: Optional[str] = None


class LegacyBrd(CamelModel):
    brd_id: str
    main: Optional[LegacyEntityInfo] = None
    sites: List[LegacyEntityInfo] = Field(default_factory=list)


class Site(CamelModel):
    id: Optional[str] = None
    brd_id: str
    site_id: str
    site_name: Optional[str] = None
    identifier_code: Optional[str] = None
    description: Optional[str] = None
    brd_form: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- Prefill ----------
class ContextName(str, Enum):
    PREFILL = "PREFILL"
    LEGACY_PREFILL = "LEGACY_PREFILL"

    @property
    def prompt(self) -> str:
        if self is ContextName.LEGACY_PREFILL:
            return (
                "You are migrating a customer from a legacy onboarding system. "
                "Fill the JSON section using the legacy BRD rules and the supporting documents. "
                "Only change values you can justify from the context; keep every key and the JSON structure."
            )
        return (
            "Fill the JSON section of a Business Requirement Document using the supporting documents. "
            "Only change values you can justify from the documents; keep every key and the JSON structure."
        )


# ---------- Requests / envelopes ----------
class LegacyBrdRequest(CamelModel):
    brd_id: str
    brd_rules_file_url: str

    @field_validator("brd_id", "brd_rules_file_url")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class LegacyPrefillRequest(CamelModel):
    brd_id: str
    document_name: Optional[str] = None
    document_names: List[str] = Field(default_factory=list)

    @field_validator("brd_id")
    @classmethod
    def brd_id_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("BRD ID is required")
        return v.strip()

    @model_validator(mode="after")
    def collect_document_names(self) -> "LegacyPrefillRequest":
        names = [n for n in self.document_names if n and n.strip()]
        if self.document_name and self.document_name.strip() and self.document_name not in names:
            names.insert(0, self.document_name)
        if not names:
            raise ValueError("Document name is required")
        self.document_names = names
        return self


class ApiResponse(BaseModel):
    status: str
    message: str
    data: Optional[Any] = None
    errors: Optional[Dict[str, str]] = None
