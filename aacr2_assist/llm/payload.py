"""AI request / response payload models.

Outbound::

    {request_id, tag_context, record_context?, features}

Inbound::

    {request_id, findings[], classification?, subjects[]?, assistant_message?,
     confidence_percent?, errors[]?}

Request payloads come from the form-binding layer and are coerced rather
than rejected: missing values become blanks, occurrences are normalized and
oversized contexts are capped before anything reaches a prompt.  Response
payloads come from a model and are validated; ``validate_ai_response_shape``
reports problems as readable path strings instead of raising.
"""
from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aacr2_assist.marc.models import normalize_indicator, normalize_occurrence

MAX_TAG_SUBFIELDS = 20
MAX_RECORD_FIELDS = 30
MAX_RECORD_SUBFIELDS = 30


def _text(value: object) -> str:
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class AiFeatures(BaseModel):
    punctuation_explain: bool = False
    subject_guidance: bool = False
    call_number_guidance: bool = False

    @field_validator("punctuation_explain", "subject_guidance", "call_number_guidance", mode="before")
    @classmethod
    def coerce_bool(cls, value: object) -> bool:
        return bool(value)


class SubfieldPayload(BaseModel):
    code: str = ""
    value: str = ""

    @field_validator("code", "value", mode="before")
    @classmethod
    def coerce_text(cls, value: object) -> str:
        return _text(value)


class TagContext(BaseModel):
    """One field as sent to the model: the AI's edit scope."""

    model_config = ConfigDict(extra="allow")

    tag: str = ""
    ind1: str = " "
    ind2: str = " "
    occurrence: int = 0
    subfields: list[SubfieldPayload] = Field(default_factory=list)

    @field_validator("tag", mode="before")
    @classmethod
    def coerce_tag(cls, value: object) -> str:
        return _text(value)

    @field_validator("ind1", "ind2", mode="before")
    @classmethod
    def coerce_indicator(cls, value: object) -> str:
        return normalize_indicator(value)

    @field_validator("occurrence", mode="before")
    @classmethod
    def coerce_occurrence(cls, value: object) -> int:
        return normalize_occurrence(value)

    @field_validator("subfields", mode="before")
    @classmethod
    def coerce_subfields(cls, value: object) -> list[Any]:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, (Mapping, SubfieldPayload))]


class RecordContext(BaseModel):
    fields: list[TagContext] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_fields(cls, value: object) -> list[Any]:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, (Mapping, TagContext))]


class AiRequestPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    request_id: str = ""
    tag_context: TagContext = Field(default_factory=TagContext)
    record_context: RecordContext | None = None
    features: AiFeatures = Field(default_factory=AiFeatures)

    @field_validator("request_id", mode="before")
    @classmethod
    def coerce_request_id(cls, value: object) -> str:
        return _text(value)

    @field_validator("tag_context", "features", mode="before")
    @classmethod
    def coerce_mapping(cls, value: object) -> object:
        if isinstance(value, (Mapping, BaseModel)):
            return value
        return {}


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _cap_subfields(subfields: object, limit: int, keep_primary: bool) -> list[object]:
    items = [item for item in subfields if isinstance(item, Mapping)] if isinstance(subfields, list) else []
    if len(items) <= limit:
        return items
    if keep_primary:
        return [items[0], *items[1:limit]]
    return items[:limit]


def normalize_ai_request_payload(raw: Mapping[str, Any] | None) -> AiRequestPayload:
    """Coerce a raw request dict into an ``AiRequestPayload`` with capped contexts.

    The target field keeps its primary subfield plus the earliest others up
    to ``MAX_TAG_SUBFIELDS``; record context keeps the first
    ``MAX_RECORD_FIELDS`` fields of up to ``MAX_RECORD_SUBFIELDS`` subfields.
    """
    if not isinstance(raw, Mapping):
        return AiRequestPayload()

    data = dict(raw)
    tag_context = raw.get("tag_context")
    if isinstance(tag_context, Mapping):
        data["tag_context"] = {
            **tag_context,
            "subfields": _cap_subfields(tag_context.get("subfields"), MAX_TAG_SUBFIELDS, keep_primary=True),
        }

    record_context = raw.get("record_context")
    if isinstance(record_context, Mapping):
        fields = record_context.get("fields")
        fields = [f for f in fields if isinstance(f, Mapping)] if isinstance(fields, list) else []
        data["record_context"] = {
            "fields": [
                {**f, "subfields": _cap_subfields(f.get("subfields"), MAX_RECORD_SUBFIELDS, keep_primary=False)}
                for f in fields[:MAX_RECORD_FIELDS]
            ]
        }
    else:
        data["record_context"] = None

    return AiRequestPayload.model_validate(data)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class AiPatch(BaseModel):
    model_config = ConfigDict(extra="allow")

    op: str
    tag: str = ""
    subfield: str = ""
    occurrence: int = 0
    original_text: str = ""
    replacement_text: str = ""


class AiProposedFix(BaseModel):
    label: str = ""
    patch: list[AiPatch] = Field(default_factory=list)


class AiFinding(BaseModel):
    model_config = ConfigDict(extra="allow")

    severity: str = "INFO"
    code: str = ""
    message: str = ""
    rationale: str = ""
    proposed_fixes: list[AiProposedFix] = Field(default_factory=list)
    confidence: float | None = Field(default=None, ge=0, le=1)


class AiError(BaseModel):
    code: str
    message: str = ""
    field: str | None = None


class SubjectSubfields(BaseModel):
    a: str
    x: list[str] = Field(default_factory=list)
    y: list[str] = Field(default_factory=list)
    z: list[str] = Field(default_factory=list)
    v: list[str] = Field(default_factory=list)


class SubjectPayload(BaseModel):
    tag: str = "650"
    ind1: str = " "
    ind2: str = "0"
    subfields: SubjectSubfields


class AiResponsePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    request_id: str
    version: str = ""
    assistant_message: str = ""
    confidence_percent: float | None = Field(default=None, ge=0, le=100)
    classification: str = ""
    subjects: list[SubjectPayload] = Field(default_factory=list)
    findings: list[AiFinding] = Field(default_factory=list)
    errors: list[AiError] = Field(default_factory=list)
    disclaimer: str = ""


def validate_ai_response_shape(data: object) -> list[str]:
    """Return shape errors for a parsed AI response (empty list when valid)."""
    if not isinstance(data, Mapping):
        return ["$ should be object"]
    try:
        AiResponsePayload.model_validate(data)
    except ValidationError as exc:
        errors = []
        for err in exc.errors():
            path = "".join(f"[{part}]" if isinstance(part, int) else f".{part}" for part in err["loc"])
            errors.append(f"${path}: {err['msg']}")
        return errors
    return []
