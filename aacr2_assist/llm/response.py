"""Post-processing of AI replies into display-ready response dicts.

A provider reply arrives either as structured JSON (validated by
``aacr2_assist.llm.payload``) or as prose.  Prose replies are turned into a
*degraded* response by the extraction layer: classification and subject
suggestions are pulled out of the text and reported with low confidence.

Responses are plain ``dict`` objects shaped like ``AiResponsePayload`` so
they can be returned to a display layer unchanged.  Nothing here mutates
its input.
"""
from __future__ import annotations

import copy
import logging
import re
from typing import Any, Mapping

from aacr2_assist.core.constants import (
    CODE_AI_CLASSIFICATION,
    CODE_AI_SUBJECTS,
    CODE_CLASSIFICATION_RANGE,
    CODE_OUTPUT_TRUNCATED,
    OUTPUT_TRUNCATED_MESSAGE,
    SUGGESTION_DISCLAIMER,
    Severity,
)
from aacr2_assist.extraction.classification import (
    detect_classification_range,
    extract_lc_call_numbers,
    parse_lc_target,
)
from aacr2_assist.extraction.confidence import clamp_percent
from aacr2_assist.extraction.subject_headings import subjects_from_heading_list
from aacr2_assist.extraction.suggestions import extract_cataloging_suggestions_from_text
from aacr2_assist.llm.payload import AiRequestPayload
from aacr2_assist.llm.prompts import DEFAULT_PROMPT_VERSION
from aacr2_assist.marc.scope import is_excluded_field

logger = logging.getLogger(__name__)

DEFAULT_FINDINGS_CONFIDENCE = 50
DEFAULT_TEXT_CONFIDENCE = 20
TEXT_FINDING_CONFIDENCE = 0.2
NO_SUGGESTIONS_MESSAGE = "No AI suggestions returned."

MAX_ASSISTANT_MESSAGE = 4000
MAX_EXCERPT = 240
MAX_DEBUG_CANDIDATES = 10

SOURCE_RAW_TEXT = "raw_text"
SOURCE_PLAIN_TEXT = "plain_text"

_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Findings summaries
# ---------------------------------------------------------------------------

def summarize_ai_findings(findings: object) -> str:
    """One line per finding: ``message - rationale``, or whichever is present."""
    if not isinstance(findings, list):
        return ""
    lines: list[str] = []
    for finding in findings:
        if not isinstance(finding, Mapping):
            continue
        message = str(finding.get("message") or "").strip()
        rationale = str(finding.get("rationale") or "").strip()
        if message and rationale and message != rationale:
            lines.append(f"{message} - {rationale}")
        elif message or rationale:
            lines.append(message or rationale)
    return "\n".join(lines)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def confidence_percent_from_findings(findings: object) -> int:
    """Mean finding confidence (0..1) as a percentage; 50 when none is usable."""
    if not isinstance(findings, list):
        return DEFAULT_FINDINGS_CONFIDENCE
    values = [
        finding["confidence"]
        for finding in findings
        if isinstance(finding, Mapping)
        and _is_number(finding.get("confidence"))
        and 0 <= finding["confidence"] <= 1
    ]
    if not values:
        return DEFAULT_FINDINGS_CONFIDENCE
    return int(clamp_percent(round(sum(values) / len(values) * 100)))


# ---------------------------------------------------------------------------
# Response adjustments
# ---------------------------------------------------------------------------

def attach_truncation_warning(result: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of *result* carrying a single ``OUTPUT_TRUNCATED`` error."""
    updated = copy.deepcopy(dict(result))
    errors = updated.get("errors")
    errors = list(errors) if isinstance(errors, list) else []
    if not any(isinstance(err, Mapping) and err.get("code") == CODE_OUTPUT_TRUNCATED for err in errors):
        errors.append({"code": CODE_OUTPUT_TRUNCATED, "message": OUTPUT_TRUNCATED_MESSAGE})
    updated["errors"] = errors
    return updated


def sanitize_ai_response_for_chat(result: Mapping[str, Any]) -> dict[str, Any]:
    """Prepare a structured reply for conversational display.

    Proposed fixes are dropped (chat is guidance only), an empty
    ``assistant_message`` falls back to the findings summary, and
    ``confidence_percent`` is always an integer in 0..100.
    """
    updated = copy.deepcopy(dict(result))
    findings = updated.get("findings")
    findings = findings if isinstance(findings, list) else []
    for finding in findings:
        if isinstance(finding, dict):
            finding["proposed_fixes"] = []
    updated["findings"] = findings

    message = str(updated.get("assistant_message") or "").strip()
    updated["assistant_message"] = message or summarize_ai_findings(findings) or NO_SUGGESTIONS_MESSAGE

    confidence = updated.get("confidence_percent")
    if not _is_number(confidence):
        confidence = confidence_percent_from_findings(findings)
    updated["confidence_percent"] = int(clamp_percent(round(confidence)))
    return updated


def _message_and_excerpt(raw_text: str) -> tuple[str, str]:
    message = str(raw_text).strip().replace("\r\n", "\n")[:MAX_ASSISTANT_MESSAGE]
    excerpt = _WHITESPACE_RE.sub(" ", message)[:MAX_EXCERPT]
    return message, excerpt


def _version(settings: object) -> str:
    return getattr(settings, "ai_prompt_version", None) or DEFAULT_PROMPT_VERSION


# ---------------------------------------------------------------------------
# Degraded (prose) responses
# ---------------------------------------------------------------------------

def build_unstructured_ai_response(
    payload: AiRequestPayload | None,
    raw_text: str | None,
    settings: object,
) -> dict[str, Any] | None:
    """Wrap a prose reply with no extractable suggestions as a degraded response."""
    if payload is None or not raw_text:
        return None
    message, excerpt = _message_and_excerpt(raw_text)
    return {
        "success": True,
        "degraded_mode": True,
        "raw_text_excerpt": excerpt,
        "version": _version(settings),
        "request_id": payload.request_id,
        "tag_context": payload.tag_context.model_dump(),
        "assistant_message": message,
        "confidence_percent": DEFAULT_FINDINGS_CONFIDENCE,
        "classification": "",
        "subjects": [],
        "issues": [],
        "findings": [],
        "errors": [],
        "disclaimer": SUGGESTION_DISCLAIMER,
    }


def build_cataloging_text_response(
    payload: AiRequestPayload | None,
    raw_text: str | None,
    settings: object,
    extraction_source: str = SOURCE_RAW_TEXT,
    degraded_mode: bool = True,
) -> dict[str, Any] | None:
    """Build a cataloging response from a prose reply.

    Returns ``None`` when there is no text or when neither classification nor
    subject guidance was requested.  A class range anywhere in the reply
    suppresses the classification and adds a ``CLASSIFICATION_RANGE`` error.
    """
    if payload is None or not raw_text:
        return None
    features = payload.features
    if not features.call_number_guidance and not features.subject_guidance:
        return None

    extracted = extract_cataloging_suggestions_from_text(raw_text)
    selected = extracted.classification
    range_message = detect_classification_range(raw_text)
    if range_message:
        selected = ""

    target = parse_lc_target(getattr(settings, "lc_class_target", "050$a") or "050$a")
    target_excluded = target is not None and is_excluded_field(settings, target.tag, target.code)
    from_plain_text = extraction_source == SOURCE_PLAIN_TEXT

    findings: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []
    if features.call_number_guidance:
        rationale = (
            "Extracted from AI text output."
            if from_plain_text
            else "AI returned non-structured output; extracted LC classification candidate."
        )
        if target_excluded and selected:
            rationale += f" Target {target.tag}${target.code} is excluded."
        findings.append({
            "severity": Severity.INFO.value,
            "code": CODE_AI_CLASSIFICATION,
            "message": selected,
            "rationale": rationale,
            "proposed_fixes": [],
            "confidence": TEXT_FINDING_CONFIDENCE,
        })
    if range_message:
        errors.append({
            "code": CODE_CLASSIFICATION_RANGE,
            "field": "classification",
            "message": range_message,
        })
    if features.subject_guidance:
        rationale = (
            "Extracted from AI text output."
            if from_plain_text
            else "AI returned non-structured output; extracted subject headings."
        )
        findings.append({
            "severity": Severity.INFO.value,
            "code": CODE_AI_SUBJECTS,
            "message": "; ".join(extracted.subjects),
            "rationale": rationale,
            "proposed_fixes": [],
            "confidence": TEXT_FINDING_CONFIDENCE,
        })

    max_subfields = getattr(settings, "max_subject_subfields", 20)
    subjects = subjects_from_heading_list(extracted.subjects, max_subfields=max_subfields)
    message, excerpt = _message_and_excerpt(raw_text)
    confidence = extracted.confidence_percent
    if confidence is None:
        confidence = DEFAULT_TEXT_CONFIDENCE

    response: dict[str, Any] = {
        "success": True,
        "degraded_mode": degraded_mode,
        "extraction_source": extraction_source,
        "raw_text_excerpt": excerpt,
        "version": _version(settings),
        "request_id": payload.request_id,
        "tag_context": payload.tag_context.model_dump(),
        "assistant_message": message,
        "confidence_percent": confidence,
        "classification": selected,
        "subjects": [subject.to_dict() for subject in subjects],
        "findings": findings,
        "errors": errors,
        "disclaimer": SUGGESTION_DISCLAIMER,
    }
    if selected:
        response["extracted_call_number"] = selected
    if getattr(settings, "debug_mode", False):
        response["lc_candidates"] = extract_lc_call_numbers(raw_text)[:MAX_DEBUG_CANDIDATES]

    logger.debug(
        "Cataloging text response built (request_id=%s, subjects=%d, range=%s)",
        payload.request_id, len(subjects), bool(range_message),
    )
    return response


# ---------------------------------------------------------------------------
# Provider reply parsing
# ---------------------------------------------------------------------------

def _chat_completion_text(data: Mapping[str, Any]) -> str:
    choices = data.get("choices")
    for choice in choices if isinstance(choices, list) else []:
        if not isinstance(choice, Mapping):
            continue
        for key in ("message", "delta"):
            part = choice.get(key)
            if isinstance(part, Mapping) and isinstance(part.get("content"), str):
                return part["content"]
    return ""


def extract_response_text(data: object) -> str:
    """Text content of a chat-completions or responses-style provider reply."""
    if not isinstance(data, Mapping):
        return ""
    chat = _chat_completion_text(data)
    if chat:
        return chat
    message = data.get("message")
    if isinstance(message, Mapping) and isinstance(message.get("content"), str):
        return message["content"]

    content = ""
    output = data.get("output")
    for item in output if isinstance(output, list) else []:
        chunks = item.get("content") if isinstance(item, Mapping) else None
        for chunk in chunks if isinstance(chunks, list) else []:
            if not isinstance(chunk, Mapping):
                continue
            content += str(chunk.get("text") or chunk.get("output_text") or "")
    if not content and data.get("output_text"):
        content = str(data["output_text"])
    return content


def _lower(value: object) -> str:
    return value.lower() if isinstance(value, str) else ""


def detect_truncation(data: object) -> bool:
    """True when the provider stopped for the output-token limit."""
    if not isinstance(data, Mapping):
        return False
    choices = data.get("choices")
    if isinstance(choices, list):
        return any(
            isinstance(choice, Mapping) and _lower(choice.get("finish_reason")) == "length"
            for choice in choices
        )
    output = data.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, Mapping):
                continue
            details = item.get("incomplete_details")
            detail = _lower(details.get("reason")) if isinstance(details, Mapping) else ""
            if (
                _lower(item.get("finish_reason")) == "length"
                or _lower(item.get("status")) == "incomplete"
                or "max_output_tokens" in detail
            ):
                return True
        return False
    details = data.get("incomplete_details")
    reason = _lower(details.get("reason")) if isinstance(details, Mapping) else ""
    return "max_output_tokens" in reason or "length" in reason
