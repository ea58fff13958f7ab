"""Privacy controls for what leaves the catalog in an AI prompt.

* ``should_redact_value``    856$u URLs carrying a query string, and any
                             field named by ``ai_redaction_rules``.
* ``filter_record_context``  how much of the record accompanies the target
                             field (``ai_context_mode``), minus excluded fields.

Redacted values are replaced by ``[REDACTED]``; the field structure is kept
so the model still sees which subfields exist.
"""
from __future__ import annotations

import logging
import re

from aacr2_assist.llm.payload import RecordContext, SubfieldPayload, TagContext
from aacr2_assist.marc.scope import entry_matches, is_excluded_field, parse_list

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

CONTEXT_TAG_ONLY = "tag_only"
CONTEXT_TAG_PLUS_NEIGHBORS = "tag_plus_neighbors"
CONTEXT_FULL_RECORD = "full_record"

MAX_CONTEXT_FIELDS = 30

_QUERY_RE = re.compile(r"[?&]")


def should_redact_value(settings: object, tag: str, code: str, value: str | None) -> bool:
    """True when ``tag$code`` with *value* must not be sent to the model."""
    if (
        getattr(settings, "ai_redact_856_querystrings", True)
        and tag == "856"
        and (code or "").lower() == "u"
        and value
        and _QUERY_RE.search(value)
    ):
        return True
    rules = parse_list(getattr(settings, "ai_redaction_rules", ""))
    return any(entry_matches(entry, tag, code) for entry in rules)


def _redact_subfields(settings: object, tag: str, subfields: list[SubfieldPayload]) -> list[SubfieldPayload]:
    return [
        SubfieldPayload(
            code=sub.code,
            value=REDACTED if should_redact_value(settings, tag, sub.code, sub.value) else sub.value,
        )
        for sub in subfields
    ]


def redact_tag_context(tag_context: TagContext, settings: object) -> TagContext:
    """Copy of *tag_context* with sensitive subfield values replaced."""
    return tag_context.model_copy(
        update={"subfields": _redact_subfields(settings, tag_context.tag, tag_context.subfields)}
    )


def redact_record_context(record_context: RecordContext, settings: object) -> RecordContext:
    return RecordContext(fields=[redact_tag_context(field, settings) for field in record_context.fields])


def _without_excluded(fields: list[TagContext], settings: object) -> list[TagContext]:
    kept: list[TagContext] = []
    for field in fields:
        if is_excluded_field(settings, field.tag):
            continue
        subfields = [sub for sub in field.subfields if not is_excluded_field(settings, field.tag, sub.code)]
        if subfields:
            kept.append(field.model_copy(update={"subfields": subfields}))
    return kept


def filter_record_context(
    record_context: RecordContext | None,
    settings: object,
    tag_context: TagContext | None = None,
) -> RecordContext | None:
    """Select the record context to send under ``settings.ai_context_mode``.

    ``tag_only`` sends none.  ``tag_plus_neighbors`` sends the target field
    with the fields immediately before and after it (the first three fields
    when the target is not found).  ``full_record`` sends up to
    ``MAX_CONTEXT_FIELDS`` fields.  Excluded fields are always dropped;
    ``None`` is returned when nothing remains.
    """
    mode = getattr(settings, "ai_context_mode", CONTEXT_TAG_ONLY) or CONTEXT_TAG_ONLY
    if mode == CONTEXT_TAG_ONLY or record_context is None or not record_context.fields:
        return None

    fields = record_context.fields
    if mode == CONTEXT_TAG_PLUS_NEIGHBORS:
        target_tag = tag_context.tag if tag_context is not None else ""
        target_occurrence = tag_context.occurrence if tag_context is not None else 0
        index = next(
            (
                i for i, field in enumerate(fields)
                if field.tag == target_tag and field.occurrence == target_occurrence
            ),
            None,
        )
        if index is None:
            selected = fields[:3]
        else:
            selected = fields[max(index - 1, 0):index + 2]
    elif mode == CONTEXT_FULL_RECORD:
        selected = fields[:MAX_CONTEXT_FIELDS]
    else:
        logger.warning("Unknown AI context mode %r; sending no record context", mode)
        return None

    kept = _without_excluded(selected, settings)
    if not kept:
        return None
    return RecordContext(fields=kept)
