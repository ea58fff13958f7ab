"""Finding codes, severities and fixed user-facing messages.

Every string a display layer may show verbatim lives here so that the rule
engine, the extraction layer and the guardrail agree on wording.
"""
from __future__ import annotations

from enum import StrEnum


class Severity(StrEnum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


# ---------------------------------------------------------------------------
# Finding / error codes
# ---------------------------------------------------------------------------

CODE_DEFAULT_RULE = "AACR2_RULE"
CODE_COVERAGE_MISSING = "AACR2_COVERAGE_MISSING"
CODE_AI_CLASSIFICATION = "AI_CLASSIFICATION"
CODE_AI_SUBJECTS = "AI_SUBJECTS"
CODE_CLASSIFICATION_RANGE = "CLASSIFICATION_RANGE"
CODE_OUTPUT_TRUNCATED = "OUTPUT_TRUNCATED"

OP_REPLACE_SUBFIELD = "replace_subfield"

DEFAULT_FIX_LABEL = "Apply AACR2 punctuation"

# ---------------------------------------------------------------------------
# Guardrail rejection reasons
# ---------------------------------------------------------------------------

REJECT_MISSING_PAYLOAD = "AI response missing payload."
REJECT_MISSING_REQUEST_ID = "AI response missing request_id."
REJECT_REQUEST_ID_MISMATCH = "AI response request_id mismatch."
REJECT_UNSUPPORTED_OP = "Unsupported AI patch operation."
REJECT_MISSING_TARGET = "AI patch missing tag or subfield."
REJECT_SCOPE_VIOLATION = "AI patch scope violation."
REJECT_OCCURRENCE_MISMATCH = "AI patch occurrence mismatch."
REJECT_UNKNOWN_SUBFIELD = "AI patch references unknown subfield."
REJECT_ORIGINAL_MISMATCH = "AI patch original text mismatch."
REJECT_NON_PUNCTUATION = "AI patch contains non-punctuation edits."
REJECT_RULE_CONFLICT = "AI patch conflicts with deterministic rules."

# ---------------------------------------------------------------------------
# Extraction / response messages
# ---------------------------------------------------------------------------

CLASSIFICATION_RANGE_MESSAGE = (
    "Classification ranges are not allowed. Provide a single class number."
)
OUTPUT_TRUNCATED_MESSAGE = (
    "Output truncated. Increase max output tokens or reduce reasoning effort."
)
SUGGESTION_DISCLAIMER = "Suggestions only; review before saving."
