"""Combined cataloging suggestions from one AI prose reply."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aacr2_assist.extraction.classification import extract_classification_from_text
from aacr2_assist.extraction.confidence import extract_confidence_percent_from_text
from aacr2_assist.extraction.subjects import extract_subject_headings_from_text


@dataclass(frozen=True)
class CatalogingSuggestions:
    classification: str = ""
    subjects: list[str] = field(default_factory=list)
    confidence_percent: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification,
            "subjects": list(self.subjects),
            "confidence_percent": self.confidence_percent,
        }


def extract_cataloging_suggestions_from_text(text: str | None) -> CatalogingSuggestions:
    return CatalogingSuggestions(
        classification=extract_classification_from_text(text),
        subjects=extract_subject_headings_from_text(text),
        confidence_percent=extract_confidence_percent_from_text(text),
    )
