"""Tests for LC classification extraction from AI prose."""
from __future__ import annotations

import pytest

from aacr2_assist.core.constants import CLASSIFICATION_RANGE_MESSAGE
from aacr2_assist.extraction.classification import (
    ClassificationCandidate,
    LcTarget,
    detect_classification_range,
    extract_classification_from_text,
    extract_lc_candidates,
    extract_lc_call_numbers,
    format_lc_call_number,
    is_blocked_class_prefix,
    normalize_lc_text,
    parse_lc_target,
)


class TestNormalization:
    def test_dash_variants_and_whitespace(self) -> None:
        assert normalize_lc_text("QA76 –  QA77\n") == "QA76 - QA77 "
        assert normalize_lc_text(None) == ""

    def test_format(self) -> None:
        assert format_lc_call_number("qa", "76.73") == "QA 76.73"
        assert format_lc_call_number("", "76") == ""

    def test_blocked_prefixes(self) -> None:
        assert is_blocked_class_prefix("the") is True
        assert is_blocked_class_prefix("QA") is False


class TestCandidates:
    def test_single_class_number(self) -> None:
        assert extract_lc_call_numbers("Try QA76.73 for this title.") == ["QA 76.73"]

    def test_prose_words_are_not_class_numbers(self) -> None:
        assert extract_lc_call_numbers("The book was published in 1999 by the press.") == []

    def test_marc_tag_references_are_ignored(self) -> None:
        assert extract_lc_call_numbers("Record it in LC 050 $a.") == []

    def test_duplicates_collapse_case_insensitively(self) -> None:
        assert extract_lc_call_numbers("QA76.73 and qa 76.73") == ["QA 76.73"]

    def test_keyword_proximity_ranks_first(self) -> None:
        text = "PR 100 " + "filler " * 40 + "Classification QA 76.73"

        assert extract_lc_call_numbers(text) == ["QA 76.73", "PR 100"]

    def test_range_members_are_not_candidates(self) -> None:
        assert extract_lc_call_numbers("Use QA76-QA76.95 or PS 3537") == ["PS 3537"]

    def test_candidates_carry_offset_and_score(self) -> None:
        candidates = extract_lc_candidates("Call number: PS 3537")

        assert candidates == [ClassificationCandidate(value="PS 3537", start_offset=13, score=3)]


class TestBestClassification:
    def test_labelled_line_wins(self) -> None:
        text = "PS 3511 is close.\nClassification: QA76.73 .P98\nSubjects: Python"

        assert extract_classification_from_text(text) == "QA 76.73"

    def test_lc_label(self) -> None:
        assert extract_classification_from_text("LC: PS3537") == "PS 3537"

    def test_fallback_to_best_candidate(self) -> None:
        assert extract_classification_from_text("I would file it under PS 3537.") == "PS 3537"

    def test_nothing_found(self) -> None:
        assert extract_classification_from_text("No idea.") == ""
        assert extract_classification_from_text(None) == ""


class TestRanges:
    @pytest.mark.parametrize(
        "text",
        [
            "QA76-QA76.95",
            "Suggested: QA 76 – 76.95",
            "100-200",
        ],
    )
    def test_ranges_are_detected(self, text: str) -> None:
        assert detect_classification_range(text) == CLASSIFICATION_RANGE_MESSAGE

    @pytest.mark.parametrize(
        "text",
        [
            "QA 76.73",
            "Published in 1990-2000 as a series.",
            "",
        ],
    )
    def test_non_ranges(self, text: str) -> None:
        assert detect_classification_range(text) == ""


class TestLcTarget:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("050$a", LcTarget("050", "a")),
            ("090 $ b", LcTarget("090", "b")),
            ("050A", LcTarget("050", "a")),
        ],
    )
    def test_parse(self, value, expected) -> None:
        assert parse_lc_target(value) == expected

    @pytest.mark.parametrize("value", ["", None, "50$a", "050$"])
    def test_malformed(self, value) -> None:
        assert parse_lc_target(value) is None
