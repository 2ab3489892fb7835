"""Answer grading module.

Responsibilities:
- Grade a typed answer against the expected answer of a word record
- strict: term recall, exact match after trimming and case folding
- lenient: definition recall, normalized comparison with containment
  and edit-distance similarity

The abbreviation set and the similarity threshold are fixed constants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

# =============================================================================
# TYPES
# =============================================================================

GradeMode = Literal["strict", "lenient"]
MatchKind = Literal["exact", "containment", "similarity", "none"]

# =============================================================================
# CONSTANTS
# =============================================================================

SIMILARITY_THRESHOLD = 0.70

PART_OF_SPEECH_ABBREVIATIONS = (
    "adj", "adv", "n", "vt", "vi", "prep", "conj", "pron", "num", "art", "int",
)

# Abbreviation token, not glued to surrounding Latin letters, optional period
_ABBREVIATION_PATTERN = re.compile(
    r"(?<![A-Za-z0-9_])(?:" + "|".join(PART_OF_SPEECH_ABBREVIATIONS) + r")(?![A-Za-z])\.?"
)
_SEPARATOR_PATTERN = re.compile(r"[&;，。、\s]+")
_NON_LATIN_OR_CJK_PATTERN = re.compile(r"[^a-zA-Z\u4e00-\u9fa5]")


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class AnswerGrade:
    """Outcome of grading one answer."""

    is_correct: bool
    similarity: float
    match: MatchKind
    normalized_answer: str = ""
    normalized_expected: str = ""


_EMPTY_GRADE = AnswerGrade(is_correct=False, similarity=0.0, match="none")


# =============================================================================
# HELPERS
# =============================================================================


def normalize_answer(text: str) -> str:
    """Reduce a definition to its Latin letters and CJK ideographs.

    Lower-cases, strips part-of-speech tags (n., adj., vt. ...), separators
    and whitespace, then anything that is neither a Latin letter nor a CJK
    ideograph.
    """
    result = text.lower()
    result = _ABBREVIATION_PATTERN.sub("", result)
    result = _SEPARATOR_PATTERN.sub("", result)
    result = _NON_LATIN_OR_CJK_PATTERN.sub("", result)
    return result.strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert, delete, substitute) between two strings."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance / longest length. 0.0 when both are empty."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return 1 - levenshtein(a, b) / longest


def _grade_strict(candidate: str, expected: str) -> AnswerGrade:
    given = candidate.strip().casefold()
    wanted = expected.strip().casefold()
    if not given or not wanted:
        return _EMPTY_GRADE
    if given == wanted:
        return AnswerGrade(True, 1.0, "exact", given, wanted)
    return AnswerGrade(False, similarity(given, wanted), "none", given, wanted)


def _grade_lenient(candidate: str, expected: str) -> AnswerGrade:
    a = normalize_answer(candidate)
    b = normalize_answer(expected)

    if not a or not b:
        return AnswerGrade(False, 0.0, "none", a, b)
    if a == b:
        return AnswerGrade(True, 1.0, "exact", a, b)
    if a in b or b in a:
        return AnswerGrade(True, similarity(a, b), "containment", a, b)

    score = similarity(a, b)
    if score > SIMILARITY_THRESHOLD:
        return AnswerGrade(True, score, "similarity", a, b)
    return AnswerGrade(False, score, "none", a, b)


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================


def grade_answer(mode: GradeMode, candidate: str, expected: str) -> AnswerGrade:
    """Grade an answer and report how the decision was reached.

    Args:
        mode: "strict" (term recall) or "lenient" (definition recall)
        candidate: What the user typed
        expected: The stored answer

    Returns:
        AnswerGrade; empty input on either side is never correct
    """
    if not candidate or not expected:
        return _EMPTY_GRADE

    if mode == "strict":
        return _grade_strict(candidate, expected)
    if mode == "lenient":
        return _grade_lenient(candidate, expected)
    raise ValueError(f"Unknown grade mode: {mode}")


def is_correct(mode: GradeMode, candidate: str, expected: str) -> bool:
    """Return True when the answer counts as correct under the given mode."""
    return grade_answer(mode, candidate, expected).is_correct
