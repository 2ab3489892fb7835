"""Data model for word banks, stats and exam records.

Serialized field names (camelCase) match what is persisted under the
storage keys, so existing saved data keeps loading:

- WordRecord: {"term", "phonetic", "definition", "mistakeCount"}
- ExamRecord: {"tag", "timestamp", "correct", "wrong", "accuracy"}
- QuizStats:  {"correct", "wrong"}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any

# Reserved tag that accumulates every missed record
MISTAKES_TAG = "mistakes"

# Tag used for the main bank when no tag is selected
DEFAULT_TAG = "default"


@dataclass
class WordRecord:
    """One vocabulary entry."""

    term: str
    phonetic: str
    definition: str
    mistake_count: int = 0

    @property
    def identity(self) -> tuple[str, str]:
        """Deduplication key for the mistakes collection."""
        return (self.term, self.definition)

    def copy(self) -> WordRecord:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "term": self.term,
            "phonetic": self.phonetic,
            "definition": self.definition,
            "mistakeCount": self.mistake_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WordRecord:
        return cls(
            term=str(data.get("term", "")),
            phonetic=str(data.get("phonetic", "") or ""),
            definition=str(data.get("definition", "")),
            mistake_count=max(0, int(data.get("mistakeCount", 0) or 0)),
        )


@dataclass
class QuizStats:
    """Running counters for the current exam."""

    correct: int = 0
    wrong: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.wrong

    @property
    def accuracy(self) -> int:
        return accuracy_percent(self.correct, self.wrong)

    def to_dict(self) -> dict[str, int]:
        return {"correct": self.correct, "wrong": self.wrong}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuizStats:
        return cls(
            correct=int(data.get("correct", 0) or 0),
            wrong=int(data.get("wrong", 0) or 0),
        )


@dataclass(frozen=True)
class ExamRecord:
    """Result of one finished exam. Never mutated after creation."""

    tag: str
    timestamp: str
    correct: int
    wrong: int
    accuracy: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "timestamp": self.timestamp,
            "correct": self.correct,
            "wrong": self.wrong,
            "accuracy": self.accuracy,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamRecord:
        return cls(
            tag=str(data.get("tag", "")),
            timestamp=str(data.get("timestamp", "")),
            correct=int(data.get("correct", 0)),
            wrong=int(data.get("wrong", 0)),
            accuracy=int(data.get("accuracy", 0)),
        )


TaggedWordBankSet = dict[str, list[WordRecord]]


def accuracy_percent(correct: int, wrong: int) -> int:
    """Percentage of correct answers, rounded half up. 0 when nothing answered."""
    total = correct + wrong
    if total == 0:
        return 0
    return math.floor(correct / total * 100 + 0.5)


def records_to_list(records: list[WordRecord]) -> list[dict[str, Any]]:
    return [r.to_dict() for r in records]


def records_from_list(data: Any) -> list[WordRecord]:
    """Build records from a decoded JSON list, skipping non-dict entries."""
    if not isinstance(data, list):
        return []
    return [WordRecord.from_dict(item) for item in data if isinstance(item, dict)]


def tagged_to_dict(tagged: TaggedWordBankSet) -> dict[str, list[dict[str, Any]]]:
    return {tag: records_to_list(records) for tag, records in tagged.items()}


def tagged_from_dict(data: Any) -> TaggedWordBankSet:
    if not isinstance(data, dict):
        return {}
    return {str(tag): records_from_list(records) for tag, records in data.items()}
