"""Quiz session module.

Responsibilities:
- Load and save word banks, tags, stats, mistakes and exam records
- Run an exam over a copy of one tag's records
- Grade answers (strict for term recall, lenient for definition recall)
- Accumulate missed records in the mistakes collection
- Append an exam record when an exam finishes

All state lives in an explicit SessionContext that callers pass in.
Storage failures never abort an operation: they are logged and the
in-memory state stays authoritative for the rest of the session. A key
that failed to load is kept in memory only and is not saved again, so the
persisted copy survives until storage recovers.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

import structlog

from wordmemo.core.grader import AnswerGrade, GradeMode, grade_answer
from wordmemo.core.models import (
    DEFAULT_TAG,
    MISTAKES_TAG,
    ExamRecord,
    QuizStats,
    TaggedWordBankSet,
    WordRecord,
    accuracy_percent,
    records_from_list,
    records_to_list,
    tagged_from_dict,
    tagged_to_dict,
)
from wordmemo.core.word_parser import DEFAULT_WORD_BANK, parse_word_bank
from wordmemo.storage.base import StorageError
from wordmemo.storage.facade import StorageFacade

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

WORD_BANK_KEY = "wordBank"
TAGGED_WORD_BANKS_KEY = "taggedWordBanks"
STATS_KEY = "stats"
MISTAKES_KEY = "mistakes"
EXAM_RECORDS_KEY = "examRecords"

# term: show the definition, type the term
# definition: show the term, type the definition
QuizMode = Literal["term", "definition"]

GRADE_MODES: dict[str, GradeMode] = {
    "term": "strict",
    "definition": "lenient",
}

UNKNOWN_TAG = "unknown"


# =============================================================================
# DATA CLASSES
# =============================================================================


class QuizSessionError(Exception):
    """Invalid quiz operation (unknown tag, empty bank, no exam running...)."""

    pass


@dataclass
class ExamState:
    """A running exam over a copy of one tag's records."""

    tag: str
    mode: QuizMode
    records: list[WordRecord]
    started_at: str
    used: list[int] = field(default_factory=list)
    current_index: int | None = None
    answered: bool = False

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def remaining(self) -> int:
        return self.total - len(self.used)


@dataclass
class SessionContext:
    """Everything a quiz session reads and writes."""

    word_bank: list[WordRecord] = field(default_factory=list)
    tagged_word_banks: TaggedWordBankSet = field(default_factory=dict)
    stats: QuizStats = field(default_factory=QuizStats)
    mistakes: list[WordRecord] = field(default_factory=list)
    exam_records: list[ExamRecord] = field(default_factory=list)
    current_tag: str | None = None
    mode: QuizMode = "definition"
    exam: ExamState | None = None
    # Keys whose stored value could not be loaded; never written back
    unavailable: set[str] = field(default_factory=set)


@dataclass
class Question:
    """One question of a running exam."""

    record: WordRecord
    mode: QuizMode
    prompt: str
    expected: str
    number: int
    total: int


@dataclass
class AnswerOutcome:
    """Result of checking one answer."""

    is_correct: bool
    given: str
    expected: str
    record: WordRecord
    grade: AnswerGrade
    stats: QuizStats


# =============================================================================
# STORAGE HELPERS
# =============================================================================


async def _safe_load(ctx: SessionContext, storage: StorageFacade, key: str) -> str | None:
    """Load a key; on failure remember it as unavailable and return None."""
    try:
        return await storage.load(key)
    except StorageError as e:
        ctx.unavailable.add(key)
        logger.warning("quiz.storage_unavailable", operation="load", key=key, error=str(e))
        return None


async def _safe_save(ctx: SessionContext, storage: StorageFacade, key: str, value: Any) -> bool:
    """Save a key unless its stored value could not be read this session.

    Keys that failed to load stay in memory only, so a partial in-memory
    view never replaces what is already persisted.
    """
    if key in ctx.unavailable:
        logger.warning("quiz.save_skipped", key=key, reason="stored value could not be loaded")
        return False
    try:
        await storage.save(key, value)
        return True
    except StorageError as e:
        logger.warning("quiz.storage_unavailable", operation="save", key=key, error=str(e))
        return False


def _decode(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


async def _save_tagged(ctx: SessionContext, storage: StorageFacade) -> bool:
    payload = json.dumps(tagged_to_dict(ctx.tagged_word_banks), ensure_ascii=False)
    return await _safe_save(ctx, storage, TAGGED_WORD_BANKS_KEY, payload)


async def _save_stats(ctx: SessionContext, storage: StorageFacade) -> bool:
    return await _safe_save(ctx, storage, STATS_KEY, json.dumps(ctx.stats.to_dict()))


async def _save_mistakes(ctx: SessionContext, storage: StorageFacade) -> bool:
    payload = json.dumps(records_to_list(ctx.mistakes), ensure_ascii=False)
    return await _safe_save(ctx, storage, MISTAKES_KEY, payload)


def _copy_records(records: list[WordRecord]) -> list[WordRecord]:
    return [r.copy() for r in records]


# =============================================================================
# LOADING AND WORD BANKS
# =============================================================================


async def load_session(storage: StorageFacade) -> SessionContext:
    """Build a session context from storage.

    Missing data falls back to the built-in word bank and empty collections.
    """
    ctx = SessionContext()

    saved_bank = await _safe_load(ctx, storage, WORD_BANK_KEY)
    ctx.word_bank = parse_word_bank(saved_bank or DEFAULT_WORD_BANK)

    tagged = _decode(await _safe_load(ctx, storage, TAGGED_WORD_BANKS_KEY))
    if isinstance(tagged, dict):
        ctx.tagged_word_banks = tagged_from_dict(tagged)
    else:
        ctx.tagged_word_banks = {
            MISTAKES_TAG: [],
            DEFAULT_TAG: _copy_records(ctx.word_bank),
        }
        await _save_tagged(ctx, storage)

    stats = _decode(await _safe_load(ctx, storage, STATS_KEY))
    if isinstance(stats, dict):
        ctx.stats = QuizStats.from_dict(stats)

    mistakes = _decode(await _safe_load(ctx, storage, MISTAKES_KEY))
    if isinstance(mistakes, list):
        ctx.mistakes = records_from_list(mistakes)
        ctx.tagged_word_banks[MISTAKES_TAG] = ctx.mistakes
        await _save_tagged(ctx, storage)
    elif MISTAKES_TAG in ctx.tagged_word_banks:
        ctx.mistakes = ctx.tagged_word_banks[MISTAKES_TAG]

    exam_records = _decode(await _safe_load(ctx, storage, EXAM_RECORDS_KEY))
    if isinstance(exam_records, list):
        ctx.exam_records = [
            ExamRecord.from_dict(item) for item in exam_records if isinstance(item, dict)
        ]

    logger.info(
        "quiz.session_loaded",
        words=len(ctx.word_bank),
        tags=len(ctx.tagged_word_banks),
        mistakes=len(ctx.mistakes),
        exams=len(ctx.exam_records),
        unavailable=sorted(ctx.unavailable),
    )
    return ctx


async def save_word_bank(ctx: SessionContext, storage: StorageFacade, text: str) -> list[WordRecord]:
    """Replace the main word bank with parsed text and reset stats.

    The records also go to the current tag, or to the default tag when no
    tag (or the mistakes tag) is selected.
    """
    if not text or not text.strip():
        raise QuizSessionError("Word bank text is empty")

    ctx.word_bank = parse_word_bank(text)
    # Raw text and stats are replaced wholesale, so they can be written
    # even when the previous value could not be read
    ctx.unavailable.difference_update({WORD_BANK_KEY, STATS_KEY})
    await _safe_save(ctx, storage, WORD_BANK_KEY, text)

    target = ctx.current_tag if ctx.current_tag and ctx.current_tag != MISTAKES_TAG else DEFAULT_TAG
    ctx.tagged_word_banks[target] = _copy_records(ctx.word_bank)
    await _save_tagged(ctx, storage)

    ctx.stats = QuizStats()
    await _save_stats(ctx, storage)

    logger.info("quiz.word_bank_saved", tag=target, words=len(ctx.word_bank))
    return ctx.word_bank


async def add_tag(ctx: SessionContext, storage: StorageFacade, name: str, text: str) -> list[WordRecord]:
    """Create a new tag from word bank text."""
    name = (name or "").strip()
    if not name:
        raise QuizSessionError("Tag name is empty")
    if name in ctx.tagged_word_banks:
        raise QuizSessionError(f"Tag already exists: {name}")
    if not text or not text.strip():
        raise QuizSessionError("Word bank text is empty")

    records = parse_word_bank(text)
    ctx.tagged_word_banks[name] = records
    await _save_tagged(ctx, storage)

    logger.info("quiz.tag_added", tag=name, words=len(records))
    return records


async def remove_tag(ctx: SessionContext, storage: StorageFacade, name: str) -> None:
    """Delete a user tag. The mistakes collection is cleared with clear_mistakes."""
    if name == MISTAKES_TAG:
        raise QuizSessionError("The mistakes tag is cleared, not removed")
    if name not in ctx.tagged_word_banks:
        raise QuizSessionError(f"Unknown tag: {name}")

    del ctx.tagged_word_banks[name]
    if ctx.current_tag == name:
        ctx.current_tag = None
    await _save_tagged(ctx, storage)
    logger.info("quiz.tag_removed", tag=name)


def select_tag(ctx: SessionContext, name: str) -> list[WordRecord]:
    """Make a tag current and return a copy of its records."""
    if name not in ctx.tagged_word_banks:
        raise QuizSessionError(f"Unknown tag: {name}")
    ctx.current_tag = name
    return _copy_records(ctx.tagged_word_banks[name])


# =============================================================================
# EXAM FLOW
# =============================================================================


def start_exam(ctx: SessionContext, tag: str | None = None, mode: QuizMode | None = None) -> ExamState:
    """Start an exam over a copy of a tag's records and reset stats.

    Without a tag, the current tag is used, then the default tag.
    """
    tag = tag or ctx.current_tag or DEFAULT_TAG
    mode = mode or ctx.mode
    if mode not in GRADE_MODES:
        raise QuizSessionError(f"Unknown quiz mode: {mode}")

    if tag in ctx.tagged_word_banks:
        records = ctx.tagged_word_banks[tag]
    elif tag == DEFAULT_TAG:
        records = ctx.word_bank
    else:
        raise QuizSessionError(f"Unknown tag: {tag}")

    if not records:
        raise QuizSessionError(f"No words in tag: {tag}")

    ctx.current_tag = tag
    ctx.mode = mode
    ctx.stats = QuizStats()
    ctx.exam = ExamState(
        tag=tag,
        mode=mode,
        records=_copy_records(records),
        started_at=datetime.now(timezone.utc).isoformat(),
    )

    logger.info("quiz.exam_started", tag=tag, mode=mode, words=len(records))
    return ctx.exam


def start_mistakes_exam(ctx: SessionContext, mode: QuizMode | None = None) -> ExamState:
    """Start an exam over the mistakes collection."""
    if not ctx.mistakes:
        raise QuizSessionError("The mistakes collection is empty")
    ctx.tagged_word_banks[MISTAKES_TAG] = ctx.mistakes
    return start_exam(ctx, MISTAKES_TAG, mode)


def _require_exam(ctx: SessionContext) -> ExamState:
    if ctx.exam is None:
        raise QuizSessionError("No exam is running")
    return ctx.exam


def next_question(ctx: SessionContext, rng: random.Random | None = None) -> Question | None:
    """Pick a random record not asked yet. Returns None when all were asked."""
    exam = _require_exam(ctx)
    available = [i for i in range(exam.total) if i not in exam.used]
    if not available:
        exam.current_index = None
        return None

    index = (rng or random).choice(available)
    exam.used.append(index)
    exam.current_index = index
    exam.answered = False

    record = exam.records[index]
    if exam.mode == "term":
        prompt, expected = record.definition, record.term
    else:
        prompt = f"{record.term} {record.phonetic}".strip()
        expected = record.definition

    return Question(
        record=record,
        mode=exam.mode,
        prompt=prompt,
        expected=expected,
        number=len(exam.used),
        total=exam.total,
    )


async def record_mistake(ctx: SessionContext, storage: StorageFacade, record: WordRecord) -> WordRecord:
    """Add a missed record to the mistakes collection.

    A record already present (same term and definition) has its
    mistake_count incremented instead of being added again.
    """
    entry = next((m for m in ctx.mistakes if m.identity == record.identity), None)
    if entry is not None:
        entry.mistake_count += 1
    else:
        entry = WordRecord(
            term=record.term,
            phonetic=record.phonetic,
            definition=record.definition,
            mistake_count=1,
        )
        ctx.mistakes.append(entry)

    ctx.tagged_word_banks[MISTAKES_TAG] = ctx.mistakes
    await _save_mistakes(ctx, storage)
    await _save_tagged(ctx, storage)
    return entry


async def check_answer(ctx: SessionContext, storage: StorageFacade, answer: str) -> AnswerOutcome:
    """Grade the answer to the current question and update stats."""
    exam = _require_exam(ctx)
    if exam.current_index is None:
        raise QuizSessionError("No question has been asked")
    if exam.answered:
        raise QuizSessionError("The current question was already answered")

    given = (answer or "").strip()
    if not given:
        raise QuizSessionError("Answer is empty")

    record = exam.records[exam.current_index]
    expected = record.term if exam.mode == "term" else record.definition
    grade = grade_answer(GRADE_MODES[exam.mode], given, expected)
    exam.answered = True

    if grade.is_correct:
        ctx.stats.correct += 1
    else:
        ctx.stats.wrong += 1
        await record_mistake(ctx, storage, record)

    await _save_stats(ctx, storage)

    return AnswerOutcome(
        is_correct=grade.is_correct,
        given=given,
        expected=expected,
        record=record,
        grade=grade,
        stats=QuizStats(ctx.stats.correct, ctx.stats.wrong),
    )


async def finish_exam(
    ctx: SessionContext,
    storage: StorageFacade,
    now: datetime | None = None,
) -> ExamRecord | None:
    """End the running exam; append an exam record if anything was answered."""
    exam = ctx.exam
    if exam is None:
        return None

    record: ExamRecord | None = None
    if ctx.stats.total > 0:
        record = ExamRecord(
            tag=exam.tag or UNKNOWN_TAG,
            timestamp=(now or datetime.now(timezone.utc)).isoformat(),
            correct=ctx.stats.correct,
            wrong=ctx.stats.wrong,
            accuracy=accuracy_percent(ctx.stats.correct, ctx.stats.wrong),
        )
        ctx.exam_records.append(record)
        await _safe_save(
            ctx,
            storage,
            EXAM_RECORDS_KEY,
            json.dumps([r.to_dict() for r in ctx.exam_records], ensure_ascii=False),
        )
        logger.info(
            "quiz.exam_finished",
            tag=record.tag,
            correct=record.correct,
            wrong=record.wrong,
            accuracy=record.accuracy,
        )

    ctx.exam = None
    return record


async def clear_mistakes(ctx: SessionContext, storage: StorageFacade) -> None:
    """Empty the mistakes collection and drop its tag."""
    ctx.mistakes = []
    ctx.unavailable.discard(MISTAKES_KEY)
    await _save_mistakes(ctx, storage)
    ctx.tagged_word_banks.pop(MISTAKES_TAG, None)
    await _save_tagged(ctx, storage)
    logger.info("quiz.mistakes_cleared")


def _timestamp_key(record: ExamRecord) -> datetime:
    try:
        parsed = datetime.fromisoformat(record.timestamp.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def exam_history(ctx: SessionContext) -> list[ExamRecord]:
    """Exam records, newest first."""
    return sorted(ctx.exam_records, key=_timestamp_key, reverse=True)
