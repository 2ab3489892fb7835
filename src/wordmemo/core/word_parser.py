"""Word bank parser.

Turns the user-edited word bank text into WordRecord objects.

Expected format (one entry per two lines, blank lines allowed):

    aunt [ɑ:nt]
    n. 阿姨; 姑妈等
    card [kɑ:d]
    n. 卡片; 名片; 纸牌

Malformed entries are dropped, never reported: parse_word_bank always
returns a list, possibly empty.
"""

from __future__ import annotations

import re

from wordmemo.core.models import WordRecord

# Term, optionally followed by a bracketed phonetic transcription
TERM_LINE_PATTERN = re.compile(r"^([A-Za-z\- ]+?)(?:\s+(\[[^\]]+\]))?$")

# Definition lines start with a part-of-speech tag such as "n." or "adj."
POS_PREFIX_PATTERN = re.compile(r"^[A-Za-z]{1,5}\.")

DEFAULT_WORD_BANK = """aunt [ɑ:nt]
n. 阿姨; 姑妈等
card [kɑ:d]
n. 卡片; 名片; 纸牌
fold [fəuld]
v. 折叠; 折起来; 合拢 n. 褶;...
grandfather [ˈɡrændˌfɑ:ðə]
n. 祖父; 外祖父"""


def _is_term_candidate(line: str) -> bool:
    return bool(line) and not POS_PREFIX_PATTERN.match(line)


def parse_word_bank(text: str) -> list[WordRecord]:
    """Parse word bank text into records.

    Args:
        text: Raw multi-line word bank text

    Returns:
        Records in input order, each with mistake_count 0
    """
    lines = text.strip().split("\n") if text else []
    records: list[WordRecord] = []
    i = 0

    while i < len(lines):
        term_line = lines[i].strip()
        if not _is_term_candidate(term_line):
            i += 1
            continue

        definition = lines[i + 1].strip() if i + 1 < len(lines) else ""
        if not definition:
            i += 1
            continue

        match = TERM_LINE_PATTERN.match(term_line)
        if match:
            records.append(
                WordRecord(
                    term=match.group(1).strip(),
                    phonetic=match.group(2) or "",
                    definition=definition,
                )
            )
        i += 2

    return records


def format_word_bank(records: list[WordRecord]) -> str:
    """Render records back into the editable two-line format."""
    blocks = []
    for record in records:
        head = f"{record.term} {record.phonetic}" if record.phonetic else record.term
        blocks.append(f"{head}\n{record.definition}\n")
    return "\n".join(blocks)
