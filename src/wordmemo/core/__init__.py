"""Core vocabulary logic.

Modules:
- models: word records, stats, exam records
- word_parser: word bank text <-> records
- grader: strict and lenient answer grading
- quiz_session: exam flow, mistakes collection, exam history
"""

__all__ = [
    "models",
    "word_parser",
    "grader",
    "quiz_session",
]
