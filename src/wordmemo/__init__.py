"""WordMemo: vocabulary drills with pluggable persistence."""

__version__ = "0.1.0"
