# ==============================
# Topic Matching
# ==============================
"""
Hierarchical topic matching.

Topics are '/'-delimited token sequences. In a pattern:
- '+' matches exactly one token
- '#' matches zero or more remaining tokens (final token only)

Pure functions only: no I/O, no state. System-topic exclusion is decided by the
classifier, not here.
"""

from __future__ import annotations

from typing import List

SEPARATOR = "/"
SINGLE_LEVEL = "+"
MULTI_LEVEL = "#"
DEFAULT_SYS_PREFIX = "$SYS/"


def words(topic: str) -> List[str]:
    return topic.split(SEPARATOR)


def matches(pattern: str, topic: str) -> bool:
    """Return True if concrete `topic` matches wildcard `pattern`."""
    pattern_words = words(pattern)
    topic_words = words(topic)
    for idx, token in enumerate(pattern_words):
        if token == MULTI_LEVEL:
            return True
        if idx >= len(topic_words):
            return False
        if token != SINGLE_LEVEL and token != topic_words[idx]:
            return False
    return len(pattern_words) == len(topic_words)


def validate_pattern(pattern: str) -> str:
    """
    Raise ValueError if `pattern` is not a legal topic filter.
    Returns the pattern unchanged so it can be used inline.
    """
    if not pattern:
        raise ValueError("topic pattern must not be empty")
    if "\x00" in pattern:
        raise ValueError("topic pattern must not contain NUL")
    tokens = words(pattern)
    last = len(tokens) - 1
    for idx, token in enumerate(tokens):
        if token == MULTI_LEVEL:
            if idx != last:
                raise ValueError(f"'#' must be the last level: {pattern!r}")
            continue
        if token == SINGLE_LEVEL:
            continue
        if MULTI_LEVEL in token or SINGLE_LEVEL in token:
            raise ValueError(f"wildcard must occupy a whole level: {pattern!r}")
    return pattern


def is_system_topic(topic: str, prefix: str = DEFAULT_SYS_PREFIX) -> bool:
    return topic.startswith(prefix)
