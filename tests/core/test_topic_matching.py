from __future__ import annotations

# ==============================
# Topic Matching Tests
# ==============================

import pytest

from core.tracing.topic import is_system_topic, matches, validate_pattern, words


@pytest.mark.parametrize(
    "pattern,topic,expected",
    [
        ("sensor/+/temp", "sensor/room1/temp", True),
        ("sensor/+/temp", "sensor/room1/hall/temp", False),
        ("sensor/#", "sensor/a/b/c", True),
        ("sensor/#", "sensor", True),
        ("#", "", True),
        ("#", "a/b/c", True),
        ("a/b", "a/b", True),
        ("a/b", "a/b/c", False),
        ("a/b/c", "a/b", False),
        ("+", "a", True),
        ("+", "a/b", False),
        ("+/+", "/finance", True),
        ("a/+/#", "a/b", True),
        ("a/+/#", "a", False),
    ],
)
def test_matches(pattern: str, topic: str, expected: bool) -> None:
    assert matches(pattern, topic) is expected


def test_matches_is_deterministic() -> None:
    results = {matches("sensor/+/temp", "sensor/x/temp") for _ in range(50)}
    assert results == {True}


def test_system_topics_are_matchable() -> None:
    assert matches("$SYS/#", "$SYS/brokers/node1/uptime")
    assert matches("+/brokers/#", "$SYS/brokers")
    assert is_system_topic("$SYS/brokers")
    assert not is_system_topic("a/$SYS/b")


def test_words() -> None:
    assert words("a/b/c") == ["a", "b", "c"]
    assert words("/a/") == ["", "a", ""]


@pytest.mark.parametrize("pattern", ["a/b", "a/+/c", "#", "a/#", "+", "/+/"])
def test_validate_pattern_accepts(pattern: str) -> None:
    assert validate_pattern(pattern) == pattern


@pytest.mark.parametrize("pattern", ["", "a/#/b", "#/a", "a/b#", "a+/b", "a/\x00"])
def test_validate_pattern_rejects(pattern: str) -> None:
    with pytest.raises(ValueError):
        validate_pattern(pattern)
