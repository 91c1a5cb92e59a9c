from __future__ import annotations

# ==============================
# Selector Filter Tests
# ==============================

import logging

import pytest

from core.contracts.trace_schema import Origin, PublishEvent, Selector, SelectorKind
from core.tracing.classifier import classify
from core.tracing.filters import SelectorFilter, accepts


def _log_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("msgtrace.trace", logging.INFO, __file__, 1, "msg", None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_eligible_record_against_selectors() -> None:
    record = classify(PublishEvent(origin=Origin(kind="client", id="dev1"), topic="a/b", payload="x"))
    assert record is not None

    assert accepts(record, Selector.client_id("dev1"))
    assert not accepts(record, Selector.client_id("dev2"))
    assert accepts(record, Selector.topic("a/+"))
    assert not accepts(record, Selector.topic("c/+"))


def test_log_record_without_metadata_is_rejected() -> None:
    bare = _log_record()
    assert not accepts(bare, Selector.client_id("dev1"))
    assert not accepts(bare, Selector.topic("#"))


def test_client_id_must_match_exactly() -> None:
    assert not accepts(_log_record(client_id="dev10"), Selector.client_id("dev1"))
    assert not accepts(_log_record(client_id="DEV1"), Selector.client_id("dev1"))
    assert accepts(_log_record(client_id="dev1", topic="x"), Selector.client_id("dev1"))


def test_topic_selector_ignores_client_metadata() -> None:
    assert not accepts(_log_record(client_id="a/b"), Selector.topic("a/b"))


def test_empty_metadata_is_rejected() -> None:
    assert not accepts(_log_record(topic=""), Selector.topic("#"))
    assert not accepts(_log_record(client_id=""), Selector.client_id("dev1"))
    assert accepts(_log_record(topic="a"), Selector.topic("#"))


def test_selector_filter_is_bound_once() -> None:
    selector = Selector.topic("sensor/#")
    flt = SelectorFilter(selector)
    assert flt.selector is selector
    assert flt.filter(_log_record(topic="sensor/1/temp"))
    assert not flt.filter(_log_record(topic="actuator/1"))
    with pytest.raises(Exception):
        selector.value = "other"  # type: ignore[misc]


def test_selector_identity() -> None:
    assert Selector.client_id("x") == Selector(kind=SelectorKind.CLIENT_ID, value="x")
    assert Selector.client_id("x") != Selector.topic("x")
    assert len({Selector.topic("a/+"), Selector.topic("a/+"), Selector.client_id("a/+")}) == 2


@pytest.mark.parametrize("bad", ["", "a/#/b", "a+"])
def test_invalid_topic_selector_raises(bad: str) -> None:
    with pytest.raises(ValueError):
        Selector.topic(bad)


def test_empty_client_id_raises() -> None:
    with pytest.raises(ValueError):
        Selector.client_id("")
