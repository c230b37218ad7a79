"""
Calculator registry + event bus.

Tests:
1-5. Registry: lookup, unknown key, crash isolation, replacement, schema warning
6-9. Bus: delivery, unsubscribe, handler isolation, read-only payloads
"""

import logging

import pytest

from costflow.bus import COMPUTED, EventBus
from costflow.calculators.registry import CalculatorRegistry
from costflow.validation import FieldRule


# --- Test fixtures ---

class _ExplodingCalculator:
    SCHEMA = {}
    CONSUMED_FIELDS = ()

    def compute(self, raw_inputs):
        raise ZeroDivisionError("division by zero")

    def explain(self, state):
        raise KeyError("results")


class _EchoCalculator:
    def __init__(self, tag="echo"):
        self.tag = tag

    def compute(self, raw_inputs):
        return {"calculator": self.tag, "inputs": dict(raw_inputs), "results": {"total": 1.0}}

    def explain(self, state):
        return "echo %s" % state["results"]["total"]


# --- Registry ---

def test_builtin_calculators_registered(registry):
    assert registry.list_calculators() == ["concrete", "framing", "paint", "roofing"]
    assert registry.has_calculator("concrete")
    assert registry.get_calculator("nope") is None


def test_unknown_calculator_warns_once(registry, caplog):
    """compute('nonexistent', {}) is falsy and logs exactly one warning."""
    with caplog.at_level(logging.WARNING, logger="costflow.calculators.registry"):
        result = registry.compute("nonexistent", {})
    assert not result
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "nonexistent" in warnings[0].getMessage()


def test_calculator_crash_is_isolated(registry, caplog):
    registry.register_calculator("boom", _ExplodingCalculator())
    with caplog.at_level(logging.ERROR, logger="costflow.calculators.registry"):
        assert registry.compute("boom", {"x": 1}) is None
        assert registry.explain("boom", {"results": {}}) == ""
    assert "boom" in caplog.text
    # the rest of the registry keeps working
    result = registry.compute("concrete", {"length": "20", "width": "10", "thickness": "4"})
    assert result["results"]["adjusted_yd3"] == 2.593


def test_reregistering_replaces():
    registry = CalculatorRegistry()
    registry.register_calculator("echo", _EchoCalculator("first"))
    registry.register_calculator("echo", _EchoCalculator("second"))
    assert registry.list_calculators() == ["echo"]
    assert registry.compute("echo", {})["calculator"] == "second"
    assert registry.explain("echo", {"results": {"total": 2}}) == "echo 2"


def test_incomplete_schema_warns_on_register(caplog):
    class Incomplete(_EchoCalculator):
        SCHEMA = {"length": FieldRule(type="number")}
        CONSUMED_FIELDS = ("length", "width")

    with caplog.at_level(logging.WARNING, logger="costflow.calculators.registry"):
        CalculatorRegistry().register_calculator("incomplete", Incomplete())
    assert "width" in caplog.text


# --- Bus ---

def test_publish_reaches_subscribers():
    bus = EventBus()
    seen = []
    bus.subscribe(COMPUTED, lambda payload: seen.append(payload["calculator"]))
    assert bus.publish(COMPUTED, {"calculator": "concrete"}) == 1
    assert bus.publish("other:topic", {"calculator": "x"}) == 0
    assert seen == ["concrete"]


def test_unsubscribe_and_reset():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(COMPUTED, seen.append)
    unsubscribe()
    unsubscribe()  # second call is a no-op
    bus.publish(COMPUTED, {"calculator": "concrete"})
    assert seen == []

    bus.subscribe(COMPUTED, seen.append)
    bus.reset()
    assert bus.subscriber_count(COMPUTED) == 0


def test_failing_handler_does_not_stop_others(caplog):
    bus = EventBus()
    seen = []

    def broken(payload):
        raise RuntimeError("analytics offline")

    bus.subscribe(COMPUTED, broken)
    bus.subscribe(COMPUTED, lambda payload: seen.append(payload["calculator"]))
    with caplog.at_level(logging.ERROR, logger="costflow.bus"):
        delivered = bus.publish(COMPUTED, {"calculator": "paint"})
    assert delivered == 1
    assert seen == ["paint"]
    assert "analytics offline" in caplog.text


def test_handlers_cannot_mutate_payload():
    bus = EventBus()
    payload = {"calculator": "concrete", "results": {"total": 10.0}}

    def meddle(received):
        received["results"]["total"] = 0

    bus.subscribe(COMPUTED, meddle)
    assert bus.publish(COMPUTED, payload) == 0
    assert payload["results"]["total"] == 10.0

    received = []
    bus.subscribe("calculator:reset", received.append)
    bus.publish("calculator:reset", {"calculator": "concrete"})
    with pytest.raises(TypeError):
        received[0]["calculator"] = "paint"
