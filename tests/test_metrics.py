import pytest

from maintdesk.core.metrics import (
    NOTIFICATION_DISPATCH_DURATION,
    TICKET_TRANSITIONS,
    MetricsRegistry,
    register_default_metrics,
)


def test_default_metrics_are_registered_up_front():
    snapshot = register_default_metrics(MetricsRegistry()).snapshot()

    assert snapshot[TICKET_TRANSITIONS]["type"] == "counter"
    assert snapshot[NOTIFICATION_DISPATCH_DURATION]["type"] == "distribution"


def test_counter_requires_declared_labels():
    counter = MetricsRegistry().counter("transitions", label_names=("transition",))
    counter.inc(labels={"transition": "assign"})
    counter.inc(2, labels={"transition": "assign"})

    assert counter.value(labels={"transition": "assign"}) == 3
    with pytest.raises(ValueError):
        counter.inc()


def test_distribution_timer_records_observation():
    distribution = MetricsRegistry().distribution("latency")
    with distribution.time():
        pass

    stats = distribution.snapshot()[()]
    assert stats["count"] == 1.0
    assert stats["max"] >= 0.0


def test_registry_rejects_type_clash():
    registry = MetricsRegistry()
    registry.counter("shared")
    with pytest.raises(TypeError):
        registry.distribution("shared")
