# opd_core/common/tests/test_event_bus.py
from opd_core.common.events import EventBus


def test_publish_calls_every_subscriber_of_the_topic_only():
    b = EventBus()
    seen = []
    b.subscribe("doctorQueueUpdate", lambda t: seen.append(("a", t)))
    b.subscribe("doctorQueueUpdate", lambda t: seen.append(("b", t)))
    b.subscribe("labQueueUpdate", lambda t: seen.append(("c", t)))

    assert b.publish("doctorQueueUpdate") == 2
    assert seen == [("a", "doctorQueueUpdate"), ("b", "doctorQueueUpdate")]


def test_unsubscribe_callable_detaches_handler():
    b = EventBus()
    seen = []
    off = b.subscribe("inventoryUpdate", seen.append)
    off()

    assert b.publish("inventoryUpdate") == 0
    assert seen == []


def test_failing_handler_does_not_stop_the_others():
    b = EventBus()
    seen = []

    def boom(topic):
        raise RuntimeError("handler broke")

    b.subscribe("pharmacyQueueUpdate", boom)
    b.subscribe("pharmacyQueueUpdate", seen.append)

    assert b.publish("pharmacyQueueUpdate") == 2
    assert seen == ["pharmacyQueueUpdate"]


def test_subscribe_decorator_registers_on_process_bus():
    from opd_core.common.events import publish, subscribe

    seen = []

    @subscribe("reportsUpdate")
    def on_reports(topic):
        seen.append(topic)

    assert publish("reportsUpdate") == 1
    assert seen == ["reportsUpdate"]
