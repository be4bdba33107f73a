# opd_core/notifications/tests/test_notify.py
import pytest
from django.db import transaction

from opd_core.common.events import bus
from opd_core.notifications import topics
from opd_core.notifications.selectors import topic_versions
from opd_core.notifications.services import notify

pytestmark = pytest.mark.django_db


def test_versions_start_at_zero_for_every_topic():
    assert topic_versions() == dict.fromkeys(topics.ALL_TOPICS, 0)


def test_notify_bumps_once_per_distinct_topic():
    notify(topics.DOCTOR_QUEUE, topics.DOCTOR_QUEUE, topics.REPORTS)
    notify(topics.DOCTOR_QUEUE)

    v = topic_versions()
    assert v[topics.DOCTOR_QUEUE] == 2
    assert v[topics.REPORTS] == 1
    assert v[topics.LAB_QUEUE] == 0


def test_unknown_topic_is_rejected():
    with pytest.raises(ValueError):
        notify("queueUpdate")


def test_subscribers_fire_only_after_commit(django_capture_on_commit_callbacks):
    seen = []
    bus.subscribe(topics.LAB_QUEUE, seen.append)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        notify(topics.LAB_QUEUE)
        assert seen == []

    assert len(callbacks) == 1
    assert seen == [topics.LAB_QUEUE]


def test_rolled_back_notify_neither_bumps_nor_publishes(django_capture_on_commit_callbacks):
    seen = []
    bus.subscribe(topics.INVENTORY, seen.append)

    with django_capture_on_commit_callbacks(execute=True):
        try:
            with transaction.atomic():
                notify(topics.INVENTORY)
                raise RuntimeError("abort")
        except RuntimeError:
            pass

    assert seen == []
    assert topic_versions()[topics.INVENTORY] == 0


def test_topics_endpoint(api_client_for, doctor_user):
    notify(topics.PHARMACY_QUEUE)
    res = api_client_for(doctor_user).get("/api/notifications/topics")
    assert res.status_code == 200
    assert res.json()[topics.PHARMACY_QUEUE] == 1
