from unittest.mock import MagicMock

import pytest

from case_review_service.app.models import CaseRecord
from case_review_service.app.service.notifications import StatusNotifier
from case_review_service.infrastructure.kafka.producer import KafkaProducerService
from case_review_service.infrastructure.kafka.schemas import CaseStatusChangedNotification

UPDATED = CaseRecord(id="c1", user_id="u1", store_name="Shop", product_name="Kettle", status="APPROVED")


@pytest.fixture
def producer():
    return MagicMock(spec=KafkaProducerService)


def test_status_change_is_published(producer):
    notifier = StatusNotifier(producer, topic="case_status_notifications")

    assert notifier.notify("IN_REVIEW", UPDATED, "admin@claimy.test") is True

    kwargs = producer.produce_message.call_args.kwargs
    assert kwargs["topic"] == "case_status_notifications"
    assert kwargs["key"] == "c1"
    message = kwargs["message"]
    assert isinstance(message, CaseStatusChangedNotification)
    assert (message.old_status, message.new_status) == ("IN_REVIEW", "APPROVED")
    assert message.user_id == "u1"


def test_unchanged_status_is_not_published(producer):
    assert StatusNotifier(producer).notify("APPROVED", UPDATED, "admin") is False
    producer.produce_message.assert_not_called()


def test_disabled_without_producer():
    assert StatusNotifier(None).notify("PENDING", UPDATED, "admin") is False


def test_publish_failure_does_not_raise(producer):
    producer.produce_message.side_effect = BufferError("queue full")
    assert StatusNotifier(producer).notify("PENDING", UPDATED, "admin") is False
