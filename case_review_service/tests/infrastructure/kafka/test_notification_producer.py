# Unit Tests for the Kafka producer used for status notifications
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from confluent_kafka import KafkaError, Message

from case_review_service.app import config as app_config
from case_review_service.infrastructure.kafka import producer as kafka_producer_module
from case_review_service.infrastructure.kafka.producer import KafkaProducerService
from case_review_service.infrastructure.kafka.schemas import CaseStatusChangedNotification


@pytest.fixture(autouse=True)
def manage_kafka_producer_settings():
    original_kafka_bootstrap_servers = app_config.settings.KAFKA_BOOTSTRAP_SERVERS
    yield
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = original_kafka_bootstrap_servers


@patch('case_review_service.infrastructure.kafka.producer.Producer')
def test_create_kafka_producer_with_servers(MockConfluentProducer):
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = "fake_server:9092"

    producer_service = kafka_producer_module.create_kafka_producer()

    assert isinstance(producer_service, KafkaProducerService)
    MockConfluentProducer.assert_called_once_with({'bootstrap.servers': "fake_server:9092"})


def test_create_kafka_producer_disabled_without_servers():
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = None
    assert kafka_producer_module.create_kafka_producer() is None


@patch('case_review_service.infrastructure.kafka.producer.Producer')
def test_produce_message_serializes_camel_case(MockConfluentProducer):
    mock_confluent_producer_instance = MagicMock()
    MockConfluentProducer.return_value = mock_confluent_producer_instance
    producer_service = KafkaProducerService(bootstrap_servers="fake_server:9092")
    notification = CaseStatusChangedNotification(
        case_id="c1", old_status="PENDING", new_status="APPROVED", changed_by="admin@claimy.test"
    )

    producer_service.produce_message("case_status_notifications", notification, key="c1")

    args, kwargs = mock_confluent_producer_instance.produce.call_args
    assert args == ("case_status_notifications",)
    assert kwargs["key"] == b"c1"
    assert b'"caseId":"c1"' in kwargs["value"]
    assert b'"newStatus":"APPROVED"' in kwargs["value"]
    assert kwargs["callback"] == producer_service._delivery_report


@patch('case_review_service.infrastructure.kafka.producer.Producer')
def test_produce_message_buffer_error(MockConfluentProducer):
    mock_confluent_producer_instance = MagicMock()
    mock_confluent_producer_instance.produce.side_effect = BufferError("Kafka queue full")
    MockConfluentProducer.return_value = mock_confluent_producer_instance
    producer_service = KafkaProducerService(bootstrap_servers="fake_server:9092")
    notification = CaseStatusChangedNotification(case_id="c1", new_status="REJECTED", changed_by="admin")

    with pytest.raises(BufferError, match="Kafka queue full"):
        producer_service.produce_message("case_status_notifications", notification)


@patch('case_review_service.infrastructure.kafka.producer.Producer')
def test_delivery_report_error(MockConfluentProducer):
    service = KafkaProducerService(bootstrap_servers="mock_server_ignored")
    mock_msg = MagicMock(spec=Message)
    mock_msg.topic.return_value = "case_status_notifications"
    mock_msg.key.return_value = b"c1"
    mock_err = KafkaError(KafkaError._MSG_TIMED_OUT)

    with patch.object(kafka_producer_module.logger, 'error') as mock_logger_error:
        service._delivery_report(mock_err, mock_msg)

    mock_logger_error.assert_called_once()
    assert 'Message delivery failed: Topic case_status_notifications' in mock_logger_error.call_args[0][0]


@patch('case_review_service.infrastructure.kafka.producer.Producer')
async def test_poll_loop_start_stop(MockConfluentProducer):
    mock_confluent_producer_instance = MagicMock()
    MockConfluentProducer.return_value = mock_confluent_producer_instance
    service = KafkaProducerService(bootstrap_servers="fake_server:9092")

    await service.start_polling()
    await asyncio.sleep(0.15)
    await service.stop_polling()

    assert mock_confluent_producer_instance.poll.called
    assert service._poll_loop_task is None


async def test_shutdown_flushes_then_stops_polling():
    producer_service = MagicMock(spec=KafkaProducerService)
    producer_service.stop_polling = AsyncMock()

    await kafka_producer_module.shutdown_kafka_producer(producer_service)

    producer_service.flush.assert_called_once()
    producer_service.stop_polling.assert_awaited_once()


async def test_shutdown_without_producer_is_a_no_op():
    await kafka_producer_module.shutdown_kafka_producer(None)
