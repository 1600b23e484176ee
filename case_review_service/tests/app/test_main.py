from unittest.mock import AsyncMock, MagicMock, patch

from case_review_service.app import main
from case_review_service.infrastructure.cloudinary_client import CloudinaryClient
from case_review_service.infrastructure.gmail_client import GmailClient


@patch("case_review_service.app.main.create_kafka_producer")
@patch("case_review_service.app.main.store_config_store.ensure_indexes", new_callable=AsyncMock)
@patch("case_review_service.app.main.create_mongo_connection")
async def test_startup_wires_clients_and_shutdown_releases_them(mock_create_conn, mock_ensure_indexes, mock_create_producer):
    connection = MagicMock()
    connection.connect = AsyncMock(return_value="db")
    mock_create_conn.return_value = connection
    producer = MagicMock()
    producer.start_polling = AsyncMock()
    producer.stop_polling = AsyncMock()
    mock_create_producer.return_value = producer

    await main.startup_event()

    assert isinstance(main.app.state.gmail_client, GmailClient)
    assert isinstance(main.app.state.cloudinary_client, CloudinaryClient)
    assert main.app.state.mongo is connection
    mock_ensure_indexes.assert_awaited_once_with("db")
    producer.start_polling.assert_awaited_once()

    await main.shutdown_event()

    producer.flush.assert_called_once()
    connection.close.assert_called_once()
    assert main.app.state.http_client.is_closed
    del main.app.state.mongo


@patch("case_review_service.app.main.create_kafka_producer")
@patch("case_review_service.app.main.create_mongo_connection")
async def test_startup_survives_database_failure(mock_create_conn, mock_create_producer):
    connection = MagicMock()
    connection.connect = AsyncMock(side_effect=ConnectionError("Failed to connect to MongoDB"))
    mock_create_conn.return_value = connection

    await main.startup_event()

    assert main.app.state.kafka_producer is None
    mock_create_producer.assert_not_called()
    await main.app.state.http_client.aclose()
    del main.app.state.mongo
