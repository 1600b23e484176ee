from typing import Optional

from fastapi import Depends

from case_review_service.app.service.notifications import StatusNotifier
from case_review_service.infrastructure.kafka.producer import KafkaProducerService, get_kafka_producer


def get_status_notifier(
    producer: Optional[KafkaProducerService] = Depends(get_kafka_producer),
) -> StatusNotifier:
    return StatusNotifier(producer=producer)
