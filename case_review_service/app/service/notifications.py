# Publishing case status changes for the end-user app
import logging
from typing import Optional

from case_review_service.app.config import settings
from case_review_service.app.models import CaseRecord
from case_review_service.app.observability import notifications_published_counter
from case_review_service.infrastructure.kafka.producer import KafkaProducerService
from case_review_service.infrastructure.kafka.schemas import CaseStatusChangedNotification

logger = logging.getLogger(__name__)


class StatusNotifier:
    """
    Emits a CaseStatusChangedNotification whenever an action moves a case to a new status.

    The case update has already been committed when this runs, so a Kafka failure
    is logged and reported as False rather than failing the admin action.
    """

    def __init__(self, producer: Optional[KafkaProducerService], topic: str = settings.NOTIFICATION_KAFKA_TOPIC):
        self.producer = producer
        self.topic = topic

    def notify(self, previous_status: Optional[str], updated: CaseRecord, changed_by: str) -> bool:
        if self.producer is None or previous_status == updated.status:
            return False
        notification = CaseStatusChangedNotification(
            case_id=updated.id,
            user_id=updated.user_id,
            old_status=previous_status,
            new_status=updated.status,
            store=updated.store_name,
            product=updated.product_name,
            changed_by=changed_by,
        )
        try:
            self.producer.produce_message(topic=self.topic, message=notification, key=updated.id)
        except Exception as e:
            logger.error(f"Failed to publish status notification for case {updated.id}: {e}", exc_info=True)
            return False
        notifications_published_counter.add(1, {"new_status": updated.status})
        logger.info(f"Status notification for case {updated.id} ({previous_status} -> {updated.status}) enqueued.")
        return True
