from typing import Any, Dict
from uuid import UUID

from bloodnet.schemas.inventory import InventoryChangeEvent
from bloodnet.schemas.request import BloodRequestEvent
from bloodnet.services.ports import EventPublisher
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


def city_topic(city_id: UUID) -> str:
    return f"city:{city_id}"


def facility_topic(facility_id: UUID) -> str:
    return f"facility:{facility_id}"


class NotificationService:
    """Turns inventory and request changes into topic events"""

    def __init__(self, publisher: EventPublisher):
        self.publisher = publisher

    async def _publish(self, topic: str, payload: Dict[str, Any]) -> bool:
        # A failed broadcast must never undo or fail the write that caused it
        try:
            await self.publisher.publish(topic, payload)
            return True
        except Exception as e:
            logger.error(
                f"Failed to publish {payload.get('type')} on {topic}: {e}",
                extra={'extra_fields': {'topic': topic, 'event_type': payload.get('type')}},
                exc_info=True,
            )
            return False

    async def inventory_changed(self, event: InventoryChangeEvent) -> int:
        """Publish once to the city topic and once to the facility topic"""
        payload = event.to_payload()
        delivered = 0
        for topic in (city_topic(event.city_id), facility_topic(event.facility_id)):
            if await self._publish(topic, payload):
                delivered += 1
        return delivered

    async def blood_request_changed(self, event: BloodRequestEvent) -> bool:
        return await self._publish(city_topic(event.city_id), event.to_payload())
