import asyncio
import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from bloodnet.config import settings
from bloodnet.dependencies import get_broker
from bloodnet.services.notification_service import city_topic, facility_topic
from bloodnet.services.notification_sse import TopicBroker
from bloodnet.utils.data_wrapper import ResponseWrapper
from bloodnet.utils.exceptions import ValidationError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


def format_sse(payload: dict, event: Optional[str] = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload, default=str)}")
    return "\n".join(lines) + "\n\n"


@router.get("/stream")
async def stream_inventory_updates(
    request: Request,
    city_id: Optional[UUID] = Query(None, description="Receive updates for a city"),
    facility_id: Optional[UUID] = Query(None, description="Receive updates for a blood bank"),
    broker: TopicBroker = Depends(get_broker),
):
    """
    SSE stream of inventory and blood request changes.

    Query Parameters:
        city_id: subscribe to ``city:<city_id>``
        facility_id: subscribe to ``facility:<facility_id>``

    At least one of them is required. A heartbeat comment is sent when the
    stream has been idle for ``SSE_HEARTBEAT_SECONDS``.

    Example:
        GET /api/notifications/stream?city_id=...
    """
    topics = []
    if city_id is not None:
        topics.append(city_topic(city_id))
    if facility_id is not None:
        topics.append(facility_topic(facility_id))
    if not topics:
        raise ValidationError("Provide city_id or facility_id to subscribe", field="city_id")

    queue = await broker.subscribe(topics)
    client_ip = request.client.host if request.client else "unknown"

    logger.info(
        "SSE connection established",
        extra={'extra_fields': {
            'event_type': 'sse_connection_established',
            'topics': topics,
            'ip_address': client_ip,
        }}
    )

    async def event_stream():
        try:
            yield format_sse(
                {
                    "type": "connection_established",
                    "topics": topics,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
                event="connection_established",
            )

            while True:
                if await request.is_disconnected():
                    logger.info(
                        "SSE client disconnected",
                        extra={'extra_fields': {'event_type': 'sse_client_disconnected', 'topics': topics}}
                    )
                    break

                try:
                    message = await asyncio.wait_for(
                        queue.get(), timeout=settings.SSE_HEARTBEAT_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield f": heartbeat {datetime.now(timezone.utc).isoformat()}\n\n"
                    continue

                yield format_sse(message, event=message["data"].get("type"))
        finally:
            await broker.unsubscribe(queue, topics)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/stats", response_model=ResponseWrapper[dict])
async def get_stream_stats(broker: TopicBroker = Depends(get_broker)):
    return ResponseWrapper(data=broker.get_stats())
