from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodnet.db.base import utcnow
from bloodnet.models import BloodRequest, Hospital
from bloodnet.schemas.base_schema import RequestStatus
from bloodnet.schemas.request import (
    BloodRequestCreate,
    BloodRequestEvent,
    BloodRequestStatusUpdate,
)
from bloodnet.services.notification_service import NotificationService
from bloodnet.services.ports import EventPublisher
from bloodnet.utils.exceptions import NotFoundError, PersistenceError, ValidationError
from bloodnet.utils.logging_config import get_logger, log_audit_event

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    RequestStatus.PENDING: {
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.APPROVED: {
        RequestStatus.FULFILLED,
        RequestStatus.CANCELLED,
    },
}


class BloodRequestService:
    def __init__(self, db: AsyncSession, publisher: EventPublisher):
        self.db = db
        self.notifier = NotificationService(publisher)

    async def _get_hospital(self, hospital_id: UUID) -> Hospital:
        hospital = await self.db.get(Hospital, hospital_id)
        if hospital is None or not hospital.is_active:
            raise NotFoundError("Hospital", hospital_id)
        return hospital

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to {operation}: {type(e).__name__}: {e}")
            await self.db.rollback()
            raise PersistenceError(operation) from e

    async def _announce(self, event_type: str, request: BloodRequest, city_id: UUID) -> None:
        await self.notifier.blood_request_changed(
            BloodRequestEvent(
                type=event_type,
                request_id=request.id,
                hospital_id=request.hospital_id,
                city_id=city_id,
                blood_type=request.blood_type,
                units_required=request.units_required,
                urgency=request.urgency,
                status=request.status,
                timestamp=utcnow(),
            )
        )

    async def create_request(
        self, data: BloodRequestCreate, actor_id: Optional[str] = None
    ) -> BloodRequest:
        hospital = await self._get_hospital(data.hospital_id)

        request = BloodRequest(
            patient_name=data.patient_name,
            hospital_id=hospital.id,
            blood_type=data.blood_type.value,
            units_required=data.units_required,
            urgency=data.urgency.value,
            status=RequestStatus.PENDING.value,
            required_by=data.required_by,
            notes=data.notes,
            requested_by=actor_id,
        )
        self.db.add(request)
        await self._commit("create blood request")

        log_audit_event(
            action="create",
            resource_type="blood_request",
            resource_id=str(request.id),
            new_values={
                "blood_type": request.blood_type,
                "units_required": request.units_required,
                "urgency": request.urgency,
            },
            user_id=actor_id,
        )
        logger.info(
            f"Blood request {request.id} created for {request.units_required} units of {request.blood_type}",
            extra={'extra_fields': {'hospital_id': str(hospital.id), 'urgency': request.urgency}}
        )

        await self._announce("blood_request_created", request, hospital.city_id)
        return request

    async def get_request(self, request_id: UUID) -> BloodRequest:
        request = await self.db.get(BloodRequest, request_id)
        if request is None:
            raise NotFoundError("Blood request", request_id)
        return request

    async def list_requests(
        self,
        hospital_id: Optional[UUID] = None,
        status: Optional[RequestStatus] = None,
        blood_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[BloodRequest]:
        """Requests newest first"""
        query = select(BloodRequest)
        if hospital_id is not None:
            query = query.where(BloodRequest.hospital_id == hospital_id)
        if status is not None:
            query = query.where(BloodRequest.status == status.value)
        if blood_type is not None:
            query = query.where(BloodRequest.blood_type == getattr(blood_type, "value", blood_type))

        query = (
            query.order_by(BloodRequest.created_at.desc(), BloodRequest.id)
            .offset(offset)
            .limit(limit)
        )

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list blood requests: {e}")
            raise PersistenceError("list blood requests") from e
        return list(result.scalars().all())

    async def update_status(
        self,
        request_id: UUID,
        update: BloodRequestStatusUpdate,
        actor_id: Optional[str] = None,
    ) -> BloodRequest:
        request = await self.get_request(request_id)
        current = RequestStatus(request.status)

        if update.status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise ValidationError(
                f"Cannot change request status from {current.value} to {update.status.value}",
                field="status",
            )

        request.status = update.status.value
        if update.notes is not None:
            request.notes = update.notes
        request.updated_at = utcnow()
        await self._commit("update blood request")

        log_audit_event(
            action="status_change",
            resource_type="blood_request",
            resource_id=str(request.id),
            old_values={"status": current.value},
            new_values={"status": request.status},
            user_id=actor_id,
        )

        hospital = await self.db.get(Hospital, request.hospital_id)
        if hospital is not None:
            await self._announce("blood_request_status_changed", request, hospital.city_id)
        return request
