from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from bloodnet.dependencies import get_request_service
from bloodnet.schemas.base_schema import RequestStatus
from bloodnet.schemas.request import (
    BloodRequestCreate,
    BloodRequestResponse,
    BloodRequestStatusUpdate,
)
from bloodnet.services.availability_service import coerce_blood_type
from bloodnet.services.request_service import BloodRequestService
from bloodnet.utils.data_wrapper import ResponseWrapper
from bloodnet.utils.security import (
    ADMIN_ROLES,
    REQUEST_CREATOR_ROLES,
    Identity,
    get_identity,
    require_roles,
)

router = APIRouter(
    prefix="/blood-requests",
    tags=["blood requests"]
)


@router.post(
    "/",
    response_model=ResponseWrapper[BloodRequestResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_blood_request(
    payload: BloodRequestCreate,
    service: BloodRequestService = Depends(get_request_service),
    identity: Identity = Depends(require_roles(*REQUEST_CREATOR_ROLES)),
):
    """Raise a request for blood on behalf of a hospital patient"""
    request = await service.create_request(payload, actor_id=identity.user_id)
    return ResponseWrapper(
        data=BloodRequestResponse.model_validate(request),
        message="Blood request created successfully",
    )


@router.get("/", response_model=ResponseWrapper[List[BloodRequestResponse]])
async def list_blood_requests(
    hospital_id: Optional[UUID] = Query(None),
    request_status: Optional[RequestStatus] = Query(None, alias="status"),
    blood_type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: BloodRequestService = Depends(get_request_service),
    identity: Identity = Depends(get_identity),
):
    requests = await service.list_requests(
        hospital_id=hospital_id,
        status=request_status,
        blood_type=coerce_blood_type(blood_type) if blood_type else None,
        limit=limit,
        offset=offset,
    )
    return ResponseWrapper(data=[BloodRequestResponse.model_validate(r) for r in requests])


@router.get("/{request_id}", response_model=ResponseWrapper[BloodRequestResponse])
async def get_blood_request(
    request_id: UUID = Path(...),
    service: BloodRequestService = Depends(get_request_service),
    identity: Identity = Depends(get_identity),
):
    request = await service.get_request(request_id)
    return ResponseWrapper(data=BloodRequestResponse.model_validate(request))


@router.patch("/{request_id}/status", response_model=ResponseWrapper[BloodRequestResponse])
async def update_blood_request_status(
    payload: BloodRequestStatusUpdate,
    request_id: UUID = Path(...),
    service: BloodRequestService = Depends(get_request_service),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    request = await service.update_status(request_id, payload, actor_id=identity.user_id)
    return ResponseWrapper(
        data=BloodRequestResponse.model_validate(request),
        message=f"Blood request {request.status.lower()}",
    )
