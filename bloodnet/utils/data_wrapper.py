from datetime import datetime
from pydantic import BaseModel
from typing import TypeVar, Generic, Optional

T = TypeVar("T")


class ResponseWrapper(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class TimestampedResponse(ResponseWrapper[T], Generic[T]):
    timestamp: datetime


class EmergencyResponse(TimestampedResponse[T], Generic[T]):
    emergency: bool = True


class MessageResponse(BaseModel):
    success: bool = True
    message: str
