"""
Shared Pydantic models for the platform integration layer.

These are the uniform shapes every platform client and the gateway speak,
regardless of which delivery platform produced the data.
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class Platform(str, Enum):
    ANOTAAI = "anotaai"
    DELIVERYVIP = "deliveryvip"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Platform"]:
        """Return the matching member, or None for an unsupported identifier."""
        try:
            return cls(value)
        except ValueError:
            return None


class StoreStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    NOT_FOUND = "not_found"


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    BAD_GATEWAY = "bad_gateway"
    INTERNAL = "internal"


# --- Operation results ---

class StoreOperationResult(BaseModel):
    """Result of a single-store activate/deactivate."""
    platform: Platform
    store_id: str
    status: StoreStatus
    message: str


class StoreOperationOutcome(BaseModel):
    """One entry of a bulk operation."""
    store_id: str
    status: StoreStatus
    success: bool
    message: str
    error: Optional[ErrorKind] = None


class BulkOperationResult(BaseModel):
    platform: Platform
    results: list[StoreOperationOutcome] = Field(default_factory=list)


class StoreStatusDetail(BaseModel):
    store_id: str
    status: StoreStatus
    document: Optional[str] = None
    display_name: Optional[str] = None


class StoreStatusList(BaseModel):
    platform: Platform
    stores: list[StoreStatusDetail]


class PlatformStatus(BaseModel):
    platform: Platform
    token_ready: bool
    renewer_state: str
    renewal_interval_seconds: float


# --- API Request/Response models ---

class StoreIdsRequest(BaseModel):
    """PATCH /platforms/{platform}/stores/{activate,deactivate}"""
    store_ids: list[str] = Field(min_length=1)


class ErrorResponse(BaseModel):
    error: ErrorKind
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "delivery-control"
    version: str = "1.0.0"
