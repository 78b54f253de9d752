"""
Store Management API — activate, deactivate and query stores on a platform.

Endpoints:
  GET   /platforms                                     — supported platforms and token state
  POST  /platforms/{platform}/stores/{store_id}/activate
  POST  /platforms/{platform}/stores/{store_id}/deactivate
  GET   /platforms/{platform}/stores/{store_id}/status
  PATCH /platforms/{platform}/stores/activate          — bulk, body {"store_ids": [...]}
  PATCH /platforms/{platform}/stores/deactivate        — bulk, body {"store_ids": [...]}
  GET   /platforms/{platform}/stores/status            — ids in X-Store-IDs, or all stores

Platform failures raised by the gateway are PlatformErrors; main.py turns
them into ErrorResponse bodies.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from delivery_control.core.errors import InvalidRequestError
from delivery_control.core.security import verify_bearer_token
from delivery_control.models.schemas import (
    BulkOperationResult,
    PlatformStatus,
    StoreIdsRequest,
    StoreOperationResult,
    StoreStatusDetail,
    StoreStatusList,
)
from delivery_control.services.gateway import PlatformGateway

STORE_IDS_HEADER = "X-Store-IDs"

router = APIRouter(
    prefix="/platforms",
    tags=["stores"],
    dependencies=[Depends(verify_bearer_token)],
)


def get_gateway(request: Request) -> PlatformGateway:
    """FastAPI dependency: the gateway built during application startup."""
    return request.app.state.gateway


def parse_store_ids_header(raw: Optional[str]) -> Optional[list[str]]:
    """
    Split a comma-separated id header. None/empty means "every store";
    a header that holds nothing but separators is rejected.
    """
    if not raw:
        return None
    store_ids = [part.strip() for part in raw.split(",") if part.strip()]
    if not store_ids:
        raise InvalidRequestError(f"Invalid store ids in the {STORE_IDS_HEADER} header")
    return store_ids


@router.get("", response_model=list[PlatformStatus])
async def list_platforms(gateway: PlatformGateway = Depends(get_gateway)):
    """List supported platforms with their token renewal state."""
    return gateway.platform_statuses()


@router.get("/{platform}/stores/status", response_model=StoreStatusList)
async def get_stores_status(
    platform: str,
    x_store_ids: Optional[str] = Header(default=None, alias=STORE_IDS_HEADER),
    gateway: PlatformGateway = Depends(get_gateway),
):
    """
    Status of several stores. Without the X-Store-IDs header every store
    known to the platform is returned.
    """
    store_ids = parse_store_ids_header(x_store_ids)
    return await gateway.query_statuses(platform, store_ids)


@router.patch("/{platform}/stores/activate", response_model=BulkOperationResult)
async def activate_stores(
    platform: str,
    payload: StoreIdsRequest,
    gateway: PlatformGateway = Depends(get_gateway),
):
    return await gateway.activate_stores(platform, payload.store_ids)


@router.patch("/{platform}/stores/deactivate", response_model=BulkOperationResult)
async def deactivate_stores(
    platform: str,
    payload: StoreIdsRequest,
    gateway: PlatformGateway = Depends(get_gateway),
):
    return await gateway.deactivate_stores(platform, payload.store_ids)


@router.post("/{platform}/stores/{store_id}/activate", response_model=StoreOperationResult)
async def activate_store(
    platform: str,
    store_id: str,
    gateway: PlatformGateway = Depends(get_gateway),
):
    return await gateway.activate_store(platform, store_id)


@router.post("/{platform}/stores/{store_id}/deactivate", response_model=StoreOperationResult)
async def deactivate_store(
    platform: str,
    store_id: str,
    gateway: PlatformGateway = Depends(get_gateway),
):
    return await gateway.deactivate_store(platform, store_id)


@router.get("/{platform}/stores/{store_id}/status", response_model=StoreStatusDetail)
async def get_store_status(
    platform: str,
    store_id: str,
    gateway: PlatformGateway = Depends(get_gateway),
):
    return await gateway.get_store_status(platform, store_id)
