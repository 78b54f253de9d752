"""
DeliveryVip Client — partner API v2 over OAuth2 client credentials.

  - Token: POST /authentication/v1/oauth/token (form-encoded), expires in 24h
  - Unblock / block: POST /partner/v2/merchants/{id}/{unblock,block} -> 202
  - Listing: GET /partner/v2/merchants -> JSON array of merchants
  - Auth header: Authorization: Bearer <token>
  - Token renewal: every 20 hours
"""
import logging
from typing import Optional

import httpx
from pydantic import Field, TypeAdapter, ValidationError

from delivery_control.adapters.base import PlatformClient, WireModel
from delivery_control.core.config import Settings, get_settings
from delivery_control.core.errors import AuthenticationError, DeliveryVipError, kind_for_http_status
from delivery_control.models.schemas import ErrorKind, Platform, StoreStatus, StoreStatusDetail

logger = logging.getLogger(__name__)

ACTIVATED = "ACTIVATED"


# --- Wire models ---

class DeliveryVipTokenResponse(WireModel):
    access_token: str = ""
    token_type: str = ""
    expires_in: int = 0


class DeliveryVipSubscription(WireModel):
    status: str = ""
    blocked: bool = False


class DeliveryVipMerchant(WireModel):
    id: str = ""
    name: str = ""
    subscription: DeliveryVipSubscription = Field(default_factory=DeliveryVipSubscription)

    @property
    def is_active(self) -> bool:
        return self.subscription.status == ACTIVATED and not self.subscription.blocked

    def to_status_detail(self) -> StoreStatusDetail:
        return StoreStatusDetail(
            store_id=self.id,
            status=StoreStatus.ACTIVE if self.is_active else StoreStatus.INACTIVE,
            display_name=self.name or None,
        )


_merchant_list = TypeAdapter(list[DeliveryVipMerchant])

_STATUS_MESSAGES = {
    ErrorKind.NOT_FOUND: "Store not found on the platform",
    ErrorKind.UNAUTHORIZED: "Authentication with the platform failed",
    ErrorKind.INVALID_REQUEST: "Invalid data for the operation",
}


def error_from_response(response: httpx.Response) -> DeliveryVipError:
    """Build a typed DeliveryVip failure from a non-success HTTP response."""
    kind = kind_for_http_status(response.status_code)
    message = _STATUS_MESSAGES.get(
        kind,
        f"Error communicating with the platform - status: {response.status_code}, body: {response.text}",
    )
    return DeliveryVipError(
        message,
        kind=kind,
        http_status=response.status_code,
        body=response.text,
    )


class DeliveryVipClient(PlatformClient):
    """DeliveryVip platform client."""

    platform = Platform.DELIVERYVIP
    error_class = DeliveryVipError

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        settings = settings or get_settings()
        self.client_id = settings.DELIVERYVIP_CLIENT_ID
        self.client_secret = settings.DELIVERYVIP_CLIENT_SECRET
        super().__init__(
            base_url=settings.DELIVERYVIP_API_URL,
            renewal_interval_seconds=settings.DELIVERYVIP_TOKEN_RENEWAL_SECONDS,
            timeout=settings.PLATFORM_HTTP_TIMEOUT_SECONDS,
            **kwargs,
        )

    def _auth_headers(self, token: str) -> dict:
        return {"Authorization": f"Bearer {token}", "Accept": "*/*"}

    async def authenticate(self) -> str:
        if not self.client_id or not self.client_secret:
            raise AuthenticationError("DeliveryVip client credentials are not configured", platform=self.platform)

        logger.info(f"[DeliveryVip] Requesting OAuth token at {self.base_url}")
        with self._login_failures():
            response = await self._send(
                "POST",
                "/authentication/v1/oauth/token",
                "request an OAuth token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"Accept": "*/*"},
            )

        if response.status_code != 200:
            raise AuthenticationError(
                f"DeliveryVip OAuth failed - status: {response.status_code}, body: {response.text}",
                platform=self.platform,
                http_status=response.status_code,
                body=response.text,
            )

        with self._login_failures():
            payload = self._decode_json(response, "token")
        try:
            token = DeliveryVipTokenResponse.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError(f"Unexpected DeliveryVip token payload: {e}", platform=self.platform) from e

        if not token.access_token:
            raise AuthenticationError("DeliveryVip returned no access token", platform=self.platform)

        logger.info(f"[DeliveryVip] Token obtained, expires in {token.expires_in}s")
        return token.access_token

    async def activate_store(self, store_id: str) -> None:
        await self._toggle_store(store_id, "unblock")

    async def deactivate_store(self, store_id: str) -> None:
        await self._toggle_store(store_id, "block")

    async def _toggle_store(self, store_id: str, action: str) -> None:
        token = self._require_token()

        logger.info(f"[DeliveryVip] Request to {action} merchant {store_id}")
        response = await self._send(
            "POST",
            f"/partner/v2/merchants/{store_id}/{action}",
            f"{action} merchant {store_id}",
            headers=self._auth_headers(token),
        )

        if response.status_code != 202:
            raise error_from_response(response)

        logger.info(f"[DeliveryVip] Merchant {store_id} {action}ed")

    async def query_status(
        self,
        store_ids: Optional[list[str]] = None,
    ) -> list[StoreStatusDetail]:
        token = self._require_token()

        requested = len(store_ids) if store_ids else "all"
        logger.info(f"[DeliveryVip] Listing merchants to resolve {requested} store(s)")
        response = await self._send(
            "GET",
            "/partner/v2/merchants",
            "list merchants",
            headers={**self._auth_headers(token), "Content-Type": "application/json"},
        )

        if response.status_code != 200:
            raise DeliveryVipError(
                f"Failed to list merchants - status: {response.status_code}, body: {response.text}",
                kind=kind_for_http_status(response.status_code),
                http_status=response.status_code,
                body=response.text,
            )

        try:
            merchants = _merchant_list.validate_python(self._decode_json(response, "merchants"))
        except ValidationError as e:
            raise DeliveryVipError(
                f"Unexpected merchants payload: {e}",
                http_status=response.status_code,
                body=response.text,
            ) from e

        if not store_ids:
            return [merchant.to_status_detail() for merchant in merchants]

        by_id = {}
        for merchant in merchants:
            by_id.setdefault(merchant.id, merchant)

        details = []
        for store_id in store_ids:
            merchant = by_id.get(store_id)
            if merchant is None:
                details.append(StoreStatusDetail(store_id=store_id, status=StoreStatus.NOT_FOUND))
            else:
                details.append(merchant.to_status_detail())

        found = sum(1 for d in details if d.status != StoreStatus.NOT_FOUND)
        logger.info(f"[DeliveryVip] Status resolved: {found}/{len(store_ids)} stores found")
        return details
