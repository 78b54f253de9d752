"""
AnotaAI Client — partner integration API, authenticated by email/password.

  - Login: POST /noauth/partner/login -> {"success": bool, "access_token": str}
  - Activate / block: PUT /partnerauth/partner/{active,block}/{page_id}
  - Listing: GET /partnerauth/partner/listpages/v2 (no per-store status endpoint)
  - Auth header: raw token in `authorization`, no scheme
  - Token renewal: every 3 hours

AnotaAI answers most business failures with HTTP 200 and `"success": false`,
so both the status code and the body flag must be checked. A "store not
found" message in such a body is the only not-found signal it emits.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import Field, ValidationError, field_validator

from delivery_control.adapters.base import PlatformClient, WireModel
from delivery_control.core.config import Settings, get_settings
from delivery_control.core.documents import clean_document, document_value
from delivery_control.core.errors import AnotaAIError, AuthenticationError, looks_not_found
from delivery_control.models.schemas import ErrorKind, Platform, StoreStatus, StoreStatusDetail

logger = logging.getLogger(__name__)


# --- Wire models ---

class AnotaAILoginResponse(WireModel):
    success: bool = False
    access_token: str = ""


class AnotaAIResponse(WireModel):
    success: bool = False
    mensagem: str = ""


class AnotaAISign(WireModel):
    active: bool = False
    cpf_cnpj: str = ""

    @field_validator("cpf_cnpj", mode="before")
    @classmethod
    def _flatten_document(cls, value: Any) -> str:
        return document_value(value)


class AnotaAIEstablishment(WireModel):
    sign: AnotaAISign = Field(default_factory=AnotaAISign)


class AnotaAIPageDetails(WireModel):
    establishment: AnotaAIEstablishment = Field(default_factory=AnotaAIEstablishment)


class AnotaAIPage(WireModel):
    id: str = Field(default="", alias="_id")
    page_id: str = ""
    page_name: str = ""
    active: bool = False
    page: AnotaAIPageDetails = Field(default_factory=AnotaAIPageDetails)

    def to_status_detail(self) -> StoreStatusDetail:
        sign = self.page.establishment.sign
        return StoreStatusDetail(
            store_id=self.page_id,
            status=StoreStatus.ACTIVE if sign.active else StoreStatus.INACTIVE,
            document=clean_document(sign.cpf_cnpj),
            display_name=self.page_name,
        )


class AnotaAIListInfo(WireModel):
    docs: list[AnotaAIPage] = Field(default_factory=list)
    limit: int = 0
    page: int = 0


class AnotaAIListPagesResponse(WireModel):
    success: bool = False
    info: AnotaAIListInfo = Field(default_factory=AnotaAIListInfo)


class AnotaAIClient(PlatformClient):
    """AnotaAI platform client."""

    platform = Platform.ANOTAAI
    error_class = AnotaAIError

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        settings = settings or get_settings()
        self.email = settings.ANOTAAI_EMAIL
        self.password = settings.ANOTAAI_PASSWORD
        self.list_limit = settings.ANOTAAI_LIST_LIMIT
        super().__init__(
            base_url=settings.ANOTAAI_API_URL,
            renewal_interval_seconds=settings.ANOTAAI_TOKEN_RENEWAL_SECONDS,
            timeout=settings.PLATFORM_HTTP_TIMEOUT_SECONDS,
            **kwargs,
        )

    def _auth_headers(self, token: str) -> dict:
        return {"authorization": token}

    def _status_error(self, response: httpx.Response, action: str) -> AnotaAIError:
        # Non-200 statuses are reported generically; only a rejected token is told apart
        kind = (
            ErrorKind.UNAUTHORIZED
            if response.status_code in (401, 403)
            else ErrorKind.BAD_GATEWAY
        )
        return AnotaAIError(
            f"Failed to {action} - status: {response.status_code}",
            kind=kind,
            http_status=response.status_code,
            body=response.text,
        )

    async def authenticate(self) -> str:
        if not self.email:
            raise AuthenticationError("AnotaAI email is not configured", platform=self.platform)
        if not self.password:
            raise AuthenticationError("AnotaAI password is not configured", platform=self.platform)

        logger.info(f"[AnotaAI] Logging in at {self.base_url}")
        with self._login_failures():
            response = await self._send(
                "POST",
                "/noauth/partner/login",
                "log in",
                json={"email": self.email, "password": self.password},
                headers={"Content-Type": "application/json"},
            )

        if response.status_code != 200:
            raise AuthenticationError(
                f"AnotaAI login failed - status: {response.status_code}, body: {response.text}",
                platform=self.platform,
                http_status=response.status_code,
                body=response.text,
            )

        with self._login_failures():
            payload = self._decode_json(response, "login")
        try:
            login = AnotaAILoginResponse.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError(f"Unexpected AnotaAI login payload: {e}", platform=self.platform) from e

        if not login.success:
            raise AuthenticationError("AnotaAI login failed - success: false", platform=self.platform)
        if not login.access_token:
            raise AuthenticationError("AnotaAI login returned no access token", platform=self.platform)

        return login.access_token

    async def activate_store(self, store_id: str) -> None:
        await self._toggle_store(store_id, "active", "activate")

    async def deactivate_store(self, store_id: str) -> None:
        await self._toggle_store(store_id, "block", "deactivate")

    async def _toggle_store(self, store_id: str, endpoint: str, action: str) -> None:
        token = self._require_token()

        logger.info(f"[AnotaAI] Request to {action} store {store_id}")
        response = await self._send(
            "PUT",
            f"/partnerauth/partner/{endpoint}/{store_id}",
            f"{action} store {store_id}",
            headers=self._auth_headers(token),
        )

        if response.status_code != 200:
            raise self._status_error(response, f"{action} store")

        try:
            result = AnotaAIResponse.model_validate(self._decode_json(response, action))
        except ValidationError as e:
            raise AnotaAIError(
                f"Unexpected {action} payload: {e}",
                http_status=response.status_code,
                body=response.text,
            ) from e

        if not result.success:
            # 200 with success=false: the body message is the only detail we get
            if looks_not_found(result.mensagem):
                raise AnotaAIError(
                    "Store not found on the platform",
                    kind=ErrorKind.NOT_FOUND,
                    http_status=response.status_code,
                    body=response.text,
                )
            raise AnotaAIError(
                f"Failed to {action} store: {result.mensagem}",
                http_status=response.status_code,
                body=response.text,
            )

        logger.info(f"[AnotaAI] Store {store_id} {action}d")

    async def query_status(
        self,
        store_ids: Optional[list[str]] = None,
    ) -> list[StoreStatusDetail]:
        token = self._require_token()

        response = await self._send(
            "GET",
            "/partnerauth/partner/listpages/v2",
            "list stores",
            params={"limit": self.list_limit, "page": 1},
            headers=self._auth_headers(token),
        )

        if response.status_code != 200:
            raise self._status_error(response, "list stores")

        try:
            listing = AnotaAIListPagesResponse.model_validate(self._decode_json(response, "listing"))
        except ValidationError as e:
            raise AnotaAIError(
                f"Unexpected listing payload: {e}",
                http_status=response.status_code,
                body=response.text,
            ) from e

        if not listing.success:
            raise AnotaAIError(
                "Store listing failed - success: false",
                http_status=response.status_code,
                body=response.text,
            )

        pages = listing.info.docs
        if not store_ids:
            return [page.to_status_detail() for page in pages]

        by_id = {}
        for page in pages:
            by_id.setdefault(page.page_id, page)

        details = []
        for store_id in store_ids:
            page = by_id.get(store_id)
            if page is None:
                details.append(StoreStatusDetail(store_id=store_id, status=StoreStatus.NOT_FOUND))
            else:
                details.append(page.to_status_detail())

        found = sum(1 for d in details if d.status != StoreStatus.NOT_FOUND)
        logger.info(f"[AnotaAI] Status resolved: {found}/{len(store_ids)} stores found")
        return details
