"""
Abstract base class for all delivery platform clients.

Every platform client must implement:
  - authenticate(): Run the platform's login handshake and return a token
  - activate_store(): Re-enable a store on the platform
  - deactivate_store(): Block a store on the platform
  - query_status(): Resolve store statuses from the platform listing

The base class owns the token lifecycle: a TokenCache plus a TokenRenewer
that is started at construction and keeps the cache fresh in the background.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx
from pydantic import BaseModel, model_validator

from delivery_control.core.errors import AccessTokenUnavailableError, AuthenticationError, PlatformError
from delivery_control.core.renewer import TokenRenewer
from delivery_control.core.token_cache import TokenCache
from delivery_control.models.schemas import ErrorKind, Platform, StoreStatusDetail

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    """
    Base for platform payload models. Platforms send null for fields they
    have no value for; a null reads as the field default, never as an error.
    """

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PlatformClient(ABC):
    """Base interface for delivery platform integrations."""

    platform: Platform
    error_class: type[PlatformError] = PlatformError

    def __init__(
        self,
        base_url: str,
        renewal_interval_seconds: float,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        autostart: bool = True,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.token_cache = TokenCache()
        self.renewer = TokenRenewer(
            name=self.display_name,
            authenticate=self.authenticate,
            cache=self.token_cache,
            interval_seconds=renewal_interval_seconds,
        )
        if autostart:
            self.renewer.start()

    @property
    def display_name(self) -> str:
        return self.__class__.__name__.replace("Client", "")

    # --- Platform contract ---

    @abstractmethod
    async def authenticate(self) -> str:
        """
        Perform the platform login handshake.
        Returns the new access token; raises on any failure.
        """
        pass

    @abstractmethod
    async def activate_store(self, store_id: str) -> None:
        """Activate a store. Raises a PlatformError on failure."""
        pass

    @abstractmethod
    async def deactivate_store(self, store_id: str) -> None:
        """Deactivate a store. Raises a PlatformError on failure."""
        pass

    @abstractmethod
    async def query_status(
        self,
        store_ids: Optional[list[str]] = None,
    ) -> list[StoreStatusDetail]:
        """
        Resolve store statuses.
        With no ids, every store known to the platform is returned; otherwise
        one entry per requested id, in request order.
        """
        pass

    # --- Shared plumbing ---

    def _require_token(self) -> str:
        """Current token snapshot; fails fast instead of waiting for a login."""
        token = self.token_cache.get()
        if not token:
            raise AccessTokenUnavailableError(self.platform)
        return token

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _send(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        """Issue one HTTP call; transport failures become BAD_GATEWAY errors."""
        url = f"{self.base_url}{path}"
        try:
            async with self._http_client() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self.error_class(
                f"Request failed while trying to {action}: {e}",
                kind=ErrorKind.BAD_GATEWAY,
            ) from e

    def _decode_json(self, response: httpx.Response, action: str):
        try:
            return response.json()
        except ValueError as e:
            raise self.error_class(
                f"Could not decode {action} response: {e}",
                kind=ErrorKind.BAD_GATEWAY,
                http_status=response.status_code,
                body=response.text,
            ) from e

    @contextmanager
    def _login_failures(self) -> Iterator[None]:
        """Re-raise any failure inside a login handshake as an AuthenticationError."""
        try:
            yield
        except AuthenticationError:
            raise
        except PlatformError as e:
            raise AuthenticationError(
                f"{self.display_name} login failed: {e.message}",
                kind=e.kind,
                platform=self.platform,
                http_status=e.http_status,
                body=e.body,
            ) from e

    async def aclose(self) -> None:
        await self.renewer.stop()
