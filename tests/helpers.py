"""
Test helpers: a recording httpx.MockTransport and an in-memory platform client.

Platform HTTP traffic is served by httpx.MockTransport, so no test ever
touches the network; RecordingTransport keeps every request it saw so tests
can assert on exactly what was (or was not) sent.
"""
from typing import Callable, Optional

import httpx

from delivery_control.adapters.base import PlatformClient
from delivery_control.core.errors import PlatformError
from delivery_control.models.schemas import ErrorKind, Platform, StoreStatus, StoreStatusDetail

ANOTAAI_URL = "https://anotaai.test"
DELIVERYVIP_URL = "https://deliveryvip.test"

Handler = Callable[[httpx.Request], httpx.Response]


def respond(status_code: int = 200, json=None, text: Optional[str] = None) -> Handler:
    """Build a route handler returning a fresh response on every call."""
    def handler(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status_code, json=json)
        return httpx.Response(status_code, text=text or "")
    return handler


def fail_with(exc_factory: Callable[[httpx.Request], Exception]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_factory(request)
    return handler


class RecordingTransport(httpx.MockTransport):
    """MockTransport routed by (method, path) that records every request."""

    def __init__(self, routes: Optional[dict[tuple[str, str], Handler]] = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []
        super().__init__(self._dispatch)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(599, text=f"no route for {request.method} {request.url.path}")
        return handler(request)


# --- In-memory platform client for gateway/API tests ---

class FakePlatformClient(PlatformClient):
    """
    Platform client backed by a dict of store_id -> active flag.
    Stores listed in `failures` raise the given exception instead.
    """

    def __init__(
        self,
        platform: Platform = Platform.ANOTAAI,
        stores: Optional[dict[str, bool]] = None,
        failures: Optional[dict[str, Exception]] = None,
        token: Optional[str] = "fake-token",
    ):
        self.platform = platform
        self.stores = dict(stores or {})
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, object]] = []
        super().__init__(
            base_url="https://fake.test",
            renewal_interval_seconds=60,
            autostart=False,
        )
        if token:
            self.token_cache.set(token)

    async def authenticate(self) -> str:
        return "fake-token"

    async def activate_store(self, store_id: str) -> None:
        await self._toggle(store_id, True)

    async def deactivate_store(self, store_id: str) -> None:
        await self._toggle(store_id, False)

    async def _toggle(self, store_id: str, active: bool) -> None:
        self._require_token()
        self.calls.append(("activate" if active else "deactivate", store_id))
        if store_id in self.failures:
            raise self.failures[store_id]
        if store_id not in self.stores:
            raise PlatformError("Store not found on the platform", kind=ErrorKind.NOT_FOUND)
        self.stores[store_id] = active

    async def query_status(self, store_ids=None) -> list[StoreStatusDetail]:
        self._require_token()
        self.calls.append(("query", store_ids))

        def detail(store_id: str) -> StoreStatusDetail:
            if store_id not in self.stores:
                return StoreStatusDetail(store_id=store_id, status=StoreStatus.NOT_FOUND)
            status = StoreStatus.ACTIVE if self.stores[store_id] else StoreStatus.INACTIVE
            return StoreStatusDetail(store_id=store_id, status=status)

        return [detail(store_id) for store_id in (store_ids or list(self.stores))]


