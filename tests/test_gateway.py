"""
Tests for the platform gateway: dispatch, validation and bulk aggregation.
"""
import httpx
import pytest

from delivery_control.adapters.deliveryvip import DeliveryVipClient
from delivery_control.core.errors import (
    AccessTokenUnavailableError,
    DeliveryVipError,
    InvalidRequestError,
    PlatformError,
    UnsupportedPlatformError,
)
from delivery_control.models.schemas import ErrorKind, Platform, StoreStatus
from delivery_control.services.gateway import PlatformGateway
from tests.helpers import FakePlatformClient, respond


@pytest.fixture
def gateway(fake_clients) -> PlatformGateway:
    return PlatformGateway(fake_clients)


def total_calls(fake_clients) -> int:
    return sum(len(client.calls) for client in fake_clients.values())


class TestUnsupportedPlatform:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("call", [
        lambda gw: gw.activate_store("unknown", "X"),
        lambda gw: gw.deactivate_store("unknown", "X"),
        lambda gw: gw.get_store_status("unknown", "X"),
        lambda gw: gw.activate_stores("unknown", ["a", "b"]),
        lambda gw: gw.deactivate_stores("unknown", ["a"]),
        lambda gw: gw.query_statuses("unknown", None),
        lambda gw: gw.query_statuses("ANOTAAI", ["a"]),
    ])
    async def test_rejected_before_dispatch(self, gateway, fake_clients, call):
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            await call(gateway)

        assert exc_info.value.kind == ErrorKind.NOT_FOUND
        assert total_calls(fake_clients) == 0


class TestInputValidation:
    @pytest.mark.asyncio
    async def test_empty_store_id(self, gateway, fake_clients):
        with pytest.raises(InvalidRequestError) as exc_info:
            await gateway.activate_store("anotaai", "")
        assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
        assert total_calls(fake_clients) == 0

    @pytest.mark.asyncio
    async def test_blank_store_id(self, gateway):
        with pytest.raises(InvalidRequestError):
            await gateway.get_store_status("anotaai", "   ")

    @pytest.mark.asyncio
    async def test_empty_platform(self, gateway):
        with pytest.raises(InvalidRequestError):
            await gateway.deactivate_store("", "s1")

    @pytest.mark.asyncio
    async def test_empty_bulk_list(self, gateway, fake_clients):
        with pytest.raises(InvalidRequestError):
            await gateway.activate_stores("anotaai", [])
        assert total_calls(fake_clients) == 0


class TestSingleStore:
    @pytest.mark.asyncio
    async def test_activate(self, gateway, fake_clients):
        result = await gateway.activate_store("anotaai", "s2")

        assert result.platform == Platform.ANOTAAI
        assert result.store_id == "s2"
        assert result.status == StoreStatus.ACTIVE
        assert result.message == "Store activated successfully"
        assert fake_clients[Platform.ANOTAAI].calls == [("activate", "s2")]

    @pytest.mark.asyncio
    async def test_activate_is_idempotent(self, gateway):
        first = await gateway.activate_store("anotaai", "s1")
        second = await gateway.activate_store("anotaai", "s1")

        assert first.status == second.status == StoreStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_deactivate_routes_to_matching_client(self, gateway, fake_clients):
        result = await gateway.deactivate_store("deliveryvip", "m2")

        assert result.status == StoreStatus.INACTIVE
        assert fake_clients[Platform.DELIVERYVIP].calls == [("deactivate", "m2")]
        assert fake_clients[Platform.ANOTAAI].calls == []

    @pytest.mark.asyncio
    async def test_platform_error_propagates_unchanged(self, fake_clients):
        failure = DeliveryVipError("Invalid data", kind=ErrorKind.INVALID_REQUEST, http_status=422)
        fake_clients[Platform.DELIVERYVIP].failures["m1"] = failure
        gateway = PlatformGateway(fake_clients)

        with pytest.raises(DeliveryVipError) as exc_info:
            await gateway.activate_store("deliveryvip", "m1")
        assert exc_info.value is failure

    @pytest.mark.asyncio
    async def test_untyped_failure_is_normalized(self, fake_clients):
        fake_clients[Platform.ANOTAAI].failures["s1"] = httpx.ReadTimeout("read timed out")
        gateway = PlatformGateway(fake_clients)

        with pytest.raises(PlatformError) as exc_info:
            await gateway.activate_store("anotaai", "s1")
        assert exc_info.value.kind == ErrorKind.BAD_GATEWAY
        assert exc_info.value.platform == Platform.ANOTAAI

    @pytest.mark.asyncio
    async def test_no_token_fails_fast(self):
        client = FakePlatformClient(Platform.ANOTAAI, stores={"s1": True}, token=None)
        gateway = PlatformGateway({Platform.ANOTAAI: client})

        with pytest.raises(AccessTokenUnavailableError) as exc_info:
            await gateway.activate_store("anotaai", "s1")
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_single_status(self, gateway):
        detail = await gateway.get_store_status("deliveryvip", "m2")
        assert detail.store_id == "m2"
        assert detail.status == StoreStatus.ACTIVE

        missing = await gateway.get_store_status("deliveryvip", "zz")
        assert missing.status == StoreStatus.NOT_FOUND


class TestBulk:
    @pytest.mark.asyncio
    async def test_deactivate_partial_failure_scenario(self, gateway):
        result = await gateway.deactivate_stores("anotaai", ["s1", "s2-missing"])

        assert result.platform == Platform.ANOTAAI
        assert [(o.store_id, o.status, o.success, o.error) for o in result.results] == [
            ("s1", StoreStatus.INACTIVE, True, None),
            ("s2-missing", StoreStatus.NOT_FOUND, False, ErrorKind.NOT_FOUND),
        ]
        assert result.results[1].message == "Store not found on the platform"

    @pytest.mark.asyncio
    async def test_one_entry_per_id_in_order_under_mixed_failures(self, fake_clients):
        anota = fake_clients[Platform.ANOTAAI]
        anota.failures.update({
            "s2": httpx.ConnectError("connection reset"),
            "s3": DeliveryVipError("rejected", kind=ErrorKind.UNAUTHORIZED),
        })
        gateway = PlatformGateway(fake_clients)
        ids = ["s3", "ghost", "s1", "s2", "s1", "", "  "]

        result = await gateway.activate_stores("anotaai", ids)

        assert [o.store_id for o in result.results] == ids
        assert [o.success for o in result.results] == [False, False, True, False, True, False, False]
        assert [o.error for o in result.results] == [
            ErrorKind.UNAUTHORIZED,
            ErrorKind.NOT_FOUND,
            None,
            ErrorKind.BAD_GATEWAY,
            None,
            ErrorKind.INVALID_REQUEST,
            ErrorKind.INVALID_REQUEST,
        ]
        # Every failure carries the failure-indicating status
        assert all(o.status == StoreStatus.NOT_FOUND for o in result.results if not o.success)
        assert all(o.status == StoreStatus.ACTIVE for o in result.results if o.success)
        assert ("activate", "  ") not in anota.calls

    @pytest.mark.asyncio
    async def test_processing_continues_after_failure(self, fake_clients):
        anota = fake_clients[Platform.ANOTAAI]
        anota.failures["s1"] = RuntimeError("kaboom")
        gateway = PlatformGateway(fake_clients)

        await gateway.deactivate_stores("anotaai", ["s1", "s3"])

        assert anota.calls == [("deactivate", "s1"), ("deactivate", "s3")]
        assert anota.stores["s3"] is False

    @pytest.mark.asyncio
    async def test_deactivate_partial_failure_over_http(self, settings, transport):
        transport.routes[("POST", "/partner/v2/merchants/m1/block")] = respond(202, {"merchantId": "m1"})
        transport.routes[("POST", "/partner/v2/merchants/m2/block")] = respond(404, text="merchant not found")
        client = DeliveryVipClient(settings, transport=transport, autostart=False)
        client.token_cache.set("dv-token")
        gateway = PlatformGateway({Platform.DELIVERYVIP: client})

        result = await gateway.deactivate_stores("deliveryvip", ["m1", "m2"])

        assert [(o.store_id, o.status, o.success, o.error) for o in result.results] == [
            ("m1", StoreStatus.INACTIVE, True, None),
            ("m2", StoreStatus.NOT_FOUND, False, ErrorKind.NOT_FOUND),
        ]
        assert [r.url.path for r in transport.requests] == [
            "/partner/v2/merchants/m1/block",
            "/partner/v2/merchants/m2/block",
        ]

    @pytest.mark.asyncio
    async def test_missing_token_is_recorded_per_item(self):
        client = FakePlatformClient(Platform.DELIVERYVIP, stores={"m1": True}, token=None)
        gateway = PlatformGateway({Platform.DELIVERYVIP: client})

        result = await gateway.deactivate_stores("deliveryvip", ["m1", "m2"])

        assert len(result.results) == 2
        assert all(o.error == ErrorKind.UNAUTHORIZED for o in result.results)
        assert client.calls == []


class TestStatusQuery:
    @pytest.mark.asyncio
    async def test_all_stores_without_filter(self, gateway):
        result = await gateway.query_statuses("anotaai")

        assert result.platform == Platform.ANOTAAI
        assert {s.store_id for s in result.stores} == {"s1", "s2", "s3"}

    @pytest.mark.asyncio
    async def test_empty_filter_means_all(self, gateway, fake_clients):
        await gateway.query_statuses("anotaai", [])
        assert fake_clients[Platform.ANOTAAI].calls == [("query", None)]

    @pytest.mark.asyncio
    async def test_filter_resolves_each_id(self, gateway):
        result = await gateway.query_statuses("anotaai", ["s2", "zz", "s1", "s2"])

        assert [(s.store_id, s.status) for s in result.stores] == [
            ("s2", StoreStatus.INACTIVE),
            ("zz", StoreStatus.NOT_FOUND),
            ("s1", StoreStatus.ACTIVE),
            ("s2", StoreStatus.INACTIVE),
        ]

    @pytest.mark.asyncio
    async def test_listing_failure_surfaces(self):
        client = FakePlatformClient(Platform.ANOTAAI, token=None)
        gateway = PlatformGateway({Platform.ANOTAAI: client})

        with pytest.raises(AccessTokenUnavailableError):
            await gateway.query_statuses("anotaai", ["s1"])


class TestLifecycle:
    def test_platform_statuses(self, gateway):
        statuses = {s.platform: s for s in gateway.platform_statuses()}

        assert set(statuses) == {Platform.ANOTAAI, Platform.DELIVERYVIP}
        assert statuses[Platform.ANOTAAI].token_ready is True
        assert statuses[Platform.ANOTAAI].renewer_state == "idle"

    @pytest.mark.asyncio
    async def test_from_settings_starts_renewers_and_shutdown_stops_them(self, settings):
        # Empty credentials: the first login attempt fails locally, no network
        settings.ANOTAAI_EMAIL = ""
        settings.DELIVERYVIP_CLIENT_ID = ""
        gateway = PlatformGateway.from_settings(settings)

        try:
            assert set(gateway.platforms) == {Platform.ANOTAAI, Platform.DELIVERYVIP}
            assert all(client.renewer.running for client in gateway._clients.values())
        finally:
            await gateway.shutdown()

        assert not any(client.renewer.running for client in gateway._clients.values())
        assert all(not s.token_ready for s in gateway.platform_statuses())
