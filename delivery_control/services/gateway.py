"""
Platform Gateway — one entry point for store operations on any platform.

  - Validates caller input and the platform identifier before dispatch
  - Delegates single-store operations and surfaces the first failure
  - Fans out bulk operations store by store, recording one outcome per id
    and continuing past individual failures

An unsupported platform is fatal to the whole request; a failing store only
affects its own entry in a bulk result.
"""
import logging
from typing import Awaitable, Callable, Optional

from delivery_control.adapters.base import PlatformClient
from delivery_control.adapters.registry import create_clients
from delivery_control.core.config import Settings
from delivery_control.core.errors import (
    InvalidRequestError,
    PlatformError,
    UnsupportedPlatformError,
    normalize_error,
)
from delivery_control.models.schemas import (
    BulkOperationResult,
    ErrorKind,
    Platform,
    PlatformStatus,
    StoreOperationOutcome,
    StoreOperationResult,
    StoreStatus,
    StoreStatusDetail,
    StoreStatusList,
)

logger = logging.getLogger(__name__)

StoreAction = Callable[[PlatformClient, str], Awaitable[None]]

_ACTIVATE_MESSAGE = "Store activated successfully"
_DEACTIVATE_MESSAGE = "Store deactivated successfully"


async def _activate(client: PlatformClient, store_id: str) -> None:
    await client.activate_store(store_id)


async def _deactivate(client: PlatformClient, store_id: str) -> None:
    await client.deactivate_store(store_id)


class PlatformGateway:
    """Dispatches store operations to the client of the requested platform."""

    def __init__(self, clients: dict[Platform, PlatformClient]):
        self._clients = dict(clients)

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs) -> "PlatformGateway":
        """Build every platform client (starting their token renewers)."""
        return cls(create_clients(settings, **client_kwargs))

    @property
    def platforms(self) -> list[Platform]:
        return list(self._clients)

    # --- Validation / dispatch ---

    def _resolve(self, platform: Optional[str]) -> tuple[Platform, PlatformClient]:
        if not platform:
            raise InvalidRequestError("The platform parameter is required")
        parsed = Platform.parse(platform)
        client = self._clients.get(parsed) if parsed else None
        if client is None:
            raise UnsupportedPlatformError(platform)
        return parsed, client

    @staticmethod
    def _require_store_id(store_id: Optional[str]) -> str:
        if not store_id or not store_id.strip():
            raise InvalidRequestError("The store_id parameter is required")
        return store_id

    # --- Single-store operations ---

    async def activate_store(self, platform: str, store_id: str) -> StoreOperationResult:
        return await self._run_single(
            platform, store_id, _activate, StoreStatus.ACTIVE, _ACTIVATE_MESSAGE
        )

    async def deactivate_store(self, platform: str, store_id: str) -> StoreOperationResult:
        return await self._run_single(
            platform, store_id, _deactivate, StoreStatus.INACTIVE, _DEACTIVATE_MESSAGE
        )

    async def _run_single(
        self,
        platform: str,
        store_id: str,
        action: StoreAction,
        new_status: StoreStatus,
        message: str,
    ) -> StoreOperationResult:
        store_id = self._require_store_id(store_id)
        parsed, client = self._resolve(platform)

        try:
            await action(client, store_id)
        except Exception as e:
            raise normalize_error(e, parsed) from e

        return StoreOperationResult(
            platform=parsed,
            store_id=store_id,
            status=new_status,
            message=message,
        )

    async def get_store_status(self, platform: str, store_id: str) -> StoreStatusDetail:
        store_id = self._require_store_id(store_id)
        parsed, client = self._resolve(platform)

        try:
            details = await client.query_status([store_id])
        except Exception as e:
            raise normalize_error(e, parsed) from e
        return details[0]

    # --- Bulk operations ---

    async def activate_stores(self, platform: str, store_ids: list[str]) -> BulkOperationResult:
        return await self._run_bulk(
            platform, store_ids, _activate, StoreStatus.ACTIVE, _ACTIVATE_MESSAGE, "activate"
        )

    async def deactivate_stores(self, platform: str, store_ids: list[str]) -> BulkOperationResult:
        return await self._run_bulk(
            platform, store_ids, _deactivate, StoreStatus.INACTIVE, _DEACTIVATE_MESSAGE, "deactivate"
        )

    async def _run_bulk(
        self,
        platform: str,
        store_ids: list[str],
        action: StoreAction,
        new_status: StoreStatus,
        success_message: str,
        verb: str,
    ) -> BulkOperationResult:
        # Checked once: a bad platform aborts the batch, a bad store does not
        parsed, client = self._resolve(platform)
        if not store_ids:
            raise InvalidRequestError("store_ids must contain at least one store id")

        result = BulkOperationResult(platform=parsed)

        # Sequential: exactly one outcome per id, in input order
        for store_id in store_ids:
            try:
                self._require_store_id(store_id)
                await action(client, store_id)
            except Exception as e:
                result.results.append(self._failed_outcome(store_id, normalize_error(e, parsed), verb))
                continue

            result.results.append(StoreOperationOutcome(
                store_id=store_id,
                status=new_status,
                success=True,
                message=success_message,
            ))

        failed = sum(1 for outcome in result.results if not outcome.success)
        logger.info(
            f"Bulk {verb} on {parsed.value}: {len(store_ids) - failed} succeeded, "
            f"{failed} failed"
        )
        return result

    @staticmethod
    def _failed_outcome(store_id: str, error: PlatformError, verb: str) -> StoreOperationOutcome:
        logger.warning(f"Failed to {verb} store {store_id}: {error.kind.value} - {error.message}")
        if error.kind == ErrorKind.NOT_FOUND:
            message = "Store not found on the platform"
        else:
            message = f"Failed to {verb} store: {error.message}"
        return StoreOperationOutcome(
            store_id=store_id,
            status=StoreStatus.NOT_FOUND,
            success=False,
            message=message,
            error=error.kind,
        )

    # --- Status queries ---

    async def query_statuses(
        self,
        platform: str,
        store_ids: Optional[list[str]] = None,
    ) -> StoreStatusList:
        parsed, client = self._resolve(platform)

        try:
            stores = await client.query_status(store_ids or None)
        except Exception as e:
            raise normalize_error(e, parsed) from e

        return StoreStatusList(platform=parsed, stores=stores)

    # --- Lifecycle ---

    def platform_statuses(self) -> list[PlatformStatus]:
        return [
            PlatformStatus(
                platform=platform,
                token_ready=client.token_cache.is_ready(),
                renewer_state=client.renewer.state.value,
                renewal_interval_seconds=client.renewer.interval_seconds,
            )
            for platform, client in self._clients.items()
        ]

    async def shutdown(self) -> None:
        """Stop every token renewer."""
        for client in self._clients.values():
            await client.aclose()
