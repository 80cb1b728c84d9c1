"""
Retrying Storage Wrapper

DESIGN DECISION: The household core never retries. A failed lookup
surfaces to the immediate caller. Transient connectivity failures are
the storage collaborator's problem, so retries live here, around any
EntityStorageInterface implementation.

Only StorageConnectionError is retried. NotFoundError and DuplicateError
are answers, not failures, and are raised on the first attempt.
"""

from typing import Any, Awaitable, Callable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from grocery_tracker.config import StorageSettings, get_settings
from grocery_tracker.services.storage.interface import (
    EntityStorageInterface,
    StorageConnectionError,
)


class RetryingEntityStorage(EntityStorageInterface):
    """Applies a tenacity retry policy to every call of a wrapped storage."""

    def __init__(
        self,
        inner: EntityStorageInterface,
        settings: Optional[StorageSettings] = None,
    ):
        self._inner = inner
        self._settings = settings or get_settings().storage
        self._logger = structlog.get_logger(__name__)

    def _log_retry(self, retry_state) -> None:
        self._logger.warning(
            "storage_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()),
        )

    async def _call(
        self,
        operation: Callable[..., Awaitable[Any]],
        *args,
        **kwargs,
    ) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_wait_min_seconds,
                max=self._settings.retry_wait_max_seconds,
            ),
            retry=retry_if_exception_type(StorageConnectionError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation(*args, **kwargs)

    async def filter(
        self,
        criteria: dict[str, Any],
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        return await self._call(self._inner.filter, criteria, sort=sort, limit=limit)

    async def get(self, entity_id: str) -> dict:
        return await self._call(self._inner.get, entity_id)

    async def create(self, data: dict[str, Any]) -> dict:
        return await self._call(self._inner.create, data)

    async def update(self, entity_id: str, changes: dict[str, Any]) -> dict:
        return await self._call(self._inner.update, entity_id, changes)
