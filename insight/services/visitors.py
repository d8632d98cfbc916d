"""
VisitorTracker - Unique visitor set kept on the tracking connection.
"""

from loguru import logger

from insight.services.connection import CONNECTION_ERRORS, ConnectionManager
from insight.services.errors import StoreUnavailableError
from insight.utils import fixed_delay, linear_backoff, retry_async

UNIQUE_VISITORS_KEY = "insight:unique_visitors"


class VisitorTracker:
    """
    Records visitors in a Redis set with bounded retries.

    Neither operation raises: exhausting the retries yields ``False`` or ``0``.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        key: str = UNIQUE_VISITORS_KEY,
        record_attempts: int = 3,
        count_attempts: int = 2,
        retry_delay: float = 0.1,
    ):
        self._connection = connection
        self.key = key
        self.record_attempts = record_attempts
        self.count_attempts = count_attempts
        self.retry_delay = retry_delay

    async def record_visit(self, visitor_id: str) -> bool:
        """Add ``visitor_id`` to the set. True only for the first-ever insert."""

        async def add(attempt: int) -> bool:
            client = await self._connection.acquire()
            if client is None:
                raise StoreUnavailableError(self._connection.connection_id)
            added = await client.sadd(self.key, visitor_id)
            return added == 1

        try:
            return await retry_async(
                add,
                attempts=self.record_attempts,
                delay=linear_backoff(self.retry_delay),
                retry_on=(StoreUnavailableError, *CONNECTION_ERRORS),
                on_error=self._on_error,
            )
        except (StoreUnavailableError, *CONNECTION_ERRORS) as e:
            logger.error(
                f"Track unique visitor failed after {self.record_attempts} attempts: {e}"
            )
            return False

    async def total_unique_count(self) -> int:
        """Size of the visitor set, 0 when the store cannot be reached."""

        async def count(attempt: int) -> int:
            client = await self._connection.acquire()
            if client is None:
                raise StoreUnavailableError(self._connection.connection_id)
            return int(await client.scard(self.key))

        try:
            return await retry_async(
                count,
                attempts=self.count_attempts,
                delay=fixed_delay(self.retry_delay),
                retry_on=(StoreUnavailableError, *CONNECTION_ERRORS),
                on_error=self._on_error,
            )
        except (StoreUnavailableError, *CONNECTION_ERRORS) as e:
            logger.error(f"Get unique visitors error: {e}")
            return 0

    async def _on_error(self, attempt: int, error: BaseException) -> None:
        # A handle that failed mid-operation is poisoned: drop it so the next
        # attempt reconnects instead of reusing it.
        if not isinstance(error, StoreUnavailableError):
            logger.warning(f"Tracking store error (attempt {attempt}): {error}")
            await self._connection.reset()
