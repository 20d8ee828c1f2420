"""
Connect-once cache for an async resource (e.g. an authenticated HTTP client).

The first caller triggers the factory, concurrent callers await the same
in-flight attempt, and a failed attempt clears the cache so the next call
retries from scratch.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from meowwalker.errors import NetworkTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SharedConnection(Generic[T]):
    def __init__(
        self,
        factory: Callable[[], Awaitable[T]],
        timeout: Optional[float] = None,
        closer: Optional[Callable[[T], Awaitable[None]]] = None,
    ):
        self._factory = factory
        self._timeout = timeout
        self._closer = closer
        self._resource: Optional[T] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def is_connected(self) -> bool:
        return self._resource is not None

    async def acquire(self) -> T:
        """Return the cached resource, connecting if needed"""
        if self._resource is not None:
            return self._resource

        if self._pending is None:
            logger.info("Opening shared connection")
            self._pending = asyncio.ensure_future(self._factory())
        pending = self._pending

        try:
            resource = await asyncio.wait_for(asyncio.shield(pending), self._timeout)
        except asyncio.TimeoutError as e:
            self._discard(pending, cancel=True)
            logger.warning(f"Connection attempt timed out after {self._timeout}s")
            raise NetworkTimeout() from e
        except asyncio.CancelledError:
            # Another caller timed out and cancelled the shared attempt
            if pending.cancelled():
                self._discard(pending)
                raise NetworkTimeout()
            raise
        except Exception:
            self._discard(pending)
            raise

        if self._pending is pending:
            self._resource = resource
            self._pending = None
        return resource

    def _discard(self, pending: asyncio.Future, cancel: bool = False) -> None:
        if self._pending is pending:
            self._pending = None
            if cancel:
                pending.cancel()

    async def reset(self) -> None:
        """Drop the current connection so the next acquire reconnects"""
        resource, self._resource = self._resource, None
        if resource is not None and self._closer is not None:
            try:
                await self._closer(resource)
            except Exception as e:
                logger.warning(f"Error while closing connection: {e}")

    async def close(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        await self.reset()
