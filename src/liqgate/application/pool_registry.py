import asyncio
from typing import Awaitable, Callable, Dict, Generic, List, TypeVar

from loguru import logger

H = TypeVar("H")


class PoolRegistry(Generic[H]):
    """
    Pool handles keyed by pool address, constructed at most once concurrently.

    Construction runs as its own task registered in-flight; every caller awaits
    it through asyncio.shield, so cancelling one caller never cancels the load
    for the others. A failed construction is evicted so the next call retries.
    """

    def __init__(self, factory: Callable[[str], Awaitable[H]]):
        self._factory = factory
        self._handles: Dict[str, H] = {}
        self._inflight: Dict[str, "asyncio.Task[H]"] = {}

    async def get(self, pool_address: str) -> H:
        if pool_address in self._handles:
            return self._handles[pool_address]

        task = self._inflight.get(pool_address)
        if task is None:
            task = asyncio.ensure_future(self._load(pool_address))
            task.add_done_callback(_consume_exception)
            self._inflight[pool_address] = task
        return await asyncio.shield(task)

    async def _load(self, pool_address: str) -> H:
        try:
            handle = await self._factory(pool_address)
        except Exception as e:
            logger.warning(f"POOL_LOAD | failed | pool={pool_address[:8]}... | {type(e).__name__}: {e}")
            raise
        finally:
            self._inflight.pop(pool_address, None)

        self._handles[pool_address] = handle
        logger.debug(f"POOL_LOAD | cached | pool={pool_address[:8]}...")
        return handle

    def invalidate(self, pool_address: str) -> None:
        self._handles.pop(pool_address, None)

    def cached(self) -> List[str]:
        return list(self._handles)

    def __contains__(self, pool_address: object) -> bool:
        return pool_address in self._handles


def _consume_exception(task: "asyncio.Task") -> None:
    # a load whose callers all went away would otherwise warn at shutdown
    if not task.cancelled():
        task.exception()
