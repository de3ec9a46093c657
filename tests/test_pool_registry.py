import asyncio

import pytest

from liqgate.application.pool_registry import PoolRegistry


class SlowFactory:
    def __init__(self, fail_first: bool = False):
        self.calls = 0
        self.release = asyncio.Event()
        self.fail_first = fail_first

    async def __call__(self, pool_address: str):
        self.calls += 1
        await self.release.wait()
        if self.fail_first and self.calls == 1:
            raise ConnectionError("pool account not found")
        return {"address": pool_address, "build": self.calls}


@pytest.mark.anyio
async def test_concurrent_requests_construct_once():
    factory = SlowFactory()
    registry = PoolRegistry(factory)

    first = asyncio.ensure_future(registry.get("PoolA"))
    second = asyncio.ensure_future(registry.get("PoolA"))
    await asyncio.sleep(0)
    factory.release.set()
    a, b = await asyncio.gather(first, second)

    assert factory.calls == 1
    assert a is b
    assert "PoolA" in registry


@pytest.mark.anyio
async def test_cached_handle_is_reused():
    factory = SlowFactory()
    factory.release.set()
    registry = PoolRegistry(factory)

    a = await registry.get("PoolA")
    b = await registry.get("PoolA")
    c = await registry.get("PoolB")

    assert a is b
    assert c is not a
    assert factory.calls == 2
    assert sorted(registry.cached()) == ["PoolA", "PoolB"]


@pytest.mark.anyio
async def test_failure_propagates_to_waiters_and_is_evicted():
    factory = SlowFactory(fail_first=True)
    registry = PoolRegistry(factory)

    first = asyncio.ensure_future(registry.get("PoolA"))
    second = asyncio.ensure_future(registry.get("PoolA"))
    await asyncio.sleep(0)
    factory.release.set()
    results = await asyncio.gather(first, second, return_exceptions=True)

    assert all(isinstance(r, ConnectionError) for r in results)
    assert factory.calls == 1
    assert "PoolA" not in registry

    handle = await registry.get("PoolA")
    assert handle["build"] == 2


@pytest.mark.anyio
async def test_invalidate_forces_rebuild():
    factory = SlowFactory()
    factory.release.set()
    registry = PoolRegistry(factory)

    first = await registry.get("PoolA")
    registry.invalidate("PoolA")
    second = await registry.get("PoolA")

    assert first is not second
    assert factory.calls == 2


@pytest.mark.anyio
async def test_cancelled_caller_leaves_other_waiters_running():
    factory = SlowFactory()
    registry = PoolRegistry(factory)

    first = asyncio.ensure_future(registry.get("PoolA"))
    second = asyncio.ensure_future(registry.get("PoolA"))
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    factory.release.set()
    handle = await second

    assert first.cancelled()
    assert handle["build"] == 1
    assert factory.calls == 1
    assert "PoolA" in registry
