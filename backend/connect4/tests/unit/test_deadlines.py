import asyncio

from connect4.session.deadlines import DeadlineRegistry


class TestDeadlineRegistry:
    async def test_callback_fires_after_timeout(self):
        fired = asyncio.Event()
        expired = []

        async def on_expire(key):
            expired.append(key)
            fired.set()

        registry = DeadlineRegistry(0.02, on_expire)
        registry.arm("alice")

        await asyncio.wait_for(fired.wait(), timeout=1.0)
        assert expired == ["alice"]
        assert not registry.is_armed("alice")
        assert len(registry) == 0

    async def test_cancel_prevents_expiry(self):
        expired = []

        async def on_expire(key):
            expired.append(key)

        registry = DeadlineRegistry(0.02, on_expire)
        registry.arm("alice")
        assert registry.cancel("alice") is True
        assert registry.cancel("alice") is False

        await asyncio.sleep(0.05)
        assert expired == []

    async def test_renew_restarts_the_timer(self):
        expired = []

        async def on_expire(key):
            expired.append(key)

        registry = DeadlineRegistry(0.08, on_expire)
        registry.arm("alice")
        await asyncio.sleep(0.05)
        assert registry.renew("alice") is True
        await asyncio.sleep(0.05)

        assert expired == []
        assert registry.is_armed("alice")
        registry.cancel_all()

    async def test_renew_ignores_unknown_keys(self):
        async def on_expire(_key):
            pass

        registry = DeadlineRegistry(1.0, on_expire)
        assert registry.renew("ghost") is False
        assert not registry.is_armed("ghost")

    async def test_remaining(self):
        async def on_expire(_key):
            pass

        registry = DeadlineRegistry(10.0, on_expire)
        assert registry.remaining("alice") is None
        registry.arm("alice")

        remaining = registry.remaining("alice")
        assert remaining is not None
        assert 9.0 < remaining <= 10.0
        registry.cancel_all()
        assert registry.remaining("alice") is None

    async def test_callback_may_cancel_its_own_key(self):
        done = asyncio.Event()
        registry = None

        async def on_expire(key):
            await asyncio.sleep(0)
            registry.cancel(key)
            done.set()

        registry = DeadlineRegistry(0.01, on_expire)
        registry.arm("alice")

        await asyncio.wait_for(done.wait(), timeout=1.0)

    async def test_callback_may_rearm_its_key(self):
        calls = []

        async def on_expire(key):
            calls.append(key)
            if len(calls) == 1:
                registry.arm(key)

        registry = DeadlineRegistry(0.01, on_expire)
        registry.arm("alice")
        await asyncio.sleep(0.1)

        assert calls == ["alice", "alice"]

    async def test_failing_callback_is_logged(self, caplog):
        done = asyncio.Event()

        async def on_expire(_key):
            done.set()
            raise RuntimeError("boom")

        registry = DeadlineRegistry(0.01, on_expire)
        registry.arm("alice")
        await asyncio.wait_for(done.wait(), timeout=1.0)
        await asyncio.sleep(0.01)

        assert "deadline callback failed for alice" in caplog.text

    async def test_keys_are_independent(self):
        expired = []

        async def on_expire(key):
            expired.append(key)

        registry = DeadlineRegistry(0.02, on_expire)
        registry.arm("alice")
        registry.arm("bob")
        registry.cancel("alice")
        await asyncio.sleep(0.06)

        assert expired == ["bob"]

    async def test_cancelled_deadline_task_ends_cancelled(self):
        async def on_expire(_key):
            pass

        registry = DeadlineRegistry(1.0, on_expire)
        registry.arm("alice")
        task = registry._tasks["alice"]

        registry.cancel("alice")
        await asyncio.wait([task])

        assert task.cancelled()
