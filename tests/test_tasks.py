import asyncio

from app.core.cache import CacheService
from app.core.tasks import TaskManager


def test_detached_failure_is_counted_not_raised():
    manager = TaskManager()

    async def boom():
        raise ValueError("view counter unavailable")

    async def run():
        manager.fire_and_forget(boom(), name="clip_view:x")
        await asyncio.sleep(0.01)

    asyncio.run(run())

    stats = manager.get_task_stats()
    assert stats["failed"] == 1
    assert stats["detached"] == 0
    assert stats["running"] == 0


def test_detached_task_completes():
    manager = TaskManager()
    done = []

    async def bump():
        done.append(True)

    async def run():
        manager.fire_and_forget(bump(), name="clip_view:y")
        await asyncio.sleep(0.01)

    asyncio.run(run())

    assert done == [True]
    assert manager.get_task_stats()["failed"] == 0


def test_cancel_all_stops_running_tasks():
    manager = TaskManager()

    async def run():
        manager.fire_and_forget(asyncio.sleep(60), name="slow")
        await asyncio.sleep(0)
        return await manager.cancel_all(timeout=1.0)

    result = asyncio.run(run())

    assert result == {"cancelled": 1, "timed_out": 0}


def test_singleton_can_be_reset():
    first = TaskManager.get_instance()
    assert TaskManager.get_instance() is first
    TaskManager.reset_instance()
    assert TaskManager.get_instance() is not first


def test_featured_animator_key_is_per_week():
    assert CacheService.featured_animator_key(2024, 7) == "featured:animator:2024:7"
    assert CacheService.featured_animator_key(2024, 7) != CacheService.featured_animator_key(2024, 8)
