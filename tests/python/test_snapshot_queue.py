import asyncio

from mutualism.app.server import SimulationController
from mutualism.config import AppConfig, LatticeConfig, SimulationConfig


def _controller(**overrides) -> SimulationController:
    values = dict(sim_steps=3, out_steps=1, seed=5, lattice=LatticeConfig(width=2, height=2))
    values.update(overrides)
    return SimulationController(SimulationConfig(**values))


def test_snapshot_queue_ack_cleanup() -> None:
    controller = _controller()

    async def exercise() -> None:
        assert await controller.advance()
        assert await controller.advance()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [0, 1]
        await controller.acknowledge(0)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [1]

    asyncio.run(exercise())


def test_snapshots_follow_out_steps() -> None:
    controller = _controller(sim_steps=6, out_steps=3)

    async def exercise() -> list[int]:
        for _ in range(7):
            await controller.advance()
        async with controller._queue_lock:
            return [item.tick for item in controller._snapshot_queue]

    assert asyncio.run(exercise()) == [0, 3, 6]


def test_controller_stops_after_last_tick() -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.start()
        controller.running = False
        for _ in range(4):
            await controller.advance()
        assert controller.finished
        assert not controller.running
        assert not await controller.advance()
        assert controller.tick == 4
        await controller.reset()
        assert controller.tick == 0
        assert not controller.finished
        async with controller._queue_lock:
            assert not controller._snapshot_queue

    asyncio.run(exercise())


def test_snapshot_queue_is_bounded_without_clients() -> None:
    controller = SimulationController(
        SimulationConfig(sim_steps=50, out_steps=5, seed=5, lattice=LatticeConfig(width=20, height=20)),
        snapshot_backlog=3,
    )

    async def exercise() -> list[int]:
        for _ in range(51):
            await controller.advance()
        async with controller._queue_lock:
            return [item.tick for item in controller._snapshot_queue]

    assert not controller.clients
    assert asyncio.run(exercise()) == [40, 45, 50]


def test_app_config_sets_snapshot_backlog() -> None:
    app_config = AppConfig(simulation=SimulationConfig(sim_steps=2, seed=1, lattice=LatticeConfig(width=2, height=2)))
    controller = SimulationController.from_app_config(app_config)
    assert controller._snapshot_queue.maxlen == app_config.snapshot_backlog
