from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..config import AppConfig, SimulationConfig
from ..sim.core.integrator import Integrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(
        self,
        config: SimulationConfig,
        tick_interval_seconds: float = 0.02,
        broadcast_interval: int = 1,
        snapshot_backlog: int = 8,
    ):
        self.config = config
        self.integrator = Integrator(config)
        self.tick_interval_seconds = max(0.0, tick_interval_seconds)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        # Oldest unacknowledged snapshots fall off once the backlog is full.
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, snapshot_backlog))
        self._emitted = 0
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @classmethod
    def from_app_config(cls, app_config: AppConfig) -> "SimulationController":
        return cls(
            app_config.simulation,
            tick_interval_seconds=app_config.tick_interval_seconds,
            broadcast_interval=app_config.broadcast_interval,
            snapshot_backlog=app_config.snapshot_backlog,
        )

    @property
    def finished(self) -> bool:
        return self.tick > self.config.sim_steps

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = not self.finished

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.integrator.reset()
            self.tick = 0
            self._emitted = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1

    async def advance(self) -> bool:
        """Run one tick; returns whether a snapshot was due."""
        async with self._lock:
            if self.finished:
                self.running = False
                return False
            tick = self.tick
            self.integrator.step(tick)
            due = self.integrator.should_emit(tick)
            self.tick += 1
            if self.finished:
                self.running = False
                logger.info("Simulation reached its last tick (%d)", tick)
        if due:
            self._emitted += 1
            if self._emitted % self.broadcast_interval == 0:
                await self._broadcast_snapshot(tick)
        return due

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval_seconds / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self, tick: int) -> QueuedSnapshot:
        snapshot = self.integrator.snapshot(tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metadata": asdict(snapshot.metadata),
                "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
                "records": [asdict(record) for record in snapshot.records],
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self, tick: int) -> None:
        async with self._lock:
            queued = self._serialize_snapshot(tick)
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Lattice Mutualism Simulation")
controller = SimulationController.from_app_config(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.integrator.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "sim_steps": controller.config.sim_steps,
            "seed": controller.integrator.seed,
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": controller.running})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
