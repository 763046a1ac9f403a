from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, replace
from typing import Any, AsyncIterator, Dict, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field
from pygame.math import Vector2

from ..sim.core.agent import SignalKind
from ..sim.core.config import AppConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


class StepRequest(BaseModel):
    ticks: int = Field(default=1, ge=1, le=3600)


class ResetRequest(BaseModel):
    backend: Optional[str] = None
    seed: Optional[int] = None


class SpeedRequest(BaseModel):
    multiplier: float = 1.0


class ColonyHost:
    """Owns one colony and advances it on the event loop while `running` is set."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.simulation)
        self.tick = 0
        self.running = False
        self.speed = 1.0
        self.viewers: Set[WebSocket] = set()

    def advance(self, ticks: int = 1) -> Optional[TickMetrics]:
        metrics = None
        for _ in range(ticks):
            metrics = self.world.step(self.tick)
            self.tick += 1
        return metrics

    def rebuild(self, backend: Optional[str] = None, seed: Optional[int] = None) -> None:
        simulation = self.config.simulation
        if backend is not None:
            simulation = replace(simulation, signals=replace(simulation.signals, backend=backend))
        if seed is not None:
            simulation = replace(simulation, seed=seed)
        self.world = World(simulation)
        self.config.simulation = simulation
        self.tick = 0
        logger.info("Colony rebuilt on the %s backend with seed %d", self.world.signals.backend, simulation.seed)

    def status(self) -> Dict[str, Any]:
        metrics = self.world.metrics
        return {
            "running": self.running,
            "tick": self.tick,
            "speed": self.speed,
            "backend": self.world.signals.backend,
            "ants": len(self.world.ants),
            "signal_load": self.world.signals.load(),
            "food_remaining": self.world.food.total(),
            "metrics": asdict(metrics) if metrics is not None else None,
        }

    def frame(self, include_fields: bool = True) -> Dict[str, Any]:
        snapshot = self.world.snapshot(self.tick)
        frame: Dict[str, Any] = {
            "tick": snapshot.tick,
            "metrics": asdict(snapshot.metrics),
            "metadata": asdict(snapshot.metadata),
            "ants": snapshot.ants,
        }
        if include_fields:
            frame["signals"] = snapshot.fields.signals
            frame["food"] = snapshot.fields.food
        return frame

    def sense(self, x: float, y: float) -> Dict[str, Any]:
        qualia = self.world.signals.sample_qualia(Vector2(x, y))
        return {
            "x": x,
            "y": y,
            "food": self.world.food.amount_at(Vector2(x, y)),
            "signals": {kind.value: list(qualia.amount(kind)) for kind in SignalKind},
        }

    async def run(self) -> None:
        interval = max(1, self.config.broadcast_interval)
        while True:
            await asyncio.sleep(self.config.simulation.time_step / self.speed)
            if not self.running:
                continue
            self.advance()
            if self.tick % interval == 0 and self.viewers:
                await self.publish(self.frame(include_fields=False))

    async def publish(self, frame: Dict[str, Any]) -> None:
        gone: Set[WebSocket] = set()
        for viewer in self.viewers:
            try:
                await viewer.send_json(frame)
            except (WebSocketDisconnect, RuntimeError):
                gone.add(viewer)
        self.viewers -= gone
        if gone:
            logger.info("Dropped %d viewers", len(gone))


def create_app(host: ColonyHost) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        task = asyncio.create_task(host.run())
        try:
            yield
        finally:
            task.cancel()

    app = FastAPI(title="Ant Field", lifespan=lifespan)
    app.state.host = host

    @app.get("/api/status")
    async def status() -> Dict[str, Any]:
        return host.status()

    @app.get("/api/snapshot")
    async def snapshot(fields: bool = True) -> Dict[str, Any]:
        return host.frame(include_fields=fields)

    @app.get("/api/sense")
    async def sense(x: float, y: float) -> Dict[str, Any]:
        return host.sense(x, y)

    @app.post("/api/control/start")
    async def start() -> Dict[str, Any]:
        host.running = True
        return host.status()

    @app.post("/api/control/stop")
    async def stop() -> Dict[str, Any]:
        host.running = False
        return host.status()

    @app.post("/api/control/step")
    async def step(request: StepRequest) -> Dict[str, Any]:
        host.advance(request.ticks)
        return host.status()

    @app.post("/api/control/reset")
    async def reset(request: Optional[ResetRequest] = None) -> Dict[str, Any]:
        request = request or ResetRequest()
        try:
            host.rebuild(backend=request.backend, seed=request.seed)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return host.status()

    @app.post("/api/control/speed")
    async def speed(request: SpeedRequest) -> Dict[str, Any]:
        host.speed = max(0.1, min(5.0, request.multiplier))
        return {"speed": host.speed}

    @app.websocket("/ws")
    async def stream(websocket: WebSocket) -> None:
        await websocket.accept()
        host.viewers.add(websocket)
        await websocket.send_json(host.frame())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            host.viewers.discard(websocket)

    return app


app = create_app(ColonyHost(AppConfig()))

__all__ = ["ColonyHost", "app", "create_app"]
