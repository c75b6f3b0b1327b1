"""
Evolver — Server

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

FastAPI + WebSocket. Create a run, step it, force a generation, restart
the freeze ramp, save the population. Every mutation of the simulation
happens under one lock; every change is broadcast to connected clients.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from .config import Config, GenerationConfig, SaveConfig
from .exceptions import PersistenceError
from .simulation import DEFAULT_DT, Simulation


# ─── State ──────────────────────────────────────────────

sim: Optional[Simulation] = None
ws_clients: set[WebSocket] = set()
_sim_lock = asyncio.Lock()


# ─── App ────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if sim is not None:
        sim.close()

app = FastAPI(title="Evolver", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "engine": "evolver"}


# ─── Models ─────────────────────────────────────────────

class CreateRequest(BaseModel):
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    save: SaveConfig = Field(default_factory=SaveConfig)

class StepRequest(BaseModel):
    ticks: int = Field(default=1, ge=1, le=100_000)
    dt: float = Field(default=DEFAULT_DT, gt=0, le=1.0)

class GenerationRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=1000)
    dt: float = Field(default=DEFAULT_DT, gt=0, le=1.0)


def _require_sim() -> Simulation:
    if sim is None:
        raise HTTPException(status_code=409, detail="No simulation. POST /sim/create first.")
    return sim


# ─── Simulation Control ────────────────────────────────

@app.post("/sim/create")
async def create_sim(req: CreateRequest):
    global sim
    async with _sim_lock:
        if sim is not None:
            sim.close()
        sim = Simulation(Config(generation=req.generation, save=req.save))
        events = sim.scheduler.pop_events()
        state = sim.scheduler.get_state()
    logger.info(f"Created simulation: {state['population']} blueprints, "
                f"preset={req.generation.preset}, seed={req.generation.seed}")
    await broadcast({"type": "created", "data": state, "events": events})
    return {"status": "created", "population": state['population']}


@app.post("/sim/step")
async def step_sim(req: StepRequest):
    s = _require_sim()
    async with _sim_lock:
        for _ in range(req.ticks):
            s.step(req.dt)
        events = s.scheduler.pop_events()
        state = s.scheduler.get_state()
    await broadcast({"type": "step", "data": state, "events": events[:10]})
    return {
        "generation": s.generation,
        "elapsed": state['elapsed'],
        "world_time": round(s.world.time, 3),
    }


@app.post("/sim/generation")
async def run_generation(req: GenerationRequest):
    """Run until `count` more generations have completed."""
    s = _require_sim()
    async with _sim_lock:
        stats = s.run_generations(req.count, req.dt)
        events = s.scheduler.pop_events()
    await broadcast({"type": "generation", "stats": stats, "events": events[:10]})
    return {"generation": s.generation, "stats": stats}


@app.post("/sim/freeze")
async def toggle_freeze():
    s = _require_sim()
    async with _sim_lock:
        s.toggle_freeze()
    await broadcast({"type": "freeze", "generation": s.generation})
    return {"freeze": "restarted", "organisms": len(s.scheduler.runtimes)}


@app.post("/sim/save")
async def save_sim():
    s = _require_sim()
    async with _sim_lock:
        try:
            path = s.save()
        except PersistenceError as e:
            logger.warning(f"Manual save failed: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e
    return {"saved": str(path), "generation": s.generation}


# ─── Query ──────────────────────────────────────────────

@app.get("/sim/state")
async def get_state():
    return _require_sim().scheduler.get_state()


@app.get("/sim/stats")
async def get_stats():
    s = _require_sim()
    return {
        **s.summary(),
        "generation_stats": s.scheduler.generation_stats[-20:],
    }


# ─── WebSocket ──────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    ws_clients.add(ws)
    try:
        if sim:
            await ws.send_json({"type": "init", "data": sim.scheduler.get_state()})
        while True:
            data = await ws.receive_text()
            if len(data) > 10_000:
                continue
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if msg.get("type") == "get_state" and sim:
                await ws.send_json({"type": "state", "data": sim.scheduler.get_state()})
    except WebSocketDisconnect:
        ws_clients.discard(ws)


async def broadcast(message: dict):
    """Send to all connected WebSocket clients."""
    dead = set()
    for ws in ws_clients:
        try:
            await ws.send_json(message)
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.debug(f"Dropping websocket client: {e}")
            dead.add(ws)
    ws_clients.difference_update(dead)


# ─── Run ────────────────────────────────────────────────

def start(host: str = "0.0.0.0", port: int = 8000):
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    start()
