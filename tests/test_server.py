# Evolver — HTTP API tests
# Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

import pytest
from fastapi.testclient import TestClient

import evolver.server as server

CREATE = {
    "generation": {"population_size": 4, "generation_duration": 0.2, "seed": 7, "preset": "muscle_test"},
}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(server, "sim", None)
    with TestClient(server.app) as c:
        yield c


@pytest.fixture
def created(client, tmp_path):
    body = {**CREATE, "save": {"save_folder": str(tmp_path)}}
    r = client.post("/sim/create", json=body)
    assert r.status_code == 200
    return client


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_requires_simulation(client):
    assert client.post("/sim/step", json={}).status_code == 409
    assert client.get("/sim/state").status_code == 409


def test_create_validates_config(client):
    bad = {"generation": {"population_size": 1}}
    assert client.post("/sim/create", json=bad).status_code == 422


def test_create_and_step(created):
    r = created.post("/sim/step", json={"ticks": 3, "dt": 0.05})
    assert r.status_code == 200
    assert r.json()["generation"] == 0
    state = created.get("/sim/state").json()
    assert state["population"] == 4
    assert len(state["organisms"]) == 4


def test_generation_endpoint(created):
    r = created.post("/sim/generation", json={"count": 2, "dt": 0.05})
    body = r.json()
    assert body["generation"] == 2
    assert len(body["stats"]) == 2
    stats = created.get("/sim/stats").json()
    assert stats["generation"] == 2
    assert len(stats["generation_stats"]) == 2


def test_freeze_and_save(created, tmp_path):
    created.post("/sim/step", json={"ticks": 2, "dt": 0.05})
    r = created.post("/sim/freeze")
    assert r.json()["organisms"] == 4
    saved = created.post("/sim/save").json()["saved"]
    assert saved.startswith(str(tmp_path))


def test_websocket_state(created):
    with created.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "init"
        ws.send_json({"type": "get_state"})
        msg = ws.receive_json()
        assert msg["type"] == "state"
        assert msg["data"]["population"] == 4
