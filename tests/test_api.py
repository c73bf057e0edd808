"""
Tests for the HTTP surface.
"""

import base64
import random

import pytest
from fastapi.testclient import TestClient

from rps_vision.orchestrator import errors
from rps_vision.orchestrator.contracts import GestureLabel, GesturePrediction
from rps_vision.orchestrator.pipeline import GesturePipeline
from rps_vision.orchestrator.warmup import WarmupCoordinator
from rps_vision.services.api import create_app

from tests.fakes import FakeBackend, RecordingSleep

IMAGE_B64 = base64.b64encode(b"\xff\xd8 fake jpeg").decode()


@pytest.fixture
def remote():
    return FakeBackend("remote", warmup_results=[False, True],
                       result=GesturePrediction(GestureLabel.SCISSORS, 0.88, {"label": "scissors"}))


@pytest.fixture
def client(status, remote):
    wc = WarmupCoordinator(remote, status, sleep=RecordingSleep())
    pipeline = GesturePipeline({"remote": remote, "local": FakeBackend("local", result=None)},
                               status, warmup=wc, rng=random.Random(0))
    with TestClient(create_app(pipeline, warmup_on_start=False)) as c:
        yield c


class TestClassifyRoute:

    def test_recognized(self, client):
        r = client.post("/classify", json={"image": IMAGE_B64})
        assert r.status_code == 200
        data = r.json()
        assert data["ok"] is True
        assert data["recognized"]["label"] == "scissors"
        assert data["recognized"]["confidence"] == pytest.approx(0.88)
        assert data["recognized"]["fallback"] is False

    def test_data_url_prefix_accepted(self, client):
        r = client.post("/classify", json={"image": f"data:image/jpeg;base64,{IMAGE_B64}"})
        assert r.json()["ok"] is True

    def test_unrecognized(self, client):
        r = client.post("/classify", json={"image": IMAGE_B64, "backend": "local"})
        data = r.json()
        assert data["ok"] is False
        assert data["error_code"] == errors.ERR_UNRECOGNIZED
        assert "try again" in data["message"].lower()

    def test_bad_base64(self, client):
        data = client.post("/classify", json={"image": "not base64!"}).json()
        assert data["ok"] is False
        assert data["error_code"] == errors.ERR_DECODE

    def test_backend_error_reported(self, client, remote):
        remote.result = errors.ServerError(502, "bad gateway")
        data = client.post("/classify", json={"image": IMAGE_B64}).json()
        assert data["ok"] is False
        assert data["error_code"] == errors.ERR_SERVER

    def test_unexpected_model_error_reported(self, client, remote):
        remote.result = ValueError("Input 0 is incompatible with layer sequential")
        r = client.post("/classify", json={"image": IMAGE_B64})
        assert r.status_code == 200
        data = r.json()
        assert data["ok"] is False
        assert data["error_code"] == errors.ERR_UNKNOWN
        assert data["message"] == errors.describe(errors.ERR_UNKNOWN)

    def test_unsupported_backend_rejected_by_schema(self, client):
        r = client.post("/classify", json={"image": IMAGE_B64, "backend": "cloud"})
        assert r.status_code == 422


class TestPlayRoute:

    def test_round_against_counter(self, client):
        data = client.post("/play", json={"image": IMAGE_B64, "counter": "paper"}).json()
        assert data["ok"] is True
        assert data["counter"] == "paper"
        assert data["outcome"] == {"result": "win", "message": "You Win! AI chose paper"}

    def test_bad_base64_round(self, client):
        data = client.post("/play", json={"image": "%%%"}).json()
        assert data["ok"] is False
        assert data["error_code"] == errors.ERR_DECODE


class TestOtherRoutes:

    @pytest.mark.parametrize("player,counter,result", [
        ("paper", "rock", "win"), ("rock", "rock", "draw"), ("rock", "paper", "lose"),
    ])
    def test_resolve(self, client, player, counter, result):
        r = client.post("/resolve", json={"player": player, "counter": counter})
        assert r.json()["result"] == result

    def test_warmup_retries_until_awake(self, client, remote):
        data = client.post("/warmup").json()
        assert data == {"attempted": True, "succeeded": True, "retry_count": 1, "in_progress": False}
        assert remote.warmup_calls == 2

    def test_status(self, client):
        client.post("/classify", json={"image": IMAGE_B64})
        data = client.get("/status").json()
        assert data["busy"] is False
        assert data["default_backend"] == "remote"
        assert data["backends"] == {"remote": "ready", "local": "ready"}
        assert data["recognized"]["label"] == "scissors"
        assert isinstance(data["logs"], list)

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["all_ok"] is True
        assert data["remote_state"] == "ready"
