"""
Pytest fixtures for rps_vision tests.
"""

import json

import cv2
import numpy as np
import pytest

from rps_vision.services.status_store import StatusStore


@pytest.fixture
def status() -> StatusStore:
    return StatusStore()


@pytest.fixture
def make_image():
    """Encode a synthetic BGR image: make_image(w, h, ext=".jpg", color=(b, g, r))."""

    def _make(width=320, height=240, ext=".jpg", color=(40, 120, 200)) -> bytes:
        img = np.zeros((height, width, 3), dtype=np.uint8)
        img[:, :] = color
        cv2.rectangle(img, (width // 4, height // 4), (width // 2, height // 2), (255, 255, 255), -1)
        ok, buf = cv2.imencode(ext, img)
        assert ok
        return bytes(buf)

    return _make


@pytest.fixture
def jpeg_bytes(make_image) -> bytes:
    return make_image()


@pytest.fixture
def image_file(tmp_path, jpeg_bytes):
    path = tmp_path / "hand.jpg"
    path.write_bytes(jpeg_bytes)
    return path


@pytest.fixture
def write_model():
    """Write model.json + shards. groups: list of (shard_byte_chunks, weight_specs)."""

    def _write(model_dir, groups, topology=None):
        model_dir.mkdir(parents=True, exist_ok=True)
        manifest = []
        for gi, (chunks, specs) in enumerate(groups, start=1):
            paths = []
            for si, chunk in enumerate(chunks, start=1):
                name = f"group{gi}-shard{si}of{len(chunks)}.bin"
                (model_dir / name).write_bytes(chunk)
                paths.append(name)
            manifest.append({"paths": paths, "weights": specs})
        model_json = {
            "format": "layers-model",
            "modelTopology": topology or {"class_name": "Sequential", "config": {"layers": []}},
            "weightsManifest": manifest,
        }
        (model_dir / "model.json").write_text(json.dumps(model_json), encoding="utf-8")
        return model_dir

    return _write


@pytest.fixture
def dense_weights():
    kernel = np.arange(6, dtype=np.float32).reshape(2, 3) / 10
    bias = np.array([0.5, -0.5, 1.0], dtype=np.float32)
    return kernel, bias


@pytest.fixture
def model_dir(tmp_path, write_model, dense_weights):
    """A two-shard artifact: dense/kernel (2x3) + dense/bias (3), split mid-tensor."""
    kernel, bias = dense_weights
    blob = kernel.tobytes() + bias.tobytes()
    specs = [
        {"name": "dense/kernel", "shape": [2, 3], "dtype": "float32"},
        {"name": "dense/bias", "shape": [3], "dtype": "float32"},
    ]
    return write_model(tmp_path / "model", [([blob[:10], blob[10:]], specs)])
