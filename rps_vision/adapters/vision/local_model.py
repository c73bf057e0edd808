"""
On-device gesture classifier.

The model (topology + weight shards under GESTURE_MODEL_DIR) is loaded once
per backend instance and kept in memory. ensure_loaded() is single-flight:
concurrent callers share one in-flight load task instead of starting their
own. A failed load leaves the backend in `failed`; the next ensure_loaded()
starts a fresh attempt.

The default model factory needs TensorFlow (pip install rps-vision[local]).
"""
import asyncio
import json
import time
from pathlib import Path
from typing import Callable, Optional, Sequence
import numpy as np
from rps_vision.adapters.vision.artifacts import ModelArtifacts, load_artifacts
from rps_vision.adapters.vision.base import GestureBackend
from rps_vision.adapters.vision.normalizer import normalize_local
from rps_vision.adapters.vision.preprocess import ImagePreprocessor, MODEL_IMAGE_SIZE
from rps_vision.orchestrator.contracts import (
    BackendState, GesturePrediction, ImageAsset, LocalOutput, Tensor,
)
from rps_vision.orchestrator.errors import BackendNotReadyError, ModelLoadError

LABELS = ["rock", "paper", "scissors"]


def build_keras_model(artifacts: ModelArtifacts):
    """Materialise a Keras model from a layers-model topology + manifest-ordered weights."""
    from tensorflow import keras

    model = keras.models.model_from_json(json.dumps(artifacts.topology))
    model.set_weights(artifacts.weight_list)
    return model


class LocalInferenceBackend(GestureBackend):
    name = "local"

    def __init__(self, status_store, model_dir: Path | str, labels: Sequence[str] = LABELS,
                 model_factory: Callable[[ModelArtifacts], object] = build_keras_model,
                 input_size: int = MODEL_IMAGE_SIZE):
        self.status = status_store
        self.model_dir = Path(model_dir)
        self.labels = list(labels)
        self.preprocessor = ImagePreprocessor(status_store, size=input_size)
        self._factory = model_factory
        self._model = None
        self._load_task: Optional[asyncio.Task] = None
        self.state = BackendState.UNINITIALIZED
        self.load_count = 0        # completed loads, for diagnostics
        self.last_error: Optional[str] = None

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def ensure_loaded(self):
        if self.state == BackendState.READY and self._model is not None:
            return self._model
        if self._load_task is None:
            self._load_task = asyncio.create_task(self._load())
        # shield: one caller giving up must not cancel the load the others wait on
        return await asyncio.shield(self._load_task)

    async def _load(self):
        self.state = BackendState.LOADING
        self.status.log(f"local_model: loading from {self.model_dir}")
        t0 = time.time()
        try:
            artifacts = await asyncio.to_thread(load_artifacts, self.model_dir)
            model = await asyncio.to_thread(self._factory, artifacts)
        except Exception as e:
            self.state = BackendState.FAILED
            self._load_task = None
            self.last_error = str(e)
            self.status.log(f"local_model: load failed: {type(e).__name__}: {e}")
            if isinstance(e, ModelLoadError):
                raise
            raise ModelLoadError(f"could not build model from {self.model_dir}: {e}") from e

        self._model = model
        self.state = BackendState.READY
        self.load_count += 1
        self.last_error = None
        dt = int((time.time() - t0) * 1000)
        self.status.log(
            f"local_model: ready ✅ ({len(artifacts.weights)} tensors, "
            f"{artifacts.byte_size / 1024 / 1024:.2f} MB, {dt}ms) labels={self.labels}"
        )
        return model

    def reset(self):
        """Drop the cached model; the next ensure_loaded() loads again."""
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        self._model = None
        self.state = BackendState.UNINITIALIZED
        self.status.log("local_model: reset")

    # ── Inference ───────────────────────────────────────────────────────────

    async def predict(self, tensor: Tensor) -> LocalOutput:
        if self.state != BackendState.READY or self._model is None:
            raise BackendNotReadyError(f"local model is {self.state.value}, load it first")
        raw = await asyncio.to_thread(self._model.predict, tensor, verbose=0)
        probs = np.asarray(raw, dtype=np.float32)
        if probs.ndim > 1:
            probs = probs[0]
        if probs.shape[0] != len(self.labels):
            self.status.log(
                f"local_model: output has {probs.shape[0]} classes, label order has {len(self.labels)}"
            )
        idx = int(np.argmax(probs)) if probs.size else -1
        return LocalOutput(label_index=idx, probabilities=[float(p) for p in probs])

    async def identify(self, asset: ImageAsset) -> Optional[GesturePrediction]:
        t0 = time.time()
        await self.ensure_loaded()
        tensor = await self.preprocessor.preprocess(asset)
        try:
            output = await self.predict(tensor)
        finally:
            del tensor
        prediction = normalize_local(output, self.labels)
        dt = int((time.time() - t0) * 1000)
        probs = "  ".join(
            f"{label}={p * 100:.1f}%" for label, p in zip(self.labels, output.probabilities)
        )
        if prediction is None:
            self.status.log(f"local_model: unrecognized output ({dt}ms) {probs}")
        else:
            self.status.log(
                f"local_model: → {prediction.label.value} (conf={prediction.confidence:.2f}, {dt}ms)  {probs}"
            )
        return prediction

    async def warmup(self) -> bool:
        try:
            await self.ensure_loaded()
        except ModelLoadError:
            return False
        return True
