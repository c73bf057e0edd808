"""
Fake remote inference service for testing RemoteInferenceBackend without the real host.

Simulates the hosted FastAPI model on port 9000:
  GET  /         warmup probe (sleeps COLD_START_S on the first hit)
  POST /predict  multipart `file` → JSON in a rotating response shape

Env:
  COLD_START_S   first-request delay, seconds (default 5)
  FAIL_RATE      fraction of /predict calls answered with HTTP 500 (default 0)

Usage:
    python -m rps_vision.scripts.fake_gesture_server
    GESTURE_API_BASE_URL=http://localhost:9000 uvicorn rps_vision.services.api:app
"""

import itertools
import os
import random
import time
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

COLD_START_S = float(os.getenv("COLD_START_S", "5"))
FAIL_RATE = float(os.getenv("FAIL_RATE", "0"))
LABELS = ["rock", "paper", "scissors"]

app = FastAPI(title="fake-gesture-server")
_awake = False


def _wake():
    global _awake
    if not _awake:
        print(f"[model] cold start — sleeping {COLD_START_S:.1f}s ...")
        time.sleep(COLD_START_S)
        _awake = True
        print("[model] awake")


def _shape_gesture(label, probs):
    return {"gesture": label, "confidence": probs[label]}


def _shape_label(label, probs):
    return {"label": label.upper(), "score": probs[label]}


def _shape_percent(label, probs):
    return {"class_name": label, "probability": round(probs[label] * 100, 1)}


def _shape_probabilities(label, probs):
    return {"probabilities": probs}


_SHAPES = itertools.cycle([_shape_gesture, _shape_label, _shape_percent, _shape_probabilities])


@app.get("/")
def root():
    _wake()
    return {"status": "ok", "model": "fake-rps"}


@app.post("/predict")
async def predict(request: Request):
    _wake()
    form = await request.form()
    upload = form.get("file")
    if upload is None:
        return PlainTextResponse("missing file field", status_code=422)
    data = await upload.read()
    print(f"[model] predict {upload.filename} ({len(data) // 1024}KB)")
    if random.random() < FAIL_RATE:
        return PlainTextResponse("model file missing", status_code=500)

    weights = [random.random() for _ in LABELS]
    total = sum(weights)
    probs = {label: round(w / total, 3) for label, w in zip(LABELS, weights)}
    label = max(probs, key=probs.__getitem__)
    return next(_SHAPES)(label, probs)


if __name__ == "__main__":
    print("Fake gesture server starting on http://localhost:9000")
    uvicorn.run(app, host="0.0.0.0", port=9000)
