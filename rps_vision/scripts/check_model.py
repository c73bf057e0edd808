"""
One-off check of the bundled on-device model.

Usage:
  python rps_vision/scripts/check_model.py [MODEL_DIR] [IMAGE ...]

Reads model.json + weight shards from MODEL_DIR (default: GESTURE_MODEL_DIR),
lists the weight tensors, builds the model and classifies each IMAGE.
"""
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).parents[2]
sys.path.insert(0, str(ROOT))

from rps_vision.adapters.vision.artifacts import load_artifacts
from rps_vision.adapters.vision.local_model import LocalInferenceBackend
from rps_vision.orchestrator.contracts import ImageAsset
from rps_vision.orchestrator.errors import GestureError
from rps_vision.services.config import Settings
from rps_vision.services.status_store import StatusStore


async def main(argv: list[str]) -> int:
    settings = Settings.from_env()
    model_dir = Path(argv[0]) if argv else settings.model_dir
    images = argv[1:]

    try:
        artifacts = load_artifacts(model_dir)
    except GestureError as e:
        print(f"[ERROR] {e}")
        return 1
    for name, arr in artifacts.weights.items():
        print(f"  {name:<48} {str(arr.shape):<20} {arr.dtype}")
    print(f"  {len(artifacts.weights)} tensors, {artifacts.byte_size / 1024 / 1024:.2f} MB\n")

    status = StatusStore()
    backend = LocalInferenceBackend(status, model_dir=model_dir, labels=settings.labels,
                                    input_size=settings.input_size)
    try:
        await backend.ensure_loaded()
    except GestureError as e:
        print(f"[ERROR] {e}")
        return 1

    for path in images:
        try:
            p = await backend.identify(ImageAsset(locator=path))
        except GestureError as e:
            print(f"  ❌  {path}: {type(e).__name__}: {e}")
            continue
        if p is None:
            print(f"  ❓  {path}: unrecognized")
        else:
            print(f"  ✅  {path}: {p.label.value} ({p.confidence:.2f})")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
