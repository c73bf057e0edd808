"""
Reader for the bundled layers-model artifact.

Layout (as exported by TensorFlow.js / Teachable Machine):
  model.json         {"modelTopology": {...}, "weightsManifest": [group, ...]}
  group*-shard*.bin  raw little-endian weight bytes

Each manifest group lists its shard `paths` and its `weights` specs. The
shards of a group are concatenated in order and the specs are sliced off
that buffer one after another, so the byte count must match exactly.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np
from rps_vision.orchestrator.errors import ModelLoadError

MODEL_JSON = "model.json"

# stored dtype -> numpy dtype (little-endian)
_DTYPES = {
    "float32": np.dtype("<f4"),
    "int32": np.dtype("<i4"),
    "bool": np.dtype("u1"),
    "uint8": np.dtype("u1"),
    "uint16": np.dtype("<u2"),
    "float16": np.dtype("<f2"),
}


@dataclass
class ModelArtifacts:
    topology: dict
    weights: dict[str, np.ndarray] = field(default_factory=dict)   # manifest order
    format: str = "layers-model"

    @property
    def weight_list(self) -> list[np.ndarray]:
        return list(self.weights.values())

    @property
    def byte_size(self) -> int:
        return sum(w.nbytes for w in self.weights.values())


def _decode_weight(spec: dict, buf: memoryview, offset: int) -> tuple[np.ndarray, int]:
    name = spec.get("name")
    shape = [int(d) for d in spec.get("shape", [])]
    dtype = spec.get("dtype", "float32")
    quant = spec.get("quantization") or {}
    stored = quant.get("dtype", dtype)
    if stored not in _DTYPES:
        raise ModelLoadError(f"weight '{name}': unsupported dtype '{stored}'")

    count = int(np.prod(shape)) if shape else 1
    np_dtype = _DTYPES[stored]
    nbytes = count * np_dtype.itemsize
    if offset + nbytes > len(buf):
        raise ModelLoadError(
            f"weight '{name}' needs {nbytes} bytes at offset {offset}, shard data has {len(buf)}"
        )
    arr = np.frombuffer(buf, dtype=np_dtype, count=count, offset=offset)

    if "scale" in quant:
        arr = arr.astype(np.float32) * float(quant["scale"]) + float(quant.get("min", 0.0))
    elif stored == "float16":
        arr = arr.astype(np.float32)
    elif dtype == "bool":
        arr = arr.astype(bool)
    else:
        arr = arr.copy()
    return arr.reshape(shape), offset + nbytes


def read_group(model_dir: Path, group: dict) -> dict[str, np.ndarray]:
    paths = group.get("paths") or []
    if not paths:
        raise ModelLoadError("weights manifest group has no shard paths")
    chunks = []
    for rel in paths:
        shard = model_dir / rel
        try:
            chunks.append(shard.read_bytes())
        except OSError as e:
            raise ModelLoadError(f"cannot read weight shard '{rel}': {e}") from e
    buf = memoryview(b"".join(chunks))

    out: dict[str, np.ndarray] = {}
    offset = 0
    for spec in group.get("weights", []):
        arr, offset = _decode_weight(spec, buf, offset)
        out[spec["name"]] = arr
    if offset != len(buf):
        raise ModelLoadError(
            f"shard size mismatch for {paths}: specs consume {offset} bytes, shards hold {len(buf)}"
        )
    return out


def load_artifacts(model_dir: Path | str) -> ModelArtifacts:
    model_dir = Path(model_dir)
    json_path = model_dir / MODEL_JSON
    try:
        model_json = json.loads(json_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ModelLoadError(f"cannot read {json_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ModelLoadError(f"{json_path} is not valid JSON: {e}") from e

    if not isinstance(model_json, dict):
        raise ModelLoadError(f"{json_path}: expected a JSON object")
    topology = model_json.get("modelTopology") or model_json
    manifest = model_json.get("weightsManifest")
    if not isinstance(manifest, list) or not manifest:
        raise ModelLoadError(f"{json_path}: missing weightsManifest")

    weights: dict[str, np.ndarray] = {}
    for group in manifest:
        weights.update(read_group(model_dir, group))
    return ModelArtifacts(topology=topology, weights=weights,
                          format=model_json.get("format", "layers-model"))
