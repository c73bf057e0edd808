"""
Runtime settings, read from the environment (a .env file is loaded by the API via dotenv).

    GESTURE_BACKEND          remote | local              (default: remote)
    GESTURE_API_BASE_URL     remote inference service root
    GESTURE_MODEL_DIR        folder holding model.json + weight shards
    GESTURE_LABELS           class order of the local model output
    FALLBACK_RANDOM          1 = random label / zero confidence when a round fails
"""
import os
from dataclasses import dataclass
from pathlib import Path

from rps_vision.orchestrator.contracts import GestureLabel

DEFAULT_API_BASE_URL = "https://rps-gesture-2.onrender.com"
DEFAULT_MODEL_DIR = Path(__file__).resolve().parent.parent / "assets" / "models"
DEFAULT_LABELS = ("rock", "paper", "scissors")


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    backend: str = "remote"
    api_base_url: str = DEFAULT_API_BASE_URL
    predict_path: str = "/predict"
    predict_timeout: float = 60.0
    warmup_timeout: float = 10.0
    warmup_retries: int = 2
    warmup_delay: float = 3.0
    warmup_on_start: bool = True
    model_dir: Path = DEFAULT_MODEL_DIR
    labels: tuple[str, ...] = DEFAULT_LABELS
    input_size: int = 224
    upload_max_size: int = 800
    upload_quality: int = 80
    fallback_random: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        labels = tuple(
            l.strip().lower() for l in os.getenv("GESTURE_LABELS", ",".join(DEFAULT_LABELS)).split(",") if l.strip()
        )
        unknown = [l for l in labels if GestureLabel.parse(l) is None]
        if unknown:
            raise ValueError(f"GESTURE_LABELS contains non-gesture labels: {unknown}")
        if sorted(labels) != sorted(DEFAULT_LABELS):
            raise ValueError(f"GESTURE_LABELS must name each gesture exactly once, got {list(labels)}")
        return cls(
            backend=os.getenv("GESTURE_BACKEND", "remote").lower(),
            api_base_url=os.getenv("GESTURE_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            predict_path=os.getenv("GESTURE_PREDICT_PATH", "/predict"),
            predict_timeout=float(os.getenv("GESTURE_PREDICT_TIMEOUT", "60")),
            warmup_timeout=float(os.getenv("GESTURE_WARMUP_TIMEOUT", "10")),
            warmup_retries=int(os.getenv("GESTURE_WARMUP_RETRIES", "2")),
            warmup_delay=float(os.getenv("GESTURE_WARMUP_DELAY", "3")),
            warmup_on_start=_flag("GESTURE_WARMUP_ON_START", "1"),
            model_dir=Path(os.getenv("GESTURE_MODEL_DIR", str(DEFAULT_MODEL_DIR))),
            labels=labels,
            input_size=int(os.getenv("GESTURE_INPUT_SIZE", "224")),
            upload_max_size=int(os.getenv("GESTURE_UPLOAD_MAX_SIZE", "800")),
            upload_quality=int(os.getenv("GESTURE_UPLOAD_QUALITY", "80")),
            fallback_random=_flag("FALLBACK_RANDOM"),
        )
