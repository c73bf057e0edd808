from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import unquote, urlparse

import numpy as np

from rps_vision.orchestrator.errors import ResourceReadError

# [batch=1, H, W, channels=3], float32 in [0, 1]
Tensor = np.ndarray


class GestureLabel(str, Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"

    @classmethod
    def parse(cls, value: Any) -> Optional["GestureLabel"]:
        """Case-insensitive lookup; anything outside the canonical set is None."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class BackendState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class OutcomeResult(str, Enum):
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


@dataclass(frozen=True)
class ImageAsset:
    locator: str                    # path or file:// URI; "memory:<name>" for uploads
    width: int = 0
    height: int = 0
    mime_type: str = "image/jpeg"
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "upload.jpg",
                   mime_type: str = "image/jpeg", width: int = 0, height: int = 0) -> "ImageAsset":
        return cls(locator=f"memory:{name}", width=width, height=height, mime_type=mime_type, data=data)

    @property
    def path(self) -> Path:
        loc = self.locator
        if loc.startswith("file://"):
            return Path(unquote(urlparse(loc).path))
        return Path(loc)

    @property
    def filename(self) -> str:
        if self.locator.startswith("memory:"):
            return self.locator[len("memory:"):] or "upload.jpg"
        return self.path.name or "upload.jpg"

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.locator.startswith("content://") or self.locator.startswith("memory:"):
            raise ResourceReadError(f"no readable content behind '{self.locator}'")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise ResourceReadError(f"cannot read image '{self.locator}': {e}") from e


@dataclass(frozen=True)
class GesturePrediction:
    label: GestureLabel
    confidence: float               # [0, 1]; not calibrated across backends
    raw_payload: Any = None
    fallback: bool = False          # True only for degraded random picks


@dataclass(frozen=True)
class LocalOutput:
    label_index: int
    probabilities: List[float]


@dataclass
class WarmupState:
    attempted: bool = False
    succeeded: bool = False
    retry_count: int = 0


@dataclass(frozen=True)
class GameOutcome:
    result: OutcomeResult
    message: str


@dataclass
class RoundResult:
    ok: bool
    backend: str
    duration_ms: int
    error_code: Optional[str] = None
    message: str = ""
    prediction: Optional[GesturePrediction] = None
    counter: Optional[GestureLabel] = None
    outcome: Optional[GameOutcome] = None
