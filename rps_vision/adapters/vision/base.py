from abc import ABC, abstractmethod
from typing import Optional
from rps_vision.orchestrator.contracts import BackendState, GesturePrediction, ImageAsset


class GestureBackend(ABC):
    name = "base"
    state: BackendState = BackendState.UNINITIALIZED

    @abstractmethod
    async def identify(self, asset: ImageAsset) -> Optional[GesturePrediction]:
        """Return the canonical prediction for one image, or None when unrecognized."""
        ...

    def is_ready(self) -> bool:
        return self.state == BackendState.READY

    async def warmup(self) -> bool:
        """Lightweight readiness probe; must never raise."""
        return self.is_ready()
