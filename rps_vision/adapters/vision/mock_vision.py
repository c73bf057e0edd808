import random
from rps_vision.adapters.vision.base import GestureBackend
from rps_vision.orchestrator.contracts import BackendState, GestureLabel, GesturePrediction, ImageAsset


class MockVision(GestureBackend):
    """Degraded/offline stand-in: uniform-random label, always confidence 0.

    Zero confidence and fallback=True keep it distinguishable from a real prediction.
    """
    name = "mock"

    def __init__(self, status_store, rng: random.Random | None = None):
        self.status = status_store
        self._rng = rng or random.Random()
        self.state = BackendState.READY

    def pick(self, reason: str = "") -> GesturePrediction:
        label = self._rng.choice(list(GestureLabel))
        self.status.log(f"mock_vision: {label.value} (conf=0.00){' — ' + reason if reason else ''}")
        return GesturePrediction(label=label, confidence=0.0,
                                 raw_payload={"fallback": True, "reason": reason}, fallback=True)

    async def identify(self, asset: ImageAsset) -> GesturePrediction:
        # ignores the image
        return self.pick("mock backend")
