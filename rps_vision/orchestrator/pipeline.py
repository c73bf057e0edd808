import random
import time
from typing import Optional
from rps_vision.adapters.vision.base import GestureBackend
from rps_vision.adapters.vision.local_model import LocalInferenceBackend
from rps_vision.adapters.vision.mock_vision import MockVision
from rps_vision.adapters.vision.remote_api import RemoteInferenceBackend
from rps_vision.orchestrator import errors
from rps_vision.orchestrator.contracts import (
    GameOutcome, GestureLabel, GesturePrediction, ImageAsset, RoundResult, WarmupState,
)
from rps_vision.orchestrator.outcome import random_counter_move, resolve
from rps_vision.orchestrator.warmup import WarmupCoordinator


class GesturePipeline:
    """Caller-facing API: classify an image, warm the remote service, play a round.

    One classification at a time: a call made while another is unsettled is
    refused (PipelineBusyError / ERR_BUSY), never queued.
    """

    def __init__(self, backends: dict[str, GestureBackend], status_store,
                 default_backend: str = "remote", warmup: WarmupCoordinator | None = None,
                 fallback: MockVision | None = None, rng: random.Random | None = None):
        self.backends = backends
        self.status = status_store
        self.default_backend = default_backend
        self.warmup_coordinator = warmup
        self.fallback = fallback
        self._rng = rng or random.Random()

    def backend(self, name: str | None = None) -> GestureBackend:
        name = (name or self.default_backend).lower()
        try:
            return self.backends[name]
        except KeyError:
            raise errors.UnknownBackendError(
                f"unknown backend '{name}', expected one of {sorted(self.backends)}"
            ) from None

    # ── Warmup ──────────────────────────────────────────────────────────────

    def start_warmup(self):
        if self.warmup_coordinator is not None:
            return self.warmup_coordinator.start()
        return None

    async def warmup(self) -> WarmupState:
        if self.warmup_coordinator is None:
            return WarmupState()
        return await self.warmup_coordinator.run()

    async def _wake_if_cold(self, backend: GestureBackend):
        """One inline ping when the session warmup is idle and did not succeed."""
        wc = self.warmup_coordinator
        if wc is None or wc.backend is not backend:
            return
        if wc.in_progress or wc.state.succeeded:
            return
        self.status.log("pipeline: waking up the API server before predicting")
        if await backend.warmup():
            wc.mark_awake()
        else:
            self.status.log("pipeline: warmup failed, proceeding with prediction anyway")

    # ── Classification ──────────────────────────────────────────────────────

    async def _classify(self, image: ImageAsset, backend_name: str | None) -> Optional[GesturePrediction]:
        backend = self.backend(backend_name)
        self.status.last_backend = backend.name
        self.status.last_prediction = None
        await self._wake_if_cold(backend)
        prediction = await backend.identify(image)
        wc = self.warmup_coordinator
        if wc is not None and wc.backend is backend and not wc.in_progress:
            # an answered prediction proves the service is up
            wc.mark_awake()
        self.status.last_prediction = prediction
        return prediction

    async def classify(self, image: ImageAsset, backend: str | None = None) -> Optional[GesturePrediction]:
        """Prediction, or None when unrecognized. Backend/preprocessing errors propagate."""
        if self.status.busy:
            raise errors.PipelineBusyError("a classification is already in flight")
        self.status.set_busy(True)
        try:
            return await self._classify(image, backend)
        finally:
            self.status.set_busy(False)

    def resolve(self, player: GestureLabel, counter: GestureLabel) -> GameOutcome:
        return resolve(player, counter)

    async def play_round(self, image: ImageAsset, backend: str | None = None,
                         counter: GestureLabel | None = None) -> RoundResult:
        """classify → counter-move → outcome. Never raises; failures come back as error codes."""
        name = (backend or self.default_backend).lower()
        if self.status.busy:
            self.status.log("play_round: rejected, busy")
            return RoundResult(ok=False, backend=name, duration_ms=0,
                               error_code=errors.ERR_BUSY, message=errors.describe(errors.ERR_BUSY))

        self.status.set_busy(True)
        t0 = time.time()
        prediction: Optional[GesturePrediction] = None
        code: Optional[str] = None
        try:
            self.status.log(f"play_round: start backend={name} image={image.filename}")
            prediction = await self._classify(image, name)
            if prediction is None:
                code = errors.ERR_UNRECOGNIZED
        except errors.GestureError as e:
            code = e.code
            self.status.log(f"play_round: {type(e).__name__}: {e}")
        except Exception as e:
            code = errors.error_code(e)
            self.status.log(f"play_round: error {type(e).__name__}: {e}")
        finally:
            self.status.set_busy(False)

        if code is not None and self.fallback is not None:
            prediction = self.fallback.pick(reason=code)
            self.status.last_prediction = prediction

        dt = int((time.time() - t0) * 1000)
        self.status.last_error = code
        if prediction is None:
            self.status.log(f"play_round: no prediction ({code}) dt={dt}ms")
            return RoundResult(ok=False, backend=name, duration_ms=dt,
                               error_code=code, message=errors.describe(code))

        counter = counter or random_counter_move(self._rng)
        outcome = resolve(prediction.label, counter)
        self.status.last_outcome = outcome
        self.status.log(
            f"play_round: {prediction.label.value} vs {counter.value} → {outcome.result.value} "
            f"conf={prediction.confidence:.2f} dt={dt}ms"
        )
        return RoundResult(ok=True, backend=name, duration_ms=dt, error_code=code,
                           message=outcome.message, prediction=prediction,
                           counter=counter, outcome=outcome)


def build_pipeline(settings, status_store) -> GesturePipeline:
    remote = RemoteInferenceBackend(
        status_store,
        base_url=settings.api_base_url,
        predict_path=settings.predict_path,
        predict_timeout=settings.predict_timeout,
        warmup_timeout=settings.warmup_timeout,
        upload_max_size=settings.upload_max_size,
        upload_quality=settings.upload_quality,
    )
    local = LocalInferenceBackend(
        status_store,
        model_dir=settings.model_dir,
        labels=settings.labels,
        input_size=settings.input_size,
    )
    warmup = WarmupCoordinator(remote, status_store,
                               retries=settings.warmup_retries, delay=settings.warmup_delay)
    fallback = MockVision(status_store) if settings.fallback_random else None
    status_store.log(
        f"pipeline: default backend={settings.backend} remote={settings.api_base_url} "
        f"model_dir={settings.model_dir} fallback={'on' if fallback else 'off'}"
    )
    return GesturePipeline(
        backends={remote.name: remote, local.name: local},
        status_store=status_store,
        default_backend=settings.backend,
        warmup=warmup,
        fallback=fallback,
    )
