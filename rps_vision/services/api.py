import base64
import binascii
from contextlib import asynccontextmanager
from fastapi import FastAPI
from dotenv import load_dotenv
from rps_vision.services.config import Settings
from rps_vision.services.models import (
    ClassifyRequest, ClassifyResponse, PlayRequest, PlayResponse, PredictionOut,
    OutcomeOut, ResolveRequest, StatusResponse, WarmupOut,
)
from rps_vision.services.status_store import StatusStore
from rps_vision.orchestrator import errors
from rps_vision.orchestrator.contracts import GestureLabel, ImageAsset
from rps_vision.orchestrator.pipeline import GesturePipeline, build_pipeline

load_dotenv(override=False)


def _decode_image(req: ClassifyRequest) -> ImageAsset:
    data = req.image
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]   # data URL from a browser canvas
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise errors.DecodeError(f"base64 decode failed: {e}") from e
    return ImageAsset.from_bytes(raw, name=req.filename or "capture.jpg")


def create_app(pipeline: GesturePipeline | None = None, warmup_on_start: bool | None = None) -> FastAPI:
    if pipeline is None:
        settings = Settings.from_env()
        pipeline = build_pipeline(settings, StatusStore())
        if warmup_on_start is None:
            warmup_on_start = settings.warmup_on_start
    status = pipeline.status

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Wake the remote service in the background; requests never wait on it
        if warmup_on_start:
            pipeline.start_warmup()
        yield

    app = FastAPI(title="rps-vision", lifespan=lifespan)
    app.state.pipeline = pipeline

    def _warmup_out() -> WarmupOut:
        wc = pipeline.warmup_coordinator
        if wc is None:
            return WarmupOut(attempted=False, succeeded=False, retry_count=0)
        return WarmupOut.from_state(wc.state, in_progress=wc.in_progress)

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        out = status.last_outcome
        return StatusResponse(
            busy=status.busy,
            default_backend=pipeline.default_backend,
            backends={name: b.state.value for name, b in pipeline.backends.items()},
            warmup=_warmup_out(),
            last_backend=status.last_backend,
            last_error=status.last_error,
            recognized=PredictionOut.from_prediction(status.last_prediction),
            outcome=OutcomeOut(result=out.result.value, message=out.message) if out else None,
            logs=status.logs,
        )

    @app.get("/health")
    def health():
        checks = {"api": True, "default_backend": pipeline.default_backend}
        for name, b in pipeline.backends.items():
            checks[f"{name}_state"] = b.state.value
            checks[f"{name}_ready"] = b.is_ready()
        checks["warmup"] = _warmup_out().model_dump()
        checks["all_ok"] = checks["api"] and (pipeline.default_backend in pipeline.backends)
        return checks

    @app.post("/warmup", response_model=WarmupOut)
    async def warmup(force: bool = False):
        """Run (or join) the session warmup. force=true starts a new sequence."""
        wc = pipeline.warmup_coordinator
        if force and wc is not None and not wc.in_progress:
            wc.reset()
        state = await pipeline.warmup()
        return WarmupOut.from_state(state, in_progress=False)

    @app.post("/classify", response_model=ClassifyResponse)
    async def classify(req: ClassifyRequest):
        try:
            asset = _decode_image(req)
            prediction = await pipeline.classify(asset, backend=req.backend)
        except errors.GestureError as e:
            status.log(f"CLASSIFY error: {type(e).__name__}: {e}")
            status.last_error = e.code
            return ClassifyResponse(ok=False, error_code=e.code, message=errors.describe(e.code))
        except Exception as e:
            code = errors.error_code(e)
            status.log(f"CLASSIFY error: {type(e).__name__}: {e}")
            status.last_error = code
            return ClassifyResponse(ok=False, error_code=code, message=errors.describe(code))

        if prediction is None:
            status.last_error = errors.ERR_UNRECOGNIZED
            return ClassifyResponse(ok=False, error_code=errors.ERR_UNRECOGNIZED,
                                    message=errors.describe(errors.ERR_UNRECOGNIZED))
        status.last_error = None
        status.log(f"CLASSIFY result: {prediction.label.value} ({prediction.confidence:.2f})")
        return ClassifyResponse(ok=True, recognized=PredictionOut.from_prediction(prediction))

    @app.post("/play", response_model=PlayResponse)
    async def play(req: PlayRequest):
        backend = req.backend or pipeline.default_backend
        try:
            asset = _decode_image(req)
        except errors.DecodeError as e:
            status.log(f"PLAY decode error: {e}")
            return PlayResponse(ok=False, backend=backend, duration_ms=0,
                                error_code=e.code, message=errors.describe(e.code))
        counter = GestureLabel(req.counter) if req.counter else None
        rr = await pipeline.play_round(asset, backend=backend, counter=counter)
        return PlayResponse.from_round(rr)

    @app.post("/resolve", response_model=OutcomeOut)
    def resolve(req: ResolveRequest):
        outcome = pipeline.resolve(GestureLabel(req.player), GestureLabel(req.counter))
        return OutcomeOut(result=outcome.result.value, message=outcome.message)

    return app


app = create_app()
