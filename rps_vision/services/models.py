from pydantic import BaseModel
from typing import Literal, Optional
from rps_vision.orchestrator.contracts import GesturePrediction, RoundResult, WarmupState

BackendName = Literal["local", "remote"]
Gesture = Literal["rock", "paper", "scissors"]


class PredictionOut(BaseModel):
    label: Gesture
    confidence: float
    fallback: bool = False
    raw: Optional[dict] = None

    @classmethod
    def from_prediction(cls, p: Optional[GesturePrediction]) -> Optional["PredictionOut"]:
        if p is None:
            return None
        raw = p.raw_payload if isinstance(p.raw_payload, dict) else None
        return cls(label=p.label.value, confidence=p.confidence, fallback=p.fallback, raw=raw)


class OutcomeOut(BaseModel):
    result: Literal["win", "lose", "draw"]
    message: str


class WarmupOut(BaseModel):
    attempted: bool
    succeeded: bool
    retry_count: int
    in_progress: bool = False

    @classmethod
    def from_state(cls, s: WarmupState, in_progress: bool = False) -> "WarmupOut":
        return cls(attempted=s.attempted, succeeded=s.succeeded, retry_count=s.retry_count,
                   in_progress=in_progress)


class ClassifyRequest(BaseModel):
    image: str  # base64 JPEG/PNG
    backend: Optional[BackendName] = None
    filename: Optional[str] = None


class ClassifyResponse(BaseModel):
    ok: bool
    recognized: Optional[PredictionOut] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


class PlayRequest(ClassifyRequest):
    counter: Optional[Gesture] = None   # AI move; random when omitted


class PlayResponse(BaseModel):
    ok: bool
    backend: str
    duration_ms: int
    error_code: Optional[str] = None
    message: str = ""
    recognized: Optional[PredictionOut] = None
    counter: Optional[Gesture] = None
    outcome: Optional[OutcomeOut] = None

    @classmethod
    def from_round(cls, rr: RoundResult) -> "PlayResponse":
        return cls(
            ok=rr.ok,
            backend=rr.backend,
            duration_ms=rr.duration_ms,
            error_code=rr.error_code,
            message=rr.message,
            recognized=PredictionOut.from_prediction(rr.prediction),
            counter=rr.counter.value if rr.counter else None,
            outcome=OutcomeOut(result=rr.outcome.result.value, message=rr.outcome.message) if rr.outcome else None,
        )


class ResolveRequest(BaseModel):
    player: Gesture
    counter: Gesture


class StatusResponse(BaseModel):
    busy: bool
    default_backend: str
    backends: dict[str, str]
    warmup: WarmupOut
    last_backend: Optional[str] = None
    last_error: Optional[str] = None
    recognized: Optional[PredictionOut] = None
    outcome: Optional[OutcomeOut] = None
    logs: list[str]
