"""
Map backend output onto one GesturePrediction.

The remote service has shipped several response shapes over time:
  {"gesture": "rock", "confidence": 0.93}
  {"label": "ROCK", "score": 0.92}
  {"class_name": "paper", "probability": 81.0}
  {"prediction": "scissors"}
  {"probabilities": {"rock": 0.1, "paper": 0.7, "scissors": 0.2}}

Each shape is handled by one extractor in LABEL_STRATEGIES /
CONFIDENCE_STRATEGIES; they are tried in order and the first hit wins.
Support a new shape by adding an extractor, not by editing the others.

Remote confidence is taken at face value after rescaling into [0, 1]. Whether the
service reports a softmax probability, a percentage or an ad-hoc score is
not known, so values are not calibrated across backends.
"""
import math
from typing import Any, Callable, Optional, Sequence
from rps_vision.orchestrator.contracts import GestureLabel, GesturePrediction, LocalOutput

Extractor = Callable[[dict], Any]


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return None if math.isnan(value) else value


def _numbers(values) -> list[float]:
    out = []
    for v in values:
        n = _number(v)
        if n is not None:
            out.append(n)
    return out


def field(name: str) -> Extractor:
    def extract(payload: dict) -> Any:
        return payload.get(name)
    extract.__name__ = f"field[{name}]"
    return extract


def argmax_probabilities(payload: dict) -> Optional[str]:
    probs = payload.get("probabilities")
    if not isinstance(probs, dict):
        return None
    scored = {k: n for k, n in ((k, _number(v)) for k, v in probs.items()) if n is not None}
    if not scored:
        return None
    return max(scored, key=scored.__getitem__)


def max_probability(payload: dict) -> Optional[float]:
    probs = payload.get("probabilities")
    if isinstance(probs, dict):
        values = _numbers(probs.values())
    elif isinstance(probs, (list, tuple)):
        values = _numbers(probs)
    else:
        return None
    return max(values) if values else None


LABEL_STRATEGIES: tuple[Extractor, ...] = (
    field("gesture"),
    field("label"),
    field("class_name"),
    field("prediction"),
    field("result"),
    argmax_probabilities,
)

CONFIDENCE_STRATEGIES: tuple[Extractor, ...] = (
    field("confidence"),
    field("score"),
    field("probability"),
    max_probability,
)


def rescale_confidence(value: float) -> float:
    """Percentages (>1) become fractions capped at 1; negatives clamp to 0."""
    if value > 1:
        return min(value / 100.0, 1.0)
    if value < 0:
        return 0.0
    return value


def resolve_label(payload: dict, strategies: Sequence[Extractor] = LABEL_STRATEGIES) -> Optional[GestureLabel]:
    for extract in strategies:
        label = GestureLabel.parse(extract(payload))
        if label is not None:
            return label
    return None


def resolve_confidence(payload: dict, strategies: Sequence[Extractor] = CONFIDENCE_STRATEGIES) -> Optional[float]:
    for extract in strategies:
        value = _number(extract(payload))
        if value is not None:
            return value
    return None


def normalize(payload: Any) -> Optional[GesturePrediction]:
    """Remote JSON → prediction; None means "unrecognized", not an error."""
    if not isinstance(payload, dict):
        return None
    label = resolve_label(payload)
    if label is None:
        return None
    confidence = resolve_confidence(payload)
    return GesturePrediction(
        label=label,
        confidence=rescale_confidence(confidence) if confidence is not None else 0.0,
        raw_payload=payload,
    )


def normalize_local(output: LocalOutput, labels: Sequence[str]) -> Optional[GesturePrediction]:
    """Local model output is already per-class probabilities in `labels` order.

    Confidence is the winning value as the model produced it, not rescaled.
    """
    probs = _numbers(output.probabilities)
    if not probs or len(probs) != len(output.probabilities):
        return None
    idx = max(range(len(probs)), key=probs.__getitem__)
    if idx >= len(labels):
        return None
    label = GestureLabel.parse(labels[idx])
    if label is None:
        return None
    return GesturePrediction(
        label=label,
        confidence=probs[idx],
        raw_payload={"label_index": idx, "probabilities": list(output.probabilities)},
    )
