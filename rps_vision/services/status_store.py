import logging
from dataclasses import dataclass, field
from typing import Optional, List
from rps_vision.orchestrator.contracts import GameOutcome, GesturePrediction

logger = logging.getLogger("rps_vision")

MAX_LOGS = 200


@dataclass
class StatusStore:
    busy: bool = False
    last_backend: Optional[str] = None
    last_error: Optional[str] = None
    last_prediction: Optional[GesturePrediction] = None
    last_outcome: Optional[GameOutcome] = None
    logs: List[str] = field(default_factory=list)

    def set_busy(self, v: bool):
        self.busy = v

    def log(self, msg: str, level: int = logging.INFO):
        logger.log(level, msg)
        self.logs.append(msg)
        if len(self.logs) > MAX_LOGS:
            self.logs = self.logs[-MAX_LOGS:]
