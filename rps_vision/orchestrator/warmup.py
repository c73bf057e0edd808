"""
Session warmup for the remote backend.

Free-tier hosts sleep when idle; a cheap GET at session start wakes the
service before the first real prediction. Up to 1 + RETRIES sequential
attempts, DELAY_S apart. The outcome is advisory only: classification runs
whether or not warmup succeeded.
"""
import asyncio
from typing import Awaitable, Callable, Optional
from rps_vision.orchestrator.contracts import WarmupState

RETRIES = 2
DELAY_S = 3.0


class WarmupCoordinator:
    def __init__(self, backend, status_store, retries: int = RETRIES, delay: float = DELAY_S,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.backend = backend
        self.status = status_store
        self.retries = retries
        self.delay = delay
        self._sleep = sleep
        self.state = WarmupState()
        self._task: Optional[asyncio.Task] = None

    @property
    def in_progress(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the session warmup; a second call returns the same task."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def run(self) -> WarmupState:
        return await asyncio.shield(self.start())

    def reset(self):
        """Forget the session's warmup so the next start() runs a new sequence."""
        if self.in_progress:
            self._task.cancel()
        self._task = None
        self.state = WarmupState()

    def mark_awake(self):
        """Record that the service answered outside the session sequence."""
        if self.state.succeeded:
            return
        self.state.attempted = True
        self.state.succeeded = True
        self.status.log("warmup: service awake")

    async def _run(self) -> WarmupState:
        if self.state.succeeded:
            return self.state
        self.state = WarmupState(attempted=True)
        for attempt in range(self.retries + 1):
            self.state.retry_count = attempt
            if attempt:
                self.status.log(f"warmup: retry {attempt}/{self.retries} in {self.delay:g}s")
                await self._sleep(self.delay)
            # backend.warmup() reports failure as False, never raises
            if await self.backend.warmup():
                self.state.succeeded = True
                self.status.log(f"warmup: service awake (attempt {attempt + 1})")
                return self.state
        self.status.log(f"warmup: gave up after {self.retries + 1} attempts, predictions will pay the cold start")
        return self.state
