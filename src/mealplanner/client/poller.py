"""
Client Polling Controller.

Follows one job from submission to a terminal state by repeatedly asking
for its status:

    idle -> validating -> generating -> processing -> completed | failed

Each start() bumps a generation counter. Every tick checks the counter
before and after its await, so a response that arrives after cancel(),
reset() or a newer start() is dropped instead of mutating state.

Transient errors are missed ticks. Only a failed job or the overall
timeout moves the poller to failed, and exactly one of on_complete /
on_error fires per start().
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable

import httpx

from mealplanner.errors import AuthRequired, InvalidRequest, NotFound, StoreUnavailable
from mealplanner.models import JobRecord, JobStatus

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Meal generation is taking longer than expected. Please check back later."
FAILED_MESSAGE = "Meal generation failed"

# Server progress checkpoints written by the executor
SERVER_GENERATING = 30
SERVER_SAVING = 80

# Local progress band spread across groups while the model works
GENERATING_START = 20
GENERATING_SPAN = 60

TRANSIENT_ERRORS = (StoreUnavailable, NotFound, httpx.HTTPError, OSError, asyncio.TimeoutError)

StatusFetcher = Callable[[str], Awaitable[JobRecord | None]]


class PollerState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GENERATING = "generating"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PollerSnapshot:
    """What a UI needs to render progress."""

    state: PollerState = PollerState.IDLE
    progress: int = 0
    job_id: str | None = None
    current_step: str | None = None
    error: str | None = None
    total_meals: int | None = None
    ticks: int = 0
    consecutive_failures: int = 0


def map_job_progress(job: JobRecord) -> tuple[PollerState, int]:
    """Translate a server job into a local state and progress percentage."""
    if job.status == JobStatus.PENDING:
        return PollerState.VALIDATING, 10
    if job.status == JobStatus.COMPLETED:
        return PollerState.COMPLETED, 100
    if job.status == JobStatus.FAILED:
        return PollerState.FAILED, 0

    if job.progress >= SERVER_SAVING:
        return PollerState.PROCESSING, 90

    total = max(len(job.groups_data), 1)
    fraction = (job.progress - SERVER_GENERATING) / (SERVER_SAVING - SERVER_GENERATING)
    completed_groups = min(max(int(fraction * total), 0), total)
    return PollerState.GENERATING, GENERATING_START + (GENERATING_SPAN * completed_groups) // total


class GenerationPoller:
    """Cancellable polling loop for a single job at a time."""

    def __init__(
        self,
        fetch_status: StatusFetcher,
        *,
        interval: float = 2.0,
        timeout: float = 300.0,
        on_complete: Callable[[str, int], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_update: Callable[[PollerSnapshot], None] | None = None,
    ):
        self.fetch_status = fetch_status
        self.interval = interval
        self.timeout = timeout
        self.on_complete = on_complete
        self.on_error = on_error
        self.on_update = on_update

        self._generation = 0
        self._settled = False
        self._task: asyncio.Task | None = None
        self._snapshot = PollerSnapshot()

    async def __aenter__(self) -> "GenerationPoller":
        return self

    async def __aexit__(self, *exc) -> None:
        self.cancel()

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def snapshot(self) -> PollerSnapshot:
        return replace(self._snapshot)

    @property
    def state(self) -> PollerState:
        return self._snapshot.state

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, job_id: str) -> asyncio.Task:
        """Begin polling job_id. Any previous run is cancelled first."""
        self.cancel()
        generation = self._generation
        self._settled = False
        self._snapshot = PollerSnapshot(state=PollerState.VALIDATING, progress=10, job_id=job_id)
        self._task = asyncio.create_task(self._run(job_id, generation), name=f"poll-{job_id}")
        return self._task

    def cancel(self) -> None:
        """Stop polling now. Safe to call any number of times."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def reset(self) -> None:
        """Back to idle with all transient fields cleared."""
        self.cancel()
        self._settled = False
        self._snapshot = PollerSnapshot()

    async def wait(self) -> PollerSnapshot:
        """Wait for the current run to settle or be cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.snapshot

    # =========================================================================
    # Loop
    # =========================================================================

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._settled

    async def _run(self, job_id: str, generation: int) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        while self._is_current(generation):
            job = await self._tick(job_id, generation, deadline)
            if not self._is_current(generation):
                return
            if job is not None:
                self._apply(job, generation)
                if not self._is_current(generation):
                    return

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"Stopped polling job {job_id} after {self.timeout}s")
                self._snapshot.state = PollerState.FAILED
                self._snapshot.error = TIMEOUT_MESSAGE
                self._settle(generation, success=False)
                return
            await asyncio.sleep(min(self.interval, remaining))

    async def _tick(self, job_id: str, generation: int, deadline: float) -> JobRecord | None:
        """One status query, bounded by the time left. Returns None for a missed tick."""
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            job = await asyncio.wait_for(self.fetch_status(job_id), timeout=remaining)
        except TRANSIENT_ERRORS as e:
            if self._is_current(generation):
                self._missed(job_id, f"{type(e).__name__}: {e}")
            return None
        except (AuthRequired, InvalidRequest) as e:
            if self._is_current(generation):
                self._snapshot.state = PollerState.FAILED
                self._snapshot.error = e.message
                self._settle(generation, success=False)
            return None
        except Exception as e:
            logger.exception(f"Unexpected error polling job {job_id}")
            if self._is_current(generation):
                self._missed(job_id, repr(e))
            return None

        if not self._is_current(generation):
            return None
        self._snapshot.ticks += 1
        if job is None:
            self._missed(job_id, "job not visible yet")
        return job

    def _missed(self, job_id: str, reason: str) -> None:
        self._snapshot.consecutive_failures += 1
        logger.warning(
            f"Missed status tick for job {job_id} "
            f"({self._snapshot.consecutive_failures} in a row): {reason}"
        )

    def _apply(self, job: JobRecord, generation: int) -> None:
        snap = self._snapshot
        snap.consecutive_failures = 0
        snap.current_step = job.current_step

        if job.status == JobStatus.COMPLETED:
            snap.state = PollerState.COMPLETED
            snap.progress = 100
            snap.total_meals = job.total_meals_generated
            self._settle(generation, success=True)
        elif job.status == JobStatus.FAILED:
            snap.state = PollerState.FAILED
            snap.error = job.error_message or FAILED_MESSAGE
            self._settle(generation, success=False)
        else:
            state, progress = map_job_progress(job)
            snap.state = state
            snap.progress = max(snap.progress, progress)
            self._emit_update()

    def _settle(self, generation: int, *, success: bool) -> None:
        """Fire the terminal callback once for this run."""
        if self._settled or generation != self._generation:
            return
        self._settled = True
        self._emit_update()

        snap = self.snapshot
        try:
            if success and self.on_complete:
                self.on_complete(snap.job_id, snap.total_meals or 0)
            elif not success and self.on_error:
                self.on_error(snap.error or FAILED_MESSAGE)
        except Exception:
            logger.exception(f"Poller callback failed for job {snap.job_id}")

    def _emit_update(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self.snapshot)
        except Exception:
            logger.exception("Poller update callback failed")
