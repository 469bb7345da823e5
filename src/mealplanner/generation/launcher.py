"""
Background execution for generation jobs.

Decouples generation from the request that submitted it: the submission
handler calls launch() and returns, the executor keeps writing to the
job store by id until the job is terminal.

asyncio only keeps weak references to tasks, so running tasks are held
in a set until they finish.
"""

import asyncio
import logging

from mealplanner.generation.executor import GenerationExecutor

logger = logging.getLogger(__name__)


class JobLauncher:
    """Spawns one executor task per job."""

    def __init__(self, executor: GenerationExecutor):
        self.executor = executor
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def launch(self, job_id: str) -> asyncio.Task:
        """Start executing a job without waiting for it."""
        task = asyncio.create_task(self.executor.run(job_id), name=f"meal-generation-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.info(f"Launched generation for job {job_id}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Generation task {task.get_name()} crashed: {error!r}")

    async def drain(self) -> None:
        """Wait for every launched job to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Give running jobs a bounded grace period, then cancel the rest."""
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} generation jobs to finish")
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Cancelled {len(pending)} unfinished generation jobs")


_launcher: JobLauncher | None = None


def get_launcher() -> JobLauncher:
    """Get the process-wide launcher wired to the configured backends."""
    global _launcher

    if _launcher is None:
        from mealplanner.generation.generator import get_generator
        from mealplanner.jobs import get_job_store
        from mealplanner.notifications import get_notifier

        _launcher = JobLauncher(GenerationExecutor(get_job_store(), get_generator(), get_notifier()))

    return _launcher


def set_launcher(launcher: JobLauncher | None) -> None:
    global _launcher
    _launcher = launcher
