"""
Job lifecycle manager.

Owns job creation, the single PENDING -> terminal transition, and reads.
Storage calls run in the default executor so request handlers never block
the event loop on a store round-trip.
"""
import asyncio
import logging
from typing import Any, Callable, List, Optional

from jobrelay.core.config import PROMPT_MAX_LENGTH
from jobrelay.core.errors import Conflict, InternalError, JobServiceError, NotFound, ValidationError
from jobrelay.job_store import JobStore
from jobrelay.models.job import Job, JobStatus, utcnow
from jobrelay.scheduler import Scheduler
from jobrelay.worker import WorkerSimulator

logger = logging.getLogger(__name__)


def validate_prompt(prompt: Any) -> str:
    """Return the trimmed prompt or raise ValidationError."""
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Invalid request: prompt is required and must be a non-empty string")
    prompt = prompt.strip()
    if len(prompt) > PROMPT_MAX_LENGTH:
        raise ValidationError(f"Invalid request: prompt must be at most {PROMPT_MAX_LENGTH} characters")
    return prompt


class JobManager:
    def __init__(
        self,
        store: JobStore,
        scheduler: Optional[Scheduler] = None,
        worker: Optional[WorkerSimulator] = None,
        completion_delay: float = 5.0,
    ):
        self._store = store
        self._scheduler = scheduler
        self._worker = worker
        self._completion_delay = completion_delay

    async def create(self, prompt: Any) -> Job:
        """Store a new PENDING job and schedule its simulated completion."""
        prompt = validate_prompt(prompt)
        now = utcnow()
        job = await self._run("create job", None, self._store.create,
                              Job(prompt=prompt, created_at=now, updated_at=now))
        logger.info("Created job %s", job.id)

        # Only scheduled once the record exists
        self._schedule_completion(job.id)
        return job

    async def get(self, job_id: Any) -> Job:
        if not isinstance(job_id, str) or not job_id:
            raise NotFound()
        job = await self._run("fetch job", job_id, self._store.get, job_id)
        if job is None:
            raise NotFound()
        return job

    async def list(self) -> List[Job]:
        return await self._run("fetch jobs", None, self._store.list_recent)

    async def complete(self, job_id: Any, result: Any) -> Job:
        """Record a successful result for a job."""
        return await self._finish(job_id, result, JobStatus.COMPLETED)

    async def fail(self, job_id: Any, reason: Any) -> Job:
        """Record a failure reason for a job."""
        return await self._finish(job_id, reason, JobStatus.FAILED)

    async def _finish(self, job_id: Any, result: Any, status: JobStatus) -> Job:
        if not (isinstance(job_id, str) and job_id and isinstance(result, str) and result):
            raise ValidationError("Invalid request: jobId and result are required")

        replayed = False

        def transition(job: Job) -> Job:
            nonlocal replayed
            if job.status.is_terminal:
                # A replay of the exact same outcome is accepted without a write
                if job.status == status and job.result == result:
                    replayed = True
                    return job
                raise Conflict(f"Job {job.id} is already {job.status.value}")
            return job.finish(status, result)

        try:
            job = await self._run("update job", job_id, self._store.update, job_id, transition)
        except Conflict:
            logger.warning("Rejected %s callback for finished job %s", status.value, job_id)
            raise
        if job is None:
            raise NotFound()

        if replayed:
            logger.info("Ignored replayed %s callback for job %s", status.value, job_id)
        else:
            logger.info("Job %s transitioned to %s", job_id, status.value)
        return job

    def _schedule_completion(self, job_id: str) -> None:
        if self._scheduler is None or self._worker is None:
            return
        worker = self._worker

        async def deliver() -> None:
            await worker.deliver(job_id)

        self._scheduler.schedule(self._completion_delay, deliver)

    async def _run(self, operation: str, job_id: Optional[str], func: Callable, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except JobServiceError:
            raise
        except Exception as e:
            logger.error("Storage failure during %s (job_id=%s): %s", operation, job_id, e, exc_info=True)
            raise InternalError(f"Failed to {operation}") from e
