"""Job storage collaborators.

The job manager only relies on the JobStore interface: create, point lookup,
recency-ordered listing and an atomic read-modify-write on a single record.
"""
import logging
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Callable, Dict, List, Optional
from threading import Lock

from sqlalchemy import text, update
from sqlmodel import SQLModel, Session, col, create_engine, select

from jobrelay.core.config import MEMORY_STORE_URL
from jobrelay.models.job import Job
from jobrelay.models.job_table import JobRow

logger = logging.getLogger(__name__)

Mutation = Callable[[Job], Job]


class JobStore(ABC):
    """Abstract interface for job persistence.

    Implementations must be thread-safe; calls arrive from executor threads.
    """

    def connect(self) -> None:
        """Verify the backing storage is reachable and ready."""

    def close(self) -> None:
        """Release any held connections."""

    @abstractmethod
    def create(self, job: Job) -> Job:
        """Persist a new job. Raises ValueError if the id already exists."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[Job]:
        """Return the job with this id, or None."""

    @abstractmethod
    def list_recent(self) -> List[Job]:
        """Return all jobs, most recently created first."""

    @abstractmethod
    def update(self, job_id: str, mutate: Mutation) -> Optional[Job]:
        """Atomically replace a job with ``mutate(current)``.

        Returns the stored job, or None if no job has this id. Exceptions
        raised by ``mutate`` propagate and leave the record untouched. When
        ``mutate`` returns an equal job nothing is written.
        """


class InMemoryJobStore(JobStore):
    """Thread-safe in-memory job store."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = Lock()

    def create(self, job: Job) -> Job:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> Optional[Job]:
        # Snapshots are immutable, a plain dict read is enough
        return self._jobs.get(job_id)

    def list_recent(self) -> List[Job]:
        with self._lock:
            jobs = list(self._jobs.values())
        # newest insertion first, then a stable sort keeps that order for equal timestamps
        jobs.reverse()
        return sorted(jobs, key=lambda job: job.created_at, reverse=True)

    def update(self, job_id: str, mutate: Mutation) -> Optional[Job]:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return None
            updated = mutate(current)
            if updated != current:
                self._jobs[job_id] = updated
            return updated


class SqlJobStore(JobStore):
    """Job store backed by any database SQLAlchemy can reach."""

    def __init__(self, url: str):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, connect_args=connect_args)

    def connect(self) -> None:
        SQLModel.metadata.create_all(self.engine)
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def close(self) -> None:
        self.engine.dispose()

    def create(self, job: Job) -> Job:
        with Session(self.engine) as s:
            s.add(JobRow.from_job(job))
            s.commit()
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with Session(self.engine) as s:
            row = s.exec(select(JobRow).where(JobRow.id == job_id)).first()
            return row.to_job() if row else None

    def list_recent(self) -> List[Job]:
        with Session(self.engine) as s:
            rows = s.exec(
                select(JobRow).order_by(col(JobRow.created_at).desc(), col(JobRow.seq).desc())
            ).all()
            return [row.to_job() for row in rows]

    def update(self, job_id: str, mutate: Mutation) -> Optional[Job]:
        # Optimistic compare-and-set: the write only applies if the row still
        # holds the status and timestamp the mutation was computed from.
        while True:
            with Session(self.engine) as s:
                row = s.exec(select(JobRow).where(JobRow.id == job_id)).first()
                if row is None:
                    return None
                seen_status, seen_updated_at = row.status, row.updated_at
                current = row.to_job()

            updated = mutate(current)
            if updated == current:
                return current

            stmt = (
                update(JobRow)
                .where(
                    col(JobRow.id) == job_id,
                    col(JobRow.status) == seen_status,
                    col(JobRow.updated_at) == seen_updated_at,
                )
                .values(
                    status=updated.status.value,
                    result=updated.result,
                    updated_at=updated.updated_at.astimezone(timezone.utc),
                )
            )
            with self.engine.begin() as conn:
                if conn.execute(stmt).rowcount == 1:
                    return updated
            logger.debug("Concurrent write on job %s, retrying update", job_id)


def create_job_store(url: str) -> JobStore:
    """Build the store named by a connection string."""
    if url == MEMORY_STORE_URL:
        return InMemoryJobStore()
    return SqlJobStore(url)
