from enum import Enum
from datetime import datetime, timezone
from typing import Optional
import uuid
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return uuid.uuid4().hex


class JobStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def __str__(self):
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class Job(BaseModel):
    """Immutable snapshot of a job record.

    Stores never mutate a Job in place; a transition produces a new snapshot
    that replaces the old one, so a reader holds either the whole old record
    or the whole new one.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_job_id)
    prompt: str
    status: JobStatus = JobStatus.PENDING
    result: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def finish(self, status: JobStatus, result: str, now: datetime | None = None) -> "Job":
        """Return a copy moved to a terminal status with its result set."""
        now = now or utcnow()
        return self.model_copy(update={
            "status": status,
            "result": result,
            "updated_at": max(now, self.created_at),
        })
