from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field

from jobrelay.models.job import Job, JobStatus


def to_aware_utc(value: datetime) -> datetime:
    # SQLite hands back the stored UTC wall time without an offset
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class JobRow(SQLModel, table=True):
    __tablename__ = "jobs"

    # seq keeps insertion order for jobs created within the same timestamp
    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(index=True, unique=True)
    prompt: str
    status: str = Field(default=JobStatus.PENDING.value)
    result: Optional[str] = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))

    @classmethod
    def from_job(cls, job: Job) -> "JobRow":
        return cls(
            id=job.id,
            prompt=job.prompt,
            status=job.status.value,
            result=job.result,
            created_at=job.created_at.astimezone(timezone.utc),
            updated_at=job.updated_at.astimezone(timezone.utc),
        )

    def to_job(self) -> Job:
        return Job(
            id=self.id,
            prompt=self.prompt,
            status=JobStatus(self.status),
            result=self.result,
            created_at=to_aware_utc(self.created_at),
            updated_at=to_aware_utc(self.updated_at),
        )
