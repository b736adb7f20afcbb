from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional

from jobrelay.models.job import Job, JobStatus


class JobSubmission(BaseModel):
    prompt: str = Field(..., description="Text of the work item, 1-5000 characters after trimming.")


class CallbackPayload(BaseModel):
    """Body posted by the worker to the webhook callback.

    Fields are optional here so that missing values reach the job manager,
    which reports them as a validation error after the secret check.
    """
    model_config = ConfigDict(populate_by_name=True)

    job_id: Optional[str] = Field(None, alias="jobId", description="Identifier returned by POST /jobs.")
    result: Optional[str] = Field(None, description="Result payload, stored verbatim.")
    status: Literal["COMPLETED", "FAILED"] = Field("COMPLETED", description="Terminal status to record.")


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobPublicView(_View):
    id: str
    prompt: str
    status: JobStatus
    created_at: datetime

    @classmethod
    def from_job(cls, job: Job) -> "JobPublicView":
        return cls(id=job.id, prompt=job.prompt, status=job.status, created_at=job.created_at)


class JobView(_View):
    id: str
    prompt: str
    status: JobStatus
    result: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: Job) -> "JobView":
        return cls(
            id=job.id,
            prompt=job.prompt,
            status=job.status,
            result=job.result,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
