import json
from typing import List
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PayloadError

from jobrelay.auth import require_webhook_secret
from jobrelay.core.errors import ValidationError
from jobrelay.job_manager import JobManager
from jobrelay.schemas import CallbackPayload, JobPublicView, JobSubmission, JobView

router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_job_manager(request: Request) -> JobManager:
    return request.app.state.job_manager


async def read_callback_payload(request: Request) -> CallbackPayload:
    # Parsed by hand: a declared body would be decoded before the secret check
    try:
        return CallbackPayload.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid request: body must be valid JSON")
    except PayloadError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "body" for err in e.errors())
        raise ValidationError(f"Invalid request: {fields}")


@router.post("", status_code=201, response_model=JobPublicView)
async def create_job(submission: JobSubmission, manager: JobManager = Depends(get_job_manager)):
    """Create a new job in PENDING status."""
    job = await manager.create(submission.prompt)
    return JobPublicView.from_job(job)


@router.get("", response_model=List[JobView])
async def list_jobs(manager: JobManager = Depends(get_job_manager)):
    """All jobs, newest first."""
    return [JobView.from_job(job) for job in await manager.list()]


@router.post(
    "/webhook/callback",
    response_model=JobView,
    dependencies=[Depends(require_webhook_secret)],
    openapi_extra={"requestBody": {
        "required": True,
        "content": {"application/json": {"schema": CallbackPayload.model_json_schema(by_alias=True)}},
    }},
)
async def webhook_callback(request: Request, manager: JobManager = Depends(get_job_manager)):
    """
    Called by the worker to report a job's outcome.
    Headers: x-webhook-secret
    Body: { jobId, result, status? }
    """
    payload = await read_callback_payload(request)
    if payload.status == "FAILED":
        job = await manager.fail(payload.job_id, payload.result)
    else:
        job = await manager.complete(payload.job_id, payload.result)
    return JobView.from_job(job)


@router.get("/{job_id}", response_model=JobView)
async def get_job(job_id: str, manager: JobManager = Depends(get_job_manager)):
    job = await manager.get(job_id)
    return JobView.from_job(job)
