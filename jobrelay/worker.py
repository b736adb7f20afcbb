"""Stand-in for the external worker.

A real worker would process the prompt and report back through the webhook.
The simulator skips the processing, waits, and posts a fabricated result to
the same authenticated callback endpoint an external caller would use.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from jobrelay.core.config import CALLBACK_PATH, WEBHOOK_SECRET_HEADER

logger = logging.getLogger(__name__)


def build_mock_result(job_id: str, now: Optional[datetime] = None) -> str:
    """Serialized result text the simulator reports for a job."""
    now = now or datetime.now(timezone.utc)
    return json.dumps({
        "success": True,
        "message": f"Processed job: {job_id}",
        "timestamp": now.isoformat(),
    })


class WorkerSimulator:
    def __init__(
        self,
        base_url: str,
        secret: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.callback_url = base_url.rstrip("/") + CALLBACK_PATH
        self._secret = secret
        self._timeout = timeout
        self.transport = transport

    async def deliver(self, job_id: str) -> bool:
        """Post the completion callback for a job. Never raises."""
        payload = {"jobId": job_id, "result": build_mock_result(job_id)}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self.transport) as client:
                response = await client.post(
                    self.callback_url,
                    json=payload,
                    headers={WEBHOOK_SECRET_HEADER: self._secret},
                )
        except httpx.HTTPError as e:
            logger.error("Simulated callback for job %s failed: %s", job_id, e)
            return False

        if response.is_error:
            logger.error(
                "Simulated callback for job %s rejected: %s %s",
                job_id, response.status_code, response.reason_phrase,
            )
            return False

        logger.info("Simulated callback delivered for job %s", job_id)
        return True
