import logging
import secrets
from typing import Optional
from fastapi import Header, Request

from jobrelay.core.config import WEBHOOK_SECRET_HEADER
from jobrelay.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class WebhookAuthenticator:
    """Allow/deny gate for the completion callback.

    Knows nothing about jobs; it only compares the presented token with the
    shared secret configured at startup.
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Webhook secret must not be empty")
        self._secret = secret.encode("utf-8")

    def verify(self, token: Optional[str]) -> None:
        if not token or not secrets.compare_digest(token.encode("utf-8"), self._secret):
            raise Unauthorized()


def require_webhook_secret(
    request: Request,
    x_webhook_secret: Optional[str] = Header(None, alias=WEBHOOK_SECRET_HEADER),
) -> None:
    try:
        request.app.state.authenticator.verify(x_webhook_secret)
    except Unauthorized:
        logger.warning("Rejected webhook callback from %s", request.client.host if request.client else "unknown")
        raise
