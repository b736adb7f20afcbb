"""Error taxonomy shared by the job manager, the authenticator and the HTTP layer.

Every error carries the HTTP status it maps to and a message that is safe to
return to a client.
"""


class JobServiceError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(JobServiceError):
    status_code = 400
    message = "Invalid request"


class Unauthorized(JobServiceError):
    status_code = 401
    message = "Unauthorized: Invalid or missing webhook secret"


class NotFound(JobServiceError):
    status_code = 404
    message = "Job not found"


class Conflict(JobServiceError):
    status_code = 409
    message = "Job already finished"


class InternalError(JobServiceError):
    pass
