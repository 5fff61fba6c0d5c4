"""
Client-facing failures raised by the service layer.

Blueprints turn these into ``{"error": message}`` responses with ``status``.
Unexpected store failures are left as ``SQLAlchemyError`` and answered with a
generic 500 at each endpoint.
"""


class ServiceError(ValueError):
    status = 400
    message = "Bad request"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFound(ServiceError):
    status = 404
    message = "Not found"


class InvalidJob(ServiceError):
    message = "Invalid job"


class InvalidGrade(ServiceError):
    message = "Invalid grade for this job"


class BadRequest(ServiceError):
    message = "Bad request"
