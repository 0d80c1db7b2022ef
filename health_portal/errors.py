class PortalError(Exception):
    """Base class for request-scoped failures. Carries its HTTP status."""

    status_code = 400
    message = "Bad request"

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors

    def to_dict(self):
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class Unauthorized(PortalError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(PortalError):
    status_code = 403
    message = "Access denied"


class NotFound(PortalError):
    status_code = 404
    message = "Not found"


class ValidationError(PortalError):
    message = "Invalid request data"


class InvalidTarget(PortalError):
    message = "Invalid doctor ID"


class Conflict(PortalError):
    message = "Conflict"


class InvalidTransition(Conflict):
    message = "Access request has already been answered"
