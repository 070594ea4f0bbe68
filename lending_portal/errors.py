# File: lending_portal/errors.py

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("lending_portal.api")


class LendingError(Exception):
    """Base class for every failure the lending core reports to its callers."""

    status_code = 400
    code = "lending_error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def extra(self) -> dict:
        """Structured fields rendered next to the message."""
        return {}


class ValidationError(LendingError):
    status_code = 400
    code = "validation_error"


class NotFoundError(LendingError):
    status_code = 404
    code = "not_found"


class AuthenticationError(LendingError):
    status_code = 401
    code = "not_authenticated"


class PermissionDeniedError(LendingError):
    status_code = 403
    code = "permission_denied"


class ConflictError(LendingError):
    status_code = 409
    code = "conflict"


class InvalidStateTransitionError(LendingError):
    status_code = 409
    code = "invalid_state_transition"

    def __init__(self, current: str, target: str, action: str):
        self.current = current
        self.target = target
        article = "an" if current[:1] in "aeiou" else "a"
        super().__init__(f"Cannot {action} {article} {current} request")

    def extra(self) -> dict:
        return {"current": self.current, "target": self.target}


class InsufficientAvailabilityError(LendingError):
    status_code = 409
    code = "insufficient_availability"

    def __init__(self, requested: int, available: int, message=None):
        self.requested = requested
        self.available = available
        if message is None:
            message = f"Only {available} units available for borrowing"
        super().__init__(message)

    def extra(self) -> dict:
        return {"requested": self.requested, "available": self.available}


class CapacityExceededError(LendingError):
    status_code = 409
    code = "capacity_exceeded"

    def __init__(self, remaining: int):
        self.remaining = remaining
        super().__init__(f"Only {remaining} units available for these dates")

    def extra(self) -> dict:
        return {"remaining": self.remaining}


class OverReturnError(LendingError):
    status_code = 409
    code = "over_return"


def register_error_handlers(app):
    @app.exception_handler(LendingError)
    async def handle_lending_error(request: Request, err: LendingError):
        level = logging.WARNING if err.status_code in (401, 403) else logging.INFO
        logger.log(level, "%s %s -> %s: %s", request.method, request.url.path, err.code, err.message)
        headers = {"WWW-Authenticate": "Bearer"} if err.status_code == 401 else None
        return JSONResponse(
            status_code=err.status_code,
            content={"detail": err.message, "code": err.code, **err.extra()},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, err: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
