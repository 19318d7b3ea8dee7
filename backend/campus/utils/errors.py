"""Application error taxonomy shared by services and blueprints."""
from typing import Optional

NOT_FOUND = 'NOT_FOUND'
UNAUTHORIZED = 'UNAUTHORIZED'
FORBIDDEN = 'FORBIDDEN'
BAD_REQUEST = 'BAD_REQUEST'
VALIDATION_FAILED = 'VALIDATION_FAILED'
CONFLICT = 'CONFLICT'
INTERNAL_ERROR = 'INTERNAL_ERROR'
BAD_GATEWAY = 'BAD_GATEWAY'

STATUS_CODES = {
    NOT_FOUND: 404,
    UNAUTHORIZED: 401,
    FORBIDDEN: 403,
    BAD_REQUEST: 400,
    VALIDATION_FAILED: 400,
    CONFLICT: 409,
    INTERNAL_ERROR: 500,
    BAD_GATEWAY: 502,
}


class AppError(Exception):
    """Base error carrying a stable code and a short user-facing message."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def status_code(self) -> int:
        return STATUS_CODES.get(self.code, 500)

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}

    def __str__(self) -> str:
        if self.cause is not None:
            return f'{self.code}: {self.message} - {self.cause}'
        return f'{self.code}: {self.message}'


class NotFoundError(AppError):
    code = NOT_FOUND

    def __init__(self, resource: str, identifier: str = None):
        if identifier:
            message = f'{resource} with id {identifier} not found'
        else:
            message = f'{resource} not found'
        super().__init__(message)


class UnauthorizedError(AppError):
    code = UNAUTHORIZED


class ForbiddenError(AppError):
    code = FORBIDDEN


class BadRequestError(AppError):
    code = BAD_REQUEST


class ValidationFailedError(AppError):
    code = VALIDATION_FAILED


class ConflictError(AppError):
    code = CONFLICT


class InternalError(AppError):
    code = INTERNAL_ERROR


class BadGatewayError(AppError):
    code = BAD_GATEWAY
