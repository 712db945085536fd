"""Error taxonomy shared by every shop operation.

Each error carries an `ErrorCode`; transports translate the code into their
own status values. Messages of `InternalError` are always generic, the
original cause is logged where it is caught and chained with `from`.
"""

from enum import Enum

ERR_DB = "Database error"
ERR_FATAL = "Fatal I/O error"
ERR_MISSING = "Missing required fields: {}"
ERR_NOT_FOUND = "{} with {} {} not found"


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    UNIMPLEMENTED = "unimplemented"
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission_denied"
    INTERNAL = "internal"
    CANCELLED = "cancelled"
    DEADLINE_EXCEEDED = "deadline_exceeded"


class ShopError(Exception):
    code = ErrorCode.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidArgumentError(ShopError):
    code = ErrorCode.INVALID_ARGUMENT


class NotFoundError(ShopError):
    code = ErrorCode.NOT_FOUND


class UnimplementedError(ShopError):
    code = ErrorCode.UNIMPLEMENTED


class UnauthenticatedError(ShopError):
    code = ErrorCode.UNAUTHENTICATED


class PermissionDeniedError(ShopError):
    code = ErrorCode.PERMISSION_DENIED


class InternalError(ShopError):
    code = ErrorCode.INTERNAL


class DecodeError(InternalError):
    pass


class CancelledError(ShopError):
    code = ErrorCode.CANCELLED


class DeadlineExceededError(ShopError):
    code = ErrorCode.DEADLINE_EXCEEDED


def missing_fields(names) -> InvalidArgumentError:
    return InvalidArgumentError(ERR_MISSING.format(", ".join(sorted(names))))
