from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ServiceError(Exception):
    """Base error for service operations.

    Raised by the services and rendered by a FastAPI exception handler into an
    RFC7807 problem-details response carrying an ``error`` message.
    """

    message: str
    status_code: int = 500
    title: str = "Internal Server Error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class ValidationError(ServiceError):
    status_code: int = 400
    title: str = "Bad Request"


@dataclass(slots=True)
class AuthenticationError(ServiceError):
    status_code: int = 401
    title: str = "Unauthorized"


@dataclass(slots=True)
class AuthorizationError(ServiceError):
    # 401 for a missing/invalid credential, 403 for an insufficient role.
    status_code: int = 403
    title: str = "Forbidden"

    @classmethod
    def unauthenticated(cls, message: str = "Unauthorized") -> "AuthorizationError":
        return cls(message=message, status_code=401, title="Unauthorized")


@dataclass(slots=True)
class NotFoundError(ServiceError):
    status_code: int = 404
    title: str = "Not Found"


@dataclass(slots=True)
class ConflictError(ServiceError):
    status_code: int = 409
    title: str = "Conflict"



@dataclass(slots=True)
class InternalError(ServiceError):
    """Storage or other server-side failure. Detail is hidden in production."""
