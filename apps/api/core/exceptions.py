"""
API error types.

Every expected failure a router or dependency raises is an APIException.
The handler in main.py renders it as {"detail", "error_code"}, so clients
can branch on the code without parsing the message.

    NotFoundError       404  NOT_FOUND
    ValidationError     400  VALIDATION_ERROR[_<FIELD>]
    UnauthorizedError   401  UNAUTHORIZED  (sends WWW-Authenticate: Bearer)
    ForbiddenError      403  FORBIDDEN
    ConflictError       409  CONFLICT
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """HTTPException that also carries a machine-readable error code."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """A feedback entry, session or check-in id that does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found: {identifier}", "NOT_FOUND")


class ValidationError(APIException):
    """
    Payload that parsed but cannot be used, e.g. a feedback batch where
    every entry was dropped. Schema-level failures stay as FastAPI's 422.
    """

    def __init__(self, detail: str, field: Optional[str] = None):
        code = "VALIDATION_ERROR" if field is None else f"VALIDATION_ERROR_{field.upper()}"
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, code)


class UnauthorizedError(APIException):
    """Missing, malformed or expired bearer token, or a token for an unknown user."""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            "UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(APIException):
    # Blocked accounts, and records owned by another user
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail, "FORBIDDEN")


class ConflictError(APIException):
    """The request clashes with stored state, e.g. completing a finished session."""

    def __init__(self, detail: str):
        super().__init__(status.HTTP_409_CONFLICT, detail, "CONFLICT")
