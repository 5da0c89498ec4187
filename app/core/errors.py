"""
API error envelope.

Every error response has the same shape:

    {"error": true, "message": "...", "code": "SOME_CODE"}

Routes and dependencies raise ApiError for expected failures (bad input,
missing connection, wrong tier). main.py registers the handlers that render
ApiError, HTTPException, validation errors and unexpected exceptions with
this envelope.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


def error_body(message: str, code: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build the standard error envelope."""
    body: Dict[str, Any] = {"error": True, "message": message, "code": code}
    body.update(extra)
    return body


class ApiError(Exception):
    """
    An expected failure that maps to a 4xx response.

    Args:
        status_code: HTTP status to return
        message: Human-readable message for the client
        code: Machine-readable error code (e.g. "NO_CREDENTIALS")
        extra: Additional top-level keys merged into the envelope
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.extra = extra or {}

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=error_body(self.message, self.code, **self.extra),
        )
