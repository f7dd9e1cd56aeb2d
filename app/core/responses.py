"""Standardized API response envelope: ``{success, data, message, errors}``."""

import json
from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from app.core.exceptions import DashboardError


class CustomJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles UUID, datetime, and other types."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return obj.decode("utf-8")
        return super().default(obj)


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Create a successful API response."""
    return {"success": True, "data": data, "message": message}


def error_body(
    message: str, data: Any = None, errors: dict[str, Any] | None = None
) -> dict[str, Any]:
    return {"success": False, "message": message, "data": data, "errors": errors}


def error_response(
    message: str,
    data: Any = None,
    errors: dict[str, Any] | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Create an error response that raises an HTTPException."""
    raise HTTPException(status_code=status_code, detail=error_body(message, data, errors))


def unauthorized_response(
    message: str = "Invalid authentication credentials",
) -> HTTPException:
    """401 carrying the bearer challenge; callers raise it."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error_body(message),
        headers={"WWW-Authenticate": "Bearer"},
    )


def error_response_dict(
    error_dict: dict[str, Any],
    status_code: int = status.HTTP_400_BAD_REQUEST,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create an error response as a JSONResponse (for exception handlers)."""
    # Serialize with custom encoder to handle UUID, datetime, etc.
    content = json.loads(json.dumps(error_dict, cls=CustomJSONEncoder))
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def dashboard_error_response(exc: DashboardError) -> JSONResponse:
    """Render a domain error with its own status code and message."""
    return error_response_dict(error_body(exc.message), exc.status_code)
