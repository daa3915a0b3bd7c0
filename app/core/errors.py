"""
Custom exception hierarchy for the worklog bridge.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Operator mistakes (unknown ids, missing credentials, wrong source kind)
raise one of these. Partial failures inside a batch never do: batch
results carry their own error lists.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from app.schemas.common import ErrorDetail

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BridgeException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class SourceNotFoundError(BridgeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SOURCE_NOT_FOUND"

    def __init__(self, source_id: int):
        super().__init__(
            message=f"Import source {source_id} not found.",
            details={"source_id": source_id},
        )


class RuleNotFoundError(BridgeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "RULE_NOT_FOUND"

    def __init__(self, rule_id: int):
        super().__init__(
            message=f"Mapping rule {rule_id} not found.",
            details={"rule_id": rule_id},
        )


class EntryNotFoundError(BridgeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: int):
        super().__init__(
            message=f"Entry {entry_id} not found.",
            details={"entry_id": entry_id},
        )


class ProjectNotFoundError(BridgeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: int):
        super().__init__(
            message=f"Timelog project {project_id} not found.",
            details={"project_id": project_id},
        )


class TaskNotFoundError(BridgeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: int, project_id: int | None = None):
        message = f"Timelog task {task_id} not found"
        details: dict[str, Any] = {"task_id": task_id}
        if project_id is not None:
            message += f" in project {project_id}"
            details["project_id"] = project_id
        super().__init__(message=message + ".", details=details)


class InactiveTargetError(BridgeException):
    http_status = status.HTTP_409_CONFLICT
    code = "INACTIVE_TARGET"

    def __init__(self, kind: str, target_id: int):
        super().__init__(
            message=f"Timelog {kind} {target_id} is no longer active.",
            details={"kind": kind, "id": target_id},
        )


class MissingCredentialError(BridgeException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "MISSING_CREDENTIAL"

    def __init__(self, what: str):
        super().__init__(message=f"Missing credential: {what}.", details={"missing": what})


class DuplicateSourceError(BridgeException):
    http_status = status.HTTP_409_CONFLICT
    code = "DUPLICATE_SOURCE"

    def __init__(self, name: str):
        super().__init__(
            message=f"An import source named '{name}' already exists.",
            details={"name": name},
        )


class SourceTypeMismatchError(BridgeException):
    http_status = status.HTTP_409_CONFLICT
    code = "SOURCE_TYPE_MISMATCH"

    def __init__(self, source_id: int, expected: str, actual: str):
        super().__init__(
            message=f"Import source {source_id} is of type '{actual}', expected '{expected}'.",
            details={"source_id": source_id, "expected": expected, "actual": actual},
        )


class InvalidEntryStatusError(BridgeException):
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_ENTRY_STATUS"

    def __init__(self, entry_id: int, current: str, action: str):
        super().__init__(
            message=f"Entry {entry_id} cannot be {action} while in status '{current}'.",
            details={"entry_id": entry_id, "status": current, "action": action},
        )


class InvalidRulePatternError(BridgeException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_RULE_PATTERN"

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            message=f"Invalid regex pattern '{pattern}': {reason}",
            details={"pattern": pattern},
        )


class FileParseError(BridgeException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "FILE_PARSE_ERROR"

    def __init__(self, filename: str, reason: str):
        super().__init__(
            message=f"File parse failed: {reason}",
            details={"filename": filename},
        )


class UploadTooLargeError(BridgeException):
    http_status = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "UPLOAD_TOO_LARGE"

    def __init__(self, max_bytes: int):
        super().__init__(
            message=f"Uploaded file exceeds the maximum of {max_bytes} bytes.",
            details={"max_bytes": max_bytes},
        )


class UpstreamServiceError(BridgeException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_ERROR"

    def __init__(self, service: str, reason: str):
        super().__init__(
            message=f"{service} request failed: {reason}",
            details={"service": service},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def bridge_exception_handler(request: Request, exc: BridgeException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append(ErrorDetail(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body"),
            message=error["msg"],
            type=error["type"],
        ).model_dump())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
