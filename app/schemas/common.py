"""
Error envelope shared by every router.

Domain errors (app/core/errors.py) and request validation failures both
serialize to `ErrorResponse`; validation failures list one `ErrorDetail`
per offending field under `details.errors`.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """One field-level validation error, e.g. `date_from` after `date_to`."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "code": "SOURCE_NOT_FOUND",
                "message": "Import source 7 not found.",
                "details": {"source_id": 7},
            }
        },
    )

    code: str
    message: str
    details: Optional[dict[str, Any]] = None
