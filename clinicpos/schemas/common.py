"""
Shared Pydantic schemas: error envelopes, bulk-delete payloads and the
money type used by every response.

The error models exist so OpenAPI documents the error contract, not only the
happy path.
"""

from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, Field, PlainSerializer

# Decimals serialize as JSON numbers rather than pydantic's default strings.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all non-validation error handlers."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ...,
        description="Human-readable error description",
        examples=["Investment with id '7' not found"],
    )


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Path to the invalid field",
        examples=["body -> amount"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be greater than 0"],
    )


class ValidationErrorResponse(BaseModel):
    """Response body for 422 Unprocessable Entity (validation failure)."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(default="Validation failed", description="Summary message")
    details: List[ValidationErrorDetail] = Field(..., description="Per-field validation failures")


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1, description="Primary keys to delete")


class BulkDeleteResponse(BaseModel):
    success: bool = True
    deleted: int


class MessageResponse(BaseModel):
    message: str
