"""
SnackCart Backend — Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the API contract between the admin client and backend.
How:   FastAPI uses these models to validate JSON bodies, serialize responses,
       and generate the OpenAPI document. The client parses the same
       `SnackResponse` shape back into its own `Snack` model.

Wire format notes:
    - `id` is transmitted as a string; clients must treat it as opaque
    - the creation timestamp is transmitted under `createdAt`
"""

import uuid
from datetime import datetime
from typing import Optional, Tuple, Union

from pydantic import BaseModel, Field, field_serializer

# Fixed category set, in the order the catalog displays it
CATEGORIES: Tuple[str, ...] = ("Vegetarian", "Non Vegetarian", "Juice")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SnackResponse(BaseModel):
    """
    What:  Full representation of a snack.
    Who:   Returned by every snack endpoint except DELETE.
    """
    id: Union[uuid.UUID, str] = Field(description="Opaque snack identifier")
    name: str = Field(description="Display name")
    price: float = Field(ge=0, description="Unit price (zero allowed)")
    category: str = Field(description="Vegetarian, Non Vegetarian or Juice")
    img: str = Field(description="Absolute image URL or server-relative upload path")
    created_at: datetime = Field(
        serialization_alias="createdAt",
        description="When the snack was created (UTC ISO 8601)",
    )

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_serializer("id")
    def serialize_id(self, value: Union[uuid.UUID, str]) -> str:
        return str(value)


class DeleteResponse(BaseModel):
    """Confirmation returned by DELETE /api/snacks/{id}."""
    message: str = Field(default="Snack deleted successfully")
    id: str = Field(description="Identifier of the removed snack")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SnackUpdate(BaseModel):
    """
    What:  JSON body accepted by PUT /api/snacks/{id}.

    Every field is optional; omitted or empty fields leave the stored value
    unchanged. `price` is kept as given (number or numeric string) and parsed
    by the service so that JSON and multipart bodies share one rule.
    """
    name: Optional[str] = None
    price: Optional[Union[float, str]] = None
    category: Optional[str] = None
    img: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Snack with ID '4f1c...' was not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uploads: str = Field(description="Uploads directory: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
