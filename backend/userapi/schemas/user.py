"""
User Directory API: Pydantic Request/Response Schemas
========================================================

What:  Pydantic models defining the API contract for the user routes.
How:   FastAPI validates request bodies against `UserRequest`; the service
       converts ORM rows to `UserRecord`; every response body is wrapped in
       the `Envelope` shape:

           {"status": 200, "message": "success", "data": {"data": <payload>}}
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UserRequest(BaseModel):
    """
    Body of POST /user and PUT /user/{id}.

    All four fields are required and must be non-empty. Unknown keys are
    ignored, so a misspelled key reads as a missing one.
    """
    name: str = Field(min_length=1, description="Full name")
    dob: str = Field(min_length=1, description="Date of birth (free text)")
    address: str = Field(min_length=1, description="Postal address")
    description: str = Field(min_length=1, description="Short description")

    model_config = ConfigDict(extra="ignore")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserRecord(BaseModel):
    """Full representation of a stored user."""
    id: uuid.UUID = Field(description="Store-assigned identifier")
    name: str
    dob: str
    address: str
    description: str
    created_at: datetime = Field(
        serialization_alias="createdAt",
        description="When the user was created (ISO 8601)",
    )

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Stores without timezone support (SQLite) hand back naive UTC values."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_json(self) -> Dict[str, Any]:
        """JSON-ready dict with wire field names (`createdAt`)."""
        return self.model_dump(mode="json", by_alias=True)


class Envelope(BaseModel):
    """
    Standard wrapper for every user-route response, success or error.

    Fields:
        status:  Mirrors the HTTP status code
        message: "success" for 2xx, "error" otherwise
        data:    {"data": <payload>} where payload is a record, a list of
                 records, an inserted ID, a confirmation or an error text
    """
    status: int = Field(description="HTTP status code")
    message: str = Field(description="'success' or 'error'")
    data: Dict[str, Any] = Field(description="Payload wrapper: {'data': ...}")


def envelope(status: int, payload: Any) -> Dict[str, Any]:
    """Build the response envelope body for `status` around `payload`."""
    message = "success" if status < 400 else "error"
    return Envelope(status=status, message=message, data={"data": payload}).model_dump()


class HealthResponse(BaseModel):
    """Health check response showing service and store status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Store connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
