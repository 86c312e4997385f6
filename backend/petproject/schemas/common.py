"""
PetProject Backend - Shared Request/Response Schemas
======================================================

What:  Pydantic models shared by every router: the request base class, the
       error envelope, toggle/upload results and the health report.
How:   Request bodies accept camelCase (the shape the web client sends) as
       well as snake_case names. Responses are serialized by alias, so stored
       documents and API payloads use the same field names.
Who:   Route handlers in petproject.routes.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ApiRequest(BaseModel):
    """Base for request bodies: camelCase aliases, unknown fields rejected."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ToggleResponse(BaseModel):
    """
    What:  Result of a like/upvote toggle.
    Who:   POST /api/posts/{id}/like, /api/questions/{id}/upvote, /api/answers/{id}/upvote
    """
    active: bool = Field(description="True if the caller's like/upvote is present after the call")


class UploadResponse(BaseModel):
    """
    What:  Public URL of stored media.
    Who:   The media, question image and medical document upload endpoints.

    Clients upload first, then reference the URL in the post/question/record
    they create.
    """
    url: str = Field(description="Public URL of the stored file")
    size: int = Field(description="Stored size in bytes")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "error": "conflict",
            "message": "Username 'buddy_lover' is already taken",
            "details": {"username": "buddy_lover"},
            "request_id": "3f9c2a1b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Service and dependency status, returned by GET /health.

    The document store is critical (unhealthy when down); blob storage and
    Gemini only degrade the service.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    document_store: str = Field(description="Document store: connected, disconnected")
    blob_store: str = Field(description="Media storage: available, unavailable")
    gemini: str = Field(description="Gemini API status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
