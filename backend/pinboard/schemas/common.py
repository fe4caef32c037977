"""
Pinboard Backend: Shared Response Schemas
==========================================

What:  Pydantic models shared by every router: the error envelope, the plain
       message response and the health check payload.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which fields failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "not_found",
            "message": "Could not find position for the provided id.",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    """Plain confirmation, e.g. {"message": "Deleted position."}."""
    message: str


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    Returned by GET /health for monitoring and load balancer checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoding: str = Field(description="Geocoder status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
