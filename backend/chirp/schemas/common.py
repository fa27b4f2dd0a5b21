"""
Chirp Backend — Shared Response Schemas
=========================================

What:  Envelope models shared by every route: errors, plain messages,
       health checks.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. {"message": "Logged out successfully"}."""
    message: str


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context; for request validation failures it
                 holds {"errors": ["<field>: <message>", ...]}
        request_id: Correlation ID for tracing this error in server logs
        stack: Traceback, only for unexpected errors outside production

    Example:
        {
            "error": "validation_error",
            "message": "Request validation failed",
            "details": {"errors": ["A post must have either text or an image"]},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    stack: Optional[str] = Field(default=None, description="Traceback (non-production only)")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    media_host: str = Field(description="Media host status: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
