"""Shared API response models.

Domain models live in piecefund.models; this module only holds HTTP layer
concerns.
"""

from datetime import datetime

from pydantic import BaseModel, Field

# Re-export ToolError for convenience - this is the standard error format
from piecefund.models.errors import ErrorCode, ToolError

__all__ = [
    "ErrorCode",
    "ToolError",
    "HealthResponse",
]


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str = Field(default="healthy", examples=["healthy"])
    version: str
    timestamp: datetime
