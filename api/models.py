"""
API response models and status codes for the user administration extension.

Error bodies use the database server's status-code format so clients of the
host HTTP API parse them the same way:

    {"code": "Neo.ClientError.Request.InvalidFormat", "message": "..."}

Request bodies are intentionally NOT modelled with Pydantic here. The create
endpoint must produce specific messages for each password failure, which a
BaseModel body would replace with its generic validation error.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Status(str, Enum):
    """Status codes carried in the "code" field of an error body."""

    REQUEST_INVALID = "Neo.ClientError.Request.Invalid"
    REQUEST_INVALID_FORMAT = "Neo.ClientError.Request.InvalidFormat"
    AUTHENTICATION_RATE_LIMIT = "Neo.ClientError.Security.AuthenticationRateLimit"
    UNKNOWN_ERROR = "Neo.DatabaseError.General.UnknownError"


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses that carry a body."""

    model_config = ConfigDict(frozen=True)

    code: Status
    message: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
