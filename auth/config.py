"""Session configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Session settings.

    Sessions are issued by the identity provider and stored in Valkey; this
    service only validates, extends and revokes them.
    """

    session_expiry_hours: int = Field(
        default=720,  # 30 days
        description="Session lifetime in hours, renewed on every authenticated request",
        ge=1,
        le=2160,
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token",
    )
