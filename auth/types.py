"""Session model and its Valkey record format."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from utils.timezone import parse_iso


class Session(BaseModel):
    """An authenticated owner's session."""

    token: str = Field(..., description="Opaque session token, carried in the session cookie")
    user_id: UUID
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime

    def is_expired(self, at: datetime) -> bool:
        return at > self.expires_at

    def to_record(self) -> dict[str, str]:
        """Flat string fields for the session hash (token is the key, not a field)."""
        return {
            "user_id": str(self.user_id),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "last_activity_at": self.last_activity_at.isoformat(),
        }

    @classmethod
    def from_record(cls, token: str, record: dict[str, str]) -> "Session":
        return cls(
            token=token,
            user_id=UUID(record["user_id"]),
            created_at=parse_iso(record["created_at"]),
            expires_at=parse_iso(record["expires_at"]),
            last_activity_at=parse_iso(record.get("last_activity_at") or record["created_at"]),
        )
