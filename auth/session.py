"""Session records in Valkey.

A session is a hash at session:<token> whose TTL tracks the session's
remaining lifetime. The identity provider writes the hash at sign-in.
Validation slides both the stored expiry and the TTL forward, so an
active user is never signed out mid-work.
"""

from datetime import datetime, timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc


class SessionManager:
    """Validate (sliding expiry) and revoke session tokens."""

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._lifetime = timedelta(hours=config.session_expiry_hours)

    def _save(self, session: Session) -> None:
        self._valkey.put_hash(
            self.KEY_PREFIX + session.token,
            session.to_record(),
            ttl_seconds=int(self._lifetime.total_seconds()),
        )

    def _fresh(self, token: str, user_id: UUID, created_at: datetime) -> Session:
        now = now_utc()
        return Session(
            token=token,
            user_id=user_id,
            created_at=created_at,
            expires_at=now + self._lifetime,
            last_activity_at=now,
        )

    def validate_session(self, token: str) -> Session:
        """
        Resolve a token to its session and extend it.

        Raises:
            SessionExpiredError: Unknown token, or a record past its expiry
        """
        record = self._valkey.get_hash(self.KEY_PREFIX + token)
        if record is None:
            raise SessionExpiredError("Session not found or expired")

        stored = Session.from_record(token, record)
        if stored.is_expired(now_utc()):
            # TTL and stored expiry disagree (clock skew); the stored expiry wins
            self._valkey.delete(self.KEY_PREFIX + token)
            raise SessionExpiredError("Session expired")

        session = self._fresh(token, stored.user_id, stored.created_at)
        self._save(session)
        return session

    def revoke_session(self, token: str) -> None:
        """Drop a session (logout). Unknown tokens are a no-op."""
        self._valkey.delete(self.KEY_PREFIX + token)
