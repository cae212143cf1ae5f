"""
Valkey (Redis-compatible) access for the session store.

Sessions are small flat records, so they live in hashes whose TTL is set in
the same round trip as the write. The URL comes from Vault; connection
failures propagate instead of degrading to an in-process store.
"""

import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Hash-with-TTL operations over redis-py.

    Usage:
        valkey = ValkeyClient("redis://localhost:6379/0")
        valkey.put_hash("session:abc", {"user_id": "..."}, ttl_seconds=3600)
        record = valkey.get_hash("session:abc")  # None if missing or expired
    """

    def __init__(self, url: str):
        """
        Connect and ping, so a dead server fails at startup.

        Raises:
            redis.ConnectionError: If Valkey is unreachable
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("Connected to Valkey")

    def ping(self) -> bool:
        """Health check. Raises redis.ConnectionError if unreachable."""
        return bool(self._client.ping())

    def put_hash(self, key: str, fields: dict[str, str], ttl_seconds: int) -> None:
        """Replace the hash at key and set its TTL atomically."""
        with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(key, mapping=fields)
            pipe.expire(key, ttl_seconds)
            pipe.execute()

    def get_hash(self, key: str) -> dict[str, str] | None:
        """All fields at key, or None when the key doesn't exist."""
        fields = self._client.hgetall(key)
        return fields or None

    def delete(self, key: str) -> bool:
        """Delete key. True if it existed."""
        return self._client.delete(key) > 0

    def close(self) -> None:
        self._client.close()
        logger.info("Valkey connection closed")
