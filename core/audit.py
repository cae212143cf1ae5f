"""
Audit trail for client and invoice changes.

Owner edits (create, update, delete) and webhook reconciliation both land
here. Rows are append-only, always attributed to the owning user, and
tagged with the actor that caused the change: the owner through the API, or
the provider whose webhook was applied.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient

# Actor for changes made by the owner through the API
OWNER_ACTOR = "owner"


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-mode snapshots.

    Args:
        old: Snapshot before the change
        new: Snapshot after the change
        exclude_fields: Ignored keys (default: {"updated_at"})

    Returns:
        {field: {"old": ..., "new": ...}} for each differing field
    """
    ignored = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(set(old) | set(new))
        if key not in ignored and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writes and reads audit_log rows.

    Snapshots must be JSON-safe; dump models with model_dump(mode="json").
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        user_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        actor: str = OWNER_ACTOR,
    ) -> None:
        """
        Append one audit row.

        changes by action:
            CREATE: {"created": snapshot}
            UPDATE: {field: {"old": ..., "new": ...}} plus an optional "reason"
            DELETE: {"deleted": snapshot}
        """
        self.postgres.execute(
            """
            INSERT INTO audit_log (id, user_id, entity_type, entity_id, action, changes, actor)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (uuid4(), user_id, entity_type, entity_id, action.value, Json(changes), actor)
        )

    def get_entity_history(
        self,
        user_id: UUID,
        entity_type: str,
        entity_id: UUID
    ) -> list[dict[str, Any]]:
        """Audit rows for one of the owner's entities, newest first."""
        return self.postgres.execute(
            """
            SELECT id, user_id, entity_type, entity_id, action, changes, actor, created_at
            FROM audit_log
            WHERE user_id = %s AND entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (user_id, entity_type, entity_id)
        )
