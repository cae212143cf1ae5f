"""Client persistence."""

import logging
from typing import Any
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.models import Client, ClientCreate
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Valid columns that can be updated
_UPDATABLE_COLUMNS = {"name", "email", "phone", "address", "company"}


class ClientRepository:
    """Owner-scoped access to the clients table."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def insert(self, owner_id: UUID, data: ClientCreate) -> Client:
        """Insert a new client and return it."""
        now = now_utc()
        row = self.postgres.execute_returning(
            """
            INSERT INTO clients (id, user_id, name, email, phone, address, company, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (uuid4(), owner_id, data.name, data.email, data.phone, data.address, data.company, now, now)
        )[0]
        return Client.model_validate(row)

    def get(self, owner_id: UUID, client_id: UUID) -> Client | None:
        """Client by id, or None if missing or owned by someone else."""
        row = self.postgres.execute_single(
            "SELECT * FROM clients WHERE id = %s AND user_id = %s",
            (client_id, owner_id)
        )
        return Client.model_validate(row) if row else None

    def list_for_owner(self, owner_id: UUID) -> list[Client]:
        """All of the owner's clients, newest first."""
        rows = self.postgres.execute(
            "SELECT * FROM clients WHERE user_id = %s ORDER BY created_at DESC",
            (owner_id,)
        )
        return [Client.model_validate(row) for row in rows]

    def update(self, owner_id: UUID, client_id: UUID, fields: dict[str, Any]) -> Client | None:
        """
        Update the given columns.

        Returns:
            Updated client, or None if not found for this owner
        """
        for field in fields:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on client {client_id}")
        valid = {k: v for k, v in fields.items() if k in _UPDATABLE_COLUMNS}

        set_parts = [f"{field} = %s" for field in valid]
        params: list[Any] = list(valid.values())
        set_parts.append("updated_at = %s")
        params.extend([now_utc(), client_id, owner_id])

        rows = self.postgres.execute_returning(
            f"""
            UPDATE clients
            SET {', '.join(set_parts)}
            WHERE id = %s AND user_id = %s
            RETURNING *
            """,
            tuple(params)
        )
        return Client.model_validate(rows[0]) if rows else None

    def delete(self, owner_id: UUID, client_id: UUID) -> bool:
        """Hard delete. True if a row was removed."""
        rows = self.postgres.execute_returning(
            "DELETE FROM clients WHERE id = %s AND user_id = %s RETURNING id",
            (client_id, owner_id)
        )
        return bool(rows)

    def has_invoices(self, owner_id: UUID, client_id: UUID) -> bool:
        """Whether any of the owner's invoices reference this client."""
        return bool(self.postgres.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM invoices WHERE client_id = %s AND user_id = %s)",
            (client_id, owner_id)
        ))
