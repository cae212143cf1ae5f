"""
Client service for CRUD operations.

Every operation is scoped to the owner passed in.
"""

import logging
from uuid import UUID

from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import ClientHasInvoicesError, NotFoundError
from core.models import Client, ClientCreate, ClientUpdate
from core.repositories.client_repository import ClientRepository

logger = logging.getLogger(__name__)


class ClientService:
    """Service for client operations."""

    def __init__(self, clients: ClientRepository, audit: AuditLogger):
        self.clients = clients
        self.audit = audit

    def create(self, owner_id: UUID, data: ClientCreate) -> Client:
        client = self.clients.insert(owner_id, data)

        self.audit.log_change(
            user_id=owner_id,
            entity_type="client",
            entity_id=client.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )
        return client

    def get(self, owner_id: UUID, client_id: UUID) -> Client:
        """
        Get one of the owner's clients.

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        client = self.clients.get(owner_id, client_id)
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    def list_for_owner(self, owner_id: UUID) -> list[Client]:
        """All of the owner's clients, newest first."""
        return self.clients.list_for_owner(owner_id)

    def update(self, owner_id: UUID, client_id: UUID, data: ClientUpdate) -> Client:
        """
        Update client fields (only non-None fields are changed).

        Raises:
            NotFoundError: If missing or owned by someone else
        """
        current = self.get(owner_id, client_id)

        updates = data.model_dump(exclude_none=True)
        if not updates:
            return current

        updated = self.clients.update(owner_id, client_id, updates)
        if updated is None:
            raise NotFoundError(f"Client {client_id} not found")

        changes = compute_changes(current.model_dump(mode="json"), updated.model_dump(mode="json"))
        if changes:
            self.audit.log_change(
                user_id=owner_id,
                entity_type="client",
                entity_id=client_id,
                action=AuditAction.UPDATE,
                changes=changes
            )
        return updated

    def delete(self, owner_id: UUID, client_id: UUID) -> None:
        """
        Hard delete a client with no invoices.

        Raises:
            NotFoundError: If missing or owned by someone else
            ClientHasInvoicesError: If any invoice still references the client
        """
        current = self.get(owner_id, client_id)

        if self.clients.has_invoices(owner_id, client_id):
            raise ClientHasInvoicesError(
                "Client has invoices and cannot be deleted. Delete the invoices first."
            )

        if not self.clients.delete(owner_id, client_id):
            raise NotFoundError(f"Client {client_id} not found")

        self.audit.log_change(
            user_id=owner_id,
            entity_type="client",
            entity_id=client_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )
        logger.info(f"Client {client_id} deleted by owner {owner_id}")
