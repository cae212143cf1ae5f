"""Client routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from api.base import success_response
from api.deps import get_owner_id, get_request_id
from core.models import ClientCreate, ClientUpdate


def create_clients_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["clients"])

    client_svc = services["client"]

    @router.get("/clients")
    async def list_clients(request: Request, owner_id: UUID = Depends(get_owner_id)):
        clients = client_svc.list_for_owner(owner_id)
        return success_response(
            [c.model_dump(mode="json") for c in clients], get_request_id(request)
        ).model_dump(mode="json")

    @router.post("/clients", status_code=201)
    async def create_client(request: Request, body: ClientCreate, owner_id: UUID = Depends(get_owner_id)):
        client = client_svc.create(owner_id, body)
        return success_response(client.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.get("/clients/{client_id}")
    async def get_client(request: Request, client_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        client = client_svc.get(owner_id, client_id)
        return success_response(client.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.put("/clients/{client_id}")
    async def update_client(
        request: Request,
        client_id: UUID,
        body: ClientUpdate,
        owner_id: UUID = Depends(get_owner_id),
    ):
        client = client_svc.update(owner_id, client_id, body)
        return success_response(client.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    @router.delete("/clients/{client_id}")
    async def delete_client(request: Request, client_id: UUID, owner_id: UUID = Depends(get_owner_id)):
        client_svc.delete(owner_id, client_id)
        return success_response(
            {"message": "Client deleted successfully"}, get_request_id(request)
        ).model_dump(mode="json")

    return router
