"""GET /api/analytics."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from api.base import success_response
from api.deps import get_owner_id, get_request_id
from utils.timezone import today_utc


def create_analytics_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["analytics"])

    analytics_svc = services["analytics"]

    @router.get("/analytics")
    async def get_analytics(request: Request, owner_id: UUID = Depends(get_owner_id)):
        report = analytics_svc.report(owner_id, today_utc())
        return success_response(report.model_dump(mode="json"), get_request_id(request)).model_dump(mode="json")

    return router
