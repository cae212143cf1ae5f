"""HTTP routes for the current session."""

from fastapi import APIRouter, Request, Response

from auth.config import AuthConfig
from auth.session import SessionManager
from api.base import success_response
from api.deps import get_request_id


def create_auth_router(session_manager: SessionManager, config: AuthConfig) -> APIRouter:
    """Create auth router with injected session manager."""
    router = APIRouter(tags=["auth"])

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Revoke the session (if any) and clear the cookie."""
        session_token = request.cookies.get(config.session_cookie_name)
        if session_token:
            session_manager.revoke_session(session_token)

        response.delete_cookie(key=config.session_cookie_name)
        return success_response({"message": "Logged out successfully"}, get_request_id(request)).model_dump(mode="json")

    @router.get("/me")
    async def get_current_user(request: Request):
        """Owner id and expiry of the authenticated session."""
        session = request.state.session
        return success_response({
            "user_id": str(session.user_id),
            "expires_at": session.expires_at.isoformat(),
        }, get_request_id(request)).model_dump(mode="json")

    return router
