"""Session cookie authentication for the billing API."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionManager
from auth.exceptions import SessionExpiredError
from api.base import error_response, ErrorCodes
from api.deps import get_request_id


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session cookie to an owner before any route runs.

    Protected requests get request.state.user_id and request.state.session;
    without a valid session they are answered with 401 here. Provider
    webhooks are public because their signature is the credential.
    """

    PUBLIC_EXACT = frozenset({"/health", "/auth/logout", "/docs", "/redoc", "/openapi.json"})
    PUBLIC_PREFIXES = ("/api/webhooks/", "/docs/")

    def __init__(self, app, session_manager: SessionManager, cookie_name: str = "session_token"):
        super().__init__(app)
        self._session_manager = session_manager
        self._cookie_name = cookie_name

    def is_public(self, path: str) -> bool:
        return path in self.PUBLIC_EXACT or path.startswith(self.PUBLIC_PREFIXES)

    @staticmethod
    def _unauthorized(request: Request, code: str, message: str) -> JSONResponse:
        body = error_response(code, message, get_request_id(request))
        return JSONResponse(status_code=401, content=body.model_dump(mode="json"))

    async def dispatch(self, request: Request, call_next):
        if self.is_public(request.url.path):
            return await call_next(request)

        token = request.cookies.get(self._cookie_name)
        if not token:
            return self._unauthorized(request, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            session = self._session_manager.validate_session(token)
        except SessionExpiredError:
            return self._unauthorized(request, ErrorCodes.SESSION_EXPIRED, "Session has expired")

        request.state.user_id = session.user_id
        request.state.session = session
        return await call_next(request)
