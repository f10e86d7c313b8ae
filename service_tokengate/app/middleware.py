"""
Starlette/FastAPI middleware that puts an application behind the token gate.
"""

from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shared.errors import AuthorizationError, EvaluationError
from shared.logging import get_logger, set_caller_context

from .gate.engine import AccessDecisionEngine
from .gate.models import Decision


def path_from_request(request: Request) -> str:
    return request.url.path


def address_from_request(request: Request) -> Optional[str]:
    """Caller address published by an upstream auth middleware."""
    user_info = getattr(request.state, "user_info", None) or {}
    return user_info.get("user_address")


class TokenGateMiddleware(BaseHTTPMiddleware):
    """Allow, forbid (403) or fail (500) each request per the engine's decision."""

    def __init__(self, app: ASGIApp, engine: AccessDecisionEngine,
                 path_getter: Callable[[Request], str] = path_from_request,
                 address_getter: Callable[[Request], Optional[str]] = address_from_request):
        super().__init__(app)
        self.engine = engine
        self.path_getter = path_getter
        self.address_getter = address_getter
        self.logger = get_logger("tokengate.middleware")

    async def dispatch(self, request: Request, call_next):
        path = self.path_getter(request)
        address = self.address_getter(request)
        set_caller_context(address)

        result = await self.engine.decide(path, address)

        if result.decision is Decision.ERROR:
            error = EvaluationError(result.error or "Evaluation failed", {"path": path})
            return JSONResponse(status_code=500, content=error.to_response().model_dump())
        if result.decision is Decision.DENY:
            error = AuthorizationError("Forbidden", {"path": path, "reason": result.reason})
            return JSONResponse(status_code=403, content=error.to_response().model_dump())

        return await call_next(request)
