from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskdesk.config import settings
from taskdesk.errors import AuthorizationError, InvalidToken, NotFoundError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.info("denied %s %s: %s", request.method, request.url.path, exc.reason)
        return JSONResponse(status_code=403, content={"detail": exc.reason})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        logger.info("not found %s %s: %s", request.method, request.url.path, exc.reason)
        # same shape as a denial so callers cannot test for existence
        if settings.mask_not_found:
            return JSONResponse(status_code=403, content={"detail": "Access denied."})
        return JSONResponse(status_code=404, content={"detail": exc.reason})

    # InactivityTimeout is a subclass, its code tells the client which message to show
    @app.exception_handler(InvalidToken)
    async def handle_invalid_token(request: Request, exc: InvalidToken):
        return JSONResponse(status_code=401, content={"detail": exc.reason, "code": exc.code})
