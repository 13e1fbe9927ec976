"""
Error types raised by the social handlers and the handlers that render them.

Every error reaches the client as a JSON body of the form {"message": ...}.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from log import logger


class SocialAPIError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SocialAPIError):
    status_code = 404


class InternalError(SocialAPIError):
    status_code = 500


class NoContentError(SocialAPIError):
    status_code = 204


class ValidationError(SocialAPIError):
    status_code = 422


class ForbiddenError(SocialAPIError):
    status_code = 403


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SocialAPIError)
    async def social_error_handler(request: Request, exc: SocialAPIError):
        if exc.status_code == 204:
            return Response(status_code=exc.status_code)
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"message": "Validation error", "errors": jsonable_encoder(exc.errors())},
        )

    # Anything else still reaches the client as JSON
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})
