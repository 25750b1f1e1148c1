import json
import logging

from fastapi import Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from jinja2 import TemplateError
from starlette.exceptions import HTTPException as StarletteHTTPException

from templating import templates

logger = logging.getLogger('uvicorn.error')

API_PREFIX = "/api"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class LittrError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: dict | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class NotFoundError(LittrError):
    status_code = status.HTTP_404_NOT_FOUND


class QueryError(LittrError):
    """The store was unreachable or returned something we could not map."""


class RenderError(LittrError):
    pass


class SignatureVerificationError(LittrError):
    status_code = status.HTTP_401_UNAUTHORIZED


class KeyIdError(SignatureVerificationError):
    pass


class AccountResolutionError(SignatureVerificationError):
    pass


class KeyParseError(SignatureVerificationError):
    pass


class AuthenticationError(LittrError):
    status_code = status.HTTP_401_UNAUTHORIZED


def error_body(code: int, *errors: Exception) -> dict:
    return {
        "status": code,
        "errors": [{"code": code, "message": str(e)} for e in errors],
    }


def json_error(code: int, *errors: Exception, headers: dict | None = None) -> Response:
    response = Response(
        content=json.dumps(error_body(code, *errors)),
        status_code=code,
        media_type=JSON_CONTENT_TYPE,
        headers=headers,
    )
    # never hand cookies back on an error
    if "set-cookie" in response.headers:
        del response.headers["set-cookie"]
    return response


def html_error(request: Request, code: int, *errors: Exception) -> Response:
    try:
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "title": f"Error {code}",
                "status": code,
                "errors": [str(e) for e in errors],
            },
            status_code=code,
        )
    except TemplateError as e:
        logger.error(f"Unable to render error page: {e}")
        return PlainTextResponse(
            "\n".join(str(e) for e in errors) or "error", status_code=code
        )


def is_api_request(request: Request) -> bool:
    return request.url.path == API_PREFIX or request.url.path.startswith(API_PREFIX + "/")


async def littr_error_handler(request: Request, exc: LittrError) -> Response:
    if exc.status_code >= 500:
        logger.exception(f"{request.method} {request.url.path}: {exc}", exc_info=exc)
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc}")
    if is_api_request(request) or isinstance(exc, SignatureVerificationError):
        return json_error(exc.status_code, exc, headers=exc.headers)
    if isinstance(exc, RenderError):
        return HTMLResponse("Internal server error", status_code=exc.status_code)
    return html_error(request, exc.status_code, exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    generic = Exception("Internal server error")
    if is_api_request(request):
        return json_error(code, generic)
    return html_error(request, code, generic)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    error = Exception(exc.detail)
    if is_api_request(request):
        return json_error(exc.status_code, error, headers=getattr(exc, "headers", None))
    return html_error(request, exc.status_code, error)
