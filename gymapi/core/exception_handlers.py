import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("gymapi")


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "path": request.url.path,
        "client": client,
        "request_id": getattr(request.state, "request_id", "-"),
    }


def _prefix(ctx: Dict[str, Any]) -> str:
    return f"{ctx['method']} {ctx['path']} from {ctx['client']} [{ctx['request_id']}]"


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    ctx = _request_context(request)
    message = f"[{exc.error_code}] {_prefix(ctx)} -> {exc.status_code}: {exc.message}"
    if exc.status_code >= 500:
        logger.error(f"{message} details={exc.details}")
    else:
        logger.warning(message)
    return JSONResponse(status_code=exc.status_code, content=exc.detail)  # type: ignore[arg-type]


async def handle_http_exception(request: Request, exc: HTTPException):
    ctx = _request_context(request)
    error_msg = f"[HTTPException] {_prefix(ctx)} -> {exc.status_code}: {exc.detail}"

    if exc.status_code >= 500:
        # 500번대 에러는 스택 트레이스 포함
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{error_msg}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(error_msg)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {
            "success": False,
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "details": {},
            },
        }
    return JSONResponse(
        status_code=exc.status_code, content=content, headers=exc.headers
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    ctx = _request_context(request)
    errors = exc.errors()
    logger.warning(f"[RequestValidation] {_prefix(ctx)} -> 422: {errors}")
    content = {
        "success": False,
        "error": {
            "code": "VALIDATION_001",
            "message": "Validation failed",
            "details": {"errors": [_jsonable_error(e) for e in errors]},
        },
    }
    return JSONResponse(status_code=422, content=content)


def _jsonable_error(error: Dict[str, Any]) -> Dict[str, Any]:
    # pydantic이 ctx에 예외 객체를 넣는 경우가 있어 문자열로 변환
    cleaned = {k: v for k, v in error.items() if k != "ctx"}
    if "ctx" in error:
        cleaned["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
    return cleaned


async def handle_unexpected_error(request: Request, exc: Exception):
    ctx = _request_context(request)
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"[Unhandled Error] {_prefix(ctx)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
    )

    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)  # type: ignore[arg-type]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
