import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("gymapi")

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답 로깅 및 요청 ID 부여"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id

        start = time.perf_counter()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "-"

        logger.info(f"[Request] {method} {path} from {client} [{request_id}]")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[Unhandled Error] {method} {path} [{request_id}]")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        line = f"[Response] {method} {path} [{request_id}] -> {response.status_code} in {duration_ms:.1f}ms"
        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
