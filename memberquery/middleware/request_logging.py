"""API 요청 로깅 미들웨어.

API request logging middleware.
Records method, path, query params, status code, duration and error reason
for every request. Events go to the module logger and, when configured,
to Axiom. Sensitive query parameters are masked.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from memberquery.config import settings

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 — Fields to mask in logged params
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def _mask_dict(data: dict[str, Any]) -> dict[str, Any]:
    """민감 필드 마스킹 — Mask sensitive keys."""
    return {k: "***" if _SENSITIVE_KEYS.search(k) else v for k, v in data.items()}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 로깅하는 미들웨어.

    Middleware that logs all API requests and responses.
    Ships each event to Axiom when ``AXIOM_API_TOKEN`` and ``AXIOM_DATASET``
    are set; otherwise the module logger is the only sink.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 제외 경로 스킵 — Skip excluded paths
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        status_code: int = 500
        error_detail: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as exc:
            error_detail = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            duration_ms = round((time.time() - start_time) * 1000, 2)

            log_event: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }
            if request.query_params:
                log_event["query_params"] = _mask_dict(dict(request.query_params))
            if error_detail:
                log_event["error"] = error_detail

            self._emit(log_event)

        return response

    def _emit(self, log_event: dict[str, Any]) -> None:
        level = logging.ERROR if log_event["status_code"] >= 500 else logging.INFO
        logger.log(level, "request %s", json.dumps(log_event, default=str))

        if self._client is None:
            return
        # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break a request on log failure
        try:
            self._client.ingest_events(self._dataset, [log_event])
        except Exception:
            logger.warning("axiom ingest failed", exc_info=True)
