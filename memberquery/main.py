"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어 및 라우터 등록.

FastAPI application entry point — Logging, middleware and router registration.
"""

import logging

from fastapi import FastAPI

from memberquery import __version__
from memberquery.api import api_router
from memberquery.config import settings
from memberquery.middleware.request_logging import RequestLoggingMiddleware


def configure_logging() -> None:
    """루트 로거 설정 — Apply LOG_LEVEL to the root logger."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# 요청 로깅 미들웨어 — Request/response logging
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


app.include_router(api_router, prefix="/api")
