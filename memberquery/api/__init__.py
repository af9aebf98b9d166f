"""API 라우터 패키지 — HTTP 엔드포인트 통합.

API Router package — Aggregates the member endpoints into a single router
for inclusion in the FastAPI application.

Included routers:
    - members: 회원 검색 (Member search; v1 list, v2 simple page, v3 optimized page)
"""

from fastapi import APIRouter

from memberquery.api.members import router as members_router

api_router: APIRouter = APIRouter()

api_router.include_router(members_router, tags=["Members"])
