"""
웹소설 플랫폼 - FastAPI 메인 애플리케이션
조회수 중복 방지와 소설/작가 파생 통계 관리
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from app.core.background import drain
from app.core.config import settings
from app.core.database import (
    engine,
    Base,
    AsyncSessionLocal,
    check_db_connection,
    check_redis_connection,
)
from app.core.exceptions import ServiceError
from app.services.stats import build_stats_services
from app import models  # noqa: F401  (테이블 메타데이터 등록)

# API 라우터 임포트
from app.api.novels import router as novels_router
from app.api.author import router as author_router
from app.api.users import router as users_router
from app.api.admin import router as admin_router
from app.api.favorites import router as favorites_router
from app.api.folders import router as folders_router
from app.api.comments import router as comments_router

# 로깅 설정
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _ensure_sqlite_dir(database_url: str) -> None:
    """sqlite 파일 경로의 상위 디렉터리 생성"""
    if not database_url.startswith("sqlite"):
        return
    _, _, path = database_url.partition(":///")
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 시작/종료 시 실행되는 이벤트"""
    # 시작 시
    logger.info("🚀 웹소설 플랫폼 API 시작")
    _ensure_sqlite_dir(settings.DATABASE_URL)

    # 데이터베이스 테이블 생성 (개발용)
    if settings.ENVIRONMENT == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("📊 데이터베이스 테이블 생성 완료")

    # 통계 컴포넌트는 한 번만 만들어 요청에 넘긴다
    app.state.session_factory = AsyncSessionLocal
    app.state.stats = build_stats_services(AsyncSessionLocal, settings)

    yield

    # 종료 시: 진행 중인 조회수/읽기 기록 작업 마무리
    await drain(timeout=10)
    await engine.dispose()
    logger.info("👋 웹소설 플랫폼 API 종료")


# FastAPI 앱 생성
app = FastAPI(
    title="웹소설 플랫폼 API",
    description="소설/회차 열람, 조회수 집계, 작가 통계",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

# CORS 미들웨어 설정
DEV_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
ALLOWED_ORIGINS = DEV_ALLOWED_ORIGINS if settings.ENVIRONMENT == "development" else [settings.FRONTEND_BASE_URL]
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in ALLOWED_ORIGINS if o],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """서비스 예외 → HTTP 응답 (404/403/409/400)"""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


# 라우터 등록
app.include_router(novels_router, prefix="/novels", tags=["📚 소설"])
app.include_router(author_router, prefix="/author", tags=["✍️ 작가"])
app.include_router(users_router, prefix="/users", tags=["👤 유저"])
app.include_router(admin_router, prefix="/admin/stats", tags=["🛠️ 통계 관리"])
app.include_router(favorites_router, prefix="/favorites", tags=["⭐ 보관함"])
app.include_router(folders_router, prefix="/folders", tags=["📁 보관함 폴더"])
app.include_router(comments_router, prefix="/comments", tags=["💬 댓글"])


@app.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "message": "웹소설 플랫폼 API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """헬스 체크 엔드포인트"""
    db_ok = await check_db_connection()
    redis_ok = await check_redis_connection()
    return {
        "status": "healthy" if db_ok else "unhealthy",
        "environment": settings.ENVIRONMENT,
        "database": "connected" if db_ok else "disconnected",
        "redis": "connected" if redis_ok else "disconnected",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True if settings.ENVIRONMENT == "development" else False
    )
