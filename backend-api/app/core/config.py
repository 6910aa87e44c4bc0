"""
애플리케이션 설정
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


"""env 로딩 우선순위
1) OS 환경변수
2) 프로젝트 루트의 .env (repo/.env)
3) backend-api 디렉터리의 .env (repo/backend-api/.env)
"""

# .env 사전 로드 (OS 환경변수 우선, override=False)
_here = Path(__file__).resolve()
_repo_root_env = _here.parents[3] / ".env"  # repo/.env
_backend_env = _here.parents[2] / ".env"    # backend-api/.env
for _p in (_repo_root_env, _backend_env):
    if _p.exists():
        load_dotenv(dotenv_path=str(_p), override=False)


DEFAULT_JWT_SECRET = "your-super-secret-jwt-key-change-this-in-production"


class Settings(BaseSettings):
    """애플리케이션 설정"""
    # 환경 설정
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/app.db"
    # SQLite 쓰기 잠금 대기 시간(초)
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0
    REDIS_URL: str = "redis://localhost:6379/0"

    # JWT (토큰 발급은 인증 서비스 담당, 여기서는 검증만)
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # 조회수 중복 방지 윈도우 (기본 24시간)
    VIEW_DEDUP_WINDOW_SECONDS: int = 86400
    # 만료된 조회 기록 정리 주기
    VIEW_RECORD_PURGE_INTERVAL_SECONDS: int = 3600
    # 전체 통계 재계산 주기
    STATS_RECONCILE_INTERVAL_SECONDS: int = 86400

    # 비로그인 사용자 식별 쿠키
    CLIENT_ID_COOKIE_NAME: str = "clientId"
    CLIENT_ID_COOKIE_MAX_AGE: int = 365 * 24 * 60 * 60

    # 탈퇴한 작가의 작품에 표시할 필명
    ANONYMOUS_AUTHOR_NAME: str = "익명 작가"

    FRONTEND_BASE_URL: Optional[str] = "http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()


# 환경별 설정 검증
def validate_settings(current: Settings = settings):
    """설정 검증"""
    if current.is_production:
        if current.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise ValueError("프로덕션 환경에서는 JWT_SECRET_KEY를 변경해야 합니다.")
        if current.DATABASE_URL.startswith("sqlite"):
            raise ValueError("프로덕션 환경에서는 SQLite를 사용할 수 없습니다.")
    if current.VIEW_DEDUP_WINDOW_SECONDS <= 0:
        raise ValueError("VIEW_DEDUP_WINDOW_SECONDS는 0보다 커야 합니다.")

    return True


# 설정 검증 실행
validate_settings()
