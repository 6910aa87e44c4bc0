"""
데이터베이스 설정 및 연결
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData, event, types
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
import redis.asyncio as redis
from typing import AsyncGenerator
from datetime import datetime, timezone
import json
import logging
import uuid
import ssl
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from app.core.config import settings

logger = logging.getLogger(__name__)


# SQLite와 PostgreSQL 모두 지원하는 UUID 타입
class UUID(types.TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise uses
    CHAR(36), storing as stringified hex values.
    """
    impl = types.CHAR(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PostgresUUID(as_uuid=True))
        else:
            return dialect.type_descriptor(types.CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return str(value)
            else:
                return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return value
            else:
                return uuid.UUID(value)


# SQLite와 PostgreSQL 모두 지원하는 JSON 타입
class JSON(types.TypeDecorator):
    """Platform-independent JSON type."""
    impl = types.JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            from sqlalchemy.dialects.postgresql import JSONB
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(types.JSON())


def utcnow() -> datetime:
    """UTC 기준 현재 시각 (tz-aware)"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite는 tzinfo 없이 돌려주므로 UTC로 간주해 보정"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _build_engine_url_and_args(database_url: str) -> tuple[str, dict]:
    """DATABASE_URL을 비동기 드라이버용 URL과 connect_args로 변환"""
    if database_url.startswith("sqlite"):
        # SQLite의 경우 aiosqlite 드라이버 사용
        if database_url.startswith("sqlite://"):
            database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return database_url, {}

    # PostgreSQL의 경우 asyncpg 드라이버 사용
    raw_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # sslmode 파라미터는 asyncpg에서 직접 지원하지 않음
    # → URL에서 제거하고 connect_args로 SSLContext를 전달한다.
    parts = urlsplit(raw_url)
    query_items = parse_qsl(parts.query, keep_blank_values=True)
    sslmode = next((v for (k, v) in query_items if k.lower() == "sslmode"), None)
    query_filtered = [(k, v) for (k, v) in query_items if k.lower() not in ("sslmode", "ssl")]
    engine_url = urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query_filtered), parts.fragment))

    connect_args = {}
    if sslmode is not None:
        mode = str(sslmode).strip().lower()
        # libpq sslmode semantics:
        # - require/prefer: encrypt but DO NOT verify server cert
        # - verify-ca/verify-full: verify
        if mode in ("require", "prefer", "verify-ca", "verify-full"):
            ctx = ssl.create_default_context()
            if mode in ("require", "prefer"):
                ctx.check_hostname = False
                ctx.verify_mode = ssl.CERT_NONE
            connect_args["ssl"] = ctx
    return engine_url, connect_args


# 카테고리/태그 LIKE 검색을 위해 한글을 이스케이프하지 않고 저장
def _json_dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def create_engine_from_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """비동기 엔진 생성"""
    engine_url, connect_args = _build_engine_url_and_args(database_url)
    if engine_url.startswith("sqlite"):
        # 동시 쓰기는 잠금 대기로 직렬화
        sqlite_engine = create_async_engine(
            engine_url,
            echo=echo,
            future=True,
            json_serializer=_json_dumps,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS},
        )

        # SQLite는 기본적으로 FK 제약(ON DELETE CASCADE/SET NULL)을 적용하지 않음
        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_sqlite_fk(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine
    return create_async_engine(
        engine_url,
        echo=echo,
        future=True,
        json_serializer=_json_dumps,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args=connect_args,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """세션 팩토리 생성"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


# SQLAlchemy 비동기 엔진 / 세션 팩토리
engine = create_engine_from_url(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = create_session_factory(engine)

# Redis 연결 (Celery 브로커와 동일 인스턴스, 헬스체크용)
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


# Base 클래스 정의
class Base(DeclarativeBase):
    """SQLAlchemy Base 클래스"""
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )


# 데이터베이스 세션 의존성
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """데이터베이스 세션 의존성"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# 데이터베이스 연결 테스트
async def check_db_connection(bind: AsyncEngine = engine) -> bool:
    """데이터베이스 연결 테스트"""
    try:
        async with bind.begin() as conn:
            await conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        logger.warning(f"데이터베이스 연결 실패: {e}")
        return False


# Redis 연결 테스트
async def check_redis_connection(client: redis.Redis = redis_client) -> bool:
    """Redis 연결 테스트"""
    try:
        await client.ping()
        return True
    except Exception as e:
        logger.warning(f"Redis 연결 실패: {e}")
        return False
