"""
테스트 공용 픽스처: 테스트마다 임시 SQLite 파일 DB를 만든다.
"""

from typing import Optional
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.background import drain
from app.core.config import settings
from app.core.database import Base, create_engine_from_url, create_session_factory, get_db
from app.core.security import create_access_token
from app.models.chapter import Chapter
from app.models.novel import Novel, NovelStatus
from app.models.user import User
from app.services.chapter_service import count_words
from app.services.stats import build_stats_services


@pytest.fixture
async def engine(tmp_path):
    eng = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await drain(timeout=5)
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def stats(session_factory):
    return build_stats_services(session_factory, settings)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    async def _make(is_admin: bool = False, username: Optional[str] = None) -> User:
        suffix = uuid.uuid4().hex[:8]
        async with session_factory() as s:
            user = User(
                email=f"{suffix}@example.com",
                username=username or f"user_{suffix}",
                is_active=True,
                is_admin=is_admin,
            )
            s.add(user)
            await s.commit()
            await s.refresh(user)
            return user
    return _make


@pytest.fixture
def make_novel(session_factory):
    async def _make(
        creator: Optional[User] = None,
        status: str = NovelStatus.ONGOING.value,
        title: str = "테스트 소설",
        categories=None,
    ) -> Novel:
        async with session_factory() as s:
            novel = Novel(
                creator_id=creator.id if creator else None,
                title=title,
                author_name="테스트 작가",
                short_description="짧은 소개",
                long_description="긴 소개",
                categories=categories or [],
                tags=[],
                status=status,
            )
            s.add(novel)
            await s.commit()
            await s.refresh(novel)
            return novel
    return _make


@pytest.fixture
def make_chapter(session_factory):
    """훅 없이 회차 행만 만든다 (통계/포인터는 갱신되지 않음)"""
    async def _make(
        novel: Novel,
        chapter_number: int,
        content: str = "본문 내용",
        view_count: int = 0,
        is_extra: bool = False,
        is_premium: bool = False,
    ) -> Chapter:
        async with session_factory() as s:
            chapter = Chapter(
                novel_id=novel.id,
                chapter_number=chapter_number,
                title=f"{chapter_number}화",
                content=content,
                word_count=count_words(content),
                view_count=view_count,
                is_extra=is_extra,
                is_premium=is_premium,
            )
            s.add(chapter)
            await s.commit()
            await s.refresh(chapter)
            return chapter
    return _make


@pytest.fixture
async def client(session_factory, stats):
    from app.main import app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.state.session_factory = session_factory
    app.state.stats = stats
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def fetch(session_factory):
    """새 세션으로 다시 읽기 (다른 세션이 쓴 값 확인용)"""
    async def _fetch(model, pk):
        async with session_factory() as s:
            return await s.get(model, pk)
    return _fetch
