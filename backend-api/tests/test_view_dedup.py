import asyncio
from datetime import timedelta
import uuid

from sqlalchemy import func, select

from app.core.database import create_engine_from_url, create_session_factory, utcnow
from app.models.chapter_view_record import ChapterViewRecord
from app.services.view_dedup_service import ViewDedupStore, ViewIdentity

WINDOW = 24 * 60 * 60


def test_identity_resolution_precedence():
    user_id = uuid.uuid4()
    assert ViewIdentity.resolve(user_id=user_id, client_id="abc", ip_address="1.1.1.1") == ViewIdentity(user_id=user_id)
    assert ViewIdentity.resolve(client_id="abc", ip_address="1.1.1.1").scope == "client"
    # 토큰만 있고 IP가 없으면 식별 불가
    assert ViewIdentity.resolve(client_id="abc").scope is None
    ip_only = ViewIdentity.resolve(client_id="  ", ip_address="1.1.1.1")
    assert ip_only.scope == "ip"
    assert ip_only.client_id is None


async def test_repeat_views_within_window_count_once(stats, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(client_id="client-1", ip_address="10.0.0.1")

    results = [await stats.dedup_store.check_and_record(chapter.id, identity) for _ in range(5)]

    assert results == [True, False, False, False, False]


async def test_expired_record_is_rearmed(stats, make_user, make_novel, make_chapter):
    user = await make_user()
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(user_id=user.id)
    store = stats.dedup_store
    t0 = utcnow() - timedelta(days=3)

    assert await store.check_and_record(chapter.id, identity, now=t0) is True
    assert await store.check_and_record(chapter.id, identity, now=t0 + timedelta(seconds=WINDOW - 1)) is False
    assert await store.check_and_record(chapter.id, identity, now=t0 + timedelta(seconds=WINDOW + 1)) is True
    assert await store.check_and_record(chapter.id, identity, now=t0 + timedelta(seconds=WINDOW + 2)) is False


async def test_expired_record_is_refreshed_in_place(stats, session_factory, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(ip_address="10.0.0.9")
    old = utcnow() - timedelta(seconds=WINDOW * 2)

    await stats.dedup_store.check_and_record(chapter.id, identity, now=old)
    assert await stats.dedup_store.check_and_record(chapter.id, identity) is True

    async with session_factory() as s:
        count = (await s.execute(
            select(func.count(ChapterViewRecord.id)).where(ChapterViewRecord.chapter_id == chapter.id)
        )).scalar_one()
    assert count == 1


async def test_concurrent_first_views_count_exactly_once(stats, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(client_id="racer", ip_address="10.0.0.2")

    results = await asyncio.gather(
        *[stats.dedup_store.check_and_record(chapter.id, identity) for _ in range(5)]
    )

    assert results.count(True) == 1
    assert results.count(False) == 4


async def test_identity_scopes_are_independent(stats, make_user, make_novel, make_chapter):
    user = await make_user()
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    store = stats.dedup_store

    assert await store.check_and_record(chapter.id, ViewIdentity.resolve(user_id=user.id)) is True
    assert await store.check_and_record(chapter.id, ViewIdentity.resolve(client_id="c", ip_address="1.2.3.4")) is True
    # 같은 토큰이라도 IP가 다르면 다른 식별자
    assert await store.check_and_record(chapter.id, ViewIdentity.resolve(client_id="c", ip_address="5.6.7.8")) is True
    assert await store.check_and_record(chapter.id, ViewIdentity.resolve(ip_address="1.2.3.4")) is True
    assert await store.check_and_record(chapter.id, ViewIdentity.resolve(ip_address="1.2.3.4")) is False


async def test_views_are_tracked_per_chapter(stats, make_novel, make_chapter):
    novel = await make_novel()
    first = await make_chapter(novel, 1)
    second = await make_chapter(novel, 2)
    identity = ViewIdentity.resolve(client_id="reader", ip_address="10.0.0.3")

    assert await stats.dedup_store.check_and_record(first.id, identity) is True
    assert await stats.dedup_store.check_and_record(second.id, identity) is True


async def test_missing_identity_never_counts(stats, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)

    assert await stats.dedup_store.check_and_record(chapter.id, ViewIdentity()) is False


async def test_store_failure_fails_closed(tmp_path):
    # 테이블이 없는 DB: 모든 쿼리가 OperationalError
    broken_engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = ViewDedupStore(create_session_factory(broken_engine), window_seconds=WINDOW)
    try:
        result = await store.check_and_record(uuid.uuid4(), ViewIdentity.resolve(ip_address="10.0.0.4"))
    finally:
        await broken_engine.dispose()

    assert result is False


async def test_purge_expired_removes_only_old_records(stats, session_factory, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    store = stats.dedup_store
    old_identity = ViewIdentity.resolve(client_id="old", ip_address="10.0.0.5")
    fresh_identity = ViewIdentity.resolve(client_id="fresh", ip_address="10.0.0.5")

    await store.check_and_record(chapter.id, old_identity, now=utcnow() - timedelta(seconds=WINDOW + 60))
    await store.check_and_record(chapter.id, fresh_identity)

    assert await store.purge_expired() == 1
    async with session_factory() as s:
        remaining = (await s.execute(select(ChapterViewRecord.client_id))).scalars().all()
    assert remaining == ["fresh"]
    # 정리 후에도 판단은 동일
    assert await store.check_and_record(chapter.id, old_identity) is True
    assert await store.check_and_record(chapter.id, fresh_identity) is False


async def test_concurrent_views_after_expiry_rearm_exactly_once(stats, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(client_id="returning", ip_address="10.0.0.6")
    await stats.dedup_store.check_and_record(chapter.id, identity, now=utcnow() - timedelta(days=2))
    now = utcnow()

    results = await asyncio.gather(
        *[stats.dedup_store.check_and_record(chapter.id, identity, now=now) for _ in range(5)]
    )

    assert results.count(True) == 1
    assert results.count(False) == 4


async def test_zero_window_counts_every_view(stats, make_novel, make_chapter):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    identity = ViewIdentity.resolve(ip_address="10.0.0.10")
    t0 = utcnow()

    assert await stats.dedup_store.check_and_record(chapter.id, identity, window_seconds=0, now=t0) is True
    assert await stats.dedup_store.check_and_record(
        chapter.id, identity, window_seconds=0, now=t0 + timedelta(seconds=1)
    ) is True


async def test_unexpected_error_fails_closed(stats, make_novel, make_chapter, monkeypatch):
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)

    async def _boom(*args, **kwargs):
        raise TypeError("can't compare offset-naive and offset-aware datetimes")

    monkeypatch.setattr(stats.dedup_store, "_check_and_record", _boom)

    assert await stats.dedup_store.check_and_record(chapter.id, ViewIdentity.resolve(ip_address="10.0.0.11")) is False
