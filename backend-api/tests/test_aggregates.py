import uuid

from sqlalchemy import update

from app.models.novel import Novel
from app.models.user import User
from app.services.aggregate_service import NovelAggregates


async def test_recompute_novel_sums_live_chapters(stats, fetch, make_novel, make_chapter):
    novel = await make_novel()
    for number, (words, views) in enumerate([(500, 5), (300, 0), (1200, 7)], start=1):
        await make_chapter(novel, number, content="가" * words, view_count=views)

    result = await stats.recomputer.recompute_novel(novel.id)

    assert result == NovelAggregates(word_count=2000, total_chapters=3, readers=12)
    stored = await fetch(Novel, novel.id)
    assert (stored.word_count, stored.total_chapters, stored.readers) == (2000, 3, 12)


async def test_recompute_novel_is_idempotent(stats, fetch, make_novel, make_chapter):
    novel = await make_novel()
    await make_chapter(novel, 1, content="나" * 42, view_count=3)

    first = await stats.recomputer.recompute_novel(novel.id)
    after_first = await fetch(Novel, novel.id)
    second = await stats.recomputer.recompute_novel(novel.id)
    after_second = await fetch(Novel, novel.id)

    assert first == second
    # 파생 필드 갱신은 수정 시각을 바꾸지 않는다
    assert after_first.updated_at == after_second.updated_at


async def test_recompute_with_zero_chapters(stats, session_factory, fetch, make_novel):
    novel = await make_novel()
    async with session_factory() as s:
        await s.execute(update(Novel).where(Novel.id == novel.id).values(word_count=99, total_chapters=4, readers=8))
        await s.commit()

    result = await stats.recomputer.recompute_novel(novel.id)

    assert result == NovelAggregates(0, 0, 0)
    stored = await fetch(Novel, novel.id)
    assert (stored.word_count, stored.total_chapters, stored.readers) == (0, 0, 0)


async def test_recompute_missing_novel_is_noop(stats):
    assert await stats.recomputer.recompute_novel(uuid.uuid4()) is None
    assert await stats.recomputer.update_readers(uuid.uuid4()) is None


async def test_update_readers_touches_only_readers(stats, session_factory, fetch, make_novel, make_chapter):
    novel = await make_novel()
    await make_chapter(novel, 1, content="다" * 10, view_count=4)
    await make_chapter(novel, 2, content="라" * 10, view_count=6)
    async with session_factory() as s:
        await s.execute(update(Novel).where(Novel.id == novel.id).values(word_count=999, total_chapters=0))
        await s.commit()

    assert await stats.recomputer.update_readers(novel.id) == 10

    stored = await fetch(Novel, novel.id)
    assert stored.readers == 10
    assert stored.word_count == 999
    assert stored.total_chapters == 0


async def test_recompute_author_totals(stats, fetch, make_user, make_novel, make_chapter):
    author = await make_user()
    other = await make_user()
    first = await make_novel(creator=author)
    second = await make_novel(creator=author)
    foreign = await make_novel(creator=other)
    await make_chapter(first, 1, content="가" * 100, view_count=2)
    await make_chapter(first, 2, content="가" * 50, view_count=1)
    await make_chapter(second, 1, content="가" * 30, view_count=10)
    await make_chapter(foreign, 1, content="가" * 999, view_count=999)
    for novel in (first, second, foreign):
        await stats.recomputer.recompute_novel(novel.id)

    result = await stats.recomputer.recompute_author(author.id)

    assert result.as_dict() == {
        "works_count": 2,
        "total_word_count": 180,
        "total_readers": 13,
        "total_chapters": 3,
    }
    stored = await fetch(User, author.id)
    assert stored.author_works_count == 2
    assert stored.author_total_chapters == 3
    assert stored.author_stats_updated_at is not None


async def test_recompute_author_missing_user(stats):
    assert await stats.recomputer.recompute_author(uuid.uuid4()) is None
