import uuid

from sqlalchemy import update

from app.models.novel import Novel
from app.services.aggregate_service import NovelAggregates


async def _seed(stats, make_novel, make_chapter, count):
    novels = []
    for i in range(count):
        novel = await make_novel(title=f"소설 {i}")
        await make_chapter(novel, 1, content="가" * (10 + i), view_count=i)
        await make_chapter(novel, 2, content="나" * 5, view_count=1)
        await stats.recomputer.recompute_novel(novel.id)
        novels.append(novel)
    return novels


async def test_reconcile_all_repairs_drift(stats, session_factory, fetch, make_novel, make_chapter):
    novels = await _seed(stats, make_novel, make_chapter, 10)
    drifted = novels[:2]
    async with session_factory() as s:
        for novel in drifted:
            await s.execute(update(Novel).where(Novel.id == novel.id).values(readers=12345))
        await s.commit()

    summary = await stats.reconciliation.reconcile_all()

    assert (summary.total, summary.updated, summary.failed) == (10, 10, 0)
    assert summary.corrected == 2
    for i, novel in enumerate(drifted):
        assert (await fetch(Novel, novel.id)).readers == i + 1


async def test_reconcile_one_reports_before_and_after(stats, session_factory, make_novel, make_chapter):
    novel = (await _seed(stats, make_novel, make_chapter, 1))[0]
    async with session_factory() as s:
        await s.execute(update(Novel).where(Novel.id == novel.id).values(word_count=1, total_chapters=7))
        await s.commit()

    result = await stats.reconciliation.reconcile_one(novel.id)

    assert result.before == NovelAggregates(word_count=1, total_chapters=7, readers=1)
    assert result.after == NovelAggregates(word_count=15, total_chapters=2, readers=1)
    assert result.changed

    again = await stats.reconciliation.reconcile_one(novel.id)
    assert again.before == again.after
    assert not again.changed


async def test_reconcile_one_missing_novel(stats):
    assert await stats.reconciliation.reconcile_one(uuid.uuid4()) is None


async def test_reconcile_one_repairs_latest_pointer(stats, fetch, make_novel, make_chapter):
    novel = await make_novel()
    await make_chapter(novel, 1)
    top = await make_chapter(novel, 4)
    assert (await fetch(Novel, novel.id)).latest_chapter_id is None

    await stats.reconciliation.reconcile_one(novel.id)

    assert (await fetch(Novel, novel.id)).latest_chapter_id == top.id


async def test_reconcile_all_isolates_failures(stats, make_novel, make_chapter, monkeypatch):
    novels = await _seed(stats, make_novel, make_chapter, 3)
    broken_id = novels[1].id
    original = stats.recomputer.recompute_novel

    async def _flaky(novel_id):
        if novel_id == broken_id:
            raise RuntimeError("write failed")
        return await original(novel_id)

    monkeypatch.setattr(stats.recomputer, "recompute_novel", _flaky)

    summary = await stats.reconciliation.reconcile_all()

    assert (summary.total, summary.updated, summary.failed) == (3, 2, 1)
    assert summary.failures[0]["novel_id"] == str(broken_id)


async def test_reconcile_all_with_no_novels(stats):
    summary = await stats.reconciliation.reconcile_all()

    assert (summary.total, summary.updated, summary.failed) == (0, 0, 0)
