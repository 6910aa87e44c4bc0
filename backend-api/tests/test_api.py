import uuid

from app.core.background import drain
from app.models.novel import Novel

NOVEL_PAYLOAD = {
    "title": "달빛 조각사",
    "author_name": "필명",
    "short_description": "짧은 소개",
    "long_description": "긴 소개",
    "categories": "판타지, 게임",
    "tags": '["성장", "모험"]',
}


async def _create_novel(client, headers, **overrides):
    resp = await client.post("/author/novels", json={**NOVEL_PAYLOAD, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_chapter(client, headers, novel_id, **payload):
    body = {"title": "회차", "content": "본문 내용", **payload}
    resp = await client.post(f"/author/novels/{novel_id}/chapters", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_create_novel_normalizes_lists(client, make_user, auth_headers):
    author = await make_user()

    novel = await _create_novel(client, auth_headers(author), word_count=999)

    assert novel["categories"] == ["판타지", "게임"]
    assert novel["tags"] == ["성장", "모험"]
    assert (novel["word_count"], novel["total_chapters"], novel["readers"]) == (0, 0, 0)


async def test_chapter_crud_keeps_novel_stats(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"], content="가" * 30)
    second = await _create_chapter(client, headers, novel["id"], content="나" * 20)

    detail = (await client.get(f"/novels/{novel['id']}")).json()
    assert (detail["word_count"], detail["total_chapters"]) == (50, 2)
    assert detail["latest_chapter"]["chapter_number"] == 2

    resp = await client.delete(f"/author/chapters/{second['id']}", headers=headers)
    assert resp.status_code == 204

    detail = (await client.get(f"/novels/{novel['id']}")).json()
    assert (detail["word_count"], detail["total_chapters"]) == (30, 1)
    assert detail["latest_chapter"]["chapter_number"] == 1


async def test_duplicate_chapter_number_conflict(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"])

    resp = await client.post(
        f"/author/novels/{novel['id']}/chapters",
        json={"title": "중복", "content": "본문", "chapter_number": 1},
        headers=headers,
    )

    assert resp.status_code == 409
    assert resp.json()["chapter_number"] == 1


async def test_other_author_cannot_modify(client, make_user, auth_headers):
    author = await make_user()
    intruder = await make_user()
    novel = await _create_novel(client, auth_headers(author))

    resp = await client.post(
        f"/author/novels/{novel['id']}/chapters",
        json={"title": "침입", "content": "본문"},
        headers=auth_headers(intruder),
    )

    assert resp.status_code == 403


async def test_anonymous_reader_counted_once_per_client(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"])
    url = f"/novels/{novel['id']}/chapters/1"

    first = await client.get(url)
    assert first.status_code == 200
    client_id = first.cookies.get("clientId")
    assert client_id
    assert first.json()["chapter"]["view_count"] == 1

    again = await client.get(url, headers={"Cookie": f"clientId={client_id}"})
    assert again.json()["chapter"]["view_count"] == 1

    other = await client.get(url, headers={"Cookie": "clientId=someone-else"})
    assert other.json()["chapter"]["view_count"] == 2

    detail = (await client.get(f"/novels/{novel['id']}")).json()
    assert detail["readers"] == 2


async def test_forwarded_ip_distinguishes_same_client(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"])
    url = f"/novels/{novel['id']}/chapters/1"

    await client.get(url, headers={"Cookie": "clientId=shared", "X-Forwarded-For": "1.1.1.1, 10.0.0.1"})
    resp = await client.get(url, headers={"Cookie": "clientId=shared", "X-Forwarded-For": "2.2.2.2"})

    assert resp.json()["chapter"]["view_count"] == 2


async def test_premium_chapter_requires_login(client, make_user, auth_headers):
    author = await make_user()
    reader = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"], is_premium=True, price=100)
    url = f"/novels/{novel['id']}/chapters/1"

    assert (await client.get(url)).status_code == 403
    resp = await client.get(url, headers=auth_headers(reader))
    assert resp.status_code == 200
    assert resp.json()["chapter"]["price"] == 100


async def test_read_updates_history_and_navigation(client, make_user, auth_headers):
    author = await make_user()
    reader = await make_user()
    headers = auth_headers(author)
    reader_headers = auth_headers(reader)
    novel = await _create_novel(client, headers)
    await _create_chapter(client, headers, novel["id"])
    await _create_chapter(client, headers, novel["id"])

    resp = await client.get(f"/novels/{novel['id']}/chapters/1", headers=reader_headers)
    body = resp.json()
    assert body["navigation"]["prev"] is None
    assert body["navigation"]["next"]["chapter_number"] == 2
    await drain(timeout=5)

    history = (await client.get("/users/me/reading-history", headers=reader_headers)).json()["items"]
    assert len(history) == 1
    assert history[0]["reading_progress"] == 50.0
    assert history[0]["total_reading_time"] == 1

    await client.get(f"/novels/{novel['id']}/chapters/2", headers=reader_headers)
    await drain(timeout=5)

    history = (await client.get("/users/me/reading-history", headers=reader_headers)).json()["items"]
    assert history[0]["reading_progress"] == 100.0
    assert history[0]["total_reading_time"] == 2
    assert history[0]["last_chapter"]["chapter_number"] == 2

    resp = await client.delete(f"/users/me/reading-history/{novel['id']}", headers=reader_headers)
    assert resp.status_code == 204
    history = (await client.get("/users/me/reading-history", headers=reader_headers)).json()["items"]
    assert history == []


async def test_status_change_unflags_extras(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers, status="completed")
    extra = await _create_chapter(client, headers, novel["id"])
    assert extra["is_extra"] is True

    resp = await client.put(f"/author/chapters/{extra['id']}", json={"is_extra": False}, headers=headers)
    assert resp.status_code == 400

    resp = await client.patch(f"/author/novels/{novel['id']}/status", json={"status": "ongoing"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "ongoing"

    chapters = (await client.get(f"/novels/{novel['id']}/chapters")).json()
    assert [c["is_extra"] for c in chapters] == [False]


async def test_bulk_delete_and_delete_novel(client, fetch, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)
    for _ in range(3):
        await _create_chapter(client, headers, novel["id"], content="가" * 10)

    resp = await client.request("DELETE", f"/author/novels/{novel['id']}/chapters", headers=headers)
    assert resp.json() == {"deleted": 3}
    detail = (await client.get(f"/novels/{novel['id']}")).json()
    assert detail["latest_chapter"] is None
    assert (detail["word_count"], detail["total_chapters"]) == (0, 0)

    resp = await client.delete(f"/author/novels/{novel['id']}", headers=headers)
    assert resp.status_code == 204
    assert (await client.get(f"/novels/{novel['id']}")).status_code == 404


async def test_author_stats(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    first = await _create_novel(client, headers, title="첫 작품")
    await _create_novel(client, headers, title="둘째 작품")
    await _create_chapter(client, headers, first["id"], content="가" * 40)
    await client.get(f"/novels/{first['id']}/chapters/1")

    resp = await client.get("/author/stats", headers=headers)

    body = resp.json()
    assert body["author_stats"] == {
        "works_count": 2,
        "total_word_count": 40,
        "total_readers": 1,
        "total_chapters": 1,
    }
    assert body["popular_novels"][0]["title"] == "첫 작품"
    assert len(body["recent_novels"]) == 2


async def test_list_novels_by_category(client, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    await _create_novel(client, headers, title="판타지물", categories=["판타지"])
    await _create_novel(client, headers, title="로맨스물", categories=["로맨스"])

    body = (await client.get("/novels/", params={"category": "로맨스"})).json()

    assert body["total"] == 1
    assert [n["title"] for n in body["novels"]] == ["로맨스물"]


async def test_admin_reconcile_endpoints(client, make_user, auth_headers):
    author = await make_user()
    admin = await make_user(is_admin=True)
    novel = await _create_novel(client, auth_headers(author))
    await _create_chapter(client, auth_headers(author), novel["id"], content="가" * 12)

    assert (await client.post("/admin/stats/reconcile", headers=auth_headers(author))).status_code == 403

    resp = await client.post(f"/admin/stats/novels/{novel['id']}/reconcile", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["after"] == {"word_count": 12, "total_chapters": 1, "readers": 0}
    assert resp.json()["changed"] is False

    resp = await client.post("/admin/stats/reconcile", headers=auth_headers(admin))
    body = resp.json()
    assert (body["total"], body["updated"], body["failed"]) == (1, 1, 0)


async def test_delete_account_anonymises_novels(client, fetch, make_user, auth_headers):
    author = await make_user()
    headers = auth_headers(author)
    novel = await _create_novel(client, headers)

    resp = await client.delete("/users/me", headers=headers)
    assert resp.status_code == 204

    stored = await fetch(Novel, uuid.UUID(novel["id"]))
    assert stored.creator_id is None
    assert stored.author_name == "익명 작가"
    assert (await client.get("/users/me", headers=headers)).status_code == 401


async def test_search_novels_by_title_pen_name_and_tag(client, make_user, auth_headers):
    headers = auth_headers(await make_user())
    await _create_novel(client, headers, title="검은 마법사", author_name="달빛", tags=["회귀"])
    await _create_novel(client, headers, title="하얀 기사", author_name="별빛", tags=["무협"])

    def titles(body):
        return sorted(n["title"] for n in body["novels"])

    assert titles((await client.get("/novels/search", params={"q": "마법"})).json()) == ["검은 마법사"]
    assert titles((await client.get("/novels/search", params={"q": "별빛"})).json()) == ["하얀 기사"]
    assert titles((await client.get("/novels/search", params={"q": "무협"})).json()) == ["하얀 기사"]
    body = (await client.get("/novels/search", params={"q": "빛"})).json()
    assert (body["total"], titles(body)) == (2, ["검은 마법사", "하얀 기사"])
    assert (await client.get("/novels/search", params={"q": ""})).status_code == 422


async def test_popular_and_latest_novels(client, make_user, auth_headers):
    headers = auth_headers(await make_user())
    quiet = await _create_novel(client, headers, title="조용한 작품")
    busy = await _create_novel(client, headers, title="인기 작품")
    for novel in (quiet, busy):
        await _create_chapter(client, headers, novel["id"])

    for client_id in ("a", "b"):
        await client.get(f"/novels/{busy['id']}/chapters/1", headers={"Cookie": f"clientId={client_id}"})
    await client.get(f"/novels/{quiet['id']}/chapters/1", headers={"Cookie": "clientId=c"})

    popular = (await client.get("/novels/popular", params={"limit": 2})).json()
    assert [n["title"] for n in popular] == ["인기 작품", "조용한 작품"]
    assert [n["readers"] for n in popular] == [2, 1]

    latest = (await client.get("/novels/latest")).json()
    assert latest[0]["title"] == "조용한 작품"


async def test_novels_by_author(client, make_user, auth_headers):
    author, other = await make_user(), await make_user()
    await _create_novel(client, auth_headers(author), title="내 작품")
    await _create_novel(client, auth_headers(other), title="남의 작품")

    body = (await client.get(f"/novels/author/{author.id}")).json()

    assert [n["title"] for n in body] == ["내 작품"]
    assert (await client.get(f"/novels/author/{uuid.uuid4()}")).json() == []
