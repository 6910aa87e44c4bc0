import uuid

from app.models.comment import Comment
from app.services import comment_service


async def _comment(client, headers, novel_id, content="재밌어요", chapter_id=None):
    body = {"novel_id": str(novel_id), "content": content}
    if chapter_id:
        body["chapter_id"] = str(chapter_id)
    resp = await client.post("/comments/", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _reply(client, headers, comment_id, content="답글", **extra):
    resp = await client.post(f"/comments/{comment_id}/replies", json={"content": content, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_chapter_comment_copies_chapter_number(client, make_user, make_novel, make_chapter, auth_headers):
    reader = await make_user(username="독자")
    novel = await make_novel()
    chapter = await make_chapter(novel, 3)

    comment = await _comment(client, auth_headers(reader), novel.id, "<b>최고</b> 회차", chapter_id=chapter.id)

    assert comment["content"] == "최고 회차"
    assert (comment["chapter_id"], comment["chapter_number"]) == (str(chapter.id), 3)
    assert comment["user"]["username"] == "독자"

    listed = (await client.get(f"/comments/chapter/{chapter.id}")).json()
    assert [c["id"] for c in listed["comments"]] == [comment["id"]]
    # 소설 댓글 목록에는 회차 댓글도 포함
    assert (await client.get(f"/comments/novel/{novel.id}")).json()["total"] == 1


async def test_comment_validation(client, make_user, make_novel, make_chapter, auth_headers):
    headers = auth_headers(await make_user())
    novel, other_novel = await make_novel(), await make_novel()
    foreign_chapter = await make_chapter(other_novel, 1)

    body = {"novel_id": str(novel.id), "content": "내용", "chapter_id": str(foreign_chapter.id)}
    resp = await client.post("/comments/", json=body, headers=headers)
    assert resp.status_code == 400

    resp = await client.post("/comments/", json={"novel_id": str(novel.id), "content": "<p> </p>"}, headers=headers)
    assert resp.status_code == 422

    resp = await client.post("/comments/", json={"novel_id": str(uuid.uuid4()), "content": "내용"}, headers=headers)
    assert resp.status_code == 404

    resp = await client.post("/comments/", json={"novel_id": str(novel.id), "content": "내용"})
    assert resp.status_code == 401


async def test_replies_flatten_to_root(client, make_user, make_novel, make_chapter, auth_headers):
    writer, replier, third = await make_user(), await make_user(), await make_user()
    novel = await make_novel()
    chapter = await make_chapter(novel, 1)
    root = await _comment(client, auth_headers(writer), novel.id, chapter_id=chapter.id)

    first = await _reply(client, auth_headers(replier), root["id"], "첫 답글")
    nested = await _reply(client, auth_headers(third), first["id"], "답글의 답글")

    assert first["parent_id"] == root["id"]
    assert first["reply_to_user"]["id"] == str(writer.id)
    assert nested["parent_id"] == root["id"]
    assert nested["reply_to_user"]["id"] == str(replier.id)
    assert (nested["chapter_id"], nested["chapter_number"]) == (str(chapter.id), 1)

    listed = (await client.get(f"/comments/novel/{novel.id}")).json()
    assert listed["total"] == 1
    assert [r["content"] for r in listed["comments"][0]["replies"]] == ["첫 답글", "답글의 답글"]


async def test_like_is_idempotent_and_recounted(client, make_user, make_novel, auth_headers):
    alice, bob = await make_user(), await make_user()
    comment = await _comment(client, auth_headers(alice), (await make_novel()).id)
    url = f"/comments/{comment['id']}/like"

    assert (await client.post(url, headers=auth_headers(alice))).json()["like_count"] == 1
    assert (await client.post(url, headers=auth_headers(alice))).json()["like_count"] == 1
    assert (await client.post(url, headers=auth_headers(bob))).json()["like_count"] == 2

    resp = await client.delete(url, headers=auth_headers(bob))
    assert resp.json() == {"comment_id": comment["id"], "liked": False, "like_count": 1}
    assert (await client.delete(url, headers=auth_headers(bob))).json()["like_count"] == 1

    resp = await client.post(f"/comments/{uuid.uuid4()}/like", headers=auth_headers(alice))
    assert resp.status_code == 404


async def test_update_comment_only_by_writer(client, make_user, make_novel, auth_headers):
    writer, other = await make_user(), await make_user()
    comment = await _comment(client, auth_headers(writer), (await make_novel()).id)
    url = f"/comments/{comment['id']}"

    assert (await client.put(url, json={"content": "고침"}, headers=auth_headers(other))).status_code == 403
    resp = await client.put(url, json={"content": "고침"}, headers=auth_headers(writer))
    assert resp.status_code == 200
    assert resp.json()["content"] == "고침"


async def test_delete_permissions(client, make_user, make_novel, auth_headers):
    author, writer, stranger = await make_user(), await make_user(), await make_user()
    admin = await make_user(is_admin=True)
    novel = await make_novel(creator=author)
    first = await _comment(client, auth_headers(writer), novel.id, "하나")
    second = await _comment(client, auth_headers(writer), novel.id, "둘")
    third = await _comment(client, auth_headers(writer), novel.id, "셋")

    assert (await client.delete(f"/comments/{first['id']}", headers=auth_headers(stranger))).status_code == 403
    assert (await client.delete(f"/comments/{first['id']}", headers=auth_headers(writer))).status_code == 204
    assert (await client.delete(f"/comments/{second['id']}", headers=auth_headers(author))).status_code == 204
    assert (await client.delete(f"/comments/{third['id']}", headers=auth_headers(admin))).status_code == 204
    assert (await client.delete(f"/comments/{third['id']}", headers=auth_headers(admin))).status_code == 404

    assert (await client.get(f"/comments/novel/{novel.id}")).json()["total"] == 0


async def test_deleted_root_with_replies_stays_as_placeholder(client, fetch, make_user, make_novel, auth_headers):
    writer, replier = await make_user(), await make_user()
    novel = await make_novel()
    root = await _comment(client, auth_headers(writer), novel.id, "원 댓글")
    await _reply(client, auth_headers(replier), root["id"], "답글")
    await client.post(f"/comments/{root['id']}/like", headers=auth_headers(replier))

    await client.delete(f"/comments/{root['id']}", headers=auth_headers(writer))

    listed = (await client.get(f"/comments/novel/{novel.id}")).json()
    assert listed["total"] == 1
    placeholder = listed["comments"][0]
    assert (placeholder["is_deleted"], placeholder["content"]) == (True, "삭제된 댓글입니다.")
    assert [r["content"] for r in placeholder["replies"]] == ["답글"]
    assert (await fetch(Comment, uuid.UUID(root["id"]))).like_count == 0

    resp = await client.post(f"/comments/{root['id']}/replies", json={"content": "또"}, headers=auth_headers(replier))
    assert resp.status_code == 404


async def test_my_comments(client, make_user, make_novel, auth_headers):
    me, other = await make_user(), await make_user()
    novel = await make_novel()
    mine = await _comment(client, auth_headers(me), novel.id, "내 댓글")
    await _reply(client, auth_headers(me), mine["id"], "내 답글")
    await _comment(client, auth_headers(other), novel.id, "남의 댓글")

    items = (await client.get("/comments/me", headers=auth_headers(me))).json()

    assert sorted(c["content"] for c in items) == ["내 답글", "내 댓글"]


async def test_account_deletion_keeps_comments_and_drops_likes(client, fetch, make_user, make_novel, auth_headers):
    leaving, staying = await make_user(), await make_user()
    comment = await _comment(client, auth_headers(staying), (await make_novel()).id)
    own = await _comment(client, auth_headers(leaving), (await make_novel()).id, "남는 댓글")
    for user in (leaving, staying):
        await client.post(f"/comments/{comment['id']}/like", headers=auth_headers(user))

    resp = await client.delete("/users/me", headers=auth_headers(leaving))

    assert resp.status_code == 204
    assert (await fetch(Comment, uuid.UUID(comment["id"]))).like_count == 1
    kept = await fetch(Comment, uuid.UUID(own["id"]))
    assert (kept.user_id, kept.content) == (None, "남는 댓글")


async def test_remove_user_likes_without_likes(db, make_user):
    user = await make_user()
    assert await comment_service.remove_user_likes(db, user.id) == 0
