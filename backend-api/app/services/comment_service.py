"""
댓글 관련 서비스

답글은 항상 최상위 댓글 하나에 매달린다 (답글의 답글도 같은 최상위 댓글로).
좋아요 수는 좋아요 기록 수로 다시 계산한다.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased, selectinload
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from app.core.database import utcnow
from app.core.exceptions import InvalidOperationError, NotFoundError, PermissionDeniedError
from app.models.chapter import Chapter
from app.models.comment import Comment, CommentLike
from app.models.novel import Novel
from app.models.user import User
from app.schemas.comment import CommentCreate, CommentUpdate, ReplyCreate

logger = logging.getLogger(__name__)

DELETED_COMMENT_TEXT = "삭제된 댓글입니다."


def _with_authors(stmt):
    return stmt.options(selectinload(Comment.user), selectinload(Comment.reply_to_user))


async def get_comment_by_id(db: AsyncSession, comment_id: uuid.UUID) -> Optional[Comment]:
    """댓글 ID로 조회"""
    result = await db.execute(
        _with_authors(select(Comment))
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_live_comment(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    comment = await get_comment_by_id(db, comment_id)
    if comment is None or comment.is_deleted:
        raise NotFoundError("댓글을 찾을 수 없습니다")
    return comment


async def create_comment(db: AsyncSession, user_id: uuid.UUID, data: CommentCreate) -> Comment:
    """소설 또는 회차에 댓글 작성"""
    novel = await db.get(Novel, data.novel_id)
    if novel is None:
        raise NotFoundError("소설을 찾을 수 없습니다")

    chapter_number = None
    if data.chapter_id is not None:
        chapter = await db.get(Chapter, data.chapter_id)
        if chapter is None:
            raise NotFoundError("회차를 찾을 수 없습니다")
        if chapter.novel_id != novel.id:
            raise InvalidOperationError("해당 소설의 회차가 아닙니다", {"chapter_id": str(chapter.id)})
        chapter_number = chapter.chapter_number

    now = utcnow()
    comment = Comment(
        user_id=user_id,
        novel_id=novel.id,
        chapter_id=data.chapter_id,
        chapter_number=chapter_number,
        content=data.content,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await db.commit()
    logger.info(f"[comment] 작성 id={comment.id} novel={novel.id} chapter={data.chapter_id}")
    return await get_comment_by_id(db, comment.id)


async def create_reply(
    db: AsyncSession,
    user_id: uuid.UUID,
    parent_id: uuid.UUID,
    data: ReplyCreate,
) -> Comment:
    """답글 작성. 소설/회차는 원 댓글을 따른다."""
    target = await _get_live_comment(db, parent_id)
    root_id = target.parent_id or target.id

    reply_to = data.reply_to_user_id or target.user_id
    if reply_to is not None and await db.get(User, reply_to) is None:
        reply_to = None

    now = utcnow()
    reply = Comment(
        user_id=user_id,
        novel_id=target.novel_id,
        chapter_id=target.chapter_id,
        chapter_number=target.chapter_number,
        content=data.content,
        parent_id=root_id,
        reply_to_user_id=reply_to,
        created_at=now,
        updated_at=now,
    )
    db.add(reply)
    await db.commit()
    return await get_comment_by_id(db, reply.id)


async def _list_top_level(
    db: AsyncSession,
    conditions: list,
    skip: int,
    limit: int,
) -> Tuple[List[Comment], Dict[uuid.UUID, List[Comment]], int]:
    """최상위 댓글(최신순)과 답글(오래된 순) 묶음. 삭제된 댓글은 살아 있는 답글이 있을 때만 남긴다."""
    live_reply = aliased(Comment)
    has_live_reply = (
        select(live_reply.id)
        .where(live_reply.parent_id == Comment.id, live_reply.is_deleted.is_(False))
        .exists()
    )
    conditions = [
        *conditions,
        Comment.parent_id.is_(None),
        or_(Comment.is_deleted.is_(False), has_live_reply),
    ]

    total = (await db.execute(select(func.count(Comment.id)).where(*conditions))).scalar_one()
    parents = (await db.execute(
        _with_authors(select(Comment))
        .where(*conditions)
        .order_by(Comment.created_at.desc(), Comment.id)
        .offset(skip)
        .limit(limit)
    )).scalars().all()

    replies: Dict[uuid.UUID, List[Comment]] = {c.id: [] for c in parents}
    if parents:
        rows = (await db.execute(
            _with_authors(select(Comment))
            .where(Comment.parent_id.in_(list(replies)), Comment.is_deleted.is_(False))
            .order_by(Comment.created_at.asc(), Comment.id)
        )).scalars().all()
        for reply in rows:
            replies[reply.parent_id].append(reply)
    return parents, replies, int(total)


async def list_novel_comments(
    db: AsyncSession,
    novel_id: uuid.UUID,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Comment], Dict[uuid.UUID, List[Comment]], int]:
    """소설의 모든 댓글 (회차 댓글 포함)"""
    return await _list_top_level(db, [Comment.novel_id == novel_id], skip, limit)


async def list_chapter_comments(
    db: AsyncSession,
    chapter_id: uuid.UUID,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Comment], Dict[uuid.UUID, List[Comment]], int]:
    return await _list_top_level(db, [Comment.chapter_id == chapter_id], skip, limit)


async def list_user_comments(
    db: AsyncSession,
    user_id: uuid.UUID,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Comment], int]:
    """내가 쓴 댓글/답글 (최신순)"""
    conditions = [Comment.user_id == user_id, Comment.is_deleted.is_(False)]
    total = (await db.execute(select(func.count(Comment.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        _with_authors(select(Comment))
        .where(*conditions)
        .order_by(Comment.created_at.desc(), Comment.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total)


async def update_comment(db: AsyncSession, user: User, comment_id: uuid.UUID, data: CommentUpdate) -> Comment:
    """댓글 수정 (작성자만)"""
    comment = await _get_live_comment(db, comment_id)
    if comment.user_id != user.id:
        raise PermissionDeniedError("권한이 없습니다")
    await db.execute(
        update(Comment)
        .where(Comment.id == comment_id)
        .values(content=data.content, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return await get_comment_by_id(db, comment_id)


async def delete_comment(db: AsyncSession, user: User, comment_id: uuid.UUID) -> None:
    """
    댓글 삭제 (작성자, 소설 작가, 관리자).
    내용만 지우고 자리는 남긴다. 답글 목록은 그대로 유지된다.
    """
    comment = await _get_live_comment(db, comment_id)
    if comment.user_id != user.id and not user.is_admin:
        novel = await db.get(Novel, comment.novel_id)
        if novel is None or novel.creator_id != user.id:
            raise PermissionDeniedError("권한이 없습니다")

    await db.execute(
        update(Comment)
        .where(Comment.id == comment_id)
        .values(is_deleted=True, content=DELETED_COMMENT_TEXT, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(CommentLike).where(CommentLike.comment_id == comment_id))
    await _refresh_like_count(db, comment_id)
    await db.commit()
    logger.info(f"[comment] 삭제 id={comment_id} by={user.id}")


async def _refresh_like_count(db: AsyncSession, comment_id: uuid.UUID) -> int:
    count = (await db.execute(
        select(func.count(CommentLike.id)).where(CommentLike.comment_id == comment_id)
    )).scalar_one()
    await db.execute(
        update(Comment)
        .where(Comment.id == comment_id)
        .values(like_count=count, updated_at=Comment.updated_at)
        .execution_options(synchronize_session=False)
    )
    return int(count)


async def is_comment_liked_by_user(db: AsyncSession, comment_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(CommentLike.id).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def like_comment(db: AsyncSession, comment_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """좋아요. 이미 눌렀으면 그대로. 현재 좋아요 수 반환."""
    await _get_live_comment(db, comment_id)
    if not await is_comment_liked_by_user(db, comment_id, user_id):
        db.add(CommentLike(comment_id=comment_id, user_id=user_id))
        try:
            await db.commit()
        except IntegrityError:
            # 동시 요청이 먼저 기록함
            await db.rollback()
    count = await _refresh_like_count(db, comment_id)
    await db.commit()
    return count


async def unlike_comment(db: AsyncSession, comment_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """좋아요 취소. 누르지 않았으면 그대로. 현재 좋아요 수 반환."""
    await _get_live_comment(db, comment_id)
    await db.execute(
        delete(CommentLike).where(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
    )
    count = await _refresh_like_count(db, comment_id)
    await db.commit()
    return count


async def remove_user_likes(db: AsyncSession, user_id: uuid.UUID) -> int:
    """사용자가 누른 좋아요 전체 삭제 후 댓글별 좋아요 수 재계산 (계정 삭제용)"""
    comment_ids = list((await db.execute(
        select(CommentLike.comment_id).where(CommentLike.user_id == user_id)
    )).scalars().all())
    if not comment_ids:
        return 0
    await db.execute(delete(CommentLike).where(CommentLike.user_id == user_id))
    for comment_id in comment_ids:
        await _refresh_like_count(db, comment_id)
    await db.commit()
    return len(comment_ids)
