"""
댓글 API
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List
import uuid

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import (
    CommentCreate,
    CommentLikeResponse,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
    CommentWithReplies,
    ReplyCreate,
)
from app.services import comment_service

router = APIRouter()


def _thread_response(
    parents: List[Comment],
    replies: Dict[uuid.UUID, List[Comment]],
    total: int,
    skip: int,
    limit: int,
) -> CommentListResponse:
    return CommentListResponse(
        comments=[
            CommentWithReplies(
                **CommentResponse.model_validate(c).model_dump(),
                replies=[CommentResponse.model_validate(r) for r in replies.get(c.id, [])],
            )
            for c in parents
        ],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.create_comment(db, current_user.id, payload)


@router.post("/{comment_id}/replies", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_reply(
    comment_id: uuid.UUID,
    payload: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.create_reply(db, current_user.id, comment_id, payload)


@router.get("/novel/{novel_id}", response_model=CommentListResponse)
async def list_novel_comments(
    novel_id: uuid.UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    parents, replies, total = await comment_service.list_novel_comments(db, novel_id, skip=skip, limit=limit)
    return _thread_response(parents, replies, total, skip, limit)


@router.get("/chapter/{chapter_id}", response_model=CommentListResponse)
async def list_chapter_comments(
    chapter_id: uuid.UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    parents, replies, total = await comment_service.list_chapter_comments(db, chapter_id, skip=skip, limit=limit)
    return _thread_response(parents, replies, total, skip, limit)


@router.get("/me", response_model=List[CommentResponse])
async def list_my_comments(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, _ = await comment_service.list_user_comments(db, current_user.id, skip=skip, limit=limit)
    return items


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: uuid.UUID,
    payload: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.update_comment(db, current_user, comment_id, payload)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, current_user, comment_id)


@router.post("/{comment_id}/like", response_model=CommentLikeResponse)
async def like_comment(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await comment_service.like_comment(db, comment_id, current_user.id)
    return CommentLikeResponse(comment_id=comment_id, liked=True, like_count=count)


@router.delete("/{comment_id}/like", response_model=CommentLikeResponse)
async def unlike_comment(
    comment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await comment_service.unlike_comment(db, comment_id, current_user.id)
    return CommentLikeResponse(comment_id=comment_id, liked=False, like_count=count)
