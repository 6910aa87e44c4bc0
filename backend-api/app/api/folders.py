"""
보관함 폴더 API
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.favorite import (
    FavoriteFoldersUpdate,
    FavoriteListResponse,
    FavoriteWithNovel,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
)
from app.services import favorite_service

router = APIRouter()


def _folder_response(folder, count: int = 0) -> FolderResponse:
    return FolderResponse.model_validate(folder).model_copy(update={"count": count})


@router.get("/", response_model=List[FolderResponse])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """기본 폴더가 맨 앞"""
    rows = await favorite_service.list_folders(db, current_user.id)
    return [_folder_response(folder, count) for folder, count in rows]


@router.post("/", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    payload: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await favorite_service.create_folder(db, current_user.id, payload)
    return _folder_response(folder)


@router.get("/by-favorite/{favorite_id}", response_model=List[FolderResponse])
async def get_favorite_folders(
    favorite_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    favorite = await favorite_service.get_favorite(db, current_user.id, favorite_id)
    return [_folder_response(f) for f in await favorite_service.get_favorite_folders(db, favorite)]


@router.put("/by-favorite/{favorite_id}", response_model=List[FolderResponse])
async def set_favorite_folders(
    favorite_id: uuid.UUID,
    payload: FavoriteFoldersUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """보관 소설의 폴더를 한 번에 지정"""
    favorite = await favorite_service.get_favorite(db, current_user.id, favorite_id)
    folders = await favorite_service.set_favorite_folders(db, favorite, payload.folder_ids)
    return [_folder_response(f) for f in folders]


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: uuid.UUID,
    payload: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await favorite_service.get_owned_folder(db, current_user.id, folder_id)
    return _folder_response(await favorite_service.update_folder(db, folder, payload))


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """폴더만 삭제 (보관 기록은 남는다)"""
    folder = await favorite_service.get_owned_folder(db, current_user.id, folder_id)
    await favorite_service.delete_folder(db, folder)


@router.get("/{folder_id}/favorites", response_model=FavoriteListResponse)
async def list_folder_favorites(
    folder_id: uuid.UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await favorite_service.get_owned_folder(db, current_user.id, folder_id)
    items, total = await favorite_service.list_folder_favorites(db, folder, skip=skip, limit=limit)
    return FavoriteListResponse(
        items=[FavoriteWithNovel.model_validate(f) for f in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.put("/{folder_id}/favorites/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_to_folder(
    folder_id: uuid.UUID,
    favorite_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await favorite_service.get_owned_folder(db, current_user.id, folder_id)
    favorite = await favorite_service.get_favorite(db, current_user.id, favorite_id)
    await favorite_service.add_to_folder(db, favorite, folder)


@router.delete("/{folder_id}/favorites/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_folder(
    folder_id: uuid.UUID,
    favorite_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    folder = await favorite_service.get_owned_folder(db, current_user.id, folder_id)
    favorite = await favorite_service.get_favorite(db, current_user.id, favorite_id)
    if not await favorite_service.remove_from_folder(db, favorite, folder):
        raise HTTPException(status_code=404, detail="폴더에 없는 보관 소설입니다")
