"""
보관함(즐겨찾기) / 폴더 서비스

보관 추가/삭제 후에는 소설 collections 를 보관 기록 수로 다시 계산한다.
기본 폴더는 실제 연결 없이 모든 보관 소설을 보여준다.
"""

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from typing import List, Optional, Tuple
import logging
import uuid

from app.core.database import utcnow
from app.core.exceptions import ConflictError, InvalidOperationError, NotFoundError
from app.models.favorite import DEFAULT_FAVORITE_GROUP, Favorite, FavoriteFolder, Folder
from app.models.novel import Novel
from app.schemas.favorite import FavoriteUpdate, FolderCreate, FolderUpdate
from app.services.aggregate_service import AggregateRecomputer

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "전체 보관함"
DEFAULT_FOLDER_ICON = "📚"


async def _refresh_collections(recomputer: AggregateRecomputer, novel_id: uuid.UUID) -> None:
    # 보관 기록은 이미 커밋됨. 보관 수는 보정 작업이 다시 맞춘다.
    try:
        await recomputer.update_collections(novel_id)
    except Exception:
        logger.exception(f"[favorite] 소설 {novel_id} 보관 수 갱신 실패")


# ---- 보관함 ----
async def get_favorite(db: AsyncSession, user_id: uuid.UUID, favorite_id: uuid.UUID) -> Favorite:
    """본인 보관 기록만 반환"""
    favorite = (await db.execute(
        select(Favorite).where(Favorite.id == favorite_id, Favorite.user_id == user_id)
    )).scalar_one_or_none()
    if favorite is None:
        raise NotFoundError("보관 기록을 찾을 수 없습니다")
    return favorite


async def find_favorite(db: AsyncSession, user_id: uuid.UUID, target_id: uuid.UUID) -> Optional[Favorite]:
    """보관 ID 또는 소설 ID로 찾기"""
    result = await db.execute(
        select(Favorite).where(
            Favorite.user_id == user_id,
            (Favorite.id == target_id) | (Favorite.novel_id == target_id),
        )
    )
    return result.scalars().first()


async def get_favorite_for_novel(db: AsyncSession, user_id: uuid.UUID, novel_id: uuid.UUID) -> Optional[Favorite]:
    result = await db.execute(
        select(Favorite).where(Favorite.user_id == user_id, Favorite.novel_id == novel_id)
    )
    return result.scalar_one_or_none()


async def list_favorites(
    db: AsyncSession,
    user_id: uuid.UUID,
    group: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Favorite], int]:
    """최근 담은 순"""
    conditions = [Favorite.user_id == user_id]
    if group:
        conditions.append(Favorite.group == group)
    total = (await db.execute(select(func.count(Favorite.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Favorite)
        .options(selectinload(Favorite.novel))
        .where(*conditions)
        .order_by(Favorite.added_at.desc(), Favorite.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total)


async def add_favorite(
    db: AsyncSession,
    recomputer: AggregateRecomputer,
    user_id: uuid.UUID,
    novel_id: uuid.UUID,
    group: Optional[str] = None,
) -> Favorite:
    """보관함에 추가. 이미 담은 소설이면 ConflictError."""
    if await db.get(Novel, novel_id) is None:
        raise NotFoundError("소설을 찾을 수 없습니다")

    favorite = Favorite(
        user_id=user_id,
        novel_id=novel_id,
        group=group or DEFAULT_FAVORITE_GROUP,
        added_at=utcnow(),
    )
    db.add(favorite)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("이미 보관함에 담은 소설입니다", {"novel_id": str(novel_id)})
    await db.refresh(favorite)

    await _refresh_collections(recomputer, novel_id)
    logger.info(f"[favorite] 추가 user={user_id} novel={novel_id}")
    return favorite


async def update_favorite(db: AsyncSession, favorite: Favorite, data: FavoriteUpdate) -> Favorite:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(favorite, field, value)
    await db.commit()
    await db.refresh(favorite)
    return favorite


async def remove_favorite(db: AsyncSession, recomputer: AggregateRecomputer, favorite: Favorite) -> None:
    """보관 삭제 (폴더 연결도 함께 삭제)"""
    novel_id, user_id = favorite.novel_id, favorite.user_id
    await db.execute(delete(FavoriteFolder).where(FavoriteFolder.favorite_id == favorite.id))
    await db.delete(favorite)
    await db.commit()

    await _refresh_collections(recomputer, novel_id)
    logger.info(f"[favorite] 삭제 user={user_id} novel={novel_id}")


async def remove_all_favorites(db: AsyncSession, recomputer: AggregateRecomputer, user_id: uuid.UUID) -> int:
    """사용자의 보관 기록 전체 삭제 (계정 삭제용)"""
    novel_ids = list((await db.execute(
        select(Favorite.novel_id).where(Favorite.user_id == user_id)
    )).scalars().all())
    if not novel_ids:
        return 0
    await db.execute(delete(FavoriteFolder).where(FavoriteFolder.user_id == user_id))
    await db.execute(delete(Favorite).where(Favorite.user_id == user_id))
    await db.commit()

    for novel_id in novel_ids:
        await _refresh_collections(recomputer, novel_id)
    return len(novel_ids)


# ---- 폴더 ----
async def ensure_default_folder(db: AsyncSession, user_id: uuid.UUID) -> Folder:
    """기본 폴더가 없으면 만든다"""
    folder = (await db.execute(
        select(Folder).where(Folder.user_id == user_id, Folder.is_default.is_(True))
    )).scalar_one_or_none()
    if folder is not None:
        return folder

    folder = Folder(
        user_id=user_id,
        name=DEFAULT_FOLDER_NAME,
        icon=DEFAULT_FOLDER_ICON,
        is_default=True,
        order=-1,
    )
    db.add(folder)
    try:
        await db.commit()
    except IntegrityError:
        # 동시 요청이 먼저 만들었음
        await db.rollback()
        return (await db.execute(
            select(Folder).where(Folder.user_id == user_id, Folder.is_default.is_(True))
        )).scalar_one()
    await db.refresh(folder)
    return folder


async def get_owned_folder(db: AsyncSession, user_id: uuid.UUID, folder_id: uuid.UUID) -> Folder:
    folder = (await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
    )).scalar_one_or_none()
    if folder is None:
        raise NotFoundError("폴더를 찾을 수 없습니다")
    return folder


async def list_folders(db: AsyncSession, user_id: uuid.UUID) -> List[Tuple[Folder, int]]:
    """(폴더, 보관 수) 목록. 기본 폴더가 항상 맨 앞."""
    await ensure_default_folder(db, user_id)
    folders = (await db.execute(
        select(Folder)
        .where(Folder.user_id == user_id)
        .order_by(Folder.is_default.desc(), Folder.order.asc(), Folder.created_at.asc())
    )).scalars().all()

    counts = dict((await db.execute(
        select(FavoriteFolder.folder_id, func.count(FavoriteFolder.id))
        .where(FavoriteFolder.user_id == user_id)
        .group_by(FavoriteFolder.folder_id)
    )).all())
    total = (await db.execute(
        select(func.count(Favorite.id)).where(Favorite.user_id == user_id)
    )).scalar_one()
    return [(f, int(total) if f.is_default else int(counts.get(f.id, 0))) for f in folders]


async def create_folder(db: AsyncSession, user_id: uuid.UUID, data: FolderCreate) -> Folder:
    await ensure_default_folder(db, user_id)
    folder = Folder(user_id=user_id, name=data.name, icon=data.icon)
    db.add(folder)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("같은 이름의 폴더가 이미 있습니다", {"name": data.name})
    await db.refresh(folder)
    return folder


async def update_folder(db: AsyncSession, folder: Folder, data: FolderUpdate) -> Folder:
    """기본 폴더는 이름/순서를 바꿀 수 없다"""
    if data.name is not None and data.name != folder.name:
        if folder.is_default:
            raise InvalidOperationError("기본 폴더 이름은 바꿀 수 없습니다")
        folder.name = data.name
    if data.icon is not None:
        folder.icon = data.icon
    if data.order is not None and not folder.is_default:
        folder.order = data.order
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("같은 이름의 폴더가 이미 있습니다", {"name": data.name})
    await db.refresh(folder)
    return folder


async def delete_folder(db: AsyncSession, folder: Folder) -> None:
    if folder.is_default:
        raise InvalidOperationError("기본 폴더는 삭제할 수 없습니다")
    await db.execute(delete(FavoriteFolder).where(FavoriteFolder.folder_id == folder.id))
    await db.delete(folder)
    await db.commit()


async def list_folder_favorites(
    db: AsyncSession,
    folder: Folder,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Favorite], int]:
    """폴더 안의 보관 소설. 기본 폴더면 전체 보관함."""
    if folder.is_default:
        return await list_favorites(db, folder.user_id, skip=skip, limit=limit)

    total = (await db.execute(
        select(func.count(FavoriteFolder.id)).where(FavoriteFolder.folder_id == folder.id)
    )).scalar_one()
    result = await db.execute(
        select(Favorite)
        .join(FavoriteFolder, FavoriteFolder.favorite_id == Favorite.id)
        .options(selectinload(Favorite.novel))
        .where(FavoriteFolder.folder_id == folder.id)
        .order_by(FavoriteFolder.added_at.desc(), Favorite.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total)


async def add_to_folder(db: AsyncSession, favorite: Favorite, folder: Folder) -> None:
    """이미 들어 있으면 아무것도 하지 않는다"""
    if folder.is_default:
        raise InvalidOperationError("기본 폴더에는 모든 보관 소설이 자동으로 포함됩니다")
    exists = (await db.execute(
        select(FavoriteFolder.id).where(
            FavoriteFolder.favorite_id == favorite.id,
            FavoriteFolder.folder_id == folder.id,
        )
    )).scalar_one_or_none()
    if exists is not None:
        return
    db.add(FavoriteFolder(
        user_id=favorite.user_id, favorite_id=favorite.id, folder_id=folder.id, added_at=utcnow()
    ))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()


async def remove_from_folder(db: AsyncSession, favorite: Favorite, folder: Folder) -> bool:
    if folder.is_default:
        raise InvalidOperationError("기본 폴더에서는 뺄 수 없습니다")
    result = await db.execute(
        delete(FavoriteFolder).where(
            FavoriteFolder.favorite_id == favorite.id,
            FavoriteFolder.folder_id == folder.id,
        )
    )
    await db.commit()
    return (result.rowcount or 0) > 0


async def get_favorite_folders(db: AsyncSession, favorite: Favorite) -> List[Folder]:
    """보관 소설이 속한 폴더 (기본 폴더 포함)"""
    default = await ensure_default_folder(db, favorite.user_id)
    folders = (await db.execute(
        select(Folder)
        .join(FavoriteFolder, FavoriteFolder.folder_id == Folder.id)
        .where(FavoriteFolder.favorite_id == favorite.id)
        .order_by(Folder.order.asc(), Folder.created_at.asc())
    )).scalars().all()
    return [default, *folders]


async def set_favorite_folders(
    db: AsyncSession,
    favorite: Favorite,
    folder_ids: List[uuid.UUID],
) -> List[Folder]:
    """보관 소설의 폴더를 목록 그대로 맞춘다. 남의 폴더/기본 폴더 ID는 무시."""
    valid_ids = set()
    if folder_ids:
        valid_ids = set((await db.execute(
            select(Folder.id).where(
                Folder.user_id == favorite.user_id,
                Folder.is_default.is_(False),
                Folder.id.in_(list(folder_ids)),
            )
        )).scalars().all())
    current_ids = set((await db.execute(
        select(FavoriteFolder.folder_id).where(FavoriteFolder.favorite_id == favorite.id)
    )).scalars().all())

    to_remove = current_ids - valid_ids
    if to_remove:
        await db.execute(
            delete(FavoriteFolder).where(
                FavoriteFolder.favorite_id == favorite.id,
                FavoriteFolder.folder_id.in_(list(to_remove)),
            )
        )
    for folder_id in valid_ids - current_ids:
        db.add(FavoriteFolder(
            user_id=favorite.user_id, favorite_id=favorite.id, folder_id=folder_id, added_at=utcnow()
        ))
    await db.commit()
    return await get_favorite_folders(db, favorite)
