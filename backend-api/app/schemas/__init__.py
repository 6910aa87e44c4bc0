"""
Pydantic 스키마 패키지
"""

from .user import (
    UserResponse,
    ReadingHistoryItem,
    ReadingHistoryListResponse,
)
from .novel import (
    NovelCreate,
    NovelUpdate,
    NovelStatusUpdate,
    NovelResponse,
    NovelDetail,
    NovelListResponse,
    ChapterCreate,
    ChapterUpdate,
    ChapterResponse,
    ChapterListItem,
    ChapterBulkDelete,
    ChapterBulkDeleteResponse,
    ChapterReadResponse,
)
from .stats import (
    ReconcileOneResponse,
    ReconcileAllResponse,
    AuthorStatsResponse,
)
from .favorite import (
    FavoriteCreate,
    FavoriteUpdate,
    FavoriteResponse,
    FavoriteWithNovel,
    FavoriteListResponse,
    FavoriteStatusResponse,
    FolderCreate,
    FolderUpdate,
    FolderResponse,
    FavoriteFoldersUpdate,
)
from .comment import (
    CommentCreate,
    CommentUpdate,
    ReplyCreate,
    CommentResponse,
    CommentWithReplies,
    CommentListResponse,
    CommentLikeResponse,
)

__all__ = [
    "UserResponse",
    "ReadingHistoryItem",
    "ReadingHistoryListResponse",
    "NovelCreate",
    "NovelUpdate",
    "NovelStatusUpdate",
    "NovelResponse",
    "NovelDetail",
    "NovelListResponse",
    "ChapterCreate",
    "ChapterUpdate",
    "ChapterResponse",
    "ChapterListItem",
    "ChapterBulkDelete",
    "ChapterBulkDeleteResponse",
    "ChapterReadResponse",
    "ReconcileOneResponse",
    "ReconcileAllResponse",
    "AuthorStatsResponse",
    "FavoriteCreate",
    "FavoriteUpdate",
    "FavoriteResponse",
    "FavoriteWithNovel",
    "FavoriteListResponse",
    "FavoriteStatusResponse",
    "FolderCreate",
    "FolderUpdate",
    "FolderResponse",
    "FavoriteFoldersUpdate",
    "CommentCreate",
    "CommentUpdate",
    "ReplyCreate",
    "CommentResponse",
    "CommentWithReplies",
    "CommentListResponse",
    "CommentLikeResponse",
]
