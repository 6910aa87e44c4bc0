"""
모델 패키지
"""

from .user import User
from .novel import Novel, NovelStatus
from .chapter import Chapter
from .chapter_view_record import ChapterViewRecord
from .reading_history import ReadingHistory
from .favorite import Favorite, Folder, FavoriteFolder
from .comment import Comment, CommentLike

__all__ = [
    "User",
    "Novel",
    "NovelStatus",
    "Chapter",
    "ChapterViewRecord",
    "ReadingHistory",
    "Favorite",
    "Folder",
    "FavoriteFolder",
    "Comment",
    "CommentLike",
]
