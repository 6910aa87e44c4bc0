"""
서비스 계층 예외

API 계층에서 HTTPException으로 변환된다.
"""

from typing import Optional


class ServiceError(ValueError):
    """서비스 예외 기본 클래스"""

    status_code = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class NotFoundError(ServiceError):
    """대상 엔티티 없음"""

    status_code = 404


class PermissionDeniedError(ServiceError):
    """소유자가 아님"""

    status_code = 403


class ChapterNumberConflictError(ServiceError):
    """같은 소설/번외 구분 안에서 회차 번호 중복"""

    status_code = 409

    def __init__(self, chapter_number: int, is_extra: bool):
        label = "번외" if is_extra else "회차"
        super().__init__(
            f"{label} {chapter_number}번이 이미 존재합니다. 다른 번호를 사용하세요.",
            {"chapter_number": chapter_number, "is_extra": is_extra},
        )
        self.chapter_number = chapter_number
        self.is_extra = is_extra


class InvalidOperationError(ServiceError):
    """비즈니스 규칙 위반"""

    status_code = 400


class ConflictError(ServiceError):
    """유니크 제약 충돌 (이미 존재함)"""

    status_code = 409
