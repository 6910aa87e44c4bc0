"""
요청 수명과 분리된 비동기 작업 유틸리티
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

# 이벤트 루프는 태스크를 약하게 참조하므로 완료 전까지 강한 참조를 유지
_background_tasks: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"[background] {task.get_name()} 실패: {exc!r}")


def spawn(coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
    """fire-and-forget 태스크 실행. 응답 취소와 무관하게 끝까지 실행된다."""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain(timeout: float | None = None) -> None:
    """남은 백그라운드 작업 대기 (종료 시/테스트용)"""
    pending = list(_background_tasks)
    if pending:
        await asyncio.wait(pending, timeout=timeout)
