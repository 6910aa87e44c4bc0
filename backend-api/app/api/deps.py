"""
API 공용 의존성
"""

from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.stats import StatsServices


def get_stats_services(request: Request) -> StatsServices:
    """lifespan 에서 만든 통계 컴포넌트 묶음"""
    return request.app.state.stats


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """응답 이후 작업용 세션 팩토리 (요청 세션은 응답과 함께 닫힌다)"""
    return request.app.state.session_factory


def get_client_ip(request: Request) -> Optional[str]:
    """프록시 뒤에서는 X-Forwarded-For 첫 번째 값, 아니면 접속 주소"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return None
