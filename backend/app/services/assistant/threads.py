"""Conversation thread resolution.

Review note:
- 显式 thread_id 必须属于该项目，否则 ThreadNotFoundError。
- 未给 thread_id 时复用活跃窗口内最近的线程，没有则新建；同一项目的解析过程串行化。
- 这里不刷新 last_message_at，由回合收尾统一刷新。
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.crud.conversation import thread_crud
from app.models.base import utcnow
from app.models.conversation import ChatThread
from app.services.assistant.errors import ThreadNotFoundError

TITLE_MAX_CHARS = 50
TITLE_KEEP_CHARS = 47

# 没有协程持有时锁会被回收，不随项目数增长
_project_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(project_id: str) -> asyncio.Lock:
    lock = _project_locks.get(project_id)
    if lock is None:
        lock = asyncio.Lock()
        _project_locks[project_id] = lock
    return lock


def make_thread_title(message: str) -> str:
    if len(message) > TITLE_MAX_CHARS:
        return message[:TITLE_KEEP_CHARS] + "..."
    return message


async def resolve_thread(
    db: AsyncSession,
    project_id: str,
    message: str,
    thread_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ChatThread:
    """选出本条消息所属的线程"""
    if thread_id:
        thread = await thread_crud.get_for_project(db, project_id, thread_id)
        if not thread:
            raise ThreadNotFoundError()
        return thread

    now = now or utcnow()
    since = now - timedelta(hours=settings.THREAD_ACTIVE_HOURS)
    async with _lock_for(project_id):
        thread = await thread_crud.find_active(db, project_id, since)
        if thread:
            return thread
        return await thread_crud.create(db, project_id, make_thread_title(message), now=now)
