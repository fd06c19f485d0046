"""助手线程和消息的CRUD操作

Review note:
- 消息表对助手来说是追加写：每回合 user/assistant 各创建一条。
- assistant 消息只允许在创建后立刻补写一次工具调用记录（attach_tool_invocation）。
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from typing import Optional, List, Dict, Any
from datetime import datetime
import json
import uuid

from app.models.base import utcnow
from app.models.conversation import ChatThread
from app.models.message import ChatMessage


class CRUDThread:
    """线程CRUD操作"""

    async def get_for_project(
        self,
        db: AsyncSession,
        project_id: str,
        thread_id: str,
    ) -> Optional[ChatThread]:
        """按项目范围获取线程"""
        result = await db.execute(
            select(ChatThread).where(
                ChatThread.id == thread_id,
                ChatThread.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_active(
        self,
        db: AsyncSession,
        project_id: str,
        since: datetime,
    ) -> Optional[ChatThread]:
        """获取 since 之后仍有消息的最近线程"""
        result = await db.execute(
            select(ChatThread)
            .where(
                ChatThread.project_id == project_id,
                ChatThread.last_message_at >= since,
            )
            .order_by(ChatThread.last_message_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_by_project(
        self,
        db: AsyncSession,
        project_id: str,
    ) -> List[ChatThread]:
        """获取项目的所有线程（按最近活跃排序）"""
        result = await db.execute(
            select(ChatThread)
            .where(ChatThread.project_id == project_id)
            .order_by(ChatThread.last_message_at.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        project_id: str,
        title: Optional[str],
        now: Optional[datetime] = None,
    ) -> ChatThread:
        """创建线程"""
        now = now or utcnow()
        db_obj = ChatThread(
            id=str(uuid.uuid4()),
            project_id=project_id,
            title=title,
            started_at=now,
            last_message_at=now,
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def touch(
        self,
        db: AsyncSession,
        thread_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[ChatThread]:
        """刷新线程的 last_message_at"""
        result = await db.execute(select(ChatThread).where(ChatThread.id == thread_id))
        db_obj = result.scalar_one_or_none()
        if not db_obj:
            return None
        db_obj.last_message_at = now or utcnow()
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, project_id: str, thread_id: str) -> bool:
        """删除线程及其消息（SQLite 默认不启用外键级联）"""
        await db.execute(
            delete(ChatMessage).where(
                ChatMessage.thread_id == thread_id,
                ChatMessage.project_id == project_id,
            )
        )
        result = await db.execute(
            delete(ChatThread).where(
                ChatThread.id == thread_id,
                ChatThread.project_id == project_id,
            )
        )
        await db.commit()
        return result.rowcount > 0

    async def get_message_count(self, db: AsyncSession, thread_id: str) -> int:
        """获取线程的消息数量"""
        result = await db.execute(
            select(func.count(ChatMessage.id)).where(ChatMessage.thread_id == thread_id)
        )
        return result.scalar() or 0


class CRUDChatMessage:
    """消息CRUD操作"""

    async def get(self, db: AsyncSession, message_id: str) -> Optional[ChatMessage]:
        """获取单个消息"""
        result = await db.execute(select(ChatMessage).where(ChatMessage.id == message_id))
        return result.scalar_one_or_none()

    async def list_recent(
        self,
        db: AsyncSession,
        thread_id: str,
        limit: int,
    ) -> List[ChatMessage]:
        """获取线程最近 limit 条消息，按创建时间升序返回"""
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.thread_id == thread_id)
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
        )
        recent = list(result.scalars().all())
        recent.reverse()
        return recent

    async def list_by_project(
        self,
        db: AsyncSession,
        project_id: str,
        limit: int,
        thread_id: Optional[str] = None,
    ) -> List[ChatMessage]:
        """获取项目最近 limit 条消息（可按线程过滤），升序返回"""
        query = select(ChatMessage).where(ChatMessage.project_id == project_id)
        if thread_id:
            query = query.where(ChatMessage.thread_id == thread_id)
        result = await db.execute(
            query.order_by(ChatMessage.created_at.desc()).limit(limit)
        )
        recent = list(result.scalars().all())
        recent.reverse()
        return recent

    async def create(
        self,
        db: AsyncSession,
        project_id: str,
        thread_id: str,
        role: str,
        content: str,
        created_at: Optional[datetime] = None,
    ) -> ChatMessage:
        """创建消息"""
        db_obj = ChatMessage(
            id=str(uuid.uuid4()),
            project_id=project_id,
            thread_id=thread_id,
            role=role,
            content=content,
            created_at=created_at or utcnow(),
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def attach_tool_invocation(
        self,
        db: AsyncSession,
        message: ChatMessage,
        record: Dict[str, Any],
    ) -> ChatMessage:
        """给刚创建的 assistant 消息补写工具调用记录（只写一次）"""
        if message.function_call:
            raise ValueError(f"消息 {message.id} 已有工具调用记录，不允许覆盖。")
        message.function_call = json.dumps(record, ensure_ascii=False, default=str)
        await db.commit()
        await db.refresh(message)
        return message

    async def delete_by_project(self, db: AsyncSession, project_id: str) -> int:
        """删除项目的所有消息"""
        result = await db.execute(
            delete(ChatMessage).where(ChatMessage.project_id == project_id)
        )
        await db.commit()
        return result.rowcount or 0


# 创建实例
thread_crud = CRUDThread()
chat_message_crud = CRUDChatMessage()
