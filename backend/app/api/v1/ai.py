"""项目助手API

Review note:
- 项目/线程不存在返回 404（原样透传错误文案），其余异常统一 500 "Failed to process AI chat"。
- 历史、线程列表接口同样先校验项目存在。
- 历史删除、线程删除是管理接口；对话引擎本身从不删除线程。
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from functools import lru_cache
from typing import Optional
import logging

from app.config import settings
from app.database import get_session
from app.crud.conversation import thread_crud, chat_message_crud
from app.crud.project import project_crud
from app.schemas.chat import ChatRequest, ChatResponse
from app.schemas.conversation import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ThreadListResponse,
    ThreadResponse,
)
from app.services.assistant.engine import ProjectAssistant
from app.services.assistant.errors import ProjectNotFoundError, ThreadNotFoundError

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@lru_cache
def get_assistant() -> ProjectAssistant:
    """助手单例（测试里通过 dependency_overrides 替换）"""
    return ProjectAssistant.from_settings()


async def ensure_project(db: AsyncSession, project_id: str) -> None:
    if not await project_crud.get(db, project_id):
        raise HTTPException(status_code=404, detail=str(ProjectNotFoundError()))


@router.post("/projects/{project_id}/ai/chat", response_model=ChatResponse)
async def chat_with_project(
    project_id: str,
    request: ChatRequest,
    db: AsyncSession = Depends(get_session),
    assistant: ProjectAssistant = Depends(get_assistant),
):
    """发送一条消息给项目助手"""
    try:
        result = await assistant.send_message(db, project_id, request.message, request.thread_id)
    except (ProjectNotFoundError, ThreadNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception:
        logger.exception("assistant-chat-failed project=%s", project_id)
        raise HTTPException(status_code=500, detail="Failed to process AI chat")

    return ChatResponse(success=True, data=result)


@router.get("/projects/{project_id}/ai/history", response_model=ChatHistoryResponse)
async def get_chat_history(
    project_id: str,
    thread_id: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
):
    """获取项目最近的对话消息（升序）"""
    await ensure_project(db, project_id)
    messages = await chat_message_crud.list_by_project(
        db,
        project_id,
        limit=settings.CHAT_HISTORY_API_LIMIT,
        thread_id=thread_id,
    )
    return ChatHistoryResponse(
        success=True,
        data=[ChatMessageResponse.model_validate(m) for m in messages],
    )


@router.delete("/projects/{project_id}/ai/history")
async def clear_chat_history(
    project_id: str,
    db: AsyncSession = Depends(get_session),
):
    """清空项目的对话消息（保留线程）"""
    await ensure_project(db, project_id)
    deleted = await chat_message_crud.delete_by_project(db, project_id)
    return {"success": True, "message": "Chat history cleared", "deleted": deleted}


@router.get("/projects/{project_id}/ai/threads", response_model=ThreadListResponse)
async def get_threads(
    project_id: str,
    db: AsyncSession = Depends(get_session),
):
    """获取项目的线程列表"""
    await ensure_project(db, project_id)
    threads = await thread_crud.list_by_project(db, project_id)
    items = []
    for thread in threads:
        item = ThreadResponse.model_validate(thread)
        item.message_count = await thread_crud.get_message_count(db, thread.id)
        items.append(item)
    return ThreadListResponse(threads=items)


@router.delete("/projects/{project_id}/ai/threads/{thread_id}")
async def delete_thread(
    project_id: str,
    thread_id: str,
    db: AsyncSession = Depends(get_session),
):
    """删除线程及其消息"""
    success = await thread_crud.delete(db, project_id, thread_id)
    if not success:
        raise HTTPException(status_code=404, detail="Chat thread not found")
    return {"success": True, "message": "Thread deleted"}
