"""Project assistant: one chat turn from message to persisted reply.

Review note:
- 流程：项目画像 -> 线程解析 -> 历史窗口 -> 意图分类 -> 提示词 -> 工具循环 -> 兜底 -> 收尾落库。
- 未找到项目/线程直接抛出；模型与搜索失败都在引擎内降级；数据库错误向上抛。
- 每回合写 user、assistant 各一条，assistant 消息只补写第一条工具调用记录。
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.crud.conversation import chat_message_crud, thread_crud
from app.crud.project import project_crud
from app.models.base import utcnow
from app.models.conversation import ChatThread
from app.schemas.assistant import ChatMetadata, ChatResult, IntentClassification, ToolInvocationRecord
from app.services.assistant.catalog import ToolName
from app.services.assistant.errors import ProjectNotFoundError
from app.services.assistant.fallback import synthesize_fallback
from app.services.assistant.intent import classify_intent
from app.services.assistant.orchestrator import run_tool_loop
from app.services.assistant.provider import AssistantProvider
from app.services.assistant.search import ResourceSearchAdapter
from app.services.assistant.threads import resolve_thread
from app.services.assistant.tools import ToolContext, ToolDispatcher
from app.services.sources.exa.search_client import ExaSearchClient
from app.utils.system_prompt import build_messages, build_system_prompt, history_turns

logger = logging.getLogger("uvicorn.error")


def build_metadata(
    first: Optional[ToolInvocationRecord],
    classification: IntentClassification,
) -> ChatMetadata:
    if first is None:
        return ChatMetadata()

    is_search = first.name == ToolName.SEARCH_WEB_RESOURCES.value
    links = (first.result.get("links") or []) if is_search else []
    return ChatMetadata(
        has_search_results=bool(is_search and first.result.get("success") and links),
        search_results_count=len(links),
        content_type=classification.content_type or "mixed",
        resource_type=classification.resource_type,
        query_optimization=first.result.get("query_optimization"),
    )


def response_type_for(first: Optional[ToolInvocationRecord]) -> str:
    if first is None:
        return "conversation"
    if first.name == ToolName.SEARCH_WEB_RESOURCES.value:
        return "search_results"
    return "function_call"


class ProjectAssistant:
    """项目对话助手"""

    def __init__(self, provider, search_client) -> None:
        self.provider = provider
        self.search_adapter = ResourceSearchAdapter(provider, search_client)
        self.dispatcher = ToolDispatcher(provider, self.search_adapter)

    @classmethod
    def from_settings(cls) -> "ProjectAssistant":
        return cls(AssistantProvider.from_settings(), ExaSearchClient.from_settings())

    async def send_message(
        self,
        db: AsyncSession,
        project_id: str,
        message: str,
        thread_id: Optional[str] = None,
    ) -> ChatResult:
        """
        处理一条用户消息

        Raises:
            ProjectNotFoundError: 项目不存在
            ThreadNotFoundError: 显式 thread_id 不属于该项目
        """
        profile = await project_crud.get_profile(db, project_id)
        if not profile:
            raise ProjectNotFoundError()

        thread = await resolve_thread(db, project_id, message, thread_id)
        history = await chat_message_crud.list_recent(db, thread.id, settings.CHAT_HISTORY_LIMIT)
        logger.info(
            "assistant-turn-start project=%s thread=%s history=%s message=%s",
            project_id,
            thread.id,
            len(history),
            message[:180],
        )

        classification = await classify_intent(self.provider, message, profile, history_turns(history))
        system_prompt = build_system_prompt(profile, classification, message)
        messages = build_messages(system_prompt, history, message)

        context = ToolContext(profile=profile, classification=classification)
        outcome = await run_tool_loop(self.provider, self.dispatcher, messages, context)
        text = await synthesize_fallback(self.search_adapter, outcome, classification, profile, message)

        return await self._finalize(db, thread, message, text, outcome.invocations, classification)

    async def _finalize(
        self,
        db: AsyncSession,
        thread: ChatThread,
        message: str,
        text: str,
        invocations: List[ToolInvocationRecord],
        classification: IntentClassification,
    ) -> ChatResult:
        now = utcnow()
        await chat_message_crud.create(db, thread.project_id, thread.id, "user", message, created_at=now)
        # 同一回合内 user 排在 assistant 之前
        assistant_turn = await chat_message_crud.create(
            db,
            thread.project_id,
            thread.id,
            "assistant",
            text,
            created_at=now + timedelta(microseconds=1),
        )

        first = invocations[0] if invocations else None
        if first is not None:
            await chat_message_crud.attach_tool_invocation(db, assistant_turn, first.model_dump())
        await thread_crud.touch(db, thread.id, now=now)

        result = ChatResult(
            message=text,
            thread_id=thread.id,
            response_type=response_type_for(first),
            function_call=first,
            function_calls=list(invocations),
            metadata=build_metadata(first, classification),
        )
        logger.info(
            "assistant-turn-done thread=%s response_type=%s invocations=%s",
            thread.id,
            result.response_type,
            len(invocations),
        )
        return result
