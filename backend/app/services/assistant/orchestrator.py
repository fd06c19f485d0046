"""Bounded tool-call loop against the conversational model."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.config import settings
from app.schemas.assistant import ToolInvocationRecord
from app.services.assistant.catalog import tool_catalog
from app.services.assistant.errors import ProviderError
from app.services.assistant.provider import ModelTurn
from app.services.assistant.tools import ToolContext, ToolDispatcher

logger = logging.getLogger("uvicorn.error")


@dataclass
class LoopOutcome:
    text: str = ""
    invocations: List[ToolInvocationRecord] = field(default_factory=list)
    rounds: int = 0
    provider_failed: bool = False


def tool_output_message(call_id: str, result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "role": "tool",
        "tool_call_id": call_id,
        "content": json.dumps(result, ensure_ascii=False, default=str),
    }


async def run_tool_loop(
    provider,
    dispatcher: ToolDispatcher,
    messages: List[Dict[str, Any]],
    context: ToolContext,
    max_rounds: Optional[int] = None,
) -> LoopOutcome:
    """
    驱动模型与工具的多轮交互

    第 0 轮带完整工具目录调用模型；之后最多 max_rounds 轮：
    没有可识别的工具调用就结束，否则按顺序执行全部调用、回填结果、再调用模型。
    模型调用失败时以已有文本结束。
    """
    max_rounds = settings.MAX_TOOL_ROUNDS if max_rounds is None else max_rounds
    tools = tool_catalog()
    conversation = list(messages)
    outcome = LoopOutcome()

    try:
        turn: ModelTurn = await provider.respond(conversation, tools, tool_choice="auto")
    except ProviderError as exc:
        logger.warning("assistant-loop-provider-failed round=0 reason=%s", str(exc)[:180])
        outcome.provider_failed = True
        return outcome

    for _ in range(max_rounds):
        if turn.ignored_tools:
            logger.info("assistant-loop-ignored-tools names=%s", ",".join(turn.ignored_tools))
        if not turn.tool_calls:
            break

        outcome.rounds += 1
        conversation.append(turn.assistant_message())
        for call in turn.tool_calls:
            result = await dispatcher.dispatch(call, context)
            outcome.invocations.append(
                ToolInvocationRecord(name=call.name.value, arguments=call.arguments, result=result)
            )
            conversation.append(tool_output_message(call.id, result))

        try:
            turn = await provider.respond(conversation, tools, tool_choice="auto")
        except ProviderError as exc:
            logger.warning(
                "assistant-loop-provider-failed round=%s reason=%s", outcome.rounds, str(exc)[:180]
            )
            outcome.provider_failed = True
            break

    outcome.text = turn.text or ""
    logger.info(
        "assistant-loop rounds=%s invocations=%s text_len=%s",
        outcome.rounds,
        len(outcome.invocations),
        len(outcome.text),
    )
    return outcome
