"""Language-model provider wrapper for the project assistant.

Review note:
- 所有模型调用都经过这里：structured() 走强制函数调用拿结构化参数，respond() 走带工具的自动调用。
- 响应解析是严格的：缺 choices、工具参数不是 JSON 对象、缺 tool_call id 都抛 ProviderResponseError。
- 目录外的工具名（含供应商内置工具）只记录在 ignored_tools，不进入分发。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError
from openai.types.chat import ChatCompletion

from app.config import settings
from app.services.assistant.catalog import ToolName
from app.services.assistant.errors import ProviderError, ProviderResponseError
from app.utils.openai_helper import (
    OpenAIConfigError,
    build_client,
    create_chat_completion,
    forced_tool_choice,
)


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: ToolName
    arguments: Dict[str, Any] = field(default_factory=dict)

    def as_message_entry(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name.value,
                "arguments": json.dumps(self.arguments, ensure_ascii=False),
            },
        }


@dataclass(frozen=True)
class ModelTurn:
    """一次模型回复：文本 + 可分发的工具调用"""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    ignored_tools: List[str] = field(default_factory=list)

    def assistant_message(self) -> Dict[str, Any]:
        """回填给模型的 assistant 消息，只带已识别的工具调用"""
        message: Dict[str, Any] = {"role": "assistant", "content": self.text or None}
        if self.tool_calls:
            message["tool_calls"] = [call.as_message_entry() for call in self.tool_calls]
        return message


def _first_message(completion: ChatCompletion):
    choices = getattr(completion, "choices", None) or []
    if not choices:
        raise ProviderResponseError("模型返回缺少 choices。")
    message = getattr(choices[0], "message", None)
    if message is None:
        raise ProviderResponseError("模型返回缺少 message。")
    return message


def _load_arguments(raw: Any, name: str) -> Dict[str, Any]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ProviderResponseError(f"工具 {name} 的参数不是合法 JSON。") from exc
    if not isinstance(payload, dict):
        raise ProviderResponseError(f"工具 {name} 的参数不是 JSON 对象。")
    return payload


def parse_model_turn(completion: ChatCompletion) -> ModelTurn:
    """把 Chat Completion 解析成 ModelTurn"""
    message = _first_message(completion)
    text = message.content or ""

    tool_calls: List[ToolCall] = []
    ignored: List[str] = []
    for raw_call in getattr(message, "tool_calls", None) or []:
        function = getattr(raw_call, "function", None)
        raw_name = getattr(function, "name", None) if function is not None else None
        name = ToolName.parse(raw_name) if getattr(raw_call, "type", None) == "function" else None
        if name is None:
            ignored.append(str(raw_name or getattr(raw_call, "type", "") or "unknown"))
            continue
        call_id = getattr(raw_call, "id", None)
        if not call_id:
            raise ProviderResponseError(f"工具调用 {name.value} 缺少 id。")
        tool_calls.append(
            ToolCall(
                id=str(call_id),
                name=name,
                arguments=_load_arguments(function.arguments, name.value),
            )
        )

    return ModelTurn(text=text, tool_calls=tool_calls, ignored_tools=ignored)


def parse_function_arguments(completion: ChatCompletion, name: str) -> Dict[str, Any]:
    """取出强制函数调用的参数"""
    message = _first_message(completion)
    for raw_call in getattr(message, "tool_calls", None) or []:
        function = getattr(raw_call, "function", None)
        if function is not None and function.name == name:
            return _load_arguments(function.arguments, name)
    raise ProviderResponseError(f"模型没有调用函数 {name}。")


class AssistantProvider:
    """Chat Completions 封装：对话主模型 + 结构化辅助模型"""

    def __init__(
        self,
        chat_model: str,
        utility_model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.chat_model = chat_model
        self.utility_model = utility_model
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_sec = timeout_sec
        self._client = client

    @classmethod
    def from_settings(cls) -> "AssistantProvider":
        return cls(
            chat_model=settings.CHAT_MODEL,
            utility_model=settings.UTILITY_MODEL,
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout_sec=settings.OPENAI_TIMEOUT_SEC,
        )

    def _get_client(self) -> AsyncOpenAI:
        # 延迟创建：未配置 key 时服务仍可启动，调用时按 provider 失败处理
        if self._client is None:
            try:
                self._client = build_client(self.api_key, self.base_url, self.timeout_sec)
            except OpenAIConfigError as exc:
                raise ProviderError(str(exc)) from exc
        return self._client

    async def _complete(self, **kwargs: Any) -> ChatCompletion:
        client = self._get_client()
        try:
            return await create_chat_completion(client, **kwargs)
        except OpenAIError as exc:
            raise ProviderError(f"模型调用失败: {exc}") from exc

    async def structured(
        self,
        *,
        tool: Dict[str, Any],
        system_prompt: str,
        user_content: str,
        temperature: Optional[float] = 0.1,
    ) -> Dict[str, Any]:
        """强制调用 tool 指定的函数，返回其参数对象"""
        name = tool["function"]["name"]
        completion = await self._complete(
            model=self.utility_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            tools=[tool],
            tool_choice=forced_tool_choice(name),
            temperature=temperature,
        )
        return parse_function_arguments(completion, name)

    async def respond(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_choice: Any = "auto",
    ) -> ModelTurn:
        """带工具目录调用对话模型"""
        completion = await self._complete(
            model=self.chat_model,
            messages=messages,
            tools=tools,
            tool_choice=tool_choice,
        )
        return parse_model_turn(completion)
