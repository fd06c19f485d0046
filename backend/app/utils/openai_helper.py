"""OpenAI辅助函数"""
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion
from typing import Any, Dict, List, Optional
from httpx import Timeout

from app.config import settings


class OpenAIConfigError(ValueError):
    """Raised when OpenAI configuration is invalid."""


def build_client(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_sec: Optional[float] = None,
) -> AsyncOpenAI:
    """
    构建 AsyncOpenAI 客户端

    Args:
        api_key: 为空时回退到 .env 的 OPENAI_API_KEY
        base_url: 为空时回退到 .env 的 OPENAI_BASE_URL
        timeout_sec: 请求超时（秒）
    """
    api_key = api_key or settings.OPENAI_API_KEY
    if not api_key:
        raise OpenAIConfigError("OPENAI_API_KEY 未配置。")

    client_kwargs = {
        "api_key": api_key,
        "timeout": Timeout(timeout_sec or settings.OPENAI_TIMEOUT_SEC),
    }

    # 如果提供了base_url，设置它
    base_url = base_url or settings.OPENAI_BASE_URL
    if base_url:
        client_kwargs["base_url"] = base_url

    return AsyncOpenAI(**client_kwargs)


async def create_chat_completion(
    client: AsyncOpenAI,
    model: str,
    messages: List[Dict[str, Any]],
    tools: Optional[List[Dict[str, Any]]] = None,
    tool_choice: Any = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> ChatCompletion:
    """
    非流式调用 Chat Completion API

    只透传显式给出的可选参数，避免部分模型拒绝 temperature 等字段。
    """
    request: Dict[str, Any] = {
        "model": model,
        "messages": messages,
    }
    if tools:
        request["tools"] = tools
        if tool_choice is not None:
            request["tool_choice"] = tool_choice
    if temperature is not None:
        request["temperature"] = temperature
    if max_tokens is not None:
        request["max_tokens"] = max_tokens

    return await client.chat.completions.create(**request)


def function_tool(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    """把函数描述包装成 Chat Completions 的 tools 条目"""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": parameters,
        },
    }


def forced_tool_choice(name: str) -> Dict[str, Any]:
    """强制模型调用指定函数（用于结构化输出）"""
    return {"type": "function", "function": {"name": name}}
