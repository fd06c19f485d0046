"""Fallback reply when the tool loop ends without text."""

from __future__ import annotations

import logging

from app.crud.project import ProjectProfile
from app.schemas.assistant import IntentClassification, ToolInvocationRecord
from app.services.assistant.catalog import ToolName
from app.services.assistant.orchestrator import LoopOutcome

logger = logging.getLogger("uvicorn.error")

FALLBACK_RESULTS = 3

PROVIDER_DOWN_REPLY = (
    "I'm having a little trouble putting together a full answer right now, "
    "but I'm still here to help with your project. "
    "Could you tell me a bit more about what you'd like to work on next?"
)


def describe_results(resource_type: str, content_type: str) -> str:
    if resource_type == "inspiration" and content_type == "visual":
        return "visual inspiration and photo galleries"
    if resource_type == "tutorial":
        return "step-by-step tutorials and guides"
    if resource_type == "materials":
        return "materials and tools recommendations"
    return "helpful resources"


def encouraging_message(query: str, resource_type: str, content_type: str, count: int) -> str:
    return (
        f"Great! I found some excellent {describe_results(resource_type, content_type)} "
        f"for your {query} project. "
        f"The search results include {count} carefully selected resources "
        "that should give you the inspiration and guidance you need. "
        "These results are specifically tailored to your project context and should provide "
        "exactly what you're looking for. Take a look at the options below and let me know "
        "if you'd like me to find anything more specific!"
    )


async def synthesize_fallback(
    search_adapter,
    outcome: LoopOutcome,
    classification: IntentClassification,
    profile: ProjectProfile,
    message: str,
) -> str:
    """
    loop 文本为空时直接搜索一次，生成鼓励性回复

    Returns:
        最终文本；搜索有结果时会把 search_web_resources 调用记录追加到 outcome.invocations
    """
    if outcome.text.strip():
        return outcome.text

    query = classification.specific_query or message
    resource_type = classification.resource_type or "inspiration"
    content_type = classification.content_type or "mixed"

    result = await search_adapter.search(
        query,
        resource_type,
        profile,
        content_type=content_type,
        num_results=FALLBACK_RESULTS,
    )
    links = result.get("links") or []
    logger.info("assistant-fallback query=%s results=%s", query[:180], len(links))

    if result.get("success") and links:
        outcome.invocations.append(
            ToolInvocationRecord(
                name=ToolName.SEARCH_WEB_RESOURCES.value,
                arguments={
                    "query": query,
                    "resource_type": resource_type,
                    "content_type": content_type,
                    "num_results": FALLBACK_RESULTS,
                },
                result=result,
            )
        )
        return encouraging_message(query, resource_type, content_type, len(links))

    if outcome.provider_failed:
        return PROVIDER_DOWN_REPLY
    return outcome.text

