"""Resource search adapter: query optimization + Exa search + result shaping.

Review note:
- 两步：先用辅助模型按项目上下文优化搜索词（失败则用原词），再调 Exa。
- 返回条数 = min(请求数, SEARCH_MAX_RESULTS)；0 条是成功，搜索服务失败才是 success=False。
- 首次结果不足请求数一半时，依次用简化词、项目标题、通用词补搜，按 url 去重合并。
- 成功结果按 (规范化查询, 资源类型, 内容类型, 项目) 做进程内 TTL 缓存。
"""

from __future__ import annotations

import logging
import math
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from app.config import settings
from app.crud.project import ProjectProfile
from app.schemas.assistant import QueryOptimization
from app.services.assistant.errors import ProviderError
from app.services.sources.exa.results import dedupe_by_url, rank_results, search_suggestion
from app.services.sources.exa.search_client import (
    SearchServiceError,
    build_generic_query,
    build_title_query,
    simplify_query,
)
from app.utils.openai_helper import function_tool

logger = logging.getLogger("uvicorn.error")

UNAVAILABLE_MESSAGE = (
    "Web search is temporarily unavailable. "
    "Try searching directly on YouTube, Home Depot, or other DIY websites."
)

# 首次结果少于请求数的这个比例时补搜
BACKUP_TRIGGER_RATIO = 0.5

OPTIMIZE_QUERY_TOOL = function_tool(
    "optimize_search_query",
    "Generate an optimized search query for Exa.ai",
    {
        "type": "object",
        "properties": {
            "optimized_query": {"type": "string", "description": "The optimized search query for Exa.ai"},
            "search_terms": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Key search terms used in the query",
            },
            "reasoning": {
                "type": "string",
                "description": "Explanation of why this query will find relevant results",
            },
        },
        "required": ["optimized_query", "search_terms", "reasoning"],
    },
)

OPTIMIZER_PROMPT = """You are a search query optimization expert for DIY projects. Your job is to create highly relevant search queries for Exa.ai based on user requests and project context.

Project Context:
- Title: {title}
- Goal: {goal}
- Description: {description}
- Materials: {materials}

User wants: {resource_type} content ({content_type} format)
User message: "{query}"

Create a focused search query that will find exactly what the user needs for their specific project. Be precise and avoid generic terms that could lead to irrelevant results.

Guidelines:
- Use specific project-related terms from the context
- Include relevant technical terms for the project type
- For visual content: add terms like "photos", "gallery", "before after", "examples"
- For videos: add terms like "tutorial", "how to", "step by step"
- For articles: add terms like "guide", "instructions", "tips"
- Avoid overly broad terms that could match unrelated projects
- Focus on the specific task or goal, not just general DIY"""


class SearchCache:
    """进程内 TTL 缓存，超出容量时淘汰最早写入的条目"""

    def __init__(self, ttl_sec: int, max_entries: int) -> None:
        self.ttl_sec = ttl_sec
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[str, ...], Tuple[float, Dict[str, Any]]]" = OrderedDict()

    @staticmethod
    def make_key(query: str, resource_type: str, content_type: str, project_id: Optional[str]) -> Tuple[str, ...]:
        normalized = " ".join(query.lower().split())
        return (normalized, resource_type, content_type, project_id or "global")

    def get(self, key: Tuple[str, ...]) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if not entry:
            return None
        stored_at, value = entry
        if time.monotonic() - stored_at >= self.ttl_sec:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Tuple[str, ...], value: Dict[str, Any]) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (time.monotonic(), value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ResourceSearchAdapter:
    def __init__(self, provider, search_client, cache: Optional[SearchCache] = None) -> None:
        self.provider = provider
        self.search_client = search_client
        self.cache = cache or SearchCache(settings.SEARCH_CACHE_TTL_SEC, settings.SEARCH_CACHE_MAX_ENTRIES)

    async def optimize_query(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        profile: ProjectProfile,
    ) -> QueryOptimization:
        system_prompt = OPTIMIZER_PROMPT.format(
            title=profile.title,
            goal=profile.goal or "Not specified",
            description=profile.description or "Not specified",
            materials=", ".join(profile.materials) or "None listed",
            resource_type=resource_type,
            content_type=content_type,
            query=query,
        )
        try:
            payload = await self.provider.structured(
                tool=OPTIMIZE_QUERY_TOOL,
                system_prompt=system_prompt,
                user_content="Optimize a search query for this request.",
            )
            optimization = QueryOptimization.model_validate({"original_query": query, **payload})
        except (ProviderError, ValidationError) as exc:
            logger.warning("assistant-search-optimize-degraded reason=%s", str(exc)[:180])
            return QueryOptimization(
                original_query=query,
                optimized_query=query,
                search_terms=[query],
                reasoning="Error during optimization, using original message",
            )

        if not optimization.optimized_query.strip():
            return optimization.model_copy(update={"optimized_query": query})
        return optimization

    async def backup_search(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        profile: ProjectProfile,
        count: int,
    ) -> List[Dict[str, Any]]:
        """首次搜索结果太少时补搜；补搜失败只记日志，保留已拿到的结果"""
        found: List[Dict[str, Any]] = []
        try:
            simplified = simplify_query(query, resource_type, profile.title)
            if simplified != query:
                found += await self.search_client.search(simplified, resource_type, 3, content_type=content_type)

            if profile.title and len(found) < count:
                title_query = build_title_query(profile.title, resource_type, content_type)
                found += await self.search_client.search(title_query, resource_type, 3, content_type=content_type)

            if len(found) < count:
                generic_query = build_generic_query(resource_type, content_type)
                found += await self.search_client.search(generic_query, resource_type, 2, content_type=content_type)
        except SearchServiceError as exc:
            logger.warning("assistant-search-backup-failed reason=%s", str(exc)[:180])

        logger.info("assistant-search-backup query=%s results=%s", query[:180], len(found))
        return found

    async def search(
        self,
        query: str,
        resource_type: str,
        profile: ProjectProfile,
        content_type: Optional[str] = None,
        num_results: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        搜索项目相关的网络资源

        Returns:
            {success, message, links, search_suggestion, query_optimization}
        """
        content_type = content_type or "mixed"
        requested = num_results if num_results is not None else settings.SEARCH_DEFAULT_RESULTS
        count = max(0, min(int(requested), settings.SEARCH_MAX_RESULTS))

        cache_key = SearchCache.make_key(f"{query}#{count}", resource_type, content_type, profile.id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("assistant-search-cache-hit query=%s", query[:180])
            return cached

        optimization = await self.optimize_query(query, resource_type, content_type, profile)
        try:
            links: List[Dict[str, Any]] = await self.search_client.search(
                optimization.optimized_query,
                resource_type,
                count,
                content_type=content_type,
                context=profile.search_context(),
            )
        except SearchServiceError as exc:
            logger.warning("assistant-search-unavailable reason=%s", str(exc)[:180])
            return {
                "success": False,
                "message": UNAVAILABLE_MESSAGE,
                "links": [],
            }

        if len(links) < math.ceil(count * BACKUP_TRIGGER_RATIO):
            backup = await self.backup_search(
                optimization.optimized_query, resource_type, content_type, profile, count
            )
            seen = {link["url"] for link in links}
            merged = links + [item for item in dedupe_by_url(backup) if item["url"] not in seen]
            links = rank_results(merged, profile.search_context(), resource_type, content_type)

        links = links[:count]
        logger.info(
            "assistant-search query=%s optimized=%s results=%s",
            query[:180],
            optimization.optimized_query[:180],
            len(links),
        )
        if links:
            message = (
                f'Found {len(links)} personalized {resource_type} resources for "{query}".'
            )
        else:
            message = f'No {resource_type} resources found for "{query}".'

        result = {
            "success": True,
            "message": message,
            "links": links,
            "search_suggestion": None if links else search_suggestion(query, resource_type),
            "query_optimization": {
                "original_query": query,
                "optimized_query": optimization.optimized_query,
                "reasoning": optimization.reasoning,
            },
        }
        if links:
            self.cache.set(cache_key, result)
        return result
