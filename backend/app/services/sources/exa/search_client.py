"""Exa web search client for DIY resources."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.services.sources.exa.results import dedupe_by_url, filter_relevant, normalize_result, rank_results

DIY_DOMAINS = [
    "youtube.com",
    "homedepot.com",
    "lowes.com",
    "thisoldhouse.com",
    "familyhandyman.com",
    "diynetwork.com",
    "bobvila.com",
    "instructables.com",
    "wikihow.com",
    "ana-white.com",
    "shanty-2-chic.com",
    "buildwithbryan.com",
    "hammerhandhome.com",
    "remodelaholic.com",
    "prettyprudent.com",
    "abeautifulmess.com",
    "yellowbrickhome.com",
]

MATERIAL_DOMAINS = DIY_DOMAINS + [
    "amazon.com",
    "menards.com",
    "wayfair.com",
    "overstock.com",
    "acehardware.com",
    "harborfreight.com",
]

CONTENT_TYPE_TERMS = {
    "video": "video tutorial how to watch",
    "visual": "photos images gallery pictures visual examples before after",
    "article": "guide article blog post instructions",
    "mixed": "",
}

RESOURCE_TYPE_TERMS = {
    "tutorial": "how to step by step guide instructions",
    "inspiration": "ideas examples inspiration design showcase",
    "materials": "materials tools supplies equipment list",
}


class SearchConfigError(ValueError):
    """Raised when Exa configuration is invalid."""


class SearchServiceError(RuntimeError):
    """Raised when Exa search request fails."""


def build_contextual_query(
    query: str,
    resource_type: str,
    content_type: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    parts = [query.strip()]
    if content_type and CONTENT_TYPE_TERMS.get(content_type):
        parts.append(CONTENT_TYPE_TERMS[content_type])
    parts.append(RESOURCE_TYPE_TERMS.get(resource_type, ""))

    if context:
        goal = context.get("goal") or ""
        if goal and len(goal) < 50:
            parts.append("project")
        general_areas = [
            area
            for area in context.get("focus_areas") or []
            if len(area) < 20 and "specific" not in area and "particular" not in area
        ]
        if general_areas:
            parts.append(" ".join(general_areas[:2]))

    parts.append("DIY project home improvement")
    return " ".join(part for part in parts if part)


FILLER_WORDS = {
    word
    for terms in [*CONTENT_TYPE_TERMS.values(), *RESOURCE_TYPE_TERMS.values(), "DIY project home improvement"]
    for word in terms.lower().split()
}

TITLE_QUERY_TERMS = {
    "tutorial": "tutorial how to guide",
    "inspiration": "ideas inspiration examples",
    "materials": "materials tools supplies",
}

GENERIC_QUERY_TERMS = {
    "tutorial": "DIY home improvement tutorial how to",
    "inspiration": "home improvement ideas inspiration examples",
    "materials": "DIY tools materials supplies home improvement",
}

BACKUP_CONTENT_TERMS = {
    "title": {"video": "video", "visual": "photos images", "article": "guide"},
    "generic": {"video": "video", "visual": "photos gallery", "article": "guide tips"},
}


def simplify_query(query: str, resource_type: str, project_title: Optional[str] = None) -> str:
    """去掉内容形式/资源类型这类修饰词；剩下太短时改用项目标题"""
    kept = [word for word in query.split() if word.lower() not in FILLER_WORDS]
    simplified = " ".join(kept)
    if len(simplified) < 10 and project_title:
        simplified = f"{project_title} {resource_type}"
    return simplified or query


def build_title_query(project_title: str, resource_type: str, content_type: Optional[str] = None) -> str:
    parts = [
        project_title.strip(),
        TITLE_QUERY_TERMS.get(resource_type, ""),
        BACKUP_CONTENT_TERMS["title"].get(content_type or "", ""),
    ]
    return " ".join(part for part in parts if part)


def build_generic_query(resource_type: str, content_type: Optional[str] = None) -> str:
    parts = [
        GENERIC_QUERY_TERMS.get(resource_type, "DIY home improvement"),
        BACKUP_CONTENT_TERMS["generic"].get(content_type or "", ""),
    ]
    return " ".join(part for part in parts if part)


def build_search_payload(
    query: str,
    resource_type: str,
    num_results: int,
    content_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Exa /search 请求体；多要一些候选留给排序过滤"""
    payload: Dict[str, Any] = {
        "query": query,
        "type": "neural",
        "numResults": min(num_results * 2, 20),
        "contents": {"text": {"maxCharacters": 2000, "includeHtmlTags": False}},
    }
    # 图片类和灵感类不限域名
    if content_type == "visual" or resource_type == "inspiration":
        payload["contents"]["text"]["maxCharacters"] = 2500
    elif resource_type == "materials":
        payload["includeDomains"] = list(MATERIAL_DOMAINS)
    elif content_type == "video":
        payload["includeDomains"] = list(DIY_DOMAINS)
    return payload


class ExaSearchClient:
    """Async client for Exa search API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.exa.ai",
        timeout_sec: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key or ""
        self.base_url = (base_url or "").rstrip("/")
        self.timeout_sec = int(timeout_sec)
        self._transport = transport
        if not self.base_url:
            raise SearchConfigError("EXA_BASE_URL 未配置。")

    @classmethod
    def from_settings(cls) -> "ExaSearchClient":
        return cls(
            api_key=settings.EXA_API_KEY,
            base_url=settings.EXA_BASE_URL,
            timeout_sec=settings.EXA_TIMEOUT_SEC,
        )

    async def _post_search(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise SearchServiceError("EXA_API_KEY 未配置。")

        headers = {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/search"

        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SearchServiceError(f"Exa 请求失败: {exc}") from exc

        if resp.status_code >= 400:
            detail = resp.text[:500]
            raise SearchServiceError(f"Exa 服务返回错误: status={resp.status_code}, body={detail}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise SearchServiceError("Exa 返回不是合法 JSON。") from exc

        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            raise SearchServiceError("Exa 返回缺少 results 列表。")
        return [item for item in results if isinstance(item, dict)]

    async def search(
        self,
        query: str,
        resource_type: str,
        num_results: int,
        content_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        搜索 DIY 资源

        Returns:
            归一化并按项目相关度排序的结果，最多 num_results 条
        """
        if num_results <= 0:
            return []

        contextual_query = build_contextual_query(query, resource_type, content_type, context)
        payload = build_search_payload(contextual_query, resource_type, num_results, content_type)
        raw_results = await self._post_search(payload)

        normalized = []
        for raw in raw_results:
            item = normalize_result(raw, resource_type)
            if item is not None:
                normalized.append(item)

        relevant = filter_relevant(dedupe_by_url(normalized), context, query, resource_type, num_results)
        ranked = rank_results(relevant, context, resource_type, content_type)
        return ranked[:num_results]
