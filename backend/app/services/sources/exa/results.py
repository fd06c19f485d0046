"""Normalize and rank raw Exa search results for DIY projects.

Review note:
- 排序两步：先按项目相似度排，再按内容形式做平衡（video 视频优先、visual 图集优先、
  article 去掉视频、mixed 在视频/图集/文章三类间轮流取）。
- 相关性校验只看标题+摘要文本，打分规则与阈值见 assess_relevance。
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

SNIPPET_MAX_CHARS = 300
MAX_TAGS = 8

YOUTUBE_ID_RE = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([^&\n?#]+)"
)

SOURCE_NAMES = {
    "youtube.com": "YouTube",
    "youtu.be": "YouTube",
    "m.youtube.com": "YouTube",
    "homedepot.com": "Home Depot",
    "lowes.com": "Lowe's",
    "thisoldhouse.com": "This Old House",
    "familyhandyman.com": "Family Handyman",
    "diynetwork.com": "DIY Network",
    "bobvila.com": "Bob Vila",
    "instructables.com": "Instructables",
    "wikihow.com": "WikiHow",
}

SOURCE_QUALITY_BONUS = {
    "YouTube": 0.05,
    "This Old House": 0.15,
    "Family Handyman": 0.12,
    "Home Depot": 0.10,
    "Lowe's": 0.10,
    "Bob Vila": 0.08,
    "DIY Network": 0.08,
    "Instructables": 0.06,
    "WikiHow": 0.04,
}

RESOURCE_TYPE_KEYWORDS = {
    "tutorial": ["tutorial", "how to", "step by step", "guide", "instructions", "diy"],
    "inspiration": ["inspiration", "ideas", "gallery", "examples", "showcase", "design"],
    "materials": ["materials", "tools", "supplies", "buy", "shop", "equipment"],
}

CATEGORY_TAGS = {
    "woodworking": ["wood", "lumber", "saw", "drill", "cabinet", "furniture"],
    "painting": ["paint", "brush", "color", "wall", "primer"],
    "plumbing": ["pipe", "water", "sink", "toilet", "faucet"],
    "electrical": ["wire", "outlet", "switch", "electrical", "circuit"],
    "flooring": ["floor", "tile", "carpet", "hardwood", "vinyl"],
    "kitchen": ["kitchen", "cabinet", "countertop", "appliance"],
    "bathroom": ["bathroom", "shower", "bath", "vanity"],
    "outdoor": ["outdoor", "patio", "deck", "garden", "fence"],
}

BEGINNER_WORDS = ["easy", "simple", "basic", "beginner", "quick", "no experience"]
ADVANCED_WORDS = ["advanced", "expert", "professional", "complex", "difficult", "technical"]

VISUAL_INDICATORS = [
    "gallery",
    "photos",
    "images",
    "pinterest",
    "before and after",
    "photo gallery",
    "picture",
    "visual",
    "showcase",
    "lookbook",
]
VISUAL_HOSTS = ("pinterest.com", "houzz.com")
GALLERY_WORDS = ("gallery", "photos", "collection")
BEFORE_AFTER_WORDS = ("before and after", "before/after", "makeover", "transformation")
HIGH_VISUAL_QUALITY = [
    "professional",
    "hd",
    "high quality",
    "photography",
    "architect",
    "designer",
    "magazine",
    "featured",
    "award",
    "beautiful",
]
MEDIUM_VISUAL_QUALITY = ["gallery", "photos", "before after", "makeover", "renovation", "project", "design", "inspiration"]

DIY_TERMS = ["diy", "how to", "tutorial", "guide", "repair", "fix", "install", "build", "project"]
UNRELATED_TERMS = [
    "recipe", "cooking", "food", "restaurant", "menu",
    "vacation", "travel", "hotel", "flight",
    "clothing", "fashion", "style", "outfit",
    "movie", "film", "tv show", "entertainment",
    "sports", "game", "team", "player",
    "software", "app", "code", "programming",
    "car", "automotive", "vehicle", "engine",
]
RELEVANCE_THRESHOLD = 25
# 相关结果占比达到这个比例就丢掉不相关的；否则用不相关结果补足
RELEVANT_ENOUGH_RATIO = 0.7


def _bare_host(hostname: str) -> str:
    host = (hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def format_source_name(hostname: str) -> str:
    host = _bare_host(hostname)
    if host in SOURCE_NAMES:
        return SOURCE_NAMES[host]
    head = host.split(".")[0] if host else ""
    return head[:1].upper() + head[1:] if head else "Web"


def extract_youtube_id(url: str) -> Optional[str]:
    match = YOUTUBE_ID_RE.search(url or "")
    return match.group(1) if match else None


def estimate_difficulty(title: str, snippet: str) -> str:
    content = f"{title} {snippet}".lower()
    beginner = sum(1 for word in BEGINNER_WORDS if word in content)
    advanced = sum(1 for word in ADVANCED_WORDS if word in content)
    if beginner > advanced:
        return "Beginner"
    if advanced > 0:
        return "Advanced"
    return "Intermediate"


def generate_tags(title: str, snippet: str, resource_type: str, is_video: bool) -> List[str]:
    tags = [resource_type]
    if is_video:
        tags.append("video")
    content = f"{title} {snippet}".lower()
    for category, keywords in CATEGORY_TAGS.items():
        if any(keyword in content for keyword in keywords):
            tags.append(category)
    return tags[:MAX_TAGS]


def _truncate_snippet(text: str) -> str:
    if len(text) > SNIPPET_MAX_CHARS:
        return text[:SNIPPET_MAX_CHARS] + "..."
    return text


def normalize_result(raw: Dict[str, Any], resource_type: str) -> Optional[Dict[str, Any]]:
    """Exa 原始结果 -> 资源卡片；没有可用 url 时返回 None"""
    url = str(raw.get("url") or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None

    title = str(raw.get("title") or "").strip() or "Untitled"
    text = str(raw.get("text") or raw.get("snippet") or "").strip()
    host = _bare_host(parsed.hostname or "")
    is_video = "youtube.com" in host or "youtu.be" in host
    score = raw.get("score")

    return {
        "title": title,
        "url": url,
        "snippet": _truncate_snippet(text),
        "source": format_source_name(host),
        "difficulty": estimate_difficulty(title, text),
        "tags": generate_tags(title, text, resource_type, is_video),
        "is_video": is_video,
        "video_id": extract_youtube_id(url) if is_video else None,
        "score": float(score) if isinstance(score, (int, float)) else 0.5,
        "published_date": raw.get("publishedDate") or raw.get("published_date"),
    }


def _long_words(text: Optional[str]) -> List[str]:
    return [word for word in (text or "").lower().split() if len(word) > 3]


def _overlap(words: List[str], content: str) -> float:
    if not words:
        return 0.0
    return sum(1 for word in words if word in content) / len(words)


def source_quality_bonus(source: str) -> float:
    for name, bonus in SOURCE_QUALITY_BONUS.items():
        if name in source:
            return bonus
    return 0.0


def resource_type_bonus(content: str, resource_type: Optional[str]) -> float:
    keywords = RESOURCE_TYPE_KEYWORDS.get(resource_type or "", [])
    return sum(1 for keyword in keywords if keyword in content) * 0.02


def project_similarity(
    result: Dict[str, Any],
    context: Optional[Dict[str, Any]],
    resource_type: Optional[str] = None,
) -> float:
    """按项目上下文给结果打分，上限 1.0"""
    score = result.get("score")
    if score is None:
        score = 0.5
    if not context:
        return min(score, 1.0)

    content = f"{result.get('title', '')} {result.get('snippet', '')}".lower()
    score += _overlap(_long_words(context.get("title")), content) * 0.3
    score += _overlap(_long_words(context.get("goal")), content) * 0.25
    score += _overlap(_long_words(context.get("description")), content) * 0.2

    materials = [m for m in context.get("materials") or [] if m]
    if materials:
        score += sum(1 for m in materials if m.lower() in content) / len(materials) * 0.15

    focus_areas = [a for a in context.get("focus_areas") or [] if a]
    if focus_areas:
        score += sum(1 for a in focus_areas if a.lower() in content) / len(focus_areas) * 0.1

    score += source_quality_bonus(result.get("source", ""))
    score += resource_type_bonus(content, resource_type)
    return min(score, 1.0)


def dedupe_by_url(results: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique: List[Dict[str, Any]] = []
    for item in results:
        if item["url"] in seen:
            continue
        seen.add(item["url"])
        unique.append(item)
    return unique


def _result_text(result: Dict[str, Any]) -> str:
    return f"{result.get('title', '')} {result.get('snippet', '')}".lower()


def _mentions_word(term: str, content: str) -> bool:
    return re.search(rf"\b{re.escape(term)}\b", content) is not None


def _on_visual_host(result: Dict[str, Any]) -> bool:
    host = _bare_host(urlparse(result.get("url") or "").hostname or "")
    return any(host == v or host.endswith("." + v) for v in VISUAL_HOSTS)


def is_visual_content(result: Dict[str, Any]) -> bool:
    """图集/图片类页面（视频单独成类，不算在内）"""
    if result.get("is_video"):
        return False
    if _on_visual_host(result):
        return True
    content = _result_text(result)
    indicators = sum(1 for word in VISUAL_INDICATORS if word in content)
    return indicators >= 2 or any(word in content for word in GALLERY_WORDS)


def visual_quality_score(result: Dict[str, Any]) -> int:
    content = _result_text(result)
    score = 0
    if any(_mentions_word(word, content) for word in HIGH_VISUAL_QUALITY):
        score += 30
    elif any(word in content for word in MEDIUM_VISUAL_QUALITY):
        score += 15
    if any(word in content for word in GALLERY_WORDS):
        score += 20
    if any(word in content for word in BEFORE_AFTER_WORDS):
        score += 15
    if _on_visual_host(result):
        score += 25
    return score


def assess_relevance(
    result: Dict[str, Any],
    context: Optional[Dict[str, Any]],
    query: str,
    resource_type: Optional[str],
) -> Tuple[int, bool]:
    """
    判断结果与项目/查询是否相关

    Returns:
        (相关度分数, 是否相关)；分数 >= 25 且查询词命中率 > 0.1 才算相关
    """
    content = _result_text(result)
    query_words = query.lower().split()
    query_hits = sum(1 for word in query_words if len(word) > 3 and word in content)
    hit_ratio = query_hits / max(len(query_words), 1)

    score = 0
    if hit_ratio > 0.3:
        score += 40

    if context:
        score += sum(1 for word in _long_words(context.get("title")) if word in content) * 15
        score += sum(1 for m in context.get("materials") or [] if m and m.lower() in content) * 10
        score += sum(1 for a in context.get("focus_areas") or [] if a and a.lower() in content) * 8

    score += sum(1 for term in DIY_TERMS if term in content) * 3
    score += sum(1 for term in RESOURCE_TYPE_KEYWORDS.get(resource_type or "", []) if term in content) * 5
    # 整词匹配，避免 "app" 命中 "appliance" 这类误伤
    score -= sum(1 for term in UNRELATED_TERMS if _mentions_word(term, content)) * 20

    return max(score, 0), score >= RELEVANCE_THRESHOLD and hit_ratio > 0.1


def filter_relevant(
    results: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]],
    query: str,
    resource_type: Optional[str],
    target_count: int,
) -> List[Dict[str, Any]]:
    """相关结果够多时丢掉不相关的，不够时用不相关结果补到 target_count"""
    relevant: List[Dict[str, Any]] = []
    others: List[Dict[str, Any]] = []
    for item in results:
        _, ok = assess_relevance(item, context, query, resource_type)
        (relevant if ok else others).append(item)

    if len(relevant) >= math.ceil(target_count * RELEVANT_ENOUGH_RATIO):
        return relevant
    return relevant + others[: max(target_count - len(relevant), 0)]


def _round_robin(buckets: List[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    mixed: List[Dict[str, Any]] = []
    depth = max((len(bucket) for bucket in buckets), default=0)
    for index in range(depth):
        for bucket in buckets:
            if index < len(bucket):
                mixed.append(bucket[index])
    return mixed


def balance_results(ranked: List[Dict[str, Any]], content_type: Optional[str]) -> List[Dict[str, Any]]:
    """按内容形式调整已排序结果的先后；article 会去掉视频"""
    if content_type == "video":
        return [r for r in ranked if r["is_video"]] + [r for r in ranked if not r["is_video"]]
    if content_type == "visual":
        visual = sorted((r for r in ranked if is_visual_content(r)), key=visual_quality_score, reverse=True)
        return visual + [r for r in ranked if not is_visual_content(r)]
    if content_type == "article":
        return [r for r in ranked if not r["is_video"]]
    if content_type == "mixed":
        videos = [r for r in ranked if r["is_video"]]
        visual = [r for r in ranked if is_visual_content(r)]
        articles = [r for r in ranked if not r["is_video"] and not is_visual_content(r)]
        return _round_robin([videos, visual, articles])
    return list(ranked)


def rank_results(
    results: Iterable[Dict[str, Any]],
    context: Optional[Dict[str, Any]],
    resource_type: Optional[str],
    content_type: Optional[str],
) -> List[Dict[str, Any]]:
    """按 url 去重、按项目相似度排序，再按内容形式平衡"""
    unique = dedupe_by_url(results)
    scored = [(project_similarity(item, context, resource_type), index, item) for index, item in enumerate(unique)]
    scored.sort(key=lambda row: (-row[0], row[1]))
    return balance_results([item for _, _, item in scored], content_type)


def search_suggestion(query: str, resource_type: str) -> str:
    suggestions = {
        "tutorial": f'Try searching for "{query} tutorial" or "{query} how to" on YouTube',
        "inspiration": f'Try searching for "{query} ideas" or "{query} examples" on Pinterest or DIY websites',
        "materials": f'Try searching for "{query} supplies" on Home Depot or Amazon',
    }
    return suggestions.get(resource_type, f'Try searching for "{query}" on DIY websites')
