"""Intent classification for incoming chat messages."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from app.crud.project import ProjectProfile
from app.schemas.assistant import CONTENT_TYPES, RESOURCE_TYPES, IntentClassification
from app.services.assistant.errors import ProviderError
from app.utils.openai_helper import function_tool

logger = logging.getLogger("uvicorn.error")

RECENT_TURNS_FOR_CLASSIFIER = 3

CLASSIFY_INTENT_TOOL = function_tool(
    "classify_intent",
    "Classify user intent and determine appropriate response strategy",
    {
        "type": "object",
        "properties": {
            "intent": {
                "type": "string",
                "enum": [
                    "search_resources",
                    "general_guidance",
                    "summarize_webpage",
                    "add_resources",
                    "project_planning",
                    "off_topic",
                ],
            },
            "resource_type": {
                "type": "string",
                "enum": list(RESOURCE_TYPES),
                "description": "Type of resource being requested (if applicable)",
            },
            "content_type": {
                "type": "string",
                "enum": list(CONTENT_TYPES),
                "description": "Type of content the user seems to want",
            },
            "needs_web_search": {"type": "boolean", "description": "Whether real web search is needed"},
            "specific_query": {
                "type": "string",
                "description": "Specific search query to use based on project context",
            },
            "confidence": {"type": "number", "description": "Confidence level 0-1"},
            "reasoning": {"type": "string", "description": "Brief explanation of the classification"},
        },
        "required": ["intent", "needs_web_search", "confidence", "reasoning"],
    },
)

CLASSIFIER_PROMPT = """You are an intent classifier for a DIY project assistant. Analyze the user's message and determine their intent.

Project Context: {project}
Recent Chat History: {history}

Classify the intent as one of:
- search_resources: User wants to find specific resources (videos, tutorials, materials, inspiration)
- general_guidance: User needs advice, explanations, or general help
- summarize_webpage: User wants to analyze or summarize a specific webpage/URL
- add_resources: User wants to add specific items to their project
- project_planning: User needs help planning their project steps
- off_topic: User is asking about something unrelated to DIY projects or their current project

For search_resources, also determine:
- resource_type: tutorial, inspiration, or materials
- content_type: video, visual, article, or mixed based on what the user seems to want
- specific_query: the exact search query to use
- needs_web_search: true if real web search is needed

Content type guidelines:
- 'video': User wants video tutorials, demonstrations, or how-to videos
- 'visual': User wants images, photos, galleries, visual inspiration, or examples
- 'article': User wants written guides, blog posts, or detailed instructions
- 'mixed': User wants a variety of content types or didn't specify

IMPORTANT: If the user is asking about something completely unrelated to DIY projects or their current project context, classify as 'off_topic'.

Return high confidence (0.8+) only when intent is very clear."""


async def classify_intent(
    provider,
    message: str,
    profile: ProjectProfile,
    recent_turns: List[Dict[str, Any]],
) -> IntentClassification:
    """
    给用户消息打意图标签

    任何模型错误或非法返回都降级为 general_guidance（不搜索，置信度 0.3）。
    """
    system_prompt = CLASSIFIER_PROMPT.format(
        project=json.dumps(profile.summary(), ensure_ascii=False, indent=2),
        history=json.dumps(recent_turns[-RECENT_TURNS_FOR_CLASSIFIER:], ensure_ascii=False, indent=2),
    )
    try:
        payload = await provider.structured(
            tool=CLASSIFY_INTENT_TOOL,
            system_prompt=system_prompt,
            user_content=message,
        )
        classification = IntentClassification.model_validate(payload)
    except (ProviderError, ValidationError) as exc:
        logger.warning("assistant-intent-degraded reason=%s", str(exc)[:180])
        return IntentClassification.degraded()

    logger.info(
        "assistant-intent intent=%s confidence=%.2f search=%s",
        classification.intent,
        classification.confidence,
        classification.needs_web_search,
    )
    return classification
