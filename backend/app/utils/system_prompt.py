"""系统提示词组装

Review note:
- 输入相同则输出相同：项目画像 + 访谈上下文 + 意图分类 + 固定工具目录。
- 历史消息只取 role/content，工具调用记录不回放给模型。
"""
from typing import Any, Dict, Iterable, List

from app.crud.project import ProjectProfile
from app.schemas.assistant import IntentClassification
from app.services.assistant.catalog import TOOL_PROMPT_LINES, ToolName


BASE_PROMPT = """You are a helpful AI assistant for DIY home improvement projects.

Project: {title}
Goal: {goal}
Description: {description}

Current project context:
- {inspiration} inspiration links
- {materials} materials/tools
- {checklist} checklist items
- {notes} notes

Intent Analysis: {reasoning}
User Intent: {intent}
"""

INCOMPLETE_CONTEXT_NOTE = """
NOTE: This project doesn't have detailed context information yet. Provide general assistance but mention that more specific help would be available if the user completes their project setup.
"""

SEARCH_DIRECTIVE = """
CRITICAL: The user is requesting {resource_type} resources ({content_type} content).
Search Query: "{query}"
You MUST use the {search_tool} function to find real resources.

RESPONSE FORMATTING:
- Start with a friendly, conversational introduction
- DO NOT include any URLs or links in your response text
- DO NOT list the search results in your message
- Focus on explaining what types of resources were found and why they're helpful
- Describe the content categories (videos, galleries, articles) without listing specific titles
- Mention how these results relate to their specific project
- End with a helpful follow-up suggestion or question
- Be encouraging and supportive in tone

CRITICAL: The search results will be displayed as interactive cards separately. Your message should only provide context and encouragement, NOT list the actual results.
"""

WEBPAGE_DIRECTIVE = """
The user wants webpage analysis. Use the {webpage_tool} function and present the insights.
"""

OFF_TOPIC_DIRECTIVE = """
IMPORTANT: The user is asking about something unrelated to DIY projects or their current project.
Politely redirect them back to their project with a friendly response that:
1. Acknowledges their question briefly
2. Redirects to their DIY project: "{title}"
3. Offers specific DIY assistance related to their project
4. Asks a project-related question to re-engage them

Example: "That's an interesting question! However, I'm here to help you with your DIY project: '{title}'. Let's focus on making progress with that. Would you like me to [specific project help]?"
"""

CRITICAL_RULES = """
CRITICAL RULES:
- When users ask for videos, tutorials, ideas, or inspiration: USE {search_tool} function
- Materials and checklist results are suggestions; the user decides what to add to the project
- Always return resource suggestions as interactive cards, never as plain text
- Maintain context from previous messages in this thread
- Be specific with search queries based on project context
- STAY FOCUSED: All conversations must relate to DIY projects and the user's current project
- If users go off-topic, politely redirect them back to their DIY project
- Never provide assistance with non-DIY topics like cooking, relationships, general tech support, etc.

Always be encouraging and practical. Focus on safety and best practices for DIY projects."""


def _or_unspecified(value) -> str:
    return value or "Not specified"


def _interview_block(profile: ProjectProfile) -> str:
    interview = profile.interview
    if not interview or not interview.is_complete:
        return INCOMPLETE_CONTEXT_NOTE

    block = "\nAdditional Project Context (from user interview):\n"
    for answer in interview.answers.values():
        block += f"- {answer}\n"
    if interview.focus_areas:
        block += f"\nFocus Areas: {', '.join(interview.focus_areas)}\n"
    return block


def _intent_block(profile: ProjectProfile, classification: IntentClassification, message: str) -> str:
    if classification.intent == "search_resources" and classification.needs_web_search:
        return SEARCH_DIRECTIVE.format(
            resource_type=classification.resource_type or "inspiration",
            content_type=classification.content_type or "mixed",
            query=classification.specific_query or message,
            search_tool=ToolName.SEARCH_WEB_RESOURCES.value,
        )
    if classification.intent == "summarize_webpage":
        return WEBPAGE_DIRECTIVE.format(webpage_tool=ToolName.SUMMARIZE_WEBPAGE.value)
    if classification.intent == "off_topic":
        return OFF_TOPIC_DIRECTIVE.format(title=profile.title)
    return ""


def _catalog_block() -> str:
    lines = ["", "Available functions:"]
    for index, (name, text) in enumerate(TOOL_PROMPT_LINES.items(), start=1):
        lines.append(f"{index}. {name.value} - {text[0].upper()}{text[1:]}")
    return "\n".join(lines) + "\n"


def build_system_prompt(
    profile: ProjectProfile,
    classification: IntentClassification,
    message: str,
) -> str:
    """组装系统提示词"""
    prompt = BASE_PROMPT.format(
        title=profile.title,
        goal=_or_unspecified(profile.goal),
        description=_or_unspecified(profile.description),
        inspiration=profile.inspiration_count,
        materials=len(profile.materials),
        checklist=profile.checklist_count,
        notes=profile.notes_count,
        reasoning=classification.reasoning or "Not available",
        intent=classification.intent,
    )
    prompt += _interview_block(profile)
    prompt += _intent_block(profile, classification, message)
    prompt += _catalog_block()
    prompt += CRITICAL_RULES.format(search_tool=ToolName.SEARCH_WEB_RESOURCES.value)
    return prompt


def history_turns(history: Iterable) -> List[Dict[str, Any]]:
    """ORM 消息 -> 模型消息（只保留 user/assistant 文本）"""
    turns = []
    for msg in history:
        role = getattr(msg, "role", None)
        if role not in ("user", "assistant"):
            continue
        turns.append({"role": role, "content": getattr(msg, "content", None) or ""})
    return turns


def build_messages(system_prompt: str, history: Iterable, message: str) -> List[Dict[str, Any]]:
    """system + 历史窗口 + 新的用户消息"""
    return [
        {"role": "system", "content": system_prompt},
        *history_turns(history),
        {"role": "user", "content": message},
    ]
