"""Tool dispatch for the assistant's five capabilities.

Review note:
- 处理函数表在导入时与 ToolName 对齐检查，缺项或多项直接报错。
- 参数先过 pydantic 模型；校验失败返回 {success: False, message}，不抛异常。
- 处理函数里的意外异常由 dispatch 兜住，转成 {success: False, error} 回填给模型。
- 材料/清单/摘要只生成建议，不写项目数据。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Tuple, Type

from pydantic import BaseModel, ValidationError

from app.crud.project import ProjectProfile
from app.schemas.assistant import (
    GenerateChecklistArgs,
    GenerateMaterialsArgs,
    IntentClassification,
    SearchWebResourcesArgs,
    SummarizeNotesArgs,
    SummarizeWebpageArgs,
    WebpageAnalysis,
)
from app.services.assistant.catalog import ToolName
from app.services.assistant.errors import ProviderError
from app.services.assistant.provider import ToolCall
from app.utils.openai_helper import function_tool

logger = logging.getLogger("uvicorn.error")

WEBPAGE_UNAVAILABLE = "Unable to analyze webpage content at the moment. Please try again later."

ANALYZE_WEBPAGE_TOOL = function_tool(
    "analyze_webpage_content",
    "Return analysis of webpage content for DIY projects",
    {
        "type": "object",
        "properties": {
            "summary": {"type": "string", "description": "Comprehensive summary of the webpage content"},
            "key_techniques": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Key techniques or methods mentioned",
            },
            "materials": {"type": "array", "items": {"type": "string"}, "description": "Materials and tools referenced"},
            "steps": {"type": "array", "items": {"type": "string"}, "description": "Step-by-step process if available"},
            "tips": {"type": "array", "items": {"type": "string"}, "description": "Tips and best practices"},
            "difficulty": {
                "type": "string",
                "enum": ["Beginner", "Intermediate", "Advanced"],
                "description": "Assessed difficulty level",
            },
            "estimated_time": {"type": "string", "description": "Estimated time requirement"},
            "safety_notes": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Safety considerations mentioned",
            },
        },
        "required": ["summary", "difficulty"],
    },
)

WEBPAGE_PROMPT = """You are a webpage analyzer for DIY projects. Analyze the provided webpage and extract useful information for DIY project planning.

Focus areas: {focus_areas}

Extract and analyze:
- Key techniques or methods mentioned
- Materials and tools referenced
- Step-by-step processes
- Tips and best practices
- Cost estimates if mentioned
- Difficulty level assessment
- Safety considerations
- Time requirements

Provide a comprehensive summary that would be useful for someone planning a DIY project."""


@dataclass(frozen=True)
class ToolContext:
    profile: ProjectProfile
    classification: IntentClassification


def _bullets(items: List[str], marker: str = "•") -> str:
    return "\n".join(f"{marker} {item}" for item in items)


def format_webpage_analysis(url: str, analysis: WebpageAnalysis) -> str:
    content = f"Webpage Analysis: {url}\n\nSummary: {analysis.summary}\n\n"
    if analysis.key_techniques:
        content += f"Key Techniques:\n{_bullets(analysis.key_techniques)}\n\n"
    if analysis.materials:
        content += f"Materials/Tools:\n{_bullets(analysis.materials)}\n\n"
    if analysis.steps:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(analysis.steps, start=1))
        content += f"Process Steps:\n{steps}\n\n"
    if analysis.tips:
        content += f"Tips & Best Practices:\n{_bullets(analysis.tips)}\n\n"
    if analysis.safety_notes:
        content += f"Safety Notes:\n{_bullets(analysis.safety_notes, '⚠️')}\n\n"
    content += f"Difficulty: {analysis.difficulty}\n"
    if analysis.estimated_time:
        content += f"Estimated Time: {analysis.estimated_time}\n"
    return content


def format_notes_summary(args: SummarizeNotesArgs) -> str:
    return (
        f"AI Summary: {args.summary}\n\n"
        f"Key Points:\n{_bullets(args.key_points)}\n\n"
        f"Recommendations:\n{_bullets(args.recommendations)}"
    )


class ToolDispatcher:
    """把模型请求的工具调用分发到对应处理函数"""

    def __init__(self, provider, search_adapter) -> None:
        self.provider = provider
        self.search_adapter = search_adapter

    async def dispatch(self, call: ToolCall, context: ToolContext) -> Dict[str, Any]:
        args_model, handler = TOOL_HANDLERS[call.name]
        try:
            args = args_model.model_validate(call.arguments)
        except ValidationError as exc:
            logger.warning("assistant-tool-invalid-args tool=%s errors=%s", call.name.value, exc.error_count())
            return {
                "success": False,
                "message": f"Invalid arguments for {call.name.value}: {str(exc)[:180]}",
            }

        try:
            result = await handler(self, args, context)
        except Exception:
            logger.exception("assistant-tool-failed tool=%s", call.name.value)
            return {"success": False, "error": f"Failed to run {call.name.value}"}

        logger.info("assistant-tool tool=%s success=%s", call.name.value, result.get("success"))
        return result

    async def generate_materials(self, args: GenerateMaterialsArgs, context: ToolContext) -> Dict[str, Any]:
        materials = [item.model_dump() for item in args.materials]
        return {
            "success": True,
            "message": f"I've suggested {len(materials)} materials for your project. Review and choose what to add.",
            "materials": materials,
        }

    async def generate_checklist(self, args: GenerateChecklistArgs, context: ToolContext) -> Dict[str, Any]:
        tasks = [item.model_dump() for item in args.tasks]
        return {
            "success": True,
            "message": f"I've suggested {len(tasks)} tasks for your project. Review and choose what to add.",
            "tasks": tasks,
        }

    async def search_web_resources(self, args: SearchWebResourcesArgs, context: ToolContext) -> Dict[str, Any]:
        content_type = args.content_type or context.classification.content_type or "mixed"
        return await self.search_adapter.search(
            args.query,
            args.resource_type,
            context.profile,
            content_type=content_type,
            num_results=args.num_results,
        )

    async def summarize_webpage(self, args: SummarizeWebpageArgs, context: ToolContext) -> Dict[str, Any]:
        system_prompt = WEBPAGE_PROMPT.format(
            focus_areas=", ".join(args.focus_areas) if args.focus_areas else "general DIY insights",
        )
        try:
            payload = await self.provider.structured(
                tool=ANALYZE_WEBPAGE_TOOL,
                system_prompt=system_prompt,
                user_content=f"Please analyze this webpage for DIY project insights: {args.url}",
            )
            analysis = WebpageAnalysis.model_validate(payload)
        except (ProviderError, ValidationError) as exc:
            logger.warning("assistant-webpage-degraded url=%s reason=%s", args.url, str(exc)[:180])
            return {"success": False, "message": WEBPAGE_UNAVAILABLE}

        return {
            "success": True,
            "message": "I've analyzed the webpage and extracted useful DIY insights. You can save this analysis to your project.",
            "summary": {
                "content": format_webpage_analysis(args.url, analysis),
                "tags": ["webpage-analysis", "ai-generated"],
                "url": args.url,
                "difficulty": analysis.difficulty,
                "analysis": analysis.model_dump(),
            },
        }

    async def summarize_notes(self, args: SummarizeNotesArgs, context: ToolContext) -> Dict[str, Any]:
        return {
            "success": True,
            "message": "I've summarized your project notes. You can choose to save this summary.",
            "summary": {
                "content": format_notes_summary(args),
                "tags": ["ai-summary"],
            },
        }


Handler = Callable[[ToolDispatcher, Any, ToolContext], Awaitable[Dict[str, Any]]]

TOOL_HANDLERS: Dict[ToolName, Tuple[Type[BaseModel], Handler]] = {
    ToolName.GENERATE_MATERIALS: (GenerateMaterialsArgs, ToolDispatcher.generate_materials),
    ToolName.GENERATE_CHECKLIST: (GenerateChecklistArgs, ToolDispatcher.generate_checklist),
    ToolName.SEARCH_WEB_RESOURCES: (SearchWebResourcesArgs, ToolDispatcher.search_web_resources),
    ToolName.SUMMARIZE_WEBPAGE: (SummarizeWebpageArgs, ToolDispatcher.summarize_webpage),
    ToolName.SUMMARIZE_NOTES: (SummarizeNotesArgs, ToolDispatcher.summarize_notes),
}

_missing = set(ToolName) - set(TOOL_HANDLERS)
_extra = set(TOOL_HANDLERS) - set(ToolName)
if _missing or _extra:
    raise RuntimeError(f"工具处理表与 ToolName 不一致: missing={_missing}, extra={_extra}")
