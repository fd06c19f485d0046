"""Fixed tool catalog exposed to the conversational model.

Review note:
- 工具集合是封闭的五个能力；模型请求的其他名字（含供应商内置工具）一律忽略。
- 每个工具的 JSON schema 与 app/schemas/assistant.py 中的参数模型一一对应。
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from app.utils.openai_helper import function_tool


class ToolName(str, Enum):
    GENERATE_MATERIALS = "generate_materials"
    GENERATE_CHECKLIST = "generate_checklist"
    SEARCH_WEB_RESOURCES = "search_web_resources"
    SUMMARIZE_WEBPAGE = "summarize_webpage"
    SUMMARIZE_NOTES = "summarize_notes"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["ToolName"]:
        try:
            return cls(str(name or ""))
        except ValueError:
            return None


_RESOURCE_TYPE_ENUM = ["tutorial", "inspiration", "materials"]
_CONTENT_TYPE_ENUM = ["video", "visual", "article", "mixed"]

TOOL_SCHEMAS: Dict[ToolName, Dict] = {
    ToolName.GENERATE_MATERIALS: function_tool(
        ToolName.GENERATE_MATERIALS.value,
        "Suggest a list of materials and tools needed for the DIY project. "
        "Suggestions are shown to the user, who decides what to add.",
        {
            "type": "object",
            "properties": {
                "materials": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string", "description": "Material or tool name"},
                            "quantity": {
                                "type": "string",
                                "description": 'Quantity needed (e.g., "2", "1 pack", "3 meters")',
                            },
                            "estimated_price": {"type": "number", "description": "Estimated cost in dollars"},
                            "category": {"type": "string", "description": "Category: Tools, Materials, Safety, etc."},
                            "notes": {"type": "string", "description": "Additional notes or specifications"},
                        },
                        "required": ["name", "quantity"],
                    },
                },
            },
            "required": ["materials"],
        },
    ),
    ToolName.GENERATE_CHECKLIST: function_tool(
        ToolName.GENERATE_CHECKLIST.value,
        "Suggest a step-by-step checklist for the DIY project. "
        "Suggestions are shown to the user, who decides what to add.",
        {
            "type": "object",
            "properties": {
                "tasks": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string", "description": "Task description"},
                            "order": {"type": "integer", "description": "Order in the sequence"},
                            "estimated_time": {"type": "string", "description": "Estimated time to complete"},
                            "difficulty": {"type": "string", "description": "Difficulty level: Easy, Medium, Hard"},
                            "notes": {"type": "string", "description": "Additional notes or tips"},
                        },
                        "required": ["title", "order"],
                    },
                },
            },
            "required": ["tasks"],
        },
    ),
    ToolName.SEARCH_WEB_RESOURCES: function_tool(
        ToolName.SEARCH_WEB_RESOURCES.value,
        "Search the web for real DIY tutorials, inspiration, and materials that are publicly accessible.",
        {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": 'Search query for DIY content (e.g., "kitchen cabinet painting tutorial")',
                },
                "resource_type": {
                    "type": "string",
                    "enum": _RESOURCE_TYPE_ENUM,
                    "description": "Type of content to search for",
                },
                "content_type": {
                    "type": "string",
                    "enum": _CONTENT_TYPE_ENUM,
                    "description": "Specific content format desired",
                },
                "num_results": {
                    "type": "integer",
                    "description": "Number of results to return (max 5)",
                    "minimum": 1,
                    "maximum": 5,
                },
            },
            "required": ["query", "resource_type"],
        },
    ),
    ToolName.SUMMARIZE_WEBPAGE: function_tool(
        ToolName.SUMMARIZE_WEBPAGE.value,
        "Analyze and summarize a webpage for DIY project insights.",
        {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL of the webpage to analyze"},
                "focus_areas": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Aspects to focus on (e.g., materials, steps, techniques)",
                },
            },
            "required": ["url"],
        },
    ),
    ToolName.SUMMARIZE_NOTES: function_tool(
        ToolName.SUMMARIZE_NOTES.value,
        "Summarize the project notes and provide insights.",
        {
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "Summary of the notes"},
                "key_points": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Key points from the notes",
                },
                "recommendations": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Recommendations based on the notes",
                },
            },
            "required": ["summary"],
        },
    ),
}

# 提示词里的工具说明，顺序即展示顺序
TOOL_PROMPT_LINES: Dict[ToolName, str] = {
    ToolName.SEARCH_WEB_RESOURCES: "find real web resources (videos, tutorials, materials, inspiration) that are publicly accessible",
    ToolName.GENERATE_MATERIALS: "suggest materials lists with prices",
    ToolName.GENERATE_CHECKLIST: "suggest step-by-step task lists",
    ToolName.SUMMARIZE_WEBPAGE: "analyze webpages for project insights",
    ToolName.SUMMARIZE_NOTES: "summarize project notes",
}


def tool_catalog() -> List[Dict]:
    """返回送给模型的工具列表（每次新建，避免调用方修改共享结构）"""
    return [dict(TOOL_SCHEMAS[name]) for name in ToolName]
