"""项目画像读取

Review note:
- 项目资料的写入不在本服务范围内，这里只读。
- 返回不可变的 ProjectProfile，供意图分类、提示词组装与搜索上下文复用。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.project import Project


@dataclass(frozen=True)
class InterviewContext:
    answers: Dict[str, str] = field(default_factory=dict)
    focus_areas: List[str] = field(default_factory=list)
    completed_at: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.completed_at)


@dataclass(frozen=True)
class ProjectProfile:
    id: str
    title: str
    goal: Optional[str] = None
    description: Optional[str] = None
    materials: List[str] = field(default_factory=list)
    checklist_count: int = 0
    notes_count: int = 0
    inspiration_count: int = 0
    interview: Optional[InterviewContext] = None

    @property
    def focus_areas(self) -> List[str]:
        if not self.interview:
            return []
        return list(self.interview.focus_areas)

    def summary(self) -> Dict[str, Any]:
        """给分类器看的项目摘要（标题/目标/描述/资源数量）"""
        return {
            "title": self.title,
            "goal": self.goal,
            "description": self.description,
            "materials": len(self.materials),
            "checklistItems": self.checklist_count,
            "notes": self.notes_count,
            "inspirationLinks": self.inspiration_count,
        }

    def search_context(self) -> Dict[str, Any]:
        """给资源搜索用的项目上下文"""
        return {
            "title": self.title,
            "goal": self.goal,
            "description": self.description,
            "materials": list(self.materials),
            "focus_areas": self.focus_areas,
        }


def parse_interview_context(raw: Any) -> Optional[InterviewContext]:
    """解析 projects.interview_context JSON；格式不对时视为没有访谈。"""
    if isinstance(raw, str) and raw.strip():
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return None
    elif isinstance(raw, dict):
        payload = raw
    else:
        return None
    if not isinstance(payload, dict):
        return None

    answers_raw = payload.get("answers")
    answers: Dict[str, str] = {}
    if isinstance(answers_raw, dict):
        for key, value in answers_raw.items():
            text = str(value or "").strip()
            if text:
                answers[str(key)] = text

    focus_raw = payload.get("focusAreas") or payload.get("focus_areas") or []
    focus_areas = [str(item).strip() for item in focus_raw if str(item or "").strip()] if isinstance(focus_raw, list) else []

    completed_at = payload.get("completedAt") or payload.get("completed_at")
    return InterviewContext(
        answers=answers,
        focus_areas=focus_areas,
        completed_at=str(completed_at) if completed_at else None,
    )


class CRUDProject:
    """项目只读操作"""

    async def get(self, db: AsyncSession, project_id: str) -> Optional[Project]:
        """获取项目（含材料/清单/笔记/灵感链接）"""
        result = await db.execute(
            select(Project)
            .where(Project.id == project_id)
            .options(
                selectinload(Project.materials),
                selectinload(Project.checklist_items),
                selectinload(Project.notes),
                selectinload(Project.inspiration_links),
            )
        )
        return result.scalar_one_or_none()

    async def get_profile(self, db: AsyncSession, project_id: str) -> Optional[ProjectProfile]:
        """获取项目画像"""
        project = await self.get(db, project_id)
        if not project:
            return None
        return ProjectProfile(
            id=project.id,
            title=project.title,
            goal=project.goal or None,
            description=project.description or None,
            materials=[m.name for m in project.materials],
            checklist_count=len(project.checklist_items),
            notes_count=len(project.notes),
            inspiration_count=len(project.inspiration_links),
            interview=parse_interview_context(project.interview_context),
        )


project_crud = CRUDProject()
