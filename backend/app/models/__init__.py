"""模型包初始化"""
from app.models.base import Base
from app.models.project import Project, Material, ChecklistItem, Note, InspirationLink
from app.models.conversation import ChatThread
from app.models.message import ChatMessage

__all__ = [
    "Base",
    "Project",
    "Material",
    "ChecklistItem",
    "Note",
    "InspirationLink",
    "ChatThread",
    "ChatMessage",
]
