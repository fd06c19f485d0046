"""项目资料模型

Review note:
- 项目的增删改由外部服务负责，这里只保留助手读取项目画像所需的列。
- `interview_context` (TEXT JSON) 保存项目访谈结果：answers / focusAreas / completedAt。
"""
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class Project(Base):
    """DIY项目表"""
    __tablename__ = "projects"

    id = Column(String(50), primary_key=True)
    title = Column(String(200), nullable=False)
    goal = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    interview_context = Column(Text, nullable=True, default=None)  # JSON string
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # 关系
    materials = relationship("Material", back_populates="project", cascade="all, delete-orphan")
    checklist_items = relationship("ChecklistItem", back_populates="project", cascade="all, delete-orphan")
    notes = relationship("Note", back_populates="project", cascade="all, delete-orphan")
    inspiration_links = relationship("InspirationLink", back_populates="project", cascade="all, delete-orphan")
    threads = relationship("ChatThread", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project {self.title}>"


class Material(Base):
    """材料/工具表"""
    __tablename__ = "materials"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    quantity = Column(String(100), nullable=True)
    estimated_price = Column(Float, nullable=True)
    category = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="materials")

    def __repr__(self):
        return f"<Material {self.name}>"


class ChecklistItem(Base):
    """任务清单表"""
    __tablename__ = "checklist_items"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="checklist_items")

    def __repr__(self):
        return f"<ChecklistItem {self.title}>"


class Note(Base):
    """项目笔记表"""
    __tablename__ = "notes"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="notes")


class InspirationLink(Base):
    """灵感链接表"""
    __tablename__ = "inspiration_links"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    title = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="inspiration_links")
