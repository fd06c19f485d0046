"""对话线程模型

Review note:
- 一个项目可以有多个线程；“活跃线程”由 last_message_at 是否落在最近 24 小时内决定。
- 线程只由助手创建，删除走管理接口。
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class ChatThread(Base):
    """助手对话线程表"""
    __tablename__ = "ai_chat_threads"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    last_message_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # 关系
    project = relationship("Project", back_populates="threads")
    messages = relationship("ChatMessage", back_populates="thread", cascade="all, delete-orphan", order_by="ChatMessage.created_at")

    def __repr__(self):
        return f"<ChatThread {self.title}>"
