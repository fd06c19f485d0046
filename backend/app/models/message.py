"""消息模型"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class ChatMessage(Base):
    """助手消息表"""
    __tablename__ = "ai_chat_messages"

    id = Column(String(50), primary_key=True)
    project_id = Column(String(50), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    thread_id = Column(String(50), ForeignKey("ai_chat_threads.id", ondelete="CASCADE"), nullable=True, index=True)
    role = Column(String(20), nullable=False)  # user, assistant
    content = Column(Text, nullable=False, default="")
    function_call = Column(Text, nullable=True, default=None)  # JSON: {name, arguments, result}
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # 关系
    thread = relationship("ChatThread", back_populates="messages")

    # 约束
    __table_args__ = (
        CheckConstraint("role IN ('user', 'assistant')", name="check_chat_role"),
    )

    def __repr__(self):
        return f"<ChatMessage {self.role}: {self.content[:50]}...>"
