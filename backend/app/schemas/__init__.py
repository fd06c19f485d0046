"""Schemas包初始化"""
from app.schemas.assistant import (
    IntentClassification,
    QueryOptimization,
    ToolInvocationRecord,
    ChatMetadata,
    ChatResult,
)
from app.schemas.chat import (
    ChatRequest,
    ChatResponse,
)
from app.schemas.conversation import (
    ChatMessageResponse,
    ChatHistoryResponse,
    ThreadResponse,
    ThreadListResponse,
)

__all__ = [
    # Assistant schemas
    "IntentClassification",
    "QueryOptimization",
    "ToolInvocationRecord",
    "ChatMetadata",
    "ChatResult",
    # Chat schemas
    "ChatRequest",
    "ChatResponse",
    # Conversation schemas
    "ChatMessageResponse",
    "ChatHistoryResponse",
    "ThreadResponse",
    "ThreadListResponse",
]
