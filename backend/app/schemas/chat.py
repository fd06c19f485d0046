"""聊天相关的Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.assistant import ChatResult


class ChatRequest(BaseModel):
    """聊天请求"""
    message: str = Field(..., min_length=1, description="用户消息")
    thread_id: Optional[str] = Field(None, description="线程ID，为空时自动续接最近活跃线程或新建")


class ChatResponse(BaseModel):
    """聊天响应"""
    success: bool = True
    data: ChatResult
