"""线程和消息相关的Pydantic schemas

Review note:
- `function_call` 在库里是 JSON 文本，响应时解析为字典。
"""
from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import json


class ChatMessageResponse(BaseModel):
    """消息响应"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    thread_id: Optional[str]
    role: str
    content: str
    function_call: Optional[dict] = Field(None, description="本回合第一次工具调用")
    created_at: datetime

    @field_validator("function_call", mode="before")
    @classmethod
    def parse_function_call(cls, v):
        if v is None:
            return None
        if isinstance(v, dict):
            return v
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return None
        return None


class ChatHistoryResponse(BaseModel):
    """聊天历史响应"""
    success: bool = True
    data: list[ChatMessageResponse]


class ThreadResponse(BaseModel):
    """线程响应"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: Optional[str]
    started_at: datetime
    last_message_at: datetime
    message_count: int = Field(default=0, description="消息数量")


class ThreadListResponse(BaseModel):
    """线程列表响应"""
    threads: list[ThreadResponse]
