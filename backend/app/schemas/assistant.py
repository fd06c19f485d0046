"""助手编排相关的Pydantic schemas

Review note:
- IntentClassification 只在单次请求内使用，不落库。
- 五个工具各自一个参数模型；模型给出的参数先过这里校验，再交给处理函数。
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional


Intent = Literal[
    "search_resources",
    "general_guidance",
    "summarize_webpage",
    "add_resources",
    "project_planning",
    "off_topic",
]
ResourceType = Literal["tutorial", "inspiration", "materials"]
ContentType = Literal["video", "visual", "article", "mixed"]
ResponseType = Literal["conversation", "search_results", "function_call"]

RESOURCE_TYPES = ("tutorial", "inspiration", "materials")
CONTENT_TYPES = ("video", "visual", "article", "mixed")


def _pick_choice(value: Any, choices: tuple) -> Optional[str]:
    text = str(value or "").strip().lower()
    return text if text in choices else None


class IntentClassification(BaseModel):
    """用户消息意图分类"""
    intent: Intent = Field("general_guidance", description="意图类别")
    resource_type: Optional[ResourceType] = Field(None, description="资源类型")
    content_type: Optional[ContentType] = Field(None, description="内容形式")
    needs_web_search: bool = Field(False, description="是否需要联网搜索")
    specific_query: Optional[str] = Field(None, description="具体搜索词")
    confidence: float = Field(0.5, ge=0, le=1, description="置信度")
    reasoning: str = Field("", description="分类理由")

    @field_validator("resource_type", mode="before")
    @classmethod
    def parse_resource_type(cls, v):
        return _pick_choice(v, RESOURCE_TYPES)

    @field_validator("content_type", mode="before")
    @classmethod
    def parse_content_type(cls, v):
        return _pick_choice(v, CONTENT_TYPES)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.5
        return min(max(value, 0.0), 1.0)

    @field_validator("specific_query", mode="before")
    @classmethod
    def strip_query(cls, v):
        text = str(v or "").strip()
        return text or None

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, v):
        return str(v or "")

    @classmethod
    def degraded(cls) -> "IntentClassification":
        """分类失败时的兜底结果：普通指导、不搜索、低置信度。"""
        return cls(
            intent="general_guidance",
            needs_web_search=False,
            confidence=0.3,
            reasoning="Classification unavailable, defaulting to general guidance",
        )


class QueryOptimization(BaseModel):
    """搜索词优化结果"""
    original_query: str
    optimized_query: str
    search_terms: List[str] = Field(default_factory=list)
    reasoning: str = ""


# ---------------------------------------------------------------------------
# 工具参数
# ---------------------------------------------------------------------------


def _parse_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


class MaterialSuggestion(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: str = Field(..., min_length=1)
    estimated_price: Optional[float] = None
    category: str = "Materials"
    notes: str = ""

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        # 模型常把数量给成数字
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("estimated_price", mode="before")
    @classmethod
    def normalize_price(cls, v):
        return _parse_price(v)

    @field_validator("category", "notes", mode="before")
    @classmethod
    def default_text(cls, v, info):
        text = str(v or "").strip()
        if not text and info.field_name == "category":
            return "Materials"
        return text


class GenerateMaterialsArgs(BaseModel):
    materials: List[MaterialSuggestion] = Field(..., min_length=1)


class TaskSuggestion(BaseModel):
    title: str = Field(..., min_length=1)
    order: int
    estimated_time: Optional[str] = None
    difficulty: Optional[str] = None
    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def default_notes(cls, v):
        return str(v or "")


class GenerateChecklistArgs(BaseModel):
    tasks: List[TaskSuggestion] = Field(..., min_length=1)


class SearchWebResourcesArgs(BaseModel):
    query: str = Field(..., min_length=1)
    resource_type: ResourceType = "inspiration"
    content_type: Optional[ContentType] = None
    num_results: int = 3

    @field_validator("resource_type", mode="before")
    @classmethod
    def parse_resource_type(cls, v):
        return _pick_choice(v, RESOURCE_TYPES) or "inspiration"

    @field_validator("content_type", mode="before")
    @classmethod
    def parse_content_type(cls, v):
        return _pick_choice(v, CONTENT_TYPES)


class SummarizeWebpageArgs(BaseModel):
    url: str = Field(..., min_length=1)
    focus_areas: List[str] = Field(default_factory=list)


class SummarizeNotesArgs(BaseModel):
    summary: str = Field(..., min_length=1)
    key_points: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class WebpageAnalysis(BaseModel):
    """网页结构化分析结果"""
    summary: str
    key_techniques: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    safety_notes: List[str] = Field(default_factory=list)
    difficulty: Literal["Beginner", "Intermediate", "Advanced"] = "Intermediate"
    estimated_time: Optional[str] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def parse_difficulty(cls, v):
        text = str(v or "").strip().capitalize()
        return text if text in ("Beginner", "Intermediate", "Advanced") else "Intermediate"


# ---------------------------------------------------------------------------
# 返回结构
# ---------------------------------------------------------------------------


class ToolInvocationRecord(BaseModel):
    """一次工具调用：名称 + 参数 + 结果"""
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Dict[str, Any] = Field(default_factory=dict)


class ChatMetadata(BaseModel):
    has_search_results: bool = False
    search_results_count: int = 0
    content_type: Optional[str] = None
    resource_type: Optional[str] = None
    query_optimization: Optional[Dict[str, Any]] = None


class ChatResult(BaseModel):
    """一次助手回合的返回"""
    message: str
    thread_id: str
    response_type: ResponseType = "conversation"
    function_call: Optional[ToolInvocationRecord] = None
    function_calls: List[ToolInvocationRecord] = Field(default_factory=list)
    metadata: ChatMetadata = Field(default_factory=ChatMetadata)
