"""应用配置"""
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List


class Settings(BaseSettings):
    """应用配置类"""

    # 应用信息
    APP_NAME: str = "DIY项目助手"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # 数据库配置（项目资料 + 对话线程/消息在同一个库）
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/diy_assistant.db"

    # CORS配置
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081,http://localhost:19006"

    # OpenAI 配置
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_TIMEOUT_SEC: float = 60.0
    # 对话主模型（带工具调用）
    CHAT_MODEL: str = "gpt-4o"
    # 意图分类 / 搜索词优化 / 网页分析等结构化调用
    UTILITY_MODEL: str = "gpt-4o-mini"

    # Exa 网页搜索
    EXA_API_KEY: str = ""
    EXA_BASE_URL: str = "https://api.exa.ai"
    EXA_TIMEOUT_SEC: int = 30

    # 助手编排参数
    CHAT_HISTORY_LIMIT: int = 20  # 送入模型的最近消息条数
    CHAT_HISTORY_API_LIMIT: int = 50  # 历史接口返回条数
    THREAD_ACTIVE_HOURS: int = 24  # 线程活跃窗口
    MAX_TOOL_ROUNDS: int = 3  # 工具调用轮数上限

    # 资源搜索
    SEARCH_MAX_RESULTS: int = 5
    SEARCH_DEFAULT_RESULTS: int = 3
    SEARCH_CACHE_TTL_SEC: int = 1800
    SEARCH_CACHE_MAX_ENTRIES: int = 1000

    @model_validator(mode="before")
    @classmethod
    def treat_empty_env_as_unset(cls, data):
        """
        将空字符串环境变量按“未配置”处理。
        这样 .env 中留空不会覆盖默认值，也避免数值类型解析报错。
        """
        if not isinstance(data, dict):
            return data

        cleaned = dict(data)
        for field_name, field in cls.model_fields.items():
            default = field.default

            # 仅当字段本身有可用默认值时，空字符串才回退到默认值
            if default in (None, ""):
                continue

            if cleaned.get(field_name) == "":
                cleaned.pop(field_name, None)

        return cleaned

    @property
    def cors_origins_list(self) -> List[str]:
        """获取CORS允许的源列表"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def search_enabled(self) -> bool:
        return bool(self.EXA_API_KEY)

    class Config:
        env_file = (".env", "backend/.env")
        case_sensitive = True
        extra = "ignore"


# 全局配置实例
settings = Settings()
