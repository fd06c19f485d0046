"""SQLAlchemy基类"""
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    """所有模型的基类"""
    pass


def utcnow() -> datetime:
    """库内统一使用不带时区的 UTC 时间。"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
