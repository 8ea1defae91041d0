"""
数据模型定义
定义用于存储世界级设置的数据库模型
"""
from datetime import datetime
from typing import Any
from sqlalchemy import String, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from .database import Base

class WorldSetting(Base):
    """
    世界级设置表
    每个世界、每个命名空间下的一个设置键对应一行，值以 JSON 存储。
    """
    __tablename__ = "world_settings"
    __table_args__ = (
        UniqueConstraint("world", "namespace", "key", name="uq_world_setting"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    world: Mapped[str] = mapped_column(String(64), nullable=False)
    namespace: Mapped[str] = mapped_column(String(64), nullable=False)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
