"""
Memory 模块
封装数据库与世界级设置的持久化
"""
from .database import DatabaseManager, db_manager, init_db
from .settings_registry import SettingDefinition, WorldSettings
from .override_store import PendingOverrideStore

__all__ = [
    # 数据库
    "DatabaseManager",
    "db_manager",
    "init_db",
    # 设置
    "SettingDefinition",
    "WorldSettings",
    "PendingOverrideStore",
]
