"""
设置注册表

组件在启动时注册自己的设置项（命名空间 + 键），之后通过 get/set 读写。
- scope="world": 持久化到数据库，按当前世界隔离
- scope="client": 仅保存在进程内

config=False 的设置项不会出现在通用设置菜单 (menu_entries) 中，只能由专门的界面修改。
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core import get_logger, get_settings
from .database import DatabaseManager, db_manager
from .repositories import SettingRepository

logger = get_logger(__name__)

SCOPES = ("world", "client")


@dataclass
class SettingDefinition:
    """设置项定义"""
    namespace: str
    key: str
    name: str = ""
    hint: str = ""
    scope: str = "world"
    config: bool = False
    type: Callable[[Any], Any] = str
    default: Any = None

    @property
    def full_key(self) -> str:
        return f"{self.namespace}.{self.key}"

    def coerce(self, value: Any) -> Any:
        """按声明类型转换，失败时返回默认值"""
        if value is None:
            return self.default
        try:
            return self.type(value)
        except (TypeError, ValueError):
            logger.warning(f"设置项 {self.full_key} 的值 {value!r} 无法转换为 {self.type}，使用默认值")
            return self.default


class WorldSettings:
    def __init__(self, db: Optional[DatabaseManager] = None, world: Optional[str] = None):
        self.db = db or db_manager
        self.world = world or get_settings().project.active_world
        self._definitions: Dict[str, SettingDefinition] = {}
        self._client_values: Dict[str, Any] = {}

    def register(self, namespace: str, key: str, **data: Any) -> SettingDefinition:
        definition = SettingDefinition(namespace=namespace, key=key, **data)
        if definition.scope not in SCOPES:
            raise ValueError(f"未知的设置作用域 '{definition.scope}'，可用: {', '.join(SCOPES)}")
        if definition.full_key in self._definitions:
            logger.warning(f"设置项 {definition.full_key} 重复注册，将覆盖原定义")
        self._definitions[definition.full_key] = definition
        logger.debug(f"注册设置项 {definition.full_key} (scope={definition.scope})")
        return definition

    def definition(self, namespace: str, key: str) -> SettingDefinition:
        full_key = f"{namespace}.{key}"
        if full_key not in self._definitions:
            raise KeyError(f"未注册的设置项: {full_key}")
        return self._definitions[full_key]

    def menu_entries(self) -> List[SettingDefinition]:
        """通用设置菜单中可见的设置项"""
        return [d for d in self._definitions.values() if d.config]

    async def get(self, namespace: str, key: str) -> Any:
        definition = self.definition(namespace, key)
        if definition.scope == "client":
            return self._client_values.get(definition.full_key, definition.default)

        async with self.db.session_factory() as session:
            row = await SettingRepository(session).get(self.world, namespace, key)
        if row is None:
            return definition.default
        return definition.coerce(row.value)

    async def set(self, namespace: str, key: str, value: Any) -> Any:
        definition = self.definition(namespace, key)
        value = definition.coerce(value)
        if definition.scope == "client":
            self._client_values[definition.full_key] = value
            return value

        async with self.db.session_factory() as session:
            await SettingRepository(session).upsert(self.world, namespace, key, value)
        logger.debug(f"设置项 {definition.full_key} 已更新")
        return value
