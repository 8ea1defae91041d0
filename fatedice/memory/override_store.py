"""
待生效的 d20 替换值

整个会话只有一个值：0 表示无替换，1-20 表示下一次 d20 检定必须掷出的点数。
新值覆盖旧值，不排队。

进程内缓存是权威值，数据库只用于跨重启保存。consume_and_reset 在读取与清零之间没有 await，
因此在单线程事件循环中是原子的：其他任务不会看到被消费前的旧值。
持久化失败只记录日志，读取失败视为无替换。
"""
import asyncio
from typing import Any

from ..core import get_logger
from .settings_registry import WorldSettings

logger = get_logger(__name__)


class PendingOverrideStore:
    def __init__(self, settings: WorldSettings, namespace: str = "d20-override", key: str = "nextD20",
                 min_value: int = 1, max_value: int = 20):
        self.settings = settings
        self.namespace = namespace
        self.key = key
        self.min_value = min_value
        self.max_value = max_value
        self._value = 0
        # 保证写入按调用顺序落库
        self._write_lock = asyncio.Lock()

    def register(self):
        """注册对应的世界级设置项（不出现在通用设置菜单中）"""
        self.settings.register(
            self.namespace,
            self.key,
            name="下一次 d20 值",
            hint=f"若设置为 {self.min_value}-{self.max_value}，下一次 d20 检定将被强制为该值，随后重置为 0。",
            scope="world",
            config=False,
            type=int,
            default=0,
        )

    def normalize(self, value: Any) -> int:
        try:
            value = int(value)
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"无效的替换值 {value!r}，视为无替换")
            return 0
        if value != 0 and not (self.min_value <= value <= self.max_value):
            logger.warning(f"替换值 {value} 超出范围 [{self.min_value}, {self.max_value}]，视为无替换")
            return 0
        return value

    async def load(self) -> int:
        """从数据库读取已保存的值"""
        try:
            value = await self.settings.get(self.namespace, self.key)
        except Exception as e:
            logger.warning(f"读取待生效替换值失败，视为无替换: {e}")
            value = 0
        self._value = self.normalize(value)
        return self._value

    def get(self) -> int:
        return self._value

    async def set(self, value: Any) -> int:
        self._value = self.normalize(value)
        await self._persist()
        return self._value

    async def consume_and_reset(self) -> int:
        """读取并清零，返回被消费的值"""
        value, self._value = self._value, 0
        if value:
            await self._persist()
        return value

    async def _persist(self):
        async with self._write_lock:
            try:
                await self.settings.set(self.namespace, self.key, self._value)
            except Exception as e:
                logger.warning(f"保存待生效替换值失败: {e}")
