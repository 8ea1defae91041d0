"""
钩子模块
提供具名扩展点，组件通过 on/once 挂载处理函数，掷骰流水线在固定阶段触发。

处理函数可以是普通函数或协程函数。单个处理函数抛出的异常只记录日志，不会中断其余处理函数，
也不会中断掷骰本身。
"""
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from .logger import get_logger

logger = get_logger(__name__)


# 掷骰流水线使用的钩子名称
POST_D20_TEST_ROLL_CONFIGURATION = "postD20TestRollConfiguration"
POST_ROLL_CONFIGURATION = "postRollConfiguration"
ROLL_COMPLETED = "rollCompleted"
GET_SCENE_CONTROL_BUTTONS = "getSceneControlButtons"
RENDER_SCENE_CONTROLS = "renderSceneControls"
INIT = "init"
READY = "ready"


@dataclass
class _Handler:
    id: int
    fn: Callable[..., Any]
    once: bool = False


class Hooks:
    """钩子注册表"""

    def __init__(self):
        self._events: Dict[str, List[_Handler]] = {}
        self._next_id = 1

    def on(self, name: str, fn: Callable[..., Any], once: bool = False) -> int:
        """挂载处理函数，返回用于注销的 id"""
        handler = _Handler(id=self._next_id, fn=fn, once=once)
        self._next_id += 1
        self._events.setdefault(name, []).append(handler)
        logger.debug(f"挂载钩子 {name} (id={handler.id})")
        return handler.id

    def once(self, name: str, fn: Callable[..., Any]) -> int:
        """挂载只触发一次的处理函数"""
        return self.on(name, fn, once=True)

    def off(self, name: str, hook_id: int) -> bool:
        handlers = self._events.get(name, [])
        for handler in handlers:
            if handler.id == hook_id:
                handlers.remove(handler)
                return True
        return False

    def handlers(self, name: str) -> List[Callable[..., Any]]:
        return [h.fn for h in self._events.get(name, [])]

    async def call_all(self, name: str, *args: Any) -> bool:
        """依次调用全部处理函数，忽略返回值"""
        for handler in self._take(name):
            await self._invoke(name, handler, args)
        return True

    async def call(self, name: str, *args: Any) -> bool:
        """
        依次调用处理函数，任一处理函数显式返回 False 时停止并返回 False
        """
        for handler in self._take(name):
            result = await self._invoke(name, handler, args)
            if result is False:
                return False
        return True

    def _take(self, name: str) -> List[_Handler]:
        handlers = list(self._events.get(name, []))
        # once 处理函数在调用前移除，避免重入时重复触发
        for handler in handlers:
            if handler.once:
                self._events[name].remove(handler)
        return handlers

    async def _invoke(self, name: str, handler: _Handler, args: tuple) -> Any:
        try:
            result = handler.fn(*args)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.error(f"钩子 {name} 的处理函数执行失败: {e}", exc_info=True)
            return None
