"""
掷骰配置拦截器

挂载在 postD20TestRollConfiguration 钩子上，每次 d20 检定在求值前调用一次：
1. 消费待生效替换值，为 0 时直接返回（常规路径，无任何副作用）
2. 校验掷骰形态，无法识别时放弃（替换值已被消费，不会恢复）
3. 按优势模式设置主 d20 数量：优势 2 颗（精灵之准 3 颗），劣势 2 颗，普通 1 颗；
   未按优势模式配置过的主 d20（如自由掷骰 2d20kh）保留公式中的数量
4. 在求值上下文中为主 d20 打上强制点数标记，并在掷骰 options 中记录该值
"""
from typing import Any, List

from ..core import get_logger
from ..core.events import RollConfiguration
from ..core.hooks import Hooks, POST_D20_TEST_ROLL_CONFIGURATION, POST_ROLL_CONFIGURATION, RENDER_SCENE_CONTROLS
from ..memory.override_store import PendingOverrideStore
from .base import BaseComponent
from .d20_roll import AdvantageMode

logger = get_logger(__name__)


def dice_count(mode: AdvantageMode, elven_accuracy: bool = False) -> int:
    """优势模式对应的主 d20 数量"""
    if mode == AdvantageMode.ADVANTAGE:
        return 3 if elven_accuracy else 2
    if mode == AdvantageMode.DISADVANTAGE:
        return 2
    return 1


def is_d20_roll_config(config: Any) -> bool:
    try:
        return isinstance(config.rolls, list)
    except Exception:
        return False


class RollDispatchInterceptor(BaseComponent):
    def __init__(self, store: PendingOverrideStore, hooks: Hooks, engine=None,
                 module_id: str = "d20-override", legacy_roll_hook: bool = False):
        super().__init__(engine)
        self.store = store
        self.hooks = hooks
        self.module_id = module_id
        self.legacy_roll_hook = legacy_roll_hook

    @property
    def option_key(self) -> str:
        """掷骰 options 中记录强制值的键"""
        return f"{self.module_id}Forced"

    def initialize(self):
        self.hooks.on(POST_D20_TEST_ROLL_CONFIGURATION, self.apply)
        if self.legacy_roll_hook:
            self.hooks.on(POST_ROLL_CONFIGURATION, self.apply)

    async def apply(self, rolls: List[Any], config: RollConfiguration):
        try:
            value = await self.store.consume_and_reset()
            if not value:
                return

            if not (isinstance(rolls, list) and rolls and is_d20_roll_config(config)):
                logger.debug(f"掷骰形态无法识别，替换值 {value} 已丢弃")
                return

            applied = 0
            for roll in rolls:
                if not getattr(roll, "valid_d20_roll", False):
                    continue
                d20 = roll.d20
                if d20 is None:
                    continue

                # 只调整按优势模式配置过的主 d20，自由掷骰保留公式中的骰子数量
                if "advantage_mode" in d20.options:
                    mode = AdvantageMode.parse(d20.options["advantage_mode"])
                    d20.number = dice_count(mode, bool(d20.options.get("elven_accuracy")))

                config.context.stamp(d20, value)
                roll.options[self.option_key] = value
                applied += 1

            if not applied:
                logger.debug(f"本次掷骰不包含主 d20，替换值 {value} 已丢弃")

            await self.hooks.call_all(RENDER_SCENE_CONTROLS)
        except Exception as e:
            logger.error(f"应用 d20 替换失败: {e}", exc_info=True)
