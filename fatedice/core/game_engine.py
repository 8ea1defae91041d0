import random
from typing import List, Optional

from .config import get_settings
from .events import User
from .hooks import Hooks, INIT, READY, GET_SCENE_CONTROL_BUTTONS
from .logger import get_logger
from ..components.controls import ControlGroup, OverrideControlSurface
from ..components.interceptor import RollDispatchInterceptor
from ..components.override import DieEvaluationOverride
from ..components.roll_pipeline import RollPipeline
from ..memory.database import DatabaseManager, db_manager
from ..memory.override_store import PendingOverrideStore
from ..memory.settings_registry import WorldSettings

logger = get_logger(__name__)


class RollEngine:
    def __init__(self, db: Optional[DatabaseManager] = None, world: Optional[str] = None,
                 rng: Optional[random.Random] = None):
        settings = get_settings()
        self.hooks = Hooks()
        self.db = db or db_manager
        self.world_settings = WorldSettings(self.db, world)
        self.store = PendingOverrideStore(
            self.world_settings,
            namespace=settings.override.module_id,
            key=settings.override.setting_key,
            min_value=settings.override.min_value,
            max_value=settings.override.max_value,
        )
        self.pipeline = RollPipeline(self.hooks, rng=rng)
        self.override = DieEvaluationOverride(self)
        self.interceptor = RollDispatchInterceptor(
            self.store,
            self.hooks,
            self,
            module_id=settings.override.module_id,
            legacy_roll_hook=settings.override.legacy_roll_hook,
        )
        self.controls = OverrideControlSurface(
            self.store,
            self.hooks,
            self,
            tool_name=settings.control.tool_name,
            tool_icon=settings.control.tool_icon,
            control_group=settings.control.control_group,
        )
        self.started = False

    async def start(self):
        """
        启动流程:
        1. 初始化 (init): 注册设置项，挂载钩子
        2. 加载 (load): 建表并读取已保存的替换值
        3. 就绪 (ready): 安装 d20 替换求值器
        """
        if self.started:
            return

        self.store.register()
        self.interceptor.initialize()
        self.controls.initialize()
        await self.hooks.call_all(INIT, self)

        try:
            await self.db.init_db()
        except Exception as e:
            logger.warning(f"数据库初始化失败，替换值将无法持久化: {e}")
        await self.store.load()

        self.override.initialize()
        await self.hooks.call_all(READY, self)

        self.started = True
        logger.info(f"掷骰引擎已启动 (世界: {self.world_settings.world})")

    async def stop(self):
        await self.db.dispose()
        self.started = False
        logger.info("掷骰引擎已关闭")

    async def scene_controls(self, user: User) -> List[ControlGroup]:
        """构造左侧控制栏，扩展组件通过钩子追加按钮"""
        controls = [
            ControlGroup(name="token", title="标记"),
            ControlGroup(name="measure", title="测量"),
        ]
        await self.hooks.call_all(GET_SCENE_CONTROL_BUTTONS, controls, user)
        return controls
