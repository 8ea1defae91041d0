"""
替换值控制面板

- 工具按钮：挂到 "token" 控制组，只有 GM 可见，标题显示当前待生效的值
- 对话框：输入 1-20，"应用" / "重置" / "取消"

非数字、越界或空输入一律按 0（无替换）处理。
"""
import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Union

from ..core import get_logger
from ..core.events import PromptAction, User
from ..core.hooks import Hooks, GET_SCENE_CONTROL_BUTTONS, RENDER_SCENE_CONTROLS
from ..memory.override_store import PendingOverrideStore
from .base import BaseComponent

logger = get_logger(__name__)


def clamp_override(raw: Any, min_value: int = 1, max_value: int = 20) -> int:
    """将输入转换为合法替换值，无法识别时返回 0"""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 0
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(value):
        return 0
    if min_value <= value <= max_value:
        return int(math.floor(value))
    return 0


@dataclass
class ToolButton:
    name: str
    title: str
    icon: str
    visible: bool = True
    button: bool = True


@dataclass
class ControlGroup:
    name: str
    title: str = ""
    tools: List[ToolButton] = field(default_factory=list)

    def to_dict(self, include_hidden: bool = False) -> Dict[str, Any]:
        tools = [asdict(t) for t in self.tools if include_hidden or t.visible]
        return {"name": self.name, "title": self.title, "tools": tools}


@dataclass
class PromptField:
    name: str
    label: str
    min: int
    max: int
    value: int


@dataclass
class PromptButton:
    action: PromptAction
    label: str
    icon: str


@dataclass
class PromptForm:
    title: str
    field: PromptField
    notes: str
    buttons: List[PromptButton]
    default: PromptAction = PromptAction.APPLY

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["default"] = self.default.value
        for button in data["buttons"]:
            button["action"] = button["action"].value
        return data


class OverrideControlSurface(BaseComponent):
    def __init__(self, store: PendingOverrideStore, hooks: Hooks, engine=None,
                 tool_name: str = "d20-override-tool", tool_icon: str = "fas fa-dice-d20",
                 control_group: str = "token"):
        super().__init__(engine)
        self.store = store
        self.hooks = hooks
        self.tool_name = tool_name
        self.tool_icon = tool_icon
        self.control_group = control_group

    def initialize(self):
        self.hooks.on(GET_SCENE_CONTROL_BUTTONS, self.get_scene_control_buttons)

    def label(self) -> str:
        current = self.store.get()
        return f"d20 替换: {current}" if current else "d20 替换"

    def prompt_form(self) -> PromptForm:
        return PromptForm(
            title="选择下一次 d20 的点数",
            field=PromptField(
                name="value",
                label=f"d20 点数 ({self.store.min_value}-{self.store.max_value}):",
                min=self.store.min_value,
                max=self.store.max_value,
                value=self.store.get(),
            ),
            notes="0 或留空：重置，不做替换。",
            buttons=[
                PromptButton(PromptAction.APPLY, "应用", "fas fa-check"),
                PromptButton(PromptAction.RESET, "重置", "fas fa-undo"),
                PromptButton(PromptAction.CANCEL, "取消", "fas fa-times"),
            ],
        )

    async def submit(self, action: Union[PromptAction, str], raw: Any = None) -> Optional[int]:
        """
        处理对话框动作

        Returns:
            保存后的值；取消时返回 None
        """
        action = PromptAction(action)
        if action == PromptAction.CANCEL:
            return None

        value = 0
        if action == PromptAction.APPLY:
            value = clamp_override(raw, self.store.min_value, self.store.max_value)

        stored = await self.store.set(value)
        # 刷新按钮标题
        await self.hooks.call_all(RENDER_SCENE_CONTROLS)
        return stored

    def get_scene_control_buttons(self, controls: List[ControlGroup], user: Optional[User] = None):
        try:
            group = next((c for c in controls if c.name == self.control_group), None)
            if group is None:
                return
            # 防止重复添加
            if any(t.name == self.tool_name for t in group.tools):
                return
            group.tools.append(ToolButton(
                name=self.tool_name,
                title=self.label(),
                icon=self.tool_icon,
                visible=bool(user and user.is_gm),
                button=True,
            ))
        except Exception as e:
            logger.error(f"添加控制按钮失败: {e}", exc_info=True)
