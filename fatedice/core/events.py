"""
events模块
定义了程序中，模块间传递信息的数据结构
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class PromptAction(str, Enum):
    """替换值对话框的按钮动作"""
    APPLY = "apply"
    RESET = "reset"
    CANCEL = "cancel"


@dataclass
class User:
    """
    当前操作者
    name: 用户名称
    is_gm: 是否为主持人（GM），只有 GM 能看到并使用替换工具
    """
    name: str = "player"
    is_gm: bool = False


@dataclass(frozen=True)
class ForcedValueTag:
    """
    强制点数标记
    value: 下一次求值必须得到的点数（尚未按骰面数截断）
    """
    value: int


class EvaluationContext:
    """
    单次掷骰的求值上下文

    保存本次掷骰中被标记的骰子及其强制点数。标记与骰子对象本身解耦，
    take() 取出后即失效，同一骰子之后的独立求值不会再看到它。
    """

    def __init__(self):
        # id(die) -> (die, tag)，保留 die 引用以免 id 被复用
        self._tags: Dict[int, Tuple[Any, ForcedValueTag]] = {}

    def stamp(self, die: Any, value: int) -> ForcedValueTag:
        tag = ForcedValueTag(value=value)
        self._tags[id(die)] = (die, tag)
        return tag

    def peek(self, die: Any) -> Optional[ForcedValueTag]:
        entry = self._tags.get(id(die))
        return entry[1] if entry else None

    def take(self, die: Any) -> Optional[ForcedValueTag]:
        entry = self._tags.pop(id(die), None)
        return entry[1] if entry else None

    def __len__(self) -> int:
        return len(self._tags)


@dataclass
class RollConfiguration:
    """
    掷骰配置（掷骰形态描述）
    kind: 掷骰类别，"check" 为 d20 检定，"formula" 为自由掷骰
    rolls: 本次请求包含的掷骰对象
    context: 本次请求的求值上下文，由拦截器写入、求值器消费
    subject: 可选，发起掷骰的角色名称
    options: 附加选项
    """
    kind: str
    rolls: List[Any] = field(default_factory=list)
    context: EvaluationContext = field(default_factory=EvaluationContext)
    subject: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
