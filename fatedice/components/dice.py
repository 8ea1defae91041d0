"""
骰子模块

骰子项（Die）本身不决定点数从哪里来，而是委托给结果来源（ResultSource）：
- RandomResultSource: 随机生成
- ForcedResultSource: 返回固定点数（按骰面数截断）

每次求值由求值器（DieEvaluator）选择本次使用的结果来源。

支持格式：
- 标准格式: "1d20+5"、"2d6 - 1"
- 取高/取低: "2d20kh"、"4d6kh3"、"2d20kl"
- 最小/最大值: "1d20min10"
"""
import math
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..core import get_logger
from ..core.events import EvaluationContext

logger = get_logger(__name__)

DIE_PATTERN = re.compile(r"(\d*)d(\d+)((?:(?:kh|kl|min|max)\d*)*)", re.IGNORECASE)
MODIFIER_PATTERN = re.compile(r"(kh|kl|min|max)(\d*)", re.IGNORECASE)
OPERATOR_SPLIT = re.compile(r"\s*([+-])\s*")


def clamp_face(value, faces) -> int:
    """将点数截断到 [1, faces]，非整数向下取整"""
    faces = int(faces) if faces else 20
    return max(1, min(faces, math.floor(float(value))))


# ============================================
# 结果来源
# ============================================

class ResultSource(ABC):
    """单颗骰子点数的来源"""

    @abstractmethod
    def draw(self, faces: int) -> int:
        pass

    async def draw_async(self, faces: int) -> int:
        return self.draw(faces)


class RandomResultSource(ResultSource):
    """随机来源，可注入 random.Random 实例以固定种子"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random

    def draw(self, faces: int) -> int:
        return self.rng.randint(1, faces)


class ForcedResultSource(ResultSource):
    """固定来源，始终返回截断后的同一点数"""

    def __init__(self, value: int):
        self.value = value

    def draw(self, faces: int) -> int:
        return clamp_face(self.value, faces)


# ============================================
# 掷骰项
# ============================================

@dataclass
class DieResult:
    """
    单颗骰子的结果
    result: 点数
    active: 是否计入总值（取高/取低时被舍弃的骰子为 False）
    discarded: 是否被取高/取低舍弃
    """
    result: int
    active: bool = True
    discarded: bool = False


class RollTerm(ABC):
    """掷骰公式中的一项"""

    @property
    @abstractmethod
    def formula(self) -> str:
        pass

    @property
    def total(self) -> Optional[int]:
        return None


class NumericTerm(RollTerm):
    def __init__(self, number: int):
        self.number = int(number)

    @property
    def formula(self) -> str:
        return str(self.number)

    @property
    def total(self) -> int:
        return self.number


class OperatorTerm(RollTerm):
    def __init__(self, operator: str):
        if operator not in ("+", "-"):
            raise ValueError(f"不支持的运算符: {operator}")
        self.operator = operator

    @property
    def formula(self) -> str:
        return self.operator


class Die(RollTerm):
    """
    一组同面数的骰子，如 2d20kh
    number: 骰子数量
    faces: 骰面数
    modifiers: 修饰符列表，如 ["kh"]、["min10"]
    options: 附加选项（优势模式等），不参与显示
    """

    def __init__(self, number: int = 1, faces: int = 6, modifiers: Optional[List[str]] = None,
                 options: Optional[dict] = None, source: Optional[ResultSource] = None):
        self.number = int(number)
        self.faces = int(faces)
        self.modifiers = list(modifiers or [])
        self.options = dict(options or {})
        self.source = source or RandomResultSource()
        self.results: List[DieResult] = []
        self.evaluated_at: Optional[datetime] = None
        self._evaluated = False

    def __repr__(self):
        return f"<{type(self).__name__} {self.formula}>"

    @property
    def formula(self) -> str:
        return f"{self.number}d{self.faces}{''.join(self.modifiers)}"

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    @property
    def values(self) -> List[int]:
        """计入总值的点数"""
        return [r.result for r in self.results if r.active]

    @property
    def total(self) -> Optional[int]:
        if not self._evaluated:
            return None
        return sum(self.values)

    def evaluate(self, source: Optional[ResultSource] = None, reroll: bool = False) -> "Die":
        """
        同步求值。已有的结果会被保留，只补齐缺少的骰子。
        reroll=True 时清空旧结果重新求值。
        """
        self._prepare(reroll)
        source = source or self.source
        for _ in range(max(0, self.number - len(self.results))):
            self.results.append(DieResult(result=source.draw(self.faces)))
        return self._finish()

    async def evaluate_async(self, source: Optional[ResultSource] = None, reroll: bool = False) -> "Die":
        """异步求值，语义与 evaluate 相同"""
        self._prepare(reroll)
        source = source or self.source
        for _ in range(max(0, self.number - len(self.results))):
            self.results.append(DieResult(result=await source.draw_async(self.faces)))
        return self._finish()

    def roll(self, source: Optional[ResultSource] = None) -> int:
        """单次原始抽取，不写入 results"""
        return (source or self.source).draw(self.faces)

    def _prepare(self, reroll: bool):
        if self._evaluated:
            if not reroll:
                raise RuntimeError(f"骰子 {self.formula} 已经求值，不能重复求值")
            self.results = []
            self._evaluated = False

    def _finish(self) -> "Die":
        self._apply_modifiers()
        self._evaluated = True
        self.evaluated_at = datetime.now()
        return self

    def _apply_modifiers(self):
        for modifier in self.modifiers:
            match = MODIFIER_PATTERN.fullmatch(modifier)
            if not match:
                logger.warning(f"忽略无法识别的修饰符: {modifier}")
                continue
            op, arg = match.group(1).lower(), match.group(2)
            if op in ("kh", "kl"):
                self._keep(int(arg) if arg else 1, highest=(op == "kh"))
            elif not arg:
                logger.warning(f"修饰符 {modifier} 缺少数值，已忽略")
            elif op == "min":
                self._bound(low=int(arg))
            else:
                self._bound(high=int(arg))

    def _keep(self, count: int, highest: bool):
        active = [r for r in self.results if r.active]
        # sorted 是稳定排序，点数相同时保留靠前的骰子
        ranked = sorted(active, key=lambda r: r.result, reverse=highest)
        for r in ranked[count:]:
            r.active = False
            r.discarded = True

    def _bound(self, low: Optional[int] = None, high: Optional[int] = None):
        for r in self.results:
            if low is not None and r.result < low:
                r.result = low
            if high is not None and r.result > high:
                r.result = high


class D20Die(Die):
    """检定用的主 d20"""

    def __init__(self, number: int = 1, faces: int = 20, modifiers: Optional[List[str]] = None,
                 options: Optional[dict] = None, source: Optional[ResultSource] = None):
        super().__init__(number=number, faces=faces, modifiers=modifiers, options=options, source=source)

    @property
    def kept(self) -> Optional[int]:
        """被保留的那颗 d20 的点数"""
        values = self.values
        return values[0] if values else None


# ============================================
# 求值器
# ============================================

class DieEvaluator:
    """默认求值器：直接使用骰子自身的随机来源"""

    def evaluate(self, die: Die, context: Optional[EvaluationContext] = None) -> Die:
        return die.evaluate()

    async def evaluate_async(self, die: Die, context: Optional[EvaluationContext] = None) -> Die:
        return await die.evaluate_async()

    def roll(self, die: Die, context: Optional[EvaluationContext] = None) -> int:
        return die.roll()


# ============================================
# 公式解析
# ============================================

def parse_terms(formula: str, rng: Optional[random.Random] = None) -> List[RollTerm]:
    """
    将 "1d20 + 5 - 1" 解析为掷骰项列表。
    第一个 d20 骰子项解析为 D20Die，其余骰子为普通 Die。
    """
    if not formula or not formula.strip():
        raise ValueError("掷骰公式为空")

    parts = [p for p in OPERATOR_SPLIT.split(formula.strip()) if p != ""]
    terms: List[RollTerm] = []
    has_d20 = False

    for part in parts:
        if part in ("+", "-"):
            if terms and isinstance(terms[-1], OperatorTerm):
                raise ValueError(f"无效的掷骰公式: {formula}")
            terms.append(OperatorTerm(part))
            continue

        if terms and not isinstance(terms[-1], OperatorTerm):
            raise ValueError(f"无效的掷骰公式: {formula}")

        if part.isdigit():
            terms.append(NumericTerm(int(part)))
            continue

        match = DIE_PATTERN.fullmatch(part)
        if not match:
            raise ValueError(f"无效的掷骰项: {part}")

        number = int(match.group(1)) if match.group(1) else 1
        faces = int(match.group(2))
        if number < 1 or faces < 1:
            raise ValueError(f"无效的掷骰项: {part}")
        modifiers = MODIFIER_PATTERN.findall(match.group(3) or "")
        modifiers = [f"{op.lower()}{arg}" for op, arg in modifiers]
        source = RandomResultSource(rng) if rng else None

        if faces == 20 and not has_d20:
            terms.append(D20Die(number=number, modifiers=modifiers, source=source))
            has_d20 = True
        else:
            terms.append(Die(number=number, faces=faces, modifiers=modifiers, source=source))

    if not terms or isinstance(terms[-1], OperatorTerm):
        raise ValueError(f"无效的掷骰公式: {formula}")

    return terms
