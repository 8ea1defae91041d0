"""
掷骰请求

Roll 是一次自由掷骰（"2d6 + 3"）；D20Roll 是一次检定/豁免/攻击掷骰：
一个主 d20 加若干修正项，以及优势模式。
"""
import random
from enum import IntEnum
from typing import Any, Dict, List, Optional

from ..core.events import EvaluationContext
from .dice import D20Die, Die, DieEvaluator, NumericTerm, OperatorTerm, RollTerm, parse_terms


class AdvantageMode(IntEnum):
    DISADVANTAGE = -1
    NORMAL = 0
    ADVANTAGE = 1

    @classmethod
    def parse(cls, value: Any) -> "AdvantageMode":
        """接受 "advantage"/"adv"/1 等多种写法，无法识别时为 NORMAL"""
        if isinstance(value, AdvantageMode):
            return value
        if isinstance(value, str):
            aliases = {
                "advantage": cls.ADVANTAGE, "adv": cls.ADVANTAGE,
                "disadvantage": cls.DISADVANTAGE, "dis": cls.DISADVANTAGE,
                "normal": cls.NORMAL, "": cls.NORMAL,
            }
            key = value.strip().lower()
            if key in aliases:
                return aliases[key]
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.NORMAL


class Roll:
    """一次掷骰请求，由掷骰项组成"""

    def __init__(self, formula: str, options: Optional[Dict[str, Any]] = None,
                 rng: Optional[random.Random] = None):
        self.options: Dict[str, Any] = dict(options or {})
        self.terms: List[RollTerm] = parse_terms(formula, rng=rng)
        self._evaluated = False

    def __repr__(self):
        return f"<{type(self).__name__} {self.formula}>"

    @property
    def formula(self) -> str:
        return " ".join(t.formula for t in self.terms)

    @property
    def dice(self) -> List[Die]:
        return [t for t in self.terms if isinstance(t, Die)]

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    def evaluate(self, context: Optional[EvaluationContext] = None,
                 evaluator: Optional[DieEvaluator] = None) -> "Roll":
        evaluator = evaluator or DieEvaluator()
        for die in self.dice:
            evaluator.evaluate(die, context)
        self._evaluated = True
        return self

    async def evaluate_async(self, context: Optional[EvaluationContext] = None,
                             evaluator: Optional[DieEvaluator] = None) -> "Roll":
        evaluator = evaluator or DieEvaluator()
        for die in self.dice:
            await evaluator.evaluate_async(die, context)
        self._evaluated = True
        return self

    @property
    def total(self) -> Optional[int]:
        if not self._evaluated:
            return None
        total = 0
        sign = 1
        for term in self.terms:
            if isinstance(term, OperatorTerm):
                sign = -1 if term.operator == "-" else 1
                continue
            total += sign * (term.total or 0)
            sign = 1
        return total

    def to_dict(self) -> Dict[str, Any]:
        """对外展示的结果，不包含 options"""
        terms = []
        for term in self.terms:
            if isinstance(term, Die):
                terms.append({
                    "formula": term.formula,
                    "faces": term.faces,
                    "number": term.number,
                    "results": [{"result": r.result, "active": r.active} for r in term.results],
                    "total": term.total,
                })
            elif isinstance(term, NumericTerm):
                terms.append({"formula": term.formula, "total": term.total})
            else:
                terms.append({"formula": term.formula})
        return {
            "formula": self.formula,
            "flavor": self.options.get("flavor"),
            "terms": terms,
            "total": self.total,
        }


class D20Roll(Roll):
    """
    d20 检定掷骰

    options 中的常用键：
    - advantage_mode: 优势模式
    - elven_accuracy: 优势时额外多掷一颗 d20
    - critical / fumble: 大成功/大失败阈值
    - flavor: 描述文本
    """

    def __init__(self, formula: str = "1d20", options: Optional[Dict[str, Any]] = None,
                 rng: Optional[random.Random] = None):
        super().__init__(formula, options=options, rng=rng)
        self.options["advantage_mode"] = AdvantageMode.parse(self.options.get("advantage_mode", 0))

    @classmethod
    def from_parts(cls, modifier: int = 0, parts: Optional[List[str]] = None,
                   options: Optional[Dict[str, Any]] = None,
                   rng: Optional[random.Random] = None) -> "D20Roll":
        """由修正值和附加项构造 "1d20 + 1d4 + 5" 形式的检定"""
        formula = "1d20"
        for part in parts or []:
            part = str(part).strip()
            if part.startswith("-"):
                formula += f" - {part[1:].strip()}"
            else:
                formula += f" + {part.lstrip('+').strip()}"
        if modifier:
            formula += f" + {modifier}" if modifier > 0 else f" - {abs(modifier)}"
        return cls(formula, options=options, rng=rng)

    @property
    def d20(self) -> Optional[D20Die]:
        first = self.terms[0] if self.terms else None
        return first if isinstance(first, D20Die) else None

    @property
    def valid_d20_roll(self) -> bool:
        """首项是主 d20 才是可识别的检定"""
        return self.d20 is not None

    @property
    def advantage_mode(self) -> AdvantageMode:
        return self.options["advantage_mode"]

    def configure(self):
        """按优势模式设置主 d20 的数量与取高/取低修饰符"""
        d20 = self.d20
        if d20 is None:
            return
        mode = self.advantage_mode
        d20.options["advantage_mode"] = mode
        d20.options.setdefault("elven_accuracy", bool(self.options.get("elven_accuracy")))
        d20.modifiers = [m for m in d20.modifiers if not m.startswith(("kh", "kl"))]
        if mode == AdvantageMode.ADVANTAGE:
            d20.number = 3 if d20.options["elven_accuracy"] else 2
            d20.modifiers.insert(0, "kh")
        elif mode == AdvantageMode.DISADVANTAGE:
            d20.number = 2
            d20.modifiers.insert(0, "kl")
        else:
            d20.number = 1

    @property
    def is_critical(self) -> bool:
        d20 = self.d20
        if not self._evaluated or d20 is None or d20.kept is None:
            return False
        return d20.kept >= int(self.options.get("critical", 20))

    @property
    def is_fumble(self) -> bool:
        d20 = self.d20
        if not self._evaluated or d20 is None or d20.kept is None:
            return False
        return d20.kept <= int(self.options.get("fumble", 1))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["advantage_mode"] = self.advantage_mode.name.lower()
        data["is_critical"] = self.is_critical
        data["is_fumble"] = self.is_fumble
        return data
