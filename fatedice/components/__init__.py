"""
Components 模块
骰子引擎与 d20 替换组件
"""
from .dice import (
    D20Die,
    Die,
    DieEvaluator,
    DieResult,
    ForcedResultSource,
    RandomResultSource,
    ResultSource,
    clamp_face,
    parse_terms,
)
from .d20_roll import AdvantageMode, D20Roll, Roll
from .roll_pipeline import RollPipeline
from .override import DieEvaluationOverride
from .interceptor import RollDispatchInterceptor
from .controls import OverrideControlSurface, clamp_override

__all__ = [
    # 骰子
    "D20Die",
    "Die",
    "DieEvaluator",
    "DieResult",
    "ForcedResultSource",
    "RandomResultSource",
    "ResultSource",
    "clamp_face",
    "parse_terms",
    # 掷骰
    "AdvantageMode",
    "D20Roll",
    "Roll",
    "RollPipeline",
    # d20 替换
    "DieEvaluationOverride",
    "RollDispatchInterceptor",
    "OverrideControlSurface",
    "clamp_override",
]
