"""
测试 d20 强制求值器
"""
import asyncio
import sys
from pathlib import Path

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fatedice.components.dice import D20Die, Die, DieEvaluator, RandomResultSource
from fatedice.components.override import DieEvaluationOverride
from fatedice.components.roll_pipeline import RollPipeline
from fatedice.core.events import EvaluationContext
from fatedice.core.hooks import Hooks
from helpers import ExplodingRandom, FixedRandom


def _d20(number=1, modifiers=None, rng=None):
    return D20Die(number=number, modifiers=modifiers, source=RandomResultSource(rng or ExplodingRandom()))


def test_forced_evaluation_fills_all_dice():
    """强制求值时每颗骰子都是同一点数，且不调用随机数生成器"""
    override = DieEvaluationOverride()
    context = EvaluationContext()
    die = _d20(number=2, modifiers=["kh"])
    context.stamp(die, 13)

    override.evaluate(die, context)

    assert [r.result for r in die.results] == [13, 13]
    assert die.kept == 13
    assert die.total == 13


def test_forced_evaluation_async_with_keep_lowest():
    override = DieEvaluationOverride()
    context = EvaluationContext()
    die = _d20(number=2, modifiers=["kl"])
    context.stamp(die, 20)

    asyncio.run(override.evaluate_async(die, context))

    assert die.kept == 20
    assert len([r for r in die.results if r.active]) == 1


def test_forced_value_is_clamped_to_faces():
    override = DieEvaluationOverride()
    context = EvaluationContext()
    die = _d20()
    context.stamp(die, 25)
    override.evaluate(die, context)
    assert die.total == 20


def test_tag_is_cleared_after_evaluation():
    """标记在求值后失效，重掷恢复随机"""
    override = DieEvaluationOverride()
    context = EvaluationContext()
    rng = FixedRandom(4)
    die = _d20(rng=rng)
    context.stamp(die, 18)

    override.evaluate(die, context)
    assert die.total == 18
    assert len(context) == 0
    assert rng.calls == 0

    die.evaluate(reroll=True)
    assert die.total == 4


def test_unmarked_and_non_d20_dice_use_base_evaluator():
    override = DieEvaluationOverride()
    context = EvaluationContext()

    d6 = Die(number=2, faces=6, source=RandomResultSource(FixedRandom(3, 5)))
    context.stamp(d6, 6)
    override.evaluate(d6, context)
    assert [r.result for r in d6.results] == [3, 5]

    d20 = _d20(rng=FixedRandom(11))
    override.evaluate(d20, context)
    assert d20.total == 11

    d20 = _d20(rng=FixedRandom(2))
    override.evaluate(d20, None)
    assert d20.total == 2


def test_raw_draw_does_not_consume_tag():
    """原始抽取直接返回强制点数，标记仍保留到正式求值"""
    override = DieEvaluationOverride()
    context = EvaluationContext()
    die = _d20()
    context.stamp(die, 7)

    assert override.roll(die, context) == 7
    assert context.peek(die) is not None
    assert die.results == []

    override.evaluate(die, context)
    assert die.total == 7
    assert context.peek(die) is None


def test_invalid_tag_falls_back_to_random():
    """强制点数无法使用时回退为正常掷骰，且标记依旧被清除"""
    override = DieEvaluationOverride()
    context = EvaluationContext()
    die = _d20(rng=FixedRandom(9))
    context.stamp(die, float("nan"))

    override.evaluate(die, context)

    assert die.total == 9
    assert len(context) == 0


def test_install_replaces_pipeline_evaluator():
    pipeline = RollPipeline(Hooks())
    base = pipeline.evaluator
    override = DieEvaluationOverride()

    assert override.install(pipeline) is True
    assert pipeline.evaluator is override
    assert override.base is base


def test_install_twice_is_rejected():
    pipeline = RollPipeline(Hooks())
    assert DieEvaluationOverride().install(pipeline) is True

    second = DieEvaluationOverride()
    assert second.install(pipeline) is False
    assert second.installed is False
    assert isinstance(pipeline.evaluator, DieEvaluationOverride)


def test_install_without_evaluator_disables_feature():
    class NoEvaluator:
        pass

    override = DieEvaluationOverride()
    assert override.install(NoEvaluator()) is False
    assert override.install(None) is False
    assert override.installed is False


def test_install_keeps_existing_custom_evaluator():
    class CountingEvaluator(DieEvaluator):
        def __init__(self):
            self.calls = 0

        def evaluate(self, die, context=None):
            self.calls += 1
            return super().evaluate(die, context)

    counting = CountingEvaluator()
    pipeline = RollPipeline(Hooks(), evaluator=counting)
    override = DieEvaluationOverride()
    override.install(pipeline)

    die = _d20(rng=FixedRandom(6))
    pipeline.evaluator.evaluate(die, EvaluationContext())
    assert counting.calls == 1
    assert die.total == 6
