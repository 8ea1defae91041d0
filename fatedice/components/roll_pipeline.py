"""
掷骰流水线

一次检定的处理顺序：
1. 构造 (D20Roll): 解析公式，按优势模式配置主 d20
2. 配置后钩子 (postD20TestRollConfiguration): 扩展组件可调整骰子数量、写入求值上下文
3. 求值 (evaluator): 逐个骰子项求值
4. 结果钩子 (rollCompleted): 通知展示层
"""
import random
from typing import Any, Dict, List, Optional, Union

from ..core import get_logger
from ..core.events import EvaluationContext, RollConfiguration
from ..core.hooks import Hooks, POST_D20_TEST_ROLL_CONFIGURATION, POST_ROLL_CONFIGURATION, ROLL_COMPLETED
from .d20_roll import AdvantageMode, D20Roll, Roll
from .dice import D20Die, Die, DieEvaluator, parse_terms

logger = get_logger(__name__)


class RollPipeline:
    def __init__(self, hooks: Hooks, evaluator: Optional[DieEvaluator] = None,
                 rng: Optional[random.Random] = None):
        self.hooks = hooks
        # 求值器是骰子求值的唯一入口，扩展组件通过替换它接管求值
        self.evaluator: DieEvaluator = evaluator or DieEvaluator()
        self.rng = rng

    async def roll_check(
        self,
        modifier: int = 0,
        parts: Optional[List[str]] = None,
        advantage_mode: Union[AdvantageMode, str, int] = AdvantageMode.NORMAL,
        elven_accuracy: bool = False,
        flavor: Optional[str] = None,
        subject: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Optional[D20Roll]:
        """
        执行一次 d20 检定

        Returns:
            求值完成的 D20Roll；被钩子取消时返回 None
        """
        roll_options = dict(options or {})
        roll_options.update({
            "advantage_mode": AdvantageMode.parse(advantage_mode),
            "elven_accuracy": elven_accuracy,
            "flavor": flavor,
        })
        roll = D20Roll.from_parts(modifier, parts, options=roll_options, rng=self.rng)
        roll.configure()

        config = RollConfiguration(kind="check", rolls=[roll], subject=subject)
        if not await self.hooks.call(POST_D20_TEST_ROLL_CONFIGURATION, config.rolls, config):
            logger.info(f"检定 {roll.formula} 已被取消")
            return None

        return await self._evaluate(roll, config)

    async def roll_formula(self, formula: str, flavor: Optional[str] = None,
                           subject: Optional[str] = None) -> Optional[Roll]:
        """
        执行一次自由掷骰。首项为 d20 时按检定形态构造 D20Roll。
        公式无效时抛出 ValueError。
        """
        terms = parse_terms(formula)
        roll_cls = D20Roll if terms and isinstance(terms[0], D20Die) else Roll
        roll = roll_cls(formula, options={"flavor": flavor}, rng=self.rng)

        config = RollConfiguration(kind="formula", rolls=[roll], subject=subject)
        if not await self.hooks.call(POST_ROLL_CONFIGURATION, config.rolls, config):
            logger.info(f"掷骰 {roll.formula} 已被取消")
            return None

        return await self._evaluate(roll, config)

    def draw(self, die: Die, context: Optional[EvaluationContext] = None) -> int:
        """单次原始抽取（如平局决胜），同样经过求值器"""
        return self.evaluator.roll(die, context)

    async def _evaluate(self, roll: Roll, config: RollConfiguration) -> Roll:
        for r in config.rolls:
            await r.evaluate_async(config.context, self.evaluator)
        logger.debug(f"掷骰完成: {roll.formula} = {roll.total}")
        await self.hooks.call_all(ROLL_COMPLETED, roll, config)
        return roll
