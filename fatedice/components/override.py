"""
d20 强制求值器

安装到掷骰流水线后接管全部骰子求值。对带有强制点数标记的主 d20：
- 同步/异步求值：以固定来源填满 number 颗骰子，全部为同一截断点数，随后照常应用取高/取低，
  因此无论保留哪一颗，保留值都等于强制点数；
- 原始单次抽取：直接返回截断点数，不调用随机数生成器。

标记在求值结束后总是从上下文中取出，同一骰子之后的独立求值（如重掷）恢复随机。
强制路径上的任何异常都只记录日志，并回退为正常随机求值。
"""
from typing import Optional

from ..core import get_logger
from ..core.events import EvaluationContext
from .base import BaseComponent
from .dice import D20Die, Die, DieEvaluator, ForcedResultSource, clamp_face

logger = get_logger(__name__)


class DieEvaluationOverride(BaseComponent, DieEvaluator):
    def __init__(self, engine=None, die_kind: type = D20Die):
        super().__init__(engine)
        self.die_kind = die_kind
        # 非强制骰子交给安装前的求值器
        self.base: DieEvaluator = DieEvaluator()
        self.installed = False
        self._install_failed = False

    def initialize(self):
        self.install(getattr(self.engine, "pipeline", None))

    def install(self, pipeline) -> bool:
        """
        安装到掷骰流水线。流水线缺少求值器入口或已安装过替换求值器时，
        记录一次日志并在本次会话中禁用该功能。
        """
        try:
            current = getattr(pipeline, "evaluator", None)
            if current is None:
                raise AttributeError("掷骰流水线缺少求值器入口")
            if isinstance(current, DieEvaluationOverride):
                raise RuntimeError("d20 替换求值器已安装")
            self.base = current
            pipeline.evaluator = self
            self.installed = True
            logger.info("d20 替换求值器已安装")
            return True
        except Exception as e:
            if not self._install_failed:
                logger.error(f"安装 d20 替换求值器失败，本次会话禁用该功能: {e}")
                self._install_failed = True
            return False

    def forced_source(self, die: Die, context: Optional[EvaluationContext]) -> Optional[ForcedResultSource]:
        """带标记的主 d20 返回固定来源，否则返回 None"""
        if context is None:
            return None
        try:
            if not isinstance(die, self.die_kind):
                return None
            tag = context.peek(die)
            if tag is None:
                return None
            return ForcedResultSource(clamp_face(tag.value, die.faces))
        except Exception as e:
            logger.warning(f"读取强制点数标记失败，改为正常掷骰: {e}")
            return None

    def evaluate(self, die: Die, context: Optional[EvaluationContext] = None) -> Die:
        source = self.forced_source(die, context)
        try:
            if source is None:
                return self.base.evaluate(die, context)
            try:
                self._reset_results(die)
                return die.evaluate(source=source)
            except Exception as e:
                logger.warning(f"强制求值失败，改为正常掷骰: {e}")
                self._reset_results(die)
                return self.base.evaluate(die, context)
        finally:
            self._clear_tag(die, context)

    async def evaluate_async(self, die: Die, context: Optional[EvaluationContext] = None) -> Die:
        source = self.forced_source(die, context)
        try:
            if source is None:
                return await self.base.evaluate_async(die, context)
            try:
                self._reset_results(die)
                return await die.evaluate_async(source=source)
            except Exception as e:
                logger.warning(f"强制求值失败，改为正常掷骰: {e}")
                self._reset_results(die)
                return await self.base.evaluate_async(die, context)
        finally:
            self._clear_tag(die, context)

    def roll(self, die: Die, context: Optional[EvaluationContext] = None) -> int:
        # 原始抽取不消费标记，随后的求值仍会读到它
        source = self.forced_source(die, context)
        if source is None:
            return self.base.roll(die, context)
        try:
            return source.draw(die.faces)
        except Exception as e:
            logger.warning(f"强制抽取失败，改为正常掷骰: {e}")
            return self.base.roll(die, context)

    @staticmethod
    def _reset_results(die: Die):
        if not die.evaluated:
            die.results = []

    @staticmethod
    def _clear_tag(die: Die, context: Optional[EvaluationContext]):
        if context is None:
            return
        try:
            context.take(die)
        except Exception as e:
            logger.warning(f"清除强制点数标记失败: {e}")
