"""
基础组件类，挂载到掷骰引擎的组件均继承自此类
"""
from abc import ABC, abstractmethod

class BaseComponent(ABC):
    """基础组件类"""
    def __init__(self, engine=None):
        self.engine = engine  # 引用 RollEngine 上下文，可为空以便单独使用

    @abstractmethod
    def initialize(self):
        """挂载到引擎：注册钩子、安装求值器等"""
        pass
