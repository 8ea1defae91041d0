"""
测试辅助工具
"""
import sys
from pathlib import Path

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fatedice.core.game_engine import RollEngine
from fatedice.memory.database import DatabaseManager


class FixedRandom:
    """按顺序循环返回给定点数的随机数替身"""

    def __init__(self, *values):
        self.values = list(values) or [7]
        self.calls = 0

    def randint(self, a, b):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


class ExplodingRandom:
    """被调用即失败，用于确认没有走随机数生成器"""

    def randint(self, a, b):
        raise AssertionError("不应调用随机数生成器")


def sqlite_url(tmp_path, name: str = "test.db") -> str:
    return f"sqlite+aiosqlite:///{tmp_path / name}"


def make_engine(tmp_path, rng=None, world: str = "test") -> RollEngine:
    return RollEngine(db=DatabaseManager(sqlite_url(tmp_path)), world=world, rng=rng)
