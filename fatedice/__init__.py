"""
FateDice - 可由 GM 预先指定下一次 d20 检定点数的掷骰引擎
"""
__version__ = "1.0.0"
