"""
设置或查看下一次 d20 的替换值

用法:
    python scripts/set_next_d20.py            # 查看当前值
    python scripts/set_next_d20.py 15         # 下一次 d20 检定掷出 15
    python scripts/set_next_d20.py --reset    # 清除替换
"""
import asyncio
import sys
import argparse
from pathlib import Path

# 添加项目根目录到 python path
sys.path.append(str(Path(__file__).parent.parent))

from fatedice.core import get_logger
from fatedice.core.events import PromptAction
from fatedice.core.game_engine import RollEngine

logger = get_logger("set_next_d20")

async def main():
    parser = argparse.ArgumentParser(description="FateDice d20 替换值工具")
    parser.add_argument("value", nargs="?", help="1-20 的点数，其余输入按 0 处理")
    parser.add_argument("--reset", action="store_true", help="清除替换")
    parser.add_argument("--world", default=None, help="世界名称，默认读取配置")
    args = parser.parse_args()

    engine = RollEngine(world=args.world)
    try:
        await engine.start()

        if args.reset:
            await engine.controls.submit(PromptAction.RESET)
        elif args.value is not None:
            await engine.controls.submit(PromptAction.APPLY, args.value)

        print(engine.controls.label())
    finally:
        await engine.stop()

if __name__ == "__main__":
    asyncio.run(main())
