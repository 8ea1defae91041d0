"""
命令行掷骰工具
以 GM 身份运行，可设置下一次 d20 的点数并进行检定
"""
import asyncio
import shlex
from typing import List

from ..components.d20_roll import Roll
from ..core import get_logger
from ..core.events import PromptAction, User
from ..core.game_engine import RollEngine

logger = get_logger(__name__)

HELP_TEXT = """可用命令:
  gm                          打开 d20 替换对话框
  check [修正值] [adv|dis]    进行一次 d20 检定，如: check 5 adv
  roll <公式>                 自由掷骰，如: roll 2d6+3
  status                      查看当前待生效的替换值
  help                        显示帮助
  quit / exit                 退出"""


def format_roll(roll: Roll) -> str:
    """渲染掷骰结果，与普通掷骰完全一致"""
    data = roll.to_dict()
    faces = []
    for term in data["terms"]:
        for result in term.get("results", []):
            mark = "" if result["active"] else "×"
            faces.append(f"{result['result']}{mark}")
    line = f"{data['formula']} => [{', '.join(faces)}] = {data['total']}"
    if data.get("is_critical"):
        line += "  (大成功!)"
    elif data.get("is_fumble"):
        line += "  (大失败!)"
    return line


async def open_prompt(engine: RollEngine):
    """以文本方式呈现替换值对话框"""
    form = engine.controls.prompt_form()
    print("\n" + "-" * 50)
    print(form.title)
    print(f"{form.field.label} 当前: {form.field.value}")
    print(form.notes)
    choices = " / ".join(f"{b.action.value}={b.label}" for b in form.buttons)
    print(f"操作: {choices}")
    print("-" * 50)

    action = input(f"操作 [{form.default.value}]: ").strip().lower() or form.default.value
    try:
        action = PromptAction(action)
    except ValueError:
        print(f"❌ 未知操作: {action}")
        return

    raw = None
    if action == PromptAction.APPLY:
        raw = input(f"{form.field.label} ").strip()

    value = await engine.controls.submit(action, raw)
    if value is None:
        print("已取消，替换值未修改。")
    else:
        print(f"✅ {engine.controls.label()}")


async def run_command(engine: RollEngine, args: List[str]):
    command = args[0].lower()

    if command == "gm":
        await open_prompt(engine)

    elif command == "status":
        print(engine.controls.label())

    elif command == "check":
        modifier = 0
        mode = "normal"
        for arg in args[1:]:
            if arg.lower() in ("adv", "advantage", "dis", "disadvantage", "normal"):
                mode = arg
            else:
                modifier = int(arg)
        roll = await engine.pipeline.roll_check(modifier=modifier, advantage_mode=mode)
        print(format_roll(roll) if roll else "掷骰已被取消")

    elif command == "roll":
        if len(args) < 2:
            print("用法: roll <公式>")
            return
        roll = await engine.pipeline.roll_formula(" ".join(args[1:]))
        print(format_roll(roll) if roll else "掷骰已被取消")

    else:
        print(HELP_TEXT)


async def run_interactive_session():
    """运行交互式会话"""
    print("\n" + "=" * 70)
    print("  FateDice - d20 掷骰工具")
    print("=" * 70)

    engine = RollEngine()
    user = User(name="gm", is_gm=True)

    try:
        print("\n⚙️  正在初始化系统...")
        await engine.start()

        controls = await engine.scene_controls(user)
        for group in controls:
            for tool in group.tools:
                if tool.visible:
                    print(f"  [{group.title}] {tool.title}")

        print("\n✅ 系统已就绪！")
        print("\n" + HELP_TEXT)
        print("\n" + "=" * 70)

        # 主循环
        while True:
            try:
                user_input = input("\n[GM] >>> ").strip()

                if not user_input:
                    continue

                if user_input.lower() in ['quit', 'exit', 'q']:
                    print("\n👋 再见！")
                    break

                await run_command(engine, shlex.split(user_input))

            except KeyboardInterrupt:
                print("\n\n⚠️  检测到中断信号...")
                confirm = input("确定要退出吗? (y/n): ").strip().lower()
                if confirm == 'y':
                    print("\n👋 再见！")
                    break
            except ValueError as e:
                print(f"\n❌ 输入无效: {e}")
            except Exception as e:
                logger.error(f"处理输入时出错: {e}", exc_info=True)
                print(f"\n❌ 发生错误: {e}")
                print("系统将继续运行...\n")

    except Exception as e:
        logger.error(f"初始化失败: {e}", exc_info=True)
        print(f"\n❌ 初始化失败: {e}")
    finally:
        await engine.stop()


def main():
    """主入口"""
    try:
        asyncio.run(run_interactive_session())
    except KeyboardInterrupt:
        print("\n\n程序已终止")
    except Exception as e:
        logger.error(f"程序异常退出: {e}", exc_info=True)
        print(f"\n❌ 程序异常: {e}")


if __name__ == "__main__":
    main()
