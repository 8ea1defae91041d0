"""
测试掷骰配置拦截器
"""
import asyncio
import sys
from pathlib import Path

import pytest

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fatedice.components.d20_roll import AdvantageMode, D20Roll, Roll
from fatedice.components.interceptor import RollDispatchInterceptor, dice_count, is_d20_roll_config
from fatedice.core.events import RollConfiguration
from fatedice.core.hooks import Hooks, POST_D20_TEST_ROLL_CONFIGURATION, POST_ROLL_CONFIGURATION, RENDER_SCENE_CONTROLS
from fatedice.memory.database import DatabaseManager
from fatedice.memory.override_store import PendingOverrideStore
from fatedice.memory.settings_registry import WorldSettings
from helpers import sqlite_url


async def _setup(tmp_path, value: int = 0, legacy_roll_hook: bool = False):
    db = DatabaseManager(sqlite_url(tmp_path))
    await db.init_db()
    store = PendingOverrideStore(WorldSettings(db, "test"))
    store.register()
    await store.load()
    if value:
        await store.set(value)
    hooks = Hooks()
    renders = []
    hooks.on(RENDER_SCENE_CONTROLS, lambda: renders.append(True))
    interceptor = RollDispatchInterceptor(store, hooks, legacy_roll_hook=legacy_roll_hook)
    interceptor.initialize()
    return db, store, hooks, interceptor, renders


def _check(mode=AdvantageMode.NORMAL, elven_accuracy=False) -> D20Roll:
    roll = D20Roll.from_parts(3, options={"advantage_mode": mode, "elven_accuracy": elven_accuracy})
    roll.configure()
    return roll


@pytest.mark.parametrize("mode, elven, expected", [
    (AdvantageMode.NORMAL, False, 1),
    (AdvantageMode.NORMAL, True, 1),
    (AdvantageMode.ADVANTAGE, False, 2),
    (AdvantageMode.ADVANTAGE, True, 3),
    (AdvantageMode.DISADVANTAGE, False, 2),
    (AdvantageMode.DISADVANTAGE, True, 2),
])
def test_dice_count(mode, elven, expected):
    assert dice_count(mode, elven) == expected


def test_is_d20_roll_config():
    assert is_d20_roll_config(RollConfiguration(kind="check"))
    assert not is_d20_roll_config(object())
    assert not is_d20_roll_config(RollConfiguration(kind="check", rolls=None))


@pytest.mark.parametrize("mode, elven, expected", [
    (AdvantageMode.NORMAL, False, 1),
    (AdvantageMode.ADVANTAGE, False, 2),
    (AdvantageMode.ADVANTAGE, True, 3),
    (AdvantageMode.DISADVANTAGE, False, 2),
])
def test_apply_stamps_primary_d20(tmp_path, mode, elven, expected):
    """有替换值时设置骰子数量、写入标记并记录到 options"""
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=15)
        try:
            roll = _check(mode, elven)
            config = RollConfiguration(kind="check", rolls=[roll])
            assert await hooks.call(POST_D20_TEST_ROLL_CONFIGURATION, config.rolls, config) is True

            assert roll.d20.number == expected
            assert config.context.peek(roll.d20).value == 15
            assert roll.options["d20-overrideForced"] == 15
            assert store.get() == 0
            assert renders == [True]
        finally:
            await db.dispose()

    asyncio.run(run())


def test_zero_value_has_no_side_effects(tmp_path):
    """无替换值时不修改掷骰，也不刷新界面"""
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path)
        try:
            roll = _check(AdvantageMode.ADVANTAGE)
            config = RollConfiguration(kind="check", rolls=[roll])
            await interceptor.apply(config.rolls, config)

            assert len(config.context) == 0
            assert interceptor.option_key not in roll.options
            assert roll.d20.number == 2
            assert renders == []
        finally:
            await db.dispose()

    asyncio.run(run())


def test_unrecognized_shape_drops_value(tmp_path):
    """掷骰形态无法识别时放弃替换，替换值也不恢复"""
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=6)
        try:
            roll = _check()
            config = RollConfiguration(kind="check", rolls=[roll])
            await interceptor.apply(tuple(config.rolls), config)

            assert len(config.context) == 0
            assert store.get() == 0
            assert renders == []
        finally:
            await db.dispose()

    asyncio.run(run())


def test_rolls_without_primary_d20_are_skipped(tmp_path):
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=4)
        try:
            roll = Roll("2d6 + 1")
            config = RollConfiguration(kind="check", rolls=[roll])
            await interceptor.apply(config.rolls, config)

            assert len(config.context) == 0
            assert interceptor.option_key not in roll.options
            assert store.get() == 0
        finally:
            await db.dispose()

    asyncio.run(run())


def test_only_one_check_receives_the_value(tmp_path):
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=19)
        try:
            first = _check()
            first_config = RollConfiguration(kind="check", rolls=[first])
            await interceptor.apply(first_config.rolls, first_config)

            second = _check()
            second_config = RollConfiguration(kind="check", rolls=[second])
            await interceptor.apply(second_config.rolls, second_config)

            assert first_config.context.peek(first.d20).value == 19
            assert len(second_config.context) == 0
        finally:
            await db.dispose()

    asyncio.run(run())


def test_legacy_roll_hook_is_opt_in(tmp_path):
    """默认不挂载通用掷骰钩子"""
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=10)
        try:
            assert interceptor.apply not in hooks.handlers(POST_ROLL_CONFIGURATION)
            assert interceptor.apply in hooks.handlers(POST_D20_TEST_ROLL_CONFIGURATION)
        finally:
            await db.dispose()

        db, store, hooks, interceptor, renders = await _setup(tmp_path, legacy_roll_hook=True)
        try:
            assert interceptor.apply in hooks.handlers(POST_ROLL_CONFIGURATION)
        finally:
            await db.dispose()

    asyncio.run(run())


def test_free_roll_keeps_formula_dice_count(tmp_path):
    """通用掷骰钩子开启时，自由掷骰 2d20kh 仍保持两颗骰子"""
    async def run():
        db, store, hooks, interceptor, renders = await _setup(tmp_path, value=12, legacy_roll_hook=True)
        try:
            roll = D20Roll("2d20kh + 1")
            config = RollConfiguration(kind="formula", rolls=[roll])
            await hooks.call(POST_ROLL_CONFIGURATION, config.rolls, config)

            assert roll.d20.number == 2
            assert roll.formula == "2d20kh + 1"
            assert config.context.peek(roll.d20).value == 12
        finally:
            await db.dispose()

    asyncio.run(run())
