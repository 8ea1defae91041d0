"""
测试替换值控制面板：输入校验、对话框动作、按钮可见性
"""
import asyncio
import sys
from pathlib import Path

import pytest

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fatedice.components.controls import ControlGroup, OverrideControlSurface, clamp_override
from fatedice.core.events import PromptAction, User
from fatedice.core.hooks import Hooks, RENDER_SCENE_CONTROLS
from fatedice.memory.database import DatabaseManager
from fatedice.memory.override_store import PendingOverrideStore
from fatedice.memory.settings_registry import WorldSettings
from helpers import sqlite_url

GM = User(name="gm", is_gm=True)
PLAYER = User(name="player", is_gm=False)


async def _surface(tmp_path):
    db = DatabaseManager(sqlite_url(tmp_path))
    await db.init_db()
    store = PendingOverrideStore(WorldSettings(db, "test"))
    store.register()
    await store.load()
    surface = OverrideControlSurface(store, Hooks())
    surface.initialize()
    return db, store, surface


@pytest.mark.parametrize("raw, expected", [
    (0, 0),
    (1, 1),
    (20, 20),
    ("12", 12),
    (" 8 ", 8),
    (15.7, 15),
    ("19.9", 19),
    (25, 0),
    (-3, 0),
    (0.5, 0),
    ("abc", 0),
    ("", 0),
    (None, 0),
    (True, 0),
    (float("nan"), 0),
    ("inf", 0),
    (10 ** 400, 0),
])
def test_clamp_override(raw, expected):
    assert clamp_override(raw) == expected


def test_submit_actions(tmp_path):
    """应用保存截断后的值，重置清零，取消不做修改"""
    async def run():
        db, store, surface = await _surface(tmp_path)
        renders = []
        surface.hooks.on(RENDER_SCENE_CONTROLS, lambda: renders.append(True))
        try:
            assert await surface.submit(PromptAction.APPLY, "15") == 15
            assert store.get() == 15

            assert await surface.submit("cancel", "3") is None
            assert store.get() == 15

            assert await surface.submit(PromptAction.APPLY, "25") == 0
            assert store.get() == 0

            await surface.submit(PromptAction.APPLY, 7)
            assert await surface.submit(PromptAction.RESET, 7) == 0
            assert store.get() == 0

            # 取消不刷新界面
            assert len(renders) == 4
        finally:
            await db.dispose()

    asyncio.run(run())


def test_submit_unknown_action(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            with pytest.raises(ValueError):
                await surface.submit("explode", 5)
        finally:
            await db.dispose()

    asyncio.run(run())


def test_label_reflects_pending_value(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            assert surface.label() == "d20 替换"
            await store.set(11)
            assert surface.label() == "d20 替换: 11"
        finally:
            await db.dispose()

    asyncio.run(run())


def test_prompt_form(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            await store.set(4)
            form = surface.prompt_form().to_dict()
            assert form["field"]["value"] == 4
            assert form["field"]["min"] == 1 and form["field"]["max"] == 20
            assert [b["action"] for b in form["buttons"]] == ["apply", "reset", "cancel"]
            assert form["default"] == "apply"
        finally:
            await db.dispose()

    asyncio.run(run())


def test_button_visible_only_to_gm(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            controls = [ControlGroup(name="token")]
            surface.get_scene_control_buttons(controls, GM)
            assert controls[0].tools[0].visible is True
            assert controls[0].tools[0].name == surface.tool_name

            controls = [ControlGroup(name="token")]
            surface.get_scene_control_buttons(controls, PLAYER)
            assert controls[0].tools[0].visible is False
            assert controls[0].to_dict()["tools"] == []
            assert len(controls[0].to_dict(include_hidden=True)["tools"]) == 1
        finally:
            await db.dispose()

    asyncio.run(run())


def test_button_not_duplicated(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            controls = [ControlGroup(name="token")]
            surface.get_scene_control_buttons(controls, GM)
            surface.get_scene_control_buttons(controls, GM)
            assert len(controls[0].tools) == 1
        finally:
            await db.dispose()

    asyncio.run(run())


def test_missing_control_group_is_ignored(tmp_path):
    async def run():
        db, store, surface = await _surface(tmp_path)
        try:
            controls = [ControlGroup(name="measure")]
            surface.get_scene_control_buttons(controls, GM)
            assert controls[0].tools == []
        finally:
            await db.dispose()

    asyncio.run(run())
