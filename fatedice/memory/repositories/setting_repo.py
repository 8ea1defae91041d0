from typing import Any, Optional
from sqlalchemy import select
from ..models import WorldSetting
from .base_repo import BaseRepository

class SettingRepository(BaseRepository[WorldSetting]):
    """
    世界级设置仓库
    负责 WorldSetting 表的读写。
    """
    def __init__(self, session):
        super().__init__(session, WorldSetting)

    async def get(self, world: str, namespace: str, key: str) -> Optional[WorldSetting]:
        result = await self.session.execute(
            select(WorldSetting).where(
                WorldSetting.world == world,
                WorldSetting.namespace == namespace,
                WorldSetting.key == key,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(self, world: str, namespace: str, key: str, value: Any) -> WorldSetting:
        setting = await self.get(world, namespace, key)
        if setting is None:
            setting = WorldSetting(world=world, namespace=namespace, key=key, value=value)
        else:
            setting.value = value
        return await self._save(setting)

