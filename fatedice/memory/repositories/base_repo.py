from typing import Generic, TypeVar, Type
from sqlalchemy.ext.asyncio import AsyncSession
from ..database import Base

T = TypeVar("T", bound=Base)

class BaseRepository(Generic[T]):
    """通用仓库基类，提供基本的 CRUD 操作"""
    def __init__(self, session: AsyncSession, model: Type[T]):
        self.session = session
        self.model = model

    async def _save(self, obj: T) -> T:
        """保存对象（内部辅助方法）"""
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj
