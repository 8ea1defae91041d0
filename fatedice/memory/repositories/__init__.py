from .setting_repo import SettingRepository

__all__ = [
    "SettingRepository",
]
