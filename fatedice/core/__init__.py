from .logger import get_logger
from .config import get_settings, reload_config, Settings, PROJECT_ROOT
from .hooks import Hooks

__all__ = [
    # 日志
    'get_logger',
    # 配置
    'get_settings',
    'reload_config',
    'Settings',
    'PROJECT_ROOT',
    # 钩子
    'Hooks',
]
