"""
配置读取模块
"""

import yaml
import configparser
from pathlib import Path
from typing import Dict, Optional, Any
from pydantic import BaseModel, Field, model_validator
from .logger import get_logger

# 初始化日志记录器
logger = get_logger(__name__)

# 项目根目录
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

class ProjectConfig(BaseModel):
    """项目基础配置"""
    name: str = Field("FateDice", description="项目名称")
    debug: bool = Field(False, description="调试模式")
    active_world: str = Field("default", description="当前世界名称，世界级设置按此隔离")


class DatabaseConfig(BaseModel):
    """数据库配置"""
    host: Optional[str] = Field(None, description="数据库主机，为空时使用本地 SQLite")
    port: Optional[str] = Field(None, description="数据库端口")
    username: Optional[str] = Field(None, description="数据库用户名")
    password: Optional[str] = Field(None, description="数据库密码")
    project_name: Optional[str] = Field(None, description="数据库名称，与项目基础配置中的名称保持一致")
    sqlite_path: str = Field("data/fatedice.db", description="SQLite 文件路径（相对项目根目录）")


class OverrideConfig(BaseModel):
    """d20 替换配置"""
    module_id: str = Field("d20-override", description="设置项命名空间")
    setting_key: str = Field("nextD20", description="待生效替换值的设置键")
    min_value: int = Field(1, description="可替换的最小点数")
    max_value: int = Field(20, description="可替换的最大点数")
    legacy_roll_hook: bool = Field(False, description="是否同时挂载通用的 postRollConfiguration 钩子")


class ControlConfig(BaseModel):
    """控制面板（GM 工具按钮）配置"""
    gm_key: str = Field("gm", description="GM 身份校验密钥 (X-GM-Key)")
    tool_name: str = Field("d20-override-tool", description="工具按钮名称")
    tool_icon: str = Field("fas fa-dice-d20", description="工具按钮图标")
    control_group: str = Field("token", description="按钮所在的控制组")


class ApiServerConfig(BaseModel):
    """HTTP 服务配置"""
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


# ============================================
# 主配置类
# ============================================

class Settings(BaseModel):
    """
    应用总配置
    """

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    override: OverrideConfig = Field(default_factory=OverrideConfig)
    control: ControlConfig = Field(default_factory=ControlConfig)
    api_server: ApiServerConfig = Field(default_factory=ApiServerConfig)

    @model_validator(mode='after')
    def sync_database_project_name(self):
        """使数据库配置中的项目名称、用户名称与全局项目名称一致"""
        if self.database.project_name is None:
            self.database.project_name = self.project.name.lower()

        if self.database.username is None:
            self.database.username = self.project.name.lower()

        return self

    @classmethod
    def load_config(cls) -> "Settings":
        """
        1. 读取 database.ini (数据库连接 - 敏感信息)
        2. 读取 config.yaml (业务配置、项目基础配置)
        3. 合并并实例化 Settings 对象
        """
        ini_config = cls._load_database_ini()

        yaml_path = PROJECT_ROOT / "config.yaml"
        yaml_config = {}

        if yaml_path.exists():
            try:
                with open(yaml_path, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f) or {}
            except Exception as e:
                logger.warning(f"无法读取 config.yaml: {e}，将使用默认配置")
        else:
            logger.warning(f"未找到 {yaml_path}，将使用默认配置")

        if ini_config:
            database = dict(yaml_config.get("database") or {})
            database.update(ini_config)
            yaml_config["database"] = database

        instance = cls(**yaml_config)
        instance._ensure_directories()
        return instance

    @staticmethod
    def _load_database_ini() -> Dict[str, Any]:
        """
        从 database.ini 加载数据库连接信息，文件不存在时返回空字典
        """
        ini_path = PROJECT_ROOT / "database.ini"
        result: Dict[str, Any] = {}

        if not ini_path.exists():
            return result

        try:
            config = configparser.ConfigParser()
            config.read(ini_path, encoding='utf-8')

            if "DATABASE" not in config:
                logger.warning(f"{ini_path} 中缺少 [DATABASE] 配置节")
                return result

            section = config["DATABASE"]
            for key in ("host", "port", "username", "password"):
                value = section.get(key, fallback=None)
                if value:
                    result[key] = value

            logger.info("成功加载数据库配置")

        except Exception as e:
            logger.warning(f"无法读取 database.ini: {e}")

        return result

    def _ensure_directories(self):
        """确保必要的目录存在"""
        for name in ("logs", "data"):
            (PROJECT_ROOT / name).mkdir(parents=True, exist_ok=True)

    def get_absolute_path(self, relative_path: str) -> Path:
        """
        将相对路径转换为绝对路径
        """
        return PROJECT_ROOT / relative_path

# 实例化配置 (应用启动时自动加载)
settings = Settings.load_config()


# ============================================
# 便捷函数
# ============================================

def get_settings() -> Settings:
    """
    获取全局配置实例
    """
    return settings


def reload_config() -> Settings:
    """
    重新加载配置
    """
    global settings
    settings = Settings.load_config()
    return settings
