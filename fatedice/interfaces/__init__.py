"""
Interfaces 模块
接口层：API、CLI
"""
from .api_server import app, create_app, run_server

__all__ = [
    "app",
    "create_app",
    "run_server",
]
