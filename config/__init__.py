"""
配置模块

PathConfig: 路径与配置读取
"""
from .paths import PathConfig, init_paths, get_paths, parse_env_text

__all__ = [
    "PathConfig",
    "init_paths",
    "get_paths",
    "parse_env_text",
]
