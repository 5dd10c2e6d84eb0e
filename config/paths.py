"""
路径与配置管理模块

该模块集中管理项目路径 配置文件读取 与目录初始化
配置来源为 apertureai.env 文件与进程环境变量 环境变量优先
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

ENV_FILE_NAME = "apertureai.env"
SERVICE_ACCOUNT_FILE_NAME = "apertureai-sa.json"


def parse_env_text(text: str) -> Dict[str, str]:
    """
    解析 KEY=VALUE 格式的配置文本

    规则:
    - 跳过空行与 # 注释行
    - 等号前为空 或 等号后为空 的行视为非法并跳过
    - 值两端成对的单双引号会被去除
    - 去除引号后值为空的键不会写入结果

    Args:
        text (str): 配置文件全文

    Returns:
        Dict[str, str]: 解析后的键值字典

    Examples:
        >>> parse_env_text('A=1\\n# c\\nB="x y"')
        {'A': '1', 'B': 'x y'}
    """
    parsed: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        eq_index = line.find("=")
        if eq_index <= 0 or eq_index == len(line) - 1:
            continue

        key = line[:eq_index].strip()
        value = line[eq_index + 1:].strip()

        # 仅去除首尾成对的引号
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key and value:
            parsed[key] = value
    return parsed


@dataclass
class PathConfig:
    """
    项目路径与配置类

    该类封装常用目录路径 并负责读取 apertureai.env 中的配置项

    Args:
        root (Path): 项目根目录

    Examples:
        >>> paths = PathConfig(root=Path("."))
        >>> paths.config_dir.name
        'config'
    """

    root: Path = field(default_factory=lambda: Path(__file__).parent.parent.resolve())
    _values: Dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        """
        标准化 root 字段 兼容传入字符串路径
        """
        if isinstance(self.root, str):
            self.root = Path(self.root).resolve()

    @property
    def config_dir(self) -> Path:
        """
        Returns:
            ./config
        """
        return self.root / "config"

    @property
    def env_file(self) -> Path:
        """
        获取配置文件路径

        优先使用 config/apertureai.env 不存在时回退到根目录 .env

        Returns:
            Path: 配置文件路径
        """
        primary = self.config_dir / ENV_FILE_NAME
        if primary.exists():
            return primary
        fallback = self.root / ".env"
        if fallback.exists():
            return fallback
        return primary

    @property
    def data_dir(self) -> Path:
        """
        Returns:
            ./data
        """
        return self.root / "data"

    @property
    def chat_state_file(self) -> Path:
        """
        Returns:
            ./data/chat_state.json
        """
        return self.data_dir / "chat_state.json"

    @property
    def logs_dir(self) -> Path:
        """
        Returns:
            ./logs
        """
        return self.root / "logs"

    def load_config(self) -> Dict[str, str]:
        """
        重新读取配置文件并缓存解析结果

        文件不存在或读取失败时缓存置空 不向外抛出

        Returns:
            Dict[str, str]: 解析后的配置字典
        """
        try:
            text = self.env_file.read_text(encoding="utf-8")
            self._values = parse_env_text(text)
        except OSError:
            # 配置文件缺失是合法状态 全部依赖环境变量
            self._values = {}
        return dict(self._values)

    def get_config_value(self, key: str) -> Optional[str]:
        """
        读取单个配置项

        非空环境变量优先于配置文件中的值

        Args:
            key (str): 配置键名

        Returns:
            Optional[str]: 配置值 缺失时返回 None
        """
        env_value = os.environ.get(key)
        if env_value:
            return env_value
        return self._values.get(key) or None

    def get_service_account_path(self) -> Optional[Path]:
        """
        解析 Google 服务账号 JSON 文件路径

        解析顺序:
        1. 配置值为绝对路径时直接使用
        2. config/apertureai-sa.json 存在时使用
        3. 相对配置文件所在目录解析
        4. 回退到 config/apertureai-sa.json

        Returns:
            Optional[Path]: 服务账号文件路径 未配置时返回 None
        """
        sa_file = self.get_config_value("GOOGLE_SERVICE_ACCOUNT_FILE")
        if not sa_file:
            return None

        candidate = Path(sa_file)
        if candidate.is_absolute():
            return candidate

        bundled = self.config_dir / SERVICE_ACCOUNT_FILE_NAME
        if bundled.exists():
            return bundled

        relative = self.env_file.parent / sa_file
        if relative.exists():
            return relative

        return bundled

    def ensure_directories(self):
        """
        创建运行所需目录
        """
        for d in (self.config_dir, self.data_dir, self.logs_dir):
            d.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"PathConfig(root={self.root})"


_paths: Optional[PathConfig] = None


def init_paths(root: Path | str) -> PathConfig:
    """
    初始化全局路径配置对象 并立即加载配置文件

    Args:
        root (Path | str): 项目根目录路径

    Returns:
        PathConfig: 全局路径配置对象
    """
    if isinstance(root, str):
        root = Path(root).resolve()

    global _paths
    _paths = PathConfig(root=root)
    _paths.load_config()
    return _paths


def get_paths() -> PathConfig:
    """
    获取全局路径配置对象
    """
    if _paths is None:
        raise RuntimeError("路径配置未初始化 请先调用 init_paths(root) 进行初始化")
    return _paths
