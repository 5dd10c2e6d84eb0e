"""
该模块定义补全服务的运行时配置结构

1. 使用数据类描述统一配置字段
2. 支持从 apertureai.env / 环境变量解析最终生效配置
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from config.paths import PathConfig

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com"
COMPLETION_TIMEOUT_SECONDS = 90


def normalize_base_url(base_url: Optional[str]) -> str:
    """
    规范化接口地址

    去除末尾斜杠 并确保以 /v1 结尾

    Args:
        base_url (Optional[str]): 原始地址 为空时使用官方地址

    Returns:
        str: 可直接交给 OpenAI SDK 的 base_url

    Examples:
        >>> normalize_base_url("https://api.openai.com/")
        'https://api.openai.com/v1'
        >>> normalize_base_url("http://localhost:8080/v1")
        'http://localhost:8080/v1'
    """
    url = (base_url or DEFAULT_BASE_URL).rstrip("/")
    if not url.endswith("/v1"):
        url = f"{url}/v1"
    return url


@dataclass
class LLMConfig:
    """
    补全客户端使用的统一运行时配置

    Args:
        model (str): 模型名称
        api_key (str): API 密钥 为空时请求前即失败
        base_url (str): 接口基础地址(含 /v1)
        project (Optional[str]): OpenAI-Project 请求头
        organization (Optional[str]): OpenAI-Organization 请求头
        timeout (int): 单次补全请求的总超时秒数

    Examples:
        >>> cfg = LLMConfig(api_key="sk-xxx")
        >>> cfg.model
        'gpt-4o-mini'
    """

    model: str = DEFAULT_MODEL
    api_key: str = ""
    base_url: str = normalize_base_url(DEFAULT_BASE_URL)
    project: Optional[str] = None
    organization: Optional[str] = None
    timeout: int = COMPLETION_TIMEOUT_SECONDS

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, paths: "PathConfig") -> "LLMConfig":
        """
        从配置文件与环境变量合并得到最终生效配置

        Args:
            paths (PathConfig): 已加载配置的路径对象

        Returns:
            LLMConfig: 最终运行时配置对象
        """
        return cls(
            model=paths.get_config_value("OPENAI_MODEL") or DEFAULT_MODEL,
            api_key=paths.get_config_value("OPENAI_API_KEY") or "",
            base_url=normalize_base_url(paths.get_config_value("OPENAI_BASE_URL")),
            project=paths.get_config_value("OPENAI_PROJECT"),
            organization=paths.get_config_value("OPENAI_ORGANIZATION"),
        )
