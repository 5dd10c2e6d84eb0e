"""
云存储后端基础模块

定义后端统一契约、异常类型、带安全余量的 Bearer Token 缓存
以及基于 aiohttp 的单次 HTTP 请求封装
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

READ_CONTENT_MAX_CHARS = 15000
READ_TRUNCATION_NOTICE = "\n\n[...truncated, file too large to show in full]"

TOKEN_TIMEOUT_SECONDS = 15
METADATA_TIMEOUT_SECONDS = 20
DOWNLOAD_TIMEOUT_SECONDS = 30

TOKEN_EXPIRY_MARGIN_SECONDS = 60
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


class StorageError(Exception):
    """后端调用失败 由工具分发层转换为 "Error: <message>" 文本"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageNotConfiguredError(StorageError):
    """后端缺少必要配置"""


@dataclass
class HttpResponse:
    """
    HTTP 响应快照 请求结束后连接即释放

    Args:
        status (int): 状态码
        body (bytes): 完整响应体
    """
    status: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """解析 JSON 失败时抛出 ValueError"""
        return json.loads(self.text())


HttpRequester = Callable[..., Awaitable[HttpResponse]]


async def http_request(
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    data: Any = None,
    json_body: Any = None,
    timeout: float = METADATA_TIMEOUT_SECONDS,
) -> HttpResponse:
    """
    发起一次 HTTP 请求并读取完整响应体

    超时与网络异常统一转换为 StorageError

    Args:
        method (str): HTTP 方法
        url (str): 完整 URL
        headers (Optional[Dict[str, str]]): 请求头
        data (Any): 表单或原始请求体
        json_body (Any): JSON 请求体
        timeout (float): 总超时秒数

    Returns:
        HttpResponse: 响应快照
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.request(method, url, headers=headers, data=data, json=json_body) as resp:
                return HttpResponse(status=resp.status, body=await resp.read())
    except asyncio.TimeoutError:
        raise StorageError(f"Request timed out after {timeout:g}s.")
    except aiohttp.ClientError as e:
        raise StorageError(f"Network error: {e}")


class TokenCache:
    """
    Bearer Token 缓存

    距离过期不足 60 秒即视为失效 由下一次调用惰性刷新
    单飞调用前提下无需加锁

    Args:
        clock (Callable[[], float]): 时间源 便于测试注入

    Examples:
        >>> cache = TokenCache(clock=lambda: 1000.0)
        >>> cache.store("abc", expires_in=3600, issued_at=1000.0)
        >>> cache.get()
        'abc'
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def now(self) -> float:
        return self._clock()

    def get(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at - TOKEN_EXPIRY_MARGIN_SECONDS:
            return self._token
        return None

    def store(self, token: str, expires_in: Optional[float], issued_at: Optional[float] = None) -> None:
        """
        写入新 Token

        Args:
            token (str): access token
            expires_in (Optional[float]): 有效期秒数 缺失时按 3600 计
            issued_at (Optional[float]): 请求发起时间 为空时取当前时间
        """
        issued = self._clock() if issued_at is None else issued_at
        self._token = token
        self._expires_at = issued + (expires_in or DEFAULT_TOKEN_LIFETIME_SECONDS)

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0


def truncate_content(text: str, max_chars: int = READ_CONTENT_MAX_CHARS) -> str:
    """
    截断读取到的文件正文 超出上限时追加截断提示

    Examples:
        >>> truncate_content("abc", 2)
        'ab\\n\\n[...truncated, file too large to show in full]'
    """
    if len(text) > max_chars:
        return text[:max_chars] + READ_TRUNCATION_NOTICE
    return text


class StorageBackend(ABC):
    """
    云存储后端契约

    三个操作都返回 JSON 字符串 失败时抛出 StorageError 或其子类

    Args:
        http (HttpRequester): HTTP 请求函数 默认 http_request
        token_cache (Optional[TokenCache]): Token 缓存 默认新建
    """

    name: str = "storage"

    def __init__(self, http: HttpRequester = http_request, token_cache: Optional[TokenCache] = None):
        self._http = http
        self.token_cache = token_cache or TokenCache()

    @abstractmethod
    def is_configured(self) -> bool:
        """后端是否具备调用所需的全部配置"""

    @abstractmethod
    async def list_files(self, folder_id: Optional[str] = None, **options) -> str:
        """列出目录内容 返回 {"files": [...]} 形式的 JSON 字符串"""

    @abstractmethod
    async def search_files(self, query: str, **options) -> str:
        """按名称或内容搜索 返回 {"files": [...]} 形式的 JSON 字符串"""

    @abstractmethod
    async def read_file(self, item_id: str, **options) -> str:
        """读取文件正文 返回 {"file": {...}, "content": "..."} 形式的 JSON 字符串"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(configured={self.is_configured()})"
