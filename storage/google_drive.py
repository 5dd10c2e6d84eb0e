"""
Google Drive 后端

使用服务账号签发 RS256 JWT 换取只读 access token
支持列目录、按名称搜索、读取文件正文(导出优先 下载兜底)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import jwt

from .base import (
    DOWNLOAD_TIMEOUT_SECONDS,
    METADATA_TIMEOUT_SECONDS,
    TOKEN_TIMEOUT_SECONDS,
    HttpRequester,
    HttpResponse,
    StorageBackend,
    StorageError,
    StorageNotConfiguredError,
    TokenCache,
    http_request,
    truncate_content,
)
from .extraction import extract_text
from utils.logger import logger

DRIVE_API_ROOT = "https://www.googleapis.com/drive/v3"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
JWT_LIFETIME_SECONDS = 3600

FILE_FIELDS = "id,name,mimeType,size,modifiedTime,webViewLink,parents"
LIST_FIELDS = f"files({FILE_FIELDS})"

GOOGLE_NATIVE_PREFIX = "application/vnd.google-apps"
SPREADSHEET_MIME = "application/vnd.google-apps.spreadsheet"
# 导出失败时继续尝试下一种方式的状态码
EXPORT_SKIPPABLE_STATUSES = (400, 403, 415)


def load_service_account(path: Optional[Path]) -> Optional[Dict[str, Any]]:
    """
    读取服务账号 JSON 文件

    Args:
        path (Optional[Path]): 文件路径

    Returns:
        Optional[Dict[str, Any]]: 解析结果 路径为空或读取失败时为 None
    """
    if path is None:
        return None
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"加载服务账号失败: {e}")
        return None
    if not isinstance(data, dict):
        logger.error("加载服务账号失败: JSON 顶层不是对象")
        return None
    return data


def build_query_url(path: str, params: Dict[str, Any]) -> str:
    return f"{DRIVE_API_ROOT}/{path}?{urlencode(params, quote_via=quote)}"


def escape_query_literal(text: str) -> str:
    """
    转义 Drive 查询字符串中的单引号

    Examples:
        >>> escape_query_literal("Bob's notes")
        "Bob\\\\'s notes"
    """
    return text.replace("\\", "\\\\").replace("'", "\\'")


def export_mimes_for(mime_type: str, force_export: bool) -> List[str]:
    """
    计算读取时依次尝试的导出格式

    Args:
        mime_type (str): 文件 MIME 类型
        force_export (bool): 调用方是否要求导出

    Returns:
        List[str]: 导出 MIME 列表 非原生文件且未要求导出时为空
    """
    if not (mime_type.startswith(GOOGLE_NATIVE_PREFIX) or force_export):
        return []
    if mime_type == SPREADSHEET_MIME:
        return ["text/csv", "text/plain"]
    return ["text/plain"]


class GoogleDriveBackend(StorageBackend):
    """
    Google Drive 后端

    Args:
        service_account (Optional[Dict[str, Any]]): 服务账号 JSON 内容
        default_folder_id (Optional[str]): 未指定目录时使用的根目录 ID
        http (HttpRequester): HTTP 请求函数
        token_cache (Optional[TokenCache]): Token 缓存

    Examples:
        >>> backend = GoogleDriveBackend.from_paths(get_paths())
        >>> await backend.search_files("budget")
    """

    name = "google_drive"

    def __init__(
        self,
        service_account: Optional[Dict[str, Any]] = None,
        default_folder_id: Optional[str] = None,
        http: HttpRequester = http_request,
        token_cache: Optional[TokenCache] = None,
    ):
        super().__init__(http=http, token_cache=token_cache)
        self.service_account = service_account
        self.default_folder_id = default_folder_id

    @classmethod
    def from_paths(cls, paths, **kwargs) -> "GoogleDriveBackend":
        """
        根据路径配置构建后端

        Args:
            paths (PathConfig): 路径与配置对象
        """
        return cls(
            service_account=load_service_account(paths.get_service_account_path()),
            default_folder_id=paths.get_config_value("GOOGLE_DRIVE_FOLDER_ID"),
            **kwargs,
        )

    def is_configured(self) -> bool:
        return bool(self.service_account)

    @property
    def token_uri(self) -> str:
        return (self.service_account or {}).get("token_uri") or DEFAULT_TOKEN_URI

    def create_assertion(self, now: Optional[float] = None) -> str:
        """
        签发 RS256 JWT 断言

        Raises:
            StorageError: 服务账号缺少 client_email 或 private_key
        """
        account = self.service_account or {}
        client_email = account.get("client_email")
        private_key = account.get("private_key")
        if not client_email or not private_key:
            raise StorageError("Invalid service account JSON.")

        issued_at = int(self.token_cache.now() if now is None else now)
        claims = {
            "iss": client_email,
            "scope": DRIVE_SCOPE,
            "aud": self.token_uri,
            "iat": issued_at,
            "exp": issued_at + JWT_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(claims, private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise StorageError(f"Failed to sign service account assertion: {e}")

    async def ensure_access_token(self) -> str:
        """
        获取可用的 access token 缓存未命中时重新换取

        Returns:
            str: access token
        """
        cached = self.token_cache.get()
        if cached:
            return cached

        if not self.service_account:
            raise StorageNotConfiguredError("No Google service account configured.")

        issued_at = self.token_cache.now()
        assertion = self.create_assertion(issued_at)
        response = await self._http(
            "POST",
            self.token_uri,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            timeout=TOKEN_TIMEOUT_SECONDS,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            detail = payload.get("error_description") if isinstance(payload, dict) else None
            raise StorageError(detail or "Failed to get Google access token.")

        self.token_cache.store(token, payload.get("expires_in"), issued_at=issued_at)
        logger.debug("Google Drive access token 已刷新")
        return token

    async def _get(self, url: str, token: str, timeout: float = METADATA_TIMEOUT_SECONDS) -> HttpResponse:
        return await self._http("GET", url, headers={"Authorization": f"Bearer {token}"}, timeout=timeout)

    @staticmethod
    def _raise_for_status(response: HttpResponse) -> None:
        if not response.ok:
            raise StorageError(f"HTTP {response.status}: {response.text()}")

    async def _query_files(self, query: str) -> str:
        token = await self.ensure_access_token()
        url = build_query_url("files", {
            "q": query,
            "fields": LIST_FIELDS,
            "pageSize": 100,
            "orderBy": "modifiedTime desc",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
            "corpora": "allDrives",
        })
        response = await self._get(url, token)
        self._raise_for_status(response)
        return response.text()

    def resolve_folder_id(self, folder_id: Optional[str]) -> Optional[str]:
        """缺省或 "root" 映射为配置的根目录 ID"""
        if not folder_id or folder_id == "root":
            return self.default_folder_id
        return folder_id

    async def list_files(self, folder_id: Optional[str] = None, **options) -> str:
        """
        列出目录下未删除的文件

        未解析出目录 ID 时列出服务账号可见的全部文件
        """
        resolved = self.resolve_folder_id(folder_id)
        if resolved:
            query = f"'{escape_query_literal(resolved)}' in parents and trashed=false"
        else:
            query = "trashed=false"
        return await self._query_files(query)

    async def search_files(self, query: str, **options) -> str:
        """按文件名包含关系搜索"""
        return await self._query_files(f"trashed=false and name contains '{escape_query_literal(query)}'")

    async def get_file_metadata(self, file_id: str, token: str) -> Dict[str, Any]:
        url = build_query_url(f"files/{quote(file_id, safe='')}", {
            "fields": FILE_FIELDS,
            "supportsAllDrives": "true",
        })
        response = await self._get(url, token)
        self._raise_for_status(response)
        try:
            metadata = response.json()
        except ValueError:
            raise StorageError("Invalid metadata response.")
        return metadata if isinstance(metadata, dict) else {}

    async def read_file(self, item_id: str, export: bool = False, **options) -> str:
        """
        读取文件正文

        原生文档或 export=True 时先依次尝试导出 400/403/415 失败则换下一种
        最后直接下载并提取文本 正文超过 15000 字符会被截断

        Args:
            item_id (str): 文件 ID
            export (bool): 是否强制走导出

        Returns:
            str: {"file": {id, name, mimeType, webViewLink}, "content": ...}
        """
        token = await self.ensure_access_token()
        metadata = await self.get_file_metadata(item_id, token)

        mime_type = metadata.get("mimeType") or ""
        file_name = metadata.get("name") or ""
        web_view_link = metadata.get("webViewLink") or f"https://drive.google.com/open?id={item_id}"
        encoded_id = quote(item_id, safe="")

        attempts = [("export", m) for m in export_mimes_for(mime_type, export)]
        attempts.append(("download", None))

        last_error: Optional[str] = None
        for kind, export_mime in attempts:
            if kind == "export":
                url = build_query_url(f"files/{encoded_id}/export", {"mimeType": export_mime})
            else:
                url = f"{DRIVE_API_ROOT}/files/{encoded_id}?alt=media"

            response = await self._get(url, token, timeout=DOWNLOAD_TIMEOUT_SECONDS)
            if not response.ok:
                if kind == "export" and response.status in EXPORT_SKIPPABLE_STATUSES:
                    last_error = f"HTTP {response.status}"
                    logger.debug(f"导出 {export_mime} 失败 ({last_error}) 尝试下一种方式")
                    continue
                self._raise_for_status(response)

            if kind == "export":
                text = response.text()
            else:
                text = extract_text(response.body, mime_type, file_name)
                if text is None:
                    raise StorageError("Could not extract readable text from file.")

            payload = {
                "file": {
                    "id": item_id,
                    "name": file_name,
                    "mimeType": mime_type,
                    "webViewLink": web_view_link,
                },
                "content": truncate_content(text),
            }
            return json.dumps(payload, ensure_ascii=False)

        raise StorageError(last_error or "Could not read file.")
