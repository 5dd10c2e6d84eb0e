"""
OneDrive / SharePoint 后端

通过 Microsoft Graph 的客户端凭据流程访问租户内的驱动器
调用方可用 drive_id / site_id / user_id 指定位置 缺省时回退到配置
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

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

GRAPH_ROOT = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"

ITEM_SELECT = "id,name,file,folder,size,lastModifiedDateTime,webUrl,parentReference"
DRIVE_CONTEXT_HINT = (
    "Provide drive_id/site_id/user_id in the tool call, or set "
    "MICROSOFT_DRIVE_ID/MICROSOFT_SITE_ID/MICROSOFT_USER_ID in apertureai.env."
)
LOCATIONS_HINT = "Use list_onedrive_files with drive_id/site_id/user_id to browse a specific location."
NOT_CONFIGURED_MESSAGE = (
    "Microsoft OneDrive not configured. Add MICROSOFT_TENANT_ID, MICROSOFT_CLIENT_ID, "
    "and MICROSOFT_CLIENT_SECRET to apertureai.env."
)


def _encode(segment: str) -> str:
    return quote(segment, safe="")


@dataclass
class DriveLocation:
    """
    驱动器定位信息 优先级 drive_id > site_id > user_id
    """
    drive_id: Optional[str] = None
    site_id: Optional[str] = None
    user_id: Optional[str] = None

    def merged_with(self, fallback: "DriveLocation") -> "DriveLocation":
        """逐字段以 fallback 补齐缺省值"""
        return DriveLocation(
            drive_id=self.drive_id or fallback.drive_id,
            site_id=self.site_id or fallback.site_id,
            user_id=self.user_id or fallback.user_id,
        )

    def base_url(self) -> Optional[str]:
        """
        Examples:
            >>> DriveLocation(site_id="s1").base_url()
            'https://graph.microsoft.com/v1.0/sites/s1/drive'
        """
        if self.drive_id:
            return f"{GRAPH_ROOT}/drives/{_encode(self.drive_id)}"
        if self.site_id:
            return f"{GRAPH_ROOT}/sites/{_encode(self.site_id)}/drive"
        if self.user_id:
            return f"{GRAPH_ROOT}/users/{_encode(self.user_id)}/drive"
        return None


def format_file_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    将 Graph driveItem 归一化为工具输出格式

    Args:
        item (Dict[str, Any]): Graph 返回的 driveItem

    Returns:
        Dict[str, Any]: {id, name, mimeType, size, modifiedTime, webUrl, isFolder, driveId}
    """
    file_facet = item.get("file")
    if file_facet is not None:
        mime_type = (file_facet or {}).get("mimeType") or "file"
    else:
        mime_type = "folder"
    return {
        "id": item.get("id") or "",
        "name": item.get("name") or "",
        "mimeType": mime_type,
        "size": item.get("size") or 0,
        "modifiedTime": item.get("lastModifiedDateTime") or "",
        "webUrl": item.get("webUrl") or "",
        "isFolder": bool(item.get("folder")),
        "driveId": (item.get("parentReference") or {}).get("driveId") or "",
    }


def parse_graph_response(response: HttpResponse) -> Dict[str, Any]:
    """
    解析 Graph JSON 响应 非成功状态抛出 StorageError

    错误描述优先取 error.message 其次取原始响应体
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not response.ok:
        message = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message = payload["error"].get("message")
        raise StorageError(f"HTTP {response.status}: {message or response.text()}")

    return payload if isinstance(payload, dict) else {}


class OneDriveBackend(StorageBackend):
    """
    OneDrive / SharePoint 后端

    Args:
        tenant_id (Optional[str]): 租户 ID
        client_id (Optional[str]): 应用 ID
        client_secret (Optional[str]): 应用密钥
        default_location (Optional[DriveLocation]): 配置中的默认驱动器位置
        http (HttpRequester): HTTP 请求函数
        token_cache (Optional[TokenCache]): Token 缓存
    """

    name = "onedrive"

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        default_location: Optional[DriveLocation] = None,
        http: HttpRequester = http_request,
        token_cache: Optional[TokenCache] = None,
    ):
        super().__init__(http=http, token_cache=token_cache)
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.default_location = default_location or DriveLocation()

    @classmethod
    def from_paths(cls, paths, **kwargs) -> "OneDriveBackend":
        """
        根据路径配置构建后端

        Args:
            paths (PathConfig): 路径与配置对象
        """
        return cls(
            tenant_id=paths.get_config_value("MICROSOFT_TENANT_ID"),
            client_id=paths.get_config_value("MICROSOFT_CLIENT_ID"),
            client_secret=paths.get_config_value("MICROSOFT_CLIENT_SECRET"),
            default_location=DriveLocation(
                drive_id=paths.get_config_value("MICROSOFT_DRIVE_ID"),
                site_id=paths.get_config_value("MICROSOFT_SITE_ID"),
                user_id=paths.get_config_value("MICROSOFT_USER_ID"),
            ),
            **kwargs,
        )

    def is_configured(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    async def ensure_access_token(self) -> str:
        """
        获取可用的 access token 缓存未命中时走客户端凭据流程

        Returns:
            str: access token
        """
        cached = self.token_cache.get()
        if cached:
            return cached

        if not self.is_configured():
            raise StorageNotConfiguredError(NOT_CONFIGURED_MESSAGE)

        issued_at = self.token_cache.now()
        response = await self._http(
            "POST",
            TOKEN_URL_TEMPLATE.format(tenant=_encode(self.tenant_id)),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "client_id": self.client_id,
                "scope": GRAPH_SCOPE,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
            timeout=TOKEN_TIMEOUT_SECONDS,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        token = payload.get("access_token")
        if not response.ok or not token:
            error = payload.get("error")
            message = payload.get("error_description") or (error.get("message") if isinstance(error, dict) else None)
            raise StorageError(message or f"Failed to get Microsoft access token (HTTP {response.status}).")

        self.token_cache.store(token, payload.get("expires_in"), issued_at=issued_at)
        logger.debug("Microsoft Graph access token 已刷新")
        return token

    async def _graph(
        self,
        method: str,
        url: str,
        json_body: Any = None,
        timeout: float = METADATA_TIMEOUT_SECONDS,
    ) -> HttpResponse:
        token = await self.ensure_access_token()
        headers = {"Authorization": f"Bearer {token}"}
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        return await self._http(method, url, headers=headers, json_body=json_body, timeout=timeout)

    def resolve_location(
        self,
        drive_id: Optional[str] = None,
        site_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> DriveLocation:
        return DriveLocation(drive_id, site_id, user_id).merged_with(self.default_location)

    async def list_files(
        self,
        folder_id: Optional[str] = None,
        drive_id: Optional[str] = None,
        site_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **options,
    ) -> str:
        """
        列出驱动器根目录或指定文件夹

        既无驱动器上下文也无 folder_id 时返回可访问的站点与驱动器列表

        Raises:
            StorageError: 给出 folder_id 但无法确定驱动器
        """
        base = self.resolve_location(drive_id, site_id, user_id).base_url()

        if not base and not folder_id:
            return await self.list_accessible_locations()

        if not base:
            raise StorageError(f"Cannot browse an item by ID without drive context. {DRIVE_CONTEXT_HINT}")

        parent = f"items/{_encode(folder_id)}" if folder_id else "root"
        url = (
            f"{base}/{parent}/children"
            f"?$top=100&$orderby=lastModifiedDateTime+desc&$select={ITEM_SELECT}"
        )
        payload = parse_graph_response(await self._graph("GET", url))
        files = [format_file_item(item) for item in payload.get("value") or []]
        return json.dumps({"files": files}, ensure_ascii=False)

    async def _fetch_sites(self) -> List[Dict[str, Any]]:
        url = f"{GRAPH_ROOT}/sites?search=*&$top=20&$select=id,displayName,webUrl"
        payload = parse_graph_response(await self._graph("GET", url))
        return [
            {
                "id": site.get("id"),
                "name": site.get("displayName") or "",
                "webUrl": site.get("webUrl") or "",
                "type": "SharePoint Site",
            }
            for site in payload.get("value") or []
        ]

    async def _fetch_drives(self) -> List[Dict[str, Any]]:
        url = f"{GRAPH_ROOT}/drives?$top=50&$select=id,name,driveType,webUrl"
        payload = parse_graph_response(await self._graph("GET", url))
        return [
            {
                "id": drive.get("id"),
                "name": drive.get("name") or "",
                "webUrl": drive.get("webUrl") or "",
                "driveType": drive.get("driveType") or "",
            }
            for drive in payload.get("value") or []
        ]

    async def list_accessible_locations(self) -> str:
        """
        并发获取站点与驱动器列表 两者都失败时才报错

        Returns:
            str: {"sites": [...], "drives": [...], "hint": ...}
        """
        sites, drives = await asyncio.gather(
            self._fetch_sites(),
            self._fetch_drives(),
            return_exceptions=True,
        )

        if isinstance(sites, Exception) and isinstance(drives, Exception):
            raise StorageError(f"Unable to list accessible OneDrive/SharePoint locations. {sites}")
        if isinstance(sites, Exception):
            logger.warning(f"获取 SharePoint 站点失败: {sites}")
            sites = []
        if isinstance(drives, Exception):
            logger.warning(f"获取驱动器列表失败: {drives}")
            drives = []

        return json.dumps({"sites": sites, "drives": drives, "hint": LOCATIONS_HINT}, ensure_ascii=False)

    async def search_files(
        self,
        query: str,
        drive_id: Optional[str] = None,
        site_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **options,
    ) -> str:
        """
        在指定驱动器内搜索 无驱动器上下文时走跨驱动器搜索
        """
        base = self.resolve_location(drive_id, site_id, user_id).base_url()
        if not base:
            return await self.cross_drive_search(query)

        url = f"{base}/root/search(q='{_encode(query)}')?$top=100&$select={ITEM_SELECT}"
        payload = parse_graph_response(await self._graph("GET", url))
        files = [format_file_item(item) for item in payload.get("value") or []]
        return json.dumps({"files": files}, ensure_ascii=False)

    async def cross_drive_search(self, query: str) -> str:
        body = {
            "requests": [{
                "entityTypes": ["driveItem"],
                "query": {"queryString": query},
                "from": 0,
                "size": 50,
            }]
        }
        payload = parse_graph_response(await self._graph("POST", f"{GRAPH_ROOT}/search/query", json_body=body))

        hits: List[Dict[str, Any]] = []
        values = payload.get("value") or []
        if values:
            containers = values[0].get("hitsContainers") or []
            if containers:
                hits = containers[0].get("hits") or []
        files = [format_file_item(hit.get("resource") or {}) for hit in hits]
        return json.dumps({"files": files}, ensure_ascii=False)

    async def read_file(
        self,
        item_id: str,
        drive_id: Optional[str] = None,
        site_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **options,
    ) -> str:
        """
        下载文件并提取正文 正文超过 15000 字符会被截断

        Raises:
            StorageError: 无驱动器上下文 目标是文件夹 或无法提取文本

        Returns:
            str: {"file": {id, driveId, name, mimeType, webUrl}, "content": ...}
        """
        base = self.resolve_location(drive_id, site_id, user_id).base_url()
        if not base:
            raise StorageError(f"Cannot read file without drive context. {DRIVE_CONTEXT_HINT}")

        encoded_id = _encode(item_id)
        meta_url = f"{base}/items/{encoded_id}?$select=id,name,file,size,lastModifiedDateTime,webUrl,parentReference"
        metadata = parse_graph_response(await self._graph("GET", meta_url))

        if metadata.get("file") is None:
            raise StorageError("The selected item is a folder. Choose a file item instead.")

        file_name = metadata.get("name") or ""
        mime_type = (metadata.get("file") or {}).get("mimeType") or ""
        web_url = metadata.get("webUrl") or ""
        resolved_drive_id = (metadata.get("parentReference") or {}).get("driveId") or drive_id or ""

        response = await self._graph("GET", f"{base}/items/{encoded_id}/content", timeout=DOWNLOAD_TIMEOUT_SECONDS)
        if not response.ok:
            raise StorageError(f"HTTP {response.status}: {response.text()}")

        text = extract_text(response.body, mime_type, file_name)
        if text is None:
            raise StorageError(
                f"Could not extract readable text from this file type ({mime_type or 'unknown'})."
            )

        payload = {
            "file": {
                "id": item_id,
                "driveId": resolved_drive_id,
                "name": file_name,
                "mimeType": mime_type,
                "webUrl": web_url,
            },
            "content": truncate_content(text),
        }
        return json.dumps(payload, ensure_ascii=False)
