"""
存储模块 - 云端文件后端

GoogleDriveBackend: Google Drive 服务账号后端
OneDriveBackend: Microsoft Graph 后端
extract_text: 下载内容的文本提取
"""
from .base import (
    HttpResponse,
    StorageBackend,
    StorageError,
    StorageNotConfiguredError,
    TokenCache,
    http_request,
    truncate_content,
)
from .extraction import extract_text
from .google_drive import GoogleDriveBackend
from .onedrive import DriveLocation, OneDriveBackend

__all__ = [
    "HttpResponse",
    "StorageBackend",
    "StorageError",
    "StorageNotConfiguredError",
    "TokenCache",
    "http_request",
    "truncate_content",
    "extract_text",
    "GoogleDriveBackend",
    "DriveLocation",
    "OneDriveBackend",
]
