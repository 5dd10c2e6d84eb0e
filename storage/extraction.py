"""
文件正文提取模块

把下载得到的字节内容转换为可交给模型阅读的纯文本
支持文本类 MIME / 扩展名、PDF(PyMuPDF) 与 DOCX(python-docx)
"""

import io
from typing import Optional

import docx
import fitz  # PyMuPDF

from utils.logger import logger

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

TEXTUAL_MIMES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    "application/yaml",
    "application/javascript",
    "application/x-javascript",
    "application/csv",
    "application/sql",
}

TEXT_EXTENSIONS = {
    "txt", "md", "csv", "tsv", "json", "xml", "yaml", "yml", "log",
    "py", "js", "ts", "java", "cpp", "h", "swift", "sql", "html", "css",
}


def mime_type_looks_textual(mime_type: str) -> bool:
    if not mime_type:
        return False
    lower = mime_type.lower()
    return lower.startswith("text/") or lower in TEXTUAL_MIMES


def decode_text_best_effort(data: bytes) -> str:
    """
    按 UTF-8 解码 出现替换字符时改用 latin-1

    Examples:
        >>> decode_text_best_effort("héllo".encode("latin-1"))
        'héllo'
    """
    if not data:
        return ""
    text = data.decode("utf-8", errors="replace")
    if "�" not in text:
        return text
    return data.decode("latin-1")


def get_extension(file_name: Optional[str]) -> str:
    if not file_name or "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


def extract_pdf_text(data: bytes) -> Optional[str]:
    """
    提取 PDF 文本 每页前加 [Page N] 标记 空白页跳过

    Returns:
        Optional[str]: 提取结果 无文本或解析失败时为 None
    """
    try:
        parts = []
        with fitz.open(stream=data, filetype="pdf") as doc:
            for page_number, page in enumerate(doc, start=1):
                page_text = page.get_text()
                if page_text and page_text.strip():
                    parts.append(f"[Page {page_number}]\n{page_text}")
        return "\n\n".join(parts) if parts else None
    except Exception as e:
        # PyMuPDF 对损坏文件抛出的异常类型不固定
        logger.error(f"PDF 提取失败: {e}")
        return None


def extract_docx_text(data: bytes) -> Optional[str]:
    """
    提取 DOCX 段落文本

    Returns:
        Optional[str]: 提取结果 无文本或解析失败时为 None
    """
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:
        logger.error(f"DOCX 提取失败: {e}")
        return None
    text = "\n".join(p.text for p in document.paragraphs)
    return text if text.strip() else None


def extract_text(data: bytes, mime_type: Optional[str], file_name: Optional[str]) -> Optional[str]:
    """
    根据 MIME 类型与扩展名提取正文

    顺序: 文本 MIME → 文本扩展名 → PDF → DOCX → 兜底按文本解码

    Args:
        data (bytes): 文件字节
        mime_type (Optional[str]): MIME 类型
        file_name (Optional[str]): 文件名

    Returns:
        Optional[str]: 正文 无法得到任何可读文本时为 None
    """
    lower = (mime_type or "").lower()
    ext = get_extension(file_name)

    if mime_type_looks_textual(lower) or ext in TEXT_EXTENSIONS:
        text = decode_text_best_effort(data)
        if text:
            return text

    if lower == PDF_MIME or ext == "pdf":
        return extract_pdf_text(data)

    if lower == DOCX_MIME or ext == "docx":
        return extract_docx_text(data)

    fallback = decode_text_best_effort(data)
    return fallback or None
