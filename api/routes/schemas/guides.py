from typing import List, Optional

from pydantic import BaseModel


class GuideInfo(BaseModel):
    """
    引导手册

    - id (str): 手册 ID
    - title (str): 标题
    - keywords (str): 空格分隔的关键词
    - quick_steps (List[str]): 简要步骤
    - content (str): 正文
    """

    id: str
    title: str
    keywords: str
    quick_steps: List[str]
    content: str


class GuideListResponse(BaseModel):
    guides: List[GuideInfo]


class ApplyGuideRequest(BaseModel):
    """guide_id 为空表示清除当前手册上下文"""

    guide_id: Optional[str] = None


class ApplyGuideResponse(BaseModel):
    ok: bool = True
    applied: bool = False
