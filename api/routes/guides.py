"""
引导手册路由模块
"""
from typing import Optional

from fastapi import APIRouter, HTTPException

from agent.errors import ChatBusyError
from api.routes.chat import get_session
from api.routes.schemas.guides import ApplyGuideRequest, ApplyGuideResponse, GuideInfo, GuideListResponse
from prompts.guides import search_guides

router = APIRouter()


@router.get("/guides", response_model=GuideListResponse)
async def list_guides(q: Optional[str] = None):
    """
    获取手册目录 可按标题或关键词过滤

    Args:
        q (Optional[str]): 过滤关键字
    """
    guides = [
        GuideInfo(
            id=g["id"],
            title=g["title"],
            keywords=g["keywords"],
            quick_steps=g["quick_steps"],
            content=g["content"],
        )
        for g in search_guides(q)
    ]
    return GuideListResponse(guides=guides)


@router.post("/guides/apply", response_model=ApplyGuideResponse)
async def apply_guide(request: ApplyGuideRequest):
    """把选中的手册注入当前聊天 guide_id 为空时清除"""
    try:
        applied = get_session().apply_guide(request.guide_id)
    except ChatBusyError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return ApplyGuideResponse(ok=True, applied=applied)
