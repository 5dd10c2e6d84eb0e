"""
设置路由模块

只读返回当前生效的模型与存储后端配置 密钥本身不会返回
"""
from fastapi import APIRouter

from api.routes.chat import get_session
from api.routes.schemas.settings import SettingsResponse

router = APIRouter()


@router.get("/settings", response_model=SettingsResponse)
async def get_settings():
    return SettingsResponse(**get_session().settings())
