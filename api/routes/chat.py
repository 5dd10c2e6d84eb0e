"""
聊天路由模块

该模块提供 HTTP 对话 聊天切换 与 WebSocket 进度推送接口
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from agent.errors import ChatBusyError, ChatNotFoundError, EmptyMessageError, MaxIterationsExceeded
from agent.session import AgentSession
from api.routes.schemas.chat import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    LoadChatResponse,
    NewChatResponse,
)
from config.paths import get_paths
from llm.errors import CompletionError
from utils.logger import logger

router = APIRouter()

_session: Optional[AgentSession] = None


def get_session() -> AgentSession:
    """
    获取全局 AgentSession 实例 首次调用时恢复上次的会话
    """
    global _session
    if _session is None:
        _session = AgentSession(get_paths())
        _session.restore()
    return _session


def set_session(session: Optional[AgentSession]) -> None:
    """替换全局会话 传入 None 则在下次访问时重新创建"""
    global _session
    _session = session


def raise_http_error(error: Exception) -> None:
    """
    把会话层异常映射为 HTTP 状态码

    409 处理中 / 400 空输入 / 404 聊天不存在 / 502 补全失败
    """
    if isinstance(error, ChatBusyError):
        raise HTTPException(status_code=409, detail=error.message)
    if isinstance(error, EmptyMessageError):
        raise HTTPException(status_code=400, detail=error.message)
    if isinstance(error, ChatNotFoundError):
        raise HTTPException(status_code=404, detail=error.message)
    if isinstance(error, (CompletionError, MaxIterationsExceeded)):
        raise HTTPException(status_code=502, detail=error.message)
    raise error


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """
    处理 HTTP 单次聊天请求

    Args:
        request (ChatRequest): 请求体对象

    Returns:
        ChatResponse: 最终回答与当前聊天 ID
    """
    session = get_session()
    try:
        answer = await session.send(request.message)
    except (ChatBusyError, EmptyMessageError, CompletionError, MaxIterationsExceeded) as e:
        raise_http_error(e)
    return ChatResponse(response=answer, chat_id=session.chat_id)


@router.post("/chat/new", response_model=NewChatResponse)
async def new_chat():
    """归档当前聊天并新建"""
    session = get_session()
    try:
        welcome = session.new_chat()
    except ChatBusyError as e:
        raise_http_error(e)
    return NewChatResponse(welcome_message=welcome, chat_id=session.chat_id)


@router.post("/chat/load/{chat_id}", response_model=LoadChatResponse)
async def load_chat(chat_id: str):
    """切换到归档中的聊天"""
    session = get_session()
    try:
        display = session.load_chat(chat_id)
    except (ChatBusyError, ChatNotFoundError) as e:
        raise_http_error(e)
    return LoadChatResponse(chat_id=session.chat_id, display_messages=display)


@router.get("/chat/history", response_model=ChatHistoryResponse)
async def chat_history():
    return ChatHistoryResponse(chats=get_session().history())


async def process_one_message(
    session: AgentSession,
    payload: Dict[str, Any],
    send_json: Callable[[Dict[str, Any]], Awaitable[None]],
) -> None:
    """
    执行一轮对话并把进度 结果或错误推送给客户端

    进度经队列按回调顺序转发 本轮结束或被取消时转发任务一并结束

    Args:
        session (AgentSession): 当前会话
        payload (Dict[str, Any]): 客户端消息 已带 request_id
        send_json (Callable): 推送事件的协程函数
    """
    request_id = payload["request_id"]
    progress: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    async def forward_progress():
        # 遇到 None 结束
        while True:
            text = await progress.get()
            if text is None:
                break
            await send_json({"type": "thinking", "text": text, "request_id": request_id})

    async def drain():
        progress.put_nowait(None)
        await forwarder

    forwarder = asyncio.create_task(forward_progress(), name=f"ws-progress-{request_id}")
    try:
        try:
            answer = await session.send(payload.get("content") or "", notifier=progress.put_nowait)
        except (ChatBusyError, EmptyMessageError, CompletionError, MaxIterationsExceeded) as e:
            await drain()
            await send_json({"type": "error", "message": e.message, "request_id": request_id})
            return
        except Exception as e:
            await drain()
            logger.error(f"WebSocket 请求处理失败: {e}", exc_info=True)
            await send_json({"type": "error", "message": str(e), "request_id": request_id})
            return

        await drain()
        await send_json({
            "type": "done",
            "response": answer,
            "chat_id": session.chat_id,
            "request_id": request_id,
        })
    finally:
        if not forwarder.done():
            forwarder.cancel()


@router.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket):
    """
    处理 WebSocket 聊天请求

    客户端消息:
    - {"type": "ping"} → {"type": "pong"}
    - {"type": "message", "content": "...", "request_id": "..."}

    服务端事件:
    - {"type": "thinking", "text": "...", "request_id": ...} 工具进度
    - {"type": "done", "response": "...", "chat_id": ..., "request_id": ...}
    - {"type": "error", "message": "...", "request_id": ...}

    同一连接上一条消息未完成时 新消息立即被拒绝

    Args:
        websocket (WebSocket): WebSocket 连接对象
    """
    await websocket.accept()
    session = get_session()

    running_task: Optional[asyncio.Task] = None

    try:
        while True:
            data = await websocket.receive_json()
            msg_type = data.get("type")

            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if running_task and running_task.done():
                if not running_task.cancelled() and running_task.exception():
                    logger.error(f"❌ [WS] previous task error: {running_task.exception()}")
                running_task = None

            if msg_type != "message":
                continue

            # 串行保护 当前有任务时拒绝新任务
            if (running_task and not running_task.done()) or session.is_busy:
                await websocket.send_json({
                    "type": "error",
                    "message": "Previous request still running",
                    "request_id": data.get("request_id"),
                })
                continue

            payload = dict(data)
            payload["request_id"] = data.get("request_id") or uuid.uuid4().hex[:8]
            running_task = asyncio.create_task(process_one_message(session, payload, websocket.send_json))

    except WebSocketDisconnect:
        if running_task and not running_task.done():
            running_task.cancel()
        logger.info("WebSocket 连接关闭")
    except Exception as e:
        if running_task and not running_task.done():
            running_task.cancel()
        logger.error(f"WebSocket error: {e}")
