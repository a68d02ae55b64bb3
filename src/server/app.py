"""
글로벌 채팅 HTTP 서버. /api/chat 전체 상태, /api/message·/api/heartbeat·/api/clear 쓰기, /api/health.
클라이언트는 1초마다 /api/chat 을 폴링 (푸시 없음).

실행: python examples/chat_server_example.py 또는 uvicorn src.server.app:app --host 0.0.0.0 --port 3001
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.server.schemas import HeartbeatRequest, MessageRequest
from src.store import ChatStore, ChatValidationError
from src.store.models import iso_timestamp
from src.utils.settings import Settings, load_settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


async def run_sweeper(store: ChatStore, interval_sec: float) -> None:
    """interval_sec 마다 만료 하트비트 정리. 취소될 때까지 반복."""
    while True:
        await asyncio.sleep(interval_sec)
        try:
            store.sweep()
        except Exception:
            logger.exception("하트비트 스윕 실패")


def create_app(
    store: Optional[ChatStore] = None,
    settings: Optional[Settings] = None,
    start_sweeper: bool = True,
) -> FastAPI:
    """
    앱 생성. store를 주입하지 않으면 settings 기준으로 새로 만든다.

    Args:
        store: 공유할 ChatStore (테스트에서 주입)
        settings: 미지정 시 load_settings()
        start_sweeper: lifespan 동안 하트비트 만료 스윕 태스크 실행 여부
    """
    settings = settings or load_settings()
    if store is None:
        store = ChatStore(
            max_messages=settings.max_messages,
            heartbeat_timeout_sec=settings.heartbeat_timeout_sec,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task: Optional[asyncio.Task] = None
        if start_sweeper:
            task = asyncio.create_task(run_sweeper(store, settings.sweep_interval_sec))
            logger.info("하트비트 스윕 시작 (%.1f초 주기)", settings.sweep_interval_sec)
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    app = FastAPI(title="Global Chat", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatValidationError)
    async def _validation_error(request: Request, exc: ChatValidationError):
        logger.info("잘못된 요청 %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _malformed_body(request: Request, exc: RequestValidationError):
        logger.info("본문 파싱 실패 %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    @app.get(f"{API_PREFIX}/chat")
    def get_chat():
        """전체 메시지 + 현재 접속자."""
        return JSONResponse(store.snapshot())

    @app.post(f"{API_PREFIX}/message")
    def post_message(body: MessageRequest):
        """메시지 전송. text·sender·sessionId 모두 필요."""
        message = store.add_message(body.text, body.sender, body.session_id)
        return JSONResponse({"success": True, "message": message.to_dict()})

    @app.post(f"{API_PREFIX}/heartbeat")
    def post_heartbeat(body: HeartbeatRequest):
        """접속 신호. 응답의 activeUsers는 스윕을 기다리지 않고 즉시 계산."""
        active = store.record_heartbeat(body.username, body.session_id)
        return JSONResponse({"success": True, "activeUsers": active})

    @app.post(f"{API_PREFIX}/clear")
    def clear_chat():
        """메시지 전체 삭제 (검증 없음)."""
        store.clear()
        return JSONResponse({"success": True})

    @app.get(f"{API_PREFIX}/health")
    def health():
        return {"status": "ok", "timestamp": iso_timestamp()}

    return app


app = create_app()
