"""
글로벌 채팅 폴링 클라이언트
1초마다 서버의 전체 상태(/chat)를 가져와 로컬 상태와 비교하고, 바뀌었을 때만 리스너에 알림.
사용자 이름이 설정되어 있으면 같은 주기로 하트비트도 전송.

서버에 연결할 수 없으면 LocalFallbackStore(로컬 JSON 파일)로 대체 동작. 서버 복구 후 병합은 하지 않음.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import Any, Awaitable, Callable, List, Optional, Union

import httpx

from src.client.fallback_store import LocalFallbackStore
from src.store.models import generate_message_id, iso_timestamp
from src.utils.settings import DEFAULT_POLL_INTERVAL_SEC, DEFAULT_SERVER_URL, Settings

logger = logging.getLogger(__name__)

MessagesListener = Callable[[List[dict]], Union[None, Awaitable[None]]]
UsersListener = Callable[[List[str]], Union[None, Awaitable[None]]]


def generate_session_id() -> str:
    """클라이언트 인스턴스당 한 번 생성하는 세션 토큰"""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"


class ChatService:
    """폴링 기반 채팅 클라이언트

    사용:
        async with ChatService() as chat:
            chat.on_message(print)
            await chat.set_current_user("alice")
            await chat.send_message("hi")
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
        fallback_store: Optional[LocalFallbackStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        session_id: Optional[str] = None,
    ):
        """
        Args:
            server_url: API 기본 주소 (예: http://localhost:3001/api)
            poll_interval: 폴링 주기 (초)
            fallback_store: 서버 불가 시 사용할 로컬 저장소
            http_client: 외부에서 만든 클라이언트 (테스트용 transport 주입). 지정 시 close()에서 닫지 않음
            session_id: 미지정 시 새로 생성
        """
        self.server_url = server_url.rstrip("/")
        self.poll_interval = poll_interval
        self.fallback_store = fallback_store or LocalFallbackStore()
        self.session_id = session_id or generate_session_id()

        self._client = http_client
        self._owns_client = http_client is None

        self.messages: List[dict] = []
        self.active_users: set[str] = set()
        self.current_user: Optional[str] = None

        self._message_listeners: List[MessagesListener] = []
        self._user_listeners: List[UsersListener] = []

        self._poll_task: Optional[asyncio.Task] = None
        self._tick_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ChatService":
        return cls(
            server_url=settings.server_url,
            poll_interval=settings.poll_interval_sec,
            fallback_store=LocalFallbackStore(settings.fallback_path),
            **kwargs,
        )

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def __aenter__(self) -> "ChatService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # 수명 주기
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """초기 상태를 한 번 가져온 뒤 폴링 시작"""
        if self.is_polling:
            return
        if self._client is None:
            self._client = httpx.AsyncClient()
        await self.load_initial_data()
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("폴링 시작: %s (%.1f초, session=%s)", self.server_url, self.poll_interval, self.session_id)

    async def stop(self) -> None:
        """폴링 중지. 서버에 퇴장을 알리지 않음 (하트비트 만료로 자연 퇴장)."""
        tasks = list(self._tick_tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tick_tasks.clear()

    async def close(self) -> None:
        await self.stop()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            # 응답을 기다리지 않음: 느린 요청은 다음 틱과 겹칠 수 있음
            self._spawn(self.fetch_updates())
            if self.current_user:
                self._spawn(self.send_heartbeat())

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.create_task(coro)
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    # ------------------------------------------------------------------
    # 읽기 경로
    # ------------------------------------------------------------------

    async def _get_chat(self) -> dict:
        response = await self._http().get(f"{self.server_url}/chat")
        response.raise_for_status()
        return response.json()

    async def load_initial_data(self) -> None:
        """최초 1회 전체 상태 로드. 실패하면 로컬 저장소 내용 사용."""
        try:
            data = await self._get_chat()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("서버 연결 불가, 로컬 모드 사용: %s", e)
            stored = self.fallback_store.load()
            if stored is not None:
                self.messages = stored
                await self._notify_message_listeners()
            return
        self.messages = list(data.get("messages") or [])
        self.active_users = set(data.get("activeUsers") or [])
        await self._notify_message_listeners()
        await self._notify_user_listeners()

    async def fetch_updates(self) -> None:
        """폴링 한 번. 메시지는 전체 비교, 접속자는 집합 비교로 변경 시에만 알림."""
        try:
            data = await self._get_chat()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("상태 조회 실패, 로컬 저장소와 동기화: %s", e)
            await self._sync_with_fallback()
            return

        messages = list(data.get("messages") or [])
        if messages != self.messages:
            self.messages = messages
            await self._notify_message_listeners()
        await self._update_active_users(data.get("activeUsers") or [])

    async def _sync_with_fallback(self) -> None:
        stored = self.fallback_store.load()
        if stored is not None and stored != self.messages:
            self.messages = stored
            await self._notify_message_listeners()

    async def _update_active_users(self, users: List[str]) -> None:
        new_users = set(users)
        if new_users != self.active_users:
            self.active_users = new_users
            await self._notify_user_listeners()

    # ------------------------------------------------------------------
    # 쓰기 경로
    # ------------------------------------------------------------------

    async def set_current_user(self, username: Optional[str]) -> None:
        """사용자 설정/해제. 설정 시 즉시 하트비트 전송."""
        name = (username or "").strip()
        self.current_user = name or None
        if self.current_user:
            logger.info("사용자 설정: %s", self.current_user)
            await self.send_heartbeat()

    async def send_heartbeat(self) -> None:
        if not self.current_user:
            return
        try:
            response = await self._http().post(
                f"{self.server_url}/heartbeat",
                json={"username": self.current_user, "sessionId": self.session_id},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            # 서버 불가: 현재 상태 유지
            logger.debug("하트비트 실패: %s", e)
            return
        await self._update_active_users(data.get("activeUsers") or [])

    async def send_message(self, text: str) -> Optional[dict]:
        """
        메시지 전송. 사용자 미설정이거나 빈 문자열이면 무시(None).
        서버 실패 시 로컬 저장소에 추가하고 로컬 메시지 반환.
        """
        if not self.current_user or not text or not text.strip():
            return None

        message = {
            "id": generate_message_id(),
            "text": text.strip(),
            "sender": self.current_user,
            "timestamp": iso_timestamp(),
        }
        try:
            response = await self._http().post(
                f"{self.server_url}/message",
                json={
                    "text": message["text"],
                    "sender": message["sender"],
                    "sessionId": self.session_id,
                },
            )
            response.raise_for_status()
            created = response.json().get("message") or message
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("메시지 서버 전송 실패, 로컬 저장: %s", e)
            self.messages = [*self.messages, message]
            self._save_fallback()
            await self._notify_message_listeners()
            return message

        # 다음 틱을 기다리지 않고 바로 갱신
        await self.fetch_updates()
        return created

    async def clear_chat(self) -> None:
        """전체 메시지 삭제. 서버 실패 시 로컬만 비움."""
        try:
            response = await self._http().post(f"{self.server_url}/clear")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("클리어 서버 요청 실패, 로컬만 삭제: %s", e)
            self.messages = []
            self._save_fallback()
            await self._notify_message_listeners()
            return
        self.messages = []
        await self._notify_message_listeners()

    def _save_fallback(self) -> None:
        try:
            self.fallback_store.save(self.messages)
        except OSError as e:
            logger.error("로컬 메시지 저장 실패: %s", e)

    # ------------------------------------------------------------------
    # 조회 / 리스너
    # ------------------------------------------------------------------

    def get_messages(self) -> List[dict]:
        return list(self.messages)

    def get_active_users(self) -> List[str]:
        return sorted(self.active_users)

    def on_message(self, callback: MessagesListener) -> Callable[[], None]:
        """메시지 리스너 등록. 반환된 함수를 호출하면 해제."""
        self._message_listeners.append(callback)
        return lambda: self._remove(self._message_listeners, callback)

    def on_users_change(self, callback: UsersListener) -> Callable[[], None]:
        """접속자 리스너 등록. 반환된 함수를 호출하면 해제."""
        self._user_listeners.append(callback)
        return lambda: self._remove(self._user_listeners, callback)

    @staticmethod
    def _remove(listeners: list, callback: Callable) -> None:
        if callback in listeners:
            listeners.remove(callback)

    async def _notify_message_listeners(self) -> None:
        for callback in list(self._message_listeners):
            await self._call_listener(callback, self.get_messages(), "message")

    async def _notify_user_listeners(self) -> None:
        for callback in list(self._user_listeners):
            await self._call_listener(callback, self.get_active_users(), "user")

    @staticmethod
    async def _call_listener(callback: Callable, payload: list, kind: str) -> None:
        # 리스너 예외는 로그만 남기고 다른 리스너 계속 호출 (해제하지 않음)
        try:
            result = callback(payload)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("%s listener 오류", kind)
