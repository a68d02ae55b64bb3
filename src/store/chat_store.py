"""
인메모리 채팅 스토어.
메시지 목록(최근 N개 유지) + 세션별 하트비트. 접속자 목록은 저장하지 않고 조회 시 하트비트에서 계산.

FastAPI 동기 핸들러는 스레드 풀에서 돌고 만료 스윕은 이벤트 루프에서 돌기 때문에 모든 접근은 lock 경유.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from .models import (
    ChatValidationError,
    Heartbeat,
    Message,
    generate_message_id,
    iso_timestamp,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 1000
DEFAULT_HEARTBEAT_TIMEOUT_SEC = 10.0


def _require(**fields: Any) -> dict[str, str]:
    """모든 필드가 문자열이고 trim 후 비어있지 않아야 함. trim된 값 반환."""
    cleaned: dict[str, str] = {}
    missing = []
    for name, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
            continue
        cleaned[name] = value.strip()
    if missing:
        raise ChatValidationError(f"Missing required fields: {', '.join(missing)}")
    return cleaned


class ChatStore:
    """
    전체 채팅 상태 (단일 글로벌 방).

    clock: epoch 초를 반환하는 함수. 테스트에서 시간 주입용.
    """

    def __init__(
        self,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        heartbeat_timeout_sec: float = DEFAULT_HEARTBEAT_TIMEOUT_SEC,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_messages < 1:
            raise ValueError("max_messages는 1 이상이어야 합니다")
        self.max_messages = max_messages
        self.heartbeat_timeout_ms = int(heartbeat_timeout_sec * 1000)
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._messages: list[Message] = []
        self._heartbeats: dict[str, Heartbeat] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _active_users_locked(self, now_ms: int) -> list[str]:
        users = {
            hb.username
            for hb in self._heartbeats.values()
            if hb.age_ms(now_ms) < self.heartbeat_timeout_ms
        }
        return sorted(users)

    def messages(self) -> list[Message]:
        with self._lock:
            return list(self._messages)

    def active_users(self) -> list[str]:
        """만료되지 않은 하트비트의 사용자 이름 (중복 제거)."""
        with self._lock:
            return self._active_users_locked(self._now_ms())

    def snapshot(self) -> dict[str, Any]:
        """GET /chat 응답 형태: messages(입력 순서) + activeUsers"""
        with self._lock:
            return {
                "messages": [m.to_dict() for m in self._messages],
                "activeUsers": self._active_users_locked(self._now_ms()),
            }

    def add_message(self, text: Any, sender: Any, session_id: Any) -> Message:
        """
        메시지 추가. 상한 초과 시 오래된 것부터 버림.

        Raises:
            ChatValidationError: text/sender/session_id 중 하나라도 비어있는 경우
        """
        fields = _require(text=text, sender=sender, sessionId=session_id)
        epoch = self._clock()
        message = Message(
            id=generate_message_id(int(epoch * 1000)),
            text=fields["text"],
            sender=fields["sender"],
            timestamp=iso_timestamp(epoch),
        )
        with self._lock:
            self._messages.append(message)
            overflow = len(self._messages) - self.max_messages
            if overflow > 0:
                del self._messages[:overflow]
        logger.debug("메시지 추가: %s (%s)", message.id, message.sender)
        return message

    def record_heartbeat(self, username: Any, session_id: Any) -> list[str]:
        """
        세션 하트비트 갱신 후 즉시 계산한 접속자 목록 반환.

        Raises:
            ChatValidationError: username/session_id 누락
        """
        fields = _require(username=username, sessionId=session_id)
        with self._lock:
            now = self._now_ms()
            self._heartbeats[fields["sessionId"]] = Heartbeat(
                username=fields["username"], timestamp=now
            )
            return self._active_users_locked(now)

    def clear(self) -> None:
        """메시지 전체 삭제 (하트비트는 유지)"""
        with self._lock:
            count = len(self._messages)
            self._messages = []
        logger.info("채팅 클리어: %d개 삭제", count)

    def sweep(self) -> list[str]:
        """만료된 하트비트 제거. 제거된 session id 목록 반환."""
        with self._lock:
            now = self._now_ms()
            expired = [
                sid
                for sid, hb in self._heartbeats.items()
                if hb.age_ms(now) >= self.heartbeat_timeout_ms
            ]
            for sid in expired:
                del self._heartbeats[sid]
        if expired:
            logger.info("하트비트 만료: %d개 세션 제거", len(expired))
        return expired
