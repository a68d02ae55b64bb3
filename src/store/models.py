"""
채팅 스토어 데이터 모델
메시지 / 하트비트 (세션별 접속 신호)
"""

from __future__ import annotations

import random
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional


class ChatValidationError(ValueError):
    """필수 필드 누락 등 요청 값 오류 (서버는 400으로 응답)"""


@dataclass(frozen=True)
class Message:
    """채팅 메시지. 생성 후 변경 없음."""
    id: str
    text: str
    sender: str
    timestamp: str  # ISO-8601 UTC (예: 2026-01-01T00:00:00.000Z)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Heartbeat:
    """세션 하나의 마지막 접속 신호"""
    username: str
    timestamp: int  # epoch ms

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp


def now_ms(clock=time.time) -> int:
    return int(clock() * 1000)


def iso_timestamp(epoch_sec: Optional[float] = None) -> str:
    """epoch 초 → ISO-8601 (ms, Z 접미사). 생략 시 현재 시각."""
    dt = (
        datetime.fromtimestamp(epoch_sec, tz=timezone.utc)
        if epoch_sec is not None
        else datetime.now(timezone.utc)
    )
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_message_id(epoch_ms: Optional[int] = None) -> str:
    """현재 시각(ms) + 랜덤 8자리 hex. 충돌 가능성은 무시할 수준 (암호학적 보장 아님)."""
    ms = epoch_ms if epoch_ms is not None else now_ms()
    return f"{ms}-{random.getrandbits(32):08x}"
