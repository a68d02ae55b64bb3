"""
채팅 상태 저장 모듈
메시지와 하트비트를 메모리에 보관 (영속화 없음)
"""

from .chat_store import ChatStore
from .models import ChatValidationError, Heartbeat, Message, generate_message_id

__all__ = [
    "ChatStore",
    "ChatValidationError",
    "Heartbeat",
    "Message",
    "generate_message_id",
]
