"""
채팅 클라이언트 모듈
서버를 주기적으로 폴링해 메시지·접속자 상태를 유지
"""

from .chat_service import ChatService, generate_session_id
from .fallback_store import LocalFallbackStore

__all__ = [
    "ChatService",
    "LocalFallbackStore",
    "generate_session_id",
]
