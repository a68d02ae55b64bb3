"""
글로벌 채팅 서버 (FastAPI).

- create_app(): ChatStore를 주입받아 앱 생성, lifespan 동안 하트비트 스윕 실행.
- 기본 포트 3001, 모든 origin 허용.
"""

from src.server.app import create_app, run_sweeper

__all__ = ["create_app", "run_sweeper"]
