"""
글로벌 채팅 서버 실행 예제

.env에 CHAT_SERVER_HOST, CHAT_SERVER_PORT 등 설정 가능 (없으면 0.0.0.0:3001).

실행: python examples/chat_server_example.py  (프로젝트 루트에서)
"""

import sys
from pathlib import Path

# 프로젝트 루트를 path에 넣어서 'import src' 가능하게 함
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging

import uvicorn

from src.server import create_app
from src.utils import load_settings, setup_logging

settings = load_settings(Path(__file__).resolve().parent.parent / ".env")
LOG_DIR = setup_logging()
logger = logging.getLogger(__name__)


def main():
    app = create_app(settings=settings)
    logger.info("채팅 서버 시작: http://%s:%s", settings.host, settings.port)
    print(f"🚀 채팅 서버: http://localhost:{settings.port}/api")
    print(f"로그 저장 경로: {LOG_DIR}")
    print("다른 기기에서 접속하려면 이 PC의 IP와 포트를 공유하세요. (종료: Ctrl+C)\n")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
