"""
글로벌 채팅 클라이언트 예제 (터미널)

서버를 먼저 실행: python examples/chat_server_example.py
실행: python examples/chat_client_example.py 닉네임  (프로젝트 루트에서)

입력한 줄은 메시지로 전송. /clear 는 전체 삭제, /quit 는 종료.
"""

import sys
from pathlib import Path

# 프로젝트 루트를 path에 넣어서 'import src' 가능하게 함
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from src.client import ChatService
from src.utils import load_settings, setup_logging

settings = load_settings(Path(__file__).resolve().parent.parent / ".env")
LOG_DIR = setup_logging()


def print_messages(messages):
    if not messages:
        print("(메시지 없음)")
        return
    last = messages[-1]
    print(f"[{last.get('timestamp')}] {last.get('sender')}: {last.get('text')}")


def print_users(users):
    print(f"👥 {len(users)}명 접속 중: {', '.join(users)}")


async def main():
    username = sys.argv[1] if len(sys.argv) > 1 else input("닉네임: ")
    if not username.strip():
        print("❌ 닉네임을 입력해주세요.")
        return

    async with ChatService.from_settings(settings) as chat:
        chat.on_message(print_messages)
        chat.on_users_change(print_users)
        await chat.set_current_user(username)

        print(f"서버: {chat.server_url}, 세션: {chat.session_id}")
        print(f"로그 저장 경로: {LOG_DIR}")
        print("메시지를 입력하세요... (/clear, /quit)\n")
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line or line.strip() == "/quit":
                break
            if line.strip() == "/clear":
                await chat.clear_chat()
                continue
            await chat.send_message(line)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
