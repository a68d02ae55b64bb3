"""
환경 변수 기반 설정. 프로젝트 루트의 .env 를 먼저 읽는다.

서버(포트·메시지 상한·하트비트 만료)와 클라이언트(서버 주소·폴링 주기·로컬 대체 저장소)
설정을 한 곳에 모음.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_MAX_MESSAGES = 1000
DEFAULT_HEARTBEAT_TIMEOUT_SEC = 10.0
DEFAULT_SWEEP_INTERVAL_SEC = 5.0
DEFAULT_SERVER_URL = "http://localhost:3001/api"
DEFAULT_POLL_INTERVAL_SEC = 1.0


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def default_fallback_path() -> Path:
    return _project_root() / "data" / "fallback_messages.json"


@dataclass(frozen=True)
class Settings:
    """서버·클라이언트 공통 설정"""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_messages: int = DEFAULT_MAX_MESSAGES
    heartbeat_timeout_sec: float = DEFAULT_HEARTBEAT_TIMEOUT_SEC
    sweep_interval_sec: float = DEFAULT_SWEEP_INTERVAL_SEC
    server_url: str = DEFAULT_SERVER_URL
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    fallback_path: Optional[Path] = None


def load_settings(env_file: Optional[Union[Path, str]] = None) -> Settings:
    """
    .env + 환경 변수에서 Settings 생성. 값이 없거나 빈 문자열이면 기본값.

    Raises:
        ValueError: 숫자 항목에 숫자가 아닌 값이 들어온 경우
    """
    load_dotenv(Path(env_file) if env_file else _project_root() / ".env")
    fallback = (os.environ.get("CHAT_FALLBACK_PATH") or "").strip()
    return Settings(
        host=os.environ.get("CHAT_SERVER_HOST") or DEFAULT_HOST,
        port=int(os.environ.get("CHAT_SERVER_PORT") or DEFAULT_PORT),
        max_messages=int(os.environ.get("CHAT_MAX_MESSAGES") or DEFAULT_MAX_MESSAGES),
        heartbeat_timeout_sec=float(
            os.environ.get("CHAT_HEARTBEAT_TIMEOUT_SEC") or DEFAULT_HEARTBEAT_TIMEOUT_SEC
        ),
        sweep_interval_sec=float(
            os.environ.get("CHAT_SWEEP_INTERVAL_SEC") or DEFAULT_SWEEP_INTERVAL_SEC
        ),
        server_url=(os.environ.get("CHAT_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        poll_interval_sec=float(
            os.environ.get("CHAT_POLL_INTERVAL_SEC") or DEFAULT_POLL_INTERVAL_SEC
        ),
        fallback_path=Path(fallback) if fallback else default_fallback_path(),
    )
