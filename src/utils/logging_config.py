"""
프로젝트 공통 로깅 설정.

- 콘솔: WARNING 이상
- 통합: logs/app.log (INFO 이상)
- 에러: logs/error.log (ERROR 이상)
- 카테고리: logs/server.log (서버·스토어·uvicorn), logs/client.log (폴링 클라이언트·httpx)
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class _PrefixFilter(logging.Filter):
    """logger name prefix 기반 필터."""

    def __init__(self, *prefixes: str):
        super().__init__()
        self._prefixes = tuple(p for p in prefixes if p)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name or ""
        return any(name.startswith(p) for p in self._prefixes)


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _level_from_env(name: str, default: int) -> int:
    level_name = (os.environ.get(name) or logging.getLevelName(default)).upper()
    return getattr(logging, level_name, default)


def _mk_rotating_handler(path: Path, level: int, fmt: logging.Formatter) -> RotatingFileHandler:
    max_mb = int(os.environ.get("LOG_MAX_MB", "10"))
    backups = int(os.environ.get("LOG_BACKUP_COUNT", "5"))
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(log_dir: Optional[Path] = None) -> Path:
    """루트 로거/핸들러를 재설정하고 로그 디렉터리 경로 반환."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    log_dir = Path(log_dir) if log_dir else _project_root() / "logs"
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    ch = logging.StreamHandler()
    ch.setLevel(_level_from_env("LOG_CONSOLE_LEVEL", logging.WARNING))
    ch.setFormatter(fmt)
    root.addHandler(ch)

    app_h = _mk_rotating_handler(log_dir / "app.log", logging.INFO, fmt)
    root.addHandler(app_h)

    err_h = _mk_rotating_handler(log_dir / "error.log", logging.ERROR, fmt)
    root.addHandler(err_h)

    server_h = _mk_rotating_handler(log_dir / "server.log", logging.DEBUG, fmt)
    server_h.addFilter(_PrefixFilter("src.server", "src.store", "uvicorn"))
    root.addHandler(server_h)

    client_h = _mk_rotating_handler(log_dir / "client.log", logging.DEBUG, fmt)
    client_h.addFilter(_PrefixFilter("src.client", "httpx", "httpcore"))
    root.addHandler(client_h)

    # 1초 폴링이라 httpx 요청 로그가 매우 많음 (파일에도 남기고 싶으면 INFO)
    noisy_level = _level_from_env("HTTPX_LOG_LEVEL", logging.WARNING)
    logging.getLogger("httpx").setLevel(noisy_level)
    logging.getLogger("httpcore").setLevel(noisy_level)

    return log_dir
