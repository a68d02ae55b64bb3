"""
서버에 연결할 수 없을 때 쓰는 로컬 메시지 저장소 (JSON 파일).
브라우저 localStorage 대용. 서버 복구 후 병합하지 않음.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from src.utils.settings import default_fallback_path

logger = logging.getLogger(__name__)


class LocalFallbackStore:
    """메시지 목록 하나를 JSON 파일로 보관"""

    def __init__(self, path: Optional[Union[Path, str]] = None):
        self.path = Path(path) if path else default_fallback_path()

    def load(self) -> Optional[List[dict]]:
        """저장된 메시지 목록. 파일이 없거나 깨져 있으면 None."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("로컬 메시지 로드 실패: %s", e)
            return None
        if not isinstance(data, list):
            logger.warning("로컬 메시지 형식 오류 (list 아님): %s", self.path)
            return None
        return data

    def save(self, messages: List[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(messages, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)
