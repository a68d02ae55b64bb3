"""요청 본문 모델. 필수 여부 검사는 스토어가 하므로 여기서는 전부 Optional."""

from typing import Optional

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    text: Optional[str] = None
    sender: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class HeartbeatRequest(BaseModel):
    username: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")
