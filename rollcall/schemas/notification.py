from datetime import datetime

from pydantic import BaseModel, field_validator


class NotificationCreate(BaseModel):
    sender_id: int
    receiver_id: int
    message: str

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Message is required")
        return v


class NotificationResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    message: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True
