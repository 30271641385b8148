# models/inbound.py
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel


class InboundMessage(BaseModel):
    """A text message received from the messaging gateway."""

    sender_id: str                    # phone digits, also the profile id
    text: str
    is_group_chat: bool = False
    chat_id: Optional[str] = None     # raw WA chat id (e.g., "2547xxxx@c.us")
    message_id: Optional[str] = None
    sender_name: Optional[str] = None
    timestamp: Optional[int] = None


class DeliveryResult(BaseModel):
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
