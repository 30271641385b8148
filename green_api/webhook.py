# green_api/webhook.py
"""
Green API webhook payload -> InboundMessage.

Only ``incomingMessageReceived`` carries user text. Text is taken from the
plain/extended/quoted text blocks first, then from media captions.
"""
import logging
from typing import Any, Dict, Optional

from dedupe.cache import IdempotencyCache
from models.inbound import InboundMessage

logger = logging.getLogger(__name__)

INCOMING_MESSAGE = "incomingMessageReceived"
STATE_CHANGED = "stateInstanceChanged"

TEXT_TYPES = {
    "textMessage", "extendedTextMessage", "quotedMessage",
    "imageMessage", "videoMessage",  # media can carry caption
}


def _first_present_text(*vals) -> Optional[str]:
    for v in vals:
        if isinstance(v, str) and v.strip():
            return v
    return None


def webhook_type(payload: Dict[str, Any]) -> str:
    return str(payload.get("typeWebhook") or "")


def extract_text(message_data: Dict[str, Any]) -> Optional[str]:
    md = message_data or {}
    t = (md.get("typeMessage") or "").strip()
    if t not in TEXT_TYPES:
        return None

    text = _first_present_text(
        (md.get("textMessageData") or {}).get("textMessage"),
        (md.get("extendedTextMessageData") or {}).get("text"),
    )
    if text is None:
        for k in ("imageMessageData", "videoMessageData", "fileMessageData"):
            text = _first_present_text((md.get(k) or {}).get("caption"))
            if text:
                break
    return text


def parse_webhook(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """None for anything that is not an incoming message with a chat id."""
    if webhook_type(payload) != INCOMING_MESSAGE:
        return None

    sender = payload.get("senderData") or {}
    chat_id = sender.get("chatId")
    if not chat_id:
        return None

    timestamp = payload.get("timestamp")
    return InboundMessage(
        sender_id=chat_id.split("@", 1)[0],
        text=extract_text(payload.get("messageData") or {}) or "",
        is_group_chat=chat_id.endswith("@g.us"),
        chat_id=chat_id,
        message_id=payload.get("idMessage"),
        sender_name=sender.get("senderName") or sender.get("chatName"),
        timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else None,
    )


def should_forward(msg: InboundMessage) -> bool:
    """Group chats and empty/media-only messages never reach the agent."""
    if msg.is_group_chat:
        return False
    return bool(msg.text.strip())


def is_duplicate(msg: InboundMessage, cache: IdempotencyCache) -> bool:
    if not msg.message_id:
        return False
    return cache.check_and_mark(f"{INCOMING_MESSAGE.lower()}:{msg.message_id}")
