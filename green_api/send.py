import logging

import requests

logger = logging.getLogger(__name__)


def to_chat_id(recipient: str) -> str:
    """'2547...' or '+254 7..' -> '2547...@c.us'. Full chat ids pass through."""
    if "@" in recipient:
        return recipient
    digits = "".join(ch for ch in recipient if ch.isdigit())
    if not digits:
        raise ValueError(f"Invalid recipient: {recipient!r}")
    return f"{digits}@c.us"


def send_message(
    api_url: str,
    id_instance: str,
    api_token_instance: str,
    chat_id: str,
    message: str,
    timeout: float = 15.0,
) -> str:
    """
    Returns idMessage on success.
    Raises HTTPError on non-2xx or ValueError on empty id.
    """
    if api_token_instance.startswith("gac."):
        raise ValueError("Use apiTokenInstance (per-instance), not partner token (gac.*)")

    url = f"{api_url.rstrip('/')}/waInstance{id_instance}/sendMessage/{api_token_instance}"
    payload = {"chatId": to_chat_id(chat_id), "message": message}

    logger.info("send_message chat=%s len=%d", payload["chatId"], len(message))
    r = requests.post(url, json=payload, timeout=timeout)
    r.raise_for_status()
    data = r.json() if r.content else {}
    msg_id = data.get("idMessage")
    if not msg_id:
        raise ValueError(f"Missing idMessage in response: {data}")
    return msg_id
