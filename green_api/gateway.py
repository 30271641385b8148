# green_api/gateway.py
import logging
import threading
from typing import Any, Callable, Dict, Optional

import requests
from whatsapp_api_client_python import API

from green_api.send import send_message, to_chat_id
from models.inbound import DeliveryResult
from shared.config import Settings

logger = logging.getLogger(__name__)

STATE_AUTHORIZED = "authorized"
STATE_NOT_AUTHORIZED = "notAuthorized"


class GatewayNotReadyError(RuntimeError):
    pass


class GatewayError(RuntimeError):
    pass


def _data(resp: Any, what: str) -> Dict[str, Any]:
    """whatsapp_api_client_python responses carry .code/.data; anything but 200 is an error."""
    code = getattr(resp, "code", None)
    if code != 200:
        error = getattr(resp, "error", None) or getattr(resp, "data", None)
        raise GatewayError(f"{what} failed (code={code}): {error}")
    data = getattr(resp, "data", None)
    return data if isinstance(data, dict) else {}


class GreenApiGateway:
    """
    One Green API instance. Owns the readiness flag the rest of the app queries.

    Pairing, reconnects and session storage live on the Green API side; this
    class only observes the instance state and sends text.
    """

    def __init__(
        self,
        client: Any,
        *,
        api_url: str,
        id_instance: str,
        api_token: str,
        sender: Callable[..., str] = send_message,
    ):
        self.client = client
        self.api_url = api_url
        self.id_instance = id_instance
        self.api_token = api_token
        self._sender = sender
        self._lock = threading.Lock()
        self._ready = False
        self._state: Optional[str] = None
        self.last_error: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GreenApiGateway":
        client = API.GreenAPI(
            settings.green_id_instance,
            settings.green_api_token,
            host=settings.green_api_url,
        )
        return cls(
            client,
            api_url=settings.green_api_url,
            id_instance=settings.green_id_instance,
            api_token=settings.green_api_token,
        )

    # ---------------------------------------------------------------
    # readiness
    # ---------------------------------------------------------------
    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def state(self) -> Optional[str]:
        return self._state

    def apply_state(self, state: Optional[str]) -> bool:
        """Record an instance state (poll result or stateInstanceChanged webhook)."""
        with self._lock:
            was_ready = self._ready
            self._state = state
            self._ready = state == STATE_AUTHORIZED
            if self._ready:
                self.last_error = None
        if was_ready != self._ready:
            logger.info("WhatsApp gateway %s (state=%s)", "ready" if self._ready else "not ready", state)
        return self._ready

    def _mark_failed(self, error: str, *, disconnect: bool) -> None:
        with self._lock:
            self.last_error = error
            if disconnect:
                self._ready = False

    def refresh_state(self) -> bool:
        try:
            data = _data(self.client.account.getStateInstance(), "getStateInstance")
        except (GatewayError, requests.RequestException) as e:
            logger.warning("Failed to refresh WhatsApp state: %s", e)
            self._mark_failed(str(e), disconnect=True)
            return False
        return self.apply_state(data.get("stateInstance"))

    # ---------------------------------------------------------------
    # outbound
    # ---------------------------------------------------------------
    def send_to_contact(self, phone: str, text: str) -> str:
        """Send text, returns idMessage. Raises GatewayNotReadyError when not ready."""
        if not self._ready:
            raise GatewayNotReadyError("WhatsApp client is not ready")
        if not text or not text.strip():
            raise ValueError("Message text is required")

        chat_id = to_chat_id(phone)
        try:
            return self._sender(self.api_url, self.id_instance, self.api_token, chat_id, text)
        except (requests.ConnectionError, requests.Timeout) as e:
            self._mark_failed(str(e), disconnect=True)
            raise

    def deliver(self, sender_id: str, text: str) -> DeliveryResult:
        """Never raises; failures come back as DeliveryResult(ok=False)."""
        try:
            message_id = self.send_to_contact(sender_id, text)
        except GatewayNotReadyError as e:
            logger.warning("Dropping reply to %s: %s", sender_id, e)
            return DeliveryResult(ok=False, error=str(e))
        except (requests.RequestException, ValueError) as e:
            logger.error("Failed to deliver reply to %s: %s", sender_id, e)
            self._mark_failed(str(e), disconnect=False)
            return DeliveryResult(ok=False, error=str(e))
        logger.info("Reply sent to %s (id=%s)", sender_id, message_id)
        return DeliveryResult(ok=True, message_id=message_id)

    # ---------------------------------------------------------------
    # account
    # ---------------------------------------------------------------
    def get_client_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "ready": self._ready,
            "state": self._state,
            "id_instance": self.id_instance,
        }
        if not self._ready:
            return info
        data = _data(self.client.account.getSettings(), "getSettings")
        wid = data.get("wid") or ""
        info.update({"wid": wid, "phone": wid.split("@", 1)[0] or None})
        return info

    def get_qr_code(self) -> Optional[str]:
        """Base64 PNG while the instance waits for pairing, else None."""
        data = _data(self.client.account.qr(), "qr")
        if data.get("type") == "qrCode":
            return data.get("message")
        if data.get("type") == "alreadyLogged":
            self.apply_state(STATE_AUTHORIZED)
        return None

    def restart(self) -> None:
        _data(self.client.account.reboot(), "reboot")
        self.apply_state(None)
        logger.info("WhatsApp instance reboot requested")

    def test_connection(self) -> str:
        try:
            data = _data(self.client.account.getStateInstance(), "getStateInstance")
        except (GatewayError, requests.RequestException) as e:
            self._mark_failed(str(e), disconnect=True)
            return "error"

        state = data.get("stateInstance")
        self.apply_state(state)
        if state == STATE_AUTHORIZED:
            return "ready"
        if state == STATE_NOT_AUTHORIZED:
            return "waiting_for_qr_scan"
        return "not_ready"
