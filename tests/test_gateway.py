from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from green_api.gateway import GatewayError, GatewayNotReadyError, GreenApiGateway
from green_api.send import send_message


def resp(code=200, data=None):
    return SimpleNamespace(code=code, data=data or {}, error=None if code == 200 else "failed")


@pytest.fixture
def client():
    c = MagicMock()
    c.account.getStateInstance.return_value = resp(data={"stateInstance": "authorized"})
    return c


@pytest.fixture
def sender():
    return MagicMock(return_value="BAE5000000000001")


@pytest.fixture
def gateway(client, sender):
    return GreenApiGateway(
        client,
        api_url="https://api.green-api.com",
        id_instance="1101000001",
        api_token="token",
        sender=sender,
    )


def test_not_ready_delivery_fails_without_raising(gateway, sender):
    assert gateway.is_ready is False

    result = gateway.deliver("254712345678", "hello")

    assert result.ok is False
    assert "not ready" in result.error
    assert gateway.is_ready is False
    sender.assert_not_called()


def test_refresh_state_and_deliver(gateway, sender):
    assert gateway.refresh_state() is True

    result = gateway.deliver("254712345678", "hello")

    assert result.ok is True
    assert result.message_id == "BAE5000000000001"
    sender.assert_called_once_with(
        "https://api.green-api.com", "1101000001", "token", "254712345678@c.us", "hello"
    )


def test_connection_error_flips_readiness(gateway, sender):
    gateway.apply_state("authorized")
    sender.side_effect = requests.ConnectionError("connection reset")

    result = gateway.deliver("254712345678", "hello")

    assert result.ok is False
    assert gateway.is_ready is False
    assert "connection reset" in gateway.last_error


def test_http_error_keeps_readiness(gateway, sender):
    gateway.apply_state("authorized")
    sender.side_effect = requests.HTTPError("400 Bad Request")

    assert gateway.deliver("254712345678", "hello").ok is False
    assert gateway.is_ready is True


def test_send_to_contact_raises_when_not_ready(gateway):
    with pytest.raises(GatewayNotReadyError):
        gateway.send_to_contact("254712345678", "hi")


def test_state_change_webhook(gateway):
    assert gateway.apply_state("authorized") is True
    assert gateway.apply_state("notAuthorized") is False
    assert gateway.state == "notAuthorized"


def test_refresh_state_failure(gateway, client):
    client.account.getStateInstance.return_value = resp(code=None)
    assert gateway.refresh_state() is False
    assert gateway.last_error


@pytest.mark.parametrize(
    "state, expected",
    [("authorized", "ready"), ("notAuthorized", "waiting_for_qr_scan"), ("starting", "not_ready")],
)
def test_test_connection(gateway, client, state, expected):
    client.account.getStateInstance.return_value = resp(data={"stateInstance": state})
    assert gateway.test_connection() == expected


def test_test_connection_error(gateway, client):
    client.account.getStateInstance.side_effect = requests.ConnectionError("dns")
    assert gateway.test_connection() == "error"


def test_qr_code(gateway, client):
    client.account.qr.return_value = resp(data={"type": "qrCode", "message": "iVBORw0KGgo="})
    assert gateway.get_qr_code() == "iVBORw0KGgo="

    client.account.qr.return_value = resp(data={"type": "alreadyLogged", "message": "instance account already authorized"})
    assert gateway.get_qr_code() is None
    assert gateway.is_ready is True


def test_client_info(gateway, client):
    assert gateway.get_client_info()["ready"] is False

    gateway.apply_state("authorized")
    client.account.getSettings.return_value = resp(data={"wid": "254700000000@c.us"})
    info = gateway.get_client_info()
    assert info["phone"] == "254700000000"


def test_restart(gateway, client):
    gateway.apply_state("authorized")
    client.account.reboot.return_value = resp(data={"isReboot": True})

    gateway.restart()

    assert gateway.is_ready is False
    client.account.reboot.return_value = resp(code=500)
    with pytest.raises(GatewayError):
        gateway.restart()


def test_send_message_posts_text_only(monkeypatch):
    post = MagicMock()
    post.return_value.content = b'{"idMessage": "BAE5000000000002"}'
    post.return_value.json.return_value = {"idMessage": "BAE5000000000002"}
    monkeypatch.setattr("green_api.send.requests.post", post)

    msg_id = send_message("https://api.green-api.com/", "1101000001", "token", "+254 712 345678", "hello")

    assert msg_id == "BAE5000000000002"
    assert post.call_args.args[0] == "https://api.green-api.com/waInstance1101000001/sendMessage/token"
    assert post.call_args.kwargs["json"] == {"chatId": "254712345678@c.us", "message": "hello"}


def test_send_message_rejects_partner_token():
    with pytest.raises(ValueError):
        send_message("https://api.green-api.com", "1101000001", "gac.abc", "254712345678", "hello")
