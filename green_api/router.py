# green_api/router.py
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from green_api.gateway import GatewayError, GatewayNotReadyError
from green_api.webhook import STATE_CHANGED, is_duplicate, parse_webhook, should_forward, webhook_type
from observability.obs import span_attrs
from observability.telemetry import mark_error
from shared.message_worker import enqueue_message

logger = logging.getLogger(__name__)

bot_router = APIRouter()

# Error codes
ERROR_UNAUTHORIZED = "UNAUTHORIZED"
ERROR_INVALID_PAYLOAD = "INVALID_PAYLOAD"
ERROR_NOT_READY = "WHATSAPP_NOT_READY"
ERROR_GATEWAY = "GATEWAY_ERROR"
ERROR_UNEXPECTED = "UNEXPECTED_ERROR"


def _err(status: int, code: str, message: str, extra: dict | None = None) -> JSONResponse:
    payload = {"ok": False, "error": {"code": code, "message": message}}
    if extra:
        payload["error"].update(extra)
    return JSONResponse(status_code=status, content=payload)


def _ok(data: dict) -> JSONResponse:
    return JSONResponse(status_code=200, content={"ok": True, "data": data})


class SendMessageBody(BaseModel):
    phone_number: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


def _check_bearer(req: Request, expected: str) -> Optional[JSONResponse]:
    if not expected:
        return None
    auth_header = req.headers.get("authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        return _err(401, ERROR_UNAUTHORIZED, "Missing or invalid Authorization header")
    if auth_header.split(" ", 1)[1] != expected:
        return _err(403, ERROR_UNAUTHORIZED, "Forbidden")
    return None


# -----------------------------------------------------------------------------
# Webhook
# -----------------------------------------------------------------------------
@bot_router.post("/green/webhook")
async def green_webhook(req: Request):
    state = req.app.state
    denied = _check_bearer(req, state.webhook_token)
    if denied is not None:
        return denied
    try:
        data = await req.json()
    except ValueError:
        return _err(400, ERROR_INVALID_PAYLOAD, "Invalid JSON payload")
    if not isinstance(data, dict):
        return _err(400, ERROR_INVALID_PAYLOAD, "Expected a JSON object")

    kind = webhook_type(data)
    if kind == STATE_CHANGED:
        ready = state.gateway.apply_state(data.get("stateInstance"))
        return _ok({"state": data.get("stateInstance"), "ready": ready})

    msg = parse_webhook(data)
    if msg is None:
        return _ok({"ignored": kind or "unknown"})
    if is_duplicate(msg, state.dedupe):
        return _ok({"duplicate": True})
    if not should_forward(msg):
        logger.info("Ignoring message %s from %s (group or no text)", msg.message_id, msg.chat_id)
        return _ok({"ignored": "filtered"})

    enqueue_message(msg, state.queue)
    return _ok({"queued": True, "chat_id": msg.chat_id, "message_id": msg.message_id})


# -----------------------------------------------------------------------------
# Bot management
# -----------------------------------------------------------------------------
@bot_router.get("/api/bot/status")
async def bot_status(req: Request):
    gateway = req.app.state.gateway
    return _ok({
        "ready": gateway.is_ready,
        "state": gateway.state,
        "last_error": gateway.last_error,
    })


@bot_router.get("/api/bot/info")
async def bot_info(req: Request):
    try:
        info = await asyncio.to_thread(req.app.state.gateway.get_client_info)
    except GatewayError as e:
        return _err(502, ERROR_GATEWAY, str(e))
    return _ok(info)


@bot_router.get("/api/bot/qr")
async def bot_qr(req: Request):
    gateway = req.app.state.gateway
    try:
        qr = await asyncio.to_thread(gateway.get_qr_code)
    except GatewayError as e:
        return _err(502, ERROR_GATEWAY, str(e))
    if qr is None:
        return _ok({"qr": None, "message": "No QR code available", "ready": gateway.is_ready})
    return _ok({"qr": qr, "ready": False})


@bot_router.post("/api/bot/send")
async def bot_send(req: Request):
    with span_attrs("green.send", operation="http", route="/api/bot/send") as span:
        try:
            body = SendMessageBody.model_validate(await req.json())
        except (ValueError, ValidationError) as e:
            return _err(400, ERROR_INVALID_PAYLOAD, "phone_number and message are required", {"detail": str(e)})

        try:
            message_id = await asyncio.to_thread(
                req.app.state.gateway.send_to_contact, body.phone_number, body.message
            )
        except GatewayNotReadyError as e:
            return _err(503, ERROR_NOT_READY, str(e))
        except Exception as e:
            mark_error(e, kind="GatewaySendError", span=span)
            logger.exception("Manual send to %s failed", body.phone_number)
            return _err(502, ERROR_GATEWAY, str(e))
        return _ok({"message_id": message_id})


@bot_router.post("/api/bot/restart")
async def bot_restart(req: Request):
    try:
        await asyncio.to_thread(req.app.state.gateway.restart)
    except GatewayError as e:
        return _err(502, ERROR_GATEWAY, str(e))
    return _ok({"restarting": True})


@bot_router.get("/api/bot/test")
async def bot_test(req: Request):
    status = await asyncio.to_thread(req.app.state.gateway.test_connection)
    return _ok({"status": status})
