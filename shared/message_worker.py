import asyncio
import logging
from collections import deque
from typing import Protocol

from models.agent import AgentResponse
from models.inbound import DeliveryResult, InboundMessage

logger = logging.getLogger(__name__)

ERROR_REPLY = "I'm sorry, I'm having trouble right now. Please try again in a moment. 🤖"


class Agent(Protocol):
    def run_agent_prompt(self, user_message: str, user_id: str) -> AgentResponse: ...


class Gateway(Protocol):
    def deliver(self, sender_id: str, text: str) -> DeliveryResult: ...


def enqueue_message(msg: InboundMessage, queue: deque) -> None:
    queue.append(msg)


async def wait_or_stop(stop_event: asyncio.Event, timeout: float) -> None:
    if stop_event.is_set():
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        # timed out: just continue the loop
        pass


async def process_message(msg: InboundMessage, agent: Agent, gateway: Gateway) -> DeliveryResult:
    """Run the agent for one message and deliver the reply (or the generic error reply)."""
    try:
        # the agent is blocking (HTTP calls, file I/O)
        response = await asyncio.to_thread(agent.run_agent_prompt, msg.text, msg.sender_id)
        reply = response.message
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Worker: agent failed for message %s from %s", msg.message_id or "<unknown>", msg.sender_id)
        reply = ERROR_REPLY

    result = await asyncio.to_thread(gateway.deliver, msg.sender_id, reply)
    if not result.ok:
        logger.warning("Worker: reply to %s not delivered: %s", msg.sender_id, result.error)
    return result


async def _queue_worker(
    stop_event: asyncio.Event,
    agent: Agent,
    gateway: Gateway,
    queue: deque,
):
    while not stop_event.is_set():
        try:
            if not queue:
                await wait_or_stop(stop_event, 0.05)  # idle wait; interruptible
                continue

            try:
                msg = queue.popleft()
            except IndexError:
                # Race: queue became empty between check and pop
                await wait_or_stop(stop_event, 0.01)
                continue

            logger.info("WRK in mid=%s from=%s text=%s", msg.message_id, msg.sender_id, msg.text[:120])
            await process_message(msg, agent, gateway)

        except asyncio.CancelledError:
            logger.info("Queue worker cancelled; shutting down.")
            break
        except Exception:
            logger.exception("Worker loop error")
            await wait_or_stop(stop_event, 2)  # brief, interruptible backoff
