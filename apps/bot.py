import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from agent.concierge.main import ConciergeAgent
from agent.concierge.tool_registry import build_tool_registry
from dedupe.cache import IdempotencyCache
from green_api.gateway import GreenApiGateway
from green_api.router import bot_router
from shared.completion import CompletionService
from shared.config import Settings, load_settings
from shared.message_worker import _queue_worker, wait_or_stop
from shared.profile import ProfileService
from shared.tavily_search import SearchService
from store.profile_store import FirestoreProfileStore, JsonProfileStore, ProfileStore

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@dataclass
class Components:
    settings: Settings
    agent: Any
    gateway: Any


def build_profile_store(settings: Settings) -> ProfileStore:
    if settings.profile_backend == "firestore":
        from db.base import get_db
        return FirestoreProfileStore(get_db(), settings.firestore_collection)
    return JsonProfileStore(settings.profiles_dir)


def build_components(settings: Settings) -> Components:
    profiles = ProfileService(build_profile_store(settings))
    completion = CompletionService.from_settings(settings)
    search = SearchService.from_settings(settings)
    registry = build_tool_registry(search, profiles)
    agent = ConciergeAgent(completion, profiles, registry, history_turns=settings.history_turns)
    gateway = GreenApiGateway.from_settings(settings)
    return Components(settings=settings, agent=agent, gateway=gateway)


async def gateway_poll_loop(stop_event: asyncio.Event, gateway: GreenApiGateway, interval: float):
    """Keeps the readiness flag fresh in case a stateInstanceChanged webhook is missed."""
    while not stop_event.is_set():
        # Sleep, but wake up early if we're asked to stop
        await wait_or_stop(stop_event, interval)
        if stop_event.is_set():
            break
        try:
            await asyncio.to_thread(gateway.refresh_state)
        except Exception:
            logger.exception("Gateway poll error")


def create_app(components: Optional[Components] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        comps = components or build_components(load_settings())
        stop_event = asyncio.Event()

        app.state.gateway = comps.gateway
        app.state.agent = comps.agent
        app.state.webhook_token = comps.settings.green_webhook_token
        app.state.queue = deque()
        app.state.dedupe = IdempotencyCache(ttl_seconds=24 * 3600)

        # initial state so readiness is known before the first request
        await asyncio.to_thread(comps.gateway.refresh_state)

        worker_task = asyncio.create_task(
            _queue_worker(stop_event, comps.agent, comps.gateway, app.state.queue), name="queue_worker"
        )
        poll_task = asyncio.create_task(
            gateway_poll_loop(stop_event, comps.gateway, comps.settings.gateway_poll_seconds),
            name="gateway_poll_loop",
        )
        tasks = (worker_task, poll_task)

        try:
            yield
        finally:
            # Cooperative shutdown
            stop_event.set()
            # Give them a moment to exit gracefully
            try:
                await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=2.0)
            except asyncio.TimeoutError:
                # Fallback: force-cancel any stragglers
                for t in tasks:
                    if not t.done():
                        t.cancel()
                for t in tasks:
                    with suppress(asyncio.CancelledError):
                        await t

    app = FastAPI(lifespan=lifespan)
    app.include_router(bot_router)  # webhook + bot management

    @app.get("/")
    def health_check():
        return JSONResponse(content={"status": "ok"}, status_code=200)

    @app.head("/")
    def head_root():
        return Response(status_code=200)

    return app


# uvicorn apps.bot:app
app = create_app()
