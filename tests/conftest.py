"""Shared fixtures: fake completion service, mocked Tavily client, temp JSON profile store."""
import os

# tracing off before observability is imported
os.environ.setdefault("LANGFUSE_TRACING_ENABLED", "false")

from typing import Dict, List, Optional, Union
from unittest.mock import MagicMock

import pytest

from agent.concierge.main import ConciergeAgent
from agent.concierge.tool_registry import build_tool_registry
from shared.completion import CompletionError
from shared.profile import ProfileService
from shared.tavily_search import SearchService
from store.profile_store import JsonProfileStore

Reply = Union[str, Exception]

SELECTION_MARKER = "tool selection assistant"
EXTRACTION_MARKER = "Extract search parameters"


class FakeCompletion:
    """Stands in for CompletionService. Picks the canned reply by prompt kind."""

    model = "fake-model"

    def __init__(
        self,
        selection: Reply = '["profile", "search"]',
        extraction: Reply = '{"query": "hotels in Mombasa", "category": "hotels", "location": "Mombasa"}',
        response: Reply = "Here are some great hotels in Mombasa! 🏨",
    ):
        self.replies: Dict[str, Reply] = {
            "selection": selection,
            "extraction": extraction,
            "response": response,
        }
        self.calls: List[str] = []

    def generate_system_prompt_completion(
        self, system_prompt: str, user_message: str, *, max_tokens: Optional[int] = None
    ) -> str:
        if SELECTION_MARKER in system_prompt:
            kind = "selection"
        elif EXTRACTION_MARKER in system_prompt:
            kind = "extraction"
        else:
            kind = "response"
        self.calls.append(kind)
        reply = self.replies[kind]
        if isinstance(reply, Exception):
            raise reply
        return reply


TAVILY_HOTELS = {
    "query": "hotels in Mombasa",
    "answer": "Mombasa has many beach hotels.",
    "response_time": 0.42,
    "results": [
        {"title": "Serena Beach Resort", "url": "https://booking.com/serena", "content": "Beachfront", "score": 0.93},
        {"title": "Voyager Beach Resort", "url": "https://expedia.com/voyager", "content": "All inclusive", "score": 0.88},
        {"title": "PrideInn Paradise", "url": "https://hotels.com/prideinn", "content": "Family friendly", "score": 0.81},
    ],
    "images": [],
}


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def failing_completion() -> FakeCompletion:
    err = CompletionError("Completion API error: boom")
    return FakeCompletion(selection=err, extraction=err, response=err)


@pytest.fixture
def tavily_client() -> MagicMock:
    client = MagicMock()
    client.search.return_value = TAVILY_HOTELS
    return client


@pytest.fixture
def search_service(tavily_client) -> SearchService:
    return SearchService(tavily_client, timeout=5)


@pytest.fixture
def profile_store(tmp_path) -> JsonProfileStore:
    return JsonProfileStore(str(tmp_path / "profiles"))


@pytest.fixture
def profiles(profile_store) -> ProfileService:
    return ProfileService(profile_store)


@pytest.fixture
def registry(search_service, profiles):
    return build_tool_registry(search_service, profiles)


@pytest.fixture
def make_agent(profiles, registry):
    def _make(completion) -> ConciergeAgent:
        return ConciergeAgent(completion, profiles, registry, history_turns=3)
    return _make


@pytest.fixture
def make_completion():
    return FakeCompletion
