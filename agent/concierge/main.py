# agent/concierge/main.py
import logging
from typing import Optional

from langfuse import observe

from agent.concierge.graph import build_concierge_app
from agent.concierge.tools import ToolRegistry
from models.agent import AgentResponse
from observability.obs import instrument_io
from observability.telemetry import set_trace_identity
from shared.completion import CompletionService
from shared.profile import ProfileService

logger = logging.getLogger(__name__)


class ConciergeAgent:
    """Runs one message end to end: ingest, select, execute, synthesize, persist."""

    def __init__(
        self,
        completion: CompletionService,
        profiles: ProfileService,
        registry: ToolRegistry,
        history_turns: int = 3,
    ):
        self.completion = completion
        self.profiles = profiles
        self.registry = registry
        self.app = build_concierge_app(completion, profiles, registry, history_turns)

    @observe(name="user-input", capture_input=False)  # root trace for this request
    @instrument_io(
        name="run_agent_prompt",
        meta={"agent": "concierge", "operation": "run_agent_prompt"},
        input_fn=lambda self, user_message, user_id: {"user_id": user_id, "user_message": user_message},
        output_fn=lambda result: result,
        redact=True,
    )
    def run_agent_prompt(self, user_message: str, user_id: str) -> AgentResponse:
        set_trace_identity(user_id, tags=["concierge"])
        state = self.app.invoke({"user_id": user_id, "input_text": user_message})
        response: Optional[AgentResponse] = state.get("response")
        if response is None:
            raise RuntimeError("Agent pipeline finished without a response")
        logger.info(
            "Replied to %s (confidence=%.2f, tools=%s)",
            user_id, response.confidence, ",".join(response.tools_used) or "-",
        )
        return response

    def process_complex_query(self, query: str, user_id: str) -> AgentResponse:
        return self.run_agent_prompt(query, user_id)

    def handle_follow_up_question(self, question: str, user_id: str) -> AgentResponse:
        # history already carries the previous turns
        return self.run_agent_prompt(question, user_id)
