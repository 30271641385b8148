import logging
from typing import Callable

from agent.concierge.state import ConciergeState
from models.agent import AgentContext
from observability.obs import span_step, safe_update_current_span_io
from shared.profile import ProfileService, render_conversation_context

logger = logging.getLogger(__name__)


def make_ingest_node(
    profiles: ProfileService,
    history_turns: int = 3,
) -> Callable[[ConciergeState], ConciergeState]:
    def ingest(state: ConciergeState) -> ConciergeState:
        with span_step("ingest", kind="node", node="ingest"):
            user_id = state.get("user_id")
            if not user_id:
                raise ValueError("ingest: state['user_id'] must be set before ingest")

            input_text = state.get("input_text") or ""
            logger.info("Processing message for user %s: %s", user_id, input_text)

            # ProfileStoreError propagates: a corrupt record fails the whole turn
            profile = profiles.get_profile(user_id)

            state["context"] = AgentContext(
                user_id=user_id,
                user_message=input_text,
                conversation_history=render_conversation_context(profile, history_turns),
                user_profile=profile,
            )
            state["tool_results"] = {}

            safe_update_current_span_io(
                input={"user_id": user_id, "history_turns": history_turns},
            )
            return state

    return ingest
