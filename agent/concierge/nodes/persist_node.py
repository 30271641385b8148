from typing import Callable

from agent.concierge.state import ConciergeState
from observability.obs import span_step
from shared.profile import ProfileService


def make_persist_node(profiles: ProfileService) -> Callable[[ConciergeState], ConciergeState]:
    def persist(state: ConciergeState) -> ConciergeState:
        with span_step("persist", kind="node", node="persist"):
            context = state["context"]
            profiles.add_conversation_entry(
                context.user_id, context.user_message, state["response"].message
            )
            return state

    return persist
