import logging
from typing import Any, Callable, Dict

from agent.concierge.prompts import (
    GENERIC_APOLOGY,
    SEARCH_TROUBLE_MESSAGE,
    build_responder_prompt,
    compose_degraded_message,
)
from agent.concierge.state import ConciergeState
from agent.concierge.tools import ToolName
from models.agent import AgentContext, AgentResponse
from observability.obs import span_step, safe_update_current_span_io
from shared.completion import CompletionError, CompletionService
from shared.profile import ProfileService

logger = logging.getLogger(__name__)

CONFIDENCE_NORMAL = 0.85
CONFIDENCE_DEGRADED = 0.3
CONFIDENCE_FAILURE = 0.1


def _failed_search(tool_results: Dict[str, Any]) -> bool:
    result = tool_results.get(ToolName.SEARCH.value)
    return isinstance(result, dict) and "error" in result


def generate_final_response(
    completion: CompletionService,
    profiles: ProfileService,
    context: AgentContext,
    tool_results: Dict[str, Any],
) -> AgentResponse:
    if _failed_search(tool_results):
        logger.warning("Search tool failed, providing fallback response")
        fallback = tool_results[ToolName.SEARCH.value].get("fallback_message") or SEARCH_TROUBLE_MESSAGE
        return AgentResponse(
            message=compose_degraded_message(fallback),
            tools_used=list(tool_results),
            confidence=CONFIDENCE_DEGRADED,
        )

    # re-read so profile changes made by a tool this turn are visible
    profile_summary = (
        profiles.get_user_summary(profiles.get_profile(context.user_id))
        if context.user_profile is not None
        else "New user"
    )
    prompt = build_responder_prompt(
        user_message=context.user_message,
        profile_summary=profile_summary,
        conversation_history=context.conversation_history,
        tool_results=tool_results,
    )

    try:
        with span_step(
            "llm.respond",
            kind="llm",
            as_type="generation",
            model=completion.model,
            node="synthesize",
        ):
            message = completion.generate_system_prompt_completion(prompt, context.user_message).strip()
            if not message:
                raise CompletionError("Empty completion")
            safe_update_current_span_io(output={"message": message}, redact=True)
    except CompletionError as e:
        logger.error("Error generating final response: %s", e)
        return AgentResponse(message=GENERIC_APOLOGY, tools_used=[], confidence=CONFIDENCE_FAILURE)

    return AgentResponse(
        message=message,
        tools_used=list(tool_results),
        confidence=CONFIDENCE_NORMAL,
    )


def make_synthesize_node(
    completion: CompletionService,
    profiles: ProfileService,
) -> Callable[[ConciergeState], ConciergeState]:
    def synthesize(state: ConciergeState) -> ConciergeState:
        with span_step("synthesize", kind="node", node="synthesize"):
            response = generate_final_response(
                completion, profiles, state["context"], state.get("tool_results") or {}
            )
            state["response"] = response
            safe_update_current_span_io(
                output={"confidence": response.confidence, "tools_used": response.tools_used},
            )
            return state

    return synthesize
