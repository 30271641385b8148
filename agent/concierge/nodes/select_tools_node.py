import logging
from typing import Callable, List

from agent.concierge.parsing import DEFAULT_TOOLS, parse_tool_selection
from agent.concierge.prompts import build_tool_selection_prompt
from agent.concierge.state import ConciergeState
from agent.concierge.tools import ToolRegistry, build_tools_reference
from observability.obs import span_step, safe_update_current_span_io
from shared.completion import CompletionError, CompletionService

logger = logging.getLogger(__name__)


def determine_required_tools(
    completion: CompletionService,
    user_message: str,
    registry: ToolRegistry,
) -> List[str]:
    """Ask the model which tools to run. Any failure yields the default list, no retry."""
    prompt = build_tool_selection_prompt(user_message, build_tools_reference(registry))
    try:
        with span_step(
            "llm.select_tools",
            kind="llm",
            as_type="generation",
            model=completion.model,
            node="select_tools",
        ):
            raw = completion.generate_system_prompt_completion(prompt, user_message)
            safe_update_current_span_io(output={"raw": raw})
        return parse_tool_selection(raw)
    except (CompletionError, ValueError) as e:
        logger.warning("Tool selection failed, using defaults %s: %s", list(DEFAULT_TOOLS), e)
        return list(DEFAULT_TOOLS)


def make_select_tools_node(
    completion: CompletionService,
    registry: ToolRegistry,
) -> Callable[[ConciergeState], ConciergeState]:
    def select_tools(state: ConciergeState) -> ConciergeState:
        with span_step("select_tools", kind="node", node="select_tools"):
            tools = determine_required_tools(completion, state.get("input_text") or "", registry)
            logger.debug("Required tools: %s", ", ".join(tools))
            state["selected_tools"] = tools
            safe_update_current_span_io(output={"selected_tools": tools})
            return state

    return select_tools
