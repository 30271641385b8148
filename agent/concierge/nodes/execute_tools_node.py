import logging
from typing import Any, Callable, Dict, List

from agent.concierge.parsing import heuristic_search_params, parse_search_params
from agent.concierge.prompts import SEARCH_FALLBACK_MESSAGE, build_search_params_prompt
from agent.concierge.state import ConciergeState
from agent.concierge.tools import ToolName, ToolRegistry, resolve_tool_name
from models.agent import AgentContext, ProfileToolArgs, SearchParams
from observability.obs import span_step, safe_update_current_span_io
from shared.completion import CompletionError, CompletionService
from store.profile_store import ProfileStoreError

logger = logging.getLogger(__name__)


def generate_search_params(completion: CompletionService, user_message: str) -> SearchParams:
    """Model extraction first, keyword heuristic on any failure. Empty input never calls the model."""
    if not (user_message or "").strip():
        return heuristic_search_params(user_message)

    try:
        with span_step(
            "llm.search_params",
            kind="llm",
            as_type="generation",
            model=completion.model,
            node="execute_tools",
        ):
            raw = completion.generate_system_prompt_completion(
                build_search_params_prompt(user_message), user_message
            )
            safe_update_current_span_io(output={"raw": raw})
        return parse_search_params(raw)
    except (CompletionError, ValueError) as e:
        logger.warning("Search parameter extraction failed, using heuristic: %s", e)
        return heuristic_search_params(user_message)


def build_tool_params(
    tool: ToolName,
    completion: CompletionService,
    context: AgentContext,
) -> Dict[str, Any]:
    if tool is ToolName.SEARCH:
        return generate_search_params(completion, context.user_message).model_dump(
            mode="json", exclude_none=True
        )
    if tool is ToolName.PROFILE:
        return ProfileToolArgs(action="get").model_dump(exclude_none=True)
    raise AssertionError(f"No parameter builder for tool {tool!r}")


def execute_tools_in_sequence(
    tool_names: List[str],
    context: AgentContext,
    registry: ToolRegistry,
    completion: CompletionService,
) -> Dict[str, Any]:
    results: Dict[str, Any] = {}

    for name in tool_names:
        tool = resolve_tool_name(name)
        spec = registry.get(tool) if tool is not None else None
        if spec is None:
            logger.warning("Unknown tool %r selected, skipping", name)
            continue

        try:
            with span_step(
                f"tool.{tool.value}",
                kind="tool",
                tool=tool.value,
                node="execute_tools",
            ):
                params = build_tool_params(tool, completion, context)
                safe_update_current_span_io(input={"params": params}, redact=True)
                result = spec.fn(params, context)
            results[tool.value] = result
        except ProfileStoreError:
            raise
        except Exception as e:
            logger.error("Error executing tool %s: %s", tool.value, e)
            if tool is ToolName.SEARCH:
                results[tool.value] = {"error": str(e), "fallback_message": SEARCH_FALLBACK_MESSAGE}
            else:
                results[tool.value] = {"error": str(e)}

    return results


def make_execute_tools_node(
    completion: CompletionService,
    registry: ToolRegistry,
) -> Callable[[ConciergeState], ConciergeState]:
    def execute_tools(state: ConciergeState) -> ConciergeState:
        selected = state.get("selected_tools") or []
        with span_step("execute_tools", kind="node", node="execute_tools", tool_count=len(selected)):
            state["tool_results"] = execute_tools_in_sequence(
                selected, state["context"], registry, completion
            )
            return state

    return execute_tools
