from langgraph.graph import StateGraph, END

from agent.concierge.nodes.execute_tools_node import make_execute_tools_node
from agent.concierge.nodes.ingest_node import make_ingest_node
from agent.concierge.nodes.persist_node import make_persist_node
from agent.concierge.nodes.responder_llm_node import make_synthesize_node
from agent.concierge.nodes.select_tools_node import make_select_tools_node
from agent.concierge.state import ConciergeState
from agent.concierge.tools import ToolRegistry
from shared.completion import CompletionService
from shared.profile import ProfileService


# -------------------------------
# Build the graph
# -------------------------------
def build_concierge_app(
    completion: CompletionService,
    profiles: ProfileService,
    registry: ToolRegistry,
    history_turns: int = 3,
):
    if not registry.frozen:
        raise ValueError("Tool registry must be frozen before building the agent")

    builder = StateGraph(ConciergeState)

    # Nodes
    builder.add_node("ingest", make_ingest_node(profiles, history_turns))
    builder.add_node("select_tools", make_select_tools_node(completion, registry))
    builder.add_node("execute_tools", make_execute_tools_node(completion, registry))
    builder.add_node("synthesize", make_synthesize_node(completion, profiles))
    builder.add_node("persist", make_persist_node(profiles))

    # Strictly sequential: profile before search, one aggregation point
    builder.set_entry_point("ingest")
    builder.add_edge("ingest", "select_tools")
    builder.add_edge("select_tools", "execute_tools")
    builder.add_edge("execute_tools", "synthesize")
    builder.add_edge("synthesize", "persist")
    builder.add_edge("persist", END)

    return builder.compile()
