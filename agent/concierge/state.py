# state.py
from typing import Any, Dict, List, Optional, TypedDict

from models.agent import AgentContext, AgentResponse


class ConciergeState(TypedDict, total=False):
    user_id: str
    input_text: str

    # built by ingest
    context: AgentContext

    # tool selection output
    selected_tools: List[str]

    # name -> result or error descriptor
    tool_results: Dict[str, Any]

    # synthesis output
    response: Optional[AgentResponse]
