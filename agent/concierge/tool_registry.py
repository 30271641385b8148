from agent.concierge.tools import ToolName, ToolRegistry, ToolSpec
from models.agent import ProfileToolArgs, SearchParams
from shared.profile import ProfileService
from shared.tavily_search import SearchService
from tools.profile import PROFILE_DESCRIPTION, make_profile_tool
from tools.search import SEARCH_DESCRIPTION, make_search_tool


def build_tool_registry(search: SearchService, profiles: ProfileService) -> ToolRegistry:
    """The two shipped tools, frozen. Built once at startup and passed to the agent."""
    registry = ToolRegistry()
    registry.register(ToolSpec(
        name=ToolName.SEARCH,
        fn=make_search_tool(search),
        args_model=SearchParams,
        description=SEARCH_DESCRIPTION,
    ))
    registry.register(ToolSpec(
        name=ToolName.PROFILE,
        fn=make_profile_tool(profiles),
        args_model=ProfileToolArgs,
        description=PROFILE_DESCRIPTION,
    ))
    return registry.freeze()
