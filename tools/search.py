# tools/search.py
import logging
from typing import Any, Dict

from agent.concierge.tools import ToolFn
from models.agent import AgentContext, SearchCategory, SearchParams
from models.search import SearchRequest
from observability.telemetry import mark_error
from shared.tavily_search import SearchService

logger = logging.getLogger(__name__)

SEARCH_DESCRIPTION = "Use for finding hotels, flights, restaurants, products, or general information"


def _location_for(params: SearchParams, context: AgentContext) -> str:
    profile_city = context.user_profile.city if context.user_profile else None
    return params.location or params.destination or profile_city or ""


def make_search_tool(search: SearchService) -> ToolFn:
    def run_search(params: Dict[str, Any], context: AgentContext) -> Dict[str, Any]:
        query = params.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValueError("Search query is required and cannot be empty")

        p = SearchParams.model_validate(params)
        category = p.category or SearchCategory.GENERAL
        logger.debug("Executing search tool: %s - %s", category.value, p.query)

        try:
            if category is SearchCategory.HOTELS:
                response = search.search_hotels(_location_for(p, context), p.date)
            elif category is SearchCategory.FLIGHTS:
                response = search.search_flights(p.origin, p.destination, p.date)
            elif category is SearchCategory.RESTAURANTS:
                response = search.search_restaurants(_location_for(p, context), p.cuisine)
            elif category is SearchCategory.PRODUCTS:
                response = search.search_products(p.query, p.budget)
            else:
                response = search.search(SearchRequest(query=p.query, max_results=5))
        except Exception as e:
            mark_error(e, kind=f"ToolError.search.{category.value}")
            raise

        return response.model_dump(mode="json", exclude_none=True)

    return run_search
