import pytest

from agent.concierge.tools import ToolName
from models.agent import AgentContext
from models.profile import UserProfile
from shared.tavily_search import (
    FLIGHT_DOMAINS,
    HOTEL_DOMAINS,
    PRODUCT_DOMAINS,
    RESTAURANT_DOMAINS,
    SearchError,
)


def _ctx(city=None) -> AgentContext:
    return AgentContext(
        user_id="u1",
        user_message="irrelevant",
        user_profile=UserProfile(user_id="u1", city=city),
    )


def _search_kwargs(tavily_client):
    args, kwargs = tavily_client.search.call_args
    return args[0], kwargs


# ---------------------------------------------------------------------------
# search service
# ---------------------------------------------------------------------------

def test_search_maps_response(search_service, tavily_client):
    response = search_service.search_hotels("Mombasa", "2026-12-01")

    query, kwargs = _search_kwargs(tavily_client)
    assert query == "hotels in Mombasa check-in 2026-12-01"
    assert kwargs["search_depth"] == "advanced"
    assert kwargs["max_results"] == 10
    assert kwargs["include_domains"] == HOTEL_DOMAINS
    assert kwargs["timeout"] == 5
    assert len(response.results) == 3
    assert response.results[0].title == "Serena Beach Resort"


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.search_hotels(""),
        lambda s: s.search_flights("Nairobi", "  "),
        lambda s: s.search_restaurants(None),
        lambda s: s.search_products(""),
    ],
)
def test_builders_fail_fast_without_network(search_service, tavily_client, call):
    with pytest.raises(ValueError):
        call(search_service)
    tavily_client.search.assert_not_called()


def test_flights_without_origin(search_service, tavily_client):
    search_service.search_flights(None, "Zanzibar", "Friday")
    query, kwargs = _search_kwargs(tavily_client)
    assert query == "flights to Zanzibar on Friday"
    assert kwargs["include_domains"] == FLIGHT_DOMAINS


def test_products_query_includes_budget(search_service, tavily_client):
    search_service.search_products("wireless earbuds", "$50")
    query, kwargs = _search_kwargs(tavily_client)
    assert query == "wireless earbuds under $50"
    assert kwargs["search_depth"] == "basic"
    assert kwargs["include_domains"] == PRODUCT_DOMAINS


def test_tavily_failure_becomes_search_error(search_service, tavily_client):
    tavily_client.search.side_effect = RuntimeError("quota exceeded")
    with pytest.raises(SearchError):
        search_service.search_products("phone")


# ---------------------------------------------------------------------------
# search tool dispatch
# ---------------------------------------------------------------------------

def test_search_tool_dispatches_restaurants(registry, tavily_client):
    tool = registry.get(ToolName.SEARCH)
    result = tool.fn({"query": "italian", "category": "restaurants", "location": "Nairobi", "cuisine": "Italian"}, _ctx())

    query, kwargs = _search_kwargs(tavily_client)
    assert query == "Italian restaurants in Nairobi"
    assert kwargs["max_results"] == 8
    assert kwargs["include_domains"] == RESTAURANT_DOMAINS
    assert result["results"][0]["url"] == "https://booking.com/serena"


def test_search_tool_uses_profile_city_for_hotels(registry, tavily_client):
    registry.get("search").fn({"query": "a hotel", "category": "hotels"}, _ctx(city="Kisumu"))
    query, _ = _search_kwargs(tavily_client)
    assert query == "hotels in Kisumu"


def test_search_tool_hotels_without_location_fails(registry, tavily_client):
    with pytest.raises(ValueError):
        registry.get("search").fn({"query": "a hotel", "category": "hotels"}, _ctx())
    tavily_client.search.assert_not_called()


def test_search_tool_general_search(registry, tavily_client):
    registry.get("search").fn({"query": "history of Lamu", "category": "general"}, _ctx())
    query, kwargs = _search_kwargs(tavily_client)
    assert query == "history of Lamu"
    assert kwargs["max_results"] == 5
    assert kwargs["include_domains"] == []


def test_search_tool_requires_query(registry, tavily_client):
    with pytest.raises(ValueError):
        registry.get("search").fn({"query": "  ", "category": "general"}, _ctx())
    tavily_client.search.assert_not_called()
