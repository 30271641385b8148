# shared/tavily_search.py
import logging
from typing import Optional

from tavily import TavilyClient

from models.search import SearchRequest, SearchResponse
from shared.config import Settings

logger = logging.getLogger(__name__)

HOTEL_DOMAINS = ["booking.com", "hotels.com", "expedia.com", "airbnb.com"]
FLIGHT_DOMAINS = ["kayak.com", "expedia.com", "skyscanner.com", "google.com"]
RESTAURANT_DOMAINS = ["yelp.com", "tripadvisor.com", "zomato.com", "opentable.com"]
PRODUCT_DOMAINS = ["amazon.com", "ebay.com", "walmart.com", "target.com"]


class SearchError(RuntimeError):
    pass


def _require(value: Optional[str], what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{what} is required and cannot be empty")
    return value


class SearchService:
    """Tavily web search plus the category query builders."""

    def __init__(self, client: TavilyClient, timeout: int = Settings.search_timeout_seconds):
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchService":
        return cls(TavilyClient(api_key=settings.tavily_api_key), timeout=settings.search_timeout_seconds)

    def search(self, request: SearchRequest) -> SearchResponse:
        logger.debug("Searching for: %s", request.query)
        try:
            data = self.client.search(
                request.query,
                search_depth=request.search_depth,
                max_results=request.max_results,
                include_domains=request.include_domains,
                exclude_domains=request.exclude_domains,
                include_answer=request.include_answer,
                include_images=request.include_images,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error("Error performing search: %s", e)
            raise SearchError(f"Tavily search error: {e}") from e

        data = data or {}
        return SearchResponse(
            query=data.get("query") or request.query,
            answer=data.get("answer"),
            response_time=data.get("response_time"),
            results=data.get("results") or [],
            images=[i if isinstance(i, str) else i.get("url", "") for i in (data.get("images") or [])],
        )

    def search_hotels(
        self, location: Optional[str], check_in: Optional[str] = None, check_out: Optional[str] = None
    ) -> SearchResponse:
        query = f"hotels in {_require(location, 'Hotel location')}"
        if check_in:
            query += f" check-in {check_in}"
        if check_out:
            query += f" check-out {check_out}"
        return self.search(SearchRequest(
            query=query,
            search_depth="advanced",
            max_results=10,
            include_domains=HOTEL_DOMAINS,
        ))

    def search_flights(
        self, origin: Optional[str], destination: Optional[str], departure_date: Optional[str] = None
    ) -> SearchResponse:
        destination = _require(destination, "Flight destination")
        origin = (origin or "").strip()
        query = f"flights from {origin} to {destination}" if origin else f"flights to {destination}"
        if departure_date:
            query += f" on {departure_date}"
        return self.search(SearchRequest(
            query=query,
            search_depth="advanced",
            max_results=10,
            include_domains=FLIGHT_DOMAINS,
        ))

    def search_restaurants(self, location: Optional[str], cuisine: Optional[str] = None) -> SearchResponse:
        location = _require(location, "Restaurant location")
        query = f"{cuisine or ''} restaurants in {location}".strip()
        return self.search(SearchRequest(
            query=query,
            search_depth="basic",
            max_results=8,
            include_domains=RESTAURANT_DOMAINS,
        ))

    def search_products(self, product_name: Optional[str], budget: Optional[str] = None) -> SearchResponse:
        query = _require(product_name, "Product name")
        if budget:
            query += f" under {budget}"
        return self.search(SearchRequest(
            query=query,
            search_depth="basic",
            max_results=10,
            include_domains=PRODUCT_DOMAINS,
        ))
