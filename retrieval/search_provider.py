"""Search backends for evidence gathering."""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

import requests

from schemas.evidence import RecencyWindow, SearchResult, SourcePlatform

logger = logging.getLogger(__name__)

PLATFORM_DOMAINS = {
    "x.com": SourcePlatform.X,
    "twitter.com": SourcePlatform.X,
    "instagram.com": SourcePlatform.INSTAGRAM,
    "reddit.com": SourcePlatform.REDDIT,
    "youtube.com": SourcePlatform.YOUTUBE,
    "youtu.be": SourcePlatform.YOUTUBE,
}


def platform_for_url(url: str) -> SourcePlatform:
    """Tag a link with the social platform it belongs to, or web."""
    host = (urlparse(url).hostname or "").lower()
    for domain, platform in PLATFORM_DOMAINS.items():
        if host == domain or host.endswith("." + domain):
            return platform
    return SourcePlatform.WEB


class SearchProvider(ABC):
    """Abstract search backend."""

    @abstractmethod
    def search(
        self,
        query: str,
        num_results: int = 6,
        recency: Optional[RecencyWindow] = None,
        site_filter: Optional[list[str]] = None
    ) -> list[SearchResult]:
        """
        Search the backend.

        Must return an empty list when the backend has no results or fails.
        """
        pass


class SerpAPISearchProvider(SearchProvider):
    """
    Google results through SerpApi.

    Locale is fixed per instance (``gl``/``hl``). Recency maps to the coarse
    ``tbs=qdr:`` filter, site restriction is folded into the query.
    Falls back gracefully if the API is unavailable.
    """

    BASE_URL = "https://serpapi.com/search.json"

    RECENCY_PARAMS = {
        RecencyWindow.WEEK: "qdr:w",
        RecencyWindow.MONTH: "qdr:m",
        RecencyWindow.YEAR: "qdr:y",
    }

    def __init__(
        self,
        api_key: Optional[str],
        country: str = "jp",
        language: str = "ja",
        timeout: float = 8.0,
        base_url: Optional[str] = None
    ):
        """
        Initialize SerpApi provider.

        Args:
            api_key: SerpApi key (searches return [] without one)
            country: Country bias (gl)
            language: Interface language (hl)
            timeout: Request timeout in seconds
            base_url: Override endpoint (for tests or proxies)
        """
        self.api_key = api_key
        self.country = country
        self.language = language
        self.timeout = timeout
        self.base_url = base_url or self.BASE_URL
        self._last_error: Optional[str] = None

        if not api_key:
            logger.warning("No SerpApi key provided, web research disabled")

    def _handle_error(self, error: Exception, context: str) -> None:
        self._last_error = str(error)
        logger.warning(f"Search API error during {context}: {error}")

    def search(
        self,
        query: str,
        num_results: int = 6,
        recency: Optional[RecencyWindow] = None,
        site_filter: Optional[list[str]] = None
    ) -> list[SearchResult]:
        """
        Search via SerpApi.

        Args:
            query: Search query
            num_results: Number of results to request
            recency: Optional coarse time-range filter
            site_filter: Optional domains OR-restricting the query

        Returns:
            List of search results (empty on error)
        """
        if not self.api_key or not (query or "").strip():
            return []

        full_query = query
        if site_filter:
            sites = " OR ".join(f"site:{domain}" for domain in site_filter)
            full_query = f"{query} ({sites})"

        params = {
            "engine": "google",
            "q": full_query,
            "gl": self.country,
            "hl": self.language,
            "num": num_results,
            "api_key": self.api_key,
        }
        if recency:
            params["tbs"] = self.RECENCY_PARAMS[recency]

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)

            if response.status_code in (401, 403):
                self._handle_error(
                    Exception(f"Authentication failed: {response.status_code}"),
                    "search"
                )
                return []

            if response.status_code != 200:
                self._handle_error(
                    Exception(f"API returned status {response.status_code}: {response.text[:200]}"),
                    "search"
                )
                return []

            data = response.json()

        except requests.exceptions.Timeout:
            self._handle_error(
                Exception(f"Request timeout after {self.timeout}s"),
                "search"
            )
            return []
        except requests.exceptions.RequestException as e:
            self._handle_error(e, "search")
            return []
        except ValueError as e:
            self._handle_error(Exception(f"Invalid JSON: {e}"), "search")
            return []

        if not isinstance(data, dict):
            logger.warning(f"Unexpected search response format: {type(data)}")
            return []

        items = data.get("organic_results") or []
        if not isinstance(items, list):
            logger.warning(f"Unexpected organic_results format: {type(items)}")
            items = []
        results = []
        for item in items[:num_results]:
            try:
                result = self._parse_item(item)
            except Exception as e:
                logger.warning(f"Failed to parse search item: {e}")
                continue
            if result:
                results.append(result)

        self._last_error = None
        return results

    def _parse_item(self, item: dict) -> Optional[SearchResult]:
        """Convert a raw organic result; items without a link are skipped."""
        if not isinstance(item, dict):
            return None

        link = item.get("link") or item.get("url") or ""
        if not isinstance(link, str) or not link.startswith(("http://", "https://")):
            return None

        return SearchResult(
            title=item.get("title") or link,
            snippet=item.get("snippet") or "",
            link=link,
            platform=platform_for_url(link)
        )

    def get_last_error(self) -> Optional[str]:
        """Get the last error message."""
        return self._last_error
