"""Research aggregator: concurrent web and social search with dedup and capping."""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional
from urllib.parse import urlparse, urlunparse

from schemas.context import Intent
from schemas.evidence import EvidenceBundle, RecencyWindow, SearchResult
from .search_provider import SearchProvider

logger = logging.getLogger(__name__)

SOCIAL_DOMAINS = ["x.com", "twitter.com", "instagram.com", "reddit.com", "youtube.com"]


def recency_window_for_days(days: int) -> RecencyWindow:
    """Bucket a freshness parameter in days into the backend's coarse filters."""
    if days <= 7:
        return RecencyWindow.WEEK
    if days <= 31:
        return RecencyWindow.MONTH
    return RecencyWindow.YEAR


def canonical_url(url: str) -> str:
    """Dedup key for a link: query string and fragment dropped."""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/") or "/"
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, "", "", ""))


def dedupe_results(results: list[SearchResult], limit: Optional[int] = None) -> list[SearchResult]:
    """Drop results whose canonical URL was already seen, keeping first-seen order."""
    seen = set()
    unique = []
    for result in results:
        key = canonical_url(result.link)
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
        if limit is not None and len(unique) >= limit:
            break
    return unique


class ResearchAggregator:
    """
    Gathers evidence for one reply.

    The web and social sub-fetches run concurrently and are joined with a
    bounded timeout. A sub-fetch that errors or times out contributes an
    empty list; the aggregation itself never fails.
    """

    def __init__(
        self,
        provider: SearchProvider,
        evidence_cap: int = 2,
        working_set_size: int = 8,
        web_result_count: int = 6,
        recency_days: int = 14,
        timeout: float = 12.0
    ):
        """
        Initialize aggregator.

        Args:
            provider: Search backend used for both sub-fetches
            evidence_cap: Results handed to the synthesizer
            working_set_size: Deduplicated results kept before the final cap
            web_result_count: Results requested per sub-fetch
            recency_days: Freshness parameter for the social sub-fetch
            timeout: Seconds to wait for both sub-fetches
        """
        self.provider = provider
        self.evidence_cap = evidence_cap
        self.working_set_size = working_set_size
        self.web_result_count = web_result_count
        self.recency = recency_window_for_days(recency_days)
        self.timeout = timeout

    def aggregate(self, query: str, intent: Intent) -> EvidenceBundle:
        """
        Search the web and social platforms for a query.

        Args:
            query: Refined search query
            intent: Classified intent (logged with the bundle)

        Returns:
            EvidenceBundle with social results ahead of web results
        """
        if not (query or "").strip():
            return EvidenceBundle(query=query or "", recency=self.recency)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="research")
        try:
            futures = {
                "social": executor.submit(self._fetch_social, query),
                "web": executor.submit(self._fetch_web, query),
            }
            _, not_done = wait(futures.values(), timeout=self.timeout)

            fetched = {}
            for name, future in futures.items():
                if future in not_done:
                    future.cancel()
                    logger.warning(f"{name} search timed out after {self.timeout}s")
                    fetched[name] = []
                    continue
                try:
                    fetched[name] = future.result()
                except Exception as e:
                    logger.warning(f"{name} search failed: {e}")
                    fetched[name] = []
        finally:
            # Abandon stragglers instead of blocking the reply on them
            executor.shutdown(wait=False, cancel_futures=True)

        merged = fetched["social"] + fetched["web"]
        candidates = dedupe_results(merged, limit=self.working_set_size)
        results = candidates[:self.evidence_cap]

        logger.info(
            f"Research ({intent.value}) query={query!r}: "
            f"social={len(fetched['social'])} web={len(fetched['web'])} "
            f"unique={len(candidates)} kept={len(results)}"
        )

        return EvidenceBundle(
            query=query,
            results=results,
            candidates=candidates,
            recency=self.recency
        )

    def _fetch_web(self, query: str) -> list[SearchResult]:
        return self.provider.search(query, num_results=self.web_result_count)

    def _fetch_social(self, query: str) -> list[SearchResult]:
        return self.provider.search(
            query,
            num_results=self.web_result_count,
            recency=self.recency,
            site_filter=SOCIAL_DOMAINS
        )
