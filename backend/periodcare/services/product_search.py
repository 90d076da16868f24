"""
PeriodCare Backend - Product Search Service (SerpAPI Google Shopping)
=======================================================================

What:  Translates a shopper query into one SerpAPI Google Shopping request
       and returns the provider's `shopping_results` list.
Why:   Keeps the provider call out of the route so it can be exercised with a
       fake transport and without a running server.
How:   Uses an injected httpx.AsyncClient (one per app, closed on shutdown).
       Each call is a single GET with a timeout; no retries, no caching.
Who:   Called by GET /api/products.

Provider request (fixed locale):
    engine=google_shopping, q=<query>, location=India, hl=en, gl=in, api_key

Failure handling:
    Any transport error, timeout, non-2xx status, provider-reported `error`
    field or malformed payload becomes SearchProviderError. The detail goes
    to the server log; the client sees only the generic message.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from periodcare.config import Settings
from periodcare.exceptions import SearchProviderError

logger = logging.getLogger(__name__)

# SerpAPI reports an empty result page as an `error` string, not an empty list
NO_RESULTS_MARKER = "hasn't returned any results"


class ProductSearchService:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    def build_params(self, query: Optional[str]) -> Dict[str, str]:
        """Provider query string; a blank or missing query falls back to the default phrase."""
        effective = (query or "").strip() or self.settings.search_default_query
        return {
            "engine": self.settings.search_engine,
            "q": effective,
            "location": self.settings.search_location,
            "hl": self.settings.search_language,
            "gl": self.settings.search_country,
            "api_key": self.settings.serpapi_key,
        }

    async def search(self, query: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run one product search.

        Returns:
            The provider's result list, or [] when it has none.

        Raises:
            SearchProviderError: on any provider or transport failure.
        """
        params = self.build_params(query)
        start_time = time.perf_counter()

        try:
            response = await self.client.get(
                self.settings.search_endpoint,
                params=params,
                timeout=self.settings.search_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "SerpAPI request failed for q=%r after %.0fms: %s",
                params["q"],
                (time.perf_counter() - start_time) * 1000,
                e,
            )
            raise SearchProviderError(
                context={"query": params["q"], "error_type": type(e).__name__}
            ) from e

        if not isinstance(payload, dict):
            logger.error("SerpAPI returned a non-object payload: %s", type(payload).__name__)
            raise SearchProviderError(context={"query": params["q"]})
        if payload.get("error"):
            if NO_RESULTS_MARKER in str(payload["error"]):
                logger.info("SerpAPI had no results for q=%r", params["q"])
                return []
            logger.error("SerpAPI error for q=%r: %s", params["q"], payload["error"])
            raise SearchProviderError(context={"query": params["q"], "provider_error": payload["error"]})

        results = payload.get("shopping_results") or []
        if not isinstance(results, list):
            logger.error("SerpAPI shopping_results is %s, expected a list", type(results).__name__)
            raise SearchProviderError(context={"query": params["q"]})
        if not all(isinstance(item, dict) for item in results):
            logger.error("SerpAPI shopping_results for q=%r holds non-object entries", params["q"])
            raise SearchProviderError(context={"query": params["q"], "malformed": "shopping_results"})

        logger.info(
            "SerpAPI q=%r returned %d products in %.0fms",
            params["q"],
            len(results),
            (time.perf_counter() - start_time) * 1000,
        )
        return results
