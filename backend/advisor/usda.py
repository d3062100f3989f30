"""
USDA FoodData Central Integration
Handles food searches and nutrient detail retrieval
"""

import asyncio
import json
import logging
import time
from typing import Optional

import httpx

from config import USDA_API_KEY, USDA_BASE_URL, USDA_TIMEOUT


logger = logging.getLogger(__name__)


class NutritionDatabaseError(Exception):
    """Raised when the nutrition database cannot answer a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class USDAFoodData:
    """Wrapper for FoodData Central API calls"""

    RETRY_STATUSES = (429, 500, 502, 503, 504)

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = USDA_BASE_URL,
        timeout: float = USDA_TIMEOUT,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        cache_ttl: float = 300,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else USDA_API_KEY
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        # Simple in-memory cache
        self._cache: dict = {}
        self._cache_ttl = cache_ttl

    def _cache_key(self, endpoint: str, params: dict) -> str:
        param_str = json.dumps(sorted(params.items()), default=str)
        return f"{endpoint}:{param_str}"

    def _get_cached(self, key: str):
        if key in self._cache:
            result, timestamp = self._cache[key]
            if time.monotonic() - timestamp < self._cache_ttl:
                return result
            del self._cache[key]
        return None

    def _set_cache(self, key: str, result):
        self._cache[key] = (result, time.monotonic())
        # Limit cache size
        if len(self._cache) > 100:
            oldest = min(self._cache.keys(), key=lambda k: self._cache[k][1])
            del self._cache[oldest]

    async def _make_request(self, endpoint: str, params: Optional[dict] = None, use_cache: bool = True):
        """GET an endpoint with retries; raises NutritionDatabaseError on failure"""
        params = params or {}

        cache_key = self._cache_key(endpoint, params)
        if use_cache:
            cached = self._get_cached(cache_key)
            if cached is not None:
                return cached

        url = f"{self.base_url}{endpoint}"
        request_params = dict(params, api_key=self.api_key)
        last_error = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(url, params=request_params)
                response.raise_for_status()
                result = response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = NutritionDatabaseError(f"USDA API error: {status}", status_code=status)
                if status not in self.RETRY_STATUSES:
                    raise last_error
            except httpx.TimeoutException:
                last_error = NutritionDatabaseError("USDA API timeout")
            except httpx.RequestError as e:
                last_error = NutritionDatabaseError(f"USDA API network error: {e}")
            except ValueError:
                raise NutritionDatabaseError("USDA API returned invalid JSON")
            else:
                if use_cache:
                    self._set_cache(cache_key, result)
                return result

            logger.warning("USDA request %s failed (attempt %d): %s", endpoint, attempt + 1, last_error)
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise last_error or NutritionDatabaseError("USDA API request failed")

    async def search_foods(self, query: str) -> list[dict]:
        """Candidate foods for a free-text query (may be empty)"""
        result = await self._make_request("/foods/search", {"query": query})
        if not isinstance(result, dict):
            raise NutritionDatabaseError("USDA search returned an unexpected payload")
        return result.get("foods") or []

    async def get_food(self, fdc_id) -> dict:
        """Full food record including ``foodNutrients``"""
        result = await self._make_request(f"/food/{fdc_id}")
        if not isinstance(result, dict):
            raise NutritionDatabaseError("USDA food detail returned an unexpected payload")
        return result
