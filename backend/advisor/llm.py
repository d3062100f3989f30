"""
LLM Integration
Handles communication with the SiliconFlow chat completions API
"""

import asyncio
import logging
import math
from typing import Optional

import httpx

from config import (
    SILICONFLOW_API_KEY,
    SILICONFLOW_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TOKEN_LIMIT,
    LLM_TIMEOUT,
    LLM_MAX_RETRIES
)
from advisor.rate_limiter import RateLimiter


logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


class LLMError(Exception):
    """Base exception for LLM-related errors"""
    pass


class ConfigurationError(LLMError):
    """Raised when the client cannot be configured (e.g. missing API key)"""
    pass


class PromptTooLargeError(LLMError):
    """Raised when a prompt exceeds the token budget"""

    def __init__(self, estimated_tokens: int, token_limit: int):
        self.estimated_tokens = estimated_tokens
        self.token_limit = token_limit
        super().__init__(
            f"Prompt too long: ~{estimated_tokens} tokens exceeds limit of {token_limit}"
        )


class ProviderError(LLMError):
    """Raised when the provider answers with a non-success status"""

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f"API request failed with status {status_code}: {message}")


class MalformedResponseError(LLMError):
    """Raised when a successful response lacks the expected content"""
    pass


class CompletionTimeoutError(LLMError):
    """Raised when a completion does not finish before its deadline"""
    pass


def estimate_tokens(text: str) -> int:
    """Rough estimate: one token per four characters"""
    return math.ceil(len(text) / 4)


def _extract_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_ERROR
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return UNKNOWN_ERROR


def _extract_content(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        raise MalformedResponseError("Invalid response format from API: body is not JSON")

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise MalformedResponseError("Invalid response format from API: no message content")

    if not isinstance(content, str) or not content.strip():
        raise MalformedResponseError("Invalid response format from API: empty message content")

    return content.strip()


class CompletionClient:
    """
    Rate-limited wrapper around a single chat completion exchange.

    The rate limiter is passed in so that every client in the process
    draws from the same quota.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        api_key: Optional[str] = None,
        base_url: str = SILICONFLOW_BASE_URL,
        model: str = LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        token_limit: int = LLM_TOKEN_LIMIT,
        timeout: float = LLM_TIMEOUT,
        max_retries: int = LLM_MAX_RETRIES,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else SILICONFLOW_API_KEY
        if not self.api_key:
            raise ConfigurationError(
                "SiliconFlow API key not found. "
                "Please set SILICONFLOW_API_KEY in your .env file."
            )
        self.rate_limiter = rate_limiter
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.token_limit = token_limit
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> str:
        """
        Send ``prompt`` as a user message and return the trimmed reply.

        ``timeout`` is an overall deadline covering rate-limit waits,
        retries and the network exchange itself.
        """
        estimated = estimate_tokens(prompt)
        if system:
            estimated += estimate_tokens(system)
        # at least one output token must fit in the budget
        if estimated >= self.token_limit:
            raise PromptTooLargeError(estimated, self.token_limit)

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": min(self.max_tokens, self.token_limit - estimated)
        }

        if timeout is None:
            return await self._send(payload)
        try:
            return await asyncio.wait_for(self._send(payload), timeout)
        except asyncio.TimeoutError:
            raise CompletionTimeoutError(f"Completion did not finish within {timeout} seconds")

    async def _send(self, payload: dict) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        last_error = None

        for attempt in range(self.max_retries):
            await self.rate_limiter.acquire()
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(self.base_url, headers=headers, json=payload)
            except httpx.TimeoutException:
                last_error = ProviderError(None, f"Request timed out after {self.timeout} seconds")
            except httpx.RequestError as e:
                last_error = ProviderError(None, f"Network error: {e}")
            else:
                if not response.is_success:
                    raise ProviderError(response.status_code, _extract_error_message(response))
                return _extract_content(response)
            finally:
                self.rate_limiter.mark_done()

            logger.warning(
                "Completion attempt %d/%d failed: %s", attempt + 1, self.max_retries, last_error
            )
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * 2 ** attempt)

        if last_error:
            raise last_error
        raise ProviderError(None, "Failed to get response after multiple attempts")
