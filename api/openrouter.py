"""
OpenRouter API integration.

Two consumers share the chat completions endpoint:
- ``ResearchClient`` runs web-grounded deep research questions
- ``LLMProcessor`` extracts targeted information from scraped pages and
  Reddit threads

Neither raises on upstream failure: research returns a ``ResearchResponse``
with ``error`` set, extraction returns the original content unprocessed.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from core.config import SERVER, parse_env
from core.errors import MissingCredentialsError, UpstreamResponseError, classify_error
from core.reliability import resilient_api_call
from models.config import ReasoningEffort
from models.results import LLMResult, ResearchResponse, TokenUsage

EXTRACTION_TIMEOUT = 120.0
MAX_LLM_INPUT_CHARS = 100_000
DEFAULT_RETRY_DELAYS = (2.0, 4.0)

logger = logging.getLogger(__name__)


def _extract_text_field(data: Dict[str, Any], path: Sequence[Union[str, int]]) -> str:
    """Walk a nested completion response and return the text field."""
    current: Any = data
    for key in path:
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamResponseError(
                "OpenRouter", f"unexpected response structure; missing {key!r}"
            ) from exc

    if current is None:
        return ""
    if not isinstance(current, str):
        raise UpstreamResponseError(
            "OpenRouter", f"expected text content but received {type(current).__name__}"
        )
    return current


def _parse_usage(data: Dict[str, Any]) -> Optional[TokenUsage]:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None
    return TokenUsage(
        prompt_tokens=usage.get("prompt_tokens", 0) or 0,
        completion_tokens=usage.get("completion_tokens", 0) or 0,
        total_tokens=usage.get("total_tokens", 0) or 0,
    )


class _OpenRouterBase:
    def __init__(self, api_key: Optional[str], base_url: Optional[str], timeout: float):
        env = parse_env()
        self.api_key = api_key or env.openrouter_api_key
        if not self.api_key:
            raise MissingCredentialsError("OPENROUTER_API_KEY")
        self.base_url = (base_url or env.openrouter_base_url).rstrip("/")
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": SERVER.name,
        }

    async def _complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions", headers=self._headers(), json=payload
            )
            response.raise_for_status()
            data = response.json()

        # OpenRouter reports some provider failures in a 200 body
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise UpstreamResponseError(
                "OpenRouter", message, code if isinstance(code, int) else None
            )
        return data


# ══════════════════════════════════════════════════════════════════════════════
# Deep Research
# ══════════════════════════════════════════════════════════════════════════════


class ResearchClient(_OpenRouterBase):
    """Deep research over OpenRouter with a one-shot model fallback."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
    ):
        env = parse_env()
        super().__init__(api_key, base_url, timeout or env.api_timeout_ms / 1000)
        self.model = model or env.research_model
        self.fallback_model = fallback_model or env.research_fallback_model
        self.retry_delays = tuple(retry_delays)

    def _payload(
        self,
        model: str,
        question: str,
        system_prompt: Optional[str],
        reasoning_effort: ReasoningEffort,
        max_search_results: int,
        max_tokens: int,
    ) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": question})
        return {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "reasoning": {"effort": ReasoningEffort(reasoning_effort).value},
            "plugins": [{"id": "web", "max_results": max_search_results}],
        }

    async def _research_with(self, model: str, **kwargs) -> ResearchResponse:
        data = await resilient_api_call(
            self._complete, self._payload(model, **kwargs), delays=self.retry_delays
        )
        return ResearchResponse(
            content=_extract_text_field(data, ("choices", 0, "message", "content")).strip(),
            model=data.get("model", model),
            usage=_parse_usage(data),
        )

    async def research(
        self,
        question: str,
        system_prompt: Optional[str] = None,
        reasoning_effort: ReasoningEffort = ReasoningEffort.HIGH,
        max_search_results: int = 20,
        max_tokens: int = 32000,
    ) -> ResearchResponse:
        """Answer one research question. Never raises."""
        kwargs = dict(
            question=question,
            system_prompt=system_prompt,
            reasoning_effort=reasoning_effort,
            max_search_results=max_search_results,
            max_tokens=max_tokens,
        )
        try:
            return await self._research_with(self.model, **kwargs)
        except Exception as e:
            primary_error = classify_error(e)
            logger.warning(f"Research with {self.model} failed: {primary_error.message}")

        if self.fallback_model and self.fallback_model != self.model:
            logger.info(f"Retrying research with fallback model {self.fallback_model}")
            try:
                return await self._research_with(self.fallback_model, **kwargs)
            except Exception as e:
                fallback_error = classify_error(e)
                logger.warning(
                    f"Research with {self.fallback_model} failed: {fallback_error.message}"
                )
                return ResearchResponse(model=self.fallback_model, error=fallback_error.message)

        return ResearchResponse(model=self.model, error=primary_error.message)


# ══════════════════════════════════════════════════════════════════════════════
# Content Extraction
# ══════════════════════════════════════════════════════════════════════════════


class LLMProcessor(_OpenRouterBase):
    """Targeted extraction over scraped content."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        enable_reasoning: Optional[bool] = None,
        timeout: float = EXTRACTION_TIMEOUT,
    ):
        env = parse_env()
        super().__init__(api_key, base_url, timeout)
        self.model = model or env.llm_extraction_model
        self.enable_reasoning = (
            env.llm_enable_reasoning if enable_reasoning is None else enable_reasoning
        )

    async def extract(self, content: str, instruction: str, max_tokens: int, model: Optional[str] = None) -> str:
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": instruction},
                {"role": "user", "content": content},
            ],
            "max_tokens": max_tokens,
        }
        if self.enable_reasoning:
            payload["reasoning"] = {"effort": ReasoningEffort.LOW.value}

        data = await resilient_api_call(self._complete, payload, delays=DEFAULT_RETRY_DELAYS)
        return _extract_text_field(data, ("choices", 0, "message", "content")).strip()


def create_llm_processor() -> Optional[LLMProcessor]:
    """Build the extraction processor, or None when no key is configured."""
    try:
        return LLMProcessor()
    except MissingCredentialsError:
        return None


async def process_content_with_llm(
    content: str,
    what_to_extract: Optional[str],
    max_tokens: int,
    processor: Optional[LLMProcessor],
    model: Optional[str] = None,
) -> LLMResult:
    """Run extraction, falling back to the untouched content on any failure."""
    if processor is None:
        return LLMResult(content=content, processed=False, error="LLM processor not configured")
    if not content or not content.strip():
        return LLMResult(content=content, processed=False, error="No content to process")

    instruction = what_to_extract or "Extract the main content and key information."
    truncated = content[:MAX_LLM_INPUT_CHARS]
    if len(content) > MAX_LLM_INPUT_CHARS:
        logger.info(f"Truncated LLM input from {len(content)} to {MAX_LLM_INPUT_CHARS} chars")

    try:
        extracted = await processor.extract(truncated, instruction, max_tokens, model)
    except Exception as e:
        error = classify_error(e)
        logger.warning(f"LLM extraction failed: {error.message}")
        return LLMResult(content=content, processed=False, error=error.message)

    if not extracted:
        return LLMResult(content=content, processed=False, error="Empty LLM response")
    return LLMResult(content=extracted, processed=True)
