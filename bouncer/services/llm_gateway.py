from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from bouncer.core.config import get_settings
from bouncer.services.json_repair import try_parse_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMRequest:
    purpose: str
    system_prompt: str
    user_prompt: str
    temperature: float
    json_mode: bool
    max_tokens: Optional[int] = None
    timeout_ms: Optional[int] = None


@dataclass(frozen=True)
class LLMResponse:
    content: str
    provider: str
    model: str
    latency_ms: int
    attempts: int
    used_fallback: bool


class LLMProvider(Protocol):
    name: str
    model: str

    async def generate(self, req: LLMRequest) -> str:
        ...


class OpenAICompatProvider:
    def __init__(
        self,
        *,
        name: str,
        api_key: Optional[str],
        base_url: Optional[str],
        model: str,
    ) -> None:
        self.name = name
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def generate(self, req: LLMRequest) -> str:
        client = self._get_client()
        kwargs = {}
        if req.json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if req.max_tokens is not None:
            kwargs["max_tokens"] = req.max_tokens
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": req.system_prompt},
                {"role": "user", "content": req.user_prompt},
            ],
            temperature=req.temperature,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class LLMTimeoutError(RuntimeError):
    pass


class LLMGateway:
    """Walks a provider route until one answers within its timeout."""

    def __init__(
        self,
        *,
        providers: Dict[str, LLMProvider],
        default_route: List[str],
        purpose_routes: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.providers = providers
        self.default_route = default_route
        self.purpose_routes = purpose_routes or {}

    async def generate(self, req: LLMRequest, *, route: Optional[List[str]] = None) -> LLMResponse:
        if route is None:
            route = self.purpose_routes.get(req.purpose, self.default_route)
        attempts = 0
        last_err: Optional[Exception] = None

        for idx, provider_name in enumerate(route):
            attempts += 1
            provider = self.providers.get(provider_name)
            if provider is None:
                last_err = ValueError(f"Unknown provider: {provider_name}")
                continue

            t0 = time.perf_counter()
            try:
                if req.timeout_ms is not None:
                    content = await asyncio.wait_for(provider.generate(req), timeout=req.timeout_ms / 1000)
                else:
                    content = await provider.generate(req)

                if req.json_mode:
                    _, parse_error = try_parse_json(content)
                    if parse_error:
                        raise ValueError(f"LLM JSON mode must return a JSON object: {parse_error}")

                latency_ms = int((time.perf_counter() - t0) * 1000)
                logger.info(
                    "LLM done purpose=%s provider=%s model=%s json_mode=%s sys_chars=%s user_chars=%s ms=%s attempts=%s fallback=%s",
                    req.purpose,
                    provider.name,
                    provider.model,
                    req.json_mode,
                    len(req.system_prompt),
                    len(req.user_prompt),
                    latency_ms,
                    attempts,
                    idx > 0,
                )
                return LLMResponse(
                    content=content,
                    provider=provider.name,
                    model=provider.model,
                    latency_ms=latency_ms,
                    attempts=attempts,
                    used_fallback=idx > 0,
                )

            except asyncio.TimeoutError:
                last_err = LLMTimeoutError(f"Timeout provider={provider_name} purpose={req.purpose}")
            except Exception as exc:
                last_err = exc
            logger.warning("LLM attempt failed purpose=%s provider=%s error=%s", req.purpose, provider_name, last_err)

        if last_err is None:
            last_err = ValueError(f"Empty provider route for purpose={req.purpose}")
        raise last_err

    async def close(self) -> None:
        for provider in self.providers.values():
            close = getattr(provider, "close", None)
            if close is not None:
                await close()


@lru_cache
def get_llm_gateway() -> LLMGateway:
    settings = get_settings()
    providers: Dict[str, LLMProvider] = {
        "classifier": OpenAICompatProvider(
            name="classifier",
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_classifier_model,
        ),
        "roast": OpenAICompatProvider(
            name="roast",
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.roast_model,
        ),
    }
    purpose_routes: Dict[str, List[str]] = {"guest_match": ["classifier"], "roast": ["roast"]}

    if settings.llm_fallback_model:
        providers["fallback"] = OpenAICompatProvider(
            name="fallback",
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_fallback_model,
        )
        purpose_routes["guest_match"].append("fallback")

    return LLMGateway(
        providers=providers,
        default_route=["classifier"],
        purpose_routes=purpose_routes,
    )
