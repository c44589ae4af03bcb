"""Provider executors, one per ``ModelProvider``.

Each executor turns an execution request into a single system + user turn
against its backend and normalizes token usage. Backend failures (SDK or
HTTP errors) come back as unsuccessful results; anything else propagates to
the registry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import anthropic
import httpx
import openai

from switchboard.agents.models import (
    Agent,
    AgentExecutionRequest,
    AgentExecutionResult,
    ModelProvider,
    TokenUsage,
)
from switchboard.config.constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_SYSTEM_INSTRUCTIONS,
    DEFAULT_TEMPERATURE,
)
from switchboard.config.models import ProviderConfig

logger = logging.getLogger("switchboard.agents.providers")


class ProviderExecutor:
    """Base class for provider backends."""

    provider: ModelProvider

    async def execute(
        self, agent: Agent, request: AgentExecutionRequest
    ) -> AgentExecutionResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any client held by the executor."""


def _system(request: AgentExecutionRequest) -> str:
    return request.system_instructions or DEFAULT_SYSTEM_INSTRUCTIONS


def _temperature(request: AgentExecutionRequest) -> float:
    return DEFAULT_TEMPERATURE if request.temperature is None else request.temperature


def _max_tokens(request: AgentExecutionRequest) -> int:
    return DEFAULT_MAX_TOKENS if request.max_tokens is None else request.max_tokens


def _failure(agent: Agent, message: str) -> AgentExecutionResult:
    return AgentExecutionResult(agent_id=agent.id, success=False, error=message)


def _metadata(agent: Agent, request: AgentExecutionRequest, **extra: Any) -> dict[str, Any]:
    meta: dict[str, Any] = {"model": agent.model_name, "brand": request.brand_context}
    meta.update(extra)
    return {k: v for k, v in meta.items() if v is not None}


class OpenAIExecutor(ProviderExecutor):
    provider = ModelProvider.OPENAI

    def __init__(self, client: openai.AsyncOpenAI | None) -> None:
        self._client = client

    async def execute(self, agent, request):
        if self._client is None:
            return _failure(agent, "OpenAI client not initialized. Missing API key.")

        try:
            completion = await self._client.chat.completions.create(
                model=agent.model_name,
                messages=[
                    {"role": "system", "content": _system(request)},
                    {"role": "user", "content": request.prompt},
                ],
                temperature=_temperature(request),
                max_tokens=_max_tokens(request),
            )
        except openai.OpenAIError as exc:
            logger.error("OpenAI execution error for agent %s: %s", agent.id, exc)
            return _failure(agent, str(exc))

        choice = completion.choices[0] if completion.choices else None
        usage = completion.usage
        return AgentExecutionResult(
            agent_id=agent.id,
            success=True,
            output=(choice.message.content if choice else None) or "",
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            metadata=_metadata(
                agent, request, finishReason=choice.finish_reason if choice else None
            ),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class AnthropicExecutor(ProviderExecutor):
    provider = ModelProvider.ANTHROPIC

    def __init__(self, client: anthropic.AsyncAnthropic | None) -> None:
        self._client = client

    async def execute(self, agent, request):
        if self._client is None:
            return _failure(agent, "Anthropic client not initialized. Missing API key.")

        try:
            response = await self._client.messages.create(
                model=agent.model_name,
                system=_system(request),
                messages=[{"role": "user", "content": request.prompt}],
                temperature=_temperature(request),
                max_tokens=_max_tokens(request),
            )
        except anthropic.AnthropicError as exc:
            logger.error("Anthropic execution error for agent %s: %s", agent.id, exc)
            return _failure(agent, str(exc))

        output = "\n".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = response.usage
        return AgentExecutionResult(
            agent_id=agent.id,
            success=True,
            output=output,
            usage=TokenUsage(
                prompt_tokens=usage.input_tokens,
                completion_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            ),
            metadata=_metadata(agent, request, stopReason=response.stop_reason),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class OllamaExecutor(ProviderExecutor):
    """Calls a local Ollama ``/api/chat`` endpoint (non-streaming)."""

    provider = ModelProvider.OLLAMA

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def execute(self, agent, request):
        body = {
            "model": agent.model_name,
            "messages": [
                {"role": "system", "content": _system(request)},
                {"role": "user", "content": request.prompt},
            ],
            "options": {
                "temperature": _temperature(request),
                "num_predict": _max_tokens(request),
            },
            "stream": False,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post("/api/chat", json=body)
            if not response.is_success:
                message = (
                    f"Ollama API error: {response.status_code} "
                    f"{response.reason_phrase} - {response.text}"
                )
                logger.error("Ollama execution error for agent %s: %s", agent.id, message)
                return _failure(agent, message)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Ollama execution error for agent %s: %s", agent.id, exc)
            return _failure(agent, str(exc) or type(exc).__name__)

        return AgentExecutionResult(
            agent_id=agent.id,
            success=True,
            output=(data.get("message") or {}).get("content", ""),
            usage=ollama_usage(data),
            metadata=_metadata(agent, request),
        )


def ollama_usage(data: dict[str, Any]) -> TokenUsage:
    """Read Ollama counters from the top level or a nested ``usage`` object."""
    source = data.get("usage") if isinstance(data.get("usage"), dict) else data
    prompt = int(source.get("prompt_eval_count") or 0)
    completion = int(source.get("eval_count") or 0)
    total = source.get("total_eval_count")
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=int(total) if total is not None else prompt + completion,
    )


class CustomExecutor(ProviderExecutor):
    """Placeholder backend: echoes the prompt after a fixed latency."""

    provider = ModelProvider.CUSTOM

    def __init__(self, latency_ms: int = 500) -> None:
        self.latency_ms = latency_ms

    async def execute(self, agent, request):
        logger.warning("Custom model execution for agent %s is handled generically", agent.id)
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000)

        prompt_tokens = len(request.prompt)
        completion_tokens = prompt_tokens // 5
        return AgentExecutionResult(
            agent_id=agent.id,
            success=True,
            output=f"[Custom Model] Processed: {request.prompt} with model {agent.model_name}",
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            metadata=_metadata(agent, request),
        )


def build_executors(config: ProviderConfig) -> dict[ModelProvider, ProviderExecutor]:
    """Create the provider strategy table from configuration."""
    openai_client = None
    if config.openai_api_key:
        openai_client = openai.AsyncOpenAI(
            api_key=config.openai_api_key, timeout=config.request_timeout_seconds
        )
    else:
        logger.warning("OPENAI_API_KEY not set; OpenAI agents will fail to execute")

    anthropic_client = None
    if config.anthropic_api_key:
        anthropic_client = anthropic.AsyncAnthropic(
            api_key=config.anthropic_api_key, timeout=config.request_timeout_seconds
        )
    else:
        logger.warning("ANTHROPIC_API_KEY not set; Anthropic agents will fail to execute")

    executors: list[ProviderExecutor] = [
        OpenAIExecutor(openai_client),
        AnthropicExecutor(anthropic_client),
        OllamaExecutor(config.ollama_base_url, timeout=config.request_timeout_seconds),
        CustomExecutor(config.custom_latency_ms),
    ]
    return {executor.provider: executor for executor in executors}
