"""
Model invoker implementations for agentflow.
Implements IModelInvoker on top of the Anthropic SDK.

Each distinct (model, temperature, max_tokens) combination requested by a
pipeline node gets its own ChatModel instance. Instances are shared by all
runs through ModelVariantCache, whose get-or-create is guarded by a lock so
two concurrent runs never build duplicates of the same variant.

Calls are bounded by LLM_CALL_TIMEOUT_SECONDS and are not retried; failures
propagate to the executor, which aborts the run.
"""

import asyncio
import logging
from threading import Lock
from typing import Callable, Hashable, Optional

import anthropic

from agentflow.shared.config import AnthropicConfig, AppConfig
from agentflow.shared.constants import LLM_CALL_TIMEOUT_SECONDS
from agentflow.shared.errors import UpstreamError
from agentflow.shared.interfaces import IModelInvoker
from agentflow.shared.models import InvocationOptions

logger = logging.getLogger(__name__)


def extract_text(response) -> str:
    """Join the text blocks of an Anthropic Messages API response."""
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text" and getattr(block, "text", None):
            parts.append(block.text)
    return "\n".join(parts)


class ModelVariantCache:
    """Thread-safe get-or-create cache of model instances."""

    def __init__(self):
        self._variants: dict = {}
        self._lock = Lock()

    def get_or_create(self, key: Hashable, factory: Callable[[], object]):
        with self._lock:
            variant = self._variants.get(key)
            if variant is None:
                variant = factory()
                self._variants[key] = variant
                logger.info(f"Created model variant {key}")
            return variant

    def __len__(self) -> int:
        with self._lock:
            return len(self._variants)


class ChatModel:
    """One configured Anthropic model: fixed model name, temperature and token cap."""

    def __init__(self, api_key: str, model: str, temperature: float, max_tokens: int):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    async def generate(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=LLM_CALL_TIMEOUT_SECONDS,
        )
        return extract_text(response)


class AnthropicModelInvoker(IModelInvoker):
    """Claude API invoker with per-node model variants."""

    def __init__(self, config: AnthropicConfig):
        self._config = config
        self._variants = ModelVariantCache()

    @property
    def variant_count(self) -> int:
        return len(self._variants)

    def get_model(self, options: Optional[InvocationOptions] = None) -> ChatModel:
        """Return the cached model instance for the requested overrides."""
        options = options or InvocationOptions()
        model = options.model or self._config.model
        temperature = (
            options.temperature if options.temperature is not None else self._config.temperature
        )
        max_tokens = options.max_output_tokens or self._config.max_tokens
        key = (model, temperature, max_tokens)
        return self._variants.get_or_create(
            key,
            lambda: ChatModel(self._config.api_key, model, temperature, max_tokens),
        )

    async def invoke(self, prompt: str, options: Optional[InvocationOptions] = None) -> str:
        if not self._config.api_key:
            logger.warning("No API key configured - cannot invoke model")
            raise UpstreamError("No API key configured for model invocation (set ANTHROPIC_API_KEY)")

        chat_model = self.get_model(options)
        try:
            return await chat_model.generate(prompt)
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"Model call to {chat_model.model} timed out after {LLM_CALL_TIMEOUT_SECONDS}s"
            ) from e


def create_model_invoker(config: AppConfig) -> IModelInvoker:
    """Factory: create the model invoker for the configured provider."""
    logger.info(
        f"Using Anthropic API (model: {config.anthropic.model}, "
        f"temperature: {config.anthropic.temperature})"
    )
    return AnthropicModelInvoker(config.anthropic)
