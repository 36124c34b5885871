# src/llm/completion.py - v1
"""Routed completion service.

Resolves a task to provider/model (llm/config.py), retries transient
provider errors, falls back to a cross-provider model once retries are
exhausted, and prices the call. Clients are created lazily and cached on the
service instance; there is no process-wide client cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from contentflow.config.settings import Settings
from contentflow.core.errors import CompletionError
from contentflow.llm.base_client import BaseLLMClient
from contentflow.llm.client_factory import create_llm_client
from contentflow.llm.config import LLMAssignment, fallback_for, resolve_llm
from contentflow.llm.models import CompletionResult, Message
from contentflow.llm.retry import LLMRetryExhausted, RetryConfig, with_retry
from contentflow.tracking.cost_calculator import compute_call_cost
from contentflow.tracking.models import ModelPricing

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., BaseLLMClient]


class CompletionService:
    """Single entry point for every language-model call made by step handlers."""

    def __init__(
        self,
        settings: Settings,
        client_factory: ClientFactory = create_llm_client,
        retry_config: RetryConfig | None = None,
        pricing: dict[str, ModelPricing] | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._retry_config = retry_config or RetryConfig(
            delays_s=tuple(settings.llm_retry_delays_list)
        )
        self._pricing = pricing
        self._clients: dict[tuple[str, str], BaseLLMClient] = {}

    def _client_for(self, assignment: LLMAssignment) -> BaseLLMClient:
        key = (assignment.provider, assignment.model)
        if key not in self._clients:
            self._clients[key] = self._client_factory(
                assignment.provider, assignment.model, self._settings
            )
        return self._clients[key]

    async def _call(
        self,
        task: str,
        assignment: LLMAssignment,
        messages: list[Message],
        system: str | None,
    ):
        client = self._client_for(assignment)
        return await with_retry(
            self._call_once,
            client,
            assignment,
            messages,
            system,
            task=task,
            config=self._retry_config,
        )

    async def _call_once(
        self,
        client: BaseLLMClient,
        assignment: LLMAssignment,
        messages: list[Message],
        system: str | None,
    ):
        return await asyncio.wait_for(
            client.complete(
                messages,
                system=system,
                max_tokens=assignment.max_tokens,
                temperature=assignment.temperature,
            ),
            timeout=self._settings.llm_timeout_s,
        )

    async def complete(
        self,
        task: str,
        messages: list[Message],
        system: str | None = None,
        model_override: str | None = None,
    ) -> CompletionResult:
        """Run one routed completion.

        Args:
            task: Routing key (plan_article, write_block, generate_meta, ...).
            messages: Conversation turns.
            system: Optional system prompt.
            model_override: Optional caller model choice.

        Returns:
            CompletionResult with usage and cost.

        Raises:
            CompletionError: On unknown override, exhausted retries (and
                fallback), timeout or any provider failure.
        """
        try:
            assignment = resolve_llm(task, self._settings, model_override)
        except ValueError as e:
            raise CompletionError(str(e)) from e

        start = time.monotonic()
        fallback_used = False
        try:
            response = await self._call(task, assignment, messages, system)
        except LLMRetryExhausted as primary_error:
            fallback = fallback_for(assignment) if self._settings.llm_fallback_enabled else None
            if fallback is None or primary_error.error_type not in self._retry_config.retryable:
                raise CompletionError(str(primary_error)) from primary_error
            logger.warning(
                "Task '%s': %s exhausted, falling back to %s",
                task, assignment.key, fallback.key,
            )
            try:
                response = await self._call(task, fallback, messages, system)
            except LLMRetryExhausted as fallback_error:
                raise CompletionError(str(fallback_error)) from fallback_error
            assignment = fallback
            fallback_used = True

        duration_ms = int((time.monotonic() - start) * 1000)
        cost = compute_call_cost(
            assignment.model,
            response.input_tokens,
            response.output_tokens,
            self._pricing,
        )
        logger.debug(
            "Completion '%s' via %s: %d in / %d out, $%.6f",
            task, assignment.key, response.input_tokens, response.output_tokens, cost,
        )
        return CompletionResult(
            content=response.content,
            tokens_in=response.input_tokens,
            tokens_out=response.output_tokens,
            duration_ms=duration_ms,
            model_used=assignment.model,
            provider=assignment.provider,
            cost_usd=cost,
            fallback_used=fallback_used,
        )
