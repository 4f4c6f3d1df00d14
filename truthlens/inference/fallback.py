"""
Fallback chain dispatcher.

Walks a plan of ModelSpecs strictly in order, one call at a time:

    ATTEMPT(0) ──fail──▶ ATTEMPT(1) ──fail──▶ ... ──fail──▶ FAIL(last error)
        │                    │
     success              success
        ▼                    ▼
     SUCCESS              SUCCESS

An INVALID_KEY failure jumps straight to FAIL: a bad credential fails the
same way on every model under it. This is the path for the common case of
one provider with several candidate models, and for multi-provider fallback
when racing is not wanted (cheaper and more predictable, a little slower).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from truthlens.inference.classifier import ErrorClassifier
from truthlens.inference.credentials import CredentialResolver, CredentialScope
from truthlens.inference.errors import ClassifiedError, ErrorKind, no_providers_error
from truthlens.inference.models import InferenceRequest, InferenceResponse, ModelSpec, Provider

if TYPE_CHECKING:
    from truthlens.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class FallbackChainDispatcher:
    """
    Sequential dispatcher over a fallback plan.

    Args:
        adapters: Adapter per provider
        resolver: Credential resolver (one scope per run)
        classifier: Error classifier applied to every failure
        timeout: Optional budget in seconds for the whole chain. When it
            runs out the chain is abandoned with API_ERROR.
    """

    def __init__(
        self,
        adapters: Mapping[Provider, ProviderAdapter],
        resolver: CredentialResolver,
        classifier: ErrorClassifier,
        timeout: float | None = None,
    ):
        self._adapters = adapters
        self._resolver = resolver
        self._classifier = classifier
        self._timeout = timeout

    async def run(
        self,
        plan: Sequence[ModelSpec],
        request: InferenceRequest,
        credentials: CredentialScope | None = None,
    ) -> InferenceResponse:
        """
        Run the plan until one attempt succeeds.

        Args:
            plan: ModelSpecs; ordered by priority, ties keep list order
            request: The request, shared read-only by every attempt
            credentials: Scope to resolve through; a fresh one per run if omitted

        Returns:
            The first successful response

        Raises:
            ClassifiedError: The terminating error (INVALID_KEY), the last
                observed error, or API_ERROR for an empty plan or a timeout
        """
        if not plan:
            raise no_providers_error()

        ordered = sorted(plan, key=lambda spec: spec.priority)
        scope = credentials or self._resolver.scope(request.user_id, request.tier)

        if self._timeout is None:
            return await self._run_chain(ordered, request, scope)

        try:
            async with asyncio.timeout(self._timeout):
                return await self._run_chain(ordered, request, scope)
        except TimeoutError as e:
            logger.warning(f"Fallback chain abandoned after {self._timeout}s")
            raise ClassifiedError(
                ErrorKind.API_ERROR,
                ordered[0].provider,
                "The AI took too long to respond. Please try again.",
            ) from e

    async def _run_chain(
        self,
        plan: list[ModelSpec],
        request: InferenceRequest,
        scope: CredentialScope,
    ) -> InferenceResponse:
        last_error: ClassifiedError | None = None

        for index, spec in enumerate(plan):
            # A provider whose credential already failed would fail identically
            if last_error is not None and scope.failed(spec.provider):
                logger.debug(f"Skipping {spec.provider.value}/{spec.model_id}: credential unavailable")
                continue

            try:
                response = await self._attempt(spec, request, scope)
            except Exception as e:
                error = self._classifier.classify(e, spec.provider)
                logger.warning(
                    f"Attempt {index + 1}/{len(plan)} {spec.provider.value}/{spec.model_id} "
                    f"failed: {error.kind.value} ({e})"
                )
                last_error = error
                if error.kind is ErrorKind.INVALID_KEY:
                    raise error
                continue

            if index > 0:
                logger.info(f"Fell back to {spec.provider.value}/{spec.model_id} after {index} failure(s)")
            return response

        raise last_error

    async def _attempt(
        self,
        spec: ModelSpec,
        request: InferenceRequest,
        scope: CredentialScope,
    ) -> InferenceResponse:
        credential = await scope.resolve(spec.provider)
        adapter = self._adapters.get(spec.provider)
        if adapter is None:
            raise ClassifiedError(ErrorKind.API_ERROR, spec.provider)

        text = await adapter.call(request.messages, spec.model_id, credential)
        return InferenceResponse(text=text, provider=spec.provider, model=spec.model_id)
