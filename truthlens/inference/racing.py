"""
Racing dispatcher.

Sends the same request to several providers at once and returns whichever
succeeds first. Each candidate is one asyncio task that resolves its own
credential and then calls its adapter.

Losing candidates are not cancelled by default: they keep running in the
background and their results are discarded. That costs provider quota but
keeps billing and rate-limit behaviour identical to a plain "fire at all of
them" swarm. Set ``cancel_losers`` to stop them instead.

When every candidate fails, the race reports one representative error:
- all failures are auth failures (MISSING_KEY / INVALID_KEY): the last one observed
- otherwise: the last non-auth failure observed, so a bad key on one provider is
  never reported as the reason when another provider merely hiccuped
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from truthlens.inference.classifier import ErrorClassifier
from truthlens.inference.credentials import CredentialResolver, CredentialScope
from truthlens.inference.errors import (
    ClassifiedError,
    ErrorKind,
    RaceFailedError,
    no_providers_error,
)
from truthlens.inference.models import InferenceRequest, InferenceResponse, Provider

if TYPE_CHECKING:
    from truthlens.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class RacingDispatcher:
    """
    First-success-wins dispatcher.

    Args:
        adapters: Adapter per provider
        resolver: Credential resolver (one scope per race)
        classifier: Error classifier applied to every failed candidate
        cancel_losers: Cancel candidates still running once a winner is known
    """

    def __init__(
        self,
        adapters: Mapping[Provider, ProviderAdapter],
        resolver: CredentialResolver,
        classifier: ErrorClassifier,
        cancel_losers: bool = False,
    ):
        self._adapters = adapters
        self._resolver = resolver
        self._classifier = classifier
        self._cancel_losers = cancel_losers
        # Strong references so background losers are not garbage collected mid-flight
        self._background: set[asyncio.Task] = set()

    @property
    def background_tasks(self) -> frozenset[asyncio.Task]:
        """Losing candidates still running after their race finished."""
        return frozenset(self._background)

    async def race(
        self,
        providers: Sequence[Provider],
        request: InferenceRequest,
        credentials: CredentialScope | None = None,
    ) -> InferenceResponse:
        """
        Race the request across providers.

        Args:
            providers: Candidates; duplicates are ignored, order breaks ties
            request: The request, shared read-only by every candidate
            credentials: Scope to resolve through; a fresh one per race if omitted

        Returns:
            The first successful response

        Raises:
            RaceFailedError: Every candidate failed
            ClassifiedError: API_ERROR when there are no candidates
        """
        candidates = list(dict.fromkeys(providers))
        if not candidates:
            raise no_providers_error()

        scope = credentials or self._resolver.scope(request.user_id, request.tier)
        logger.info(f"Racing {', '.join(p.value for p in candidates)}")

        tasks = [
            asyncio.create_task(self._attempt(provider, request, scope), name=f"race:{provider.value}")
            for provider in candidates
        ]
        owner = dict(zip(tasks, candidates))
        pending = set(tasks)
        failures: list[ClassifiedError] = []

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

                # Several tasks can finish in the same step; candidate order decides
                for task in (t for t in tasks if t in done):
                    error = task.exception()
                    if error is None:
                        winner = task.result()
                        logger.info(f"Race won by {winner.provider.value}/{winner.model}")
                        return winner

                    failure = self._classifier.classify(error, owner[task])
                    logger.warning(f"Race candidate {owner[task].value} failed: {failure.kind.value} ({error})")
                    failures.append(failure)
        finally:
            self._release(tasks)

        raise self._aggregate(failures)

    async def _attempt(
        self,
        provider: Provider,
        request: InferenceRequest,
        scope: CredentialScope,
    ) -> InferenceResponse:
        credential = await scope.resolve(provider)
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise ClassifiedError(ErrorKind.API_ERROR, provider)

        text = await adapter.call(request.messages, None, credential)
        return InferenceResponse(text=text, provider=provider, model=adapter.default_model)

    def _release(self, tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            if task.done():
                # Finished alongside the winner; retrieve so it is never reported as unhandled
                if not task.cancelled():
                    task.exception()
                continue
            if self._cancel_losers:
                task.cancel()
            self._background.add(task)
            task.add_done_callback(self._discard)

    def _discard(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        # Retrieve the outcome so asyncio never reports it as unhandled
        error = task.exception()
        if error is not None:
            logger.debug(f"Discarded late failure from {task.get_name()}: {error}")
        else:
            logger.debug(f"Discarded late result from {task.get_name()}")

    @staticmethod
    def _aggregate(failures: list[ClassifiedError]) -> RaceFailedError:
        if all(f.kind.is_auth for f in failures):
            representative = failures[-1]
        else:
            representative = next(f for f in reversed(failures) if not f.kind.is_auth)
        return RaceFailedError(representative, failures)
