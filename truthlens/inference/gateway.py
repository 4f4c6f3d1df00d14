"""
Inference gateway: the one entry point other layers call.

    send_request(user_id, tier, provider, messages, language_hint)
          ↓
    ModelSelectionPolicy.plan()  →  FallbackChainDispatcher.run()
          ↓
    text  |  ClassifiedError

Racing is available for call sites that prefer latency over cost
(``race``), and multi-provider fallback for those that want determinism
across backends (``send_with_fallback``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from truthlens.config.logging import mask_secret
from truthlens.inference.credentials import CredentialResolver
from truthlens.inference.errors import RawProviderError
from truthlens.inference.fallback import FallbackChainDispatcher
from truthlens.inference.models import (
    ChatMessage,
    Credential,
    CredentialSource,
    Feature,
    InferenceRequest,
    InferenceResponse,
    Provider,
    Tier,
)
from truthlens.inference.policy import ModelSelectionPolicy
from truthlens.inference.prompts import build_chat_messages, with_language
from truthlens.inference.racing import RacingDispatcher

if TYPE_CHECKING:
    from truthlens.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

# Cheapest model per provider for key verification
VERIFICATION_MODELS: dict[Provider, str] = {
    Provider.GROQ: "llama-3.1-8b-instant",
    Provider.GEMINI: "gemini-1.5-flash",
}

MessageLike = ChatMessage | Mapping[str, str]


class InferenceGateway:
    """
    Wires policy, credential resolution and dispatch together.

    Args:
        policy: Produces fallback plans and racing lineups
        resolver: Credential resolver
        fallback: Sequential dispatcher
        racer: Racing dispatcher
        adapters: Adapter per provider (used directly only for key verification)
        model_overrides: Operator's comma-separated model string per provider
    """

    def __init__(
        self,
        policy: ModelSelectionPolicy,
        resolver: CredentialResolver,
        fallback: FallbackChainDispatcher,
        racer: RacingDispatcher,
        adapters: Mapping[Provider, ProviderAdapter],
        model_overrides: Mapping[Provider, str] | None = None,
    ):
        self._policy = policy
        self._resolver = resolver
        self._fallback = fallback
        self._racer = racer
        self._adapters = adapters
        self._overrides = dict(model_overrides or {})

    async def send_request(
        self,
        user_id: str,
        tier: Tier,
        provider: Provider,
        messages: Sequence[MessageLike],
        language_hint: str | None = None,
    ) -> str:
        """
        Resolve a request against one provider and return the response text.

        Raises:
            ClassifiedError: The normalized failure (never a raw provider error)
            ValueError: If messages is empty
        """
        response = await self.dispatch(user_id, tier, provider, messages, language_hint)
        return response.text

    async def dispatch(
        self,
        user_id: str,
        tier: Tier,
        provider: Provider,
        messages: Sequence[MessageLike],
        language_hint: str | None = None,
    ) -> InferenceResponse:
        """Same as send_request, but keeps which provider/model answered."""
        request = self._build_request(user_id, tier, messages, language_hint)
        plan = self._policy.plan(tier, provider, self._overrides.get(provider))
        response = await self._fallback.run(plan, request)
        logger.info(f"Request for user {user_id} served by {response.provider.value}/{response.model}")
        return response

    async def chat(
        self,
        user_id: str,
        tier: Tier,
        provider: Provider,
        message: str,
        history: Iterable[ChatMessage] = (),
        language: str = "en",
    ) -> str:
        """One chat turn with the TruthLens assistant persona."""
        messages = build_chat_messages(message, history)
        return await self.send_request(user_id, tier, provider, messages, language_hint=language)

    async def race(
        self,
        user_id: str,
        tier: Tier,
        feature: Feature,
        messages: Sequence[MessageLike],
        language_hint: str | None = None,
        lineup_tier: Tier | None = None,
    ) -> InferenceResponse:
        """
        Race the request across the lineup for a feature.

        Credentials always resolve under ``tier``; ``lineup_tier`` only picks
        which providers race (defaults to ``tier``).

        Raises:
            RaceFailedError: Every candidate failed, including when no candidate
                has a usable credential (reported as the aggregated credential error)
            ClassifiedError: API_ERROR when the lineup itself is empty
        """
        request = self._build_request(user_id, tier, messages, language_hint)
        scope = self._resolver.scope(user_id, tier)
        lineup_tier = lineup_tier or tier
        providers = await self._policy.race_providers(lineup_tier, feature, scope.is_plausible)
        if not providers:
            # Credential failures are memoized in the scope, so this race
            # makes no calls and reports why each candidate was unusable
            providers = list(self._policy.lineup(lineup_tier, feature))
        return await self._racer.race(providers, request, credentials=scope)

    async def send_with_fallback(
        self,
        user_id: str,
        tier: Tier,
        providers: Sequence[Provider],
        messages: Sequence[MessageLike],
        language_hint: str | None = None,
    ) -> InferenceResponse:
        """Fallback chain across several providers' plans, in the given order."""
        request = self._build_request(user_id, tier, messages, language_hint)
        plan = self._policy.fallback_plan(tier, providers, self._overrides)
        return await self._fallback.run(plan, request)

    async def verify_credential(self, provider: Provider, secret: str) -> bool:
        """
        Check a key with one cheap call before the user saves it.

        No-auth providers are always valid. Any failure counts as invalid,
        including a blank key; the reason is logged, not returned.
        """
        if not provider.requires_auth:
            return True
        if not secret or not secret.strip():
            logger.warning(f"Blank {provider.value} key rejected without a call")
            return False

        adapter = self._adapters.get(provider)
        if adapter is None:
            logger.warning(f"No adapter for {provider.value}; cannot verify key")
            return False
        credential = Credential(provider=provider, secret=secret, source=CredentialSource.USER)
        greeting = [ChatMessage(role="user", content="Hi")]
        try:
            await adapter.call(greeting, VERIFICATION_MODELS.get(provider), credential)
        except RawProviderError as e:
            logger.warning(
                f"{provider.value} key {mask_secret(secret)} failed verification "
                f"(status={e.status})"
            )
            return False
        return True

    @staticmethod
    def _build_request(
        user_id: str,
        tier: Tier,
        messages: Sequence[MessageLike],
        language_hint: str | None,
    ) -> InferenceRequest:
        chat_messages = [
            m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in messages
        ]
        return InferenceRequest(
            user_id=user_id,
            tier=tier,
            messages=with_language(chat_messages, language_hint),
            language_hint=language_hint,
        )
