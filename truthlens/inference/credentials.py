"""
Credential resolution.

Decides, per request and per provider, which secret a call should use and
whether the call is permitted at all under the user's subscription tier.

    CredentialStore  (external: user keys + platform keys)
          ↓
    PlatformCredentialCache  (short-lived snapshot of platform keys)
          ↓
    CredentialResolver.resolve(user_id, tier, provider)
          ↓
    CredentialScope  (per-request memo used by the dispatchers)

The platform cache is the only shared mutable state in the orchestration
layer. It is an explicit object injected into the resolver; nothing here
lives at module level.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from truthlens.inference.errors import ClassifiedError, ErrorKind
from truthlens.inference.models import Credential, CredentialSource, Provider, Tier

if TYPE_CHECKING:
    from truthlens.config.settings import ProviderSettings

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 60.0
DEFAULT_RETRY_BACKOFF = 5.0


class CredentialStore(ABC):
    """
    Read interface to wherever keys are persisted.

    User keys are scoped by ``(user_id, provider)``; platform keys by provider.
    The orchestration layer only ever reads through this interface.
    """

    @abstractmethod
    async def get_user_secret(self, user_id: str, provider: Provider) -> str | None:
        """Return the user's own key for a provider, or None if they have not added one."""

    @abstractmethod
    async def get_platform_secrets(self) -> Mapping[Provider, str]:
        """Return every platform-wide key the operator has configured."""


class InMemoryCredentialStore(CredentialStore):
    """
    Dictionary-backed store.

    Used by the CLI and tests, and as the seam where a real persistence
    backend (database, secrets manager) plugs in.
    """

    def __init__(
        self,
        platform_secrets: Mapping[Provider, str] | None = None,
        user_secrets: Mapping[tuple[str, Provider], str] | None = None,
    ):
        self._platform = dict(platform_secrets or {})
        self._users = dict(user_secrets or {})

    @classmethod
    def from_settings(cls, providers_settings: ProviderSettings) -> "InMemoryCredentialStore":
        """Seed platform keys from ``ProviderSettings``."""
        return cls(
            platform_secrets={
                Provider(name): secret for name, secret in providers_settings.platform_keys().items()
            }
        )

    async def get_user_secret(self, user_id: str, provider: Provider) -> str | None:
        return self._users.get((user_id, provider)) or None

    async def get_platform_secrets(self) -> Mapping[Provider, str]:
        return dict(self._platform)

    def set_user_secret(self, user_id: str, provider: Provider, secret: str) -> None:
        self._users[(user_id, provider)] = secret
        logger.info(f"Saved {provider.value} key for user {user_id}")

    def delete_user_secret(self, user_id: str, provider: Provider) -> None:
        if self._users.pop((user_id, provider), None) is not None:
            logger.info(f"Deleted {provider.value} key for user {user_id}")


class PlatformCredentialCache:
    """
    Read-through cache of platform keys with a short TTL.

    Reads return an immutable snapshot that is swapped in whole on refresh, so
    a reader sees either the old or the new set of keys, never a mix.
    Concurrent readers that find the snapshot stale share one refresh
    (single flight); the refresh is shielded so a cancelled reader does not
    abort it for the others. If a refresh fails and an older snapshot exists,
    the stale snapshot is served, the failure is logged, and the store is not
    asked again until ``retry_backoff`` seconds have passed.

    Args:
        store: Source of platform secrets
        ttl: Seconds a snapshot stays fresh
        retry_backoff: Seconds to keep serving a stale snapshot after a failed refresh
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        store: CredentialStore,
        ttl: float = DEFAULT_CACHE_TTL,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._ttl = ttl
        self._retry_backoff = retry_backoff
        self._clock = clock
        self._snapshot: Mapping[Provider, str] | None = None
        self._expires_at = 0.0
        self._inflight: asyncio.Future[Mapping[Provider, str]] | None = None
        self.refresh_count = 0

    def _is_fresh(self) -> bool:
        return self._snapshot is not None and self._clock() < self._expires_at

    async def snapshot(self) -> Mapping[Provider, str]:
        """Current platform keys, refreshing first if the snapshot is stale."""
        if self._is_fresh():
            return self._snapshot

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())

        try:
            return await asyncio.shield(self._inflight)
        except Exception as e:
            if self._snapshot is not None:
                logger.warning(f"Platform key refresh failed, serving stale snapshot: {e}")
                return self._snapshot
            raise

    async def get(self, provider: Provider) -> str | None:
        return (await self.snapshot()).get(provider)

    def invalidate(self) -> None:
        """Force the next read to refresh."""
        self._expires_at = float("-inf")

    async def _refresh(self) -> Mapping[Provider, str]:
        try:
            secrets = await self._store.get_platform_secrets()
        except Exception:
            # Only read while a stale snapshot exists
            self._expires_at = self._clock() + self._retry_backoff
            raise

        snapshot = MappingProxyType({provider: secret for provider, secret in secrets.items() if secret})
        self._snapshot = snapshot
        self._expires_at = self._clock() + self._ttl
        self.refresh_count += 1
        logger.debug(f"Platform keys refreshed: {sorted(p.value for p in snapshot)}")
        return snapshot


class CredentialResolver:
    """
    Resolves the credential for one (user, tier, provider) triple.

    Rules, in order:
    1. A no-auth provider gets an anonymous credential; tier does not matter.
    2. A user's own key always wins, on every tier.
    3. Tiers that do not require an own key fall back to the platform key.
       A missing platform key is operator misconfiguration (API_ERROR).
    4. Otherwise the user must add a key (MISSING_KEY).

    Args:
        store: User/platform key store
        platform_cache: Shared cache of platform keys
    """

    def __init__(self, store: CredentialStore, platform_cache: PlatformCredentialCache):
        self._store = store
        self._platform_cache = platform_cache

    async def resolve(self, user_id: str, tier: Tier, provider: Provider) -> Credential:
        """
        Resolve a credential.

        Raises:
            ClassifiedError: MISSING_KEY when the tier requires an own key and
                none exists; API_ERROR when the platform key is absent for a
                tier entitled to it, or when the store itself fails.
        """
        if not provider.requires_auth:
            return Credential.anonymous(provider)

        try:
            user_secret = await self._store.get_user_secret(user_id, provider)
        except Exception as e:
            logger.error(f"Credential store lookup failed for {provider.value}: {e}")
            raise ClassifiedError(ErrorKind.API_ERROR, provider) from e

        if user_secret:
            return Credential(provider=provider, secret=user_secret, source=CredentialSource.USER)

        if not tier.requires_own_key:
            try:
                platform_secret = await self._platform_cache.get(provider)
            except Exception as e:
                logger.error(f"Platform key lookup failed for {provider.value}: {e}")
                raise ClassifiedError(ErrorKind.API_ERROR, provider) from e

            if not platform_secret:
                raise ClassifiedError(
                    ErrorKind.API_ERROR,
                    provider,
                    f"{provider.display_name} is not configured by the operator. Please try another provider.",
                )
            return Credential(provider=provider, secret=platform_secret, source=CredentialSource.PLATFORM)

        raise ClassifiedError(ErrorKind.MISSING_KEY, provider)

    def scope(self, user_id: str, tier: Tier) -> "CredentialScope":
        return CredentialScope(self, user_id, tier)


class CredentialScope:
    """
    Per-request memo of credential outcomes.

    The first resolve() for a provider hits the resolver; later calls within
    the same request return the same Credential, or re-raise the same
    ClassifiedError, without another lookup.
    """

    def __init__(self, resolver: CredentialResolver, user_id: str, tier: Tier):
        self._resolver = resolver
        self.user_id = user_id
        self.tier = tier
        self._outcomes: dict[Provider, Credential | ClassifiedError] = {}

    async def resolve(self, provider: Provider) -> Credential:
        if provider not in self._outcomes:
            try:
                self._outcomes[provider] = await self._resolver.resolve(self.user_id, self.tier, provider)
            except ClassifiedError as e:
                self._outcomes[provider] = e

        outcome = self._outcomes[provider]
        if isinstance(outcome, ClassifiedError):
            raise outcome
        return outcome

    async def is_plausible(self, provider: Provider) -> bool:
        """Pre-check for racing lineups. The outcome is memoized for the race itself."""
        try:
            await self.resolve(provider)
        except ClassifiedError:
            return False
        return True

    def failed(self, provider: Provider) -> bool:
        """True if this provider's credential has already failed to resolve."""
        return isinstance(self._outcomes.get(provider), ClassifiedError)
