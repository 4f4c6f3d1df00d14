"""
Inference Orchestration Layer.

Decides which provider and model serve a request, which credential it uses,
and how failures are normalized, retried and raced:

    InferenceGateway.send_request(user_id, tier, provider, messages)
                                        ↓
    CredentialResolver  →  ModelSelectionPolicy  →  Fallback / Racing dispatcher
                                        ↓
                        ProviderAdapter.call()  (see truthlens.providers)
                                        ↓
                          text  |  ClassifiedError

Key responsibilities:
- Resolve user vs. platform credentials by subscription tier
- Build ordered fallback plans and racing lineups
- Normalize every provider failure into four error kinds
- Race providers for latency, or walk a fallback chain for determinism

Everything is per request except the platform credential cache, which is an
explicit object shared through the resolver.
"""

from truthlens.inference.analysis import ProductAnalyzer, parse_analysis
from truthlens.inference.classifier import ErrorClassifier
from truthlens.inference.credentials import (
    CredentialResolver,
    CredentialScope,
    CredentialStore,
    InMemoryCredentialStore,
    PlatformCredentialCache,
)
from truthlens.inference.errors import ClassifiedError, ErrorKind, RaceFailedError, RawProviderError
from truthlens.inference.fallback import FallbackChainDispatcher
from truthlens.inference.gateway import InferenceGateway
from truthlens.inference.models import (
    ChatMessage,
    Credential,
    CredentialSource,
    Feature,
    InferenceRequest,
    InferenceResponse,
    ModelSpec,
    ProductAnalysis,
    Provider,
    Tier,
)
from truthlens.inference.policy import ModelSelectionPolicy
from truthlens.inference.racing import RacingDispatcher

__all__ = [
    "InferenceGateway",
    "ProductAnalyzer",
    "parse_analysis",
    "CredentialResolver",
    "CredentialScope",
    "CredentialStore",
    "InMemoryCredentialStore",
    "PlatformCredentialCache",
    "ModelSelectionPolicy",
    "FallbackChainDispatcher",
    "RacingDispatcher",
    "ErrorClassifier",
    "ClassifiedError",
    "ErrorKind",
    "RaceFailedError",
    "RawProviderError",
    "ChatMessage",
    "Credential",
    "CredentialSource",
    "Feature",
    "InferenceRequest",
    "InferenceResponse",
    "ModelSpec",
    "ProductAnalysis",
    "Provider",
    "Tier",
]
