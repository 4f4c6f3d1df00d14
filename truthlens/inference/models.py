"""
Data models for the inference orchestration layer.

Everything here is immutable: a request, its credentials and its plan are
built per call, handed to adapters read-only, and discarded afterwards.

- Provider / Tier / CredentialSource / Feature: closed enumerations
- Credential: a secret plus where it came from
- ModelSpec: one entry of a fallback plan
- ChatMessage / InferenceRequest / InferenceResponse: the uniform call contract
- ProductAnalysis: structured result of the product-analysis feature
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


class Provider(str, Enum):
    """Closed set of inference backends known at build time."""

    GROQ = "groq"
    GEMINI = "gemini"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    SELF_HOSTED = "self_hosted"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def requires_auth(self) -> bool:
        """Self-hosted inference runs on our own server and takes no key."""
        return self is not Provider.SELF_HOSTED


_DISPLAY_NAMES = {
    Provider.GROQ: "Groq",
    Provider.GEMINI: "Google Gemini",
    Provider.OPENAI: "OpenAI",
    Provider.DEEPSEEK: "DeepSeek",
    Provider.OPENROUTER: "OpenRouter",
    Provider.SELF_HOSTED: "Azure AI (Self-Hosted)",
}


class Tier(str, Enum):
    """Subscription tiers, lowest first."""

    FREE = "free"
    PLUS = "plus"
    PRO = "pro"
    ULTIMATE = "ultimate"

    @property
    def requires_own_key(self) -> bool:
        """Free and Plus users bring their own key; Pro and Ultimate may use the platform's."""
        return self in (Tier.FREE, Tier.PLUS)


class CredentialSource(str, Enum):
    USER = "user"
    PLATFORM = "platform"
    NONE = "none"


class Feature(str, Enum):
    """Call sites that pick a racing lineup."""

    CHAT = "chat"
    PRODUCT_ANALYSIS = "product_analysis"
    GENERAL = "general"


class Credential(BaseModel):
    """
    A resolved credential for one provider.

    The secret is a SecretStr so it never shows up in reprs or log lines.
    Credentials are never persisted by this layer.
    """

    provider: Provider
    secret: SecretStr = Field(default=SecretStr(""))
    source: CredentialSource

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_source(self) -> "Credential":
        if self.source is CredentialSource.NONE and self.provider.requires_auth:
            raise ValueError(f"source 'none' is only valid for no-auth providers, not {self.provider.value}")
        if self.source is not CredentialSource.NONE and not self.secret.get_secret_value():
            raise ValueError(f"{self.source.value} credential for {self.provider.value} has an empty secret")
        return self

    @classmethod
    def anonymous(cls, provider: Provider) -> "Credential":
        return cls(provider=provider, source=CredentialSource.NONE)


class ModelSpec(BaseModel):
    """One attempt in a fallback plan. Lower priority runs first."""

    provider: Provider
    model_id: str = Field(min_length=1)
    priority: int = Field(default=0)

    model_config = ConfigDict(frozen=True)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str

    model_config = ConfigDict(frozen=True)


class InferenceRequest(BaseModel):
    """
    A single logical request.

    Messages are stored as a tuple of frozen ChatMessages, so the same request
    can be handed to any number of adapters without one attempt affecting the next.
    """

    user_id: str
    tier: Tier
    messages: tuple[ChatMessage, ...]
    language_hint: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("messages")
    @classmethod
    def _not_empty(cls, messages: tuple[ChatMessage, ...]) -> tuple[ChatMessage, ...]:
        if not messages:
            raise ValueError("Request must contain at least one message")
        return messages


class InferenceResponse(BaseModel):
    """Response text plus which provider/model produced it."""

    text: str
    provider: Provider
    model: str

    model_config = ConfigDict(frozen=True)


class ProductAnalysis(BaseModel):
    """Structured product verdict returned by the analysis feature."""

    grade: Literal["A", "B", "C", "D", "E"]
    summary: str
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    health_score: int = Field(ge=0, le=100, alias="healthScore")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("grade", mode="before")
    @classmethod
    def _normalize_grade(cls, value):
        # Models sometimes answer "b" or "B+"
        if isinstance(value, str):
            return value.strip()[:1].upper()
        return value

    @field_validator("health_score", mode="before")
    @classmethod
    def _round_score(cls, value):
        if isinstance(value, float):
            return round(value)
        return value
