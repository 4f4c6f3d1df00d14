"""
Integration tests for the fully wired inference layer.

Builds everything through InferenceComponents from Settings, with only
LiteLLM's ``acompletion`` mocked, and checks what actually goes over the wire.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from truthlens.components import InferenceComponents
from truthlens.config.settings import InferenceSettings, ProviderSettings, Settings
from truthlens.inference.credentials import InMemoryCredentialStore
from truthlens.inference.errors import ClassifiedError, ErrorKind
from truthlens.inference.models import Provider, Tier

VERDICT = '```json\n{"grade": "A", "summary": "Clean label.", "pros": ["whole grain"], "cons": [], "healthScore": 88}\n```'


def _make_response(text: str) -> MagicMock:
    choice = MagicMock()
    choice.message.content = text
    response = MagicMock()
    response.choices = [choice]
    return response


class FakeAPIError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        providers=ProviderSettings(
            gemini_api_key="gem_platform",
            fallback_models={"groq": "model-a,model-b", "anthropic": "claude"},
            self_hosted_url="http://ollama:11434",
        ),
        inference=InferenceSettings(chain_timeout=5.0),
    )


@pytest.fixture
def factory(settings):
    return InferenceComponents(settings)


@pytest.fixture
def store(settings):
    return InMemoryCredentialStore.from_settings(settings.providers)


USER_MESSAGE = [{"role": "user", "content": "Is granola healthy?"}]


class TestFactory:
    def test_unknown_override_ignored(self, factory):
        assert factory.model_overrides() == {Provider.GROQ: "model-a,model-b"}

    def test_policy_includes_settings_models(self, factory):
        plan = factory.create_policy().plan(Tier.FREE, Provider.SELF_HOSTED)
        assert [spec.model_id for spec in plan] == ["llama3.2:1b"]


class TestWiredGateway:
    @pytest.mark.asyncio
    async def test_pro_gemini_with_platform_key(self, factory, store):
        gateway = factory.create_gateway(store)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _make_response("Moderately.")
            text = await gateway.send_request("u1", Tier.PRO, Provider.GEMINI, USER_MESSAGE, "en")

        assert text == "Moderately."
        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "gemini/gemini-1.5-pro"
        assert kwargs["api_key"] == "gem_platform"
        # System language instruction folded into the single user turn
        assert len(kwargs["messages"]) == 1
        assert "English" in kwargs["messages"][0]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_override_chain_falls_back(self, factory, store):
        store.set_user_secret("u1", Provider.GROQ, "gsk_user")
        gateway = factory.create_gateway(store)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.side_effect = [FakeAPIError("upstream overloaded", 503), _make_response("ok")]
            text = await gateway.send_request("u1", Tier.FREE, Provider.GROQ, USER_MESSAGE)

        assert text == "ok"
        models = [c.kwargs["model"] for c in mock_completion.call_args_list]
        assert models == ["groq/model-a", "groq/model-b"]

    @pytest.mark.asyncio
    async def test_bad_key_stops_chain(self, factory, store):
        store.set_user_secret("u1", Provider.GROQ, "gsk_revoked")
        gateway = factory.create_gateway(store)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.side_effect = FakeAPIError("Invalid API Key", 401)
            with pytest.raises(ClassifiedError) as exc_info:
                await gateway.send_request("u1", Tier.FREE, Provider.GROQ, USER_MESSAGE)

        assert exc_info.value.kind is ErrorKind.INVALID_KEY
        assert mock_completion.await_count == 1

    @pytest.mark.asyncio
    async def test_self_hosted_without_key(self, factory, store):
        gateway = factory.create_gateway(store)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _make_response("Local answer.")
            await gateway.send_request("u1", Tier.FREE, Provider.SELF_HOSTED, USER_MESSAGE)

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "ollama_chat/llama3.2:1b"
        assert kwargs["api_base"] == "http://ollama:11434"
        assert "api_key" not in kwargs

    @pytest.mark.asyncio
    async def test_product_analysis_races_available_providers(self, factory, store):
        gateway = factory.create_gateway(store)
        analyzer = factory.create_analyzer(gateway)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _make_response(VERDICT)
            analysis = await analyzer.analyze("u1", Tier.PRO, "Granola", ["oats", "almonds"])

        assert analysis.grade == "A"
        assert analysis.health_score == 88
        # Only Gemini has a platform key, so it is the only candidate
        models = [c.kwargs["model"] for c in mock_completion.call_args_list]
        assert models == ["gemini/gemini-1.5-flash"]

    @pytest.mark.asyncio
    async def test_rate_limited_analysis_keeps_paid_credentials_on_retry(self, factory):
        store = InMemoryCredentialStore(
            platform_secrets={p: f"key-{p.value}" for p in Provider if p.requires_auth}
        )
        gateway = factory.create_gateway(store)
        analyzer = factory.create_analyzer(gateway)

        with patch("truthlens.providers.base.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.side_effect = FakeAPIError("Rate limit exceeded", 429)
            with pytest.raises(ClassifiedError) as exc_info:
                await analyzer.analyze("u1", Tier.PRO, "Granola", ["oats"])

        assert exc_info.value.kind is ErrorKind.RATE_LIMIT
        # Paid lineup first, then the free lineup still served by platform keys
        keys = [c.kwargs["api_key"] for c in mock_completion.call_args_list]
        assert sorted(keys) == sorted(["key-groq", "key-deepseek", "key-gemini", "key-gemini", "key-groq"])
