"""
Unit tests for the inference data models.

Tests cover:
- Credential source/secret validation
- Immutability of requests and plan entries
- Tier and provider properties
- ProductAnalysis normalization of model output
"""

import pytest
from pydantic import ValidationError

from truthlens.inference.models import (
    ChatMessage,
    Credential,
    CredentialSource,
    InferenceRequest,
    ModelSpec,
    ProductAnalysis,
    Provider,
    Tier,
)


class TestCredential:
    def test_user_credential(self):
        credential = Credential(provider=Provider.GROQ, secret="gsk_test", source=CredentialSource.USER)
        assert credential.secret.get_secret_value() == "gsk_test"

    def test_secret_hidden_from_repr(self):
        credential = Credential(provider=Provider.GROQ, secret="gsk_supersecret", source=CredentialSource.USER)
        assert "gsk_supersecret" not in repr(credential)
        assert "gsk_supersecret" not in str(credential)

    def test_anonymous_for_self_hosted(self):
        credential = Credential.anonymous(Provider.SELF_HOSTED)
        assert credential.source is CredentialSource.NONE

    def test_anonymous_rejected_for_auth_provider(self):
        with pytest.raises(ValidationError):
            Credential.anonymous(Provider.OPENAI)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValidationError):
            Credential(provider=Provider.GEMINI, secret="", source=CredentialSource.PLATFORM)

    def test_frozen(self):
        credential = Credential(provider=Provider.GROQ, secret="k", source=CredentialSource.USER)
        with pytest.raises(ValidationError):
            credential.source = CredentialSource.PLATFORM


class TestRequestModels:
    def test_model_spec_requires_model_id(self):
        with pytest.raises(ValidationError):
            ModelSpec(provider=Provider.GROQ, model_id="")

    def test_model_spec_default_priority(self):
        assert ModelSpec(provider=Provider.GROQ, model_id="m").priority == 0

    def test_request_requires_messages(self):
        with pytest.raises(ValidationError):
            InferenceRequest(user_id="u1", tier=Tier.FREE, messages=())

    def test_request_messages_are_tuple(self):
        request = InferenceRequest(
            user_id="u1",
            tier=Tier.FREE,
            messages=[ChatMessage(role="user", content="hi")],
        )
        assert isinstance(request.messages, tuple)

    def test_request_is_frozen(self):
        request = InferenceRequest(
            user_id="u1", tier=Tier.FREE, messages=[ChatMessage(role="user", content="hi")]
        )
        with pytest.raises(ValidationError):
            request.tier = Tier.PRO

    def test_chat_message_role_is_closed(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="tool", content="x")


class TestEnums:
    @pytest.mark.parametrize("tier,expected", [
        (Tier.FREE, True),
        (Tier.PLUS, True),
        (Tier.PRO, False),
        (Tier.ULTIMATE, False),
    ])
    def test_requires_own_key(self, tier, expected):
        assert tier.requires_own_key is expected

    def test_only_self_hosted_is_keyless(self):
        keyless = [p for p in Provider if not p.requires_auth]
        assert keyless == [Provider.SELF_HOSTED]

    def test_every_provider_has_display_name(self):
        for provider in Provider:
            assert provider.display_name


class TestProductAnalysis:
    def test_parses_camel_case_score(self):
        analysis = ProductAnalysis.model_validate(
            {"grade": "B", "summary": "ok", "pros": ["fiber"], "cons": [], "healthScore": 71}
        )
        assert analysis.health_score == 71

    def test_populate_by_field_name(self):
        analysis = ProductAnalysis(grade="A", summary="great", health_score=95)
        assert analysis.pros == []

    def test_grade_normalized(self):
        analysis = ProductAnalysis.model_validate({"grade": " b+ ", "summary": "s", "healthScore": 60})
        assert analysis.grade == "B"

    def test_float_score_rounded(self):
        analysis = ProductAnalysis.model_validate({"grade": "C", "summary": "s", "healthScore": 48.6})
        assert analysis.health_score == 49

    def test_score_out_of_range(self):
        with pytest.raises(ValidationError):
            ProductAnalysis.model_validate({"grade": "A", "summary": "s", "healthScore": 140})

    def test_unknown_grade(self):
        with pytest.raises(ValidationError):
            ProductAnalysis.model_validate({"grade": "F", "summary": "s", "healthScore": 10})
