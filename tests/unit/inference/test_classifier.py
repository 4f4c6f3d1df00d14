"""
Unit tests for ErrorClassifier.

Each raw provider failure must land on exactly one of the four error kinds,
and raw bodies must never end up in the user-facing message.
"""

import pytest

from truthlens.inference.classifier import ErrorClassifier
from truthlens.inference.errors import ClassifiedError, ErrorKind, RawProviderError
from truthlens.inference.models import Provider


@pytest.fixture
def classifier():
    return ErrorClassifier()


class TestStatusCodes:
    def test_429_is_rate_limit(self, classifier):
        error = RawProviderError(Provider.GROQ, 429, "slow down")
        assert classifier.classify(error, Provider.GROQ).kind is ErrorKind.RATE_LIMIT

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses_are_invalid_key(self, classifier, status):
        error = RawProviderError(Provider.OPENAI, status, "nope")
        assert classifier.classify(error, Provider.OPENAI).kind is ErrorKind.INVALID_KEY

    def test_500_is_api_error(self, classifier):
        error = RawProviderError(Provider.DEEPSEEK, 500, "Internal server error")
        assert classifier.classify(error, Provider.DEEPSEEK).kind is ErrorKind.API_ERROR

    def test_no_status_is_api_error(self, classifier):
        error = RawProviderError(Provider.GROQ, None, "Connection refused")
        assert classifier.classify(error, Provider.GROQ).kind is ErrorKind.API_ERROR


class TestBodyPatterns:
    def test_gemini_bad_key_on_400(self, classifier):
        error = RawProviderError(Provider.GEMINI, 400, "API key not valid. Please pass a valid API key.")
        assert classifier.classify(error, Provider.GEMINI).kind is ErrorKind.INVALID_KEY

    def test_invalid_api_key_body(self, classifier):
        error = RawProviderError(Provider.GROQ, None, "Error code: invalid_api_key")
        assert classifier.classify(error, Provider.GROQ).kind is ErrorKind.INVALID_KEY

    def test_plain_400_is_not_auth(self, classifier):
        error = RawProviderError(Provider.OPENAI, 400, "Bad request: context length exceeded")
        assert classifier.classify(error, Provider.OPENAI).kind is ErrorKind.API_ERROR

    def test_quota_body_is_rate_limit(self, classifier):
        error = RawProviderError(Provider.GEMINI, 500, "RESOURCE_EXHAUSTED: quota exceeded")
        assert classifier.classify(error, Provider.GEMINI).kind is ErrorKind.RATE_LIMIT

    def test_rate_limit_phrase(self, classifier):
        error = RawProviderError(Provider.OPENROUTER, None, "Rate limit reached for model")
        assert classifier.classify(error, Provider.OPENROUTER).kind is ErrorKind.RATE_LIMIT


class TestSelfHosted:
    def test_missing_model_message(self, classifier):
        error = RawProviderError(Provider.SELF_HOSTED, 404, 'model "llama3.2:1b" not found')
        result = classifier.classify(error, Provider.SELF_HOSTED)
        assert result.kind is ErrorKind.API_ERROR
        assert "not installed" in result.message

    def test_404_elsewhere_is_generic(self, classifier):
        error = RawProviderError(Provider.OPENAI, 404, "The model does not exist")
        result = classifier.classify(error, Provider.OPENAI)
        assert result.kind is ErrorKind.API_ERROR
        assert "not installed" not in result.message


class TestClassifierContract:
    def test_classified_error_passes_through(self, classifier):
        original = ClassifiedError(ErrorKind.MISSING_KEY, Provider.GROQ)
        assert classifier.classify(original, Provider.GEMINI) is original

    def test_unknown_exception_is_api_error(self, classifier):
        result = classifier.classify(RuntimeError("boom"), Provider.DEEPSEEK)
        assert result.kind is ErrorKind.API_ERROR
        assert result.provider is Provider.DEEPSEEK

    def test_raw_body_not_in_message(self, classifier):
        error = RawProviderError(Provider.GROQ, 500, "stacktrace at internal.server.secret_host:8080")
        result = classifier.classify(error, Provider.GROQ)
        assert "secret_host" not in result.message

    def test_cause_is_original(self, classifier):
        error = RawProviderError(Provider.GROQ, 429, "slow down")
        assert classifier.classify(error, Provider.GROQ).__cause__ is error

    def test_messages_name_provider(self, classifier):
        error = RawProviderError(Provider.GEMINI, 401, "denied")
        result = classifier.classify(error, Provider.GEMINI)
        assert "Google Gemini" in result.message
        assert result.to_dict() == {
            "code": "INVALID_KEY",
            "message": result.message,
            "provider": "gemini",
        }
