"""
Error classification.

The ErrorClassifier is the single place where provider-specific failures are
mapped onto the four ErrorKinds. Dispatchers run every failure through it
before anything crosses their boundary.
"""

from __future__ import annotations

import logging
import re

from truthlens.inference.errors import ClassifiedError, ErrorKind, RawProviderError
from truthlens.inference.models import Provider

logger = logging.getLogger(__name__)

AUTH_STATUSES = frozenset({401, 403})
RATE_LIMIT_STATUS = 429

# Groq/OpenAI say "Invalid API Key" / "Incorrect API key provided"; Gemini answers
# 400 INVALID_ARGUMENT with "API key not valid"; some gateways only say "Unauthorized".
_AUTH_PATTERN = re.compile(
    r"api[ _-]?key not valid"
    r"|(invalid|incorrect|missing)[ _-]?api[ _-]?key"
    r"|invalid_api_key"
    r"|authentication"
    r"|unauthori[sz]ed"
    r"|permission[ _-]denied",
    re.IGNORECASE,
)
_RATE_LIMIT_PATTERN = re.compile(
    r"rate[ _-]?limit|too many requests|resource_exhausted|quota exceeded|exceeded your current quota",
    re.IGNORECASE,
)


class ErrorClassifier:
    """
    Maps raw failures to ClassifiedErrors.

    Rules, first match wins:
    1. Already classified errors pass through unchanged.
    2. Status 429 is RATE_LIMIT; 401/403 are INVALID_KEY.
    3. A body that talks about a bad or unauthorized key is INVALID_KEY.
    4. A body that talks about throttling or quota is RATE_LIMIT.
    5. A 404 from the self-hosted server means the model is not installed.
    6. Everything else is API_ERROR.

    The raw error is chained as ``__cause__`` of the result so it stays
    available to logs and debuggers without reaching user-facing text.
    """

    def classify(self, error: BaseException, provider: Provider | None) -> ClassifiedError:
        if isinstance(error, ClassifiedError):
            return error

        if isinstance(error, RawProviderError):
            result = self._classify_raw(error)
        else:
            result = ClassifiedError(ErrorKind.API_ERROR, provider)

        result.__cause__ = error
        logger.debug(
            f"Classified {type(error).__name__} from {provider.value if provider else 'unknown'} "
            f"as {result.kind.value}"
        )
        return result

    def _classify_raw(self, error: RawProviderError) -> ClassifiedError:
        provider = error.provider

        if error.status == RATE_LIMIT_STATUS:
            return ClassifiedError(ErrorKind.RATE_LIMIT, provider)
        if error.status in AUTH_STATUSES:
            return ClassifiedError(ErrorKind.INVALID_KEY, provider)

        body = error.body or ""
        if _AUTH_PATTERN.search(body):
            return ClassifiedError(ErrorKind.INVALID_KEY, provider)
        if _RATE_LIMIT_PATTERN.search(body):
            return ClassifiedError(ErrorKind.RATE_LIMIT, provider)

        if provider is Provider.SELF_HOSTED and error.status == 404:
            return ClassifiedError(
                ErrorKind.API_ERROR,
                provider,
                "The selected AI model is not installed on the self-hosted server. "
                "Ask an administrator to select an available model.",
            )

        return ClassifiedError(ErrorKind.API_ERROR, provider)
