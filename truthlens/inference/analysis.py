"""
Tier-aware product analysis.

Builds a tier-specific analysis prompt, races it across the tier's provider
lineup, and parses the JSON verdict. Paid tiers that fail get one more try
with the free-tier prompt and lineup, still under their own credentials. If
that fails too, the first error is the one the caller sees.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from truthlens.inference.errors import ClassifiedError, ErrorKind
from truthlens.inference.gateway import InferenceGateway
from truthlens.inference.models import ChatMessage, Feature, ProductAnalysis, Provider, Tier
from truthlens.inference.prompts import build_analysis_prompt

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_analysis(text: str, provider: Provider | None = None) -> ProductAnalysis:
    """
    Parse a model's JSON verdict, tolerating markdown code fences and chatter
    around the JSON object.

    Raises:
        ClassifiedError: API_ERROR if no valid analysis object can be read
    """
    cleaned = _FENCE.sub("", text).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise ClassifiedError(ErrorKind.API_ERROR, provider)

    try:
        return ProductAnalysis.model_validate(json.loads(cleaned[start : end + 1]))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Unreadable analysis from {provider.value if provider else 'unknown'}: {e}")
        raise ClassifiedError(ErrorKind.API_ERROR, provider) from e


class ProductAnalyzer:
    """
    Product analysis on top of the gateway's racing path.

    Example::

        analyzer = ProductAnalyzer(gateway)
        verdict = await analyzer.analyze("user-1", Tier.PRO, "Oat Bar", ["oats", "honey"])
        print(verdict.grade, verdict.health_score)
    """

    def __init__(self, gateway: InferenceGateway):
        self._gateway = gateway

    async def analyze(
        self,
        user_id: str,
        tier: Tier,
        name: str,
        ingredients: Sequence[str],
        nutriments: dict[str, Any] | None = None,
    ) -> ProductAnalysis:
        """
        Analyze a product for a user's tier.

        Raises:
            ClassifiedError: The first failure, when the free-tier retry fails too
        """
        try:
            return await self._analyze_as(user_id, tier, tier, name, ingredients, nutriments)
        except ClassifiedError as e:
            if tier is Tier.FREE:
                raise
            logger.warning(f"{tier.value} analysis of {name!r} failed ({e.kind.value}); retrying with the free lineup")
            first_error = e

        try:
            return await self._analyze_as(user_id, tier, Tier.FREE, name, ingredients, nutriments)
        except ClassifiedError as retry_error:
            logger.warning(f"Free-lineup retry of {name!r} failed ({retry_error.kind.value})")
            raise first_error

    async def _analyze_as(
        self,
        user_id: str,
        tier: Tier,
        prompt_tier: Tier,
        name: str,
        ingredients: Sequence[str],
        nutriments: dict[str, Any] | None,
    ) -> ProductAnalysis:
        # tier governs credentials; prompt_tier picks the prompt depth and the lineup
        prompt = build_analysis_prompt(prompt_tier, name, ingredients, nutriments)
        messages = [ChatMessage(role="user", content=prompt)]
        response = await self._gateway.race(
            user_id, tier, Feature.PRODUCT_ANALYSIS, messages, lineup_tier=prompt_tier
        )
        return parse_analysis(response.text, response.provider)
