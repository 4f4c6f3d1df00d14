"""
Prompt construction for the chat and product-analysis features.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence

from truthlens.inference.models import ChatMessage, Tier

LANGUAGES: dict[str, str] = {
    "en": "English",
    "ar": "Arabic",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "hi": "Hindi",
    "it": "Italian",
    "tr": "Turkish",
    "nl": "Dutch",
}

CHAT_SYSTEM_TEMPLATE = """You are TruthLens AI, a versatile assistant specializing in TWO main areas:
1. FOOD & NUTRITION: You help users understand food labels, ingredients, and healthy choices.
2. TECH & HARDWARE: You are an expert in PC building, component specs, and troubleshooting technical issues.

You are also a general helper for this application. If a user asks how to reset their password or how to use the scanner, guide them clearly.

RESPONSE STYLE:
- Use relevant emojis naturally.
- Be conversational, warm, and encouraging.
- Vary your wording and never repeat the same phrases.
- Keep responses concise but informative.
- Use bullet points and formatting for clarity.

IDENTITY KNOWLEDGE:
- TruthLens: an AI-powered app that helps users analyze products (Food & Tech) and build PCs.
- PC Builder: if asked about building a PC, offer to help select components or explain the PC Builder feature."""

# (persona, depth instruction) per tier
_ANALYSIS_DEPTH: dict[Tier, tuple[str, str]] = {
    Tier.FREE: (
        "helpful nutrition assistant",
        "Provide a brief 2-sentence summary. List 3 key pros and 3 key cons.",
    ),
    Tier.PLUS: (
        "expert dietician",
        "Provide a detailed paragraph summary. List 5 detailed pros and 5 cons. Focus on additives severity.",
    ),
    Tier.PRO: (
        "senior food scientist and toxicologist",
        "Provide a comprehensive, critical analysis (2 paragraphs). List 5-7 detailed pros and cons. "
        "Use rigorous health scoring.",
    ),
}
_ANALYSIS_DEPTH[Tier.ULTIMATE] = _ANALYSIS_DEPTH[Tier.PRO]


def language_name(code: str | None) -> str:
    """Human name for a language code; unknown or missing codes fall back to English."""
    if not code:
        return "English"
    return LANGUAGES.get(code.lower(), "English")


def language_instruction(code: str | None) -> str:
    name = language_name(code)
    return f"LANGUAGE: You MUST respond in {name}. All your responses should be written in {name}."


def with_language(messages: Sequence[ChatMessage], language_hint: str | None) -> tuple[ChatMessage, ...]:
    """
    Return messages with a response-language instruction applied.

    The instruction is appended to the first system message, or inserted as
    a new leading system message when there is none. Returns the input
    unchanged when there is no hint.
    """
    if not language_hint:
        return tuple(messages)

    instruction = language_instruction(language_hint)
    result = list(messages)
    for index, message in enumerate(result):
        if message.role == "system":
            result[index] = ChatMessage(role="system", content=f"{message.content}\n\n{instruction}")
            return tuple(result)
    return (ChatMessage(role="system", content=instruction), *result)


def build_chat_messages(
    message: str,
    history: Iterable[ChatMessage] = (),
) -> list[ChatMessage]:
    """
    Persona system prompt + prior turns + the new user message.

    Raises:
        ValueError: If the message is empty or whitespace-only
    """
    message = message.strip()
    if not message:
        raise ValueError("Message cannot be empty")

    turns = [m for m in history if m.role != "system"]
    return [
        ChatMessage(role="system", content=CHAT_SYSTEM_TEMPLATE),
        *turns,
        ChatMessage(role="user", content=message),
    ]


def build_analysis_prompt(
    tier: Tier,
    name: str,
    ingredients: Sequence[str],
    nutriments: dict | None = None,
) -> str:
    persona, depth = _ANALYSIS_DEPTH[tier]
    return f"""Role: You are a {persona}.
Analyze this product: "{name}".
Ingredients: {', '.join(ingredients) or 'unknown'}.
Nutriments: {json.dumps(nutriments or {}, default=str)}.

Task:
{depth}
Calculate a Health Score (0-100) based on ingredients quality and nutritional density.
Determine a letter grade (A, B, C, D, E).

Return JSON ONLY:
{{
    "grade": "A/B/C/D/E",
    "summary": "string",
    "pros": ["string", ...],
    "cons": ["string", ...],
    "healthScore": number
}}"""
