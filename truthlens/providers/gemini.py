"""
Google Gemini adapter.

Gemini has no system role in its chat contents and expects every turn as a
list of content parts. The adapter folds system instructions into the first
user turn and sends each turn as text parts, which LiteLLM maps onto
Gemini's ``contents[].parts[]`` shape.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from truthlens.inference.models import ChatMessage, Provider
from truthlens.providers.base import ProviderAdapter


class GeminiAdapter(ProviderAdapter):
    provider = Provider.GEMINI

    def litellm_model(self, model_id: str) -> str:
        # Model ids copied from the Gemini console come as "models/gemini-1.5-pro"
        if model_id.startswith("models/"):
            model_id = model_id.split("/", 1)[1]
        return f"gemini/{model_id}"

    def serialize(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        system_text = "\n\n".join(m.content for m in messages if m.role == "system")
        turns = [m for m in messages if m.role != "system"]

        contents: list[dict[str, Any]] = []
        folded = not system_text
        for message in turns:
            text = message.content
            if not folded and message.role == "user":
                text = f"{system_text}\n\n{text}"
                folded = True
            contents.append(_turn(message.role, text))

        if not folded:
            # No user turn to carry the instructions; send them as the opening turn
            contents.insert(0, _turn("user", system_text))

        return contents


def _turn(role: str, text: str) -> dict[str, Any]:
    return {"role": role, "content": [{"type": "text", "text": text}]}
