"""
Tests for the TruthLens CLI.

  truthlens chat MESSAGE [--provider P] [--tier T] [--user-key K]
  truthlens analyze NAME [--ingredients a,b] [--tier T]
  truthlens verify-key PROVIDER KEY
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from truthlens.__main__ import cmd_analyze, cmd_chat, cmd_config, cmd_verify_key, create_parser
from truthlens.config.settings import Settings
from truthlens.inference.errors import ClassifiedError, ErrorKind
from truthlens.inference.models import ProductAnalysis, Provider, Tier


@pytest.fixture
def settings():
    return Settings(_env_file=None)


class TestParser:
    def test_chat_defaults(self):
        args = create_parser().parse_args(["chat", "Is sugar bad?"])
        assert args.command == "chat"
        assert args.provider == "groq"
        assert args.tier == "free"
        assert args.user_key is None
        assert args.language == "en"

    def test_chat_rejects_unknown_provider(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["chat", "hi", "--provider", "anthropic"])

    def test_analyze_defaults_to_pro(self):
        args = create_parser().parse_args(["analyze", "Oat Bar", "--ingredients", "oats,honey"])
        assert args.tier == "pro"
        assert args.ingredients == "oats,honey"

    def test_verify_key_requires_key(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["verify-key", "groq"])


class TestCommands:
    def test_config(self, settings):
        assert cmd_config(settings) == 0

    @pytest.mark.asyncio
    async def test_chat_prints_reply(self, settings, capsys):
        args = create_parser().parse_args(["chat", "Is sugar bad?", "--user-key", "gsk_cli"])

        with patch("truthlens.__main__.InferenceComponents") as MockComponents:
            gateway = MagicMock()
            gateway.chat = AsyncMock(return_value="In moderation it is fine.")
            MockComponents.return_value.create_gateway.return_value = gateway

            exit_code = await cmd_chat(args, settings)

        assert exit_code == 0
        assert "In moderation it is fine." in capsys.readouterr().out
        store = MockComponents.return_value.create_gateway.call_args.args[0]
        assert await store.get_user_secret("cli", Provider.GROQ) == "gsk_cli"
        assert gateway.chat.await_args.args[:3] == ("cli", Tier.FREE, Provider.GROQ)

    @pytest.mark.asyncio
    async def test_chat_classified_error(self, settings, capsys):
        args = create_parser().parse_args(["chat", "hi", "--provider", "openai"])

        with patch("truthlens.__main__.InferenceComponents") as MockComponents:
            gateway = MagicMock()
            gateway.chat = AsyncMock(side_effect=ClassifiedError(ErrorKind.MISSING_KEY, Provider.OPENAI))
            MockComponents.return_value.create_gateway.return_value = gateway

            exit_code = await cmd_chat(args, settings)

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "MISSING_KEY" in err
        assert "OpenAI" in err

    @pytest.mark.asyncio
    async def test_analyze(self, settings, capsys):
        args = create_parser().parse_args(["analyze", "Oat Bar", "--ingredients", "oats, honey"])
        verdict = ProductAnalysis(grade="B", summary="Decent.", pros=["fiber"], cons=["sugar"], health_score=70)

        with patch("truthlens.__main__.InferenceComponents") as MockComponents:
            analyzer = MagicMock()
            analyzer.analyze = AsyncMock(return_value=verdict)
            MockComponents.return_value.create_analyzer.return_value = analyzer

            exit_code = await cmd_analyze(args, settings)

        assert exit_code == 0
        assert analyzer.analyze.await_args.args == ("cli", Tier.PRO, "Oat Bar", ["oats", "honey"])
        out = capsys.readouterr().out
        assert "Grade: B" in out
        assert "+ fiber" in out

    @pytest.mark.asyncio
    async def test_verify_key_masks_key(self, settings, capsys):
        args = create_parser().parse_args(["verify-key", "groq", "gsk_abcdefgh1234"])

        with patch("truthlens.__main__.InferenceComponents") as MockComponents:
            gateway = MagicMock()
            gateway.verify_credential = AsyncMock(return_value=False)
            MockComponents.return_value.create_gateway.return_value = gateway

            exit_code = await cmd_verify_key(args, settings)

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "invalid" in out
        assert "gsk_abcdefgh1234" not in out
        assert "****1234" in out
