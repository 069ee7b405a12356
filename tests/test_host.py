"""Tests for the CommandHost base class."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmdwire.config import Config
from cmdwire.exceptions import ArgumentCountError, DuplicateCommandError
from cmdwire.host import CommandHost
from cmdwire.markers import callback_command, reply_command, text_command


class EchoBot(CommandHost):
    """Minimal bot: every handler sends through the client."""

    @text_command("echo")
    async def echo(self, client, update):
        await client.send_message(update.chat_id, update.text)
        return self

    @callback_command("like")
    async def like(self, client, update):
        await client.answer_callback(update.callback_id, "liked")

    @reply_command("echo")
    async def echo_reply(self, client, update):
        return "reply"

    @text_command("add")
    def add(self, a: int, b: int):
        return a + b


class Extras:
    @text_command("extra")
    def extra(self):
        return "extra"


class TestCommandHost:
    """Tests for CommandHost registration and processing."""

    def test_registers_own_class_on_construction(self):
        bot = EchoBot()
        assert bot.registry.owner is bot
        assert bot.registry.commands("text") == ["add", "echo"]
        assert bot.registry.commands("callback") == ["like"]

    def test_extra_sources(self):
        bot = EchoBot(sources=[Extras()])
        assert "extra" in bot.registry

    def test_duplicate_in_extra_source_aborts_construction(self):
        class Clash:
            @text_command("echo")
            def echo(self):
                pass

        with pytest.raises(DuplicateCommandError):
            EchoBot(sources=[Clash()])

    def test_register_commands(self):
        bot = EchoBot()
        entries = bot.register_commands(Extras(), "text")
        assert [e.command for e in entries] == ["extra"]

    @pytest.mark.asyncio
    async def test_process_update_runs_on_host(self):
        bot = EchoBot()
        client = AsyncMock()
        update = MagicMock(chat_id=7, text="hi")

        result = await bot.process_update("echo", client, update)

        assert result is bot
        client.send_message.assert_awaited_once_with(7, "hi")

    @pytest.mark.asyncio
    async def test_process_update_with_category(self):
        bot = EchoBot()
        client = AsyncMock()
        update = MagicMock(callback_id="cb1")

        await bot.process_update("like", client, update, category="callback")
        client.answer_callback.assert_awaited_once_with("cb1", "liked")

        assert await bot.process_update("echo", client, update, category="reply") == "reply"

    @pytest.mark.asyncio
    async def test_process_command_validates(self):
        bot = EchoBot()
        assert await bot.process_command("add", [2, 3]) == 5
        with pytest.raises(ArgumentCountError):
            await bot.process_command("add", [2])

    def test_config_applies_registry_settings(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CMDWIRE_CASE_SENSITIVE", raising=False)
        monkeypatch.delenv("CMDWIRE_TYPE_CHECK", raising=False)
        (tmp_path / "settings.yaml").write_text(
            "commands:\n  case_sensitive: false\n  type_check: subclass\n"
        )
        bot = EchoBot(config=Config(config_dir=tmp_path))
        assert bot.registry.case_sensitive is False
        assert bot.registry.type_check == "subclass"
        assert "ECHO" in bot.registry
