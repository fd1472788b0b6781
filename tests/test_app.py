"""Tests for CharmApplication wiring and system variables."""

import pytest

from charmscript import CharmApplication, __version__
from charmscript.runtime import Actor, Scope


class TestSystemVariables:
    """Producers registered at startup."""

    @pytest.mark.asyncio
    async def test_uptime_follows_clock(self, app, clock):
        clock.advance(65)
        assert await app.evaluate("Up for $$uptime") == "Up for 1m 5s"
        clock.advance(3600)
        assert await app.evaluate("$$uptime") == "1h 1m 5s"

    @pytest.mark.asyncio
    async def test_version(self, app):
        assert await app.evaluate("v$$version") == f"v{__version__}"
        assert __version__ == "0.1.0"

    @pytest.mark.asyncio
    async def test_timestamp_is_fresh_text(self, app):
        stamp = await app.evaluate("$$timestamp")
        assert isinstance(stamp, str)
        assert stamp.endswith("+00:00")

    def test_elapsed(self, app, clock):
        clock.advance(2.5)
        assert app.elapsed == 2.5


class TestWiring:
    """One application owns its registries."""

    def test_applications_are_independent(self, config, clock):
        first = CharmApplication(config, clock=clock)
        second = CharmApplication(config, clock=clock)

        @first.charm("only_here")
        async def only_here(args, ctx):
            return "x"

        first.command("ping", "$say[pong]")
        assert "only_here" in first.registry
        assert "only_here" not in second.registry
        assert "ping" not in second.commands

    def test_command_decorator_returns_function(self, app):
        async def handler(ctx):
            return "ok"

        assert app.command("native")(handler) is handler
        assert app.commands.get("native").handler is handler

    def test_command_options(self, app):
        command = app.command("ban", "$say[x]", cooldown="5s", requires=["ban"], aliases=["b"], category="mod")
        assert command.required_capabilities == frozenset({"ban"})
        assert command.aliases == ("b",)
        assert app.commands.list_commands("mod") == [command]

    @pytest.mark.asyncio
    async def test_context_defaults(self, app):
        ctx = app.context(Actor("u1", "ada"), Scope("c1", guild_id="g1"), args=["a"])
        assert await app.evaluate("$$1 in guild", ctx) == "a in guild"
        assert ctx.scope.is_guild

    @pytest.mark.asyncio
    async def test_evaluate_builds_context_from_keywords(self, app):
        assert await app.evaluate("$say[$$2]", args=("a", "b")) == "b"

    @pytest.mark.asyncio
    async def test_frozen_app_still_runs(self, app, actor, guild):
        app.command("ping", "$say[pong]")
        app.freeze()
        result = await app.handle("!ping", actor, guild)
        assert result.value == "pong"
