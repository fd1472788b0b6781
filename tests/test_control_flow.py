"""Tests for the control-flow charms.

Loops, break/continue scoping, try/catch/finally ordering, throw and assert.
"""

import json
import time

import pytest

from charmscript.foundation.errors import (
    AssertionFailed,
    InvalidArguments,
    LoopIterationLimit,
    LoopTimeout,
    NotInLoop,
    ThrownError,
    UnknownOperator,
)


def invocation(name: str, payload: dict) -> str:
    """Build ``$name[{...}]`` with a JSON payload."""
    return f"${name}[{json.dumps(payload)}]"


@pytest.fixture
def marks(app):
    """A $markRan[] charm recording each call."""
    calls: list[int] = []

    @app.charm("markRan")
    async def mark_ran(args, ctx):
        calls.append(1)

    return calls


# =============================================================================
# Branching
# =============================================================================


class TestIf:
    """$if and $condition."""

    @pytest.mark.asyncio
    async def test_then_branch(self, app):
        assert await app.evaluate("$if[2 > 1;big;small]") == "big"

    @pytest.mark.asyncio
    async def test_else_branch(self, app):
        assert await app.evaluate("$if[2 < 1;big;small]") == "small"

    @pytest.mark.asyncio
    async def test_false_without_else_is_false(self, app):
        assert await app.evaluate("$if[1 > 2;yes]") is False

    @pytest.mark.asyncio
    async def test_true_without_then_is_true(self, app):
        assert await app.evaluate("$if[true]") is True

    @pytest.mark.asyncio
    async def test_condition_uses_variables(self, app):
        app.variables.set("score", 12)
        assert await app.evaluate("$if[$$score >= 10;win;lose]") == "win"

    @pytest.mark.asyncio
    async def test_unknown_operator_in_structured_condition(self, app):
        script = invocation(
            "if", {"condition": {"left": 1, "operator": "<>", "right": 2}, "then": "yes"}
        )
        with pytest.raises(UnknownOperator):
            await app.evaluate(script)

    @pytest.mark.asyncio
    async def test_condition_charm(self, app):
        assert await app.evaluate("$condition[5;>;3;big;small]") == "big"
        assert await app.evaluate("$condition[5;<;3]") is False


class TestSwitch:
    """$switch"""

    @pytest.mark.asyncio
    async def test_matching_case_only(self, app, ctx):
        script = invocation(
            "switch",
            {"value": "b", "cases": {"a": "$say[A]", "b": "$say[B]"}, "default": "$say[D]"},
        )
        await app.evaluate(script, ctx)
        assert ctx.responses == ["B"]

    @pytest.mark.asyncio
    async def test_default(self, app, ctx):
        script = invocation("switch", {"value": "z", "cases": {"a": "$say[A]", "default": "$say[D]"}})
        await app.evaluate(script, ctx)
        assert ctx.responses == ["D"]


# =============================================================================
# Loops
# =============================================================================


class TestWhile:
    """Bounded $while loops."""

    @pytest.mark.asyncio
    async def test_counts_until_condition_fails(self, app):
        app.variables.set("i", 0)
        results = await app.evaluate("$while[$$i < 3;$data[add;i]]")
        assert results == [1, 2, 3]
        assert app.variables.get("i") == 3

    @pytest.mark.asyncio
    async def test_timeout_is_enforced(self, app):
        script = invocation(
            "while",
            {"condition": "true", "code": "$wait[50ms]", "timeout": 1, "maxIterations": 1000},
        )
        started = time.monotonic()
        with pytest.raises(LoopTimeout) as exc_info:
            await app.evaluate(script)
        elapsed = time.monotonic() - started
        assert 1.0 <= elapsed < 3.0
        assert exc_info.value.timeout == 1

    @pytest.mark.asyncio
    async def test_iteration_cap(self, app):
        script = invocation("while", {"condition": "true", "code": "x", "maxIterations": 5})
        with pytest.raises(LoopIterationLimit) as exc_info:
            await app.evaluate(script)
        assert exc_info.value.limit == 5

    @pytest.mark.asyncio
    async def test_break_stops_loop(self, app):
        app.variables.set("i", 0)
        results = await app.evaluate(
            invocation("while", {"condition": "true", "code": "$data[add;i] $if[$$i == 2;$break[]]"})
        )
        assert results == [False]
        assert app.variables.get("i") == 2

    @pytest.mark.asyncio
    async def test_break_in_condition_stops_loop(self, app, ctx):
        results = await app.evaluate("$while[$break[];$say[x]]", ctx)
        assert results == []
        assert ctx.responses == []
        assert ctx.loop_stack == []

    @pytest.mark.asyncio
    async def test_continue_in_condition_counts_toward_cap(self, app, marks):
        script = invocation("while", {"condition": "$continue[]", "code": "$markRan[]", "maxIterations": 3})
        with pytest.raises(LoopIterationLimit) as exc_info:
            await app.evaluate(script)
        assert exc_info.value.limit == 3
        assert marks == []

    @pytest.mark.asyncio
    async def test_loop_stack_is_popped(self, app, ctx):
        await app.evaluate("$while[false;x]", ctx)
        assert ctx.loop_stack == []


class TestLoop:
    """$loop over counts and arrays."""

    @pytest.mark.asyncio
    async def test_count(self, app, ctx):
        await app.evaluate("$loop[3;$say[$$index/$$total]]", ctx)
        assert ctx.responses == ["0/3", "1/3", "2/3"]

    @pytest.mark.asyncio
    async def test_break_yields_two_outputs(self, app, ctx):
        script = invocation("loop", {"times": 5, "code": "$if[$$index==2;$break[]]; $say[$$index]"})
        await app.evaluate(script, ctx)
        assert ctx.responses == ["0", "1"]

    @pytest.mark.asyncio
    async def test_continue_skips_rest_of_iteration(self, app, ctx):
        script = invocation("loop", {"times": 4, "code": "$if[$$index==1;$continue[]]; $say[$$index]"})
        results = await app.evaluate(script, ctx)
        assert ctx.responses == ["0", "2", "3"]
        assert results == ["0", "2", "3"]

    @pytest.mark.asyncio
    async def test_break_affects_innermost_loop_only(self, app, ctx):
        inner = invocation("loop", {"times": 3, "code": "$if[$$index==1;$break[]]; $say[in]"})
        outer = invocation("loop", {"times": 2, "code": f"{inner}; $say[out]"})
        await app.evaluate(outer, ctx)
        assert ctx.responses == ["in", "out", "in", "out"]

    @pytest.mark.asyncio
    async def test_loop_over_array(self, app, ctx):
        await app.evaluate(invocation("loop", {"times": ["a", "b"], "code": "$say[$$value]"}), ctx)
        assert ctx.responses == ["a", "b"]

    @pytest.mark.asyncio
    async def test_negative_count_runs_nothing(self, app):
        assert await app.evaluate("$loop[-2;$say[x]]") == []


class TestForeach:
    """$foreach"""

    @pytest.mark.asyncio
    async def test_json_array(self, app, ctx):
        await app.evaluate('$foreach[["a","b","c"];$say[$$index:$$value]]', ctx)
        assert ctx.responses == ["0:a", "1:b", "2:c"]

    @pytest.mark.asyncio
    async def test_first_and_last(self, app, ctx):
        await app.evaluate('$foreach[["a","b","c"];$if[$$last;$say[end $$value]]]', ctx)
        assert ctx.responses == ["end c"]

    @pytest.mark.asyncio
    async def test_variable_name(self, app, ctx):
        app.variables.set("items", ["x", "y"])
        await app.evaluate("$foreach[items;$say[$$value]]", ctx)
        assert ctx.responses == ["x", "y"]

    @pytest.mark.asyncio
    async def test_self_named_variable_is_followed_once(self, app, ctx):
        app.variables.set("loopy", "loopy")
        await app.evaluate("$foreach[loopy;$say[$$value]]", ctx)
        assert ctx.responses == ["loopy"]

    @pytest.mark.asyncio
    async def test_comma_list(self, app, ctx):
        await app.evaluate("$foreach[a, b;$say[$$value]]", ctx)
        assert ctx.responses == ["a", "b"]

    @pytest.mark.asyncio
    async def test_cannot_iterate_number(self, app):
        with pytest.raises(InvalidArguments):
            await app.evaluate(invocation("foreach", {"array": 5, "code": "x"}))


class TestBreakContinueOutsideLoop:
    """NotInLoop instead of a silent no-op."""

    @pytest.mark.asyncio
    async def test_break(self, app):
        with pytest.raises(NotInLoop):
            await app.evaluate("$break[]")

    @pytest.mark.asyncio
    async def test_continue(self, app):
        with pytest.raises(NotInLoop) as exc_info:
            await app.evaluate("$continue[]")
        assert "continue" in exc_info.value.message


# =============================================================================
# Failures
# =============================================================================


class TestTry:
    """$try ordering."""

    @pytest.mark.asyncio
    async def test_catch_and_finally(self, app, ctx, marks):
        result = await app.evaluate("$try[$throw[X];$say[Caught:$$error];$markRan[]]", ctx)
        assert result == "Caught:X"
        assert ctx.responses == ["Caught:X"]
        assert marks == [1]

    @pytest.mark.asyncio
    async def test_finally_runs_on_success(self, app, marks):
        assert await app.evaluate("$try[ok;$say[no];$markRan[]]") == "ok"
        assert marks == [1]

    @pytest.mark.asyncio
    async def test_without_catch_rethrows_after_finally(self, app, marks):
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate(invocation("try", {"code": "$throw[boom]", "finally": "$markRan[]"}))
        assert exc_info.value.message == "boom"
        assert marks == [1]

    @pytest.mark.asyncio
    async def test_blank_catch_rethrows(self, app, ctx, marks):
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate("$try[$throw[boom];;$markRan[]]", ctx)
        assert exc_info.value.message == "boom"
        assert marks == [1]

    @pytest.mark.asyncio
    async def test_blank_finally_is_skipped(self, app):
        assert await app.evaluate("$try[$throw[boom];caught;  ]") == "caught"

    @pytest.mark.asyncio
    async def test_missing_code_is_rejected(self, app):
        with pytest.raises(InvalidArguments):
            await app.evaluate("$try[]")
        with pytest.raises(InvalidArguments):
            await app.evaluate(invocation("try", {"catch": "$say[c]"}))

    @pytest.mark.asyncio
    async def test_failing_finally_supersedes(self, app):
        script = invocation(
            "try", {"code": "$throw[first]", "catch": "$say[c]", "finally": "$throw[second]"}
        )
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate(script)
        assert exc_info.value.message == "second"

    @pytest.mark.asyncio
    async def test_error_fields_visible_to_catch(self, app):
        thrown = invocation("throw", {"message": "bad", "code": "E42"})
        script = invocation(
            "try", {"code": thrown, "catch": "$say[$$error.code/$$error.type/$$error]"}
        )
        assert await app.evaluate(script) == "E42/ThrownError/bad"

    @pytest.mark.asyncio
    async def test_break_passes_through_try(self, app, ctx, marks):
        guarded = invocation(
            "try", {"code": "$break[]", "catch": "$say[caught]", "finally": "$markRan[]"}
        )
        await app.evaluate(invocation("loop", {"times": 3, "code": f"{guarded}; $say[after]"}), ctx)
        assert ctx.responses == []
        assert marks == [1]

    @pytest.mark.asyncio
    async def test_catches_capability_failures(self, app):
        @app.charm("explode")
        async def explode(args, ctx):
            raise RuntimeError("boom")

        script = invocation("try", {"code": "$explode[]", "catch": "$$error.type"})
        assert await app.evaluate(script) == "CapabilityError"


class TestThrow:
    """$throw"""

    @pytest.mark.asyncio
    async def test_message(self, app):
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate("$throw[Something broke: badly]")
        assert exc_info.value.message == "Something broke: badly"

    @pytest.mark.asyncio
    async def test_structured_fields(self, app):
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate(invocation("throw", {"message": "m", "status": 404}))
        assert exc_info.value.fields == {"status": 404}
        assert exc_info.value.get("status") == 404

    @pytest.mark.asyncio
    async def test_default_message(self, app):
        with pytest.raises(ThrownError) as exc_info:
            await app.evaluate("$throw[]")
        assert exc_info.value.message == "An error was thrown"


class TestAssert:
    """$assert"""

    @pytest.mark.asyncio
    async def test_failure_carries_message_and_fields(self, app):
        script = invocation("assert", {"condition": False, "message": "m", "error": {"code": "E1"}})
        with pytest.raises(AssertionFailed) as exc_info:
            await app.evaluate(script)
        assert exc_info.value.message == "m"
        assert exc_info.value.get("code") == "E1"

    @pytest.mark.asyncio
    async def test_truthy_returns_true(self, app):
        assert await app.evaluate(invocation("assert", {"condition": True, "message": "m"})) is True

    @pytest.mark.asyncio
    async def test_key_value_form(self, app):
        with pytest.raises(AssertionFailed) as exc_info:
            await app.evaluate('$assert[1 > 2;too small;{"code":"E2"}]')
        assert exc_info.value.message == "too small"
        assert exc_info.value.fields == {"code": "E2"}

    @pytest.mark.asyncio
    async def test_default_message(self, app):
        with pytest.raises(AssertionFailed) as exc_info:
            await app.evaluate("$assert[false]")
        assert exc_info.value.message == "Assertion failed"


# =============================================================================
# Utility charms
# =============================================================================


class TestUtilityCharms:
    """$sequence, $wait, $data"""

    @pytest.mark.asyncio
    async def test_sequence_collects_results(self, app):
        assert await app.evaluate("$sequence[$data[set;a;1];$data[set;b;2]]") == ["1", "2"]

    @pytest.mark.asyncio
    async def test_wait_rejects_bad_duration(self, app):
        with pytest.raises(InvalidArguments):
            await app.evaluate("$wait[soon]")

    @pytest.mark.asyncio
    async def test_data_actions(self, app):
        await app.evaluate("$data[action: set; key: user.name; value: ada]")
        assert await app.evaluate("$data[has;user.name]") is True
        assert await app.evaluate("$data[get;user.name]") == "ada"
        assert await app.evaluate("$data[delete;user.name]") is True
        assert await app.evaluate("$data[has;user.name]") is False

    @pytest.mark.asyncio
    async def test_data_set_decodes_json(self, app):
        await app.evaluate('$data[set;items;["a","b"]]')
        assert app.variables.get("items") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_data_unknown_action(self, app):
        with pytest.raises(InvalidArguments):
            await app.evaluate("$data[explode;x]")

    @pytest.mark.asyncio
    async def test_say_forwards_to_sink(self, app):
        sent = []

        async def sink(text):
            sent.append(text)

        ctx = app.context(sink=sink)
        await app.evaluate("$say[hi]", ctx)
        assert sent == ["hi"]
