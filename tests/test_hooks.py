import threading
from typing import Annotated, Any

import pytest
from attrs import define, field

from argscaffold import (
    Arg,
    ArgHook,
    HookAbortError,
    HookContext,
    HookStage,
    Scaffold,
    action,
    parse,
    parse_action,
)
from argscaffold.utils import UNSET


@define(eq=False, kw_only=True)
class Recorder(ArgHook):
    """Appends ``(label, stage, argument name)`` to ``log`` at every stage."""

    label: str
    log: list = field(factory=list)

    def _record(self, stage: str, context: HookContext):
        argument = context.current_argument
        self.log.append((self.label, stage, argument.name if argument is not None else None))

    def before_parse(self, context):
        self._record("before_parse", context)

    def before_populate_properties(self, context):
        self._record("before_populate_properties", context)

    def before_populate_property(self, context):
        self._record("before_populate_property", context)

    def after_populate_property(self, context):
        self._record("after_populate_property", context)

    def after_populate_properties(self, context):
        self._record("after_populate_properties", context)


def test_hook_stage_order():
    log = []
    recorder = Recorder(label="root", log=log)

    @recorder
    class Cli:
        name: str = ""

    parse(Cli, ["-name", "Ada"])

    assert log == [
        ("root", "before_parse", None),
        ("root", "before_populate_properties", None),
        ("root", "after_populate_properties", None),
    ]


def test_hook_argument_stages():
    log = []
    recorder = Recorder(label="arg", log=log)

    class Cli:
        name: Annotated[str, Arg(hook=recorder)] = ""
        other: str = ""

    parse(Cli, ["-name", "Ada"])

    assert log == [
        ("arg", "before_parse", "name"),
        ("arg", "before_populate_properties", "name"),
        ("arg", "before_populate_property", "name"),
        ("arg", "after_populate_property", "name"),
        ("arg", "after_populate_properties", "name"),
    ]


def test_hook_priority_same_argument():
    log = []
    low = Recorder(
        label="low",
        log=log,
        before_parse_priority=1,
        before_populate_properties_priority=1,
        before_populate_property_priority=1,
        after_populate_property_priority=1,
        after_populate_properties_priority=1,
    )
    high = Recorder(
        label="high",
        log=log,
        before_parse_priority=5,
        before_populate_properties_priority=5,
        before_populate_property_priority=5,
        after_populate_property_priority=5,
        after_populate_properties_priority=5,
    )

    class Cli:
        # Declaration order is deliberately low-then-high.
        name: Annotated[str, Arg(hook=[low, high])] = ""

    parse(Cli, [])

    stages = [stage.value for stage in HookStage]
    assert [(label, stage) for label, stage, _ in log] == [(label, s) for s in stages for label in ("high", "low")]


def test_hook_priority_is_stage_specific():
    log = []
    a = Recorder(label="a", log=log, before_populate_property_priority=10)
    b = Recorder(label="b", log=log, after_populate_property_priority=10)

    class Cli:
        name: Annotated[str, Arg(hook=[a, b])] = ""

    parse(Cli, [])

    before = [label for label, stage, _ in log if stage == "before_populate_property"]
    after = [label for label, stage, _ in log if stage == "after_populate_property"]
    assert before == ["a", "b"]
    assert after == ["b", "a"]


def test_hook_priority_ties_keep_declaration_order():
    log = []
    first = Recorder(label="first", log=log)
    second = Recorder(label="second", log=log)

    @Scaffold(hooks=[first, second])
    class Cli:
        name: str = ""

    parse(Cli, [])
    assert [label for label, stage, _ in log if stage == "before_parse"] == ["first", "second"]


def test_hook_before_parse_rewrites_tokens():
    @define(eq=False, kw_only=True)
    class DefaultName(ArgHook):
        def before_parse(self, context):
            assert context.args is None
            assert context.parser_data is None
            if not context.cmd_line_args:
                context.cmd_line_args.extend(["-name", "Injected"])

    @DefaultName()
    class Cli:
        name: str = ""

    assert parse(Cli, []).name == "Injected"
    assert parse(Cli, ["-name", "Ada"]).name == "Ada"


def test_hook_before_populate_property_replaces_raw():
    @define(eq=False, kw_only=True)
    class Strip(ArgHook):
        def before_populate_property(self, context):
            if context.argument_value is not None:
                context.argument_value = context.argument_value.strip()

    class Cli:
        count: Annotated[int, Arg(hook=Strip())] = 0

    assert parse(Cli, ["-count", "  12 "]).count == 12


def test_hook_after_populate_property_replaces_revived():
    seen = []

    @define(eq=False, kw_only=True)
    class Double(ArgHook):
        def after_populate_property(self, context):
            seen.append(context.revived_value)
            context.revived_value *= 2

    class Cli:
        count: Annotated[int, Arg(hook=Double())] = 0

    assert parse(Cli, ["-count", "21"]).count == 42
    assert seen == [21]


def test_hook_context_fields_per_stage():
    observed: dict[str, Any] = {}

    @define(eq=False, kw_only=True)
    class Inspect(ArgHook):
        def before_populate_property(self, context):
            observed["before"] = (context.argument_value, context.revived_value, type(context.args).__name__)

        def after_populate_property(self, context):
            observed["after"] = (context.argument_value, context.revived_value)
            observed["matched"] = context.parser_data.get(context.current_argument).keyword

    class Cli:
        count: Annotated[int, Arg(hook=Inspect())] = 0

    parse(Cli, ["-count", "3"])

    assert observed["before"] == ("3", UNSET, "Cli")
    assert observed["after"] == ("3", 3)
    assert observed["matched"] == "-count"


def test_hook_property_bag_spans_stages():
    results = []

    @define(eq=False, kw_only=True)
    class Counter(ArgHook):
        def before_populate_properties(self, context):
            context.set_property("count", 0)

        def before_populate_property(self, context):
            context.set_property("count", context.get_property("count") + 1)

        def after_populate_properties(self, context):
            results.append(context.get_property("count"))
            context.set_property("count", None)
            results.append(context.has_property("count"))

    counter = Counter()

    @counter
    class Cli:
        a: Annotated[str, Arg(hook=counter)] = ""
        b: Annotated[str, Arg(hook=counter)] = ""

    parse(Cli, [])
    # The argument-level registrations also receive the whole-object stages.
    assert results[:2] == [2, False]

    # The bag does not persist across parse calls.
    results.clear()
    parse(Cli, [])
    assert results[:2] == [2, False]


def test_hook_property_bag_api():
    from argscaffold.definition import CommandLineArgumentsDefinition

    context = HookContext(definition=CommandLineArgumentsDefinition())
    assert context.get_property("missing") is None
    assert context.get_property("missing", 5) == 5
    context.set_property("key", "value")
    assert context.has_property("key")
    context.clear_property("key")
    assert not context.has_property("key")


def test_hook_context_current():
    seen = []

    @define(eq=False, kw_only=True)
    class Capture(ArgHook):
        def before_parse(self, context):
            seen.append(HookContext.current() is context)

    @Capture()
    class Cli:
        name: str = ""

    assert HookContext.current() is None
    parse(Cli, [])
    assert seen == [True]
    assert HookContext.current() is None


def test_hook_context_current_is_thread_scoped():
    barrier = threading.Barrier(2)
    seen = {}

    @define(eq=False, kw_only=True)
    class Wait(ArgHook):
        def before_populate_properties(self, context):
            barrier.wait(timeout=5)
            seen[threading.get_ident()] = HookContext.current() is context
            barrier.wait(timeout=5)

    @Wait()
    class Cli:
        name: str = ""

    threads = [threading.Thread(target=parse, args=(Cli, [])) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert list(seen.values()) == [True, True]


def test_hook_nested_parse_restores_context():
    outer_seen = []

    class Inner:
        value: int = 0

    @define(eq=False, kw_only=True)
    class Nest(ArgHook):
        def before_populate_properties(self, context):
            parse(Inner, ["-value", "1"])
            outer_seen.append(HookContext.current() is context)

    @Nest()
    class Outer:
        name: str = ""

    parse(Outer, [])
    assert outer_seen == [True]


def test_hook_abort():
    @define(eq=False, kw_only=True)
    class Stop(ArgHook):
        def before_populate_properties(self, context):
            raise HookAbortError()

    stop = Stop()

    @stop
    class Cli:
        name: str = ""

    with pytest.raises(HookAbortError) as e:
        parse(Cli, ["-name", "x"])

    assert e.value.hook is stop
    assert e.value.stage is HookStage.BEFORE_POPULATE_PROPERTIES
    assert str(e.value) == "Parsing aborted by Stop during before_populate_properties."


def test_hook_abort_stops_pipeline():
    log = []

    @define(eq=False, kw_only=True)
    class Stop(ArgHook):
        before_parse_priority: int = 10

        def before_parse(self, context):
            raise HookAbortError(msg="Stopped.")

    @Stop()
    @Recorder(label="later", log=log)
    class Cli:
        name: str = ""

    with pytest.raises(HookAbortError, match="Stopped."):
        parse(Cli, [])
    assert log == []


def test_hook_other_exceptions_propagate():
    @define(eq=False, kw_only=True)
    class Boom(ArgHook):
        def before_parse(self, context):
            raise RuntimeError("boom")

    @Boom()
    class Cli:
        name: str = ""

    with pytest.raises(RuntimeError, match="boom"):
        parse(Cli, [])
    assert HookContext.current() is None


class ClipArgs:
    from_: int = 0


def test_hook_properties_stages_run_per_object():
    log = []
    root = Recorder(label="root", log=log)
    clip_hook = Recorder(label="clip", log=log)

    @root
    class Media:
        source: str = ""

        @action(hooks=clip_hook)
        def clip(self, args: ClipArgs):
            pass

    parse_action(Media, ["clip", "-from", "3"])

    properties = [(label, stage) for label, stage, _ in log if stage.endswith("properties")]
    assert properties == [
        ("root", "before_populate_properties"),
        ("clip", "before_populate_properties"),
        ("root", "after_populate_properties"),
        ("clip", "after_populate_properties"),
    ]
    # ``before_parse`` spans the whole definition, including unselected actions.
    assert [label for label, stage, _ in log if stage == "before_parse"] == ["root", "clip"]
