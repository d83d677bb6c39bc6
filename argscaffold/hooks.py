"""Extension points invoked at five fixed stages of the parse pipeline."""

import logging
import threading
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from attrs import define, field

from argscaffold.arg import scaffold_config
from argscaffold.exceptions import HookAbortError
from argscaffold.utils import UNSET

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineAction, CommandLineArgument, CommandLineArgumentsDefinition
    from argscaffold.prompt import Prompter
    from argscaffold.revivers import ReviverRegistry
    from argscaffold.token import ParseResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HookStage(Enum):
    BEFORE_PARSE = "before_parse"
    BEFORE_POPULATE_PROPERTIES = "before_populate_properties"
    BEFORE_POPULATE_PROPERTY = "before_populate_property"
    AFTER_POPULATE_PROPERTY = "after_populate_property"
    AFTER_POPULATE_PROPERTIES = "after_populate_properties"


@define(eq=False, kw_only=True)
class ArgHook:
    """Base class for hooking into the parse pipeline.

    Override any of the five stage methods; each defaults to a no-op.
    Within a stage, hooks with a **higher** priority run first.

    Attach a hook to a whole scaffold by decorating the class with an instance,
    to a single argument with ``Arg(hook=...)``, or to an action with ``action(hooks=...)``.

    .. code-block:: python

        @define(eq=False, kw_only=True)
        class Trim(ArgHook):
            def before_populate_property(self, context):
                if context.argument_value is not None:
                    context.argument_value = context.argument_value.strip()


        @Trim()
        class Cli:
            name: str = ""
    """

    before_parse_priority: int = 0
    before_populate_properties_priority: int = 0
    before_populate_property_priority: int = 0
    after_populate_property_priority: int = 0
    after_populate_properties_priority: int = 0

    def priority(self, stage: HookStage) -> int:
        return getattr(self, f"{stage.value}_priority", 0)

    def before_parse(self, context: "HookContext") -> None:
        """Called before any token is matched; only ``cmd_line_args`` and ``definition`` are available."""

    def before_populate_properties(self, context: "HookContext") -> None:
        """Called before the arguments of an object are populated.

        With an action selected, this runs once for the root object and once for the action's object.
        """

    def before_populate_property(self, context: "HookContext") -> None:
        """Called before an argument's raw string is revived and validated."""

    def after_populate_property(self, context: "HookContext") -> None:
        """Called after an argument was revived and validated; ``revived_value`` is available."""

    def after_populate_properties(self, context: "HookContext") -> None:
        """Called after the arguments of an object are populated."""

    def __call__(self, obj: T) -> T:
        """Decorator interface for attaching this hook to a scaffold class."""
        config = scaffold_config(obj, create=True)
        assert config is not None
        config.hooks.append(self)
        return obj


_local = threading.local()


@define(kw_only=True)
class HookContext:
    """State of a single parse call, handed to every hook.

    Which fields are populated depends on the stage; see each field.
    """

    definition: "CommandLineArgumentsDefinition"
    """The definition being used throughout the parsing process."""

    cmd_line_args: list[str] = field(factory=list)
    """Raw tokens; ``before_parse`` hooks may rewrite them."""

    args: Any = None
    """Object currently being populated. Not available during ``before_parse``."""

    current_argument: Optional["CommandLineArgument"] = None
    """Argument being processed; set during the per-property stages."""

    current_action: Optional["CommandLineAction"] = None
    """Selected action, once known."""

    argument_value: str | None = None
    """Raw string matched for ``current_argument``; :obj:`None` if none was supplied."""

    revived_value: Any = UNSET
    """Converted value of ``current_argument``; only available in ``after_populate_property``."""

    parser_data: Optional["ParseResult"] = None
    """Matched tokens. Not available during ``before_parse``."""

    prompter: Optional["Prompter"] = None

    revivers: Optional["ReviverRegistry"] = None

    _properties: dict[str, Any] = field(factory=dict, alias="properties")

    @classmethod
    def current(cls) -> Optional["HookContext"]:
        """Context of the parse running on the calling thread, or :obj:`None`."""
        return getattr(_local, "context", None)

    def activate(self) -> Optional["HookContext"]:
        previous = HookContext.current()
        _local.context = self
        return previous

    @staticmethod
    def restore(previous: Optional["HookContext"]) -> None:
        _local.context = previous

    def get_property(self, key: str, default: Any = None) -> Any:
        return self._properties.get(key, default)

    def set_property(self, key: str, value: Any) -> None:
        """Store ``value`` in the property bag; storing :obj:`None` removes the key."""
        if value is None:
            self._properties.pop(key, None)
        else:
            self._properties[key] = value

    def has_property(self, key: str) -> bool:
        return key in self._properties

    def clear_property(self, key: str) -> None:
        self._properties.pop(key, None)

    def revive(self, argument: "CommandLineArgument", raw: str) -> Any:
        """Revive ``raw`` the way the parse engine would for ``argument``."""
        registry = self.revivers if self.revivers is not None else self.definition.revivers
        return argument.revive(raw, registry)


HookEntry = tuple[ArgHook, Optional["CommandLineArgument"]]


def collect_hooks(
    hooks: Iterable[ArgHook],
    arguments: Sequence["CommandLineArgument"],
) -> list[HookEntry]:
    """Owner-level hooks followed by each argument's hooks, in declaration order."""
    entries: list[HookEntry] = [(hook, None) for hook in hooks]
    for argument in arguments:
        entries.extend((hook, argument) for hook in argument.hooks)
    return entries


def order(entries: Iterable[HookEntry], stage: HookStage) -> list[HookEntry]:
    # ``sorted`` is stable, so declaration order breaks priority ties.
    return sorted(entries, key=lambda entry: -entry[0].priority(stage))


def run_stage(context: HookContext, stage: HookStage, entries: Iterable[HookEntry]) -> None:
    """Execute ``stage`` on every hook in ``entries``, highest priority first."""
    previous = context.current_argument
    try:
        for hook, argument in order(entries, stage):
            context.current_argument = argument if argument is not None else previous
            logger.debug("%s: %s (argument=%s)", stage.value, type(hook).__name__, argument and argument.name)
            try:
                getattr(hook, stage.value)(context)
            except HookAbortError as e:
                if e.hook is None:
                    e.hook = hook
                if e.stage is None:
                    e.stage = stage
                raise
    finally:
        context.current_argument = previous


def run_before_parse(context: HookContext) -> None:
    definition = context.definition
    entries = collect_hooks(definition.hooks, definition.arguments)
    for action in definition.actions:
        entries.extend(collect_hooks(action.hooks, action.arguments))
    run_stage(context, HookStage.BEFORE_PARSE, entries)


def run_properties_stage(
    context: HookContext,
    stage: HookStage,
    hooks: Iterable[ArgHook],
    arguments: Sequence["CommandLineArgument"],
) -> None:
    run_stage(context, stage, collect_hooks(hooks, arguments))


def run_property_stage(context: HookContext, stage: HookStage, argument: "CommandLineArgument") -> None:
    run_stage(context, stage, [(hook, argument) for hook in argument.hooks])
