"""The parse pipeline: hooks, matching, revival, validation and action dispatch."""

import logging
import sys
from collections.abc import Iterable, Mapping, Sequence
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from attrs import define, field

from argscaffold import ambient
from argscaffold.annotations import is_attrs, is_dataclass
from argscaffold.bind import match
from argscaffold.definition import (
    CommandLineAction,
    CommandLineArgument,
    CommandLineArgumentsDefinition,
    field_defaults,
    get_definition,
)
from argscaffold.exceptions import (
    AggregateArgumentError,
    ArgumentError,
    DefinitionError,
    MissingArgumentError,
    RevivalError,
    ValidationError,
)
from argscaffold.hooks import (
    HookContext,
    HookStage,
    run_before_parse,
    run_properties_stage,
    run_property_stage,
)
from argscaffold.panel import ErrorPanel
from argscaffold.prompt import ConsolePrompter, Prompter
from argscaffold.revivers import Reviver, ReviverRegistry
from argscaffold.token import tokenize
from argscaffold.utils import UNSET
from argscaffold.validators import ArgValidator

if TYPE_CHECKING:
    from rich.console import Console

    from argscaffold.hooks import ArgHook

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that belong to a single argument and may be collected in aggregate mode.
_PER_ARGUMENT_ERRORS = (RevivalError, ValidationError, MissingArgumentError)


@define(kw_only=True)
class ArgAction(Generic[T]):
    """Outcome of a successful parse."""

    args: T
    """The populated root object."""

    definition: CommandLineArgumentsDefinition

    action: CommandLineAction | None = None
    """The selected action, if any."""

    action_args: Any = None
    """The populated argument object of :attr:`action`."""

    action_result: Any = None
    """Return value of the most recent action invocation."""

    def invoke(self) -> Any:
        """Invoke the selected action again with the same objects; no-op without an action."""
        if self.action is None or self.action.method is None:
            return None
        self.action_result = self.action.method(self.args, self.action_args)
        return self.action_result


def _instantiate(cls: type | None) -> Any:
    """Create an empty instance of ``cls`` without running validation-bearing ``__init__``s."""
    if cls is None:
        return SimpleNamespace()
    if is_dataclass(cls) or is_attrs(cls):
        obj = cls.__new__(cls)
        for name, (default, factory) in field_defaults(cls).items():
            value = factory() if factory is not None else default
            if value is not UNSET:
                object.__setattr__(obj, name, value)
        return obj
    try:
        return cls()
    except TypeError as e:
        raise DefinitionError(f"{cls.__qualname__} must be constructible without arguments.") from e


def _assign(obj: Any, attribute: str, value: Any) -> None:
    if is_dataclass(type(obj)) or is_attrs(type(obj)):
        # Circumvent frozen protection.
        object.__setattr__(obj, attribute, value)
    else:
        setattr(obj, attribute, value)


def _finalize(obj: Any) -> None:
    """Run the post-init step skipped by :func:`_instantiate`."""
    if not (is_dataclass(type(obj)) or is_attrs(type(obj))):
        return
    for name in ("__attrs_post_init__", "__post_init__"):
        post_init = getattr(obj, name, None)
        if post_init is not None:
            post_init()


@define(kw_only=True)
class _Target:
    obj: Any
    hooks: Sequence["ArgHook"]
    arguments: Sequence[CommandLineArgument]
    action: CommandLineAction | None = None


class Parser(Generic[T]):
    """Binds token lists to a scaffold.

    A parser holds no per-call state; one instance may be used from many threads.

    Parameters
    ----------
    scaffold: type | CommandLineArgumentsDefinition
        Scaffold class, or a hand-assembled definition.
    prompter: Prompter | None
        Collaborator for prompt-if-missing arguments and secure input.
        Without one, a missing required argument is always an error.
    revivers: ReviverRegistry | Mapping[type, Reviver] | None
        Extra revivers taking precedence over the definition's own.
    """

    def __init__(
        self,
        scaffold: type[T] | CommandLineArgumentsDefinition,
        *,
        prompter: Prompter | None = None,
        revivers: ReviverRegistry | Mapping[Any, Reviver] | None = None,
    ):
        self.definition = get_definition(scaffold)
        self.prompter = prompter
        if revivers is None:
            self.revivers = self.definition.revivers
        elif isinstance(revivers, ReviverRegistry):
            self.revivers = ReviverRegistry(parent=self.definition.revivers)
            self.revivers.update(revivers)
        else:
            self.revivers = ReviverRegistry(dict(revivers), parent=self.definition.revivers)

    def __repr__(self):
        return f"{type(self).__name__}({self.definition.scaffold_type!r})"

    def parse(self, tokens: None | str | Iterable[str] = None) -> ArgAction[T]:
        """Parse ``tokens`` and invoke the selected action.

        Parameters
        ----------
        tokens: None | str | Iterable[str]
            Either a string, or a list of strings to parse.
            If :obj:`None`, defaults to :obj:`sys.argv[1:] <sys.argv>`.

        Raises
        ------
        ArgumentError
            The command line is invalid. With ``aggregate_errors``, per-argument
            failures are raised together as an :exc:`AggregateArgumentError`.
        """
        try:
            cmd_line_args = tokenize(tokens)
        except ArgumentError as e:
            e.definition = self.definition
            raise

        context = HookContext(
            definition=self.definition,
            cmd_line_args=list(cmd_line_args),
            prompter=self.prompter,
            revivers=self.revivers,
        )
        previous = context.activate()
        try:
            return self._parse(context)
        except ArgumentError as e:
            if e.definition is None:
                e.definition = self.definition
            if e.root_input_tokens is None:
                e.root_input_tokens = cmd_line_args
            raise
        finally:
            HookContext.restore(previous)

    def _parse(self, context: HookContext) -> ArgAction[T]:
        definition = self.definition
        logger.debug("Parsing %r against %r.", context.cmd_line_args, definition.scaffold_type)

        run_before_parse(context)

        parser_data = match(definition, context.cmd_line_args)
        context.parser_data = parser_data
        context.current_action = action = parser_data.action

        targets = [_Target(obj=_instantiate(definition.scaffold_type), hooks=definition.hooks, arguments=definition.arguments)]
        if action is not None:
            targets.append(
                _Target(obj=_instantiate(action.args_type), hooks=action.hooks, arguments=action.arguments, action=action)
            )

        for target in targets:
            context.args = target.obj
            run_properties_stage(context, HookStage.BEFORE_POPULATE_PROPERTIES, target.hooks, target.arguments)

        errors: list[ArgumentError] = []
        for target in targets:
            context.args = target.obj
            for argument in target.arguments:
                try:
                    self._populate(context, target.obj, argument)
                except _PER_ARGUMENT_ERRORS as e:
                    if e.argument is None:
                        e.argument = argument
                    if not definition.settings.aggregate_errors:
                        raise
                    logger.debug('Collected error for "%s": %s', argument.name, e)
                    errors.append(e)

        if errors:
            raise AggregateArgumentError(errors=errors)

        for target in targets:
            _finalize(target.obj)

        for target in targets:
            context.args = target.obj
            run_properties_stage(context, HookStage.AFTER_POPULATE_PROPERTIES, target.hooks, target.arguments)

        root = targets[0].obj
        context.args = root
        result = ArgAction(
            args=root,
            definition=definition,
            action=action,
            action_args=targets[1].obj if action is not None else None,
        )
        if action is not None:
            logger.debug('Invoking action "%s".', action.name)
            result.invoke()

        ambient.publish(root)
        return result

    def _populate(self, context: HookContext, obj: Any, argument: CommandLineArgument) -> None:
        assert context.parser_data is not None
        token = context.parser_data.get(argument)

        context.current_argument = argument
        if token is None:
            context.argument_value = None
        elif token.is_switch:
            context.argument_value = "true"
        else:
            context.argument_value = token.value
        context.revived_value = UNSET
        try:
            run_property_stage(context, HookStage.BEFORE_POPULATE_PROPERTY, argument)

            value = self._validate(context, argument, self._revive(context, argument))
            if value is UNSET:
                value = None

            _assign(obj, argument.attribute, value)  # pyright: ignore[reportArgumentType]
            context.revived_value = value
            run_property_stage(context, HookStage.AFTER_POPULATE_PROPERTY, argument)
            if context.revived_value is not value:
                _assign(obj, argument.attribute, context.revived_value)  # pyright: ignore[reportArgumentType]
        finally:
            context.current_argument = None
            context.argument_value = None

    def _revive(self, context: HookContext, argument: CommandLineArgument) -> Any:
        raw = context.argument_value
        if raw is not None:
            return context.revive(argument, raw)

        acquirer = self.revivers.get_acquirer(argument.type)
        if acquirer is not None and context.prompter is not None:
            return acquirer(argument, context.prompter)

        if argument.is_required:
            return UNSET
        return argument.get_default()

    def _validate(self, context: HookContext, argument: CommandLineArgument, value: Any) -> Any:
        """Run validators in declared order; the first failure stops the argument."""
        for validator in argument.validators:
            try:
                if isinstance(validator, ArgValidator):
                    if (value is UNSET or value is None) and not validator.validate_always:
                        continue
                    value = validator.validate(argument, value, context)
                elif value is not UNSET and value is not None:
                    validator(argument.type, value)
            except ArgumentError:
                raise
            except (AssertionError, ValueError, TypeError) as e:
                raise ValidationError(exception_message=str(e), argument=argument, value=value) from e
        return value


def parse_action(
    scaffold: type[T] | CommandLineArgumentsDefinition,
    tokens: None | str | Iterable[str] = None,
    *,
    prompter: Prompter | None = None,
    revivers: ReviverRegistry | Mapping[Any, Reviver] | None = None,
) -> ArgAction[T]:
    """Parse ``tokens`` against ``scaffold``, invoke the selected action, and return the full outcome."""
    return Parser(scaffold, prompter=prompter, revivers=revivers).parse(tokens)


def parse(
    scaffold: type[T] | CommandLineArgumentsDefinition,
    tokens: None | str | Iterable[str] = None,
    *,
    prompter: Prompter | None = None,
    revivers: ReviverRegistry | Mapping[Any, Reviver] | None = None,
) -> T:
    """Parse ``tokens`` against ``scaffold`` and return the populated root object."""
    return parse_action(scaffold, tokens, prompter=prompter, revivers=revivers).args


def run(
    scaffold: type[T] | CommandLineArgumentsDefinition,
    tokens: None | str | Iterable[str] = None,
    *,
    console: Optional["Console"] = None,
    print_error: bool = True,
    exit_on_error: bool = True,
    verbose: bool = False,
    prompter: Prompter | None = None,
    revivers: ReviverRegistry | Mapping[Any, Reviver] | None = None,
) -> ArgAction[T]:
    """Entry point for command line programs.

    Parameters
    ----------
    console: ~rich.console.Console
        Console to print error messages to. Defaults to a console writing to stderr.
    print_error: bool
        Print a rich-formatted error panel for user-input errors.
    exit_on_error: bool
        Invoke ``sys.exit(1)`` on a user-input error; otherwise the error is re-raised.
    verbose: bool
        Include developer-oriented detail in error messages.
    prompter: Prompter | None
        Defaults to a :class:`~argscaffold.prompt.ConsolePrompter`.
    """
    if prompter is None:
        prompter = ConsolePrompter()
    try:
        return parse_action(scaffold, tokens, prompter=prompter, revivers=revivers)
    except ArgumentError as e:
        e.verbose = verbose
        if print_error:
            if console is None:
                from rich.console import Console

                console = Console(stderr=True)
            console.print(ErrorPanel(e))
        if exit_on_error:
            sys.exit(1)
        raise
