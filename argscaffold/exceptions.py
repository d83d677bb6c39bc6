from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from attrs import define, field

from argscaffold.annotations import get_hint_name
from argscaffold.utils import UNSET

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineArgument, CommandLineArgumentsDefinition
    from argscaffold.hooks import ArgHook, HookStage


__all__ = [
    "AggregateArgumentError",
    "AmbiguousMatchError",
    "ArgumentError",
    "DefinitionError",
    "HookAbortError",
    "MissingArgumentError",
    "RepeatArgumentError",
    "RevivalError",
    "TokenizationError",
    "UnexpectedArgumentError",
    "ValidationError",
]


class DefinitionError(Exception):
    """The scaffold's metadata is malformed."""

    # This doesn't derive from ArgumentError since this is a developer error
    # rather than a problem with the user's input.


def _display_name(argument: Optional["CommandLineArgument"]) -> str:
    if argument is None:
        return ""
    return argument.display_name


@define
class ArgumentError(Exception):
    """Root exception for errors caused by the command line a user supplied.

    As an ArgumentError bubbles up through the parse engine, more information is added to it.
    """

    msg: str | None = None
    """
    If set, override automatic message generation.
    """

    verbose: bool = False
    """
    More verbose error messages; aimed towards developers debugging their scaffold.
    """

    root_input_tokens: list[str] | None = None
    """
    The raw tokens that were initially fed into the parser.
    """

    argument: Optional["CommandLineArgument"] = None
    """
    :class:`CommandLineArgument` that was being processed.
    """

    definition: Optional["CommandLineArgumentsDefinition"] = field(default=None, kw_only=True)
    """
    The definition being parsed against.
    """

    def __str__(self):
        if self.msg is not None:
            return self.msg

        strings = []
        if self.verbose:
            strings.append(type(self).__name__)
            if self.definition is not None and self.definition.scaffold_type is not None:
                scaffold = self.definition.scaffold_type
                strings.append(f"Scaffold: {scaffold.__module__}.{scaffold.__qualname__}")
            if self.root_input_tokens is not None:
                strings.append(f"Root Input Tokens: {self.root_input_tokens}")

        if strings:
            return "\n".join(strings) + "\n"
        else:
            return ""


@define(kw_only=True)
class TokenizationError(ArgumentError):
    """The raw command line could not be split into tokens."""

    text: str = ""
    """The offending command line."""

    reason: str = ""

    def __str__(self):
        if self.msg is not None:
            return self.msg
        return super().__str__() + f"Unable to tokenize {self.text!r}: {self.reason}."


@define(kw_only=True)
class RevivalError(ArgumentError):
    """A raw string could not be converted into the argument's type."""

    argument_name: str = ""
    """Name of the argument being revived."""

    raw: str | None = None
    """The string that failed to convert."""

    reason: str = ""
    """Why the conversion failed."""

    target_type: Any = None
    """Intended type to revive into."""

    def __str__(self):
        if self.msg is not None:
            return self.msg

        name = self.argument_name or _display_name(self.argument)
        message = f'Invalid value "{self.raw}" for "{name}"'
        if self.target_type is not None:
            message += f": unable to convert into {get_hint_name(self.target_type)}."
        else:
            message += "."
        if self.reason:
            message += f" {self.reason}"
        return super().__str__() + message


@define(kw_only=True)
class ValidationError(ArgumentError):
    """A validator rejected an argument's value."""

    exception_message: str = ""
    """Parenting Assertion/Value/Type Error message."""

    value: Any = UNSET
    """Revived value that failed validation."""

    def __str__(self):
        if self.msg is not None:
            return self.msg

        message = ""
        if self.argument is not None:
            message = f'Invalid value "{self.value}" for "{self.argument.display_name}".'

        message = f"{super().__str__()}{message}"
        if self.exception_message:
            return f"{message} {self.exception_message}" if message else self.exception_message
        return message


@define(kw_only=True)
class MissingArgumentError(ArgumentError):
    """A required argument (or a required action) was not provided."""

    def __str__(self):
        if self.msg is not None:
            return self.msg
        assert self.argument is not None
        return super().__str__() + f'Argument "{self.argument.display_name}" is required.'


@define(kw_only=True)
class UnexpectedArgumentError(ArgumentError):
    """A token did not correspond to any argument or action."""

    token: str
    """The offending token."""

    index: int = 0
    """Position of ``token`` in the tokenized command line."""

    def __str__(self):
        if self.msg is not None:
            return self.msg
        return super().__str__() + f'Unexpected argument "{self.token}".'


@define(kw_only=True)
class AmbiguousMatchError(ArgumentError):
    """A token matched more than one argument or action."""

    token: str

    candidates: Sequence[str] = ()

    def __str__(self):
        if self.msg is not None:
            return self.msg
        candidates = ", ".join(f'"{x}"' for x in self.candidates)
        return super().__str__() + f'Ambiguous argument "{self.token}" could be any of: {candidates}.'


@define(kw_only=True)
class RepeatArgumentError(ArgumentError):
    """The same argument has erroneously been specified multiple times."""

    token: str
    """The repeated token."""

    def __str__(self):
        if self.msg is not None:
            return self.msg
        return super().__str__() + f'Argument "{_display_name(self.argument)}" specified multiple times ("{self.token}").'


@define(kw_only=True)
class HookAbortError(ArgumentError):
    """Raised by a hook to stop the parse pipeline."""

    hook: Optional["ArgHook"] = None

    stage: Optional["HookStage"] = None

    def __str__(self):
        if self.msg is not None:
            return self.msg
        stage = f" during {self.stage.value}" if self.stage is not None else ""
        source = type(self.hook).__name__ if self.hook is not None else "a hook"
        return super().__str__() + f"Parsing aborted by {source}{stage}."


@define(kw_only=True)
class AggregateArgumentError(ArgumentError):
    """Every per-argument failure of a parse, collected in definition order."""

    errors: list[ArgumentError] = field(factory=list)

    def __iter__(self):
        return iter(self.errors)

    def __len__(self):
        return len(self.errors)

    def __str__(self):
        if self.msg is not None:
            return self.msg
        return super().__str__() + "\n".join(str(e) for e in self.errors)
