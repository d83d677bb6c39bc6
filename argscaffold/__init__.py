__version__ = "0.0.0"

__all__ = [
    "AggregateArgumentError",
    "AmbiguousMatchError",
    "Arg",
    "ArgAction",
    "ArgHook",
    "ArgumentError",
    "CommandLineAction",
    "CommandLineArgument",
    "CommandLineArgumentsDefinition",
    "ConsolePrompter",
    "DEFAULT_REVIVERS",
    "DefinitionError",
    "ErrorPanel",
    "HookAbortError",
    "HookContext",
    "HookStage",
    "MissingArgumentError",
    "ParseResult",
    "Parser",
    "Prompter",
    "RepeatArgumentError",
    "RevivalError",
    "ReviverRegistry",
    "Scaffold",
    "Token",
    "TokenizationError",
    "UNSET",
    "UnexpectedArgumentError",
    "ValidationError",
    "action",
    "ambient",
    "build_definition",
    "default_name_transform",
    "parse",
    "parse_action",
    "reviver",
    "run",
    "tokenize",
    "types",
    "validators",
]

from argscaffold import ambient, types, validators
from argscaffold.arg import Arg, Scaffold, action, reviver
from argscaffold.definition import (
    CommandLineAction,
    CommandLineArgument,
    CommandLineArgumentsDefinition,
    build_definition,
)
from argscaffold.engine import ArgAction, Parser, parse, parse_action, run
from argscaffold.exceptions import (
    AggregateArgumentError,
    AmbiguousMatchError,
    ArgumentError,
    DefinitionError,
    HookAbortError,
    MissingArgumentError,
    RepeatArgumentError,
    RevivalError,
    TokenizationError,
    UnexpectedArgumentError,
    ValidationError,
)
from argscaffold.hooks import ArgHook, HookContext, HookStage
from argscaffold.panel import ErrorPanel
from argscaffold.prompt import ConsolePrompter, Prompter
from argscaffold.revivers import DEFAULT_REVIVERS, ReviverRegistry
from argscaffold.token import ParseResult, Token, tokenize
from argscaffold.utils import UNSET, default_name_transform
