import shlex
import sys
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Optional

from attrs import define, field

from argscaffold.exceptions import TokenizationError
from argscaffold.utils import frozen

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineAction, CommandLineArgument


def tokenize(tokens: None | str | Iterable[str]) -> list[str]:
    """Normalize user input into a token list.

    ``None`` reads :obj:`sys.argv`. A string is split on whitespace, with double quotes
    grouping words into one token; backslashes and apostrophes are ordinary characters.
    Anything else is taken as already tokenized.

    Raises
    ------
    TokenizationError
        ``tokens`` is a string with an unterminated quote.
    """
    if tokens is None:
        return sys.argv[1:]  # Remove the executable
    elif isinstance(tokens, str):
        lex = shlex.shlex(tokens, posix=True)
        lex.whitespace_split = True
        lex.escape = ""
        lex.quotes = '"'
        lex.commenters = ""
        try:
            return list(lex)
        except ValueError as e:
            raise TokenizationError(text=tokens, reason=str(e).rstrip(".")) from e
    else:
        return [str(x) for x in tokens]


@frozen(kw_only=True)
class Token:
    """Tracks how a user supplied a value to an argument."""

    keyword: str | None = None
    """Option token as typed (``"-name"``, ``"--from:10"``); :obj:`None` for positional values."""

    value: str | None = None
    """Raw string value; :obj:`None` for a switch given without a value."""

    index: int = 0
    """Position of the (first) originating token in the command line."""

    @property
    def is_switch(self) -> bool:
        return self.keyword is not None and self.value is None


@define(kw_only=True)
class ParseResult:
    """Matcher output: which action was selected and which token fed each argument."""

    tokens: list[str] = field(factory=list)
    """The tokens that were matched, after ``before_parse`` hooks ran."""

    action: Optional["CommandLineAction"] = None

    action_token: Token | None = None

    matches: dict[str, Token] = field(factory=dict)
    """Argument name to the token that supplied it."""

    def __contains__(self, argument: "CommandLineArgument") -> bool:
        return argument.name in self.matches

    def __iter__(self) -> Iterator[tuple[str, Token]]:
        return iter(self.matches.items())

    def get(self, argument: "CommandLineArgument") -> Token | None:
        return self.matches.get(argument.name)
