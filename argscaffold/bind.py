"""Matching of a token list against a definition."""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional

from argscaffold.exceptions import (
    AmbiguousMatchError,
    MissingArgumentError,
    RepeatArgumentError,
    UnexpectedArgumentError,
)
from argscaffold.token import ParseResult, Token
from argscaffold.utils import strip_prefix

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineAction, CommandLineArgument, CommandLineArgumentsDefinition

logger = logging.getLogger(__name__)

END_OF_OPTIONS = "--"


def split_value(name: str, separators: Sequence[str]) -> tuple[str, str | None]:
    """Split ``name:value`` on the earliest value separator.

    A separator at the very start of ``name`` is not treated as one.
    """
    best: tuple[int, str] | None = None
    for separator in separators:
        index = name.find(separator)
        if index > 0 and (best is None or index < best[0]):
            best = (index, separator)
    if best is None:
        return name, None
    index, separator = best
    return name[:index], name[index + len(separator) :]


def _fold(s: str, case_sensitive: bool) -> str:
    return s if case_sensitive else s.casefold()


def _abbreviation_candidates(names: Sequence[tuple[str, object]], key: str, case_sensitive: bool) -> list[object]:
    key = _fold(key, case_sensitive)
    out = []
    for name, owner in names:
        if _fold(name, case_sensitive).startswith(key) and owner not in out:
            out.append(owner)
    return out


def find_argument(
    definition: "CommandLineArgumentsDefinition",
    scope: Sequence["CommandLineArgument"],
    key: str,
    token: str,
    index: int = 0,
) -> "CommandLineArgument":
    """Resolve an option name (prefix already removed) to an argument of ``scope``.

    Raises
    ------
    UnexpectedArgumentError
        Nothing in ``scope`` answers to ``key``.
    AmbiguousMatchError
        Abbreviations are enabled and ``key`` is a prefix of more than one argument.
    """
    settings = definition.settings
    folded = _fold(key, settings.case_sensitive)
    for argument in scope:
        if any(_fold(name, settings.case_sensitive) == folded for name in argument.names):
            return argument

    if settings.allow_abbreviations:
        names = [(argument.name, argument) for argument in scope]
        candidates = _abbreviation_candidates(names, key, settings.case_sensitive)
        if len(candidates) == 1:
            return candidates[0]  # pyright: ignore[reportReturnType]
        elif candidates:
            raise AmbiguousMatchError(token=token, candidates=[c.name for c in candidates])  # pyright: ignore

    raise UnexpectedArgumentError(token=token, index=index)


def find_action(definition: "CommandLineArgumentsDefinition", token: str) -> Optional["CommandLineAction"]:
    """Action answering to ``token``, or :obj:`None`.

    Raises
    ------
    AmbiguousMatchError
        Abbreviations are enabled and ``token`` is a prefix of more than one action.
    """
    action = definition.find_action(token)
    if action is not None or not definition.settings.allow_abbreviations:
        return action

    names = [(a.name, a) for a in definition.actions]
    candidates = _abbreviation_candidates(names, token, definition.settings.case_sensitive)
    if len(candidates) == 1:
        return candidates[0]  # pyright: ignore[reportReturnType]
    elif candidates:
        raise AmbiguousMatchError(token=token, candidates=[c.name for c in candidates])  # pyright: ignore
    return None


def _locate_action(definition: "CommandLineArgumentsDefinition", tokens: Sequence[str]) -> int | None:
    """Index of the first token not consumed by a root-level option; the action candidate."""
    settings = definition.settings
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token == END_OF_OPTIONS:
            return None
        name = strip_prefix(token, settings.option_prefixes)
        if name is None:
            return i
        key, value = split_value(name, settings.value_separators)
        try:
            argument = find_argument(definition, definition.arguments, key, token, i)
        except (UnexpectedArgumentError, AmbiguousMatchError):
            # Leave it for the matcher to report.
            return None
        i += 1 if value is not None or argument.is_switch else 2
    return None


def select_action(definition: "CommandLineArgumentsDefinition", tokens: list[str]) -> tuple[Optional["CommandLineAction"], Token | None]:
    if not definition.actions:
        return None, None

    index = _locate_action(definition, tokens)
    action = find_action(definition, tokens[index]) if index is not None else None
    if action is None:
        if definition.settings.action_required:
            choices = ", ".join(f'"{a.name}"' for a in definition.actions)
            raise MissingArgumentError(msg=f"An action is required. Choose from: {choices}.")
        logger.debug("No action selected.")
        return None, None

    assert index is not None
    logger.debug('Selected action "%s" from token %d.', action.name, index)
    return action, Token(value=tokens[index], index=index)


def _positional_arguments(
    definition: "CommandLineArgumentsDefinition",
    action: Optional["CommandLineAction"],
) -> list["CommandLineArgument"]:
    """Root positional arguments in position order, followed by the action's."""

    def ordered(arguments: Sequence["CommandLineArgument"]) -> list["CommandLineArgument"]:
        return sorted((a for a in arguments if a.position is not None), key=lambda a: a.position)  # pyright: ignore

    out = ordered(definition.arguments)
    if action is not None:
        out.extend(ordered(action.arguments))
    return out


def match(definition: "CommandLineArgumentsDefinition", tokens: Sequence[str]) -> ParseResult:
    """Assign every token to an action or an argument.

    Named and switch matches are resolved first; leftover tokens fill positional
    arguments in ascending position order, skipping those already matched by name.

    Raises
    ------
    UnexpectedArgumentError
        A token has no corresponding argument.
    AmbiguousMatchError
        A token abbreviates more than one argument or action.
    RepeatArgumentError
        An argument was supplied more than once.
    MissingArgumentError
        An option is missing its value, or an action is required but none was given.
    """
    tokens = list(tokens)
    settings = definition.settings
    result = ParseResult(tokens=list(tokens))

    action, action_token = select_action(definition, tokens)
    result.action, result.action_token = action, action_token

    indexed = [(i, token) for i, token in enumerate(tokens) if action_token is None or i != action_token.index]
    scope = definition.scope(action)

    positional: list[tuple[int, str]] = []
    end_of_options = False
    i = 0
    while i < len(indexed):
        index, token = indexed[i]
        i += 1

        if end_of_options:
            positional.append((index, token))
            continue
        if token == END_OF_OPTIONS:
            end_of_options = True
            continue

        name = strip_prefix(token, settings.option_prefixes)
        if name is None:
            positional.append((index, token))
            continue

        key, value = split_value(name, settings.value_separators)
        argument = find_argument(definition, scope, key, token, index)
        if argument.name in result.matches:
            raise RepeatArgumentError(token=token, argument=argument)

        if value is None and not argument.is_switch:
            if i >= len(indexed):
                raise MissingArgumentError(argument=argument, msg=f'Option "{token}" requires a value.')
            value = indexed[i][1]
            i += 1

        logger.debug('Matched "%s" to argument "%s".', token, argument.name)
        result.matches[argument.name] = Token(keyword=token, value=value, index=index)

    remaining = [a for a in _positional_arguments(definition, action) if a.name not in result.matches]
    for (index, token), argument in zip(positional, remaining, strict=False):
        logger.debug('Matched positional "%s" to argument "%s".', token, argument.name)
        result.matches[argument.name] = Token(value=token, index=index)

    if len(positional) > len(remaining):
        index, token = positional[len(remaining)]
        raise UnexpectedArgumentError(token=token, index=index)

    return result
