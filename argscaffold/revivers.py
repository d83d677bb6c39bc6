"""Conversion of raw strings into typed values."""

import re
import uuid
from collections.abc import Callable, Iterator
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, get_args

from argscaffold.annotations import is_enum, is_literal, is_union, resolve_annotated, resolve_new_type, resolve_optional
from argscaffold.exceptions import RevivalError
from argscaffold.types import Char, SecureString

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineArgument
    from argscaffold.prompt import Prompter

Reviver = Callable[[str, str], Any]
"""``(argument_name, raw) -> value``; raises :exc:`RevivalError` (or ``ValueError``) on failure."""

Acquirer = Callable[["CommandLineArgument", "Prompter"], Any]
"""``(argument, prompter) -> value`` for types whose value never comes from the token stream."""


def _str(name: str, s: str) -> str:
    return s


def _bool(name: str, s: str) -> bool:
    lowered = s.lower()
    if lowered in {"no", "n", "0", "false", "f"}:
        return False
    elif lowered in {"yes", "y", "1", "true", "t"}:
        return True
    else:
        raise RevivalError(argument_name=name, raw=s, target_type=bool, reason="Expected true or false.")


def _int(name: str, s: str) -> int:
    lowered = s.lower().replace("_", "")
    sign = -1 if lowered.startswith("-") else 1
    digits = lowered.lstrip("+-")
    if digits.startswith("0x"):
        return sign * int(digits, 16)
    elif digits.startswith("0o"):
        return sign * int(digits, 8)
    elif digits.startswith("0b"):
        return sign * int(digits, 2)
    else:
        return int(s)


def _float(name: str, s: str) -> float:
    return float(s)


def _decimal(name: str, s: str) -> Decimal:
    try:
        return Decimal(s)
    except InvalidOperation:
        raise ValueError(f"{s!r} is not a decimal number.") from None


def _date(name: str, s: str) -> date:
    return date.fromisoformat(s)


def _datetime(name: str, s: str) -> datetime:
    """Parse an ISO 8601 datetime string, independent of the current locale."""
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass

    formats = [
        "%Y-%m-%d",  # 1956-01-31
        "%Y-%m-%dT%H:%M:%S",  # 1956-01-31T10:00:00
        "%Y-%m-%d %H:%M:%S",  # 1956-01-31 10:00:00
        "%Y-%m-%dT%H:%M:%S%z",  # 1956-01-31T10:00:00+0000
        "%Y-%m-%dT%H:%M:%S.%f",  # 1956-01-31T10:00:00.123456
        "%Y-%m-%dT%H:%M:%S.%f%z",  # 1956-01-31T10:00:00.123456+0000
    ]
    for fmt in formats:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue

    raise ValueError("Expected an ISO 8601 date/time such as 1956-01-31T10:00:00.")


_TIMEDELTA_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def _timedelta(name: str, s: str) -> timedelta:
    """Parse a duration such as ``1h30m`` or ``-2d``."""
    negative = s.startswith("-")
    body = s[1:] if negative else s

    matches = re.findall(r"(\d+\.\d+|\d+)([smhdw])", body)
    if not matches or "".join(v + u for v, u in matches) != body:
        raise ValueError("Expected a duration such as 1h30m.")

    out = sum((timedelta(seconds=float(value) * _TIMEDELTA_UNITS[unit]) for value, unit in matches), timedelta())
    return -out if negative else out


def _uuid(name: str, s: str) -> uuid.UUID:
    return uuid.UUID(s)


def _path(name: str, s: str) -> Path:
    return Path(s)


def _bytes(name: str, s: str) -> bytes:
    return bytes(s, encoding="utf8")


def _char(name: str, s: str) -> Char:
    if len(s) != 1:
        raise RevivalError(argument_name=name, raw=s, target_type=Char, reason="Expected exactly one character.")
    return Char(s)


def _secure_string(name: str, s: str) -> SecureString:
    raise RevivalError(
        argument_name=name,
        raw=s,
        target_type=SecureString,
        reason="This value must be entered interactively, not on the command line.",
    )


def _acquire_secure_string(argument: "CommandLineArgument", prompter: "Prompter") -> SecureString:
    return SecureString.deferred(lambda: prompter.prompt_secret(argument))


def _normalize_member(s: str) -> str:
    return s.lower().replace("-", "_")


def revive_enum(type_: type[Enum], name: str, s: str) -> Enum:
    """Match ``s`` to an enum's member name, case-insensitively."""
    target = _normalize_member(s)
    for member_name, member in type_.__members__.items():
        if _normalize_member(member_name) == target:
            return member
    choices = ", ".join(type_.__members__)
    raise RevivalError(argument_name=name, raw=s, target_type=type_, reason=f"Choose from: {choices}.")


def _format_timedelta(value: timedelta) -> str:
    sign = "-" if value < timedelta() else ""
    value = abs(value)
    out = f"{value.days}d" if value.days else ""
    if value.seconds or value.microseconds or not out:
        seconds = f"{value.seconds}.{value.microseconds:06d}".rstrip("0").rstrip(".")
        out += f"{seconds}s"
    return sign + out


def format_value(value: Any) -> str:
    """Render ``value`` as a string that revives back to an equal value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, Enum):
        return value.name
    elif isinstance(value, datetime | date):
        return value.isoformat()
    elif isinstance(value, timedelta):
        return _format_timedelta(value)
    elif isinstance(value, bytes):
        return value.decode("utf8")
    return str(value)


class ReviverRegistry:
    """Maps a target type to a :data:`Reviver`.

    Registries can be layered: a child consults its own table first, then its parent's.
    Each definition owns a child of :data:`DEFAULT_REVIVERS`, so revivers declared on
    one scaffold never leak into another.
    """

    def __init__(
        self,
        revivers: dict[Any, Reviver] | None = None,
        *,
        parent: Optional["ReviverRegistry"] = None,
    ):
        self._revivers: dict[Any, Reviver] = dict(revivers or {})
        self._acquirers: dict[Any, Acquirer] = {}
        self.parent = parent

    def __repr__(self):
        return f"{type(self).__name__}({len(self._revivers)} revivers, parent={self.parent!r})"

    def __contains__(self, type_: Any) -> bool:
        return self.get(type_) is not None

    def __iter__(self) -> Iterator[Any]:
        seen = set()
        registry: ReviverRegistry | None = self
        while registry is not None:
            for type_ in registry._revivers:
                if type_ not in seen:
                    seen.add(type_)
                    yield type_
            registry = registry.parent

    def child(self) -> "ReviverRegistry":
        return type(self)(parent=self)

    def register(self, type_: Any, reviver: Reviver | None = None):
        """Register ``reviver`` for ``type_``; usable as a decorator when ``reviver`` is omitted."""
        if reviver is None:

            def decorator(f: Reviver) -> Reviver:
                self._revivers[type_] = f
                return f

            return decorator

        self._revivers[type_] = reviver
        return reviver

    def register_interactive(self, type_: Any, reviver: Reviver, acquirer: Acquirer) -> None:
        """Register a type whose value is acquired through a :class:`~argscaffold.prompt.Prompter`."""
        self._revivers[type_] = reviver
        self._acquirers[type_] = acquirer

    def update(self, other: "ReviverRegistry") -> None:
        """Copy the entries registered directly on ``other``; its parents are not consulted."""
        self._revivers.update(other._revivers)
        self._acquirers.update(other._acquirers)

    def unregister(self, type_: Any) -> None:
        self._revivers.pop(type_, None)
        self._acquirers.pop(type_, None)

    def get(self, type_: Any) -> Reviver | None:
        """Exact-type lookup through the registry chain."""
        try:
            return self._revivers[type_]
        except (KeyError, TypeError):
            # TypeError: unhashable typing constructs.
            return self.parent.get(type_) if self.parent is not None else None

    def get_acquirer(self, type_: Any) -> Acquirer | None:
        type_ = resolve_optional(resolve_annotated(type_))
        try:
            return self._acquirers[type_]
        except (KeyError, TypeError):
            return self.parent.get_acquirer(type_) if self.parent is not None else None

    def can_revive(self, type_: Any) -> bool:
        type_ = resolve_new_type(resolve_annotated(type_))
        if self.get(type_) is not None or is_enum(type_) or is_literal(type_):
            return True
        unwrapped = resolve_optional(type_)
        if unwrapped is not type_:
            return self.can_revive(unwrapped)
        return False

    def revive(self, type_: Any, argument_name: str, raw: str) -> Any:
        """Convert ``raw`` into ``type_``.

        Lookup order: exact type, enum member by name, ``Optional`` unwrap-and-retry, literal choice.

        Raises
        ------
        RevivalError
            No reviver is registered for ``type_``, or the reviver rejected ``raw``.
        """
        type_ = resolve_new_type(resolve_annotated(type_))

        reviver = self.get(type_)
        if reviver is not None:
            return self._call(reviver, type_, argument_name, raw)

        if is_enum(type_):
            return revive_enum(type_, argument_name, raw)

        unwrapped = resolve_optional(type_)
        if unwrapped is not type_:
            if is_union(unwrapped):
                return self._revive_union(unwrapped, argument_name, raw)
            return self.revive(unwrapped, argument_name, raw)

        if is_literal(type_):
            return self._revive_literal(type_, argument_name, raw)

        raise RevivalError(
            argument_name=argument_name,
            raw=raw,
            target_type=type_,
            reason="No reviver is registered for this type.",
        )

    def _call(self, reviver: Reviver, type_: Any, argument_name: str, raw: str) -> Any:
        try:
            return reviver(argument_name, raw)
        except RevivalError as e:
            e.argument_name = e.argument_name or argument_name
            e.raw = raw if e.raw is None else e.raw
            e.target_type = type_ if e.target_type is None else e.target_type
            raise
        except (ValueError, TypeError, ArithmeticError) as e:
            raise RevivalError(argument_name=argument_name, raw=raw, target_type=type_, reason=str(e)) from e

    def _revive_union(self, type_: Any, argument_name: str, raw: str) -> Any:
        for member in get_args(type_):
            try:
                return self.revive(member, argument_name, raw)
            except RevivalError:
                continue
        raise RevivalError(argument_name=argument_name, raw=raw, target_type=type_)

    def _revive_literal(self, type_: Any, argument_name: str, raw: str) -> Any:
        choices = get_args(type_)
        for choice in choices:
            if isinstance(choice, str):
                if choice.lower() == raw.lower():
                    return choice
                continue
            try:
                if self.revive(type(choice), argument_name, raw) == choice:
                    return choice
            except RevivalError:
                continue
        raise RevivalError(
            argument_name=argument_name,
            raw=raw,
            target_type=type_,
            reason="Choose from: " + ", ".join(format_value(x) for x in choices) + ".",
        )


DEFAULT_REVIVERS = ReviverRegistry(
    {
        str: _str,
        int: _int,
        float: _float,
        Decimal: _decimal,
        bool: _bool,
        date: _date,
        datetime: _datetime,
        timedelta: _timedelta,
        uuid.UUID: _uuid,
        Path: _path,
        bytes: _bytes,
        Char: _char,
    }
)
"""Process-wide built-in revivers."""

DEFAULT_REVIVERS.register_interactive(SecureString, _secure_string, _acquire_secure_string)
