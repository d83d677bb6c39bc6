import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum, auto
from pathlib import Path
from typing import Annotated, Literal, Optional

import pytest

from argscaffold import DEFAULT_REVIVERS, Arg, DefinitionError, RevivalError, ReviverRegistry, parse, reviver
from argscaffold.definition import build_definition, create_definition
from argscaffold.revivers import format_value
from argscaffold.types import Char


class Color(Enum):
    RED = auto()
    GREEN = auto()
    DARK_BLUE = auto()


class Point:
    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y

    def __eq__(self, other):
        return isinstance(other, Point) and (self.x, self.y) == (other.x, other.y)

    @staticmethod
    @reviver
    def revive(argument_name: str, raw: str) -> "Point":
        x, y = raw.split(",")
        return Point(int(x), int(y))


@pytest.mark.parametrize(
    "type_,raw,expected",
    [
        (str, "foo", "foo"),
        (int, "42", 42),
        (int, "-7", -7),
        (int, "0x1F", 31),
        (int, "-0x10", -16),
        (int, "0o17", 15),
        (int, "0b101", 5),
        (int, "1_000", 1000),
        (float, "2.5", 2.5),
        (Decimal, "1.10", Decimal("1.10")),
        (bool, "TRUE", True),
        (bool, "1", True),
        (bool, "False", False),
        (bool, "0", False),
        (date, "2024-01-31", date(2024, 1, 31)),
        (datetime, "2024-01-31T10:20:30", datetime(2024, 1, 31, 10, 20, 30)),
        (timedelta, "1h30m", timedelta(hours=1, minutes=30)),
        (timedelta, "-2d", timedelta(days=-2)),
        (uuid.UUID, "12345678-1234-5678-1234-567812345678", uuid.UUID("12345678-1234-5678-1234-567812345678")),
        (Path, "a/b", Path("a/b")),
        (bytes, "hi", b"hi"),
        (Char, "x", "x"),
        (Color, "red", Color.RED),
        (Color, "Dark-Blue", Color.DARK_BLUE),
        (Optional[int], "5", 5),
        (int | None, "5", 5),
        (Literal["fast", "slow"], "FAST", "fast"),
        (Literal[1, 2], "2", 2),
    ],
)
def test_revive_builtin(type_, raw, expected):
    assert DEFAULT_REVIVERS.revive(type_, "arg", raw) == expected


@pytest.mark.parametrize(
    "type_,raw",
    [
        (int, "forty-two"),
        (float, "abc"),
        (Decimal, "1.2.3"),
        (bool, "maybe"),
        (date, "31/01/2024"),
        (timedelta, "soon"),
        (uuid.UUID, "not-a-uuid"),
        (Char, "xy"),
        (Color, "purple"),
        (Literal["fast", "slow"], "medium"),
    ],
)
def test_revive_builtin_rejects(type_, raw):
    with pytest.raises(RevivalError) as e:
        DEFAULT_REVIVERS.revive(type_, "arg", raw)
    assert e.value.argument_name == "arg"
    assert e.value.raw == raw


def test_revive_error_message():
    with pytest.raises(RevivalError) as e:
        DEFAULT_REVIVERS.revive(bool, "verbose", "maybe")
    assert str(e.value) == 'Invalid value "maybe" for "verbose": unable to convert into bool. Expected true or false.'


def test_revive_unregistered_type():
    class Unknown:
        pass

    with pytest.raises(RevivalError, match="No reviver is registered"):
        DEFAULT_REVIVERS.revive(Unknown, "arg", "x")
    assert not DEFAULT_REVIVERS.can_revive(Unknown)


@pytest.mark.parametrize(
    "default",
    [
        3,
        -7,
        2.5,
        True,
        False,
        Decimal("1.10"),
        Color.GREEN,
        date(2024, 1, 31),
        datetime(2024, 1, 31, 10, 20, 30),
        timedelta(seconds=90),
        timedelta(days=14),
        timedelta(seconds=1, microseconds=1),
        timedelta(days=-3, seconds=5),
        timedelta(),
        Path("a/b"),
        b"hi",
        uuid.UUID("12345678-1234-5678-1234-567812345678"),
    ],
)
def test_revive_default_round_trip(default):
    assert DEFAULT_REVIVERS.revive(type(default), "arg", format_value(default)) == default


def test_registry_child_does_not_leak():
    class Custom:
        pass

    child = DEFAULT_REVIVERS.child()

    @child.register(Custom)
    def _(argument_name, raw):
        return Custom()

    assert isinstance(child.revive(Custom, "arg", "x"), Custom)
    assert child.revive(int, "arg", "3") == 3  # Falls back to the parent.
    assert Custom in child
    assert Custom not in DEFAULT_REVIVERS

    child.unregister(Custom)
    assert Custom not in child


def test_registry_reviver_value_error_is_wrapped():
    registry = ReviverRegistry()

    def strict(argument_name, raw):
        raise ValueError("Nope.")

    registry.register(int, strict)
    with pytest.raises(RevivalError) as e:
        registry.revive(int, "count", "3")
    assert e.value.reason == "Nope."
    assert e.value.target_type is int


def test_registry_iter_lists_parent_types():
    child = DEFAULT_REVIVERS.child()
    child.register(Point, Point.revive)
    types_ = list(child)
    assert types_[0] is Point
    assert int in types_


def test_reviver_discovered_on_target_class():
    class Shape:
        origin: Optional[Point] = None

    definition = create_definition(Shape)
    assert definition.revivers.get(Point) is not None
    # Discovery registers on the definition's own registry only.
    assert DEFAULT_REVIVERS.get(Point) is None

    shape = parse(Shape, ["-origin", "1,2"])
    assert shape.origin == Point(1, 2)


def test_reviver_declared_on_scaffold():
    class Celsius(float):
        pass

    class Weather:
        temperature: Celsius = Celsius(0)

        @classmethod
        @reviver
        def _revive_celsius(cls, argument_name: str, raw: str) -> Celsius:
            return Celsius(raw.removesuffix("C"))

    weather = parse(Weather, ["-temperature", "21.5C"])
    assert weather.temperature == 21.5
    assert isinstance(weather.temperature, Celsius)


def test_reviver_per_argument():
    class Cli:
        name: Annotated[str, Arg(reviver=lambda argument_name, raw: raw.upper())] = ""

    assert parse(Cli, ["-name", "ada"]).name == "ADA"


def test_reviver_bad_shape():
    class Thing:
        @staticmethod
        @reviver
        def revive(raw: str) -> "Thing":
            return Thing()

    class Cli:
        thing: Optional[Thing] = None

    with pytest.raises(DefinitionError, match="argument_name, raw"):
        create_definition(Cli)


def test_reviver_must_be_static_or_class_method():
    class Cli:
        count: int = 0

        @reviver
        def revive(self, argument_name: str, raw: str) -> int:
            return 0

    with pytest.raises(DefinitionError, match="staticmethod or classmethod"):
        create_definition(Cli)


def test_reviver_missing_return_annotation():
    class Cli:
        count: int = 0

        @staticmethod
        @reviver
        def revive(argument_name: str, raw: str):
            return 0

    with pytest.raises(DefinitionError, match="return annotation"):
        create_definition(Cli)


def test_reviver_registered_once_per_definition():
    class Shape:
        origin: Optional[Point] = None

    assert build_definition(Shape).revivers is build_definition(Shape).revivers
