from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any

from argscaffold import validators
from argscaffold.arg import Arg
from argscaffold.utils import UNSET

__all__ = [
    "Char",
    "SecureString",
    # Path
    "ExistingPath",
    "NonExistentPath",
    "ExistingFile",
    "ExistingDirectory",
    "File",
    "Directory",
    # Number
    "PositiveInt",
    "NonNegativeInt",
    "NegativeInt",
    "PositiveFloat",
    "NonNegativeFloat",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Port",
]


class Char(str):
    """A single character."""

    __slots__ = ()


class SecureString:
    """A secret whose value is acquired interactively, never from the command line.

    The value is not requested until :meth:`reveal` is first called.
    """

    __slots__ = ("_value", "_acquire")

    def __init__(self, value: str):
        self._value: Any = value
        self._acquire: Callable[[], str] | None = None

    @classmethod
    def deferred(cls, acquire: Callable[[], str]) -> "SecureString":
        out = cls.__new__(cls)
        out._value = UNSET
        out._acquire = acquire
        return out

    @property
    def acquired(self) -> bool:
        return self._value is not UNSET

    def reveal(self) -> str:
        if self._value is UNSET:
            assert self._acquire is not None
            self._value = self._acquire()
            self._acquire = None
        return self._value

    def __eq__(self, other):
        if not isinstance(other, SecureString):
            return NotImplemented
        if self is other:
            return True
        return self.acquired and other.acquired and self._value == other._value

    def __hash__(self):
        return id(self)

    def __repr__(self):
        return f"{type(self).__name__}('********')"

    __str__ = __repr__


########
# Path #
########
ExistingPath = Annotated[Path, Arg(validator=validators.Path(exists=True))]
"A :class:`~pathlib.Path` file or directory that **must** exist."

NonExistentPath = Annotated[Path, Arg(validator=validators.Path(file_okay=False, dir_okay=False))]
"A :class:`~pathlib.Path` file or directory that **must not** exist."

File = Annotated[Path, Arg(validator=validators.Path(dir_okay=False))]
"A :class:`~pathlib.Path` that **must** be a file (or not exist)."

ExistingFile = Annotated[Path, Arg(validator=validators.Path(exists=True, dir_okay=False))]
"A :class:`~pathlib.Path` file that **must** exist."

Directory = Annotated[Path, Arg(validator=validators.Path(file_okay=False))]
"A :class:`~pathlib.Path` that **must** be a directory (or not exist)."

ExistingDirectory = Annotated[Path, Arg(validator=validators.Path(exists=True, file_okay=False))]
"A :class:`~pathlib.Path` directory that **must** exist."


##########
# Number #
##########
PositiveInt = Annotated[int, Arg(validator=validators.Number(gt=0))]
"An int that **must** be > 0."

NonNegativeInt = Annotated[int, Arg(validator=validators.Number(gte=0))]
"An int that **must** be >= 0."

NegativeInt = Annotated[int, Arg(validator=validators.Number(lt=0))]
"An int that **must** be < 0."

PositiveFloat = Annotated[float, Arg(validator=validators.Number(gt=0))]
"A float that **must** be > 0."

NonNegativeFloat = Annotated[float, Arg(validator=validators.Number(gte=0))]
"A float that **must** be >= 0."

UInt = NonNegativeInt
"An unsigned integer."

UInt8 = Annotated[int, Arg(validator=validators.Number(gte=0, lt=1 << 8))]
"An unsigned 8-bit integer."

UInt16 = Annotated[int, Arg(validator=validators.Number(gte=0, lt=1 << 16))]
"An unsigned 16-bit integer."

UInt32 = Annotated[int, Arg(validator=validators.Number(gte=0, lt=1 << 32))]
"An unsigned 32-bit integer."

UInt64 = Annotated[int, Arg(validator=validators.Number(gte=0, lt=1 << 64))]
"An unsigned 64-bit integer."

Port = Annotated[int, Arg(validator=validators.Number(gte=0, lte=65535))]
"A TCP/UDP port number."
