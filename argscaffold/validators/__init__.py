__all__ = [
    "ArgValidator",
    "Number",
    "OneOf",
    "Path",
    "Regex",
    "Required",
]

from argscaffold.validators._base import ArgValidator
from argscaffold.validators._choice import OneOf
from argscaffold.validators._number import Number
from argscaffold.validators._path import Path
from argscaffold.validators._regex import Regex
from argscaffold.validators._required import Required
