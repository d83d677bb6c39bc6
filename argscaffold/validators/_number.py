import operator
from typing import Any

from argscaffold.utils import frozen

# (field, rejects-when, symbol)
_BOUNDS = (
    ("lt", operator.ge, "<"),
    ("lte", operator.gt, "<="),
    ("gt", operator.le, ">"),
    ("gte", operator.lt, ">="),
)


@frozen(kw_only=True)
class Number:
    """Limit a revived number to a range, optionally a multiple of ``modulo``.

    .. code-block:: python

        class Cli:
            age: Annotated[int, Arg(position=0, validator=validators.Number(gte=0, lte=150))] = 0

    .. code-block:: console

        $ my-script -1
        ╭─ Error ───────────────────────────────────────────────────────╮
        │ Invalid value "-1" for "age". Must be >= 0.                   │
        ╰───────────────────────────────────────────────────────────────╯
    """

    lt: int | float | None = None
    lte: int | float | None = None
    gt: int | float | None = None
    gte: int | float | None = None
    modulo: int | float | None = None

    def __call__(self, type_: Any, value: Any):
        # Booleans are ints, but never numbers on a command line.
        if isinstance(value, bool) or not isinstance(value, int | float):
            return

        for name, rejects, symbol in _BOUNDS:
            bound = getattr(self, name)
            if bound is not None and rejects(value, bound):
                raise ValueError(f"Must be {symbol} {bound}.")

        if self.modulo is not None and value % self.modulo:
            raise ValueError(f"Must be a multiple of {self.modulo}.")
