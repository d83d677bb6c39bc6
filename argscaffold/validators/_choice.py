from typing import Any

from argscaffold.utils import frozen


@frozen(init=False)
class OneOf:
    """The value must be one of ``choices``."""

    choices: tuple[Any, ...]
    case_sensitive: bool

    def __init__(self, *choices: Any, case_sensitive: bool = False):
        self.__attrs_init__(choices, case_sensitive)  # pyright: ignore[reportAttributeAccessIssue]

    def __call__(self, type_: Any, value: Any):
        if isinstance(value, str) and not self.case_sensitive:
            allowed = {c.casefold() for c in self.choices if isinstance(c, str)}
            found = value.casefold() in allowed
        else:
            found = value in self.choices
        if not found:
            pretty = ", ".join(repr(c) for c in self.choices)
            raise ValueError(f"Must be one of {{{pretty}}}.")
