import re
from typing import Any

from attrs import field

from argscaffold.utils import frozen


@frozen
class Regex:
    r"""The string form of the value must fully match ``pattern``.

    .. code-block:: python

        class Cli:
            tag: Annotated[str, Arg(validator=validators.Regex(r"v\d+(\.\d+)*"))]
    """

    pattern: re.Pattern = field(converter=re.compile)

    message: str | None = field(default=None, kw_only=True)
    """Replaces the default rejection message."""

    def __call__(self, type_: Any, value: Any):
        if value is None:
            return
        if self.pattern.fullmatch(str(value)) is None:
            raise ValueError(self.message or f'Must match pattern "{self.pattern.pattern}".')
