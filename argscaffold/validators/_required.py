from typing import TYPE_CHECKING, Any, ClassVar

from argscaffold.exceptions import MissingArgumentError
from argscaffold.utils import UNSET, frozen
from argscaffold.validators._base import ArgValidator

if TYPE_CHECKING:
    from argscaffold.definition import CommandLineArgument
    from argscaffold.hooks import HookContext


@frozen(kw_only=True)
class Required(ArgValidator):
    """The argument must receive a value.

    Added automatically, ahead of every other validator, by ``Arg(required=True)``.
    """

    validate_always: ClassVar[bool] = True

    prompt_if_missing: bool = False
    """Ask the user for the value instead of failing; re-asks until a non-empty value is supplied."""

    def validate(self, argument: "CommandLineArgument", value: Any, context: "HookContext") -> Any:
        if value is not UNSET and value is not None:
            return value

        if not self.prompt_if_missing or context.prompter is None:
            raise MissingArgumentError(argument=argument)

        raw = ""
        while not raw.strip():
            raw = context.prompter.prompt(argument)
        return context.revive(argument, raw)
